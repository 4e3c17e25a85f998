"""
Notification Service
====================
Best-effort delivery of workflow events.

Services call ``NotificationService.dispatch()`` *after* their own commit.
The event is placed in a bounded per-context outbox and the outbox is drained
immediately; every delivery runs inside its own try/except, so a failing
delivery is rolled back, logged and dropped, and can never undo or fail the
state change that produced it.

Delivery writes one in-app ``Notification`` row per recipient and, for
payment events, hands an e-mail to the mailer registered at
``app.extensions['mailer']`` (any object with ``send(to, subject, body)``).
No mailer registered means no e-mail.
"""
import json
from collections import deque, namedtuple
from decimal import Decimal

from flask import current_app, g

from extensions import db
from models.notifications import Notification, NotificationKind
from models.users import User, UserRole


NotificationEvent = namedtuple('NotificationEvent', ['kind', 'payload', 'recipient_ids'])

TITLES = {
    NotificationKind.EXPENSE_SUBMITTED: 'New Expense Submitted',
    NotificationKind.EXPENSE_APPROVED: 'Expense Approved',
    NotificationKind.EXPENSE_REJECTED: 'Expense Rejected',
    NotificationKind.PAYMENT_APPROVED: 'Payment Approved',
    NotificationKind.PAYMENT_REJECTED: 'Payment Rejected',
}

EMAIL_KINDS = {NotificationKind.PAYMENT_APPROVED, NotificationKind.PAYMENT_REJECTED}


def _json_default(value):
    if isinstance(value, Decimal):
        return float(value)
    return str(value)


def format_amount(amount):
    return f'${Decimal(str(amount)):,.2f}'


class NotificationOutbox:
    """Bounded FIFO of events waiting for delivery."""

    def __init__(self, maxlen):
        self._queue = deque(maxlen=maxlen)
        self.dropped = 0

    def __len__(self):
        return len(self._queue)

    def put(self, event):
        if self._queue.maxlen is not None and len(self._queue) == self._queue.maxlen:
            dropped = self._queue.popleft()
            self.dropped += 1
            current_app.logger.warning(f'Notification outbox full; dropping {dropped.kind} event')
        self._queue.append(event)

    def drain(self, deliver):
        delivered = 0
        while self._queue:
            event = self._queue.popleft()
            try:
                deliver(event)
                delivered += 1
            except Exception:
                db.session.rollback()
                current_app.logger.exception(f'Failed to deliver {event.kind} notification')
        return delivered


class NotificationService:

    @staticmethod
    def outbox():
        """Outbox bound to the current app/request context."""
        box = g.get('notification_outbox')
        if box is None:
            box = NotificationOutbox(current_app.config.get('NOTIFICATION_OUTBOX_MAXLEN', 100))
            g.notification_outbox = box
        return box

    @staticmethod
    def dispatch(kind, payload, recipient_ids=None):
        """Queue and deliver an event.  Never raises."""
        try:
            if recipient_ids is None:
                recipient_ids = NotificationService.admin_ids()
            event = NotificationEvent(kind, dict(payload), tuple(recipient_ids))
            box = NotificationService.outbox()
            box.put(event)
            return box.drain(NotificationService.deliver)
        except Exception:
            db.session.rollback()
            current_app.logger.exception(f'Failed to dispatch {kind} notification')
            return 0

    @staticmethod
    def admin_ids():
        return [uid for (uid,) in db.session.query(User.id).filter(User.role == UserRole.ADMIN).all()]

    @staticmethod
    def deliver(event):
        """Persist in-app notifications and send e-mail where applicable."""
        title = TITLES.get(event.kind, event.kind.replace('_', ' ').title())
        message = NotificationService.render_message(event)
        data = json.dumps(event.payload, default=_json_default)

        for user_id in event.recipient_ids:
            db.session.add(Notification(
                user_id=user_id,
                kind=event.kind,
                title=title,
                message=message,
                data=data,
            ))
        db.session.commit()

        if event.kind in EMAIL_KINDS:
            NotificationService.send_email(event, title, message)

        current_app.logger.info(
            f'Delivered {event.kind} notification to {len(event.recipient_ids)} recipient(s)'
        )

    @staticmethod
    def send_email(event, subject, body):
        mailer = current_app.extensions.get('mailer')
        if mailer is None:
            current_app.logger.debug(f'No mailer registered; skipping {event.kind} e-mail')
            return
        for user_id in event.recipient_ids:
            user = db.session.get(User, user_id)
            if user and user.email:
                mailer.send(user.email, subject, body)

    @staticmethod
    def render_message(event):
        p = event.payload
        kind = event.kind
        if kind == NotificationKind.EXPENSE_SUBMITTED:
            return (
                f"{p.get('submitted_by_name', 'Someone')} submitted an expense of "
                f"{format_amount(p.get('amount', 0))} for {p.get('startup_name')} in {p.get('category_name')}."
            )
        if kind == NotificationKind.EXPENSE_APPROVED:
            message = f"Your expense of {format_amount(p.get('amount', 0))} for \"{p.get('description')}\" has been approved."
            if p.get('admin_comment'):
                message += f" Admin comment: \"{p['admin_comment']}\""
            return message
        if kind == NotificationKind.EXPENSE_REJECTED:
            message = f"Your expense of {format_amount(p.get('amount', 0))} for \"{p.get('description')}\" has been rejected."
            if p.get('admin_comment'):
                message += f" Reason: \"{p['admin_comment']}\""
            return message
        if kind == NotificationKind.PAYMENT_APPROVED:
            return f"Hello {p.get('name', '')}, your payment has been verified and your account is now active."
        if kind == NotificationKind.PAYMENT_REJECTED:
            return f"Hello {p.get('name', '')}, your payment proof was rejected. Reason: {p.get('reason')}"
        return json.dumps(p, default=_json_default)

    # ------------------------------------------------------------------
    # In-app inbox
    # ------------------------------------------------------------------

    @staticmethod
    def list_for_user(user_id, unread_only=False, limit=50):
        query = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            query = query.filter_by(is_read=False)
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

    @staticmethod
    def unread_count(user_id):
        return Notification.query.filter_by(user_id=user_id, is_read=False).count()

    @staticmethod
    def mark_read(user_id, notification_ids=None):
        """Mark the given (or all) notifications of *user_id* as read."""
        query = Notification.query.filter_by(user_id=user_id, is_read=False)
        if notification_ids:
            query = query.filter(Notification.id.in_(list(notification_ids)))
        try:
            updated = query.update({Notification.is_read: True}, synchronize_session=False)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return updated
