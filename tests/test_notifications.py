"""
Tests for the best-effort notification outbox and the in-app inbox.
"""
import logging

import pytest

from models.notifications import Notification
from services.notification_service import NotificationEvent, NotificationOutbox, NotificationService


def _event(kind='EXPENSE_SUBMITTED'):
    return NotificationEvent(kind, {}, ())


# ---------------------------------------------------------------------------
# NotificationOutbox
# ---------------------------------------------------------------------------

class TestOutbox:
    def test_is_bounded_and_drops_oldest(self, app, caplog):
        box = NotificationOutbox(maxlen=2)
        with caplog.at_level(logging.WARNING):
            box.put(_event('A'))
            box.put(_event('B'))
            box.put(_event('C'))
        assert len(box) == 2
        assert box.dropped == 1
        assert 'dropping A event' in caplog.text

        seen = []
        box.drain(lambda e: seen.append(e.kind))
        assert seen == ['B', 'C']

    def test_failed_delivery_is_logged_and_skipped(self, app, caplog):
        box = NotificationOutbox(maxlen=10)
        box.put(_event('BAD'))
        box.put(_event('GOOD'))
        seen = []

        def deliver(event):
            if event.kind == 'BAD':
                raise RuntimeError('smtp down')
            seen.append(event.kind)

        with caplog.at_level(logging.ERROR):
            delivered = box.drain(deliver)
        assert delivered == 1
        assert seen == ['GOOD']
        assert 'Failed to deliver BAD notification' in caplog.text
        assert len(box) == 0


# ---------------------------------------------------------------------------
# NotificationService
# ---------------------------------------------------------------------------

class TestDispatch:
    def test_defaults_to_all_admins(self, app, admin, student):
        NotificationService.dispatch('EXPENSE_SUBMITTED', {'amount': 10, 'submitted_by_name': 'Student User'})
        assert [n.user_id for n in Notification.query.all()] == [admin.id]

    def test_never_raises(self, app, student, monkeypatch):
        def boom():
            raise RuntimeError('database went away')
        monkeypatch.setattr(NotificationService, 'admin_ids', staticmethod(boom))
        assert NotificationService.dispatch('EXPENSE_SUBMITTED', {}) == 0

    def test_no_mailer_means_no_email(self, app, student):
        NotificationService.dispatch('PAYMENT_APPROVED', {'name': 'Student User'}, [student.id])
        assert Notification.query.filter_by(user_id=student.id).count() == 1


class TestInbox:
    @pytest.fixture
    def inbox(self, app, student):
        for kind in ('EXPENSE_APPROVED', 'EXPENSE_REJECTED', 'PAYMENT_APPROVED'):
            NotificationService.dispatch(kind, {'amount': 1, 'description': 'x', 'name': 'S'}, [student.id])
        return student

    def test_unread_count_and_mark_read(self, app, inbox):
        assert NotificationService.unread_count(inbox.id) == 3
        first = NotificationService.list_for_user(inbox.id)[-1]
        assert NotificationService.mark_read(inbox.id, [first.id]) == 1
        assert NotificationService.unread_count(inbox.id) == 2
        assert NotificationService.mark_read(inbox.id) == 2
        assert NotificationService.list_for_user(inbox.id, unread_only=True) == []

    def test_payload_round_trips_to_dict(self, app, inbox):
        note = NotificationService.list_for_user(inbox.id)[0]
        assert note.to_dict()['data']['name'] == 'S'
