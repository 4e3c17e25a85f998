"""
Approval Workflow
=================
Single-slot "submit -> review" state machine shared by expense approval and
payment verification.

A workflow is declared once as data::

    PAYMENT_WORKFLOW = ApprovalWorkflow(
        name='payment',
        status_attr='payment_status',
        stamp_attrs={'submit': 'payment_submitted_at', 'approve': 'payment_reviewed_at', ...},
        transitions=[
            Transition('submit', {NOT_SUBMITTED, REJECTED}, PENDING, AlreadySubmittedError),
            ...
        ],
    )

``apply(entity, action)`` checks the guard, raises the transition's error
(carrying the action and current status) when it fails, sets the new status,
stamps the audit timestamp and applies any extra field changes.  It returns a
``TransitionRecord`` so the caller can dispatch the transition's notification
event once the write has committed.

The workflow never commits and never notifies; services own the transaction
and the side effects.
"""
from collections import namedtuple

from services.exceptions import InvalidTransitionError
from utils.db_helpers import utc_now


Transition = namedtuple('Transition', ['action', 'sources', 'target', 'error', 'event'])
Transition.__new__.__defaults__ = (InvalidTransitionError, None)

TransitionRecord = namedtuple('TransitionRecord', ['action', 'from_status', 'to_status', 'at', 'event'])


class ApprovalWorkflow:

    def __init__(self, name, status_attr, transitions, stamp_attrs=None, initial=None):
        self.name = name
        self.status_attr = status_attr
        self.stamp_attrs = stamp_attrs or {}
        self.initial = initial
        self._transitions = {}
        for t in transitions:
            if t.action in self._transitions:
                raise ValueError(f'{name}: duplicate transition {t.action!r}')
            self._transitions[t.action] = t

    @property
    def actions(self):
        return tuple(self._transitions)

    def transition(self, action):
        try:
            return self._transitions[action]
        except KeyError:
            raise ValueError(f'{self.name}: unknown action {action!r}')

    def status_of(self, entity):
        return getattr(entity, self.status_attr) or self.initial

    def can(self, entity, action):
        return self.status_of(entity) in self.transition(action).sources

    def check(self, entity, action):
        """Raise the transition's error if *action* is not allowed right now."""
        t = self.transition(action)
        current = self.status_of(entity)
        if current not in t.sources:
            raise t.error(action, current)
        return t

    def apply(self, entity, action, now=None, **changes):
        t = self.check(entity, action)
        previous = self.status_of(entity)
        now = now or utc_now()

        setattr(entity, self.status_attr, t.target)
        stamp = self.stamp_attrs.get(action)
        if stamp:
            setattr(entity, stamp, now)
        for attr, value in changes.items():
            setattr(entity, attr, value)

        return TransitionRecord(action, previous, t.target, now, t.event)
