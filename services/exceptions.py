"""
Error taxonomy for the finance services.

Every error raised by a service derives from ``FinanceError`` and carries an
HTTP-ish ``status_code`` plus structured ``details`` so the façade can build a
precise message without parsing strings.

    ValidationError          400  malformed input, nothing was written
    NotSubmitterError        403  only the original submitter may edit
    NotFoundError            404  referenced row does not exist
    InvariantViolationError  409  the write would break a business rule
"""
from decimal import Decimal


def _jsonable(value):
    if isinstance(value, Decimal):
        return float(value)
    return value


class FinanceError(Exception):
    status_code = 400
    code = 'finance_error'

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        return {
            'error': self.code,
            'message': self.message,
            'details': {k: _jsonable(v) for k, v in self.details.items()},
        }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ValidationError(FinanceError):
    status_code = 400
    code = 'validation_error'

    def __init__(self, message, field=None, **details):
        super().__init__(message, field=field, **details)
        self.field = field


class InvalidCategoryError(ValidationError):
    code = 'invalid_category'

    def __init__(self, category_id, reason='inactive'):
        if reason == 'missing':
            message = f'Category {category_id} does not exist'
        else:
            message = f'Category {category_id} is not active'
        super().__init__(message, field='category_id', category_id=category_id, reason=reason)
        self.category_id = category_id
        self.reason = reason


class RejectionReasonRequiredError(ValidationError):
    code = 'rejection_reason_required'

    def __init__(self, min_length):
        super().__init__(
            f'A rejection reason of at least {min_length} characters is required',
            field='reason', min_length=min_length,
        )
        self.min_length = min_length


# ---------------------------------------------------------------------------
# Authorisation inside the core
# ---------------------------------------------------------------------------

class NotSubmitterError(FinanceError):
    status_code = 403
    code = 'not_submitter'

    def __init__(self, expense_id):
        super().__init__(f'Only the original submitter may edit expense {expense_id}', expense_id=expense_id)


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------

class NotFoundError(FinanceError):
    status_code = 404
    code = 'not_found'

    def __init__(self, entity, entity_id):
        super().__init__(f'{entity} {entity_id} not found', entity=entity, id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


# ---------------------------------------------------------------------------
# Invariant violations
# ---------------------------------------------------------------------------

class InvariantViolationError(FinanceError):
    status_code = 409
    code = 'invariant_violation'


class BudgetExceedsStartupError(InvariantViolationError):
    code = 'budget_exceeds_startup'

    def __init__(self, attempted_total, ceiling):
        super().__init__(
            f'Total allocated budget ({attempted_total}) would exceed the startup budget ({ceiling})',
            attempted_total=attempted_total, ceiling=ceiling,
        )
        self.attempted_total = attempted_total
        self.ceiling = ceiling


class BudgetBelowAllocationError(InvariantViolationError):
    code = 'budget_below_allocation'

    def __init__(self, new_total, allocated):
        super().__init__(
            f'Total budget ({new_total}) cannot be lower than the amount already allocated ({allocated})',
            new_total=new_total, allocated=allocated,
        )
        self.new_total = new_total
        self.allocated = allocated


class BudgetHasExpensesError(InvariantViolationError):
    code = 'budget_has_expenses'

    def __init__(self, budget_category_id, expense_count):
        super().__init__(
            f'Budget category {budget_category_id} has {expense_count} expense(s) and cannot be deleted',
            budget_category_id=budget_category_id, expense_count=expense_count,
        )
        self.expense_count = expense_count


class CategoryInUseError(InvariantViolationError):
    code = 'category_in_use'

    def __init__(self, category_id, expense_count):
        super().__init__(
            f'Cannot delete category with {expense_count} expense(s). Deactivate it instead.',
            category_id=category_id, expense_count=expense_count,
        )
        self.expense_count = expense_count


class DuplicateCategoryError(InvariantViolationError):
    code = 'duplicate_category'

    def __init__(self, name):
        super().__init__(f'Category "{name}" already exists', name=name)


class InvalidTransitionError(InvariantViolationError):
    """A workflow action was attempted from a state that does not allow it."""
    code = 'invalid_transition'

    def __init__(self, action, current_status, message=None):
        super().__init__(
            message or f'Cannot {action} while status is {current_status}',
            action=action, current_status=current_status,
        )
        self.action = action
        self.current_status = current_status


class CannotEditError(InvalidTransitionError):
    code = 'cannot_edit'

    def __init__(self, current_status, action='edit'):
        super().__init__(action, current_status, f'Only pending expenses can be edited (status: {current_status})')


class ExpenseAlreadyProcessedError(InvalidTransitionError):
    code = 'expense_already_processed'

    def __init__(self, action, current_status):
        super().__init__(action, current_status, f'Expense has already been processed (status: {current_status})')


class AlreadySubmittedError(InvalidTransitionError):
    code = 'payment_already_submitted'

    def __init__(self, action, current_status):
        super().__init__(action, current_status, f'A payment proof has already been submitted (status: {current_status})')


class PaymentNotPendingError(InvalidTransitionError):
    code = 'payment_not_pending'

    def __init__(self, action, current_status):
        super().__init__(action, current_status, f'Cannot {action} a payment while status is {current_status}')
