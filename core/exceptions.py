"""Ledger rejections.

Every failed operation raises exactly one of these before any state is changed.
They subclass Django's ValidationError so callers can keep catching that, and
each carries a stable `code` for API responses.
"""

from django.core.exceptions import ValidationError


class LedgerError(ValidationError):
	code = "ledger_error"
	default_detail = "ledger operation rejected"

	def __init__(self, detail: str | None = None):
		self.detail = detail or self.default_detail
		super().__init__(self.code, code=self.code)

	def __str__(self):
		return f"{self.code}: {self.detail}"


class InvalidWindow(LedgerError):
	code = "invalid_window"
	default_detail = "campaign window is not valid"


class InvalidGoal(LedgerError):
	code = "invalid_goal"
	default_detail = "goal must be > 0"


class InvalidAmount(LedgerError):
	code = "invalid_amount"
	default_detail = "amount must be > 0"


class NotFound(LedgerError):
	code = "not_found"
	default_detail = "campaign does not exist"


class NotCreator(LedgerError):
	code = "not_creator"
	default_detail = "caller is not the campaign creator"


class AlreadyStarted(LedgerError):
	code = "already_started"
	default_detail = "campaign has already started"


class NotStarted(LedgerError):
	code = "not_started"
	default_detail = "campaign has not started"


class Ended(LedgerError):
	code = "ended"
	default_detail = "campaign has ended"


class NotEnded(LedgerError):
	code = "not_ended"
	default_detail = "campaign has not ended"


class InsufficientContribution(LedgerError):
	code = "insufficient_contribution"
	default_detail = "pledge is smaller than the requested amount"


class GoalNotReached(LedgerError):
	code = "goal_not_reached"
	default_detail = "total contribution is below the goal"


class GoalReached(LedgerError):
	code = "goal_reached"
	default_detail = "goal was reached, refunds are closed"


class AlreadyClaimed(LedgerError):
	code = "already_claimed"
	default_detail = "funds were already claimed"


class NoContribution(LedgerError):
	code = "no_contribution"
	default_detail = "caller has nothing pledged"
