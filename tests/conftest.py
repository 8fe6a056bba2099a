from datetime import datetime, timedelta, timezone

import pytest

from core.adapters.token_adapter import TransferError
from core.services import CampaignLedger

T = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

CREATOR = "alice"
BOB = "bob"
CAROL = "carol"


class FakeClock:
	def __init__(self, now):
		self.now = now

	def __call__(self):
		return self.now

	def at(self, seconds):
		self.now = T + timedelta(seconds=seconds)
		return self.now


class FakeTransfer:
	"""
	Records moves and tracks custody; fail_with makes the next move raise.
	"""
	def __init__(self):
		self.moves = []
		self.custody = 0
		self.fail_with = None

	def _maybe_fail(self):
		if self.fail_with:
			code, self.fail_with = self.fail_with, None
			raise TransferError(code)

	def move_in(self, sender, amount_units):
		self._maybe_fail()
		self.custody += amount_units
		self.moves.append(("in", sender, amount_units))

	def move_out(self, recipient, amount_units):
		self._maybe_fail()
		self.custody -= amount_units
		self.moves.append(("out", recipient, amount_units))

	def custody_balance(self):
		return self.custody


@pytest.fixture
def clock():
	return FakeClock(T)


@pytest.fixture
def transfer():
	return FakeTransfer()


@pytest.fixture
def ledger(db, clock, transfer):
	return CampaignLedger(transfer=transfer, clock=clock)


@pytest.fixture
def campaign(ledger):
	"""goal=100, open from T+10 to T+20"""
	return ledger.launch(CREATOR, 100, T + timedelta(seconds=10), T + timedelta(seconds=20))
