from datetime import timedelta

import pytest

from core.adapters.token_adapter import TransferError
from core.exceptions import (
	AlreadyClaimed, AlreadyStarted, Ended, GoalNotReached, GoalReached, InsufficientContribution,
	InvalidAmount, InvalidGoal, InvalidWindow, LedgerError, NoContribution, NotCreator, NotEnded, NotFound, NotStarted,
)
from core.constants import MAX_UNITS
from core.models import Campaign, LedgerEvent, Pledge
from core.signals import campaign_event

from .conftest import BOB, CAROL, CREATOR, T


def sum_pledges(campaign_id):
	return sum(Pledge.objects.filter(campaign_id=campaign_id).values_list("amount", flat=True))


class TestLaunch:
	def test_first_campaign_gets_id_one(self, ledger, campaign):
		assert campaign.id == 1
		assert campaign.creator == CREATOR
		assert campaign.total_contribution == 0
		assert campaign.claimed is False
		assert ledger.next_id_counter() == 1

	def test_ids_are_sequential(self, ledger, campaign):
		second = ledger.launch(BOB, 5, T, T + timedelta(days=1))
		assert second.id == 2
		assert ledger.next_id_counter() == 2

	def test_ids_not_reused_after_cancel(self, ledger, campaign):
		ledger.cancel(CREATOR, campaign.id)
		again = ledger.launch(CREATOR, 100, T + timedelta(seconds=10), T + timedelta(seconds=20))
		assert again.id == 2

	def test_end_equal_to_start_allowed(self, ledger):
		c = ledger.launch(CREATOR, 1, T + timedelta(hours=1), T + timedelta(hours=1))
		assert c.start_at == c.end_at

	def test_end_exactly_max_duration_allowed(self, ledger):
		c = ledger.launch(CREATOR, 1, T, T + timedelta(days=90))
		assert c.end_at == T + timedelta(days=90)

	def test_end_one_second_past_max_duration_rejected(self, ledger):
		with pytest.raises(InvalidWindow):
			ledger.launch(CREATOR, 1, T, T + timedelta(days=90, seconds=1))

	def test_start_in_past_rejected(self, ledger):
		with pytest.raises(InvalidWindow):
			ledger.launch(CREATOR, 1, T - timedelta(seconds=1), T + timedelta(days=1))

	def test_end_before_start_rejected(self, ledger):
		with pytest.raises(InvalidWindow):
			ledger.launch(CREATOR, 1, T + timedelta(days=2), T + timedelta(days=1))

	@pytest.mark.parametrize("goal", [0, -5])
	def test_non_positive_goal_rejected(self, ledger, goal):
		with pytest.raises(InvalidGoal):
			ledger.launch(CREATOR, goal, T, T + timedelta(days=1))
		assert ledger.next_id_counter() == 0

	def test_goal_beyond_column_range_rejected(self, ledger):
		with pytest.raises(InvalidGoal):
			ledger.launch(CREATOR, MAX_UNITS + 1, T, T + timedelta(days=1))
		assert ledger.next_id_counter() == 0

	def test_launch_event_carries_inputs(self, ledger, campaign):
		(event,) = ledger.events_for(campaign.id)
		assert event.event_type == "launch"
		assert event.amount == 100
		assert event.payload["creator"] == CREATOR
		assert event.payload["start_at"] == (T + timedelta(seconds=10)).isoformat()


class TestCancel:
	def test_creator_cancels_before_start(self, ledger, campaign):
		ledger.cancel(CREATOR, campaign.id)
		assert not Campaign.objects.filter(pk=campaign.id).exists()
		assert [e.event_type for e in ledger.events_for(campaign.id)] == ["launch", "cancel"]

	def test_contribute_after_cancel_fails(self, ledger, clock, campaign):
		ledger.cancel(CREATOR, campaign.id)
		clock.at(15)
		with pytest.raises(NotFound):
			ledger.contribute(BOB, campaign.id, 10)

	def test_only_creator(self, ledger, campaign):
		with pytest.raises(NotCreator):
			ledger.cancel(BOB, campaign.id)

	def test_at_start_time_is_too_late(self, ledger, clock, campaign):
		clock.at(10)
		with pytest.raises(AlreadyStarted):
			ledger.cancel(CREATOR, campaign.id)

	def test_unknown_id(self, ledger):
		with pytest.raises(NotFound):
			ledger.cancel(CREATOR, 42)


class TestContribute:
	def test_oversized_amount_rejected_before_accounting(self, ledger, clock, transfer, campaign):
		clock.at(15)
		with pytest.raises(InvalidAmount):
			ledger.contribute(BOB, campaign.id, 2 ** 64)
		assert ledger.get_campaign(campaign.id).total_contribution == 0
		assert transfer.moves == []

	def test_total_may_not_overflow(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, MAX_UNITS)
		with pytest.raises(InvalidAmount):
			ledger.contribute(CAROL, campaign.id, 1)
		assert ledger.get_campaign(campaign.id).total_contribution == MAX_UNITS

	def test_pledge_recorded_and_pulled(self, ledger, clock, transfer, campaign):
		clock.at(15)
		pledge = ledger.contribute(BOB, campaign.id, 60)
		assert pledge.amount == 60
		assert ledger.get_campaign(campaign.id).total_contribution == 60
		assert ledger.pledge_of(campaign.id, BOB) == 60
		assert transfer.moves == [("in", BOB, 60)]

	def test_pledges_accumulate(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 10)
		ledger.contribute(BOB, campaign.id, 5)
		ledger.contribute(CAROL, campaign.id, 7)
		assert ledger.pledges_for(campaign.id) == {BOB: 15, CAROL: 7}
		assert ledger.get_campaign(campaign.id).total_contribution == 22

	def test_before_start(self, ledger, clock, campaign):
		clock.at(9)
		with pytest.raises(NotStarted):
			ledger.contribute(BOB, campaign.id, 10)

	def test_after_end(self, ledger, clock, campaign):
		clock.at(21)
		with pytest.raises(Ended):
			ledger.contribute(BOB, campaign.id, 10)

	def test_window_edges_inclusive(self, ledger, clock, campaign):
		clock.at(10)
		ledger.contribute(BOB, campaign.id, 1)
		clock.at(20)
		ledger.contribute(BOB, campaign.id, 1)
		assert ledger.pledge_of(campaign.id, BOB) == 2

	def test_zero_amount(self, ledger, clock, campaign):
		clock.at(15)
		with pytest.raises(InvalidAmount):
			ledger.contribute(BOB, campaign.id, 0)

	def test_transfer_failure_leaves_no_trace(self, ledger, clock, transfer, campaign):
		clock.at(15)
		transfer.fail_with = "insufficient_allowance"
		with pytest.raises(TransferError) as exc:
			ledger.contribute(BOB, campaign.id, 60)
		assert exc.value.code == "insufficient_allowance"
		assert ledger.get_campaign(campaign.id).total_contribution == 0
		assert ledger.pledge_of(campaign.id, BOB) == 0
		assert not LedgerEvent.objects.filter(event_type="pledge").exists()


class TestWithdrawPledge:
	def test_before_start(self, ledger, clock, campaign):
		clock.at(9)
		with pytest.raises(NotStarted):
			ledger.withdraw_pledge(BOB, campaign.id, 1)

	def test_at_end_time_still_open(self, ledger, clock, transfer, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 8)
		clock.at(20)
		assert ledger.withdraw_pledge(BOB, campaign.id, 8).amount == 0
		assert transfer.moves[-1] == ("out", BOB, 8)

	def test_emits_unpledge_event(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 9)
		ledger.withdraw_pledge(BOB, campaign.id, 4)
		event = ledger.events_for(campaign.id)[-1]
		assert (event.event_type, event.principal, event.amount) == ("unpledge", BOB, 4)
		assert event.payload == {"pledge": 5, "total_contribution": 5}

	def test_oversized_amount(self, ledger, clock, campaign):
		clock.at(15)
		with pytest.raises(InvalidAmount):
			ledger.withdraw_pledge(BOB, campaign.id, MAX_UNITS + 1)

	def test_partial_withdraw(self, ledger, clock, transfer, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 50)
		pledge = ledger.withdraw_pledge(BOB, campaign.id, 20)
		assert pledge.amount == 30
		assert ledger.get_campaign(campaign.id).total_contribution == 30
		assert transfer.moves[-1] == ("out", BOB, 20)

	def test_more_than_pledged(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 5)
		with pytest.raises(InsufficientContribution):
			ledger.withdraw_pledge(BOB, campaign.id, 6)

	def test_without_pledge(self, ledger, clock, campaign):
		clock.at(15)
		with pytest.raises(InsufficientContribution):
			ledger.withdraw_pledge(CAROL, campaign.id, 1)

	def test_after_end(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 5)
		clock.at(21)
		with pytest.raises(Ended):
			ledger.withdraw_pledge(BOB, campaign.id, 5)

	def test_transfer_failure_rolls_back(self, ledger, clock, transfer, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 50)
		transfer.fail_with = "insufficient_balance"
		with pytest.raises(TransferError):
			ledger.withdraw_pledge(BOB, campaign.id, 50)
		assert ledger.pledge_of(campaign.id, BOB) == 50
		assert ledger.get_campaign(campaign.id).total_contribution == 50


class TestClaim:
	def test_success_then_double_claim(self, ledger, clock, transfer, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 150)
		clock.at(25)
		assert ledger.claim_funds(CREATOR, campaign.id) == 150
		assert ledger.get_campaign(campaign.id).claimed is True
		assert transfer.moves[-1] == ("out", CREATOR, 150)
		with pytest.raises(AlreadyClaimed):
			ledger.claim_funds(CREATOR, campaign.id)

	def test_pledges_untouched_by_claim(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 100)
		clock.at(25)
		ledger.claim_funds(CREATOR, campaign.id)
		assert ledger.pledge_of(campaign.id, BOB) == 100

	def test_only_creator(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 100)
		clock.at(25)
		with pytest.raises(NotCreator):
			ledger.claim_funds(BOB, campaign.id)

	def test_not_before_end(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 100)
		clock.at(20)
		with pytest.raises(NotEnded):
			ledger.claim_funds(CREATOR, campaign.id)

	def test_goal_not_reached(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 99)
		clock.at(25)
		with pytest.raises(GoalNotReached):
			ledger.claim_funds(CREATOR, campaign.id)

	def test_failed_payout_keeps_claimable(self, ledger, clock, transfer, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 100)
		clock.at(25)
		transfer.fail_with = "insufficient_balance"
		with pytest.raises(TransferError):
			ledger.claim_funds(CREATOR, campaign.id)
		assert ledger.get_campaign(campaign.id).claimed is False
		assert ledger.claim_funds(CREATOR, campaign.id) == 100


class TestRefund:
	def test_at_end_time_not_ended(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 60)
		clock.at(20)
		with pytest.raises(NotEnded):
			ledger.get_refund(BOB, campaign.id)

	def test_emits_refund_event(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 60)
		clock.at(25)
		ledger.get_refund(BOB, campaign.id)
		event = ledger.events_for(campaign.id)[-1]
		assert (event.event_type, event.principal, event.amount) == ("refund", BOB, 60)
		assert event.payload == {"total_contribution": 0}

	def test_refund_scenario(self, ledger, clock, transfer, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 60)
		clock.at(25)
		assert ledger.get_refund(BOB, campaign.id) == 60
		assert ledger.get_campaign(campaign.id).total_contribution == 0
		assert transfer.moves[-1] == ("out", BOB, 60)

	def test_second_refund_fails(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 60)
		clock.at(25)
		ledger.get_refund(BOB, campaign.id)
		with pytest.raises(NoContribution):
			ledger.get_refund(BOB, campaign.id)

	def test_stranger_has_nothing(self, ledger, clock, campaign):
		clock.at(25)
		with pytest.raises(NoContribution):
			ledger.get_refund(CAROL, campaign.id)

	def test_not_before_end(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 60)
		with pytest.raises(NotEnded):
			ledger.get_refund(BOB, campaign.id)

	def test_goal_reached_blocks_refund(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 100)
		clock.at(25)
		with pytest.raises(GoalReached):
			ledger.get_refund(BOB, campaign.id)

	def test_no_refund_after_claim(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 70)
		ledger.contribute(CAROL, campaign.id, 40)
		clock.at(25)
		ledger.claim_funds(CREATOR, campaign.id)
		for who in (BOB, CAROL):
			with pytest.raises(GoalReached):
				ledger.get_refund(who, campaign.id)


class TestInvariants:
	def test_total_matches_pledges_through_lifecycle(self, ledger, clock, transfer, campaign):
		clock.at(12)
		steps = [
			lambda: ledger.contribute(BOB, campaign.id, 30),
			lambda: ledger.contribute(CAROL, campaign.id, 25),
			lambda: ledger.withdraw_pledge(BOB, campaign.id, 10),
			lambda: ledger.contribute(BOB, campaign.id, 4),
			lambda: ledger.withdraw_pledge(CAROL, campaign.id, 25),
		]
		for step in steps:
			step()
			total = ledger.get_campaign(campaign.id).total_contribution
			assert total == sum_pledges(campaign.id)
			assert transfer.custody == total

		clock.at(30)
		ledger.get_refund(BOB, campaign.id)
		assert ledger.get_campaign(campaign.id).total_contribution == sum_pledges(campaign.id) == 0
		assert transfer.custody == 0

	def test_custody_report_matches(self, ledger, clock, campaign):
		clock.at(15)
		ledger.contribute(BOB, campaign.id, 40)
		report = ledger.custody_report()
		assert report == {"outstanding_units": 40, "pledged_units": 40, "custody_units": 40, "match": True}

	def test_errors_are_ledger_errors_with_codes(self, ledger, campaign):
		with pytest.raises(LedgerError) as exc:
			ledger.claim_funds(BOB, campaign.id)
		assert exc.value.code == "not_creator"
		assert exc.value.message == "not_creator"


def test_signal_sent_after_commit(ledger, clock, campaign, django_capture_on_commit_callbacks):
	received = []

	def receiver(sender, event, **kwargs):
		received.append((event.event_type, event.amount))

	campaign_event.connect(receiver)
	try:
		clock.at(15)
		with django_capture_on_commit_callbacks(execute=True):
			ledger.contribute(BOB, campaign.id, 12)
	finally:
		campaign_event.disconnect(receiver)
	assert received == [("pledge", 12)]


def test_no_signal_for_rejected_operation(ledger, clock, transfer, campaign, django_capture_on_commit_callbacks):
	clock.at(15)
	transfer.fail_with = "insufficient_balance"
	with django_capture_on_commit_callbacks() as callbacks:
		with pytest.raises(TransferError):
			ledger.contribute(BOB, campaign.id, 12)
	assert callbacks == []
