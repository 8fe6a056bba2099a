"""Campaign ledger: the accounting state machine behind launch / pledge / resolve.

Each operation runs in one @transaction.atomic block:
validate against current rows and the clock → mutate → record LedgerEvent → move tokens.
The token movement is the last step that can fail; when it raises, the whole block
rolls back, so accounting and custody never disagree.
"""

import logging
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from .models import Campaign, CampaignCounter, LedgerEvent, LedgerEventType, Pledge
from .constants import MAX_CAMPAIGN_DURATION, MAX_UNITS
from .exceptions import (
	AlreadyClaimed, AlreadyStarted, Ended, GoalNotReached, GoalReached, InsufficientContribution,
	InvalidAmount, InvalidGoal, InvalidWindow, NoContribution, NotCreator, NotEnded, NotFound, NotStarted,
)
from .signals import campaign_event
from .adapters.token_adapter import TokenAdapter

logger = logging.getLogger(__name__)


class CampaignLedger:
	"""
	Owns campaigns, pledges and the id counter.

	transfer: value transfer service with move_in(sender, amount) / move_out(recipient, amount)
	clock: zero-arg callable returning an aware datetime
	"""

	def __init__(self, transfer=None, clock=None):
		self.transfer = transfer if transfer is not None else TokenAdapter()
		self.clock = clock or timezone.now

	# --- Reads -------------------------------------------------------------------

	def next_id_counter(self) -> int:
		"""
		Last assigned campaign id (0 before the first launch).
		"""
		counter = CampaignCounter.objects.filter(pk=1).first()
		return counter.count if counter else 0

	def get_campaign(self, campaign_id: int) -> Campaign:
		try:
			return Campaign.objects.get(pk=campaign_id)
		except Campaign.DoesNotExist:
			raise NotFound(f"campaign {campaign_id} does not exist")

	def pledge_of(self, campaign_id: int, contributor: str) -> int:
		pledge = Pledge.objects.filter(campaign_id=campaign_id, contributor=contributor).first()
		return pledge.amount if pledge else 0

	def pledges_for(self, campaign_id: int) -> dict:
		rows = Pledge.objects.filter(campaign_id=campaign_id).order_by("contributor")
		return {p.contributor: p.amount for p in rows}

	def events_for(self, campaign_id: int):
		return list(LedgerEvent.objects.filter(campaign_id=campaign_id).order_by("id"))

	def custody_report(self) -> dict:
		"""
		Compare what the ledger owes (unclaimed totals) with what custody actually holds.
		"""
		outstanding = Campaign.objects.filter(claimed=False).aggregate(s=Sum("total_contribution"))["s"] or 0
		pledged = Pledge.objects.filter(campaign__claimed=False).aggregate(s=Sum("amount"))["s"] or 0
		custody_balance = getattr(self.transfer, "custody_balance", None)
		custody = custody_balance() if custody_balance else None
		return {
			"outstanding_units": outstanding,
			"pledged_units": pledged,
			"custody_units": custody,
			"match": outstanding == pledged and (custody is None or custody == outstanding),
		}

	# --- Operations --------------------------------------------------------------

	@transaction.atomic
	def launch(self, caller: str, goal: int, start_at, end_at) -> Campaign:
		now = self.clock()
		if start_at < now:
			raise InvalidWindow("start_at is in the past")
		if end_at < start_at:
			raise InvalidWindow("end_at is before start_at")
		if end_at > now + MAX_CAMPAIGN_DURATION:
			raise InvalidWindow(f"end_at is more than {MAX_CAMPAIGN_DURATION.days} days away")
		if goal <= 0:
			raise InvalidGoal()
		if goal > MAX_UNITS:
			raise InvalidGoal(f"goal must be <= {MAX_UNITS}")

		counter, _ = CampaignCounter.objects.select_for_update().get_or_create(pk=1)
		counter.count += 1
		counter.save(update_fields=["count"])

		campaign = Campaign.objects.create(
			id=counter.count,
			creator=caller,
			goal=goal,
			start_at=start_at,
			end_at=end_at,
			launched_at=now,
		)
		self._record(LedgerEventType.LAUNCH, campaign.id, caller, goal, now, {
			"creator": caller,
			"goal": goal,
			"start_at": start_at.isoformat(),
			"end_at": end_at.isoformat(),
		})
		return campaign

	@transaction.atomic
	def cancel(self, caller: str, campaign_id: int) -> None:
		campaign = self._lock_campaign(campaign_id)
		now = self.clock()
		if campaign.creator != caller:
			raise NotCreator()
		if now >= campaign.start_at:
			raise AlreadyStarted()

		campaign.delete()
		self._record(LedgerEventType.CANCEL, campaign_id, caller, 0, now, {})

	@transaction.atomic
	def contribute(self, caller: str, campaign_id: int, amount: int) -> Pledge:
		if amount <= 0:
			raise InvalidAmount()
		campaign = self._lock_campaign(campaign_id)
		now = self.clock()
		self._check_open(campaign, now)
		if amount > MAX_UNITS - campaign.total_contribution:
			raise InvalidAmount("campaign total would overflow")

		campaign.total_contribution += amount
		campaign.save(update_fields=["total_contribution"])
		pledge, _ = Pledge.objects.select_for_update().get_or_create(campaign=campaign, contributor=caller)
		pledge.amount += amount
		pledge.save(update_fields=["amount", "updated_at"])

		self._record(LedgerEventType.PLEDGE, campaign_id, caller, amount, now, {
			"pledge": pledge.amount,
			"total_contribution": campaign.total_contribution,
		})
		self.transfer.move_in(caller, amount)
		return pledge

	@transaction.atomic
	def withdraw_pledge(self, caller: str, campaign_id: int, amount: int) -> Pledge:
		if amount <= 0:
			raise InvalidAmount()
		if amount > MAX_UNITS:
			raise InvalidAmount(f"amount must be <= {MAX_UNITS}")
		campaign = self._lock_campaign(campaign_id)
		now = self.clock()
		self._check_open(campaign, now)

		pledge = Pledge.objects.select_for_update().filter(campaign=campaign, contributor=caller).first()
		have = pledge.amount if pledge else 0
		if have < amount:
			raise InsufficientContribution(f"pledged {have}, asked for {amount}")

		pledge.amount -= amount
		pledge.save(update_fields=["amount", "updated_at"])
		campaign.total_contribution -= amount
		campaign.save(update_fields=["total_contribution"])

		self._record(LedgerEventType.UNPLEDGE, campaign_id, caller, amount, now, {
			"pledge": pledge.amount,
			"total_contribution": campaign.total_contribution,
		})
		self.transfer.move_out(caller, amount)
		return pledge

	@transaction.atomic
	def claim_funds(self, caller: str, campaign_id: int) -> int:
		"""
		Success path: creator takes the whole pool once the window closed with the goal met.
		"""
		campaign = self._lock_campaign(campaign_id)
		now = self.clock()
		if campaign.creator != caller:
			raise NotCreator()
		if now <= campaign.end_at:
			raise NotEnded()
		if campaign.total_contribution < campaign.goal:
			raise GoalNotReached(f"raised {campaign.total_contribution} of {campaign.goal}")
		if campaign.claimed:
			raise AlreadyClaimed()

		amount = campaign.total_contribution
		campaign.claimed = True
		campaign.save(update_fields=["claimed"])

		self._record(LedgerEventType.CLAIM, campaign_id, caller, amount, now, {"goal": campaign.goal})
		self.transfer.move_out(caller, amount)
		return amount

	@transaction.atomic
	def get_refund(self, caller: str, campaign_id: int) -> int:
		"""
		Failure path: each contributor takes back their own pledge, once.

		A claimed campaign always has total_contribution >= goal, so the GoalReached
		check also closes refunds after a claim.
		"""
		campaign = self._lock_campaign(campaign_id)
		now = self.clock()
		if now <= campaign.end_at:
			raise NotEnded()
		if campaign.total_contribution >= campaign.goal:
			raise GoalReached()

		pledge = Pledge.objects.select_for_update().filter(campaign=campaign, contributor=caller).first()
		if pledge is None or pledge.amount == 0:
			raise NoContribution()

		amount = pledge.amount
		pledge.amount = 0
		pledge.save(update_fields=["amount", "updated_at"])
		campaign.total_contribution -= amount
		campaign.save(update_fields=["total_contribution"])

		self._record(LedgerEventType.REFUND, campaign_id, caller, amount, now, {
			"total_contribution": campaign.total_contribution,
		})
		self.transfer.move_out(caller, amount)
		return amount

	# --- Helpers -----------------------------------------------------------------

	def _lock_campaign(self, campaign_id: int) -> Campaign:
		try:
			return Campaign.objects.select_for_update().get(pk=campaign_id)
		except Campaign.DoesNotExist:
			raise NotFound(f"campaign {campaign_id} does not exist")

	@staticmethod
	def _check_open(campaign: Campaign, now) -> None:
		if now < campaign.start_at:
			raise NotStarted()
		if now > campaign.end_at:
			raise Ended()

	@staticmethod
	def _record(event_type, campaign_id, principal, amount, now, payload) -> LedgerEvent:
		event = LedgerEvent.objects.create(
			event_type=event_type,
			campaign_id=campaign_id,
			principal=principal,
			amount=amount,
			payload=payload,
			occurred_at=now,
		)
		# Observers only hear about operations that actually committed
		transaction.on_commit(lambda: _notify(event))
		return event


def _notify(event: LedgerEvent) -> None:
	logger.info(
		"%s campaign=%s principal=%s amount=%s", event.event_type, event.campaign_id, event.principal, event.amount,
	)
	campaign_event.send(sender=CampaignLedger, event=event)
