"""Database models for the campaign ledger.


Tables:
- CampaignCounter: single row holding the last assigned campaign id
- Campaign: a time-boxed fundraising goal owned by its creator
- Pledge: what one contributor currently has at stake in one campaign
- LedgerEventType
- LedgerEvent: append-only notification log, one row per successful operation
"""

from django.db import models


class CampaignCounter(models.Model):
	"""
	Sequential id generator. Ids are never reused, even after a campaign is cancelled
	"""
	id = models.PositiveSmallIntegerField(primary_key=True, default=1, editable=False)
	count = models.PositiveBigIntegerField(default=0)


class Campaign(models.Model):
	"""
	A fundraising campaign.

	total_contribution always equals the sum of the campaign's Pledge amounts.
	claimed flips once, when the creator takes the pool.
	"""
	id = models.PositiveBigIntegerField(primary_key=True)
	creator = models.CharField(max_length=100, db_index=True)
	goal = models.PositiveBigIntegerField()
	start_at = models.DateTimeField()
	end_at = models.DateTimeField()
	total_contribution = models.PositiveBigIntegerField(default=0)
	claimed = models.BooleanField(default=False)
	launched_at = models.DateTimeField()

	def as_dict(self):
		return {
			"id": self.id,
			"creator": self.creator,
			"goal": str(self.goal),
			"start_at": self.start_at.isoformat(),
			"end_at": self.end_at.isoformat(),
			"total_contribution": str(self.total_contribution),
			"claimed": self.claimed,
		}


class Pledge(models.Model):
	"""
	Pledge ledger entry keyed by (campaign, contributor). A refunded pledge stays at 0.
	"""
	id = models.BigAutoField(primary_key=True)
	campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name="pledges")
	contributor = models.CharField(max_length=100)
	amount = models.PositiveBigIntegerField(default=0)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		unique_together = (("campaign", "contributor"),)


class LedgerEventType(models.TextChoices):
	LAUNCH = "launch", "Launch"
	CANCEL = "cancel", "Cancel"
	PLEDGE = "pledge", "Pledge"
	UNPLEDGE = "unpledge", "Unpledge"
	CLAIM = "claim", "Claim"
	REFUND = "refund", "Refund"


class LedgerEvent(models.Model):
	"""
	Notification of a committed ledger operation, for observers indexing campaign history.

	campaign_id is a plain column, not a FK: cancel deletes the campaign but its events stay.
	"""
	id = models.BigAutoField(primary_key=True)
	event_type = models.CharField(max_length=16, choices=LedgerEventType.choices)
	campaign_id = models.PositiveBigIntegerField(db_index=True)
	principal = models.CharField(max_length=100)
	amount = models.PositiveBigIntegerField(default=0)
	payload = models.JSONField(default=dict)
	occurred_at = models.DateTimeField()

	class Meta:
		indexes = [
			models.Index(fields=["campaign_id", "id"]),
		]

	def as_dict(self):
		return {
			"id": self.id,
			"event_type": self.event_type,
			"campaign_id": self.campaign_id,
			"principal": self.principal,
			"amount": str(self.amount),
			"payload": self.payload,
			"occurred_at": self.occurred_at.isoformat(),
		}
