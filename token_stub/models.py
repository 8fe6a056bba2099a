"""Deterministic in-process fungible token.

Stores per-address balances, owner->spender allowances and an append-only tx log.
Used to simulate pledges moving in and out of ledger custody without network calls.
"""

import uuid
from django.db import models
from django.utils.timezone import now


class TokenStubAccount(models.Model):
	"""
	Token balance of a single address (a principal or the ledger custody account)
	"""
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	address = models.CharField(max_length=100, unique=True)
	balance_units = models.BigIntegerField(default=0)


class TokenStubAllowance(models.Model):
	"""
	How many units `spender` may move out of `owner` via transfer_from
	"""
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	owner = models.CharField(max_length=100)
	spender = models.CharField(max_length=100)
	amount_units = models.BigIntegerField(default=0)

	class Meta:
		unique_together = (("owner", "spender"),)


def gen_token_tx_id():
	# Named function = migration-friendly
	return f"TT-{uuid.uuid4().hex[:8]}"


class TokenStubTx(models.Model):
	"""
	Append-only list of token movements (mint/transfer) with unique tx_id
	"""
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	tx_id = models.CharField(max_length=100, unique=True, default=gen_token_tx_id)
	kind = models.CharField(max_length=16)  # 'mint' | 'transfer'
	sender = models.CharField(max_length=100, blank=True)
	recipient = models.CharField(max_length=100)
	amount_units = models.BigIntegerField()
	memo = models.TextField(blank=True)
	occurred_at = models.DateTimeField(default=now)
