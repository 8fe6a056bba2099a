"""Adapter over the local token stub

In production, this would call a real fungible token (transferFrom/transfer) and wait
for finality. Here we mutate the stub's tables so balances and receipts are
deterministic in tests.
"""

import logging
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from token_stub.models import TokenStubAccount, TokenStubAllowance, TokenStubTx

logger = logging.getLogger(__name__)


class TransferError(ValidationError):
	"""
	The token refused a movement. Nothing was transferred.
	"""
	def __init__(self, code: str, detail: str = ""):
		self.detail = detail or code
		super().__init__(code, code=code)

	def __str__(self):
		return f"{self.code}: {self.detail}"


class TokenAdapter:
	"""
	Value transfer service for the ledger: move_in pulls a pledge into custody,
	move_out pays out of custody. Both succeed fully or raise TransferError.
	"""

	provider_name = "stub-token"

	def __init__(self, custody_account: str | None = None):
		self.custody_account = custody_account or settings.LEDGER_CUSTODY_ACCOUNT

	def move_in(self, sender: str, amount_units: int) -> str:
		"""
		Pull amount_units from sender into custody using the allowance sender granted us.
		"""
		return TokenAdapter.transfer_from(
			owner=sender, spender=self.custody_account, destination=self.custody_account,
			amount_units=amount_units, memo="pledge",
		)

	def move_out(self, recipient: str, amount_units: int) -> str:
		"""
		Pay amount_units out of custody to recipient.
		"""
		return TokenAdapter.transfer(self.custody_account, recipient, amount_units, memo="payout")

	def custody_balance(self) -> int:
		return TokenAdapter.balance(self.custody_account)

	@staticmethod
	def ensure_account(address: str):
		acct, _ = TokenStubAccount.objects.get_or_create(address=address, defaults={"balance_units": 0})
		return acct

	@staticmethod
	def balance(address: str) -> int:
		acct = TokenStubAccount.objects.filter(address=address).first()
		return int(acct.balance_units) if acct else 0

	@staticmethod
	def allowance(owner: str, spender: str) -> int:
		row = TokenStubAllowance.objects.filter(owner=owner, spender=spender).first()
		return int(row.amount_units) if row else 0

	@staticmethod
	@transaction.atomic
	def mint(address: str, amount_units: int, memo: str = "faucet") -> str:
		"""
		Create amount_units for address (demo faucet).
		"""
		acct = TokenAdapter.ensure_account(address)
		acct = TokenStubAccount.objects.select_for_update().get(pk=acct.pk)
		tx = TokenStubTx.objects.create(kind="mint", recipient=address, amount_units=int(amount_units), memo=memo)
		acct.balance_units += int(amount_units)
		acct.save(update_fields=["balance_units"])
		return tx.tx_id

	@staticmethod
	@transaction.atomic
	def approve(owner: str, spender: str, amount_units: int) -> int:
		"""
		Overwrite the allowance owner -> spender.
		"""
		row, _ = TokenStubAllowance.objects.update_or_create(
			owner=owner, spender=spender, defaults={"amount_units": int(amount_units)},
		)
		return int(row.amount_units)

	@staticmethod
	@transaction.atomic
	def transfer(source: str, destination: str, amount_units: int, memo: str = "") -> str:
		"""
		Move amount_units from source to destination. Raises TransferError on insufficient balance.
		"""
		amount_units = int(amount_units)
		if amount_units <= 0:
			raise TransferError("invalid_amount", "amount must be > 0")

		src = TokenAdapter.ensure_account(source)
		src = TokenStubAccount.objects.select_for_update().get(pk=src.pk)
		if src.balance_units < amount_units:
			logger.warning("transfer rejected: %s has %s, needs %s", source, src.balance_units, amount_units)
			raise TransferError("insufficient_balance", f"{source} holds {src.balance_units} units")

		tx = TokenStubTx.objects.create(
			kind="transfer", sender=source, recipient=destination, amount_units=amount_units, memo=memo,
		)
		if source == destination:
			return tx.tx_id

		dst = TokenAdapter.ensure_account(destination)
		dst = TokenStubAccount.objects.select_for_update().get(pk=dst.pk)
		src.balance_units -= amount_units
		dst.balance_units += amount_units
		src.save(update_fields=["balance_units"])
		dst.save(update_fields=["balance_units"])
		return tx.tx_id

	@staticmethod
	@transaction.atomic
	def transfer_from(owner: str, spender: str, destination: str, amount_units: int, memo: str = "") -> str:
		"""
		Spend owner's allowance granted to spender. Allowance and balance are checked before anything moves.
		"""
		amount_units = int(amount_units)
		row = TokenStubAllowance.objects.select_for_update().filter(owner=owner, spender=spender).first()
		if row is None or row.amount_units < amount_units:
			have = row.amount_units if row else 0
			logger.warning("transfer_from rejected: %s allowed %s only %s, needs %s", owner, spender, have, amount_units)
			raise TransferError("insufficient_allowance", f"{owner} approved {have} units for {spender}")

		tx_id = TokenAdapter.transfer(owner, destination, amount_units, memo=memo)

		row.amount_units -= amount_units
		row.save(update_fields=["amount_units"])
		return tx_id
