"""Signal sent once per committed ledger operation.

Receivers get `event` (the saved LedgerEvent). It is dispatched from
transaction.on_commit, so rolled-back operations never notify anyone.
"""

from django.dispatch import Signal

campaign_event = Signal()
