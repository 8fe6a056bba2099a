"""Ledger limits shared across the project.


- TOKEN_DECIMALS: token granularity; ledger amounts are always integer units.
- MAX_CAMPAIGN_DURATION bounds how far after launch a campaign may end.
"""

from datetime import timedelta
from django.conf import settings

TOKEN_DECIMALS = getattr(settings, "TOKEN_DECIMALS", 6)

MAX_CAMPAIGN_DURATION = timedelta(days=getattr(settings, "CROWDFUND_MAX_DURATION_DAYS", 90))

# Largest amount a PositiveBigIntegerField column holds
MAX_UNITS = 2 ** 63 - 1
