"""Public API surface for the campaign ledger.

- /campaigns/* POST endpoints: launch, cancel, contribute, withdraw, claim, refund
  (caller identity from a signed X-Principal header)
- /campaigns/<id>, /pledges, /events, /counter: read-only views for verification
- /demo/* endpoints: convenience helpers to fund principals with stub tokens
"""

from django.urls import path
from .views_demo import faucet, approve
from .views_ops import health, launch, cancel, contribute, withdraw, claim, refund
from .views_read import counter, campaign_detail, pledge, campaign_events, debug_summary


urlpatterns = [
	path("health", health),
	path("demo/faucet", faucet),
	path("demo/approve", approve),
	path("campaigns", launch),
	path("campaigns/<int:campaign_id>", campaign_detail),
	path("campaigns/<int:campaign_id>/cancel", cancel),
	path("campaigns/<int:campaign_id>/contribute", contribute),
	path("campaigns/<int:campaign_id>/withdraw", withdraw),
	path("campaigns/<int:campaign_id>/claim", claim),
	path("campaigns/<int:campaign_id>/refund", refund),
	path("campaigns/<int:campaign_id>/events", campaign_events),
	path("campaigns/<int:campaign_id>/pledges/<str:contributor>", pledge),
	path("counter", counter),
	path("debug/summary", debug_summary),
]
