"""Read-only endpoints to inspect ledger state (campaigns, pledges, events, custody)."""

from django.http import JsonResponse
from core.constants import TOKEN_DECIMALS
from core.exceptions import NotFound
from core.models import Campaign, LedgerEvent
from .views_ops import get_ledger


def counter(request):
	"""
	GET: Last assigned campaign id
	"""
	return JsonResponse({"count": get_ledger().next_id_counter()})


def campaign_detail(request, campaign_id: int):
	"""
	GET: Full campaign record
	"""
	try:
		campaign = get_ledger().get_campaign(campaign_id)
	except NotFound as e:
		return JsonResponse({"error": e.code, "detail": e.detail}, status=404)
	return JsonResponse(campaign.as_dict())


def pledge(request, campaign_id: int, contributor: str):
	"""
	GET: What `contributor` currently has at stake in the campaign (0 when nothing, 404 for unknown campaign)
	"""
	ledger = get_ledger()
	try:
		ledger.get_campaign(campaign_id)
	except NotFound as e:
		return JsonResponse({"error": e.code, "detail": e.detail}, status=404)
	amount = ledger.pledge_of(campaign_id, contributor)
	return JsonResponse({"campaign_id": campaign_id, "contributor": contributor, "amount": str(amount)})


def campaign_events(request, campaign_id: int):
	"""
	GET: Notification history of one campaign, oldest first (kept after cancel)
	"""
	data = [e.as_dict() for e in get_ledger().events_for(campaign_id)]
	return JsonResponse(data, safe=False)


def debug_summary(request):
	ledger = get_ledger()
	report = ledger.custody_report()

	# Latest events for quick context
	latest = [e.as_dict() for e in LedgerEvent.objects.order_by("-id")[:10]]

	return JsonResponse({
		"campaigns": {
			"count": ledger.next_id_counter(),
			"live": Campaign.objects.count(),
			"claimed": Campaign.objects.filter(claimed=True).count(),
		},
		"token_decimals": TOKEN_DECIMALS,
		"custody": {k: (str(v) if isinstance(v, int) and not isinstance(v, bool) else v) for k, v in report.items()},
		"events_latest": latest,
		"notes": "outstanding_units should equal custody_units when everything is consistent.",
	})
