"""Operational endpoints that move campaigns forward (launch/cancel/pledge/resolve)."""

import json, logging
from datetime import datetime, timezone as dt_timezone
from functools import wraps
from django.utils.dateparse import parse_datetime
from django.http import JsonResponse, HttpResponseBadRequest, HttpResponseForbidden
from django.views.decorators.csrf import csrf_exempt
from core.services import CampaignLedger
from core.exceptions import LedgerError, NotFound
from core.adapters.token_adapter import TransferError
from .auth import authenticated_principal

logger = logging.getLogger(__name__)


def health(request):
	return JsonResponse({"ok": True})


# --- Helpers -----------------------------------------------------------------

def get_ledger() -> CampaignLedger:
	# Real token adapter + wall clock; tests build their own ledger
	return CampaignLedger()


def _parse_timestamp(value) -> datetime:
	"""
	Accept unix seconds (int or digit string) or ISO-8601. Naive values are UTC.
	"""
	if isinstance(value, bool) or value is None:
		raise ValueError("timestamp required")
	if isinstance(value, (int, float)) or (isinstance(value, str) and value.strip().isdigit()):
		try:
			return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)
		except (OverflowError, OSError) as e:
			raise ValueError(f"timestamp out of range: {value}") from e
	parsed = parse_datetime(str(value).replace("Z", "+00:00"))
	if parsed is None:
		raise ValueError(f"bad timestamp: {value}")
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=dt_timezone.utc)
	return parsed


def _parse_amount(body: dict, key: str) -> int:
	value = body.get(key)
	if value is None or isinstance(value, bool):
		raise ValueError(f"{key} required")
	return int(str(value))


def ledger_operation(view):
	"""
	POST-only, signed-principal-only. Maps ledger/transfer rejections to JSON errors.
	"""
	@csrf_exempt
	@wraps(view)
	def wrapper(request, *args, **kwargs):
		if request.method != "POST":
			return HttpResponseBadRequest("POST only")
		caller = authenticated_principal(request)
		if caller is None:
			logger.warning("unsigned or forged request to %s", request.path)
			return HttpResponseForbidden("Bad signature")
		try:
			body = json.loads((request.body or b"{}").decode("utf-8"))
		except ValueError:
			return HttpResponseBadRequest("Invalid JSON")
		try:
			return view(request, caller, body, *args, **kwargs)
		except NotFound as e:
			return JsonResponse({"error": e.code, "detail": e.detail}, status=404)
		except LedgerError as e:
			return JsonResponse({"error": e.code, "detail": e.detail}, status=400)
		except TransferError as e:
			return JsonResponse({"error": e.code, "detail": e.detail}, status=402)
		except (KeyError, TypeError, ValueError, OverflowError) as e:
			return HttpResponseBadRequest(f"Bad request: {e}")
	return wrapper


# --- Operations --------------------------------------------------------------

@ledger_operation
def launch(request, caller, body):
	"""
	POST: {"goal": units, "start_at": ts, "end_at": ts} → new campaign
	"""
	campaign = get_ledger().launch(
		caller,
		goal=_parse_amount(body, "goal"),
		start_at=_parse_timestamp(body.get("start_at")),
		end_at=_parse_timestamp(body.get("end_at")),
	)
	return JsonResponse(campaign.as_dict(), status=201)


@ledger_operation
def cancel(request, caller, body, campaign_id: int):
	"""
	POST: Creator removes a campaign that has not started yet
	"""
	get_ledger().cancel(caller, campaign_id)
	return JsonResponse({"ok": True, "campaign_id": campaign_id})


@ledger_operation
def contribute(request, caller, body, campaign_id: int):
	"""
	POST: {"amount": units} → pledge pulled from caller into custody
	"""
	pledge = get_ledger().contribute(caller, campaign_id, _parse_amount(body, "amount"))
	return JsonResponse({"campaign_id": campaign_id, "contributor": caller, "pledge": str(pledge.amount)}, status=201)


@ledger_operation
def withdraw(request, caller, body, campaign_id: int):
	"""
	POST: {"amount": units} → part of caller's pledge returned while the campaign runs
	"""
	pledge = get_ledger().withdraw_pledge(caller, campaign_id, _parse_amount(body, "amount"))
	return JsonResponse({"campaign_id": campaign_id, "contributor": caller, "pledge": str(pledge.amount)})


@ledger_operation
def claim(request, caller, body, campaign_id: int):
	"""
	POST: Creator takes the pool after a successful campaign
	"""
	paid = get_ledger().claim_funds(caller, campaign_id)
	return JsonResponse({"campaign_id": campaign_id, "paid": str(paid)})


@ledger_operation
def refund(request, caller, body, campaign_id: int):
	"""
	POST: Contributor takes back their pledge after a failed campaign
	"""
	paid = get_ledger().get_refund(caller, campaign_id)
	return JsonResponse({"campaign_id": campaign_id, "refunded": str(paid)})
