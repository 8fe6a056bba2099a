"""HTTP endpoints for the token stub (optional to call directly).

These mirror what a real token provider might expose (balance, tx log, mint, approve).
Writes go through TokenAdapter so the HTTP surface and the ledger share one code path.
"""

import json
from django.http import JsonResponse, HttpResponseBadRequest
from django.views.decorators.csrf import csrf_exempt
from core.adapters.token_adapter import TokenAdapter
from core.constants import MAX_UNITS
from .models import TokenStubTx


def _units(body: dict, key: str = "amount_units") -> int:
	value = body.get(key, 0)
	if isinstance(value, bool):
		raise ValueError(f"{key} must be an integer")
	units = int(str(value))
	if units < 0 or units > MAX_UNITS:
		raise ValueError(f"{key} out of range")
	return units


def balance(request, address: str):
	"""
	GET: Current token balance of an address
	"""
	return JsonResponse({"address": address, "balance_units": str(TokenAdapter.balance(address))})


def transactions(request):
	"""
	GET: Chronological token movements, optionally filtered by ?address=
	"""
	qs = TokenStubTx.objects.order_by("occurred_at")
	address = request.GET.get("address")
	if address:
		qs = qs.filter(sender=address) | qs.filter(recipient=address)
	data = [
		{
			"tx_id": tx.tx_id,
			"kind": tx.kind,
			"sender": tx.sender,
			"recipient": tx.recipient,
			"amount_units": str(tx.amount_units),
			"memo": tx.memo,
			"occurred_at": tx.occurred_at.isoformat().replace("+00:00", "Z"),
		}
		for tx in qs
	]
	return JsonResponse(data, safe=False)


@csrf_exempt
def mint(request):
	"""
	POST: Credit `to` with amount_units out of thin air (faucet)
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = json.loads(request.body or b"{}")
		amount_units = _units(body)
	except ValueError as e:
		return HttpResponseBadRequest(f"Bad request: {e}")
	to = body.get("to")
	if not to or amount_units <= 0:
		return HttpResponseBadRequest("to and positive amount_units required")
	if TokenAdapter.balance(to) > MAX_UNITS - amount_units:
		return HttpResponseBadRequest("balance would overflow")
	tx_id = TokenAdapter.mint(to, amount_units, memo=body.get("memo", "faucet"))
	return JsonResponse({"tx_id": tx_id}, status=201)


@csrf_exempt
def approve(request):
	"""
	POST: Set the allowance owner -> spender to amount_units
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = json.loads(request.body or b"{}")
		amount_units = _units(body)
	except ValueError as e:
		return HttpResponseBadRequest(f"Bad request: {e}")
	owner = body.get("owner")
	spender = body.get("spender")
	if not owner or not spender:
		return HttpResponseBadRequest("owner and spender required")
	allowed = TokenAdapter.approve(owner, spender, amount_units)
	return JsonResponse({"owner": owner, "spender": spender, "amount_units": str(allowed)})
