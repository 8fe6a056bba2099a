"""Demo helpers: fund a principal with stub tokens and approve the ledger to pull them."""

import json
from django.http import JsonResponse, HttpResponseBadRequest
from django.views.decorators.csrf import csrf_exempt
from core.adapters.token_adapter import TokenAdapter
from core.constants import MAX_UNITS


@csrf_exempt
def faucet(request):
	"""
	POST: {"address": ..., "amount_units": ...} → mint stub tokens to address
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	body = json.loads(request.body or b"{}")
	address = body.get("address")
	amount_units = int(body.get("amount_units", 0))
	if not address or amount_units <= 0 or amount_units > MAX_UNITS - TokenAdapter.balance(address or ""):
		return HttpResponseBadRequest("address and in-range positive amount_units required")
	tx_id = TokenAdapter.mint(address, amount_units)
	return JsonResponse({"tx_id": tx_id, "balance_units": str(TokenAdapter.balance(address))}, status=201)


@csrf_exempt
def approve(request):
	"""
	POST: {"address": ..., "amount_units": ...} → let the ledger custody account pull that much
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	body = json.loads(request.body or b"{}")
	address = body.get("address")
	if not address:
		return HttpResponseBadRequest("address required")
	amount_units = int(body.get("amount_units", 0))
	if amount_units < 0 or amount_units > MAX_UNITS:
		return HttpResponseBadRequest("amount_units out of range")
	adapter = TokenAdapter()
	allowed = TokenAdapter.approve(address, adapter.custody_account, amount_units)
	return JsonResponse({"owner": address, "spender": adapter.custody_account, "amount_units": str(allowed)})
