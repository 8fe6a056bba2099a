"""Caller identity for API requests.

A request names its principal in X-Principal and proves it with X-Signature:
hex HMAC-SHA256(PRINCIPAL_SIGNING_SECRET, principal + "\n" + raw body).
"""

import hmac, hashlib
from django.conf import settings


def sign(principal: str, raw_body: bytes, secret: str | None = None) -> str:
	secret = secret or settings.PRINCIPAL_SIGNING_SECRET
	msg = principal.encode("utf-8") + b"\n" + (raw_body or b"")
	return hmac.new(key=secret.encode("utf-8"), msg=msg, digestmod=hashlib.sha256).hexdigest()


def _hmac_valid(principal: str, raw_body: bytes, provided_sig: str, secret: str) -> bool:
	expected = sign(principal, raw_body, secret)
	try:
		return hmac.compare_digest(expected, provided_sig)
	except TypeError:
		return False


def authenticated_principal(request) -> str | None:
	"""
	Return the verified principal of the request, or None when missing/forged.
	"""
	principal = (request.headers.get("X-Principal") or "").strip()
	signature = request.headers.get("X-Signature") or ""
	secret = getattr(settings, "PRINCIPAL_SIGNING_SECRET", None)
	if not principal or not secret:
		return None
	if not _hmac_valid(principal, request.body or b"", signature, secret):
		return None
	return principal
