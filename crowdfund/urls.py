"""URL routing for the ledger API + the local token stub.


The /api/ namespace exposes campaign operations and reads; /stub/token/ exposes
the deterministic token used by the transfer adapter. In production, the stub is
replaced by a real token provider.
"""

from django.contrib import admin
from django.urls import path, include


urlpatterns = [
	path("admin/", admin.site.urls),
	path("api/", include("api.urls")),
	path("stub/token/", include("token_stub.urls")),
]
