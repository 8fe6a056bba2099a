from django.urls import path
from .views import balance, transactions, mint, approve


urlpatterns = [
	path("balance/<str:address>", balance),
	path("transactions", transactions),
	path("mint", mint),
	path("approve", approve),
]
