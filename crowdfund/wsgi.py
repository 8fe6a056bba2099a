"""WSGI entrypoint for the crowdfund ledger."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "crowdfund.settings")

application = get_wsgi_application()
