"""Django settings for the crowdfund campaign ledger.


The project runs a small, self-contained flow:
- Principals launch time-boxed campaigns with a goal (core)
- Contributors pledge stub tokens into ledger custody (token_stub)
- After the window: creator claims the pool, or contributors take refunds


Every ledger operation is a single database transaction.
"""

import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DEBUG", "1") in ("1", "true", "True", "yes")
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")
CSRF_TRUSTED_ORIGINS = os.getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if os.getenv("CSRF_TRUSTED_ORIGINS") else []

#######################
# HMAC secret used to verify the X-Principal header on API calls (set in env)
PRINCIPAL_SIGNING_SECRET = os.getenv("PRINCIPAL_SIGNING_SECRET", "dev-secret-change-me")

# Token stub account that holds pledged funds on the ledger's behalf
LEDGER_CUSTODY_ACCOUNT = os.getenv("LEDGER_CUSTODY_ACCOUNT", "crowdfund-ledger")

# Campaigns must end within this many days of launch
CROWDFUND_MAX_DURATION_DAYS = int(os.getenv("CROWDFUND_MAX_DURATION_DAYS", "90"))
#######################


INSTALLED_APPS = [
	"django.contrib.admin",
	"django.contrib.auth",
	"django.contrib.contenttypes",
	"django.contrib.sessions",
	"django.contrib.messages",
	"django.contrib.staticfiles",
	# local apps
	"core",
	"api",
	"token_stub",
]


MIDDLEWARE = [
	"django.middleware.security.SecurityMiddleware",
	"django.contrib.sessions.middleware.SessionMiddleware",
	"django.middleware.common.CommonMiddleware",
	"django.middleware.csrf.CsrfViewMiddleware",
	"django.contrib.auth.middleware.AuthenticationMiddleware",
	"django.contrib.messages.middleware.MessageMiddleware",
]


ROOT_URLCONF = "crowdfund.urls"
TEMPLATES = [
	{
		"BACKEND": "django.template.backends.django.DjangoTemplates",
		"DIRS": [],
		"APP_DIRS": True,
		"OPTIONS": {
			"context_processors": [
				"django.template.context_processors.debug",
				"django.template.context_processors.request",
				"django.contrib.auth.context_processors.auth",
				"django.contrib.messages.context_processors.messages",
			],
		},
	},
]


WSGI_APPLICATION = "crowdfund.wsgi.application"


DB_ENGINE = os.getenv("DB_ENGINE", "sqlite")
if DB_ENGINE == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "crowdfund"),
            "USER": os.getenv("POSTGRES_USER", "crowdfund"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", "crowdfund"),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }


LOGGING = {
	"version": 1,
	"disable_existing_loggers": False,
	"formatters": {
		"plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
	},
	"handlers": {
		"console": {"class": "logging.StreamHandler", "formatter": "plain"},
	},
	"loggers": {
		"core": {"handlers": ["console"], "level": os.getenv("LOG_LEVEL", "INFO"), "propagate": True},
		"api": {"handlers": ["console"], "level": os.getenv("LOG_LEVEL", "INFO"), "propagate": True},
	},
}


AUTH_PASSWORD_VALIDATORS = []


LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# Token uses 6 decimals; amounts inside the ledger are integer units.
TOKEN_DECIMALS = 6
