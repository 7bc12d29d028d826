"""
Settings del proyecto ALUMAC.

Todo lo que cambia entre entornos se lee de variables de entorno
(opcionalmente desde un archivo .env en la raíz del proyecto).
"""
import os
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

from alumac.logging import construir_logging

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def _env_bool(nombre: str, defecto: bool = False) -> bool:
    valor = os.getenv(nombre)
    if valor is None:
        return defecto
    return valor.strip().lower() in {"1", "true", "yes", "si", "sí"}


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "alumac-dev-insecure-key")
DEBUG = _env_bool("DJANGO_DEBUG", True)
ALLOWED_HOSTS = [h.strip() for h in os.getenv("DJANGO_ALLOWED_HOSTS", "*").split(",") if h.strip()]


INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "inventario.apps.InventarioConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "alumac.urls"

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

WSGI_APPLICATION = "alumac.wsgi.application"


# Base de datos: PostgreSQL si hay POSTGRES_DB, si no SQLite local.
# lock_timeout acota la espera por el bloqueo de fila de un material.
ALUMAC_LOCK_TIMEOUT_MS = int(os.getenv("ALUMAC_LOCK_TIMEOUT_MS", "5000"))

if os.getenv("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB"),
            "USER": os.getenv("POSTGRES_USER", "postgres"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", ""),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
            "OPTIONS": {
                "options": f"-c lock_timeout={ALUMAC_LOCK_TIMEOUT_MS}",
            },
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "es-ar"
TIME_ZONE = "America/Argentina/Buenos_Aires"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"


REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_PAGINATION_CLASS": "inventario.pagination.PaginacionEstandar",
    "PAGE_SIZE": 20,
    "EXCEPTION_HANDLER": "inventario.exceptions.manejador_excepciones",
}


# Parámetros del inventario
ALUMAC_MOVIMIENTOS = {
    "LIMITE_DEFECTO": int(os.getenv("ALUMAC_MOVIMIENTOS_LIMITE_DEFECTO", "20")),
    "LIMITE_MAXIMO": int(os.getenv("ALUMAC_MOVIMIENTOS_LIMITE_MAXIMO", "100")),
}

# Un material está "bajo" cuando su stock no supera stock_minimo * factor.
ALUMAC_FACTOR_STOCK_BAJO = Decimal(os.getenv("ALUMAC_FACTOR_STOCK_BAJO", "1.5"))


LOGGING = construir_logging(
    nivel=os.getenv("ALUMAC_LOG_LEVEL", "INFO").upper(),
    json=_env_bool("ALUMAC_LOG_JSON", False),
)
