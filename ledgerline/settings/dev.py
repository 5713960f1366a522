from .base import *

DEBUG = True

ALLOWED_HOSTS = ["127.0.0.1", "localhost"]

# Cookies non sécurisés en dev
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

# DRF renderers plus larges en dev (browsable API)
REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = (
    "rest_framework.renderers.JSONRenderer",
    "rest_framework.renderers.BrowsableAPIRenderer",
)

# Cache mémoire local si pas de Redis en dev
if not env("CACHE_URL") and not env("REDIS_URL"):
    CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}

# Sans worker Celery: hooks d'usage et webhooks exécutés en ligne
CELERY_TASK_ALWAYS_EAGER = env("CELERY_EAGER", "0") == "1"

# Clés Stripe de test (sk_test_...) ; les callbacks passent par `stripe listen`
STRIPE_WEBHOOK_SECRET = env("STRIPE_WEBHOOK_SECRET", "whsec_dev")

LOGGING["handlers"]["console"]["formatter"] = "simple"
