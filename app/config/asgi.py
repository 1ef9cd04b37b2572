"""
ASGI config for the payment reconciliation service.

Uvicorn (or any ASGI server) uses this entry point. The service is plain
HTTP/JSON, so the Django ASGI handler is exposed directly.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
