"""
ASGI config for the Ayursutra project.

HTTP only; the API has no WebSocket surface.
"""
import os

from django.core.asgi import get_asgi_application  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ayursutra.settings")

application = get_asgi_application()
