"""
ASGI config for dimexpand project.

It exposes the ASGI callable as a module-level variable named ``application``.
Expansion endpoints are async views, so the service is meant to run under an ASGI server.
"""

import os
from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dimexpand.settings")

application = get_asgi_application()
