"""WSGI entry point for the booking API (gunicorn, uWSGI, runserver)."""

import os
from django.core.wsgi import get_wsgi_application  # type: ignore

# Deployments set DJANGO_SETTINGS_MODULE=config.settings.prod
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.dev')

application = get_wsgi_application()
