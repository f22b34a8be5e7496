"""
WSGI config for the marketplace project.

gunicorn loads ``application`` from here (see gunicorn.conf.py).
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "marketplace_project.settings")

application = get_wsgi_application()
