"""
WSGI config for the payments service.

Gunicorn serves the application through the ``application`` callable below;
Celery workers do not import this module.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
