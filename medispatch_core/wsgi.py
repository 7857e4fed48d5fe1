"""
WSGI config for MediSpatch.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'medispatch_core.settings')

application = get_wsgi_application()
