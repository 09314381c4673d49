"""
WSGI config for the quickgrab project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'quickgrab.settings')

application = get_wsgi_application()
