"""
WSGI config for EventHive project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'EventHive.settings')

application = get_wsgi_application()
