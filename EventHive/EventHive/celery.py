import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'EventHive.settings')

app = Celery('EventHive')

# All celery-related settings use the CELERY_ prefix in settings.py
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
