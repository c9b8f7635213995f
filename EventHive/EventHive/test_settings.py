"""
Settings used by the pytest suite
"""
import os

from .settings import *  # noqa: F401,F403

SECRET_KEY = 'test-secret-key'
DEBUG = False

# TEST_USE_POSTGRES=1 keeps the PostgreSQL database so row-lock tests run
if os.environ.get('TEST_USE_POSTGRES') != '1':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': ':memory:',
        }
    }

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'eventhive-tests',
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

PAYMENT_GATEWAY_CLASS = 'tests.fakes.FakeGateway'
RAZORPAY_KEY_ID = 'rzp_test_key'
RAZORPAY_KEY_SECRET = 'rzp_test_secret'
TICKET_VERIFY_BASE_URL = 'https://tickets.example.test'
