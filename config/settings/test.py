"""
Test settings: in-memory SQLite unless DATABASE_URL points elsewhere.
"""
import os

os.environ.setdefault('DATABASE_URL', 'sqlite://:memory:')

from .base import *

DEBUG = False

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

CRON_SECRET = 'test-cron-secret'
LEDGER_EDITOR_EMAILS = ['ledger@test.local']
TIME_ZONE = 'Asia/Shanghai'

LOGGING['root']['level'] = 'WARNING'
