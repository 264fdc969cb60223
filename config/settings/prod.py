"""
Production settings
"""
from .base import *

DEBUG = False

# Production security settings
SECURE_SSL_REDIRECT = env.bool('SECURE_SSL_REDIRECT', default=True)
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = 'DENY'

# Production database must come from DATABASE_URL
_default_db = env.db('DATABASE_URL')
_default_db.setdefault('CONN_MAX_AGE', 60)
_default_db.setdefault('CONN_HEALTH_CHECKS', True)
DATABASES['default'] = _default_db
