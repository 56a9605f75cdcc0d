"""
Test Django settings for RTE_Project
Runs against a local sqlite database so the suites need no services
"""

from .base import *

ENVIRONMENT = 'test'
DEBUG = False

SECRET_KEY = 'test-key-for-development-only-not-secure'
ALLOWED_HOSTS = ['testserver', 'localhost', '127.0.0.1']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'test_db.sqlite3',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

# Timer threads are driven by hand in the suites
SCORM_AUTOSAVE_INTERVAL = 0

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'console': {
            'level': 'WARNING',
            'class': 'logging.StreamHandler',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': True,
        },
        'scorm': {
            'handlers': ['console'],
            'level': 'CRITICAL',
            'propagate': False,
        },
        'api': {
            'handlers': ['console'],
            'level': 'CRITICAL',
            'propagate': False,
        },
    },
}
