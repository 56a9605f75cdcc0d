"""
Production Environment Settings for RTE_Project
Extends base settings with production-specific configurations
"""

from .base import *
from core.env_loader import get_env, get_list_env, validate_environment

ENVIRONMENT = 'production'
DEBUG = False

validate_environment()

PRIMARY_DOMAIN = get_env('PRIMARY_DOMAIN', 'localhost')

ALLOWED_HOSTS = [PRIMARY_DOMAIN, 'localhost', '127.0.0.1']
ALLOWED_HOSTS.extend(get_list_env('ADDITIONAL_ALLOWED_HOSTS', default=[]))

SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True

SECURE_SSL_REDIRECT = True
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

DATABASES['default']['OPTIONS'].update({
    'sslmode': get_env('DB_SSLMODE', 'prefer'),
    'application_name': 'RTE_Production',
})

STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage',
    },
}
