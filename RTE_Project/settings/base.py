"""
Base Django settings for RTE_Project.
Contains all common settings shared across environments.
"""

import os
from pathlib import Path
from django.core.management.utils import get_random_secret_key

# Load environment variables from unified .env file
from core.env_loader import get_env, get_bool_env, get_int_env, get_float_env, get_list_env

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent

ENVIRONMENT = get_env('DJANGO_ENV', 'development')

# ==============================================
# LOGGING CONFIGURATION
# ==============================================

LOG_DIR = get_env('LOGS_DIR', os.path.join(BASE_DIR, 'logs'))
os.makedirs(LOG_DIR, exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {asctime} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'file': {
            'level': 'INFO',
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': os.path.join(LOG_DIR, 'rte.log'),
            'maxBytes': 50 * 1024 * 1024,  # 50MB
            'backupCount': 3,
            'formatter': 'verbose',
        },
        'error_file': {
            'level': 'ERROR',
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': os.path.join(LOG_DIR, 'rte_errors.log'),
            'maxBytes': 10 * 1024 * 1024,  # 10MB
            'backupCount': 5,
            'formatter': 'verbose',
        },
        'console': {
            'level': 'WARNING',
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['file', 'error_file'],
            'level': 'WARNING',
            'propagate': False,
        },
        'django.db.backends': {
            'handlers': ['error_file'],
            'level': 'ERROR',
            'propagate': False,
        },
        'scorm': {
            'handlers': ['file', 'error_file', 'console'],
            'level': get_env('SCORM_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'api': {
            'handlers': ['file', 'error_file'],
            'level': 'INFO',
            'propagate': False,
        },
    },
    'root': {
        'handlers': ['file', 'console'],
        'level': 'INFO',
    },
}

# ==============================================
# CORE DJANGO SETTINGS
# ==============================================

SECRET_KEY = get_env('DJANGO_SECRET_KEY')
if not SECRET_KEY:
    SECRET_KEY = get_random_secret_key()

DEBUG = get_bool_env('DJANGO_DEBUG', False)

ALLOWED_HOSTS = get_list_env('ALLOWED_HOSTS', default=['localhost', '127.0.0.1'])

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# ==============================================
# INSTALLED APPS
# ==============================================

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'corsheaders',

    'core',
    'courses',
    'scorm',
]

# ==============================================
# MIDDLEWARE CONFIGURATION
# ==============================================

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'RTE_Project.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'RTE_Project.wsgi.application'

# ==============================================
# DATABASE
# ==============================================

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': get_env('DB_NAME', 'rte'),
        'USER': get_env('DB_USER', 'rte'),
        'PASSWORD': get_env('DB_PASSWORD', ''),
        'HOST': get_env('DB_HOST', 'localhost'),
        'PORT': get_env('DB_PORT', '5432'),
        'OPTIONS': {
            'connect_timeout': 30,
        },
        'CONN_MAX_AGE': get_int_env('DB_CONN_MAX_AGE', 180),
        'CONN_HEALTH_CHECKS': True,
    }
}

# ==============================================
# AUTHENTICATION & SESSIONS
# ==============================================

LOGIN_URL = '/admin/login/'

SESSION_ENGINE = 'django.contrib.sessions.backends.db'
SESSION_COOKIE_AGE = 86400  # 24 hours
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = 'Lax'

CSRF_COOKIE_HTTPONLY = False
CSRF_COOKIE_SAMESITE = 'Lax'
CSRF_TRUSTED_ORIGINS = get_list_env('CSRF_TRUSTED_ORIGINS', default=[])

# Content is rendered inside a frame of the portal itself
X_FRAME_OPTIONS = 'SAMEORIGIN'

# ==============================================
# CORS CONFIGURATION
# ==============================================

CORS_ALLOW_ALL_ORIGINS = False
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOWED_ORIGINS = get_list_env('CORS_ALLOWED_ORIGINS', default=[])
CORS_URLS_REGEX = r'^/(scorm|progress)/.*$'

CORS_ALLOW_HEADERS = [
    'accept',
    'content-type',
    'origin',
    'user-agent',
    'x-csrftoken',
    'x-requested-with',
]

CORS_PREFLIGHT_MAX_AGE = 86400  # 24 hours

# ==============================================
# STATIC FILES
# ==============================================

STATIC_URL = '/static/'
STATIC_ROOT = get_env('STATIC_ROOT', str(BASE_DIR / 'staticfiles'))

# ==============================================
# INTERNATIONALIZATION
# ==============================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# ==============================================
# SCORM RUN-TIME ENVIRONMENT
# ==============================================

# Seconds between periodic flushes while content is initialized
SCORM_AUTOSAVE_INTERVAL = get_float_env('SCORM_AUTOSAVE_INTERVAL', 30.0)

# Extra attempts for a failed flush before it is dropped
SCORM_FLUSH_RETRIES = get_int_env('SCORM_FLUSH_RETRIES', 1)

# Transport timeout for HttpBackend requests, in seconds
SCORM_HTTP_TIMEOUT = get_float_env('SCORM_HTTP_TIMEOUT', 10.0)

# Storage bound for cmi.suspend_data
SCORM_SUSPEND_DATA_MAX_LENGTH = get_int_env('SCORM_SUSPEND_DATA_MAX_LENGTH', 65536)

# Elements pushed to the store as soon as content sets them
SCORM_HIGH_VALUE_ELEMENTS = get_list_env(
    'SCORM_HIGH_VALUE_ELEMENTS',
    default=['cmi.core.lesson_status', 'cmi.core.score.raw', 'cmi.core.exit'],
)
