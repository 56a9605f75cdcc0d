"""
Django settings for RTE_Project
Dynamically loads settings based on DJANGO_ENV environment variable
"""

import os

DJANGO_ENV = os.environ.get('DJANGO_ENV', 'production').lower()

# Naming the test module directly (pytest-django) selects it without DJANGO_ENV
if os.environ.get('DJANGO_SETTINGS_MODULE') == f'{__name__}.test':
    DJANGO_ENV = 'test'

if DJANGO_ENV == 'test':
    from .test import *
else:
    from .production import *
