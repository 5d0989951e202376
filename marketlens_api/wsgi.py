"""
WSGI configuration for the Market Lens backend.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'marketlens_api.settings')

application = get_wsgi_application()
