"""
WSGI config for the ClinicDesk project.

It exposes the WSGI callable as a module-level variable named ``application``.
The desktop shell starts this under a local WSGI server on loopback.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clinicdesk.settings')

application = get_wsgi_application()
