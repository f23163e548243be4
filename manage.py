#!/usr/bin/env python
"""Django's command-line utility for the ClinicDesk backend.

Typical first run on a new machine::

    python manage.py migrate
    python manage.py seed_clinic
"""
import os
import sys


def main() -> None:
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clinicdesk.settings')
    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Install the backend with `pip install -e .` "
            "inside the desktop app's virtual environment."
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
