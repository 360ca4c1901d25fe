#!/usr/bin/env python
# Pipeline CRM management script
#
# python manage.py migrate
# python manage.py createsuperuser      # first CRM admin
# python manage.py test apps            # whole test suite
# celery -A config worker -B -l info    # contact imports + overdue reminder scan
# ==============================================================================

import os
import sys


def main():
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')
    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Install the project first: pip install -e '.[test]'"
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
