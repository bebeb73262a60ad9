#!/usr/bin/env python3
"""
Container entrypoint: applies migrations, seeds stage templates and hands over to Gunicorn.
Distroless images have no shell, so the steps run from Python.
"""
import sys
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


def prepare():
    import django
    from django.core.management import call_command

    django.setup()
    call_command('migrate', interactive=False)
    if os.environ.get('SEED_STAGE_TEMPLATES', 'true').lower() == 'true':
        call_command('seed_stage_templates')


if __name__ == '__main__':
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'textile_erp.production_settings')
    (BASE_DIR / 'logs').mkdir(parents=True, exist_ok=True)

    prepare()

    import gunicorn.app.wsgiapp as wsgi

    sys.argv = ['gunicorn', '--config', str(BASE_DIR / 'gunicorn_config.py')]
    wsgi.run()
