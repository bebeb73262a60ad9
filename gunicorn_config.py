import os

bind = os.environ.get('GUNICORN_BIND', f"0.0.0.0:{os.environ.get('PORT', '8000')}")
workers = int(os.environ.get('GUNICORN_WORKERS', '3'))
wsgi_app = 'textile_erp.wsgi:application'
raw_env = ['DJANGO_SETTINGS_MODULE=textile_erp.production_settings']
timeout = 30
max_requests = 1000
max_requests_jitter = 50
loglevel = os.environ.get('LOG_LEVEL', 'info')
errorlog = os.environ.get('GUNICORN_ERROR_LOG', '-')
accesslog = os.environ.get('GUNICORN_ACCESS_LOG', '-')
