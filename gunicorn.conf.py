# Gunicorn Configuration for the RTE portal
# All configuration is read from environment variables for server independence

import multiprocessing
import os

DJANGO_ENV = os.environ.get('DJANGO_ENV', 'production')

LOGS_DIR = os.environ.get('LOGS_DIR', 'logs')
GUNICORN_BIND = os.environ.get('GUNICORN_BIND', '0.0.0.0:8000')
GUNICORN_TIMEOUT = int(os.environ.get('GUNICORN_TIMEOUT', '60'))

workers_env = os.environ.get('GUNICORN_WORKERS', 'auto')
if workers_env == 'auto':
    workers = multiprocessing.cpu_count() * 2 + 1
else:
    workers = int(workers_env)

# Server socket
bind = GUNICORN_BIND
backlog = 2048

# Commit and finish requests are short; periodic flushes arrive every 30s per learner
worker_class = "sync"
timeout = GUNICORN_TIMEOUT
keepalive = 5

max_requests = 1000
max_requests_jitter = 100

# Logging
accesslog = f"{LOGS_DIR}/gunicorn_access.log"
errorlog = f"{LOGS_DIR}/gunicorn_error.log"
loglevel = "warning"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

proc_name = f"rte-{DJANGO_ENV}"

daemon = False
preload_app = True
graceful_timeout = 30

raw_env = [
    'DJANGO_SETTINGS_MODULE=RTE_Project.settings',
    f'DJANGO_ENV={DJANGO_ENV}',
]

wsgi_app = "RTE_Project.wsgi:application"


def when_ready(server):
    """Called just after the server is started."""
    server.log.info(f"RTE {DJANGO_ENV.upper()} server started with {server.cfg.workers} workers on {server.cfg.bind}")


def on_exit(server):
    """Called just before exiting."""
    server.log.info(f"RTE {DJANGO_ENV.upper()} server shutting down")
