"""
Gunicorn settings for the Incubator Finance API.

    gunicorn -c deployment/gunicorn_config.py wsgi:app

Every value can be overridden from the environment so the same file serves
staging and production.
"""
import multiprocessing
import os

APP_HOME = os.environ.get('APP_HOME', '/srv/incubator-finance')
LOG_DIR = os.path.join(APP_HOME, 'logs')

bind = os.environ.get('GUNICORN_BIND', '127.0.0.1:8000')
backlog = 2048

workers = int(os.environ.get('GUNICORN_WORKERS', multiprocessing.cpu_count() * 2 + 1))
worker_class = 'sync'
# Receipt and payment-proof uploads can be slow on poor connections
timeout = int(os.environ.get('GUNICORN_TIMEOUT', 90))
keepalive = 5
max_requests = 1000
max_requests_jitter = 50
preload_app = os.environ.get('GUNICORN_PRELOAD', 'false').lower() == 'true'

accesslog = os.environ.get('GUNICORN_ACCESS_LOG', os.path.join(LOG_DIR, 'gunicorn_access.log'))
errorlog = os.environ.get('GUNICORN_ERROR_LOG', os.path.join(LOG_DIR, 'gunicorn_error.log'))
loglevel = os.environ.get('GUNICORN_LOG_LEVEL', 'info')
access_log_format = '%(h)s %(u)s %(t)s "%(r)s" %(s)s %(b)s %(D)s'

proc_name = 'incubator-finance'
daemon = False
pidfile = os.path.join(APP_HOME, 'gunicorn.pid')
umask = 0o007

limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def on_starting(server):
    os.makedirs(LOG_DIR, exist_ok=True)


def when_ready(server):
    server.log.info("Incubator Finance listening on %s", bind)


def post_fork(server, worker):
    server.log.info("Worker spawned (pid: %s)", worker.pid)


def worker_abort(worker):
    worker.log.warning("Worker %s timed out", worker.pid)
