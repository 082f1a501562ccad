# gunicorn.conf.py
import os
import logging
import sys

# Configure logging to stdout
accesslog = '-'
errorlog = '-'
loglevel = os.getenv('LOG_LEVEL', 'info').lower()

# Get PORT from environment or use default
port = os.getenv('PORT', '8080')
bind = f"0.0.0.0:{port}"

# Workers coordinate imports through the import_locks table
workers = int(os.getenv('WEB_CONCURRENCY', '2'))
threads = 1


def on_starting(server):
    logger = logging.getLogger('gunicorn.error')
    logger.setLevel(logging.INFO)
    logger.addHandler(logging.StreamHandler(sys.stdout))
    logger.info(f"Starting gunicorn with {workers} workers on port {port}")
    logger.info(f"Worker timeout set to {timeout} seconds")


# A full-Bible import runs for minutes
timeout = 900
keepalive = 120
worker_class = "sync"

proc_name = "scripture_import"
default_proc_name = "scripture_import"

graceful_timeout = 60
