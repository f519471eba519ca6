"""
Gunicorn configuration for the MegaJobNepal API
Run with: gunicorn -c gunicorn.conf.py megajob.main:app
"""
import os

# Server socket
bind = f"{os.getenv('HOST', '0.0.0.0')}:{os.getenv('PORT', '3001')}"
backlog = 1024

# Workers share nothing; each opens its own Mongo and Redis pools in the lifespan
workers = int(os.getenv("GUNICORN_WORKERS", 2))
worker_class = "uvicorn.workers.UvicornWorker"

# Recycle workers periodically
max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", 2000))
max_requests_jitter = 200

# Timeouts (bcrypt at 12 rounds keeps auth requests well under this)
timeout = int(os.getenv("GUNICORN_TIMEOUT", 30))
graceful_timeout = 20
keepalive = 5

proc_name = "megajobnepal_api"
daemon = False

# Logging: access log to stdout, application logs are structlog JSON
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()


def when_ready(server):
    server.log.info("MegaJobNepal API listening on %s", bind)


def worker_exit(server, worker):
    server.log.info("Worker %s exited", worker.pid)
