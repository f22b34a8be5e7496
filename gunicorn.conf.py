# gunicorn.conf.py

import os

# Network
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")   # nginx will reverse-proxy to this
proxy_protocol = False
forwarded_allow_ips = "*"

# Workers
# rule of thumb: workers = 2 * CPU cores
workers = int(os.getenv("GUNICORN_WORKERS", "3"))
threads = 2
worker_class = "gthread"
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logging
accesslog = "-"          # stdout (docker-friendly)
errorlog  = "-"          # stderr
loglevel  = os.getenv("LOG_LEVEL", "info").lower()

# App
wsgi_app = "marketplace_project.wsgi:application"
