# Bind & workers
bind = "0.0.0.0:8000"
wsgi_app = "tokenlife:create_app()"
workers = 2  # override with GUNICORN_WORKERS
threads = 4
timeout = 60
graceful_timeout = 30
keepalive = 5

# Each worker runs its own cleanup thread and, without REDIS_URL, its own
# denylist. Set TOKEN_SCHEDULER_ENABLED=false on all but one deployment unit
# if duplicate cleanup runs are undesirable; they are harmless otherwise.

# Logs to stdout/stderr (collected by Docker)
accesslog = "-"
errorlog = "-"
loglevel = "info"  # override with LOG_LEVEL

# Honor proxy headers
forwarded_allow_ips = "*"
proxy_protocol = False
