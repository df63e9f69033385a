"""
Gunicorn configuration for the EcoScore API.

Run with:  gunicorn -c gunicorn.conf.py ecoscore.main:app
Env vars that override defaults:
  PORT     — TCP port to bind
  WORKERS  — number of worker processes (default: 2)
  TIMEOUT  — worker timeout in seconds (default: 60)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Workers share nothing in memory; ledger consistency comes from row locks in
# the database, so scaling workers out is safe.
workers = int(os.environ.get("WORKERS", "2"))

worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# Achievement fan-out can hold a request open while mail jobs drain.
timeout = int(os.environ.get("TIMEOUT", "60"))

loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
