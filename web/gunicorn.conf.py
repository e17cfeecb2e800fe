import os, multiprocessing

wsgi_app = "market.wsgi:application"
bind = os.getenv("GUNI_BIND", "0.0.0.0:8000")


def cpu():
    return max(1, (os.cpu_count() or multiprocessing.cpu_count()))


# Workers; provider calls block for up to NOWPAYMENTS_TIMEOUT_SECS
workers = int(os.getenv("GUNI_WORKERS", str(min(max(2, cpu() * 2), 8))))

# Threads per worker for blocking IO
worker_class = "gthread"
threads = int(os.getenv("GTHREADS", "4"))

# Timeouts: must exceed the provider timeout
timeout = int(os.getenv("GUNI_TIMEOUT", "60"))
graceful_timeout = int(os.getenv("GUNI_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNI_KEEPALIVE", "5"))

preload_app = True
max_requests = int(os.getenv("GUNI_MAX_REQUESTS", "2000"))
max_requests_jitter = int(os.getenv("GUNI_MAX_REQUESTS_JITTER", "200"))

# Application logs go through Django LOGGING (JSON); access log to stdout
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNI_LOGLEVEL", "info")
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(L)ss rid=%({x-request-id}i)s'
