import multiprocessing

bind = '0.0.0.0:5001'
wsgi_app = 'run:app'

# Async views run on a per-request event loop, so plain threaded workers suffice
workers = multiprocessing.cpu_count() * 2 + 1
worker_class = 'gthread'
threads = 4

max_requests = 1000
max_requests_jitter = 50
timeout = 60
keepalive = 2
preload_app = True

# Logging
accesslog = '-'
errorlog = '-'
loglevel = 'info'

# For Docker deployment
user = None
group = None
