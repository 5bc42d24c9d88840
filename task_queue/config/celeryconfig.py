"""
Celery configuration settings for the report task queue
"""
from app.core.config import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

# Broker settings
broker_url = CELERY_BROKER_URL
result_backend = CELERY_RESULT_BACKEND

# Task serialization format
task_serializer = 'json'
accept_content = ['json']
result_serializer = 'json'
timezone = 'UTC'
enable_utc = True

# Worker settings
worker_concurrency = 2
worker_prefetch_multiplier = 1  # One migration batch per worker process at a time
worker_max_tasks_per_child = 50

# Task routing
task_routes = {
    'task_queue.tasks.reports.*': {'queue': 'reports'},
}

# Batches are acknowledged once they finish
task_acks_late = True
task_track_started = True

# Task time limits
task_time_limit = 1800  # Hard time limit in seconds
task_soft_time_limit = 1500  # Soft time limit

# Task result settings
result_expires = 60 * 60 * 24  # Outcomes are kept for one day
