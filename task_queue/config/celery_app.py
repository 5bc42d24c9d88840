"""
Celery application for the LMS report task queue
"""

from celery import Celery

# Create the Celery app
app = Celery('lms_report_tasks')

# Load configuration from Python module
app.config_from_object('task_queue.config.celeryconfig')

# Auto-discover tasks from all registered apps
app.autodiscover_tasks(['task_queue.tasks'])

if __name__ == '__main__':
    app.start()
