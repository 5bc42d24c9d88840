# app/core/config.py
"""Environment settings, read once at import time."""

import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./lms_reports.db")

# LMS platform API serving the additional-field catalogue and the visibility lookups
LMS_API_URL = os.getenv("LMS_API_URL", "http://localhost:8080")
LMS_API_TIMEOUT = float(os.getenv("LMS_API_TIMEOUT", "30"))

REPORT_DEFAULT_DIALECT = os.getenv("REPORT_DEFAULT_DIALECT", "athena")
REPORT_DEFAULT_LANG = os.getenv("REPORT_DEFAULT_LANG", "english")
REPORT_DEFAULT_TIMEZONE = os.getenv("REPORT_DEFAULT_TIMEZONE", "UTC")

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
