# Importing the Celery app first makes it current, so shared tasks bind to it.
from celery_app import celery_app  # noqa: F401
