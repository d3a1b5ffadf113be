from celery import Celery

# Create Celery app
celery = Celery("foodrx_notifier")

# Load configuration from foodrx_notifier.config.celeryconfig module
celery.config_from_object("foodrx_notifier.config.celeryconfig")
