"""
Celery configuration for the pickup API.
"""
import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'main.settings')

app = Celery('pickup_api')

# Load config from Django settings, using CELERY_ namespace
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks in all registered Django apps
app.autodiscover_tasks()

# Celery Beat schedule for periodic tasks
app.conf.beat_schedule = {
    'send-pickup-reminders': {
        'task': 'notifications.tasks.send_pickup_reminders',
        'schedule': crontab(minute='*/15'),
    },
    'expire-overdue-pickup-orders': {
        'task': 'pickup.tasks.expire_overdue_orders',
        'schedule': crontab(minute=5),  # Hourly
    },
}
