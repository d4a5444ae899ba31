# cartsync/celery_worker.py
from celery import Celery

from cartsync.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "cartsync",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# taski musza byc zaimportowane, zeby worker je zarejestrowal
celery_app.conf.imports = ("cartsync.services.notification_service",)

celery_app.conf.timezone = "UTC"
