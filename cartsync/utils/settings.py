# cartsync/utils/settings.py
import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

STORE_API_URL = os.getenv("STORE_API_URL", "http://localhost:5000/api")
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", 5))
HTTP_RETRY_ATTEMPTS = int(os.getenv("HTTP_RETRY_ATTEMPTS", 3))

# "sql" albo "redis"
LOCAL_STORE_BACKEND = os.getenv("LOCAL_STORE_BACKEND", "sql")
LOCAL_STORE_URL = os.getenv("LOCAL_STORE_URL", "sqlite:///./cartsync_local.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", REDIS_URL)
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/2")

DEFAULT_TAX_RATE = Decimal(os.getenv("DEFAULT_TAX_RATE", "7.5"))
FREE_SHIPPING_THRESHOLD = Decimal(os.getenv("FREE_SHIPPING_THRESHOLD", "100"))
FLAT_SHIPPING_COST = Decimal(os.getenv("FLAT_SHIPPING_COST", "5.99"))
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", 5))
ABANDONED_CART_SECONDS = int(os.getenv("ABANDONED_CART_SECONDS", 60 * 60))
ALLOW_OFFLINE_COUPONS = os.getenv("ALLOW_OFFLINE_COUPONS", "true").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
