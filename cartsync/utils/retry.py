# cartsync/utils/retry.py
import requests
import redis
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from cartsync.utils.settings import HTTP_RETRY_ATTEMPTS

# tylko bledy transportu, 4xx/5xx nie sa powtarzane
TRANSIENT_HTTP_ERRORS = (requests.ConnectionError, requests.Timeout)


def http_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(HTTP_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(TRANSIENT_HTTP_ERRORS),
    )


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )
