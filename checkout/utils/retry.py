# checkout/utils/retry.py
import requests
import redis
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from checkout.domain.errors import ConcurrencyConflictError, PersistenceError
from checkout.utils.settings import CHECKOUT_MAX_ATTEMPTS


def http_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(requests.RequestException),
    )


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )


def conflict_retry():
    # lost the inventory race: run the whole checkout again
    return retry(
        reraise=True,
        stop=stop_after_attempt(CHECKOUT_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        retry=retry_if_exception_type(ConcurrencyConflictError),
    )


def persistence_retry():
    # storage failures get exactly one transparent retry
    return retry(
        reraise=True,
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=0.5),
        retry=retry_if_exception_type(PersistenceError),
    )
