"""
Retry decorator for calls to the source-control API.

Only transient failures are retried; anything that signals a definite answer
(not found, bad credentials, malformed input) propagates on the first attempt.
"""

from functools import wraps
from typing import Callable, Tuple, Type, TypeVar

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

F = TypeVar("F", bound=Callable)


def with_retry(
    retry_on: Tuple[Type[BaseException], ...],
    max_attempts: int = 3,
    min_delay: float = 1.0,
    max_delay: float = 10.0,
) -> Callable[[F], F]:
    """
    Decorator to add retry logic to a client method.

    Args:
        retry_on: Exception types that indicate a transient failure.
        max_attempts: Maximum number of attempts, including the first.
        min_delay: Minimum delay between retries in seconds.
        max_delay: Maximum delay between retries in seconds.

    Example:
        @with_retry((GiteaRetryableError,), max_attempts=3)
        def get_pull_request(self, number) -> PullRequest:
            ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        @retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=1, min=min_delay, max=max_delay),
            retry=retry_if_exception_type(retry_on),
            reraise=True,
        )
        def wrapper(*args, **kwargs):
            return func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator
