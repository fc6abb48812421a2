import time
from typing import Callable, Tuple, Type, TypeVar

T = TypeVar("T")


def retry(operation: Callable[[], T], attempts: int = 3, backoff: float = 0.05,
          retry_on: Tuple[Type[BaseException], ...] = (OSError,),
          sleep: Callable[[float], None] = time.sleep) -> T:
    """
    Call `operation` up to `attempts` times, sleeping a fixed `backoff`
    between tries. The last error is re-raised once attempts run out.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")
    attempt = 1
    while True:
        try:
            return operation()
        except retry_on:
            if attempt >= attempts:
                raise
            sleep(backoff)
            attempt += 1
