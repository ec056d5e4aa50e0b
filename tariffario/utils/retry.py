from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Tuple, Type, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_call(
    func: Callable[[], T],
    *,
    retries: int = 3,
    backoff_s: float = 0.5,
    retry_exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    logger_name: str | None = None,
    before_retry: Optional[Callable[[BaseException], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Викликає func() до retries+1 разів з експоненційною паузою між спробами.

    Лише для ідемпотентних читань (кандидати тарифів, довідники, підключення).
    before_retry(exc) викликається перед паузою, лише якщо буде ще
    спроба: наприклад conn.rollback() для транзакції, що після помилки
    опинилась у стані aborted.
    Після останньої невдалої спроби кидається остання помилка.
    """
    log = logging.getLogger(logger_name) if logger_name else logger

    for attempt in range(retries + 1):
        try:
            return func()
        except retry_exceptions as exc:
            if attempt >= retries:
                raise
            if before_retry is not None:
                before_retry(exc)
            wait = backoff_s * (2 ** attempt)
            log.warning(
                "[RETRY] Спроба %d/%d не вдалась, повтор через %.2fs: %s",
                attempt + 1,
                retries + 1,
                wait,
                exc,
            )
            sleep(wait)

    raise RuntimeError("retry_call: retries must be >= 0")
