"""Thread-pool helper for embarrassingly parallel per-file work."""

from __future__ import annotations

import typing as typ
from concurrent.futures import ThreadPoolExecutor

T = typ.TypeVar("T")
R = typ.TypeVar("R")


def iter_in_threads(
    func: typ.Callable[[T], R], items: typ.Sequence[T], *, workers: int | None = None
) -> typ.Iterator[R]:
    """Yield ``func(item)`` for each item, in input order, computed on a pool.

    Each call owns its inputs and outputs until the result is yielded back to
    the caller. Closing the iterator early (for example on
    ``KeyboardInterrupt``) cancels every call that has not started yet.
    """
    if not items:
        return
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pages")
    futures = [executor.submit(func, item) for item in items]
    try:
        for future in futures:
            yield future.result()
    finally:
        executor.shutdown(wait=True, cancel_futures=True)


__all__ = ["iter_in_threads"]
