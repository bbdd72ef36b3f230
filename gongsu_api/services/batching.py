from __future__ import annotations
import logging
from typing import Callable, Iterable, Iterator, List, Sequence, TypeVar

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from gongsu_api.common.errors import BatchWriteError
from gongsu_api.extensions import db

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 450


def batch_size() -> int:
    if has_app_context():
        return int(current_app.config.get("WRITE_BATCH_SIZE") or DEFAULT_BATCH_SIZE)
    return DEFAULT_BATCH_SIZE


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def commit_in_batches(items: Iterable[T], apply: Callable[[T], None], size: int | None = None) -> int:
    """
    Run `apply` for every item and commit once per chunk, chunks in order.

    No rollback across chunks: when chunk k fails it is rolled back and
    BatchWriteError reports how many rows chunks 1..k-1 already committed.
    Returns the number of items written.
    """
    rows = list(items)
    size = size or batch_size()
    committed = 0
    for index, chunk in enumerate(chunked(rows, size), start=1):
        try:
            for item in chunk:
                apply(item)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            log.exception("batch %d failed after %d committed rows", index, committed)
            raise BatchWriteError(
                f"write failed in batch {index}; {committed} rows already saved",
                committed=committed,
                batch_index=index,
            ) from e
        committed += len(chunk)
        log.debug("batch %d committed (%d rows so far)", index, committed)
    return committed
