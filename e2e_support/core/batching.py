"""Bounded-concurrency batches over independent identity calls.

Batches run strictly one after another; members of a batch run together on
a small thread pool and carry no relative ordering.
"""
from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class Settled(Generic[T]):
    """Outcome of one batch member: either a value or the raised error."""
    item: T
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def _settle_batch(batch: List[T], fn: Callable[[T], Any]) -> List[Settled[T]]:
    with ThreadPoolExecutor(max_workers=len(batch)) as executor:
        futures = [(item, executor.submit(fn, item)) for item in batch]
        settled = []
        for item, future in futures:
            try:
                settled.append(Settled(item, value=future.result()))
            except Exception as exc:
                settled.append(Settled(item, error=exc))
        return settled


def run_batches(items: Sequence[T], batch_size: int, fn: Callable[[T], Any]) -> List[Settled[T]]:
    """Run ``fn`` over ``items`` batch by batch; failures never abort the run."""
    results: List[Settled[T]] = []
    for batch in chunk(items, batch_size):
        results.extend(_settle_batch(batch, fn))
    return results


def run_batches_strict(items: Sequence[T], batch_size: int, fn: Callable[[T], Any]) -> List[Any]:
    """Like :func:`run_batches`, but re-raise the first failure once its batch settled."""
    values: List[Any] = []
    for batch in chunk(items, batch_size):
        for outcome in _settle_batch(batch, fn):
            if outcome.error is not None:
                raise outcome.error
            values.append(outcome.value)
    return values
