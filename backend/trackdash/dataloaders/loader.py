"""Request-scoped batching and caching of keyed fetches.

A :class:`DataLoader` collects every ``load(key)`` issued before control goes
back to the event loop and resolves them with a single call to its batch
function. Results are memoized per canonical key for the lifetime of the
loader, which the API creates once per request (see ``dataloaders.context``).

Every loader registers itself in a :class:`LoaderRegistry` so that an
administrative reset can drop all memoized values of the process at once.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import weakref
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Hashable, List, Optional, Sequence, Set, TypeVar

from pydantic import BaseModel


logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")

BatchLoadFn = Callable[[List[Any]], Awaitable[Sequence[Any]]]


def canonical_key(key: Any) -> Hashable:
    """Return a hashable form of *key* that ignores field order.

    Mappings become sorted ``(field, value)`` tuples, sequences become tuples
    and sets become sorted tuples, recursively. Pydantic models are dumped
    first so that a model and the equivalent dict share a cache entry.
    """

    if isinstance(key, BaseModel):
        key = key.model_dump()
    if isinstance(key, dict):
        return tuple(sorted((str(field), canonical_key(value)) for field, value in key.items()))
    if isinstance(key, (list, tuple)):
        return tuple(canonical_key(value) for value in key)
    if isinstance(key, (set, frozenset)):
        return tuple(sorted((canonical_key(value) for value in key), key=repr))
    return key


class LoaderRegistry:
    """Weak collection of the live loaders of this process."""

    def __init__(self) -> None:
        self._loaders: "weakref.WeakSet[DataLoader]" = weakref.WeakSet()
        # El reseteo puede llegar desde el hilo del canal de control
        self._lock = threading.Lock()

    def register(self, loader: "DataLoader") -> None:
        with self._lock:
            self._loaders.add(loader)

    def __len__(self) -> int:
        with self._lock:
            return len(self._loaders)

    def reset_all(self) -> int:
        with self._lock:
            loaders = list(self._loaders)
        for loader in loaders:
            loader.clear_all()
        logger.info(f"Reset {len(loaders)} dataloader caches")
        return len(loaders)


loader_registry = LoaderRegistry()


@dataclass
class _PendingLoad:
    key: Any
    cache_key: Hashable
    future: "asyncio.Future[Any]"


class DataLoader(Generic[K, V]):
    def __init__(
        self,
        batch_load_fn: BatchLoadFn,
        *,
        name: Optional[str] = None,
        cache_key_fn: Callable[[Any], Hashable] = canonical_key,
        registry: Optional[LoaderRegistry] = None,
    ) -> None:
        self.batch_load_fn = batch_load_fn
        self.name = name or getattr(batch_load_fn, "__name__", "dataloader")
        self.cache_key_fn = cache_key_fn
        self._cache: Dict[Hashable, "asyncio.Future[V]"] = {}
        self._queue: List[_PendingLoad] = []
        self._batches: Set["asyncio.Task[None]"] = set()
        (registry if registry is not None else loader_registry).register(self)

    def load(self, key: K) -> "asyncio.Future[V]":
        cache_key = self.cache_key_fn(key)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        loop = asyncio.get_running_loop()
        future: "asyncio.Future[V]" = loop.create_future()
        self._cache[cache_key] = future
        self._queue.append(_PendingLoad(key, cache_key, future))
        if len(self._queue) == 1:
            # Primera carga de la ventana: despachar cuando el loop recupere el control
            loop.call_soon(self._dispatch)
        return future

    async def load_many(self, keys: Sequence[K]) -> List[V]:
        return list(await asyncio.gather(*(self.load(key) for key in keys)))

    def prime(self, key: K, value: V) -> None:
        cache_key = self.cache_key_fn(key)
        if cache_key in self._cache:
            return
        future: "asyncio.Future[V]" = asyncio.get_running_loop().create_future()
        future.set_result(value)
        self._cache[cache_key] = future

    def clear(self, key: K) -> None:
        self._cache.pop(self.cache_key_fn(key), None)

    def clear_all(self) -> None:
        self._cache.clear()

    def _dispatch(self) -> None:
        queue, self._queue = self._queue, []
        if not queue:
            return
        task = asyncio.get_running_loop().create_task(self._run_batch(queue))
        self._batches.add(task)
        task.add_done_callback(self._batches.discard)

    async def _run_batch(self, queue: List[_PendingLoad]) -> None:
        keys = [pending.key for pending in queue]
        try:
            values = list(await self.batch_load_fn(keys))
            if len(values) != len(keys):
                raise ValueError(
                    f"Dataloader {self.name} returned {len(values)} values for {len(keys)} keys"
                )
        except asyncio.CancelledError:
            self._evict(queue)
            for pending in queue:
                pending.future.cancel()
            raise
        except Exception as exc:
            logger.exception(f"Batch load failed in dataloader {self.name} for {len(keys)} keys")
            self._evict(queue)
            for pending in queue:
                if not pending.future.done():
                    pending.future.set_exception(exc)
            return

        for pending, value in zip(queue, values):
            if not pending.future.done():
                pending.future.set_result(value)

    def _evict(self, queue: List[_PendingLoad]) -> None:
        for pending in queue:
            if self._cache.get(pending.cache_key) is pending.future:
                del self._cache[pending.cache_key]
