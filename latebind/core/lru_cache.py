# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Bounded, thread-safe least-recently-used cache.

Values are computed outside the lock and published first-writer-wins: two
threads racing on the same missing key may both run the factory, but only the
first result is kept and both callers get that one. Factories must therefore
be pure. Reads of a published key never block; recency is refreshed only when
the lock is free.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Callable, Generic, Hashable, Optional, TypeVar

from latebind.core.errors import ArgumentOutOfRangeError

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

_MISSING = object()


class ConcurrentLruCache(Generic[K, V]):
	def __init__(self, capacity: int, *, name: str = "cache") -> None:
		if capacity <= 0:
			raise ArgumentOutOfRangeError(f"cache capacity must be positive, got {capacity}")
		self._capacity = capacity
		self._name = name
		self._data: "OrderedDict[K, V]" = OrderedDict()
		self._lock = threading.Lock()

	@property
	def capacity(self) -> int:
		return self._capacity

	@property
	def name(self) -> str:
		return self._name

	def __len__(self) -> int:
		return len(self._data)

	def __contains__(self, key: object) -> bool:
		return key in self._data

	def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
		value = self._data.get(key, _MISSING)
		if value is _MISSING:
			return default
		self._touch(key)
		return value  # type: ignore[return-value]

	def get_or_add(self, key: K, factory: Callable[[K], V]) -> V:
		"""Return the cached value for `key`, computing and publishing it if absent."""
		value = self._data.get(key, _MISSING)
		if value is not _MISSING:
			self._touch(key)
			return value  # type: ignore[return-value]
		computed = factory(key)
		with self._lock:
			published = self._data.get(key, _MISSING)
			if published is not _MISSING:
				self._data.move_to_end(key)
				return published  # type: ignore[return-value]
			self._data[key] = computed
			while len(self._data) > self._capacity:
				evicted, _ = self._data.popitem(last=False)
				logger.debug("%s: evicted %r", self._name, evicted)
		return computed

	def clear(self) -> None:
		with self._lock:
			self._data.clear()

	def _touch(self, key: K) -> None:
		if not self._lock.acquire(blocking=False):
			return
		try:
			if key in self._data:
				self._data.move_to_end(key)
		finally:
			self._lock.release()


__all__ = ["ConcurrentLruCache"]
