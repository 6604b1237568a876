# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Dispatch on the runtime type of one argument.

Handlers are registered per type. A call looks up the runtime type of the
argument at `index`, walks its base chain until a registered handler is
found, and remembers the answer for the original type so the walk happens
once per runtime type.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional

from latebind.core.errors import ArgumentNullError, ArgumentOutOfRangeError, MissingMemberError
from latebind.core.types_core import TypeId, TypeTable

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class MethodSwitcher:
	def __init__(self, table: TypeTable, index: int = 0, *, name: str = "switch") -> None:
		if index < 0:
			raise ArgumentOutOfRangeError(f"dispatch index must be non-negative, got {index}")
		self.table = table
		self.index = index
		self.name = name
		self._handlers: Dict[TypeId, Handler] = {}
		self._memo: Dict[TypeId, Handler] = {}
		# Bumped by every add; a walk started under an older version is stale.
		self._version = 0
		self._lock = threading.Lock()

	def register(self, type_id: TypeId) -> Callable[[Handler], Handler]:
		"""Decorator registering the handler for `type_id` (and, by default, its subtypes)."""

		def deco(fn: Handler) -> Handler:
			self.add(type_id, fn)
			return fn

		return deco

	def add(self, type_id: TypeId, handler: Handler) -> None:
		with self._lock:
			self._handlers[type_id] = handler
			self._version += 1
			# A new handler can shadow memoized answers for subtypes.
			self._memo = {}

	def handler_for(self, type_id: TypeId) -> Handler:
		found = self._memo.get(type_id)
		if found is not None:
			return found
		version = self._version
		found = self._walk(type_id)
		with self._lock:
			if version != self._version:
				found = self._walk(type_id)
			if found is not None:
				self._memo[type_id] = found
		if found is None:
			raise MissingMemberError(f"{self.name}: no handler for '{self.table.label(type_id)}'")
		logger.debug("%s: %s dispatches to %r", self.name, self.table.label(type_id), found)
		return found

	def __call__(self, *args: Any) -> Any:
		if self.index >= len(args):
			raise ArgumentOutOfRangeError(
				f"{self.name}: dispatch index {self.index} out of range for {len(args)} arguments"
			)
		value = args[self.index]
		type_id = self.table.type_of(value)
		if type_id is None:
			raise ArgumentNullError(f"args[{self.index}]")
		return self.handler_for(type_id)(*args)

	def _walk(self, type_id: TypeId) -> Optional[Handler]:
		handlers = self._handlers
		if type_id in handlers:
			return handlers[type_id]
		for base in self.table.base_chain(type_id):
			if base in handlers:
				return handlers[base]
		return None


__all__ = ["MethodSwitcher"]
