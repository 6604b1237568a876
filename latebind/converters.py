# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Caller-supplied value converters.

A converter is a plain one-argument callable registered for a (source,
target) pair the type rules do not cover, typically parsing (`string` to
`int`) or adapting foreign types. Converters take part in explicit
conversion planning only, after every standard conversion and user
operator has been tried; they never affect overload resolution.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional, Tuple

from latebind.core.errors import InvalidRegistrationError, check_argument_null
from latebind.core.types_core import TypeId, TypeTable

logger = logging.getLogger(__name__)

Converter = Callable[[Any], Any]


class ConverterRegistry:
	def __init__(self, table: TypeTable) -> None:
		self._table = table
		self._converters: Dict[Tuple[TypeId, TypeId], Converter] = {}
		self._generation = 0
		self._lock = threading.Lock()

	@property
	def generation(self) -> int:
		return self._generation

	def __len__(self) -> int:
		return len(self._converters)

	def add(self, source: TypeId, target: TypeId, converter: Converter) -> None:
		"""Register `converter` for `source` -> `target`; a later registration replaces an earlier one."""
		check_argument_null(source, "source")
		check_argument_null(target, "target")
		check_argument_null(converter, "converter")
		table = self._table
		if table.void_type in (source, target):
			raise InvalidRegistrationError("a converter cannot convert from or to void")
		if source == target:
			raise InvalidRegistrationError(f"a converter from '{table.label(source)}' to itself is never used")
		with self._lock:
			converters = dict(self._converters)
			converters[(source, target)] = converter
			self._converters = converters
			self._generation += 1
		logger.debug("converter registered: %s -> %s", table.label(source), table.label(target))

	def find(self, source: TypeId, target: TypeId) -> Optional[Converter]:
		"""
		Return the converter for `source` -> `target`, falling back to one
		registered for a supertype of `source` (bases nearest first, then
		interfaces).
		"""
		converters = self._converters
		if not converters:
			return None
		found = converters.get((source, target))
		if found is not None:
			return found
		for sup in self._table.supertypes(source):
			found = converters.get((sup, target))
			if found is not None:
				return found
		return None


__all__ = ["Converter", "ConverterRegistry"]
