# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Binder configuration.

Only cache capacities are tunable. Defaults match the historical sizes; each
can be overridden per process through the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from latebind.core.errors import ArgumentOutOfRangeError

CONVERSION_CACHE_ENV = "LATEBIND_CONVERSION_CACHE_SIZE"
THUNK_CACHE_ENV = "LATEBIND_THUNK_CACHE_SIZE"
BINDING_CACHE_ENV = "LATEBIND_BINDING_CACHE_SIZE"


@dataclass(frozen=True)
class BinderConfig:
	conversion_cache_capacity: int = 100
	thunk_cache_capacity: int = 1024
	binding_cache_capacity: int = 1024

	def __post_init__(self) -> None:
		for name in ("conversion_cache_capacity", "thunk_cache_capacity", "binding_cache_capacity"):
			value = int(getattr(self, name))
			if value <= 0:
				raise ArgumentOutOfRangeError(f"{name} must be positive, got {value}")
			object.__setattr__(self, name, value)

	@classmethod
	def from_env(cls) -> "BinderConfig":
		defaults = cls()
		return cls(
			conversion_cache_capacity=_env_int(CONVERSION_CACHE_ENV, defaults.conversion_cache_capacity),
			thunk_cache_capacity=_env_int(THUNK_CACHE_ENV, defaults.thunk_cache_capacity),
			binding_cache_capacity=_env_int(BINDING_CACHE_ENV, defaults.binding_cache_capacity),
		)


def _env_int(name: str, default: int) -> int:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		return int(raw)
	except ValueError as err:
		raise ArgumentOutOfRangeError(f"{name} must be an integer, got {raw!r}") from err


__all__ = ["BinderConfig", "CONVERSION_CACHE_ENV", "THUNK_CACHE_ENV", "BINDING_CACHE_ENV"]
