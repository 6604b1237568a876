# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Per-type cache of user-declared conversion operators.

For a type T the cache holds one ConversionDescriptor per *other* type X that
T can convert from or to. Operators declared on T contribute both directions;
conversion-to operators declared on a base of T are inherited unless T
declares its own operator to the same X.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import IntFlag
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from latebind.core.errors import check_argument_null
from latebind.core.lru_cache import ConcurrentLruCache
from latebind.core.types_core import NumericCode, TypeId, TypeKind
from latebind.member_registry import IMPLICIT_OPERATOR, CandidateMember, MemberRegistry

logger = logging.getLogger(__name__)


class ConversionFlags(IntFlag):
	NONE = 0
	IMPLICIT_FROM = 1
	IMPLICIT_TO = 2
	EXPLICIT_FROM = 4
	EXPLICIT_TO = 8
	FROM = IMPLICIT_FROM | EXPLICIT_FROM
	TO = IMPLICIT_TO | EXPLICIT_TO


@dataclass(frozen=True)
class ConversionDescriptor:
	"""
	Conversions between `owner` and `other`.

	`convert_from` turns an `other` into an `owner`; `convert_to` turns an
	`owner` into an `other`. Either may be missing.
	"""

	owner: TypeId
	other: TypeId
	flags: ConversionFlags
	convert_from: Optional[CandidateMember] = None
	convert_to: Optional[CandidateMember] = None

	@property
	def has_implicit_from(self) -> bool:
		return bool(self.flags & ConversionFlags.IMPLICIT_FROM)

	@property
	def has_implicit_to(self) -> bool:
		return bool(self.flags & ConversionFlags.IMPLICIT_TO)


_EMPTY: Mapping[TypeId, ConversionDescriptor] = MappingProxyType({})


class ConversionOperatorCache:
	def __init__(self, registry: MemberRegistry, capacity: int = 100) -> None:
		self._registry = registry
		self._table = registry.table
		self._cache: ConcurrentLruCache[Tuple[TypeId, int], Mapping[TypeId, ConversionDescriptor]] = (
			ConcurrentLruCache(capacity, name="conversion-operators")
		)

	def __len__(self) -> int:
		return len(self._cache)

	def get_operators(self, type_id: TypeId) -> Mapping[TypeId, ConversionDescriptor]:
		"""
		Return the read-only map of other type -> descriptor for `type_id`.

		The map is built once per type and registry generation and published
		whole; built-in scalars other than decimal never have operators and
		skip the cache entirely.
		"""
		check_argument_null(type_id, "type_id")
		if not self._may_declare(type_id):
			return _EMPTY
		return self._cache.get_or_add((type_id, self._registry.generation), self._build)

	def clear(self) -> None:
		self._cache.clear()

	def _may_declare(self, type_id: TypeId) -> bool:
		td = self._table.get(type_id)
		if td.kind is TypeKind.SCALAR:
			return td.numeric is NumericCode.DECIMAL
		return td.kind in (TypeKind.CLASS, TypeKind.STRUCT)

	def _build(self, key: Tuple[TypeId, int]) -> Mapping[TypeId, ConversionDescriptor]:
		type_id, _generation = key
		entries: Dict[TypeId, ConversionDescriptor] = {}
		for op in self._registry.operators(type_id):
			implicit = op.name == IMPLICIT_OPERATOR
			if op.return_type == type_id:
				other = op.param_types[0]
				flag = ConversionFlags.IMPLICIT_FROM if implicit else ConversionFlags.EXPLICIT_FROM
				_merge(entries, type_id, other, flag, convert_from=op)
			else:
				other = op.return_type
				flag = ConversionFlags.IMPLICIT_TO if implicit else ConversionFlags.EXPLICIT_TO
				_merge(entries, type_id, other, flag, convert_to=op)
		for base in self._table.base_chain(type_id):
			if base == self._table.object_type:
				break
			for op in self._registry.operators(base):
				if op.param_types[0] != base:
					continue
				existing = entries.get(op.return_type)
				if existing is not None and existing.convert_to is not None:
					continue
				implicit = op.name == IMPLICIT_OPERATOR
				flag = ConversionFlags.IMPLICIT_TO if implicit else ConversionFlags.EXPLICIT_TO
				_merge(entries, type_id, op.return_type, flag, convert_to=op)
		logger.debug(
			"conversion operators for %s: %d other type(s)", self._table.label(type_id), len(entries)
		)
		return MappingProxyType(entries)


def _merge(
	entries: Dict[TypeId, ConversionDescriptor],
	owner: TypeId,
	other: TypeId,
	flag: ConversionFlags,
	*,
	convert_from: Optional[CandidateMember] = None,
	convert_to: Optional[CandidateMember] = None,
) -> None:
	existing = entries.get(other)
	if existing is None:
		entries[other] = ConversionDescriptor(
			owner=owner, other=other, flags=flag, convert_from=convert_from, convert_to=convert_to
		)
		return
	# First declaration wins per direction; flags still accumulate.
	entries[other] = replace(
		existing,
		flags=existing.flags | flag,
		convert_from=existing.convert_from or convert_from,
		convert_to=existing.convert_to or convert_to,
	)


__all__ = ["ConversionFlags", "ConversionDescriptor", "ConversionOperatorCache"]
