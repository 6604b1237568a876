# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Type compatibility oracle.

Answers "can a value of `source` be used where `target` is expected", either
implicitly or with an explicit cast. Standard conversions (identity,
assignability, optional wrapping, the built-in numeric table) are tried
first; user-declared operators come last and are only ever joined to
standard conversions on either side, never to each other.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, FrozenSet, Iterable, List, Optional

from latebind.conversions import ConversionOperatorCache
from latebind.core.errors import check_argument_null
from latebind.core.types_core import NumericCode, TypeId, TypeKind, TypeTable
from latebind.member_registry import IMPLICIT_OPERATOR, CandidateMember

_C = NumericCode

# target <- sources it widens from implicitly.
IMPLICIT_NUMERIC: Dict[NumericCode, FrozenSet[NumericCode]] = {
	_C.SHORT: frozenset({_C.SBYTE, _C.BYTE}),
	_C.USHORT: frozenset({_C.CHAR, _C.BYTE}),
	_C.INT: frozenset({_C.CHAR, _C.SBYTE, _C.BYTE, _C.SHORT, _C.USHORT}),
	_C.UINT: frozenset({_C.CHAR, _C.BYTE, _C.USHORT}),
	_C.LONG: frozenset({_C.CHAR, _C.SBYTE, _C.BYTE, _C.SHORT, _C.USHORT, _C.INT, _C.UINT}),
	_C.ULONG: frozenset({_C.CHAR, _C.BYTE, _C.USHORT, _C.UINT}),
	_C.FLOAT: frozenset(
		{_C.CHAR, _C.SBYTE, _C.BYTE, _C.SHORT, _C.USHORT, _C.INT, _C.UINT, _C.LONG, _C.ULONG}
	),
	_C.DOUBLE: frozenset(
		{_C.CHAR, _C.SBYTE, _C.BYTE, _C.SHORT, _C.USHORT, _C.INT, _C.UINT, _C.LONG, _C.ULONG, _C.FLOAT}
	),
	_C.DECIMAL: frozenset(
		{_C.CHAR, _C.SBYTE, _C.BYTE, _C.SHORT, _C.USHORT, _C.INT, _C.UINT, _C.LONG, _C.ULONG}
	),
}


def numeric_widens(target: NumericCode, source: NumericCode) -> bool:
	return target is source or source in IMPLICIT_NUMERIC.get(target, frozenset())


class ConversionLevel(IntEnum):
	"""How an argument reaches a parameter; lower is better."""

	EXACT = 0
	IMPLICIT = 1
	USER_IMPLICIT = 2
	EXPLICIT = 3


@dataclass(frozen=True)
class UserConversion:
	"""
	A chosen user operator plus its endpoints: the value is first converted
	(standard) to `from_type`, the operator runs, and its `to_type` result is
	converted (standard) to the requested target.
	"""

	operator: CandidateMember
	from_type: TypeId
	to_type: TypeId
	implicit: bool


class TypeCompatibilityOracle:
	def __init__(self, table: TypeTable, conversions: ConversionOperatorCache) -> None:
		self.table = table
		self.conversions = conversions

	# --- public surface -----------------------------------------------------

	def is_implicitly_convertible(self, target: TypeId, source: TypeId) -> bool:
		check_argument_null(target, "target")
		check_argument_null(source, "source")
		if self.is_standard_implicit(target, source):
			return True
		return self.find_user_conversion(target, source, explicit=False) is not None

	def is_explicitly_convertible(self, target: TypeId, source: TypeId) -> bool:
		check_argument_null(target, "target")
		check_argument_null(source, "source")
		if self.is_standard_explicit(target, source):
			return True
		return self.find_user_conversion(target, source, explicit=True) is not None

	def classify(self, target: TypeId, source: Optional[TypeId], explicit: bool = False) -> Optional[ConversionLevel]:
		"""Rank how `source` reaches `target`; None when it cannot. A None source is the null literal."""
		if source is None:
			if self.accepts_null(target):
				return ConversionLevel.IMPLICIT
			return None
		if target == source:
			return ConversionLevel.EXACT
		if self.is_standard_implicit(target, source):
			return ConversionLevel.IMPLICIT
		if self.find_user_conversion(target, source, explicit=False) is not None:
			return ConversionLevel.USER_IMPLICIT
		if explicit and self.is_explicitly_convertible(target, source):
			return ConversionLevel.EXPLICIT
		return None

	def accepts_null(self, target: TypeId) -> bool:
		return self.table.is_optional(target) or self.table.is_reference_type(target)

	# --- standard conversions -----------------------------------------------

	def is_standard_implicit(self, target: TypeId, source: TypeId) -> bool:
		"""Implicit convertibility without user-declared operators."""
		table = self.table
		if target == source or target == table.object_type:
			return True
		if table.is_assignable(target, source):
			return True
		tt = table.get(target)
		st = table.get(source)
		if tt.kind is TypeKind.VOID or st.kind is TypeKind.VOID:
			return False
		if tt.kind is TypeKind.OPTIONAL:
			return self.is_standard_implicit(tt.param_types[0], table.unwrap_optional(source))
		if st.kind is TypeKind.OPTIONAL:
			# Boxing an optional: only to reference targets.
			if table.is_reference_type(target):
				return self.is_standard_implicit(target, st.param_types[0])
			return False
		if tt.numeric is not None and st.numeric is not None:
			return numeric_widens(tt.numeric, st.numeric)
		return False

	def is_standard_explicit(self, target: TypeId, source: TypeId) -> bool:
		"""Explicit convertibility without user-declared operators."""
		table = self.table
		if self.is_standard_implicit(target, source):
			return True
		if source == table.object_type:
			return table.get(target).kind is not TypeKind.VOID
		if table.is_assignable(source, target):
			return True
		tt = table.get(target)
		st = table.get(source)
		if tt.kind is TypeKind.VOID or st.kind is TypeKind.VOID:
			return False
		if tt.kind is TypeKind.OPTIONAL or st.kind is TypeKind.OPTIONAL:
			return self.is_standard_explicit(table.unwrap_optional(target), table.unwrap_optional(source))
		if tt.numeric is not None and st.numeric is not None:
			return True
		if tt.kind is TypeKind.INTERFACE and table.is_reference_type(source):
			return True
		if st.kind is TypeKind.INTERFACE and table.is_reference_type(target):
			return True
		if tt.kind is TypeKind.ARRAY and st.kind is TypeKind.ARRAY:
			t_elem = tt.param_types[0]
			s_elem = st.param_types[0]
			return (
				table.is_reference_type(t_elem)
				and table.is_reference_type(s_elem)
				and self.is_standard_explicit(t_elem, s_elem)
			)
		if tt.kind is TypeKind.TYPEVAR or st.kind is TypeKind.TYPEVAR:
			other = source if tt.kind is TypeKind.TYPEVAR else target
			return table.get(other).kind in (TypeKind.INTERFACE, TypeKind.TYPEVAR)
		return False

	# --- user conversions ---------------------------------------------------

	def find_user_conversion(self, target: TypeId, source: TypeId, *, explicit: bool) -> Optional[UserConversion]:
		"""
		Pick the most specific user operator turning `source` into `target`.

		Operators are collected from both endpoints (optionals unwrapped, so
		operators lift over them). Among applicable operators the most specific
		source type wins, then the most specific target type; remaining ties go
		to the operator declared first.
		"""
		table = self.table
		src = table.unwrap_optional(source)
		dst = table.unwrap_optional(target)
		lifted_out = table.is_optional(target) or table.is_reference_type(target)
		if table.is_optional(source) and not lifted_out and not explicit:
			return None
		candidates: List[UserConversion] = []
		seen: set = set()
		for desc in self.conversions.get_operators(dst).values():
			op = desc.convert_from
			if op is not None and op.key not in seen:
				seen.add(op.key)
				candidates.append(self._user(op))
		for desc in self.conversions.get_operators(src).values():
			op = desc.convert_to
			if op is not None and op.key not in seen:
				seen.add(op.key)
				candidates.append(self._user(op))
		applicable = [c for c in candidates if self._applicable(c, src, dst, explicit)]
		if not applicable:
			return None
		best_from = self._most_specific([c.from_type for c in applicable], src, towards_source=True)
		best_to = self._most_specific([c.to_type for c in applicable], dst, towards_source=False)
		narrowed = [c for c in applicable if c.from_type == best_from and c.to_type == best_to]
		pool = narrowed or applicable
		return min(pool, key=lambda c: c.operator.ordinal)

	def _user(self, op: CandidateMember) -> UserConversion:
		return UserConversion(
			operator=op,
			from_type=op.param_types[0],
			to_type=op.return_type,
			implicit=op.name == IMPLICIT_OPERATOR,
		)

	def _applicable(self, conv: UserConversion, src: TypeId, dst: TypeId, explicit: bool) -> bool:
		if not explicit:
			return (
				conv.implicit
				and self.is_standard_implicit(conv.from_type, src)
				and self.is_standard_implicit(dst, conv.to_type)
			)
		return self._encompass_either(conv.from_type, src) and self._encompass_either(dst, conv.to_type)

	def _encompass_either(self, a: TypeId, b: TypeId) -> bool:
		return self.is_standard_implicit(a, b) or self.is_standard_implicit(b, a)

	def _most_specific(self, types: Iterable[TypeId], anchor: TypeId, *, towards_source: bool) -> Optional[TypeId]:
		pool = list(dict.fromkeys(types))
		if anchor in pool:
			return anchor
		if towards_source:
			# Prefer types the source converts to, then the most encompassed one.
			near = [t for t in pool if self.is_standard_implicit(t, anchor)] or pool
			for cand in near:
				if all(self.is_standard_implicit(other, cand) for other in near):
					return cand
			return None
		near = [t for t in pool if self.is_standard_implicit(anchor, t)] or pool
		for cand in near:
			if all(self.is_standard_implicit(cand, other) for other in near):
				return cand
		return None


__all__ = [
	"IMPLICIT_NUMERIC",
	"numeric_widens",
	"ConversionLevel",
	"UserConversion",
	"TypeCompatibilityOracle",
]
