# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Arity and variadic-shape matching for a single candidate.

This only decides whether an argument list can be laid out against a
parameter list (counts, defaults, the variadic tail) and which formal type
each argument is later checked against. Type compatibility is the
resolver's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from latebind.core.types_core import TypeId, TypeTable
from latebind.member_registry import CandidateMember


@dataclass(frozen=True)
class MatchResult:
	ok: bool
	# Element type when the variadic tail is expanded (possibly with zero elements).
	variadic_tail_type: Optional[TypeId] = None
	# Formal type each actual argument is checked against.
	formal_types: Tuple[TypeId, ...] = ()
	# Trailing parameters not covered by actual arguments.
	missing: int = 0

	@property
	def expanded(self) -> bool:
		return self.variadic_tail_type is not None


NO_MATCH = MatchResult(ok=False)


class OverloadMatcher:
	def __init__(self, table: TypeTable) -> None:
		self.table = table

	def matches(
		self,
		member: CandidateMember,
		arg_types: Sequence[Optional[TypeId]],
		optional_binding: bool = True,
	) -> MatchResult:
		params = member.param_types
		n = len(params)
		m = len(arg_types)
		if n == 0:
			return MatchResult(ok=True) if m == 0 else NO_MATCH
		elem: Optional[TypeId] = None
		if member.is_variadic:
			elem = self.table.element_type(params[-1])
		if m == n:
			if elem is None:
				return MatchResult(ok=True, formal_types=tuple(params))
			return self._same_count(params, elem, arg_types[-1])
		if m < n:
			return self._fewer(member, elem, m, optional_binding)
		if elem is None:
			return NO_MATCH
		surplus = m - (n - 1)
		return MatchResult(
			ok=True,
			variadic_tail_type=elem,
			formal_types=tuple(params[:-1]) + (elem,) * surplus,
		)

	def _same_count(self, params: Tuple[TypeId, ...], elem: TypeId, last_arg: Optional[TypeId]) -> MatchResult:
		# A null in the variadic position is the array itself.
		if last_arg is None:
			return MatchResult(ok=True, formal_types=tuple(params))
		rank = self.table.array_rank(elem)
		actual = self.table.array_rank(last_arg)
		if self.table.has_typevar(elem):
			if actual < rank:
				return NO_MATCH
			if actual == rank:
				return MatchResult(ok=True, variadic_tail_type=elem, formal_types=tuple(params[:-1]) + (elem,))
			return MatchResult(ok=True, formal_types=tuple(params))
		if actual == rank + 1:
			return MatchResult(ok=True, formal_types=tuple(params))
		if actual == rank:
			return MatchResult(ok=True, variadic_tail_type=elem, formal_types=tuple(params[:-1]) + (elem,))
		return NO_MATCH

	def _fewer(self, member: CandidateMember, elem: Optional[TypeId], m: int, optional_binding: bool) -> MatchResult:
		n = len(member.param_types)
		last = n - 1
		for idx in range(m, n):
			if elem is not None and idx == last:
				continue
			if not (optional_binding and member.has_default(idx)):
				return NO_MATCH
		return MatchResult(
			ok=True,
			variadic_tail_type=elem,
			formal_types=tuple(member.param_types[:m]),
			missing=n - m,
		)


__all__ = ["MatchResult", "NO_MATCH", "OverloadMatcher"]
