# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Generic method argument inference.

Inference unifies each formal parameter type against the actual argument
type, collecting lower bounds for every method type variable it meets, then
fixes each variable to the bound all other bounds convert to. Failures are
values (`InferResult(ok=False)`), never exceptions: the resolver simply moves
on to the next candidate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from latebind.compat import TypeCompatibilityOracle
from latebind.core.type_subst import apply_mapping
from latebind.core.types_core import GenericConstraint, TypeId, TypeKind, TypeTable
from latebind.member_registry import CandidateMember

logger = logging.getLogger(__name__)


class InferErrorKind(str, Enum):
	NO_TYPEPARAMS = "no_typeparams"
	ARITY = "arity"
	MISMATCH = "mismatch"
	CANNOT_INFER = "cannot_infer"
	CONFLICT = "conflict"
	CONSTRAINT = "constraint"


@dataclass(frozen=True)
class InferResult:
	ok: bool
	bindings: Dict[TypeId, TypeId] = field(default_factory=dict)
	error: Optional[InferErrorKind] = None
	# Type variables involved in the failure, if any.
	params: Tuple[TypeId, ...] = ()

	def type_args(self, generic_params: Sequence[TypeId]) -> Tuple[TypeId, ...]:
		return tuple(self.bindings[tv] for tv in generic_params)


def _fail(kind: InferErrorKind, params: Sequence[TypeId] = ()) -> InferResult:
	return InferResult(ok=False, error=kind, params=tuple(params))


class GenericArgumentInferencer:
	def __init__(self, table: TypeTable, oracle: TypeCompatibilityOracle) -> None:
		self.table = table
		self.oracle = oracle

	def infer(
		self,
		generic_params: Sequence[TypeId],
		formal_types: Sequence[TypeId],
		arg_types: Sequence[Optional[TypeId]],
		variadic: bool = False,
	) -> InferResult:
		"""
		Infer `generic_params` from `arg_types`.

		A variadic parameter list is tried in its array form first (only when
		the counts line up), then in its element form where every surplus
		argument is unified against the element type.
		"""
		if not generic_params:
			return _fail(InferErrorKind.NO_TYPEPARAMS)
		n = len(formal_types)
		m = len(arg_types)
		if not variadic:
			if m > n:
				return _fail(InferErrorKind.ARITY)
			return self._solve(generic_params, list(zip(formal_types, arg_types)))
		if m < n - 1:
			return _fail(InferErrorKind.ARITY)
		result = _fail(InferErrorKind.MISMATCH)
		if m == n:
			result = self._solve(generic_params, list(zip(formal_types, arg_types)))
			if result.ok:
				return result
		elem = self.table.element_type(formal_types[-1])
		if elem is None:
			return result
		pairs = list(zip(formal_types[:-1], arg_types[: n - 1]))
		pairs.extend((elem, actual) for actual in arg_types[n - 1 :])
		return self._solve(generic_params, pairs)

	def close(self, member: CandidateMember, arg_types: Sequence[Optional[TypeId]]) -> Optional[CandidateMember]:
		"""Instantiate a generic member from the argument types, or None when inference fails."""
		result = self.infer(member.generic_params, member.param_types, arg_types, member.is_variadic)
		if not result.ok:
			logger.debug("inference for %s failed: %s", member.name, result.error)
			return None
		return member.instantiate(self.table, result.type_args(member.generic_params))

	def _solve(
		self,
		generic_params: Sequence[TypeId],
		pairs: Sequence[Tuple[TypeId, Optional[TypeId]]],
	) -> InferResult:
		wanted = frozenset(generic_params)
		lower: Dict[TypeId, List[TypeId]] = {tv: [] for tv in generic_params}
		for formal, actual in pairs:
			if not self._unify(formal, actual, wanted, lower):
				return _fail(InferErrorKind.MISMATCH)
		missing = [tv for tv in generic_params if not lower[tv]]
		if missing:
			return _fail(InferErrorKind.CANNOT_INFER, missing)
		bindings: Dict[TypeId, TypeId] = {}
		for tv in generic_params:
			fixed = self._fix(lower[tv])
			if fixed is None:
				return _fail(InferErrorKind.CONFLICT, [tv])
			bindings[tv] = fixed
		violated = [tv for tv in generic_params if not self._satisfies(tv, bindings)]
		if violated:
			return _fail(InferErrorKind.CONSTRAINT, violated)
		return InferResult(ok=True, bindings=bindings)

	def _unify(
		self,
		formal: TypeId,
		actual: Optional[TypeId],
		wanted: frozenset,
		lower: Dict[TypeId, List[TypeId]],
	) -> bool:
		table = self.table
		if actual is None or not table.has_typevar(formal):
			return True
		fd = table.get(formal)
		if fd.kind is TypeKind.TYPEVAR:
			if formal in wanted and actual not in lower[formal]:
				lower[formal].append(actual)
			return True
		ad = table.get(actual)
		if fd.kind is TypeKind.ARRAY:
			if ad.kind is not TypeKind.ARRAY:
				return False
			return self._unify(fd.param_types[0], ad.param_types[0], wanted, lower)
		if fd.kind is TypeKind.OPTIONAL:
			return self._unify(fd.param_types[0], table.unwrap_optional(actual), wanted, lower)
		if fd.generic_def is not None:
			for candidate in (actual, *table.supertypes(actual)):
				cd = table.get(candidate)
				if cd.generic_def == fd.generic_def:
					return all(
						self._unify(f, a, wanted, lower) for f, a in zip(fd.param_types, cd.param_types)
					)
			return False
		return True

	def _fix(self, bounds: Sequence[TypeId]) -> Optional[TypeId]:
		for cand in bounds:
			if all(other == cand or self.oracle.is_standard_implicit(cand, other) for other in bounds):
				return cand
		return None

	def _satisfies(self, tv: TypeId, bindings: Dict[TypeId, TypeId]) -> bool:
		table = self.table
		info = table.get(tv).typevar
		if info is None:
			return True
		bound_to = bindings[tv]
		if info.constraints & GenericConstraint.REFERENCE_TYPE and not table.is_reference_type(bound_to):
			return False
		if info.constraints & GenericConstraint.VALUE_TYPE:
			if not table.is_value_type(bound_to) or table.is_optional(bound_to):
				return False
		for bound in info.bounds:
			if not table.is_assignable(apply_mapping(bound, bindings, table), bound_to):
				return False
		return True


__all__ = ["InferErrorKind", "InferResult", "GenericArgumentInferencer"]
