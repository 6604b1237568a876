# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Type parameter substitution helpers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Tuple

from latebind.core.types_core import TypeId, TypeKind, TypeTable


@dataclass(frozen=True)
class Subst:
	"""Explicit, owner-scoped type parameter substitution."""

	owner: str
	args: Tuple[TypeId, ...]


def apply_subst(type_id: TypeId, subst: Subst, table: TypeTable) -> TypeId:
	"""Apply a substitution to a TypeId, returning a (possibly new) TypeId."""

	def lookup(tv: TypeId) -> Optional[TypeId]:
		info = table.get(tv).typevar
		if info is None or info.param_id.owner != subst.owner:
			return None
		idx = info.param_id.index
		if idx < 0 or idx >= len(subst.args):
			return None
		return subst.args[idx]

	return _rebuild(type_id, lookup, table)


def apply_mapping(type_id: TypeId, mapping: Mapping[TypeId, TypeId], table: TypeTable) -> TypeId:
	"""Replace type variables by id (as produced by inference)."""
	if not mapping:
		return type_id
	return _rebuild(type_id, mapping.get, table)


def _rebuild(type_id: TypeId, lookup: Callable[[TypeId], Optional[TypeId]], table: TypeTable) -> TypeId:
	td = table.get(type_id)
	if td.kind is TypeKind.TYPEVAR:
		bound = lookup(type_id)
		return type_id if bound is None else bound
	if td.generic_def is None and td.type_params:
		# A bare generic definition used as a type stands for itself instantiated
		# over its own parameters.
		new_args = [_rebuild(p, lookup, table) for p in td.type_params]
		if list(td.type_params) == new_args:
			return type_id
		return table.ensure_instantiated(type_id, new_args)
	if not td.param_types:
		return type_id
	new_params = [_rebuild(p, lookup, table) for p in td.param_types]
	if new_params == list(td.param_types):
		return type_id
	if td.kind is TypeKind.ARRAY:
		return table.ensure_array(new_params[0])
	if td.kind is TypeKind.OPTIONAL:
		return table.ensure_optional(new_params[0])
	if td.generic_def is not None:
		return table.ensure_instantiated(td.generic_def, new_params)
	return type_id


__all__ = ["Subst", "apply_subst", "apply_mapping"]
