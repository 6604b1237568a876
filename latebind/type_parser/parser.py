# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Textual type expressions and member signatures.

Registrations spell parameter and return types as strings such as
`List<T>[]`, `int?` or `<T: class>(T[], params object[]) -> T`. The lark
grammar lives next to this module; trees are walked by hand and resolved
against a TypeTable plus a scope of in-flight type variables.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedInput

from latebind.core.errors import InvalidRegistrationError, TypeExpressionError
from latebind.core.types_core import GenericConstraint, TypeId, TypeParamId, TypeTable

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	start=["type_expr", "signature"],
	maybe_placeholders=False,
)


@dataclass(frozen=True)
class ParsedSignature:
	"""Resolved parameter list of a member signature."""

	param_types: Tuple[TypeId, ...]
	return_type: TypeId
	is_variadic: bool = False
	# Type variables introduced by the signature's own `<...>` list.
	type_params: Tuple[TypeId, ...] = ()


class TypeParser:
	def __init__(self, table: TypeTable) -> None:
		self._table = table

	def parse_type(self, text: str, *, scope: Optional[Mapping[str, TypeId]] = None) -> TypeId:
		"""Resolve a single type expression such as `Dictionary<string, int[]>`."""
		tree = self._parse(text, "type_expr")
		return self._type_expr(tree, dict(scope or {}))

	def parse_signature(
		self,
		text: str,
		*,
		owner: str = "",
		scope: Optional[Mapping[str, TypeId]] = None,
	) -> ParsedSignature:
		"""
		Resolve `<T, ...>(p1, ..., params pN[]) -> ret`.

		Signature type parameters become type variables owned by `owner`; they
		shadow names in `scope` (the declaring type's parameters). A missing
		`-> ret` means void.
		"""
		tree = self._parse(text, "signature")
		names: Dict[str, TypeId] = dict(scope or {})
		type_params: Tuple[TypeId, ...] = ()
		params: List[Tree] = []
		ret_node: Optional[Tree] = None
		for child in tree.children:
			if not isinstance(child, Tree):
				continue
			kind = _name(child)
			if kind == "type_params":
				if not owner:
					raise TypeExpressionError(f"generic signature {text!r} needs an owner")
				type_params = self._declare_type_params(child, owner, names)
			elif kind == "param":
				params.append(child)
			elif kind == "return_clause":
				ret_node = child.children[0]
		param_types: List[TypeId] = []
		is_variadic = False
		for idx, param in enumerate(params):
			variadic = any(isinstance(c, Token) and c.type == "PARAMS" for c in param.children)
			type_node = next(c for c in param.children if isinstance(c, Tree))
			ty = self._type_expr(type_node, names)
			if variadic:
				if idx != len(params) - 1:
					raise TypeExpressionError(f"'params' must mark the last parameter in {text!r}")
				if self._table.element_type(ty) is None:
					raise TypeExpressionError(f"'params' parameter must be an array in {text!r}")
				is_variadic = True
			if ty == self._table.void_type:
				raise TypeExpressionError(f"parameter cannot be void in {text!r}")
			param_types.append(ty)
		ret = self._table.void_type if ret_node is None else self._type_expr(ret_node, names, allow_void=True)
		return ParsedSignature(
			param_types=tuple(param_types),
			return_type=ret,
			is_variadic=is_variadic,
			type_params=type_params,
		)

	def _parse(self, text: str, start: str) -> Tree:
		if not isinstance(text, str) or not text.strip():
			raise TypeExpressionError(f"empty type expression: {text!r}")
		try:
			return _PARSER.parse(text, start=start)
		except UnexpectedInput as err:
			raise TypeExpressionError(f"invalid type expression {text!r} at column {err.column}") from err

	def _declare_type_params(self, tree: Tree, owner: str, names: Dict[str, TypeId]) -> Tuple[TypeId, ...]:
		decls = [c for c in tree.children if isinstance(c, Tree)]
		tvars: List[TypeId] = []
		# All names first so bounds may mention sibling parameters (T: IComparable<T>).
		for idx, decl in enumerate(decls):
			pname = decl.children[0].value
			tv = self._table.ensure_typevar(TypeParamId(owner=owner, index=idx), name=pname)
			names[pname] = tv
			tvars.append(tv)
		for tv, decl in zip(tvars, decls):
			flags = GenericConstraint.NONE
			bounds: List[TypeId] = []
			for constraint in decl.children[1:]:
				kind = _name(constraint)
				if kind == "class_constraint":
					flags |= GenericConstraint.REFERENCE_TYPE
				elif kind == "struct_constraint":
					flags |= GenericConstraint.VALUE_TYPE
				else:
					bounds.append(self._type_expr(constraint.children[0], names))
			if flags or bounds:
				self._table.constrain_typevar(tv, flags, bounds)
		return tuple(tvars)

	def _type_expr(self, tree: Tree, names: Mapping[str, TypeId], *, allow_void: bool = False) -> TypeId:
		atom, *suffixes = tree.children
		ty = self._atom(atom, names)
		if ty == self._table.void_type and (suffixes or not allow_void):
			raise TypeExpressionError("'void' is only valid as a return type")
		for suffix in suffixes:
			try:
				if _name(suffix) == "array_suffix":
					ty = self._table.ensure_array(ty)
				else:
					ty = self._table.ensure_optional(ty)
			except InvalidRegistrationError as err:
				raise TypeExpressionError(str(err)) from err
		return ty

	def _atom(self, tree: Tree, names: Mapping[str, TypeId]) -> TypeId:
		name = tree.children[0].value
		args_node = tree.children[1] if len(tree.children) > 1 else None
		ty = names.get(name)
		if ty is None:
			ty = self._table.lookup(name)
		if ty is None:
			raise TypeExpressionError(f"unknown type '{name}'")
		if args_node is None:
			if self._table.is_generic_definition(ty):
				raise TypeExpressionError(f"generic type '{name}' requires type arguments")
			return ty
		args = [self._type_expr(arg, names) for arg in args_node.children if isinstance(arg, Tree)]
		return self._table.ensure_instantiated(ty, args)


def _name(node: Tree) -> str:
	data = node.data
	if isinstance(data, Token):
		return data.value
	return str(data)


__all__ = ["ParsedSignature", "TypeParser"]
