# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Host type system consumed by the resolver.

TypeIds are opaque ints indexing into a TypeTable. TypeDef carries the kind,
name and structural parameters of a type plus its supertypes, so the resolver
can answer assignability and generic questions without any native reflection.

Structural types (arrays, optionals, generic instances, type variables) are
interned: asking for the same structure twice returns the same TypeId, which
keeps ids usable as cache keys.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum, IntFlag, auto
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from latebind.core.errors import ArgumentOutOfRangeError, InvalidRegistrationError, NotGenericTemplateError


TypeId = int  # opaque handle into the TypeTable

# A type reference accepted by declaration helpers: an id, or a type expression
# parsed in the scope of the declaration's own type parameters.
TypeRef = Union[TypeId, str]


class TypeKind(Enum):
	"""Kinds of types understood by the host type system."""

	OBJECT = auto()
	VOID = auto()
	SCALAR = auto()
	CLASS = auto()
	STRUCT = auto()
	INTERFACE = auto()
	ARRAY = auto()
	OPTIONAL = auto()
	TYPEVAR = auto()


class NumericCode(Enum):
	"""Built-in numeric scalars; the value doubles as the seeded type name."""

	CHAR = "char"
	SBYTE = "sbyte"
	BYTE = "byte"
	SHORT = "short"
	USHORT = "ushort"
	INT = "int"
	UINT = "uint"
	LONG = "long"
	ULONG = "ulong"
	FLOAT = "float"
	DOUBLE = "double"
	DECIMAL = "decimal"


INTEGRAL_RANGES: Dict[NumericCode, Tuple[int, int]] = {
	NumericCode.CHAR: (0, 0xFFFF),
	NumericCode.SBYTE: (-(1 << 7), (1 << 7) - 1),
	NumericCode.BYTE: (0, (1 << 8) - 1),
	NumericCode.SHORT: (-(1 << 15), (1 << 15) - 1),
	NumericCode.USHORT: (0, (1 << 16) - 1),
	NumericCode.INT: (-(1 << 31), (1 << 31) - 1),
	NumericCode.UINT: (0, (1 << 32) - 1),
	NumericCode.LONG: (-(1 << 63), (1 << 63) - 1),
	NumericCode.ULONG: (0, (1 << 64) - 1),
}

SIGNED_CODES = frozenset(
	{
		NumericCode.SBYTE,
		NumericCode.SHORT,
		NumericCode.INT,
		NumericCode.LONG,
		NumericCode.FLOAT,
		NumericCode.DOUBLE,
		NumericCode.DECIMAL,
	}
)
UNSIGNED_CODES = frozenset(
	{NumericCode.CHAR, NumericCode.BYTE, NumericCode.USHORT, NumericCode.UINT, NumericCode.ULONG}
)


class GenericConstraint(IntFlag):
	"""Special constraints a generic parameter may declare."""

	NONE = 0
	REFERENCE_TYPE = auto()
	VALUE_TYPE = auto()


@dataclass(frozen=True)
class TypeParamId:
	"""
	Identity of a generic parameter: the owning declaration plus its position.

	`owner` is the generic type name for class parameters, or the member's
	generic owner key for method parameters.
	"""

	owner: str
	index: int


@dataclass(frozen=True)
class TypeVarInfo:
	param_id: TypeParamId
	constraints: GenericConstraint = GenericConstraint.NONE
	bounds: Tuple[TypeId, ...] = ()


@dataclass(frozen=True)
class TypeDef:
	"""Definition of a type stored in the TypeTable."""

	kind: TypeKind
	name: str
	# ARRAY: (elem,), OPTIONAL: (inner,), generic instance: type arguments.
	param_types: Tuple[TypeId, ...] = ()
	base: Optional[TypeId] = None
	interfaces: Tuple[TypeId, ...] = ()
	numeric: Optional[NumericCode] = None
	# Type variables of a generic definition (empty for instances/non-generics).
	type_params: Tuple[TypeId, ...] = ()
	generic_def: Optional[TypeId] = None
	typevar: Optional[TypeVarInfo] = None
	py_type: Optional[type] = None


class TypeTable:
	"""
	Type table that owns TypeIds.

	Seeds `object`, `void`, `bool`, the numeric scalars and `string`. User
	types are declared with `declare_class`/`declare_struct`/`declare_interface`;
	everything structural goes through the `ensure_*` helpers.

	Writes are serialized by a re-entrant lock because resolution may intern
	new structural types (e.g. `T[]` closed over `string`) from any thread.
	Reads never lock: a TypeDef is immutable once published.
	"""

	def __init__(self) -> None:
		self._defs: Dict[TypeId, TypeDef] = {}
		self._next_id: TypeId = 1  # reserve 0 for "invalid"
		self._lock = threading.RLock()
		self._by_name: Dict[str, TypeId] = {}
		self._by_py_type: Dict[type, TypeId] = {}
		self._arrays: Dict[TypeId, TypeId] = {}
		self._optionals: Dict[TypeId, TypeId] = {}
		self._instances: Dict[Tuple[TypeId, Tuple[TypeId, ...]], TypeId] = {}
		self._typevars: Dict[TypeParamId, TypeId] = {}
		self.object_type = self._publish_named(TypeDef(kind=TypeKind.OBJECT, name="object"))
		self.void_type = self._publish_named(TypeDef(kind=TypeKind.VOID, name="void"))
		self.bool_type = self._publish_named(
			TypeDef(kind=TypeKind.SCALAR, name="bool", base=self.object_type, py_type=bool)
		)
		for code in NumericCode:
			self._publish_named(TypeDef(kind=TypeKind.SCALAR, name=code.value, base=self.object_type, numeric=code))
		self.string_type = self._publish_named(
			TypeDef(kind=TypeKind.CLASS, name="string", base=self.object_type, py_type=str)
		)
		self._by_py_type[float] = self.scalar(NumericCode.DOUBLE)
		self._by_py_type[Decimal] = self.scalar(NumericCode.DECIMAL)
		self._by_py_type[int] = self.scalar(NumericCode.INT)

	# --- declarations -------------------------------------------------------

	def declare_class(
		self,
		name: str,
		*,
		base: TypeRef | None = None,
		interfaces: Sequence[TypeRef] = (),
		type_params: Sequence[str] = (),
		py_type: type | None = None,
	) -> TypeId:
		"""Declare a reference type deriving from `base` (object by default)."""
		return self._declare_nominal(TypeKind.CLASS, name, base, interfaces, type_params, py_type)

	def declare_struct(
		self,
		name: str,
		*,
		interfaces: Sequence[TypeRef] = (),
		type_params: Sequence[str] = (),
		py_type: type | None = None,
	) -> TypeId:
		"""Declare a value type; value types derive directly from object."""
		return self._declare_nominal(TypeKind.STRUCT, name, None, interfaces, type_params, py_type)

	def declare_interface(
		self,
		name: str,
		*,
		interfaces: Sequence[TypeRef] = (),
		type_params: Sequence[str] = (),
	) -> TypeId:
		"""Declare an interface, optionally extending other interfaces."""
		return self._declare_nominal(TypeKind.INTERFACE, name, None, interfaces, type_params, None)

	def _declare_nominal(
		self,
		kind: TypeKind,
		name: str,
		base: TypeRef | None,
		interfaces: Sequence[TypeRef],
		type_params: Sequence[str],
		py_type: type | None,
	) -> TypeId:
		with self._lock:
			if name in self._by_name:
				raise InvalidRegistrationError(f"type '{name}' is already declared")
			ty_id = self._reserve()
			tvars = tuple(
				self.ensure_typevar(TypeParamId(owner=name, index=idx), name=param)
				for idx, param in enumerate(type_params)
			)
			# Publish a provisional definition so supertypes may refer back to it.
			self._defs[ty_id] = TypeDef(kind=kind, name=name, type_params=tvars, py_type=py_type)
			self._by_name[name] = ty_id
			try:
				base_id, iface_ids = self._resolve_supertypes(kind, name, base, interfaces, tvars)
			except Exception:
				del self._by_name[name]
				del self._defs[ty_id]
				raise
			self._defs[ty_id] = TypeDef(
				kind=kind,
				name=name,
				base=base_id,
				interfaces=iface_ids,
				type_params=tvars,
				py_type=py_type,
			)
			if py_type is not None:
				self._by_py_type[py_type] = ty_id
			return ty_id

	def _resolve_supertypes(
		self,
		kind: TypeKind,
		name: str,
		base: TypeRef | None,
		interfaces: Sequence[TypeRef],
		tvars: Tuple[TypeId, ...],
	) -> Tuple[TypeId | None, Tuple[TypeId, ...]]:
		scope = {self.get(tv).name: tv for tv in tvars}
		base_id: TypeId | None = None
		if kind is TypeKind.CLASS:
			base_id = self.object_type if base is None else self._decl_type(base, scope)
			base_kind = self.get(base_id).kind
			if base_kind not in (TypeKind.CLASS, TypeKind.OBJECT) or base_id == self.string_type:
				raise InvalidRegistrationError(f"type '{name}' cannot derive from '{self.label(base_id)}'")
		elif kind is TypeKind.STRUCT:
			base_id = self.object_type
		iface_ids = tuple(self._decl_type(iface, scope) for iface in interfaces)
		for iface in iface_ids:
			if self.get(iface).kind is not TypeKind.INTERFACE:
				raise InvalidRegistrationError(
					f"type '{name}' cannot implement non-interface '{self.label(iface)}'"
				)
		return base_id, iface_ids

	def _decl_type(self, ref: TypeRef, scope: Dict[str, TypeId]) -> TypeId:
		if isinstance(ref, str):
			from latebind.type_parser.parser import TypeParser

			return TypeParser(self).parse_type(ref, scope=scope)
		return ref

	def type_param(self, generic_def: TypeId, name: str) -> TypeId:
		"""Return the type variable `name` of a generic type definition."""
		for tv in self.get(generic_def).type_params:
			if self.get(tv).name == name:
				return tv
		raise ArgumentOutOfRangeError(f"type '{self.label(generic_def)}' has no type parameter '{name}'")

	def constrain_typevar(
		self,
		typevar: TypeId,
		constraints: GenericConstraint = GenericConstraint.NONE,
		bounds: Sequence[TypeId] = (),
	) -> None:
		"""Attach constraints to a type variable (declaration phase only)."""
		with self._lock:
			td = self.get(typevar)
			if td.kind is not TypeKind.TYPEVAR or td.typevar is None:
				raise NotGenericTemplateError(f"'{self.label(typevar)}' is not a type parameter")
			info = replace(td.typevar, constraints=constraints, bounds=tuple(bounds))
			self._defs[typevar] = replace(td, typevar=info)

	# --- structural types ---------------------------------------------------

	def ensure_array(self, elem: TypeId) -> TypeId:
		"""Return the interned `elem[]` type."""
		existing = self._arrays.get(elem)
		if existing is not None:
			return existing
		with self._lock:
			existing = self._arrays.get(elem)
			if existing is not None:
				return existing
			if self.get(elem).kind is TypeKind.VOID:
				raise InvalidRegistrationError("cannot create an array of void")
			ty_id = self._publish(TypeDef(kind=TypeKind.ARRAY, name="Array", param_types=(elem,)))
			self._arrays[elem] = ty_id
			return ty_id

	def ensure_optional(self, inner: TypeId) -> TypeId:
		"""Return the interned optional-of-`inner` wrapper (value types only)."""
		existing = self._optionals.get(inner)
		if existing is not None:
			return existing
		with self._lock:
			existing = self._optionals.get(inner)
			if existing is not None:
				return existing
			td = self.get(inner)
			if td.kind is TypeKind.OPTIONAL or not (td.kind is TypeKind.TYPEVAR or self.is_value_type(inner)):
				raise InvalidRegistrationError(f"'{self.label(inner)}' cannot be made optional")
			ty_id = self._publish(
				TypeDef(kind=TypeKind.OPTIONAL, name="Optional", param_types=(inner,), base=self.object_type)
			)
			self._optionals[inner] = ty_id
			return ty_id

	def ensure_instantiated(self, generic_def: TypeId, args: Sequence[TypeId]) -> TypeId:
		"""Close a generic type definition over `args`."""
		key = (generic_def, tuple(args))
		existing = self._instances.get(key)
		if existing is not None:
			return existing
		td = self.get(generic_def)
		if not td.type_params or td.generic_def is not None:
			raise NotGenericTemplateError(f"'{self.label(generic_def)}' is not a generic type definition")
		if len(args) != len(td.type_params):
			raise ArgumentOutOfRangeError(
				f"'{self.label(generic_def)}' expects {len(td.type_params)} type arguments, got {len(args)}"
			)
		from latebind.core.type_subst import Subst, apply_subst

		with self._lock:
			existing = self._instances.get(key)
			if existing is not None:
				return existing
			subst = Subst(owner=td.name, args=tuple(args))
			ty_id = self._publish(
				TypeDef(
					kind=td.kind,
					name=td.name,
					param_types=tuple(args),
					base=apply_subst(td.base, subst, self) if td.base is not None else None,
					interfaces=tuple(apply_subst(i, subst, self) for i in td.interfaces),
					generic_def=generic_def,
					py_type=td.py_type,
				)
			)
			self._instances[key] = ty_id
			return ty_id

	def ensure_typevar(
		self,
		param_id: TypeParamId,
		*,
		name: str,
		constraints: GenericConstraint = GenericConstraint.NONE,
		bounds: Sequence[TypeId] = (),
	) -> TypeId:
		"""Return the interned type variable for `param_id`."""
		existing = self._typevars.get(param_id)
		if existing is not None:
			return existing
		with self._lock:
			existing = self._typevars.get(param_id)
			if existing is not None:
				return existing
			info = TypeVarInfo(param_id=param_id, constraints=constraints, bounds=tuple(bounds))
			ty_id = self._publish(TypeDef(kind=TypeKind.TYPEVAR, name=name, typevar=info))
			self._typevars[param_id] = ty_id
			return ty_id

	def _reserve(self) -> TypeId:
		ty_id = self._next_id
		self._next_id += 1
		return ty_id

	def _publish(self, td: TypeDef) -> TypeId:
		with self._lock:
			ty_id = self._reserve()
			self._defs[ty_id] = td
			return ty_id

	def _publish_named(self, td: TypeDef) -> TypeId:
		ty_id = self._publish(td)
		self._by_name[td.name] = ty_id
		if td.py_type is not None:
			self._by_py_type[td.py_type] = ty_id
		return ty_id

	# --- queries ------------------------------------------------------------

	def get(self, ty: TypeId) -> TypeDef:
		"""Fetch the TypeDef for a given TypeId."""
		return self._defs[ty]

	def lookup(self, name: str) -> TypeId | None:
		"""Return the id of a named (seeded or declared) type, if any."""
		return self._by_name.get(name)

	def scalar(self, code: NumericCode) -> TypeId:
		return self._by_name[code.value]

	def numeric_code(self, ty: TypeId) -> NumericCode | None:
		return self.get(ty).numeric

	def is_optional(self, ty: TypeId) -> bool:
		return self.get(ty).kind is TypeKind.OPTIONAL

	def unwrap_optional(self, ty: TypeId) -> TypeId:
		"""Return T for an optional-of-T, `ty` itself otherwise."""
		td = self.get(ty)
		if td.kind is TypeKind.OPTIONAL:
			return td.param_types[0]
		return ty

	def element_type(self, ty: TypeId) -> TypeId | None:
		td = self.get(ty)
		if td.kind is TypeKind.ARRAY:
			return td.param_types[0]
		return None

	def array_rank(self, ty: TypeId | None) -> int:
		"""Nesting depth of array-of-array types (`int` is 0, `int[][]` is 2)."""
		rank = 0
		while ty is not None:
			td = self.get(ty)
			if td.kind is not TypeKind.ARRAY:
				break
			rank += 1
			ty = td.param_types[0]
		return rank

	def is_generic_definition(self, ty: TypeId) -> bool:
		td = self.get(ty)
		return bool(td.type_params) and td.generic_def is None

	def generic_definition(self, ty: TypeId) -> TypeId | None:
		"""Return the definition an instantiated generic type was closed from."""
		return self.get(ty).generic_def

	def has_typevar(self, ty: TypeId) -> bool:
		"""True if `ty` still mentions an open type parameter anywhere."""
		td = self.get(ty)
		if td.kind is TypeKind.TYPEVAR:
			return True
		if td.type_params and td.generic_def is None:
			return True
		return any(self.has_typevar(p) for p in td.param_types)

	def is_reference_type(self, ty: TypeId) -> bool:
		td = self.get(ty)
		if td.kind in (TypeKind.OBJECT, TypeKind.CLASS, TypeKind.INTERFACE, TypeKind.ARRAY):
			return True
		if td.kind is TypeKind.TYPEVAR and td.typevar is not None:
			if td.typevar.constraints & GenericConstraint.REFERENCE_TYPE:
				return True
			return any(self.get(b).kind is TypeKind.CLASS for b in td.typevar.bounds)
		return False

	def is_value_type(self, ty: TypeId) -> bool:
		td = self.get(ty)
		if td.kind in (TypeKind.SCALAR, TypeKind.STRUCT, TypeKind.OPTIONAL):
			return True
		if td.kind is TypeKind.TYPEVAR and td.typevar is not None:
			return bool(td.typevar.constraints & GenericConstraint.VALUE_TYPE)
		return False

	def base_of(self, ty: TypeId) -> TypeId | None:
		"""Direct base type; None for `object`, `void` and interfaces."""
		td = self.get(ty)
		if td.kind in (TypeKind.OBJECT, TypeKind.VOID, TypeKind.INTERFACE):
			return None
		if td.kind in (TypeKind.ARRAY, TypeKind.OPTIONAL):
			return self.object_type
		if td.kind is TypeKind.TYPEVAR:
			bounds = td.typevar.bounds if td.typevar is not None else ()
			for bound in bounds:
				if self.get(bound).kind is TypeKind.CLASS:
					return bound
			return self.object_type
		return td.base

	def interfaces_of(self, ty: TypeId) -> Tuple[TypeId, ...]:
		"""Directly declared interfaces (interface bounds for type variables)."""
		td = self.get(ty)
		if td.kind is TypeKind.TYPEVAR:
			bounds = td.typevar.bounds if td.typevar is not None else ()
			return tuple(b for b in bounds if self.get(b).kind is TypeKind.INTERFACE)
		return td.interfaces

	def base_chain(self, ty: TypeId) -> List[TypeId]:
		"""Bases of `ty` from the nearest up to `object` (excluding `ty`)."""
		chain: List[TypeId] = []
		cur = self.base_of(ty)
		while cur is not None:
			chain.append(cur)
			cur = self.base_of(cur)
		return chain

	def supertypes(self, ty: TypeId) -> Iterator[TypeId]:
		"""Yield the base chain, then every implemented interface once."""
		chain = self.base_chain(ty)
		yield from chain
		seen: set[TypeId] = set()
		pending: List[TypeId] = [ty, *chain]
		while pending:
			cur = pending.pop(0)
			for iface in self.interfaces_of(cur):
				if iface in seen:
					continue
				seen.add(iface)
				yield iface
				pending.append(iface)

	def hierarchy_depth(self, ty: TypeId) -> int:
		return len(self.base_chain(ty))

	def is_assignable(self, target: TypeId, source: TypeId) -> bool:
		"""
		Native assignability: `source` is `target`, derives from it or
		implements it. Arrays of reference types are covariant.
		"""
		if target == source:
			return True
		tt = self.get(target)
		st = self.get(source)
		if tt.kind is TypeKind.VOID or st.kind is TypeKind.VOID:
			return False
		if tt.kind is TypeKind.OBJECT:
			return True
		if tt.kind is TypeKind.ARRAY and st.kind is TypeKind.ARRAY:
			t_elem = tt.param_types[0]
			s_elem = st.param_types[0]
			return (
				self.is_reference_type(t_elem)
				and self.is_reference_type(s_elem)
				and self.is_assignable(t_elem, s_elem)
			)
		return any(sup == target for sup in self.supertypes(source))

	# --- runtime values -----------------------------------------------------

	def type_of(self, value: Any) -> TypeId | None:
		"""
		Runtime type of a Python value; None stands for the null literal.

		ints pick the narrowest of int/long/ulong that holds them.
		"""
		if value is None:
			return None
		if isinstance(value, bool):
			return self.bool_type
		if isinstance(value, int):
			for code in (NumericCode.INT, NumericCode.LONG, NumericCode.ULONG):
				lo, hi = INTEGRAL_RANGES[code]
				if lo <= value <= hi:
					return self.scalar(code)
			return self.object_type
		if isinstance(value, (list, tuple)):
			return self.ensure_array(self.object_type)
		for cls in type(value).__mro__:
			ty = self._by_py_type.get(cls)
			if ty is not None:
				return ty
		return self.object_type

	def is_instance(self, value: Any, ty: TypeId) -> bool:
		"""Check a runtime value against a type, as a checked cast would."""
		td = self.get(ty)
		if value is None:
			return td.kind is TypeKind.OPTIONAL or self.is_reference_type(ty)
		if td.kind in (TypeKind.OBJECT, TypeKind.TYPEVAR):
			return True
		if td.kind is TypeKind.OPTIONAL:
			return self.is_instance(value, td.param_types[0])
		if td.kind is TypeKind.ARRAY:
			return isinstance(value, (list, tuple))
		if td.kind is TypeKind.SCALAR:
			return _scalar_accepts(td, value)
		if td.kind is TypeKind.VOID:
			return False
		actual = self.type_of(value)
		if actual is not None and actual != self.object_type and self.is_assignable(ty, actual):
			return True
		return td.py_type is not None and isinstance(value, td.py_type)

	def label(self, ty: TypeId | None) -> str:
		"""Human readable rendering of a type, e.g. `List<int>[]` or `int?`."""
		if ty is None:
			return "null"
		td = self.get(ty)
		if td.kind is TypeKind.ARRAY:
			return f"{self.label(td.param_types[0])}[]"
		if td.kind is TypeKind.OPTIONAL:
			return f"{self.label(td.param_types[0])}?"
		if td.generic_def is not None:
			return f"{td.name}<{', '.join(self.label(a) for a in td.param_types)}>"
		if td.type_params:
			return f"{td.name}<{', '.join(self.label(a) for a in td.type_params)}>"
		return td.name


def _scalar_accepts(td: TypeDef, value: Any) -> bool:
	if td.numeric is None:
		return isinstance(value, bool)
	if isinstance(value, bool):
		return False
	code = td.numeric
	if code is NumericCode.CHAR:
		return isinstance(value, str) and len(value) == 1
	if code in (NumericCode.FLOAT, NumericCode.DOUBLE):
		return isinstance(value, float)
	if code is NumericCode.DECIMAL:
		return isinstance(value, Decimal)
	lo, hi = INTEGRAL_RANGES[code]
	return isinstance(value, int) and lo <= value <= hi


__all__ = [
	"TypeId",
	"TypeRef",
	"TypeKind",
	"NumericCode",
	"INTEGRAL_RANGES",
	"SIGNED_CODES",
	"UNSIGNED_CODES",
	"GenericConstraint",
	"TypeParamId",
	"TypeVarInfo",
	"TypeDef",
	"TypeTable",
]
