# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Member registry: the host's member metadata for late-bound resolution.

Constructors, methods, properties, fields and conversion operators are
declared against TypeTable ids together with the raw Python callables that
actually perform the call. The registry does not pick overloads; it only
enumerates candidates (declared plus inherited, closed over the type
arguments of generic instances). The resolver applies matching, inference and
ranking on top of that.

Raw invoke primitives follow one convention:
  - constructors and static methods: `invoker(*args)`
  - instance methods: `invoker(instance, *args)`
  - property/field getters: `getter(instance)` or `getter()` when static
  - property/field setters: `setter(instance, value)` or `setter(value)`
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from latebind.core.errors import (
	ArgumentOutOfRangeError,
	InvalidRegistrationError,
	NotGenericTemplateError,
	check_argument_null,
)
from latebind.core.type_subst import Subst, apply_mapping, apply_subst
from latebind.core.types_core import TypeId, TypeKind, TypeRef, TypeTable

CONSTRUCTOR_NAME = ".ctor"
IMPLICIT_OPERATOR = "op_Implicit"
EXPLICIT_OPERATOR = "op_Explicit"


class MemberKind(Enum):
	CONSTRUCTOR = auto()
	METHOD = auto()
	PROPERTY = auto()
	FIELD = auto()


@dataclass(frozen=True)
class Visibility:
	"""Two-level visibility; non-public members need an explicit opt-in."""

	is_public: bool

	@staticmethod
	def public() -> "Visibility":
		return Visibility(is_public=True)

	@staticmethod
	def non_public() -> "Visibility":
		return Visibility(is_public=False)


class _NoDefault:
	def __repr__(self) -> str:
		return "NO_DEFAULT"


# Marker for "this parameter has no declared default".
NO_DEFAULT: Any = _NoDefault()


@dataclass(frozen=True)
class CallableSignature:
	"""Fully resolved parameter/return types of a constructor or method."""

	param_types: Tuple[TypeId, ...]
	return_type: TypeId
	is_variadic: bool = False
	# Method-level type variables; empty for non-generic members.
	type_params: Tuple[TypeId, ...] = ()


SignatureRef = Union[CallableSignature, str]


@dataclass(frozen=True, eq=False)
class CandidateMember:
	"""
	One constructor, method, property or field as seen by the resolver.

	For properties and fields `param_types` is empty and `return_type` is the
	value type. A generic method keeps its type variables in `generic_params`
	until `instantiate` closes it; the closed copy records `type_args`.
	"""

	kind: MemberKind
	name: str
	declaring_type: TypeId
	param_types: Tuple[TypeId, ...]
	return_type: TypeId
	is_static: bool = False
	is_variadic: bool = False
	defaults: Tuple[Any, ...] = ()
	generic_params: Tuple[TypeId, ...] = ()
	visibility: Visibility = Visibility.public()
	invoker: Optional[Callable[..., Any]] = None
	getter: Optional[Callable[..., Any]] = None
	setter: Optional[Callable[..., Any]] = None
	ordinal: int = 0
	type_args: Tuple[TypeId, ...] = ()
	readonly: bool = False

	@property
	def key(self) -> Tuple[TypeId, MemberKind, str, int, Tuple[TypeId, ...]]:
		"""Stable identity of the (possibly closed) member, usable as a cache key."""
		return (self.declaring_type, self.kind, self.name, self.ordinal, self.type_args)

	@property
	def arity(self) -> int:
		return len(self.param_types)

	@property
	def is_generic(self) -> bool:
		return bool(self.generic_params)

	@property
	def was_generic(self) -> bool:
		"""True for a member closed from a generic method definition."""
		return bool(self.type_args)

	@property
	def signature(self) -> CallableSignature:
		return CallableSignature(
			param_types=self.param_types,
			return_type=self.return_type,
			is_variadic=self.is_variadic,
			type_params=self.generic_params,
		)

	def has_default(self, index: int) -> bool:
		return index < len(self.defaults) and self.defaults[index] is not NO_DEFAULT

	def instantiate(self, table: TypeTable, type_args: Sequence[TypeId]) -> "CandidateMember":
		"""Close a generic method over `type_args` (in declaration order)."""
		if not self.generic_params:
			raise NotGenericTemplateError(f"member '{self.name}' is not a generic method definition")
		if len(type_args) != len(self.generic_params):
			raise ArgumentOutOfRangeError(
				f"member '{self.name}' expects {len(self.generic_params)} type arguments, got {len(type_args)}"
			)
		mapping = dict(zip(self.generic_params, type_args))
		return replace(
			self,
			param_types=tuple(apply_mapping(p, mapping, table) for p in self.param_types),
			return_type=apply_mapping(self.return_type, mapping, table),
			generic_params=(),
			type_args=tuple(type_args),
		)


class _StaticCell:
	"""Storage for a static field."""

	__slots__ = ("value",)

	def __init__(self, value: Any) -> None:
		self.value = value

	def get(self) -> Any:
		return self.value

	def set(self, value: Any) -> None:
		self.value = value


class MemberRegistry:
	"""
	Store member declarations per type and enumerate resolution candidates.

	Registration is expected up front, but it is lock-protected so late
	registrations are safe; every registration bumps `generation`, which
	callers fold into their binding caches so stale bindings are never reused.
	"""

	def __init__(self, table: TypeTable) -> None:
		self.table = table
		self._declared: Dict[TypeId, List[CandidateMember]] = {}
		self._by_name: Dict[Tuple[TypeId, str], List[CandidateMember]] = {}
		self._operators: Dict[TypeId, List[CandidateMember]] = {}
		self._lock = threading.Lock()
		self._ordinal = 0
		self._signature_seq = 0
		self._generation = 0

	@property
	def generation(self) -> int:
		return self._generation

	# --- registration -------------------------------------------------------

	def add_constructor(
		self,
		type_id: TypeId,
		signature: SignatureRef = "()",
		invoker: Optional[Callable[..., Any]] = None,
		*,
		defaults: Sequence[Any] = (),
		visibility: Visibility = Visibility.public(),
	) -> CandidateMember:
		"""Declare a constructor; `invoker` defaults to the type's Python class."""
		td = self.table.get(type_id)
		if invoker is None:
			invoker = td.py_type
		if invoker is None:
			raise InvalidRegistrationError(f"constructor of '{self.table.label(type_id)}' needs an invoker")
		sig = self._signature(type_id, CONSTRUCTOR_NAME, signature)
		if sig.type_params:
			raise InvalidRegistrationError("constructors cannot declare type parameters")
		return self._add(
			type_id,
			MemberKind.CONSTRUCTOR,
			CONSTRUCTOR_NAME,
			replace(sig, return_type=type_id),
			is_static=True,
			defaults=defaults,
			visibility=visibility,
			invoker=invoker,
		)

	def add_method(
		self,
		type_id: TypeId,
		name: str,
		signature: SignatureRef,
		invoker: Callable[..., Any],
		*,
		static: bool = False,
		defaults: Sequence[Any] = (),
		visibility: Visibility = Visibility.public(),
	) -> CandidateMember:
		check_argument_null(invoker, "invoker")
		sig = self._signature(type_id, name, signature)
		return self._add(
			type_id,
			MemberKind.METHOD,
			name,
			sig,
			is_static=static,
			defaults=defaults,
			visibility=visibility,
			invoker=invoker,
		)

	def add_property(
		self,
		type_id: TypeId,
		name: str,
		value_type: TypeRef,
		*,
		getter: Optional[Callable[..., Any]] = None,
		setter: Optional[Callable[..., Any]] = None,
		static: bool = False,
		visibility: Visibility = Visibility.public(),
	) -> CandidateMember:
		if getter is None and setter is None:
			raise InvalidRegistrationError(f"property '{name}' needs a getter or a setter")
		vt = self._value_type(type_id, value_type)
		return self._add(
			type_id,
			MemberKind.PROPERTY,
			name,
			CallableSignature(param_types=(), return_type=vt),
			is_static=static,
			visibility=visibility,
			getter=getter,
			setter=setter,
			readonly=setter is None,
		)

	def add_field(
		self,
		type_id: TypeId,
		name: str,
		value_type: TypeRef,
		*,
		static: bool = False,
		readonly: bool = False,
		initial: Any = None,
		visibility: Visibility = Visibility.public(),
	) -> CandidateMember:
		"""
		Declare a field. Instance fields live in the instance's attributes;
		static fields get a private cell initialised with `initial`.
		"""
		vt = self._value_type(type_id, value_type)
		getter: Callable[..., Any]
		setter: Optional[Callable[..., Any]]
		if static:
			cell = _StaticCell(initial)
			getter, setter = cell.get, cell.set
		else:

			def getter(obj: Any, _name: str = name) -> Any:
				return getattr(obj, _name)

			def setter(obj: Any, value: Any, _name: str = name) -> None:
				setattr(obj, _name, value)

		return self._add(
			type_id,
			MemberKind.FIELD,
			name,
			CallableSignature(param_types=(), return_type=vt),
			is_static=static,
			visibility=visibility,
			getter=getter,
			setter=None if readonly else setter,
			readonly=readonly,
		)

	def add_conversion(
		self,
		type_id: TypeId,
		source: TypeRef,
		target: TypeRef,
		invoker: Callable[..., Any],
		*,
		implicit: bool = True,
	) -> CandidateMember:
		"""
		Declare a user conversion operator on `type_id`; one side of the
		conversion must be the declaring type itself.
		"""
		check_argument_null(invoker, "invoker")
		src = self._value_type(type_id, source)
		dst = self._value_type(type_id, target)
		if type_id not in (src, dst):
			raise InvalidRegistrationError(
				f"conversion declared on '{self.table.label(type_id)}' must convert from or to that type"
			)
		if src == dst:
			raise InvalidRegistrationError("a conversion operator cannot convert a type to itself")
		name = IMPLICIT_OPERATOR if implicit else EXPLICIT_OPERATOR
		member = self._add(
			type_id,
			MemberKind.METHOD,
			name,
			CallableSignature(param_types=(src,), return_type=dst),
			is_static=True,
			invoker=invoker,
		)
		with self._lock:
			self._operators.setdefault(type_id, []).append(member)
		return member

	def _add(
		self,
		type_id: TypeId,
		kind: MemberKind,
		name: str,
		sig: CallableSignature,
		*,
		is_static: bool,
		defaults: Sequence[Any] = (),
		visibility: Visibility = Visibility.public(),
		invoker: Optional[Callable[..., Any]] = None,
		getter: Optional[Callable[..., Any]] = None,
		setter: Optional[Callable[..., Any]] = None,
		readonly: bool = False,
	) -> CandidateMember:
		check_argument_null(name, "name")
		self._check_declaring_type(type_id)
		full_defaults = _expand_defaults(name, sig, defaults)
		with self._lock:
			self._ordinal += 1
			member = CandidateMember(
				kind=kind,
				name=name,
				declaring_type=type_id,
				param_types=sig.param_types,
				return_type=sig.return_type,
				is_static=is_static,
				is_variadic=sig.is_variadic,
				defaults=full_defaults,
				generic_params=sig.type_params,
				visibility=visibility,
				invoker=invoker,
				getter=getter,
				setter=setter,
				ordinal=self._ordinal,
				readonly=readonly,
			)
			self._declared.setdefault(type_id, []).append(member)
			self._by_name.setdefault((type_id, name), []).append(member)
			self._generation += 1
		return member

	def _check_declaring_type(self, type_id: TypeId) -> None:
		td = self.table.get(type_id)
		if td.kind in (TypeKind.VOID, TypeKind.ARRAY, TypeKind.OPTIONAL, TypeKind.TYPEVAR):
			raise InvalidRegistrationError(f"members cannot be declared on '{self.table.label(type_id)}'")
		if td.generic_def is not None:
			raise InvalidRegistrationError(
				f"members of '{self.table.label(type_id)}' are declared on its generic definition"
			)

	def _signature(self, type_id: TypeId, name: str, signature: SignatureRef) -> CallableSignature:
		if isinstance(signature, CallableSignature):
			return signature
		from latebind.type_parser.parser import TypeParser

		with self._lock:
			self._signature_seq += 1
			seq = self._signature_seq
		owner = f"{self.table.get(type_id).name}.{name}#{seq}"
		parsed = TypeParser(self.table).parse_signature(signature, owner=owner, scope=self._scope(type_id))
		return CallableSignature(
			param_types=parsed.param_types,
			return_type=parsed.return_type,
			is_variadic=parsed.is_variadic,
			type_params=parsed.type_params,
		)

	def _value_type(self, type_id: TypeId, ref: TypeRef) -> TypeId:
		if isinstance(ref, str):
			from latebind.type_parser.parser import TypeParser

			ty = TypeParser(self.table).parse_type(ref, scope=self._scope(type_id))
		else:
			ty = ref
		if ty == self.table.void_type:
			raise InvalidRegistrationError("a value type cannot be void")
		return ty

	def _scope(self, type_id: TypeId) -> Dict[str, TypeId]:
		return {self.table.get(tv).name: tv for tv in self.table.get(type_id).type_params}

	# --- queries ------------------------------------------------------------

	def declared(self, type_id: TypeId) -> Tuple[CandidateMember, ...]:
		"""Members declared directly on `type_id` (closed for generic instances)."""
		owner, subst = self._owner(type_id)
		members = tuple(self._declared.get(owner, ()))
		if subst is None:
			return members
		return tuple(self._close_over_type(m, type_id, subst) for m in members)

	def members(
		self,
		type_id: TypeId,
		name: str,
		kinds: Optional[Iterable[MemberKind]] = None,
	) -> List[CandidateMember]:
		"""
		Enumerate candidates named `name` visible on `type_id`, most derived first.

		Constructors are never inherited. A base method is hidden by a derived
		one with the same kind, staticness and parameter list; a base property
		or field is hidden by any derived property or field of the same name.
		"""
		check_argument_null(name, "name")
		wanted = frozenset(kinds) if kinds is not None else frozenset(MemberKind)
		result: List[CandidateMember] = []
		hidden_sigs: set = set()
		hidden_values = False
		for level, owner_type in enumerate(self._lookup_chain(type_id)):
			level_sigs: set = set()
			level_values = False
			for member in self._named(owner_type, name):
				if member.kind is MemberKind.CONSTRUCTOR and level > 0:
					continue
				if member.kind in (MemberKind.PROPERTY, MemberKind.FIELD):
					if hidden_values:
						continue
					level_values = True
				else:
					sig = (member.kind, member.is_static, member.param_types, member.is_variadic)
					if sig in hidden_sigs:
						continue
					level_sigs.add(sig)
				if member.kind in wanted:
					result.append(member)
			hidden_sigs |= level_sigs
			hidden_values = hidden_values or level_values
		return result

	def constructors(self, type_id: TypeId) -> List[CandidateMember]:
		return self.members(type_id, CONSTRUCTOR_NAME, (MemberKind.CONSTRUCTOR,))

	def operators(self, type_id: TypeId) -> Tuple[CandidateMember, ...]:
		"""Conversion operators declared directly on `type_id`."""
		owner, subst = self._owner(type_id)
		ops = tuple(self._operators.get(owner, ()))
		if subst is None:
			return ops
		return tuple(self._close_over_type(m, type_id, subst) for m in ops)

	def _named(self, type_id: TypeId, name: str) -> Tuple[CandidateMember, ...]:
		owner, subst = self._owner(type_id)
		members = tuple(self._by_name.get((owner, name), ()))
		if subst is None:
			return members
		return tuple(self._close_over_type(m, type_id, subst) for m in members)

	def _owner(self, type_id: TypeId) -> Tuple[TypeId, Optional[Subst]]:
		td = self.table.get(type_id)
		if td.generic_def is None:
			return type_id, None
		def_td = self.table.get(td.generic_def)
		return td.generic_def, Subst(owner=def_td.name, args=td.param_types)

	def _close_over_type(self, member: CandidateMember, type_id: TypeId, subst: Subst) -> CandidateMember:
		return replace(
			member,
			declaring_type=type_id,
			param_types=tuple(apply_subst(p, subst, self.table) for p in member.param_types),
			return_type=(
				type_id
				if member.kind is MemberKind.CONSTRUCTOR
				else apply_subst(member.return_type, subst, self.table)
			),
		)

	def _lookup_chain(self, type_id: TypeId) -> List[TypeId]:
		td = self.table.get(type_id)
		if td.kind is TypeKind.INTERFACE:
			chain = [type_id]
			chain.extend(self.table.supertypes(type_id))
			return chain
		return [type_id, *self.table.base_chain(type_id)]


def _expand_defaults(name: str, sig: CallableSignature, defaults: Sequence[Any]) -> Tuple[Any, ...]:
	"""Right-align trailing defaults against the parameter list, Python style."""
	fixed = len(sig.param_types) - (1 if sig.is_variadic else 0)
	if len(defaults) > fixed:
		raise InvalidRegistrationError(
			f"'{name}' declares {len(defaults)} defaults for {fixed} non-variadic parameters"
		)
	pad = (NO_DEFAULT,) * (fixed - len(defaults))
	tail = (NO_DEFAULT,) if sig.is_variadic else ()
	return pad + tuple(defaults) + tail


__all__ = [
	"CONSTRUCTOR_NAME",
	"IMPLICIT_OPERATOR",
	"EXPLICIT_OPERATOR",
	"MemberKind",
	"Visibility",
	"NO_DEFAULT",
	"CallableSignature",
	"SignatureRef",
	"CandidateMember",
	"MemberRegistry",
]
