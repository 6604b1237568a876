# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Property/field accessors built from a getter thunk and a setter thunk."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional

from latebind.core.errors import (
	ArgumentNullError,
	MissingGetterError,
	MissingMemberError,
	MissingSetterError,
	check_argument_null,
)
from latebind.core.types_core import TypeId
from latebind.member_resolver import BindFlags, Shape
from latebind.thunks import InvocationThunk

if TYPE_CHECKING:
	from latebind.binder import Binder

_ACCESS_FLAGS = (
	BindFlags.PUBLIC
	| BindFlags.GET_PROPERTY
	| BindFlags.SET_PROPERTY
	| BindFlags.GET_FIELD
	| BindFlags.SET_FIELD
)


class MemberAccessor:
	"""
	Read/write handle on one property or field.

	The getter and setter are resolved independently; either may be missing,
	but not both. With the default `object` value type the setter binds with
	explicit coercion, so values are cast (and checked) at set time.
	"""

	def __init__(self, name: str, getter: Optional[InvocationThunk], setter: Optional[InvocationThunk]) -> None:
		if getter is None and setter is None:
			raise MissingMemberError(f"'{name}' is neither a readable nor a writable property or field")
		self._name = name
		self._getter = getter
		self._setter = setter

	@property
	def name(self) -> str:
		return self._name

	@property
	def can_read(self) -> bool:
		return self._getter is not None

	@property
	def can_write(self) -> bool:
		return self._setter is not None

	def get(self) -> Any:
		if self._getter is None:
			raise MissingGetterError(f"'{self._name}' has no getter")
		return self._getter()

	def set(self, value: Any) -> None:
		if self._setter is None:
			raise MissingSetterError(f"'{self._name}' has no setter")
		self._setter(value)

	@classmethod
	def for_instance(
		cls,
		binder: "Binder",
		target: Any,
		name: str,
		value_type: Optional[TypeId] = None,
		non_public: bool = False,
	) -> "MemberAccessor":
		check_argument_null(name, "name")
		if target is None:
			raise ArgumentNullError("target")
		flags = _ACCESS_FLAGS | BindFlags.INSTANCE
		if non_public:
			flags |= BindFlags.NON_PUBLIC
		vt = binder.table.object_type if value_type is None else value_type
		get_shape = Shape((), vt, True)
		set_shape = Shape((vt,), binder.table.void_type, True)
		set_flags = _set_flags(binder, flags, vt)
		getter = _optional(lambda: binder.resolve_bound(target, name, get_shape, flags))
		setter = _optional(lambda: binder.resolve_bound(target, name, set_shape, set_flags))
		return cls(name, getter, setter)

	@classmethod
	def for_static(
		cls,
		binder: "Binder",
		type_id: TypeId,
		name: str,
		value_type: Optional[TypeId] = None,
		non_public: bool = False,
	) -> "MemberAccessor":
		check_argument_null(type_id, "type_id")
		check_argument_null(name, "name")
		flags = _ACCESS_FLAGS | BindFlags.STATIC
		if non_public:
			flags |= BindFlags.NON_PUBLIC
		vt = binder.table.object_type if value_type is None else value_type
		get_shape = Shape((), vt)
		set_shape = Shape((vt,), binder.table.void_type)
		set_flags = _set_flags(binder, flags, vt)
		getter = _optional(lambda: binder.resolve(type_id, name, get_shape, flags))
		setter = _optional(lambda: binder.resolve(type_id, name, set_shape, set_flags))
		return cls(name, getter, setter)

	def __repr__(self) -> str:
		return f"<MemberAccessor {self._name} get={self.can_read} set={self.can_write}>"


def _set_flags(binder: "Binder", flags: BindFlags, value_type: TypeId) -> BindFlags:
	if value_type == binder.table.object_type:
		return flags | BindFlags.EXPLICIT
	return flags


def _optional(resolve: Callable[[], InvocationThunk]) -> Optional[InvocationThunk]:
	try:
		return resolve()
	except MissingMemberError:
		return None


__all__ = ["MemberAccessor"]
