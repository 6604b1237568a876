# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Member declaration and candidate enumeration."""

import pytest

from latebind.core.errors import (
	ArgumentNullError,
	ArgumentOutOfRangeError,
	BindingError,
	InvalidRegistrationError,
	NotGenericTemplateError,
)
from latebind.core.types_core import NumericCode, TypeTable
from latebind.member_registry import (
	CONSTRUCTOR_NAME,
	NO_DEFAULT,
	MemberKind,
	MemberRegistry,
	Visibility,
)


class _Point:
	def __init__(self, x=0, y=0):
		self.x = x
		self.y = y


def _hierarchy():
	table = TypeTable()
	registry = MemberRegistry(table)
	base = table.declare_class("Base")
	derived = table.declare_class("Derived", base=base)
	return table, registry, base, derived


def test_method_signature_is_parsed():
	table, registry, base, _ = _hierarchy()
	member = registry.add_method(base, "Scale", "(int, double) -> double", lambda self, a, b: a * b)
	assert member.kind is MemberKind.METHOD
	assert member.param_types == (table.scalar(NumericCode.INT), table.scalar(NumericCode.DOUBLE))
	assert member.return_type == table.scalar(NumericCode.DOUBLE)
	assert member.declaring_type == base
	assert not member.is_static
	assert member.visibility == Visibility.public()


def test_generation_and_ordinals_grow():
	_, registry, base, _ = _hierarchy()
	start = registry.generation
	first = registry.add_method(base, "F", "()", lambda self: None)
	second = registry.add_method(base, "F", "(int)", lambda self, x: None)
	assert registry.generation == start + 2
	assert first.ordinal < second.ordinal
	assert first.key != second.key


def test_inherited_members_listed_most_derived_first():
	_, registry, base, derived = _hierarchy()
	registry.add_method(base, "Speak", "(int) -> string", lambda self, x: "base")
	registry.add_method(derived, "Speak", "(string) -> string", lambda self, x: "derived")
	found = registry.members(derived, "Speak")
	assert [m.declaring_type for m in found] == [derived, base]
	assert registry.members(base, "Speak")[0].declaring_type == base
	assert registry.members(derived, "Missing") == []


def test_same_signature_hides_base_method():
	_, registry, base, derived = _hierarchy()
	registry.add_method(base, "Speak", "(int) -> string", lambda self, x: "base")
	registry.add_method(derived, "Speak", "(int) -> string", lambda self, x: "derived")
	found = registry.members(derived, "Speak")
	assert len(found) == 1
	assert found[0].declaring_type == derived


def test_static_and_instance_do_not_hide_each_other():
	_, registry, base, derived = _hierarchy()
	registry.add_method(base, "Make", "(int)", lambda x: None, static=True)
	registry.add_method(derived, "Make", "(int)", lambda self, x: None)
	assert len(registry.members(derived, "Make")) == 2


def test_property_hides_base_value_member_by_name():
	_, registry, base, derived = _hierarchy()
	registry.add_field(base, "Size", "int")
	registry.add_property(derived, "Size", "long", getter=lambda self: 1)
	found = registry.members(derived, "Size")
	assert len(found) == 1
	assert found[0].kind is MemberKind.PROPERTY


def test_constructors_are_not_inherited():
	table = TypeTable()
	registry = MemberRegistry(table)
	point = table.declare_class("Point", py_type=_Point)
	sub = table.declare_class("Point3", base=point)
	ctor = registry.add_constructor(point, "(int, int)")
	assert ctor.name == CONSTRUCTOR_NAME
	assert ctor.return_type == point
	assert ctor.invoker is _Point
	assert registry.constructors(point) == [ctor]
	assert registry.constructors(sub) == []
	with pytest.raises(InvalidRegistrationError):
		registry.add_constructor(sub)


def test_kind_filter():
	_, registry, base, _ = _hierarchy()
	registry.add_method(base, "Value", "() -> int", lambda self: 1)
	registry.add_property(base, "Value", "int", getter=lambda self: 2)
	assert [m.kind for m in registry.members(base, "Value", (MemberKind.PROPERTY,))] == [MemberKind.PROPERTY]
	assert len(registry.members(base, "Value")) == 2


def test_defaults_are_right_aligned():
	_, registry, base, _ = _hierarchy()
	member = registry.add_method(base, "Greet", "(string, string, int)", lambda *a: None, defaults=("hi", 3))
	assert member.defaults == (NO_DEFAULT, "hi", 3)
	assert not member.has_default(0)
	assert member.has_default(1)
	variadic = registry.add_method(base, "Log", "(string, params object[])", lambda *a: None, defaults=("x",))
	assert variadic.defaults == ("x", NO_DEFAULT)
	with pytest.raises(InvalidRegistrationError):
		registry.add_method(base, "Bad", "(int)", lambda *a: None, defaults=(1, 2))


def test_invalid_registrations():
	table, registry, base, _ = _hierarchy()
	with pytest.raises(ArgumentNullError):
		registry.add_method(base, "F", "()", None)
	with pytest.raises(InvalidRegistrationError):
		registry.add_property(base, "P", "int")
	with pytest.raises(BindingError):
		registry.add_field(base, "F", "void")
	with pytest.raises(InvalidRegistrationError):
		registry.add_method(table.ensure_array(base), "F", "()", lambda self: None)
	box = table.declare_class("Box", type_params=["T"])
	with pytest.raises(InvalidRegistrationError):
		registry.add_method(table.ensure_instantiated(box, [base]), "F", "()", lambda self: None)


def test_declaration_failures_are_binding_errors():
	table, registry, base, _ = _hierarchy()
	with pytest.raises(BindingError):
		table.declare_class("Base")
	with pytest.raises(BindingError):
		registry.add_conversion(base, base, base, lambda v: v)
	with pytest.raises(BindingError):
		table.type_param(base, "T")


def test_conversion_operators_must_involve_declaring_type():
	table, registry, base, derived = _hierarchy()
	op = registry.add_conversion(base, "int", base, lambda v: v)
	assert registry.operators(base) == (op,)
	assert op.is_static
	assert op.name == "op_Implicit"
	explicit = registry.add_conversion(base, base, "string", str, implicit=False)
	assert explicit.name == "op_Explicit"
	with pytest.raises(InvalidRegistrationError):
		registry.add_conversion(base, "int", "string", str)
	with pytest.raises(InvalidRegistrationError):
		registry.add_conversion(base, base, base, lambda v: v)
	assert registry.operators(derived) == ()


def test_generic_type_members_are_closed_over_instance():
	table = TypeTable()
	registry = MemberRegistry(table)
	box = table.declare_class("Box", type_params=["T"])
	registry.add_method(box, "Put", "(T, T[]) -> T?", lambda self, a, b: a)
	int_ty = table.scalar(NumericCode.INT)
	box_int = table.ensure_instantiated(box, [int_ty])
	(closed,) = registry.members(box_int, "Put")
	assert closed.declaring_type == box_int
	assert closed.param_types == (int_ty, table.ensure_array(int_ty))
	assert closed.return_type == table.ensure_optional(int_ty)
	(declared,) = registry.declared(box_int)
	assert declared.param_types == closed.param_types


def test_generic_method_instantiation():
	table, registry, base, _ = _hierarchy()
	generic = registry.add_method(base, "First", "<T>(T[]) -> T", lambda self, xs: xs[0])
	assert generic.is_generic
	assert not generic.was_generic
	closed = generic.instantiate(table, [table.string_type])
	assert closed.param_types == (table.ensure_array(table.string_type),)
	assert closed.return_type == table.string_type
	assert closed.was_generic
	assert not closed.is_generic
	assert closed.key != generic.key
	with pytest.raises(NotGenericTemplateError):
		closed.instantiate(table, [table.string_type])
	with pytest.raises(ArgumentOutOfRangeError):
		generic.instantiate(table, [])


def test_generic_method_typevars_are_per_registration():
	_, registry, base, _ = _hierarchy()
	a = registry.add_method(base, "Id", "<T>(T) -> T", lambda self, v: v)
	b = registry.add_method(base, "Id", "<T>(T[]) -> T", lambda self, v: v)
	assert a.generic_params != b.generic_params


def test_field_storage():
	table = TypeTable()
	registry = MemberRegistry(table)
	point = table.declare_class("Point", py_type=_Point)
	field = registry.add_field(point, "x", "int")
	p = _Point(1, 2)
	assert field.getter(p) == 1
	field.setter(p, 5)
	assert p.x == 5
	counter = registry.add_field(point, "Count", "int", static=True, initial=3)
	assert counter.getter() == 3
	counter.setter(4)
	assert counter.getter() == 4
	frozen = registry.add_field(point, "Origin", "int", static=True, readonly=True, initial=0)
	assert frozen.setter is None
	assert frozen.readonly
