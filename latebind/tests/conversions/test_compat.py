# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
import pytest

from latebind.compat import ConversionLevel, TypeCompatibilityOracle
from latebind.conversions import ConversionOperatorCache
from latebind.core.errors import ArgumentNullError
from latebind.core.types_core import NumericCode, TypeTable
from latebind.member_registry import MemberRegistry


class _Celsius:
	def __init__(self, deg):
		self.deg = deg


def _oracle():
	table = TypeTable()
	registry = MemberRegistry(table)
	return table, registry, TypeCompatibilityOracle(table, ConversionOperatorCache(registry))


def test_numeric_widening_direction():
	table, _, oracle = _oracle()
	int_ty = table.scalar(NumericCode.INT)
	long_ty = table.scalar(NumericCode.LONG)
	assert oracle.is_implicitly_convertible(long_ty, int_ty)
	assert not oracle.is_implicitly_convertible(int_ty, long_ty)
	assert oracle.is_explicitly_convertible(int_ty, long_ty)
	assert oracle.is_implicitly_convertible(table.scalar(NumericCode.INT), table.scalar(NumericCode.CHAR))
	assert not oracle.is_implicitly_convertible(table.scalar(NumericCode.CHAR), table.scalar(NumericCode.BYTE))
	assert not oracle.is_implicitly_convertible(
		table.scalar(NumericCode.DECIMAL), table.scalar(NumericCode.DOUBLE)
	)


def test_null_arguments_rejected():
	table, _, oracle = _oracle()
	with pytest.raises(ArgumentNullError):
		oracle.is_implicitly_convertible(None, table.string_type)
	with pytest.raises(ArgumentNullError):
		oracle.is_explicitly_convertible(table.string_type, None)


def test_reference_conversions():
	table, _, oracle = _oracle()
	animal = table.declare_class("Animal")
	dog = table.declare_class("Dog", base=animal)
	pet = table.declare_interface("IPet")
	assert oracle.is_implicitly_convertible(animal, dog)
	assert not oracle.is_implicitly_convertible(dog, animal)
	assert oracle.is_explicitly_convertible(dog, animal)
	assert oracle.is_explicitly_convertible(dog, table.object_type)
	# Unrelated class and interface: an explicit cast may still succeed at runtime.
	assert oracle.is_explicitly_convertible(pet, animal)
	assert not oracle.is_implicitly_convertible(pet, animal)
	assert not oracle.is_explicitly_convertible(table.string_type, animal)


def test_optional_conversions():
	table, _, oracle = _oracle()
	int_ty = table.scalar(NumericCode.INT)
	opt_int = table.ensure_optional(int_ty)
	opt_long = table.ensure_optional(table.scalar(NumericCode.LONG))
	assert oracle.is_implicitly_convertible(opt_int, int_ty)
	assert oracle.is_implicitly_convertible(opt_long, opt_int)
	assert oracle.is_implicitly_convertible(table.object_type, opt_int)
	assert not oracle.is_implicitly_convertible(int_ty, opt_int)
	assert oracle.is_explicitly_convertible(int_ty, opt_int)
	assert oracle.is_explicitly_convertible(int_ty, opt_long)


def test_classify_levels():
	table, _, oracle = _oracle()
	int_ty = table.scalar(NumericCode.INT)
	long_ty = table.scalar(NumericCode.LONG)
	assert oracle.classify(int_ty, int_ty) is ConversionLevel.EXACT
	assert oracle.classify(long_ty, int_ty) is ConversionLevel.IMPLICIT
	assert oracle.classify(int_ty, long_ty) is None
	assert oracle.classify(int_ty, long_ty, explicit=True) is ConversionLevel.EXPLICIT
	assert oracle.classify(table.string_type, None) is ConversionLevel.IMPLICIT
	assert oracle.classify(int_ty, None) is None
	assert oracle.classify(table.ensure_optional(int_ty), None) is ConversionLevel.IMPLICIT


def test_user_implicit_operator_joins_standard_conversions():
	table, registry, oracle = _oracle()
	celsius = table.declare_struct("Celsius", py_type=_Celsius)
	double = table.scalar(NumericCode.DOUBLE)
	op = registry.add_conversion(celsius, "double", celsius, _Celsius)
	registry.add_conversion(celsius, celsius, "double", lambda c: c.deg, implicit=False)
	assert oracle.is_implicitly_convertible(celsius, double)
	# int -> double (standard) -> Celsius (operator)
	assert oracle.is_implicitly_convertible(celsius, table.scalar(NumericCode.INT))
	assert oracle.classify(celsius, double) is ConversionLevel.USER_IMPLICIT
	assert not oracle.is_implicitly_convertible(double, celsius)
	assert oracle.is_explicitly_convertible(double, celsius)
	conv = oracle.find_user_conversion(celsius, table.scalar(NumericCode.INT), explicit=False)
	assert conv.operator is op
	assert conv.from_type == double
	assert conv.to_type == celsius
	assert conv.implicit


def test_user_operator_lifts_over_optionals():
	table, registry, oracle = _oracle()
	celsius = table.declare_struct("Celsius", py_type=_Celsius)
	double = table.scalar(NumericCode.DOUBLE)
	registry.add_conversion(celsius, "double", celsius, _Celsius)
	opt_double = table.ensure_optional(double)
	assert oracle.is_implicitly_convertible(table.ensure_optional(celsius), opt_double)
	assert not oracle.is_implicitly_convertible(celsius, opt_double)
	assert oracle.is_explicitly_convertible(celsius, opt_double)


def test_user_operators_do_not_chain():
	table, registry, oracle = _oracle()
	a = table.declare_class("A")
	b = table.declare_class("B")
	c = table.declare_class("C")
	registry.add_conversion(b, a, b, lambda v: v)
	registry.add_conversion(c, b, c, lambda v: v)
	assert oracle.is_implicitly_convertible(b, a)
	assert oracle.is_implicitly_convertible(c, b)
	assert not oracle.is_implicitly_convertible(c, a)


def test_most_specific_source_wins():
	table, registry, oracle = _oracle()
	target = table.declare_class("Target")
	registry.add_conversion(target, "long", target, lambda v: ("long", v))
	from_int = registry.add_conversion(target, "int", target, lambda v: ("int", v))
	conv = oracle.find_user_conversion(target, table.scalar(NumericCode.SHORT), explicit=False)
	assert conv.operator is from_int
	exact = oracle.find_user_conversion(target, table.scalar(NumericCode.LONG), explicit=False)
	assert exact.from_type == table.scalar(NumericCode.LONG)
