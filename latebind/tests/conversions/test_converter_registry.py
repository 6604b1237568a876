# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
import pytest

from latebind.coercions import ConverterCall, CoercionPlanner, LiftedCoercion, UnwrapOptional
from latebind.compat import TypeCompatibilityOracle
from latebind.conversions import ConversionOperatorCache
from latebind.converters import ConverterRegistry
from latebind.core.errors import ArgumentNullError, InvalidCastError
from latebind.core.types_core import NumericCode, TypeTable
from latebind.member_registry import MemberRegistry


def _planner():
	table = TypeTable()
	registry = MemberRegistry(table)
	converters = ConverterRegistry(table)
	oracle = TypeCompatibilityOracle(table, ConversionOperatorCache(registry))
	return table, converters, CoercionPlanner(table, oracle, converters)


def test_find_walks_source_supertypes():
	table = TypeTable()
	iface = table.declare_interface("INamed")
	base = table.declare_class("Base", interfaces=[iface])
	derived = table.declare_class("Derived", base=base)
	converters = ConverterRegistry(table)
	assert converters.find(derived, table.string_type) is None
	by_iface = lambda value: "iface"
	by_base = lambda value: "base"
	converters.add(iface, table.string_type, by_iface)
	assert converters.find(derived, table.string_type) is by_iface
	converters.add(base, table.string_type, by_base)
	assert converters.find(derived, table.string_type) is by_base
	assert converters.find(derived, table.bool_type) is None
	assert converters.generation == 2
	assert len(converters) == 2


def test_later_registration_replaces_earlier():
	table = TypeTable()
	converters = ConverterRegistry(table)
	int_ty = table.scalar(NumericCode.INT)
	converters.add(table.string_type, int_ty, int)
	converters.add(table.string_type, int_ty, float)
	assert converters.find(table.string_type, int_ty) is float
	assert len(converters) == 1
	with pytest.raises(ArgumentNullError):
		converters.add(table.string_type, int_ty, None)


def test_planner_uses_converters_only_when_explicit():
	table, converters, planner = _planner()
	int_ty = table.scalar(NumericCode.INT)
	converters.add(table.string_type, int_ty, int)
	step = planner.plan(int_ty, table.string_type, explicit=True)
	assert step == ConverterCall(int)
	assert step("42") == 42
	with pytest.raises(InvalidCastError):
		planner.plan(int_ty, table.string_type)


def test_converters_lift_over_optionals():
	table, converters, planner = _planner()
	int_ty = table.scalar(NumericCode.INT)
	bool_ty = table.bool_type
	converters.add(int_ty, bool_ty, bool)
	opt_int = table.ensure_optional(int_ty)
	opt_bool = table.ensure_optional(bool_ty)
	assert planner.plan(opt_bool, int_ty, explicit=True) == ConverterCall(bool)
	lifted = planner.plan(opt_bool, opt_int, explicit=True)
	assert isinstance(lifted, LiftedCoercion)
	assert lifted(None) is None
	assert lifted(3) is True
	unwrap = planner.plan(bool_ty, opt_int, explicit=True)
	assert isinstance(unwrap, UnwrapOptional)
	assert unwrap(0) is False
	with pytest.raises(InvalidCastError):
		unwrap(None)
