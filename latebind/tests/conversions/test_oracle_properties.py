# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Property tests for the compatibility oracle."""

from hypothesis import given
from hypothesis import strategies as st

from latebind.compat import IMPLICIT_NUMERIC, TypeCompatibilityOracle, numeric_widens
from latebind.conversions import ConversionOperatorCache
from latebind.core.types_core import NumericCode, TypeTable
from latebind.member_registry import MemberRegistry


def _build():
	table = TypeTable()
	registry = MemberRegistry(table)
	shape = table.declare_interface("IShape")
	base = table.declare_class("Base", interfaces=[shape])
	derived = table.declare_class("Derived", base=base)
	point = table.declare_struct("Point")
	registry.add_conversion(point, "int", point, lambda v: v)
	types = [
		table.object_type,
		table.bool_type,
		table.string_type,
		shape,
		base,
		derived,
		point,
		table.ensure_optional(point),
		table.ensure_array(derived),
		table.ensure_array(table.scalar(NumericCode.INT)),
	]
	types.extend(table.scalar(code) for code in NumericCode)
	types.extend(table.ensure_optional(table.scalar(code)) for code in NumericCode)
	oracle = TypeCompatibilityOracle(table, ConversionOperatorCache(registry))
	return table, oracle, types


_TABLE, _ORACLE, _TYPES = _build()

type_ids = st.sampled_from(_TYPES)
codes = st.sampled_from(list(NumericCode))


@given(type_ids)
def test_reflexive(ty):
	assert _ORACLE.is_implicitly_convertible(ty, ty)
	assert _ORACLE.is_explicitly_convertible(ty, ty)


@given(type_ids)
def test_everything_converts_to_object(ty):
	assert _ORACLE.is_implicitly_convertible(_TABLE.object_type, ty)


@given(type_ids, type_ids)
def test_implicit_implies_explicit(target, source):
	if _ORACLE.is_implicitly_convertible(target, source):
		assert _ORACLE.is_explicitly_convertible(target, source)


@given(type_ids)
def test_value_types_lift_into_optional(ty):
	if _TABLE.is_value_type(ty) and not _TABLE.is_optional(ty):
		assert _ORACLE.is_implicitly_convertible(_TABLE.ensure_optional(ty), ty)
		assert not _ORACLE.is_standard_implicit(ty, _TABLE.ensure_optional(ty))


@given(codes, codes)
def test_numeric_widening_is_antisymmetric(a, b):
	if a is not b:
		assert not (numeric_widens(a, b) and numeric_widens(b, a))


@given(codes, codes, codes)
def test_numeric_widening_is_transitive(a, b, c):
	if numeric_widens(a, b) and numeric_widens(b, c):
		assert numeric_widens(a, c)


@given(codes, codes)
def test_numeric_pairs_are_always_explicit(a, b):
	assert _ORACLE.is_explicitly_convertible(_TABLE.scalar(a), _TABLE.scalar(b))


def test_numeric_table_has_no_self_entries():
	for target, sources in IMPLICIT_NUMERIC.items():
		assert target not in sources
