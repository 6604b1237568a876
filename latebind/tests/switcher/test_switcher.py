# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
import pytest

from latebind.core.errors import ArgumentNullError, ArgumentOutOfRangeError, MissingMemberError
from latebind.core.types_core import TypeTable
from latebind.switcher import MethodSwitcher


class _Shape:
	pass


class _Circle(_Shape):
	pass


class _Ring(_Circle):
	pass


def _types():
	table = TypeTable()
	shape = table.declare_class("Shape", py_type=_Shape)
	circle = table.declare_class("Circle", base=shape, py_type=_Circle)
	table.declare_class("Ring", base=circle, py_type=_Ring)
	return table, shape, circle


def test_dispatch_walks_base_chain():
	table, shape, circle = _types()
	area = MethodSwitcher(table, name="area")

	@area.register(shape)
	def _shape_area(value):
		return "shape"

	@area.register(circle)
	def _circle_area(value):
		return "circle"

	assert area(_Shape()) == "shape"
	assert area(_Circle()) == "circle"
	assert area(_Ring()) == "circle"


def test_new_handler_invalidates_memo():
	table, shape, circle = _types()
	sw = MethodSwitcher(table)
	sw.add(shape, lambda value: "shape")
	assert sw(_Circle()) == "shape"
	sw.add(circle, lambda value: "circle")
	assert sw(_Circle()) == "circle"


def test_handler_added_during_lookup_wins(monkeypatch):
	table, shape, circle = _types()
	sw = MethodSwitcher(table)
	sw.add(shape, lambda value: "shape")
	walk = sw._walk
	pending = [circle]

	def walk_then_add(type_id):
		found = walk(type_id)
		if pending:
			sw.add(pending.pop(), lambda value: "circle")
		return found

	monkeypatch.setattr(sw, "_walk", walk_then_add)
	assert sw(_Circle()) == "circle"
	assert sw(_Circle()) == "circle"
	assert sw(_Shape()) == "shape"


def test_dispatch_index_and_extra_arguments():
	table, shape, _ = _types()
	sw = MethodSwitcher(table, index=1)
	sw.add(shape, lambda label, value, suffix: f"{label}:{type(value).__name__}{suffix}")
	assert sw("x", _Ring(), "!") == "x:_Ring!"
	with pytest.raises(ArgumentOutOfRangeError):
		sw("only")
	with pytest.raises(ArgumentNullError):
		sw("x", None)
	with pytest.raises(ArgumentOutOfRangeError):
		MethodSwitcher(table, index=-1)


def test_builtin_values_and_fallback():
	table, _, _ = _types()
	sw = MethodSwitcher(table)
	with pytest.raises(MissingMemberError):
		sw(5)
	sw.add(table.object_type, lambda value: "object")
	sw.add(table.string_type, lambda value: "string")
	assert sw(5) == "object"
	assert sw("hi") == "string"
	assert sw(_Circle()) == "object"


def test_binder_builds_switchers(binder):
	sw = binder.switcher(name="fmt")
	assert sw.name == "fmt"
	assert sw.table is binder.table
