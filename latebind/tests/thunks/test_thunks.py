# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
import dataclasses

import pytest

from latebind.core.errors import (
	ArgumentNullError,
	ArgumentOutOfRangeError,
	InvalidCastError,
	InvalidOperationError,
)
from latebind.core.types_core import NumericCode
from latebind.member_resolver import BindFlags, InstanceBindingMode, Shape
from latebind.thunks import InvocationThunkCompiler


class _Counter:
	def __init__(self):
		self.total = 0

	def add(self, amount):
		self.total += amount
		return self.total


def _counter_type(table, registry):
	counter = table.declare_class("Counter", py_type=_Counter)
	registry.add_method(counter, "Add", "(int) -> int", _Counter.add)
	return counter


def test_static_call_with_argument_coercion(table, registry, binder):
	util = table.declare_class("Util")
	registry.add_method(util, "Half", "(double) -> double", lambda x: x / 2, static=True)
	thunk = binder.resolve(util, "Half", Shape((table.scalar(NumericCode.INT),)))
	assert thunk(3) == 1.5
	assert not thunk.is_bound


def test_return_coercion(table, registry, binder):
	util = table.declare_class("Util")
	registry.add_method(util, "Two", "() -> int", lambda: 2, static=True)
	thunk = binder.resolve(util, "Two", Shape((), table.scalar(NumericCode.DOUBLE)))
	result = thunk()
	assert result == 2.0
	assert type(result) is float


def test_void_member_returns_none(table, registry, binder):
	util = table.declare_class("Util")
	registry.add_method(util, "Log", "(string)", lambda msg: "ignored", static=True)
	assert binder.resolve(util, "Log", Shape((table.string_type,)))("x") is None


def test_arity_is_checked(table, registry, binder):
	util = table.declare_class("Util")
	int_ty = table.scalar(NumericCode.INT)
	registry.add_method(util, "Add", "(int, int) -> int", lambda a, b: a + b, static=True)
	thunk = binder.resolve(util, "Add", Shape((int_ty, int_ty)))
	with pytest.raises(ArgumentOutOfRangeError):
		thunk(1)
	with pytest.raises(ArgumentOutOfRangeError):
		thunk(1, 2, 3)


def test_leading_argument_instance(table, registry, binder):
	counter = _counter_type(table, registry)
	thunk = binder.resolve(counter, "Add", Shape((counter, table.scalar(NumericCode.INT))))
	assert thunk.binding.instance_mode is InstanceBindingMode.LEADING_ARGUMENT
	c = _Counter()
	assert thunk(c, 5) == 5
	assert thunk(c, 2) == 7
	with pytest.raises(ArgumentNullError):
		thunk(None, 1)


def test_binding_a_leading_argument_thunk(table, registry, binder):
	counter = _counter_type(table, registry)
	thunk = binder.resolve(counter, "Add", Shape((counter, table.scalar(NumericCode.INT))))
	c = _Counter()
	bound = thunk.bind(c)
	assert bound.is_bound
	assert bound(4) == 4
	with pytest.raises(ArgumentOutOfRangeError):
		bound(c, 4)
	with pytest.raises(ArgumentNullError):
		thunk.bind(None)


def test_static_thunk_cannot_be_bound(table, registry, binder):
	util = table.declare_class("Util")
	registry.add_method(util, "Now", "() -> int", lambda: 0, static=True)
	with pytest.raises(InvalidOperationError):
		binder.resolve(util, "Now", Shape(())).bind(object())


def test_defaults_and_variadic_tail(table, registry, binder):
	util = table.declare_class("Util")
	int_ty = table.scalar(NumericCode.INT)
	registry.add_method(
		util,
		"Join",
		"(string, string, params long[]) -> string",
		lambda sep, prefix, nums: prefix + sep.join(str(n) for n in nums),
		static=True,
		defaults=(">",),
	)
	assert binder.resolve(util, "Join", Shape((table.string_type,)))(",") == ">"
	shape = Shape((table.string_type, table.string_type, int_ty, int_ty))
	assert binder.resolve(util, "Join", shape)("-", "#", 1, 2) == "#1-2"


def test_argument_cast_failure_surfaces(table, registry, binder):
	util = table.declare_class("Util")
	registry.add_method(util, "Len", "(string) -> int", len, static=True)
	thunk = binder.resolve(util, "Len", Shape((table.object_type,)), BindFlags.DEFAULT | BindFlags.EXPLICIT)
	assert thunk("abc") == 3
	with pytest.raises(InvalidCastError):
		thunk(5)


def test_compiler_reuses_thunks(table, registry, binder):
	util = table.declare_class("Util")
	registry.add_method(util, "Id", "(int) -> int", lambda x: x, static=True)
	binding = binder.resolve_binding(util, "Id", Shape((table.scalar(NumericCode.INT),)))
	compiler = InvocationThunkCompiler(capacity=4)
	first = compiler.compile(binding)
	assert compiler.compile(binding) is first
	assert len(compiler) == 1
	assert InvocationThunkCompiler.key(binding)[0] == binding.member.key
	compiler.clear()
	assert compiler.compile(binding) is not first


def test_compiler_keys_on_registry_generation(table, registry, binder):
	util = table.declare_class("Util")
	registry.add_method(util, "Id", "(int) -> int", lambda x: x, static=True)
	binding = binder.resolve_binding(util, "Id", Shape((table.scalar(NumericCode.INT),)))
	assert binding.generation == registry.generation
	newer = dataclasses.replace(binding, generation=binding.generation + 1)
	compiler = InvocationThunkCompiler()
	first = compiler.compile(binding)
	assert compiler.compile(newer) is not first
	assert compiler.compile(newer).binding is newer
	assert len(compiler) == 2
