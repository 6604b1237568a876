# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Binder: the composition root for late-bound calls.

A Binder owns every cache the resolution pipeline needs (conversion
operators, resolved bindings, compiled thunks, value conversion plans), so
two binders never share state and tests can build as many as they like.
Bindings are cached per (type, name, shape, flags, registry generation);
thunks per (member, shape, binding mode, registry generation); value
conversion plans per (source, target) and both registration generations.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional, Tuple

from latebind.accessor import MemberAccessor
from latebind.coercions import Coercion, CoercionPlanner
from latebind.compat import TypeCompatibilityOracle
from latebind.config import BinderConfig
from latebind.converters import Converter, ConverterRegistry
from latebind.conversions import ConversionOperatorCache
from latebind.core.errors import ArgumentNullError, InvalidCastError, check_argument_null
from latebind.core.lru_cache import ConcurrentLruCache
from latebind.core.types_core import TypeId, TypeTable
from latebind.member_registry import CONSTRUCTOR_NAME, MemberRegistry
from latebind.member_resolver import BindFlags, InstanceBindingMode, MemberResolver, ResolvedBinding, Shape
from latebind.switcher import MethodSwitcher
from latebind.thunks import InvocationThunk, InvocationThunkCompiler

logger = logging.getLogger(__name__)

BindingKey = Tuple[TypeId, str, Shape, BindFlags, Optional[TypeId], int]
PlanKey = Tuple[TypeId, TypeId, int, int]


class Binder:
	def __init__(self, registry: MemberRegistry, config: Optional[BinderConfig] = None) -> None:
		check_argument_null(registry, "registry")
		self.config = config or BinderConfig()
		self.registry = registry
		self.table: TypeTable = registry.table
		self.conversions = ConversionOperatorCache(registry, self.config.conversion_cache_capacity)
		self.oracle = TypeCompatibilityOracle(self.table, self.conversions)
		self.converters = ConverterRegistry(self.table)
		self.planner = CoercionPlanner(self.table, self.oracle, self.converters)
		self.resolver = MemberResolver(registry, self.oracle, self.planner)
		self.compiler = InvocationThunkCompiler(capacity=self.config.thunk_cache_capacity)
		self._bindings: ConcurrentLruCache[BindingKey, ResolvedBinding] = ConcurrentLruCache(
			self.config.binding_cache_capacity, name="bindings"
		)
		self._plans: ConcurrentLruCache[PlanKey, Coercion] = ConcurrentLruCache(
			self.config.conversion_cache_capacity, name="value-conversions"
		)

	# --- resolution ---------------------------------------------------------

	def resolve_binding(
		self,
		target_type: TypeId,
		name: str,
		shape: Shape,
		flags: BindFlags = BindFlags.DEFAULT,
		bound_type: Optional[TypeId] = None,
	) -> ResolvedBinding:
		check_argument_null(target_type, "target_type")
		check_argument_null(name, "name")
		check_argument_null(shape, "shape")
		key: BindingKey = (target_type, name, shape, flags, bound_type, self.registry.generation)
		return self._bindings.get_or_add(
			key, lambda _key: self.resolver.resolve(target_type, name, shape, flags, bound_type)
		)

	def resolve(
		self,
		target_type: TypeId,
		name: str,
		shape: Shape,
		flags: BindFlags = BindFlags.DEFAULT,
	) -> InvocationThunk:
		"""
		Resolve `name` on `target_type` and return the compiled thunk.

		Instance members take their instance as the leading argument unless
		`shape.has_bound_target` is set, in which case the thunk must be bound
		with `InvocationThunk.bind` before use (see `resolve_bound`).
		"""
		return self.compiler.compile(self.resolve_binding(target_type, name, shape, flags))

	def resolve_bound(
		self,
		instance: Any,
		name: str,
		shape: Shape,
		flags: BindFlags = BindFlags.DEFAULT,
	) -> InvocationThunk:
		"""Resolve against the runtime type of `instance` and bind it as the target."""
		if instance is None:
			raise ArgumentNullError("instance")
		type_id = self.table.type_of(instance)
		assert type_id is not None
		if not shape.has_bound_target:
			shape = replace(shape, has_bound_target=True)
		binding = self.resolve_binding(type_id, name, shape, flags, bound_type=type_id)
		thunk = self.compiler.compile(binding)
		if binding.instance_mode is InstanceBindingMode.NONE:
			return thunk
		return thunk.bind(instance)

	# --- late-bound calls ---------------------------------------------------

	def call(self, target_type: TypeId, name: str, *args: Any, flags: BindFlags = BindFlags.DEFAULT) -> Any:
		"""Resolve from the runtime types of `args` and invoke."""
		shape = Shape(tuple(self.table.type_of(arg) for arg in args))
		return self.resolve(target_type, name, shape, flags)(*args)

	def call_method(self, instance: Any, name: str, *args: Any, flags: BindFlags = BindFlags.DEFAULT) -> Any:
		shape = Shape(tuple(self.table.type_of(arg) for arg in args), has_bound_target=True)
		return self.resolve_bound(instance, name, shape, flags)(*args)

	def create(self, type_id: TypeId, *args: Any, flags: BindFlags = BindFlags.DEFAULT) -> Any:
		return self.call(type_id, CONSTRUCTOR_NAME, *args, flags=flags)

	# --- convertibility -----------------------------------------------------

	def is_implicitly_convertible(self, target: TypeId, source: TypeId) -> bool:
		return self.oracle.is_implicitly_convertible(target, source)

	def is_explicitly_convertible(self, target: TypeId, source: TypeId) -> bool:
		return self.oracle.is_explicitly_convertible(target, source)

	# --- value conversion --------------------------------------------------

	def add_converter(self, source: TypeId, target: TypeId, converter: Converter) -> None:
		"""Register `converter` for value conversions no type rule covers."""
		self.converters.add(source, target, converter)

	def get_converter(self, source: TypeId, target: TypeId) -> Coercion:
		"""
		Return the callable converting `source` values to `target`.

		The conversion is explicit: numeric narrowing wraps, reference casts
		are checked per value, and registered converters are consulted last.
		Raises InvalidCastError when no conversion exists.
		"""
		check_argument_null(source, "source")
		check_argument_null(target, "target")
		key: PlanKey = (source, target, self.registry.generation, self.converters.generation)
		return self._plans.get_or_add(key, lambda _key: self.planner.plan(target, source, explicit=True))

	def can_change_type(self, source: TypeId, target: TypeId) -> bool:
		try:
			self.get_converter(source, target)
		except InvalidCastError:
			return False
		return True

	def change_type(self, value: Any, target: TypeId) -> Any:
		"""Convert `value` to `target` from its runtime type; None converts only to nullable targets."""
		check_argument_null(target, "target")
		source = self.table.type_of(value)
		if source is None:
			return self.planner.plan(target, None, explicit=True).apply(value)
		return self.get_converter(source, target)(value)

	# --- helpers ------------------------------------------------------------

	def accessor(
		self,
		target: Any,
		name: str,
		value_type: Optional[TypeId] = None,
		non_public: bool = False,
	) -> MemberAccessor:
		return MemberAccessor.for_instance(self, target, name, value_type, non_public)

	def static_accessor(
		self,
		type_id: TypeId,
		name: str,
		value_type: Optional[TypeId] = None,
		non_public: bool = False,
	) -> MemberAccessor:
		return MemberAccessor.for_static(self, type_id, name, value_type, non_public)

	def switcher(self, index: int = 0, *, name: str = "switch") -> MethodSwitcher:
		return MethodSwitcher(self.table, index, name=name)

	def clear_caches(self) -> None:
		self.conversions.clear()
		self.compiler.clear()
		self._bindings.clear()
		self._plans.clear()
		logger.debug("binder caches cleared")


__all__ = ["Binder", "BindingKey", "PlanKey"]
