# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Invocation thunks: resolved bindings turned into plain callables.

A thunk interprets the coercion plan of one ResolvedBinding on every call:
take the instance, coerce the arguments (filling defaults and packing the
variadic tail), call the raw primitive, coerce the result. All the planning
happened once in the resolver, so a call is only a handful of steps. Thunks
hold no per-call state and may be shared freely between threads.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Tuple

from latebind.coercions import Coercion, DefaultValue, PackArray
from latebind.core.errors import ArgumentNullError, ArgumentOutOfRangeError, InvalidOperationError
from latebind.core.lru_cache import ConcurrentLruCache
from latebind.member_registry import CandidateMember
from latebind.member_resolver import InstanceBindingMode, MemberAccess, ResolvedBinding, Shape

logger = logging.getLogger(__name__)

_CONSUME = 0
_DEFAULT = 1
_PACK = 2

_UNBOUND = object()

ThunkKey = Tuple[Any, Shape, InstanceBindingMode, MemberAccess, bool, int]


class InvocationThunk:
	__slots__ = ("_binding", "_steps", "_kinds", "_raw", "_arity", "_target")

	def __init__(self, binding: ResolvedBinding, target: Any = _UNBOUND) -> None:
		self._binding = binding
		self._steps: Tuple[Coercion, ...] = binding.per_argument_coercion
		self._kinds = tuple(_kind(step) for step in self._steps)
		self._raw = _raw_primitive(binding.member, binding.access)
		arity = binding.shape.arity
		if target is not _UNBOUND and binding.instance_mode is InstanceBindingMode.LEADING_ARGUMENT:
			arity -= 1
		self._arity = arity
		self._target = target

	@property
	def binding(self) -> ResolvedBinding:
		return self._binding

	@property
	def member(self) -> CandidateMember:
		return self._binding.member

	@property
	def is_bound(self) -> bool:
		return self._target is not _UNBOUND

	def bind(self, target: Any) -> "InvocationThunk":
		"""Return a thunk sharing this plan with `target` as its fixed instance."""
		if self._binding.instance_mode is InstanceBindingMode.NONE:
			raise InvalidOperationError(f"'{self.member.name}' is static and takes no target")
		if target is None:
			raise ArgumentNullError("target")
		return InvocationThunk(self._binding, target)

	def __call__(self, *args: Any) -> Any:
		if len(args) != self._arity:
			raise ArgumentOutOfRangeError(
				f"'{self.member.name}' thunk takes {self._arity} arguments, got {len(args)}"
			)
		binding = self._binding
		instance: Any = None
		if binding.instance_mode is not InstanceBindingMode.NONE:
			if self._target is not _UNBOUND:
				instance = self._target
			elif binding.instance_mode is InstanceBindingMode.LEADING_ARGUMENT:
				instance, args = args[0], args[1:]
			if instance is None:
				raise ArgumentNullError("instance")
			instance = binding.instance_coercion.apply(instance)
		values = self._coerce(args)
		result = self._raw(instance, values)
		return binding.return_coercion.apply(result)

	def _coerce(self, args: Tuple[Any, ...]) -> List[Any]:
		out: List[Any] = []
		pos = 0
		for step, kind in zip(self._steps, self._kinds):
			if kind == _CONSUME:
				out.append(step.apply(args[pos]))
				pos += 1
			elif kind == _DEFAULT:
				out.append(step.apply(None))
			else:
				out.append(step.apply(args[pos:]))
				pos = len(args)
		return out

	def __repr__(self) -> str:
		return f"<InvocationThunk {self.member.name} {self._binding.instance_mode.name}>"


def _kind(step: Coercion) -> int:
	if isinstance(step, PackArray):
		return _PACK
	if isinstance(step, DefaultValue):
		return _DEFAULT
	return _CONSUME


def _raw_primitive(member: CandidateMember, access: MemberAccess) -> Callable[[Any, List[Any]], Any]:
	static = member.is_static
	if access is MemberAccess.GET:
		getter = member.getter
		assert getter is not None
		if static:
			return lambda instance, values: getter()
		return lambda instance, values: getter(instance)
	if access is MemberAccess.SET:
		setter = member.setter
		assert setter is not None
		if static:
			return lambda instance, values: setter(values[0])
		return lambda instance, values: setter(instance, values[0])
	invoker = member.invoker
	assert invoker is not None
	if static:
		return lambda instance, values: invoker(*values)
	return lambda instance, values: invoker(instance, *values)


class InvocationThunkCompiler:
	"""
	Compile bindings to thunks, one thunk per (member, shape, binding mode,
	registry generation).
	"""

	def __init__(self, cache: Optional[ConcurrentLruCache] = None, capacity: int = 1024) -> None:
		if cache is None:
			cache = ConcurrentLruCache(capacity, name="thunks")
		self._cache: ConcurrentLruCache[ThunkKey, InvocationThunk] = cache

	def __len__(self) -> int:
		return len(self._cache)

	@staticmethod
	def key(binding: ResolvedBinding) -> ThunkKey:
		return (
			binding.member.key,
			binding.shape,
			binding.instance_mode,
			binding.access,
			binding.explicit,
			binding.generation,
		)

	def compile(self, binding: ResolvedBinding) -> InvocationThunk:
		def build(key: ThunkKey) -> InvocationThunk:
			logger.debug("compiling thunk for %r", key)
			return InvocationThunk(binding)

		return self._cache.get_or_add(self.key(binding), build)

	def clear(self) -> None:
		self._cache.clear()


__all__ = ["InvocationThunk", "InvocationThunkCompiler"]
