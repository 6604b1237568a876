# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Value coercions applied by invocation thunks.

A coercion is an immutable step planned once per (source, target) pair and
applied to every value passing through a thunk. Numeric conversions follow
unchecked semantics: integral narrowing wraps two's complement, floating
point to integral truncates toward zero, `float` rounds through IEEE single
precision, `char` values are one-character strings.
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, List, Optional, Sequence, Tuple

from latebind.compat import TypeCompatibilityOracle
from latebind.converters import ConverterRegistry
from latebind.core.errors import InvalidCastError
from latebind.core.types_core import INTEGRAL_RANGES, NumericCode, TypeId, TypeKind, TypeTable
from latebind.member_registry import CandidateMember


class Coercion:
	"""A single value transformation."""

	is_identity = False

	def apply(self, value: Any) -> Any:
		raise NotImplementedError

	def __call__(self, value: Any) -> Any:
		return self.apply(value)


@dataclass(frozen=True)
class Identity(Coercion):
	is_identity = True

	def apply(self, value: Any) -> Any:
		return value


IDENTITY = Identity()


@dataclass(frozen=True)
class NumericConvert(Coercion):
	target: NumericCode

	def apply(self, value: Any) -> Any:
		return convert_numeric(value, self.target)


@dataclass(frozen=True)
class LiftedCoercion(Coercion):
	"""Apply `inner` to non-null values; null stays null."""

	inner: Coercion

	def apply(self, value: Any) -> Any:
		if value is None:
			return None
		return self.inner.apply(value)


@dataclass(frozen=True)
class UnwrapOptional(Coercion):
	inner: Coercion = IDENTITY

	def apply(self, value: Any) -> Any:
		if value is None:
			raise InvalidCastError("nullable value must have a value")
		return self.inner.apply(value)


@dataclass(frozen=True)
class ReferenceCast(Coercion):
	"""Checked cast: the value must already be an instance of `target`."""

	table: TypeTable = field(compare=False, repr=False)
	target: TypeId

	def apply(self, value: Any) -> Any:
		if value is None or self.table.is_instance(value, self.target):
			return value
		raise InvalidCastError(f"cannot cast {type(value).__name__} to '{self.table.label(self.target)}'")


@dataclass(frozen=True)
class UserOperator(Coercion):
	operator: CandidateMember
	pre: Coercion = IDENTITY
	post: Coercion = IDENTITY

	def apply(self, value: Any) -> Any:
		assert self.operator.invoker is not None
		return self.post.apply(self.operator.invoker(self.pre.apply(value)))


@dataclass(frozen=True)
class ConverterCall(Coercion):
	"""Run a caller-supplied converter."""

	converter: Callable[[Any], Any]

	def apply(self, value: Any) -> Any:
		return self.converter(value)


@dataclass(frozen=True)
class PackArray(Coercion):
	"""Collect the variadic tail into one list, coercing each element on its own."""

	elements: Tuple[Coercion, ...] = ()

	def apply(self, value: Sequence[Any]) -> List[Any]:
		if len(value) != len(self.elements):
			raise InvalidCastError(f"variadic tail expects {len(self.elements)} values, got {len(value)}")
		return [step.apply(item) for step, item in zip(self.elements, value)]


@dataclass(frozen=True)
class DefaultValue(Coercion):
	"""Ignore the input and produce a fixed value (declared defaults, discarded results)."""

	value: Any = None

	def apply(self, value: Any) -> Any:
		return self.value


def convert_numeric(value: Any, target: NumericCode) -> Any:
	"""Convert a numeric (or char) value to the representation of `target`."""
	if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
		raise InvalidCastError(f"{type(value).__name__} is not a numeric value")
	if isinstance(value, str):
		if len(value) != 1:
			raise InvalidCastError(f"{value!r} is not a char value")
		value = ord(value)
	if target is NumericCode.DOUBLE:
		return float(value)
	if target is NumericCode.FLOAT:
		return _to_single(float(value))
	if target is NumericCode.DECIMAL:
		if isinstance(value, float):
			if not math.isfinite(value):
				raise InvalidCastError(f"{value} cannot be represented as decimal")
			return Decimal(repr(value))
		return Decimal(value)
	if isinstance(value, float) and not math.isfinite(value):
		raise InvalidCastError(f"{value} cannot be converted to {target.value}")
	try:
		whole = int(value)
	except (InvalidOperation, OverflowError, ValueError) as err:
		raise InvalidCastError(f"{value} cannot be converted to {target.value}") from err
	lo, hi = INTEGRAL_RANGES[target]
	span = hi - lo + 1
	wrapped = (whole - lo) % span + lo
	if target is NumericCode.CHAR:
		return chr(wrapped)
	return wrapped


def _to_single(value: float) -> float:
	try:
		return struct.unpack("<f", struct.pack("<f", value))[0]
	except OverflowError:
		return math.copysign(math.inf, value)


class CoercionPlanner:
	def __init__(
		self,
		table: TypeTable,
		oracle: TypeCompatibilityOracle,
		converters: Optional[ConverterRegistry] = None,
	) -> None:
		self.table = table
		self.oracle = oracle
		self.converters = converters

	def plan(self, target: TypeId, source: Optional[TypeId], explicit: bool = False) -> Coercion:
		"""
		Build the coercion taking a `source` value to `target`.

		Standard conversions are preferred over user operators, implicit over
		explicit. Registered converters are the last resort of explicit
		planning. A None source is the null literal.
		"""
		if source is None:
			if self.oracle.accepts_null(target):
				return IDENTITY
			raise InvalidCastError(f"null cannot be converted to '{self.table.label(target)}'")
		if self.oracle.is_standard_implicit(target, source):
			return self._build(target, source)
		user = self._plan_user(target, source, explicit=False)
		if user is not None:
			return user
		if explicit:
			if self.oracle.is_standard_explicit(target, source):
				return self._build(target, source)
			user = self._plan_user(target, source, explicit=True)
			if user is not None:
				return user
			converted = self._plan_converter(target, source)
			if converted is not None:
				return converted
		raise InvalidCastError(
			f"no {'explicit' if explicit else 'implicit'} conversion from "
			f"'{self.table.label(source)}' to '{self.table.label(target)}'"
		)

	def _standard(self, target: TypeId, source: TypeId, explicit: bool) -> Coercion:
		if self.oracle.is_standard_implicit(target, source):
			return self._build(target, source)
		if explicit and self.oracle.is_standard_explicit(target, source):
			return self._build(target, source)
		raise InvalidCastError(
			f"no standard conversion from '{self.table.label(source)}' to '{self.table.label(target)}'"
		)

	def _plan_user(self, target: TypeId, source: TypeId, *, explicit: bool) -> Optional[Coercion]:
		conv = self.oracle.find_user_conversion(target, source, explicit=explicit)
		if conv is None:
			return None
		table = self.table
		src = table.unwrap_optional(source)
		pre = self._standard(conv.from_type, src, explicit)
		post = self._standard(target, conv.to_type, explicit)
		step = UserOperator(operator=conv.operator, pre=pre, post=post)
		if not table.is_optional(source):
			return step
		if table.is_optional(target) or table.is_reference_type(target):
			return LiftedCoercion(step)
		return UnwrapOptional(step)

	def _plan_converter(self, target: TypeId, source: TypeId) -> Optional[Coercion]:
		if self.converters is None:
			return None
		table = self.table
		fn = self.converters.find(source, target)
		if fn is not None:
			return ConverterCall(fn)
		if not (table.is_optional(source) or table.is_optional(target)):
			return None
		# Converters lift over optionals the way user operators do.
		fn = self.converters.find(table.unwrap_optional(source), table.unwrap_optional(target))
		if fn is None:
			return None
		step = ConverterCall(fn)
		if not table.is_optional(source):
			return step
		if table.is_optional(target) or table.is_reference_type(target):
			return LiftedCoercion(step)
		return UnwrapOptional(step)

	def _build(self, target: TypeId, source: TypeId) -> Coercion:
		table = self.table
		if target == source or target == table.object_type or table.is_assignable(target, source):
			return IDENTITY
		tt = table.get(target)
		st = table.get(source)
		if tt.kind is TypeKind.OPTIONAL:
			inner = tt.param_types[0]
			if st.kind is TypeKind.OPTIONAL:
				return _lift(self._build(inner, st.param_types[0]))
			return self._build(inner, source)
		if st.kind is TypeKind.OPTIONAL:
			inner_step = self._build(target, st.param_types[0])
			if table.is_reference_type(target):
				return _lift(inner_step)
			return UnwrapOptional(inner_step)
		if tt.numeric is not None and st.numeric is not None:
			if tt.numeric is st.numeric:
				return IDENTITY
			return NumericConvert(tt.numeric)
		return ReferenceCast(table, target)


def _lift(step: Coercion) -> Coercion:
	if step.is_identity:
		return IDENTITY
	return LiftedCoercion(step)


__all__ = [
	"Coercion",
	"Identity",
	"IDENTITY",
	"NumericConvert",
	"LiftedCoercion",
	"UnwrapOptional",
	"ReferenceCast",
	"UserOperator",
	"ConverterCall",
	"PackArray",
	"DefaultValue",
	"convert_numeric",
	"CoercionPlanner",
]
