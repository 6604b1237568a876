# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Late-bound member resolution atop MemberRegistry.

Given a type, a member name and a call Shape, the resolver runs the phases
constructor -> method -> property -> field and stops at the first phase that
yields a member. Within a phase:

- static candidates are tried with every argument first, then instance
  candidates, with the instance coming from the bound target or from the
  leading argument;
- generic candidates are closed by argument inference before matching;
- survivors are ranked pairwise on their per-argument conversions, then on
  non-generic over generic, unexpanded over expanded variadic, fewer filled
  defaults, and finally the most derived declaring type.

An unbroken tie is an AmbiguousMatchError. The one deterministic exception:
when the tied candidates reach every argument the same way and at least one
argument needs a user-defined conversion, the candidate declared first wins.

The result is a ResolvedBinding: the closed member plus every coercion the
thunk compiler has to apply.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, IntFlag, auto
from typing import List, Optional, Sequence, Tuple

from latebind.coercions import IDENTITY, Coercion, CoercionPlanner, DefaultValue, PackArray, UnwrapOptional
from latebind.compat import ConversionLevel, TypeCompatibilityOracle
from latebind.core.errors import (
	AccessDeniedError,
	AmbiguousMatchError,
	MissingMemberError,
	UnboundGenericParameterError,
	check_argument_null,
)
from latebind.core.types_core import SIGNED_CODES, UNSIGNED_CODES, TypeId, TypeTable
from latebind.infer import GenericArgumentInferencer
from latebind.member_registry import CONSTRUCTOR_NAME, CandidateMember, MemberKind, MemberRegistry
from latebind.overload_matcher import MatchResult, OverloadMatcher

logger = logging.getLogger(__name__)


class BindFlags(IntFlag):
	NONE = 0
	STATIC = 1
	INSTANCE = 2
	PUBLIC = 4
	NON_PUBLIC = 8
	CREATE_INSTANCE = 16
	INVOKE_METHOD = 32
	GET_PROPERTY = 64
	SET_PROPERTY = 128
	GET_FIELD = 256
	SET_FIELD = 512
	OPTIONAL_PARAM_BINDING = 1024
	EXPLICIT = 2048
	ALL_MEMBERS = CREATE_INSTANCE | INVOKE_METHOD | GET_PROPERTY | SET_PROPERTY | GET_FIELD | SET_FIELD
	DEFAULT = STATIC | INSTANCE | PUBLIC | ALL_MEMBERS | OPTIONAL_PARAM_BINDING


class InstanceBindingMode(Enum):
	NONE = auto()
	BOUND_TARGET = auto()
	LEADING_ARGUMENT = auto()


class MemberAccess(Enum):
	INVOKE = auto()
	GET = auto()
	SET = auto()


@dataclass(frozen=True)
class Shape:
	"""
	Static description of a call site.

	`arg_types` excludes the bound target; a None entry is the null literal.
	`return_type=None` accepts any result; `void` discards it and, for
	properties and fields, selects the setter.
	"""

	arg_types: Tuple[Optional[TypeId], ...] = ()
	return_type: Optional[TypeId] = None
	has_bound_target: bool = False

	def __post_init__(self) -> None:
		object.__setattr__(self, "arg_types", tuple(self.arg_types))

	@property
	def arity(self) -> int:
		return len(self.arg_types)


@dataclass(frozen=True)
class ResolvedBinding:
	member: CandidateMember
	shape: Shape
	# One step per member parameter: a coercion consuming one argument, a
	# DefaultValue consuming none, or a PackArray consuming the rest.
	per_argument_coercion: Tuple[Coercion, ...]
	return_coercion: Coercion
	instance_mode: InstanceBindingMode
	instance_coercion: Coercion = IDENTITY
	access: MemberAccess = MemberAccess.INVOKE
	explicit: bool = False
	levels: Tuple[ConversionLevel, ...] = field(default=(), compare=False)
	# Registry generation the candidates were read under.
	generation: int = 0


@dataclass(frozen=True)
class _Applicable:
	member: CandidateMember
	match: MatchResult
	arg_types: Tuple[Optional[TypeId], ...]
	levels: Tuple[ConversionLevel, ...]
	mode: InstanceBindingMode
	access: MemberAccess
	instance_type: Optional[TypeId] = None


_PHASES: Tuple[Tuple[MemberKind, BindFlags], ...] = (
	(MemberKind.METHOD, BindFlags.INVOKE_METHOD),
	(MemberKind.PROPERTY, BindFlags.GET_PROPERTY | BindFlags.SET_PROPERTY),
	(MemberKind.FIELD, BindFlags.GET_FIELD | BindFlags.SET_FIELD),
)

_GET_FLAG = {MemberKind.PROPERTY: BindFlags.GET_PROPERTY, MemberKind.FIELD: BindFlags.GET_FIELD}
_SET_FLAG = {MemberKind.PROPERTY: BindFlags.SET_PROPERTY, MemberKind.FIELD: BindFlags.SET_FIELD}


class MemberResolver:
	def __init__(
		self,
		registry: MemberRegistry,
		oracle: TypeCompatibilityOracle,
		planner: Optional[CoercionPlanner] = None,
	) -> None:
		self.registry = registry
		self.table: TypeTable = registry.table
		self.oracle = oracle
		self.planner = planner or CoercionPlanner(self.table, oracle)
		self.matcher = OverloadMatcher(self.table)
		self.inferencer = GenericArgumentInferencer(self.table, oracle)

	def resolve(
		self,
		target_type: TypeId,
		name: str,
		shape: Shape,
		flags: BindFlags = BindFlags.DEFAULT,
		bound_type: Optional[TypeId] = None,
	) -> ResolvedBinding:
		"""
		Resolve `name` on `target_type` for `shape`.

		`bound_type` is the runtime type of the bound target when
		`shape.has_bound_target` is set (defaults to `target_type`).
		"""
		check_argument_null(target_type, "target_type")
		check_argument_null(name, "name")
		check_argument_null(shape, "shape")
		table = self.table
		if table.has_typevar(target_type):
			raise UnboundGenericParameterError(
				f"cannot resolve '{name}' on open generic type '{table.label(target_type)}'"
			)
		for ty in shape.arg_types:
			if ty is not None and table.has_typevar(ty):
				raise UnboundGenericParameterError(f"argument type '{table.label(ty)}' has open type parameters")
		if shape.has_bound_target and bound_type is None:
			bound_type = target_type
		generation = self.registry.generation
		denied = False
		if name.lower() == CONSTRUCTOR_NAME:
			if flags & BindFlags.CREATE_INSTANCE:
				cands = self.registry.constructors(target_type)
				found, denied = self._phase(cands, shape, flags, None, MemberAccess.INVOKE, static_only=True)
				if found is not None:
					return self._finish(found, shape, flags, name, generation)
			raise self._failure(target_type, name, shape, denied)
		for kind, phase_flags in _PHASES:
			if not flags & phase_flags:
				continue
			access = self._access(kind, shape, flags)
			if access is None:
				continue
			cands = self.registry.members(target_type, name, (kind,))
			if not cands:
				continue
			found, phase_denied = self._phase(cands, shape, flags, bound_type, access)
			denied = denied or phase_denied
			if found is not None:
				return self._finish(found, shape, flags, name, generation)
		raise self._failure(target_type, name, shape, denied)

	# --- phases -------------------------------------------------------------

	def _access(self, kind: MemberKind, shape: Shape, flags: BindFlags) -> Optional[MemberAccess]:
		if kind is MemberKind.METHOD:
			return MemberAccess.INVOKE
		if shape.return_type == self.table.void_type:
			return MemberAccess.SET if flags & _SET_FLAG[kind] else None
		return MemberAccess.GET if flags & _GET_FLAG[kind] else None

	def _phase(
		self,
		cands: Sequence[CandidateMember],
		shape: Shape,
		flags: BindFlags,
		bound_type: Optional[TypeId],
		access: MemberAccess,
		*,
		static_only: bool = False,
	) -> Tuple[Optional[_Applicable], bool]:
		"""Return the winner of one phase and whether visibility hid a match."""
		visible = [c for c in cands if self._visible(c, flags)]
		hidden = [c for c in cands if not self._visible(c, flags)]
		groups: List[Tuple[bool, InstanceBindingMode]] = []
		if static_only or flags & BindFlags.STATIC:
			groups.append((True, InstanceBindingMode.NONE))
		if not static_only and flags & BindFlags.INSTANCE:
			if shape.has_bound_target:
				groups.append((False, InstanceBindingMode.BOUND_TARGET))
			elif shape.arity > 0:
				groups.append((False, InstanceBindingMode.LEADING_ARGUMENT))
		for is_static, mode in groups:
			applicable = self._applicable(visible, is_static, mode, shape, flags, bound_type, access)
			if applicable:
				return self._select(applicable), False
		for is_static, mode in groups:
			if self._applicable(hidden, is_static, mode, shape, flags, bound_type, access):
				return None, True
		return None, False

	def _visible(self, member: CandidateMember, flags: BindFlags) -> bool:
		if member.visibility.is_public:
			return bool(flags & BindFlags.PUBLIC)
		return bool(flags & BindFlags.NON_PUBLIC)

	def _applicable(
		self,
		cands: Sequence[CandidateMember],
		is_static: bool,
		mode: InstanceBindingMode,
		shape: Shape,
		flags: BindFlags,
		bound_type: Optional[TypeId],
		access: MemberAccess,
	) -> List[_Applicable]:
		out: List[_Applicable] = []
		for member in cands:
			if member.is_static != is_static:
				continue
			found = self._evaluate(member, mode, shape, flags, bound_type, access)
			if found is not None:
				out.append(found)
		return out

	def _evaluate(
		self,
		member: CandidateMember,
		mode: InstanceBindingMode,
		shape: Shape,
		flags: BindFlags,
		bound_type: Optional[TypeId],
		access: MemberAccess,
	) -> Optional[_Applicable]:
		explicit = bool(flags & BindFlags.EXPLICIT)
		arg_types = shape.arg_types
		instance_type: Optional[TypeId] = None
		if mode is InstanceBindingMode.LEADING_ARGUMENT:
			instance_type, arg_types = arg_types[0], arg_types[1:]
		elif mode is InstanceBindingMode.BOUND_TARGET:
			instance_type = bound_type
		if mode is not InstanceBindingMode.NONE:
			if instance_type is None:
				return None
			inst = self.table.unwrap_optional(instance_type)
			if not self.table.is_assignable(member.declaring_type, inst):
				return None
		if member.is_generic:
			closed = self.inferencer.close(member, arg_types)
			if closed is None:
				return None
			member = closed
		match = self._match(member, arg_types, flags, access)
		if not match.ok:
			return None
		levels: List[ConversionLevel] = []
		for formal, actual in zip(match.formal_types, arg_types):
			level = self.oracle.classify(formal, actual, explicit)
			if level is None:
				return None
			levels.append(level)
		if not self._returns_ok(member, shape, explicit, access):
			return None
		return _Applicable(
			member=member,
			match=match,
			arg_types=tuple(arg_types),
			levels=tuple(levels),
			mode=mode,
			access=access,
			instance_type=instance_type,
		)

	def _match(
		self,
		member: CandidateMember,
		arg_types: Sequence[Optional[TypeId]],
		flags: BindFlags,
		access: MemberAccess,
	) -> MatchResult:
		if access is MemberAccess.GET:
			if member.getter is None or arg_types:
				return MatchResult(ok=False)
			return MatchResult(ok=True)
		if access is MemberAccess.SET:
			if member.setter is None or len(arg_types) != 1:
				return MatchResult(ok=False)
			return MatchResult(ok=True, formal_types=(member.return_type,))
		optional = bool(flags & BindFlags.OPTIONAL_PARAM_BINDING)
		return self.matcher.matches(member, arg_types, optional_binding=optional)

	def _returns_ok(self, member: CandidateMember, shape: Shape, explicit: bool, access: MemberAccess) -> bool:
		wanted = shape.return_type
		void = self.table.void_type
		if wanted is None or wanted == void or access is MemberAccess.SET:
			return True
		if member.return_type == void:
			return True
		return self.oracle.classify(wanted, member.return_type, explicit) is not None

	# --- ranking ------------------------------------------------------------

	def _select(self, applicable: List[_Applicable]) -> _Applicable:
		if len(applicable) == 1:
			return applicable[0]
		undominated = [
			cand for cand in applicable if not any(self._compare(other, cand) < 0 for other in applicable if other is not cand)
		]
		if len(undominated) == 1:
			return undominated[0]
		levels = {cand.levels for cand in undominated}
		if len(levels) == 1 and ConversionLevel.USER_IMPLICIT in next(iter(levels)):
			return min(undominated, key=lambda cand: cand.member.ordinal)
		pool = undominated or applicable
		labels = ", ".join(self._signature_label(c.member) for c in pool)
		raise AmbiguousMatchError(f"ambiguous match for '{pool[0].member.name}' between {labels}")

	def _compare(self, a: _Applicable, b: _Applicable) -> int:
		"""-1 when `a` is the better candidate, 1 when `b` is, 0 when neither."""
		a_wins = False
		b_wins = False
		for idx in range(len(a.levels)):
			verdict = self._compare_argument(a, b, idx)
			if verdict < 0:
				a_wins = True
			elif verdict > 0:
				b_wins = True
		if a_wins != b_wins:
			return -1 if a_wins else 1
		if a_wins and b_wins:
			return 0
		if a.member.was_generic != b.member.was_generic:
			return 1 if a.member.was_generic else -1
		if a.match.expanded != b.match.expanded:
			return 1 if a.match.expanded else -1
		if a.match.missing != b.match.missing:
			return -1 if a.match.missing < b.match.missing else 1
		depth_a = self.table.hierarchy_depth(a.member.declaring_type)
		depth_b = self.table.hierarchy_depth(b.member.declaring_type)
		if depth_a != depth_b:
			return -1 if depth_a > depth_b else 1
		return 0

	def _compare_argument(self, a: _Applicable, b: _Applicable, idx: int) -> int:
		fa = a.match.formal_types[idx]
		fb = b.match.formal_types[idx]
		if fa == fb:
			return 0
		la = a.levels[idx]
		lb = b.levels[idx]
		if la != lb:
			return -1 if la < lb else 1
		a_to_b = self.oracle.is_implicitly_convertible(fb, fa)
		b_to_a = self.oracle.is_implicitly_convertible(fa, fb)
		if a_to_b and not b_to_a:
			return -1
		if b_to_a and not a_to_b:
			return 1
		ca = self.table.numeric_code(fa)
		cb = self.table.numeric_code(fb)
		if ca in SIGNED_CODES and cb in UNSIGNED_CODES:
			return -1
		if cb in SIGNED_CODES and ca in UNSIGNED_CODES:
			return 1
		return 0

	# --- binding ------------------------------------------------------------

	def _finish(
		self, found: _Applicable, shape: Shape, flags: BindFlags, name: str, generation: int
	) -> ResolvedBinding:
		explicit = bool(flags & BindFlags.EXPLICIT)
		member = found.member
		binding = ResolvedBinding(
			member=member,
			shape=shape,
			per_argument_coercion=self._argument_steps(found, explicit),
			return_coercion=self._return_step(member, shape, explicit, found.access),
			instance_mode=found.mode,
			instance_coercion=self._instance_step(found),
			access=found.access,
			explicit=explicit,
			levels=found.levels,
			generation=generation,
		)
		logger.debug(
			"resolved %s.%s for %s -> %s (%s)",
			self.table.label(member.declaring_type),
			name,
			self._shape_label(shape),
			self._signature_label(member),
			found.mode.name,
		)
		return binding

	def _argument_steps(self, found: _Applicable, explicit: bool) -> Tuple[Coercion, ...]:
		member = found.member
		args = found.arg_types
		plan = self.planner.plan
		if found.access is MemberAccess.GET:
			return ()
		if found.access is MemberAccess.SET:
			return (plan(member.return_type, args[0], explicit),)
		n = member.arity
		fixed = n - 1 if found.match.expanded else n
		steps: List[Coercion] = []
		for idx in range(fixed):
			if idx < len(args):
				steps.append(plan(member.param_types[idx], args[idx], explicit))
			else:
				steps.append(DefaultValue(member.defaults[idx]))
		if found.match.expanded:
			elem = found.match.variadic_tail_type
			assert elem is not None
			steps.append(PackArray(tuple(plan(elem, actual, explicit) for actual in args[fixed:])))
		return tuple(steps)

	def _return_step(self, member: CandidateMember, shape: Shape, explicit: bool, access: MemberAccess) -> Coercion:
		void = self.table.void_type
		wanted = shape.return_type
		if access is MemberAccess.SET or wanted == void or member.return_type == void:
			return DefaultValue(None)
		if wanted is None:
			return IDENTITY
		return self.planner.plan(wanted, member.return_type, explicit)

	def _instance_step(self, found: _Applicable) -> Coercion:
		if found.instance_type is not None and self.table.is_optional(found.instance_type):
			return UnwrapOptional()
		return IDENTITY

	# --- diagnostics --------------------------------------------------------

	def _failure(self, target_type: TypeId, name: str, shape: Shape, denied: bool) -> Exception:
		where = f"'{self.table.label(target_type)}.{name}' for {self._shape_label(shape)}"
		if denied:
			return AccessDeniedError(f"access to {where} is not permitted by the binding flags")
		return MissingMemberError(f"no member matches {where}")

	def _shape_label(self, shape: Shape) -> str:
		args = ", ".join(self.table.label(t) for t in shape.arg_types)
		ret = "any" if shape.return_type is None else self.table.label(shape.return_type)
		return f"({args}) -> {ret}"

	def _signature_label(self, member: CandidateMember) -> str:
		params = [self.table.label(p) for p in member.param_types]
		if member.is_variadic and params:
			params[-1] = f"params {params[-1]}"
		return f"{member.name}({', '.join(params)}) -> {self.table.label(member.return_type)}"


__all__ = [
	"BindFlags",
	"InstanceBindingMode",
	"MemberAccess",
	"Shape",
	"ResolvedBinding",
	"MemberResolver",
]
