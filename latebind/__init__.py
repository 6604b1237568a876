"""
latebind: late-bound member resolution and invocation thunks.

Declare types in a TypeTable, members in a MemberRegistry, then resolve
calls by name and call shape through a Binder:

	table = TypeTable()
	registry = MemberRegistry(table)
	calc = table.declare_class("Calc")
	registry.add_method(calc, "Add", "(int, int) -> int", lambda a, b: a + b, static=True)
	binder = Binder(registry)
	binder.call(calc, "Add", 3, 4)  # 7
"""

from latebind.binder import Binder
from latebind.config import BinderConfig
from latebind.core.errors import (
	AccessDeniedError,
	AmbiguousMatchError,
	ArgumentNullError,
	ArgumentOutOfRangeError,
	BindingError,
	InvalidCastError,
	InvalidOperationError,
	InvalidRegistrationError,
	MissingGetterError,
	MissingMemberError,
	MissingSetterError,
	NotGenericTemplateError,
	TypeExpressionError,
	UnboundGenericParameterError,
)
from latebind.core.types_core import GenericConstraint, NumericCode, TypeKind, TypeTable
from latebind.member_registry import MemberKind, MemberRegistry, Visibility
from latebind.member_resolver import BindFlags, Shape
from latebind.accessor import MemberAccessor
from latebind.switcher import MethodSwitcher
from latebind.thunks import InvocationThunk

__all__ = [
	"Binder",
	"BinderConfig",
	"BindFlags",
	"Shape",
	"InvocationThunk",
	"MemberAccessor",
	"MethodSwitcher",
	"MemberKind",
	"MemberRegistry",
	"Visibility",
	"TypeTable",
	"TypeKind",
	"NumericCode",
	"GenericConstraint",
	"BindingError",
	"ArgumentNullError",
	"ArgumentOutOfRangeError",
	"AmbiguousMatchError",
	"MissingMemberError",
	"MissingGetterError",
	"MissingSetterError",
	"NotGenericTemplateError",
	"UnboundGenericParameterError",
	"InvalidCastError",
	"InvalidRegistrationError",
	"InvalidOperationError",
	"AccessDeniedError",
	"TypeExpressionError",
]
