# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Exception hierarchy for late-bound resolution.

Every failure surfaced to callers derives from `BindingError`, and each class
also derives from the closest builtin so callers that only know about
`LookupError`/`TypeError`/`ValueError` still catch the right thing.

Failures that are part of normal candidate filtering (a single overload that
does not match, a violated generic constraint) are never raised; they are
reported as values (`MatchResult`, `InferResult`) and the resolver moves on.
"""

from __future__ import annotations

from typing import Any


class BindingError(Exception):
	"""Base class for all late-binding failures."""


class ArgumentNullError(BindingError, ValueError):
	"""A required argument was None."""

	def __init__(self, param_name: str, message: str | None = None) -> None:
		self.param_name = param_name
		super().__init__(message or f"argument '{param_name}' must not be None")


class ArgumentOutOfRangeError(BindingError, ValueError):
	"""An argument was outside the accepted range (counts, capacities, indexes)."""


class AmbiguousMatchError(BindingError, LookupError):
	"""More than one candidate tied for the best match."""


class MissingMemberError(BindingError, LookupError):
	"""No candidate survived any resolution phase."""


class MissingGetterError(MissingMemberError):
	"""The accessed property or field cannot be read."""


class MissingSetterError(MissingMemberError):
	"""The accessed property or field cannot be written."""


class NotGenericTemplateError(BindingError, TypeError):
	"""A generic-only operation was requested on a non-generic type or member."""


class UnboundGenericParameterError(BindingError, TypeError):
	"""Resolution was attempted against a type still carrying open type parameters."""


class InvalidCastError(BindingError, TypeError):
	"""A coercion is not possible for the given value or type pair."""


class AccessDeniedError(BindingError, PermissionError):
	"""Visibility rules reject every candidate that would otherwise match."""


class TypeExpressionError(BindingError, ValueError):
	"""A textual type expression or signature could not be parsed or resolved."""


class InvalidRegistrationError(BindingError, ValueError):
	"""A type or member declaration is malformed or conflicts with an existing one."""


class InvalidOperationError(BindingError, ValueError):
	"""The requested operation does not apply to this member."""


def check_argument_null(value: Any, param_name: str) -> Any:
	"""Return `value`, raising ArgumentNullError when it is None."""
	if value is None:
		raise ArgumentNullError(param_name)
	return value


__all__ = [
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
	"AccessDeniedError",
	"TypeExpressionError",
	"InvalidRegistrationError",
	"InvalidOperationError",
	"check_argument_null",
]
