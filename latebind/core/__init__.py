"""
latebind.core: host type system, substitution, caches and errors shared by
every resolution stage.

Modules:
  - types_core: TypeId/TypeTable primitives
  - type_subst: type parameter substitution
  - lru_cache: bounded first-writer-wins cache
  - errors: BindingError hierarchy
"""

__all__ = [
	"types_core",
	"type_subst",
	"lru_cache",
	"errors",
]
