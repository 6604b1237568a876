# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
import pytest

from latebind.binder import Binder
from latebind.core.types_core import TypeTable
from latebind.member_registry import MemberRegistry


@pytest.fixture
def table() -> TypeTable:
	return TypeTable()


@pytest.fixture
def registry(table: TypeTable) -> MemberRegistry:
	return MemberRegistry(table)


@pytest.fixture
def binder(registry: MemberRegistry) -> Binder:
	return Binder(registry)
