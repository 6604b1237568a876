# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from latebind.core.type_subst import Subst, apply_mapping, apply_subst
from latebind.core.types_core import NumericCode, TypeTable


def test_apply_subst_rebuilds_nested_structure():
	table = TypeTable()
	box = table.declare_class("Box", type_params=["T"])
	tv = table.type_param(box, "T")
	int_ty = table.scalar(NumericCode.INT)
	nested = table.ensure_array(table.ensure_instantiated(box, [table.ensure_array(tv)]))
	closed = apply_subst(nested, Subst(owner="Box", args=(int_ty,)), table)
	assert table.label(closed) == "Box<int[]>[]"


def test_apply_subst_ignores_foreign_owner():
	table = TypeTable()
	box = table.declare_class("Box", type_params=["T"])
	tv = table.type_param(box, "T")
	arr = table.ensure_array(tv)
	assert apply_subst(arr, Subst(owner="Other", args=(table.string_type,)), table) == arr


def test_apply_mapping_by_typevar_id():
	table = TypeTable()
	box = table.declare_class("Box", type_params=["T"])
	tv = table.type_param(box, "T")
	opt = table.ensure_optional(tv)
	int_ty = table.scalar(NumericCode.INT)
	assert apply_mapping(opt, {tv: int_ty}, table) == table.ensure_optional(int_ty)
	assert apply_mapping(opt, {}, table) == opt
