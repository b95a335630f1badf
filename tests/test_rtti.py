#!/usr/bin/env python3
"""
测试 RTTI 名称恢复
"""

import pytest

from conftest import BASE, ImageBuilder
from nxipc.rtti import RTTIResolver

VTABLE = 0x6100
RTTI = 0x7000
NAME = 0x4000


def make_resolver(builder):
    return RTTIResolver(builder.build())


def test_resolves_type_name(builder):
    builder.ptr(VTABLE + 8, RTTI).rtti(RTTI, NAME, "N2nn2sf4cmif6server23CmifServerDomainManager6DomainE")

    name = make_resolver(builder).resolve_type_name(BASE + VTABLE)
    assert name == "N2nn2sf4cmif6server23CmifServerDomainManager6DomainE"


def test_rtti_outside_data_is_rejected(builder):
    # RTTI pointer into RODATA
    builder.ptr(VTABLE + 8, 0x5000).rtti(0x5000, NAME, "N3foo3BarE")
    assert make_resolver(builder).resolve_type_name(BASE + VTABLE) is None


def test_name_outside_rodata_is_rejected(builder):
    # Name pointer into DATA
    builder.ptr(VTABLE + 8, RTTI).rtti(RTTI, 0x9000, "N3foo3BarE")
    assert make_resolver(builder).resolve_type_name(BASE + VTABLE) is None


def test_null_rtti_pointer(builder):
    assert make_resolver(builder).resolve_type_name(BASE + VTABLE) is None


def test_vtable_outside_image(builder):
    assert make_resolver(builder).resolve_type_name(BASE + 0x20000) is None
    assert make_resolver(builder).resolve_type_name(0) is None


@pytest.mark.parametrize("length,accepted", [(0, False), (1, True), (512, True), (513, False), (2000, False)])
def test_name_length_bounds(builder, length, accepted):
    builder.ptr(VTABLE + 8, RTTI).rtti(RTTI, NAME, "A" * length)

    name = make_resolver(builder).resolve_type_name(BASE + VTABLE)
    if accepted:
        assert name == "A" * length
    else:
        assert name is None
