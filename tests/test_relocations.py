#!/usr/bin/env python3
"""
测试重定位索引
"""

from conftest import BASE, ImageBuilder
from nxipc.relocations import RelocationIndex, relocation_origin
from nxipc.types import Relocation, Symbol, SHN_UNDEF


def test_addend_relocations_are_indexed():
    image = ImageBuilder().reloc(0x8000, addend=0x6100).reloc(0x8008, addend=0x200).build()
    index = RelocationIndex(image)

    assert index.resolve() == {
        BASE + 0x8000: BASE + 0x6100,
        BASE + 0x8008: BASE + 0x200,
    }
    assert len(index) == 2


def test_defined_zero_symbol_contributes_zero():
    # The symbol branch wins over the addend and always yields offset 0
    reloc = Relocation(0x8000, addend=0x6100, symbol=Symbol(0, section_index=3))
    assert relocation_origin(reloc) == 0


def test_undefined_symbol_falls_back_to_addend():
    reloc = Relocation(0x8000, addend=0x6100, symbol=Symbol(0, section_index=SHN_UNDEF))
    assert relocation_origin(reloc) == 0x6100


def test_unusable_relocations_are_skipped():
    image = (ImageBuilder()
             .reloc(0x8000)                                          # no symbol, no addend
             .reloc(0x8008, symbol=Symbol(0x1234, section_index=2))  # defined, non-zero value
             .reloc(0x8010, symbol=Symbol(0, section_index=SHN_UNDEF))
             .build())

    assert RelocationIndex(image).resolve() == {}


def test_negative_addend_is_kept():
    image = ImageBuilder().reloc(0x8000, addend=-0x10).build()
    assert RelocationIndex(image).resolve() == {BASE + 0x8000: BASE - 0x10}


def test_index_is_built_once():
    builder = ImageBuilder().reloc(0x8000, addend=0x6100)
    image = builder.build()
    index = RelocationIndex(image)

    first = index.resolve()
    image.relocations.append(Relocation(0x8008, addend=0x6200))

    assert index.resolve() is first
    assert index.is_target(BASE + 0x8000)
    assert not index.is_target(BASE + 0x8008)


def test_pointed_to_follows_resolved_values():
    builder = ImageBuilder().reloc(0x8000, addend=0x6100).reloc(0x6130, addend=0x200)
    index = RelocationIndex(builder.build())

    assert index.is_pointed_to(BASE + 0x6100)
    assert index.is_pointed_to(BASE + 0x200)
    # A relocated slot is not a pointed-to address
    assert index.is_target(BASE + 0x6130)
    assert not index.is_pointed_to(BASE + 0x6130)
    assert not index.is_pointed_to(BASE + 0x8000)
