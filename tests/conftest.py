#!/usr/bin/env python3
"""
测试公共设施：合成镜像构建器和假的解码服务
"""

import sys
import os
import struct

import pytest

# 添加src目录到Python路径
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from nxipc.demangler import Demangler
from nxipc.image import BinaryImage, ImageReader
from nxipc.types import Relocation, Section, SectionKind

BASE = 0x7100000000

# 默认布局: TEXT 0x0-0x4000, RODATA 0x4000-0x6000, DATA 0x6000-0x10000
TEXT = Section(SectionKind.TEXT, 0x0, 0x4000)
RODATA = Section(SectionKind.RODATA, 0x4000, 0x2000)
DATA = Section(SectionKind.DATA, 0x6000, 0xA000)

# AArch64 encodings of the "SFCI" idiom and RET
MOV_W8_4653 = 0x5288CA68
MOVK_W8_4943 = 0x72A92868
RET = 0xD65F03C0


class ImageBuilder:
    """在 bytearray 上按镜像相对偏移写入数据"""

    def __init__(self, size=0x10000, base=BASE, sections=(TEXT, RODATA, DATA)):
        self.data = bytearray(size)
        self.base = base
        self.sections = list(sections)
        self.relocations = []

    def u32(self, offset, value):
        struct.pack_into('<I', self.data, offset, value)
        return self

    def u64(self, offset, value):
        struct.pack_into('<Q', self.data, offset, value)
        return self

    def ptr(self, offset, target_offset):
        """写入指向 target_offset 的已重定位指针"""
        return self.u64(offset, self.base + target_offset)

    def cstring(self, offset, text):
        raw = text.encode('latin-1') if isinstance(text, str) else text
        self.data[offset:offset + len(raw) + 1] = raw + b'\x00'
        return self

    def reloc(self, offset, addend=0, symbol=None):
        self.relocations.append(Relocation(offset, addend, symbol))
        return self

    def vtable(self, offset, fingerprint, rtti_offset=None, methods=()):
        """写入 vtable: +0x8 RTTI指针, +0x20 指纹, +0x30 起方法指针"""
        if rtti_offset is not None:
            self.ptr(offset + 0x8, rtti_offset)
        self.u64(offset + 0x20, fingerprint)
        for i, method in enumerate(methods):
            self.u64(offset + 0x30 + i * 8, method)
        return self

    def rtti(self, offset, name_offset, name):
        """写入 type_info 记录和它的名称字符串"""
        self.ptr(offset + 0x8, name_offset)
        self.cstring(name_offset, name)
        return self

    def build(self):
        return BinaryImage(ImageReader(self.data), self.base, self.sections, self.relocations)


class FakeDemangler(Demangler):
    """按映射表解码，并记录所有请求"""

    def __init__(self, names=None, fallback=None):
        self.names = dict(names or {})
        self.fallback = fallback
        self.requests = []

    def demangle(self, mangled):
        self.requests.append(mangled)
        if mangled in self.names:
            return self.names[mangled]
        if self.fallback is not None:
            return self.fallback(mangled)
        return None


@pytest.fixture
def builder():
    return ImageBuilder()


@pytest.fixture
def demangler():
    return FakeDemangler()
