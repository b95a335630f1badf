#!/usr/bin/env python3
"""
RTTI Resolver
=============

通过 Itanium ABI 的 RTTI 链恢复 vtable 的类型名：

    vtable + 0x8  -> type_info 记录（必须位于 DATA）
    type_info + 0x8 -> 类型名字符串（必须位于 RODATA）

任何越界或范围检查失败都返回 None，不向调用方抛出异常。
"""

import logging
from typing import Optional

from .image import BinaryImage, MemoryAccessError
from .types import HeuristicConfig, SectionKind

logger = logging.getLogger(__name__)


class RTTIResolver:

    def __init__(self, image: BinaryImage, config: Optional[HeuristicConfig] = None):
        self.image = image
        self.config = config or HeuristicConfig()

    def resolve_rtti_offset(self, vtable_addr: int) -> Optional[int]:
        """读取 vtable 的 RTTI 指针，返回其镜像相对偏移（必须位于 DATA）"""
        reader = self.image.reader
        try:
            rtti_ptr = reader.read_u64(self.image.to_offset(vtable_addr) + self.config.rtti_slot_offset)
        except MemoryAccessError:
            return None

        rtti_offset = self.image.to_offset(rtti_ptr)
        if not self.image.contains(SectionKind.DATA, rtti_offset):
            return None
        return rtti_offset

    def resolve_type_name(self, vtable_addr: int) -> Optional[str]:
        """
        恢复 vtable 的原始（未解码）类型名

        Args:
            vtable_addr: vtable 虚拟地址

        Returns:
            类型名字符串；链条不成立、越界或长度不合法时返回None
        """
        rtti_offset = self.resolve_rtti_offset(vtable_addr)
        if rtti_offset is None:
            return None

        reader = self.image.reader
        max_length = self.config.max_type_name_length
        try:
            name_ptr = reader.read_u64(rtti_offset + self.config.type_name_slot_offset)
            name_offset = self.image.to_offset(name_ptr)
            if not self.image.contains(SectionKind.RODATA, name_offset):
                return None

            # 多读一个字节，用来识别超长字符串
            raw = reader.read_cstring(name_offset, max_length + 1)
        except MemoryAccessError:
            return None

        if len(raw) == 0 or len(raw) > max_length:
            logger.debug(f"Rejected RTTI name of length {len(raw)} for vtable 0x{vtable_addr:x}")
            return None

        return raw.decode('latin-1')
