#!/usr/bin/env python3
"""
Image Access Module
===================

提供IPC分析所需的镜像访问能力，所有偏移量均相对于镜像基址。

包含：
- ImageReader: 基于内存缓冲区的随机访问读取器
- MappedImageReader: 使用内存映射读取已重定位的扁平镜像文件
- BinaryImage: 段表、读取器、基址和重定位列表的组合

越界读取统一抛出 MemoryAccessError，由调用方决定是否跳过当前候选。
"""

import os
import mmap
import logging
import struct
from typing import Dict, Iterable, List, Optional, Union

from .types import Relocation, Section, SectionKind

# 配置日志
logger = logging.getLogger(__name__)


class MemoryAccessError(Exception):
    """Raised when a read falls outside the backing image"""

    def __init__(self, offset: int, size: int, limit: int):
        super().__init__(f"read of {size} bytes at 0x{offset:x} outside image (size 0x{limit:x})")
        self.offset = offset
        self.size = size
        self.limit = limit


# =============================================================================
# 内存缓冲区读取器
# =============================================================================

class ImageReader:
    """
    小端序随机访问读取器

    包装 bytes / bytearray / mmap，按镜像相对偏移读取无符号整数和以NUL结尾的字符串。
    """

    def __init__(self, data: Union[bytes, bytearray, mmap.mmap, None] = None):
        self.data = data

    @property
    def size(self) -> int:
        return len(self.data) if self.data is not None else 0

    def _check(self, offset: int, size: int):
        if self.data is None or offset < 0 or offset + size > len(self.data):
            raise MemoryAccessError(offset, size, self.size)

    def read_bytes(self, offset: int, size: int) -> bytes:
        self._check(offset, size)
        return bytes(self.data[offset:offset + size])

    def read_u32(self, offset: int) -> int:
        self._check(offset, 4)
        return struct.unpack_from('<I', self.data, offset)[0]

    def read_u64(self, offset: int) -> int:
        self._check(offset, 8)
        return struct.unpack_from('<Q', self.data, offset)[0]

    def read_cstring(self, offset: int, max_length: Optional[int] = None) -> bytes:
        """
        读取以NUL结尾的字节串（不含终止符）

        Args:
            offset: 起始偏移
            max_length: 最多扫描的字节数，None表示扫描到镜像末尾

        Returns:
            字符串字节；找不到终止符时返回到扫描上限为止的全部字节
        """
        self._check(offset, 1)
        end = len(self.data) if max_length is None else min(len(self.data), offset + max_length)
        terminator = self.data.find(b'\x00', offset, end)
        if terminator == -1:
            terminator = end
        return bytes(self.data[offset:terminator])


class MappedImageReader(ImageReader):
    """
    使用内存映射读取磁盘上的扁平镜像

    镜像文件必须是已加载、已重定位的内存布局（文件偏移 == 镜像相对偏移）。
    """

    def __init__(self, file_path: str):
        super().__init__(None)
        self.file_path = file_path
        self.file_handle = None
        self.mmap_file = None

    def __enter__(self):
        """上下文管理器入口"""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """上下文管理器出口"""
        self.close()

    def open(self) -> bool:
        """
        打开并内存映射镜像文件

        Returns:
            成功打开返回True，失败返回False
        """
        if self.mmap_file is not None:
            return True

        try:
            file_size = os.path.getsize(self.file_path)
            if file_size == 0:
                logger.error(f"Image file is empty: {self.file_path}")
                return False

            self.file_handle = open(self.file_path, 'rb')
            self.mmap_file = mmap.mmap(self.file_handle.fileno(), 0, access=mmap.ACCESS_READ)
            self.data = self.mmap_file

            logger.info(f"Mapped image file: {self.file_path} ({file_size} bytes)")
            return True

        except (IOError, OSError, ValueError) as e:
            logger.error(f"Failed to open image {self.file_path}: {e}")
            self.close()
            return False

    def close(self):
        """关闭文件句柄和内存映射"""
        self.data = None
        if self.mmap_file:
            self.mmap_file.close()
            self.mmap_file = None
        if self.file_handle:
            self.file_handle.close()
            self.file_handle = None


# =============================================================================
# 镜像描述
# =============================================================================

class BinaryImage:
    """
    分析所需的全部外部输入

    Args:
        reader: 镜像读取器
        base_address: 镜像加载基址
        sections: 至少包含 TEXT、RODATA、DATA 的段列表
        relocations: 已解析的重定位列表
    """

    def __init__(self, reader: ImageReader, base_address: int,
                 sections: Iterable[Section], relocations: Iterable[Relocation] = ()):
        self.reader = reader
        self.base_address = base_address
        self.sections: Dict[SectionKind, Section] = {}
        self.relocations: List[Relocation] = list(relocations)

        for section in sections:
            if section.kind in self.sections:
                logger.warning(f"Duplicate {section.kind.name} section, keeping the first one")
                continue
            self.sections[section.kind] = section

    def get_section(self, kind: SectionKind) -> Section:
        try:
            return self.sections[kind]
        except KeyError:
            raise KeyError(f"Image has no {SectionKind(kind).name} section") from None

    def contains(self, kind: SectionKind, offset: int) -> bool:
        """偏移量是否落在指定段内；缺失的段视为空段"""
        section = self.sections.get(kind)
        return section is not None and section.contains(offset)

    def to_offset(self, address: int) -> int:
        return address - self.base_address

    def to_address(self, offset: int) -> int:
        return self.base_address + offset

    def __repr__(self):
        sections = ", ".join(repr(s) for s in self.sections.values())
        return (f"BinaryImage(base=0x{self.base_address:x}, size=0x{self.reader.size:x}, "
                f"relocations={len(self.relocations)}, sections=[{sections}])")
