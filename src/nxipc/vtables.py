#!/usr/bin/env python3
"""
IPC VTable Module
=================

定位 IPC 服务对象的 vtable 并构建条目。

定位分两遍：
1. 种子：通过 RTTI 找到名称包含服务对象标记（或等于域管理器类型名）的 vtable
2. 全量：所有服务对象共享 vtable + 0x20 处不可重写的虚函数，
   以种子得出的该值作为指纹重新扫描所有候选，从而覆盖无 RTTI 的 vtable

条目构建：解析名称、收集 vtable + 0x30 起的 IPC 实现函数。
"""

import logging
from typing import Dict, List, Optional

from .demangler import Demangler, demangle_ipc_symbol, shorten_ipc_symbol
from .image import BinaryImage, MemoryAccessError
from .relocations import RelocationIndex
from .rtti import RTTIResolver
from .types import HeuristicConfig, IPCVTableEntry, SectionKind

logger = logging.getLogger(__name__)


# =============================================================================
# VTable 定位
# =============================================================================

class VTableLocator:

    def __init__(self, image: BinaryImage, relocations: RelocationIndex,
                 rtti: Optional[RTTIResolver] = None, config: Optional[HeuristicConfig] = None):
        self.image = image
        self.relocations = relocations
        self.config = config or HeuristicConfig()
        self.rtti = rtti or RTTIResolver(image, self.config)

    def iter_candidates(self):
        """重定位值中落在 DATA 段的地址，按扫描顺序去重"""
        seen = set()
        for value in self.relocations.values():
            if value in seen:
                continue
            if self.image.contains(SectionKind.DATA, self.image.to_offset(value)):
                seen.add(value)
                yield value

    def read_fingerprint(self, vtable_addr: int) -> Optional[int]:
        try:
            return self.image.reader.read_u64(
                self.image.to_offset(vtable_addr) + self.config.fingerprint_offset)
        except MemoryAccessError:
            return None

    def find_seeds(self) -> Dict[str, int]:
        """
        第一遍：通过 RTTI 名称找到已知的服务对象 vtable

        Returns:
            {RTTI类型名: vtable地址}
        """
        seeds: Dict[str, int] = {}

        for vtable_addr in self.iter_candidates():
            type_name = self.rtti.resolve_type_name(vtable_addr)
            if type_name is None or not self.config.is_seed_name(type_name):
                continue

            seeds[type_name] = vtable_addr
            logger.info(f"Service sym {type_name} at 0x{vtable_addr:x}")

        return seeds

    def derive_fingerprint(self, seeds: Dict[str, int]) -> Optional[int]:
        """
        所有种子在 +0x20 处的值必须一致，否则该启发式不适用于此镜像

        Returns:
            共同的函数地址；无种子、读取越界或不一致时返回None
        """
        known_address = None

        for type_name, vtable_addr in seeds.items():
            current = self.read_fingerprint(vtable_addr)
            if current is None:
                logger.warning(f"Cannot read fingerprint slot of {type_name} at 0x{vtable_addr:x}")
                return None

            if known_address is None:
                known_address = current
            elif known_address != current:
                logger.warning(f"Fingerprint mismatch: {type_name} has 0x{current:x}, "
                               f"expected 0x{known_address:x}")
                return None

        return known_address

    def scan(self, fingerprint: int) -> List[int]:
        """第二遍：接受所有 +0x20 处等于指纹的候选"""
        return [vtable_addr for vtable_addr in self.iter_candidates()
                if self.read_fingerprint(vtable_addr) == fingerprint]

    def locate(self) -> List[int]:
        seeds = self.find_seeds()
        if not seeds:
            logger.warning("No IPC vtable seeds found via RTTI")
            return []

        fingerprint = self.derive_fingerprint(seeds)
        if fingerprint is None:
            return []

        logger.info(f"Known service address: 0x{fingerprint:x}")

        vtables = self.scan(fingerprint)
        logger.info(f"Located {len(vtables)} IPC vtables from {len(seeds)} seeds")
        return vtables


# =============================================================================
# VTable 条目构建
# =============================================================================

class VTableEntryBuilder:

    def __init__(self, image: BinaryImage, relocations: RelocationIndex, demangler: Demangler,
                 rtti: Optional[RTTIResolver] = None, config: Optional[HeuristicConfig] = None):
        self.image = image
        self.relocations = relocations
        self.demangler = demangler
        self.config = config or HeuristicConfig()
        self.rtti = rtti or RTTIResolver(image, self.config)

    def resolve_name(self, vtable_addr: int) -> str:
        """RTTI 可用时返回解码后的名称，否则返回 SRV_<地址>::vtable"""
        symbol = self.rtti.resolve_type_name(vtable_addr)
        if symbol is None:
            return self.config.synthetic_name_format.format(vtable_addr)

        if not symbol.startswith(self.config.mangling_marker):
            symbol = self.config.vtable_symbol_prefix + symbol

        return demangle_ipc_symbol(symbol, self.demangler, self.config)

    def collect_methods(self, vtable_addr: int) -> List[int]:
        """
        收集 vtable 中的 IPC 实现函数

        从 +0x30 开始逐个读取指针，遇到零、越界或不在 TEXT 段的指针时停止；
        下一个槽位被某个重定位指向时（另一个对象从这里开始）也停止。
        """
        reader = self.image.reader
        impl_addrs: List[int] = []
        slot = vtable_addr + self.config.methods_offset

        while True:
            try:
                func_addr = reader.read_u64(self.image.to_offset(slot))
            except MemoryAccessError:
                break

            if func_addr == 0:
                break
            if not self.image.contains(SectionKind.TEXT, self.image.to_offset(func_addr)):
                break

            impl_addrs.append(func_addr)
            slot += self.config.pointer_size

            if self.relocations.is_pointed_to(slot):
                break

        # Either exactly one function, or more than one distinct function
        if len(set(impl_addrs)) <= 1 and len(impl_addrs) != 1:
            if impl_addrs:
                logger.debug(f"Discarding {len(impl_addrs)} degenerate entries of vtable 0x{vtable_addr:x}")
            return []

        return impl_addrs

    def build_entry(self, vtable_addr: int) -> IPCVTableEntry:
        name = self.resolve_name(vtable_addr)
        short_name = shorten_ipc_symbol(name, self.config)
        methods = self.collect_methods(vtable_addr)

        logger.debug(f"VTable 0x{vtable_addr:x}: {short_name} ({len(methods)} methods)")
        return IPCVTableEntry(name, short_name, vtable_addr, methods)

    def build(self, vtable_addrs: List[int]) -> List[IPCVTableEntry]:
        return [self.build_entry(vtable_addr) for vtable_addr in vtable_addrs]
