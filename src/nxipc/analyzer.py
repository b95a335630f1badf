#!/usr/bin/env python3
"""
IPC Analyzer
============

单次同步分析：定位 IPC vtable、构建条目、定位服务表。

每个阶段独立失败：某一阶段中途出现意外异常时记录错误，保留已经得到的部分结果，
其余阶段照常执行，分析器绝不向外抛出异常。
"""

import logging
from typing import List, Optional

from .demangler import Demangler, PyDemangler
from .image import BinaryImage
from .relocations import RelocationIndex
from .rtti import RTTIResolver
from .service_tables import ServiceTableLocator
from .types import HeuristicConfig, IPCVTableEntry
from .vtables import VTableEntryBuilder, VTableLocator

logger = logging.getLogger(__name__)


class IPCAnalyzer:
    """
    一个镜像对应一个分析器实例

    Args:
        image: 待分析镜像
        demangler: 符号解码服务，默认使用 PyDemangler
        config: 启发式参数，默认 HeuristicConfig()
    """

    def __init__(self, image: BinaryImage, demangler: Optional[Demangler] = None,
                 config: Optional[HeuristicConfig] = None):
        self.image = image
        self.config = config or HeuristicConfig()
        self.demangler = demangler or PyDemangler()

        self.relocations = RelocationIndex(image)
        self.rtti = RTTIResolver(image, self.config)

        self.vtable_addrs: List[int] = []
        self.vtable_entries: List[IPCVTableEntry] = []
        self.service_table_addrs: List[int] = []
        self.analyzed = False

    def locate_ipc_vtables(self):
        locator = VTableLocator(self.image, self.relocations, self.rtti, self.config)
        self.vtable_addrs = locator.locate()

    def create_vtable_entries(self):
        builder = VTableEntryBuilder(self.image, self.relocations, self.demangler, self.rtti, self.config)
        for vtable_addr in self.vtable_addrs:
            self.vtable_entries.append(builder.build_entry(vtable_addr))

    def locate_service_tables(self):
        locator = ServiceTableLocator(self.image, self.config)
        self.service_table_addrs = locator.locate()

    def analyze(self) -> bool:
        """
        执行完整分析

        Returns:
            所有阶段都正常结束返回True；任一阶段出现意外异常返回False（部分结果保留）
        """
        if self.analyzed:
            return True

        logger.info(f"Analyzing IPC in {self.image!r}")
        success = True

        # vtable 条目依赖 vtable 定位结果，两步放在同一阶段
        for phase in ((self.locate_ipc_vtables, self.create_vtable_entries),
                      (self.locate_service_tables,)):
            try:
                for step in phase:
                    step()
            except Exception as e:
                logger.error(f"Failed to analyze binary IPC: {e}")
                logger.debug("Traceback:", exc_info=True)
                success = False

        self.analyzed = True
        logger.info(self.summary())
        return success

    def get_vtable_addresses(self) -> List[int]:
        return list(self.vtable_addrs)

    def get_vtable_entries(self) -> List[IPCVTableEntry]:
        return list(self.vtable_entries)

    def get_service_table_addresses(self) -> List[int]:
        return list(self.service_table_addrs)

    def summary(self) -> str:
        method_count = sum(len(entry.method_addresses) for entry in self.vtable_entries)
        return (f"IPC analysis: {len(self.vtable_entries)} vtables, {method_count} methods, "
                f"{len(self.service_table_addrs)} service tables")
