#!/usr/bin/env python3
"""
nxipc
=====

IPC服务分发表恢复工具，用于无符号的静态链接位置无关可执行镜像。

主要功能：
- 通过 RTTI 与结构指纹定位 IPC 服务对象 vtable
- 解码并缩写 vtable 名称
- 枚举 IPC 实现函数
- 通过 "SFCI" 指令序列定位服务表

核心模块：
- image: 镜像读取器与段信息
- relocations: 重定位索引
- rtti: RTTI 名称恢复
- demangler: 符号解码与缩写
- vtables: vtable 定位与条目构建
- service_tables: 服务表定位
- analyzer: 完整分析流程
- main: 模块API
"""

__version__ = "1.0.0"

# 导出主要类和函数
from .analyzer import IPCAnalyzer
from .demangler import Demangler, PyDemangler, demangle_ipc_symbol, shorten_ipc_symbol
from .image import BinaryImage, ImageReader, MappedImageReader, MemoryAccessError
from .main import analyze_ipc, analyze_ipc_file
from .relocations import RelocationIndex
from .rtti import RTTIResolver
from .service_tables import ServiceTableLocator
from .types import *
from .vtables import VTableEntryBuilder, VTableLocator

__all__ = [
    'IPCAnalyzer',
    'Demangler',
    'PyDemangler',
    'demangle_ipc_symbol',
    'shorten_ipc_symbol',
    'BinaryImage',
    'ImageReader',
    'MappedImageReader',
    'MemoryAccessError',
    'RelocationIndex',
    'RTTIResolver',
    'ServiceTableLocator',
    'VTableEntryBuilder',
    'VTableLocator',
    'analyze_ipc',
    'analyze_ipc_file',
    'Section',
    'SectionKind',
    'Symbol',
    'Relocation',
    'IPCVTableEntry',
    'HeuristicConfig',
    'SHN_UNDEF',
]
