#!/usr/bin/env python3
"""
nxipc Module API
================

Recovers IPC service vtables and service tables from a loaded, relocated
console userland image without symbols.

Module Usage:
    import nxipc
    from nxipc import Relocation, Section, SectionKind

    with open('main.bin', 'rb') as f:
        image_data = f.read()

    sections = [
        Section(SectionKind.TEXT, 0x0, 0x1A0000),
        Section(SectionKind.RODATA, 0x1A0000, 0x60000),
        Section(SectionKind.DATA, 0x200000, 0x40000),
    ]
    relocations = [Relocation(offset=0x200010, addend=0x201000), ...]

    analyzer = nxipc.analyze_ipc(image_data, 0x7100000000, sections, relocations, debug=True)

    if analyzer:
        for entry in analyzer.get_vtable_entries():
            print(entry.short_name, [hex(a) for a in entry.method_addresses])
"""

import os
import logging
from typing import Iterable, Optional, Union

from .analyzer import IPCAnalyzer
from .demangler import Demangler
from .image import BinaryImage, ImageReader, MappedImageReader
from .types import HeuristicConfig, Relocation, Section
from .utils import setup_logging, parse_memory_address

# Configure logging
logger = logging.getLogger(__name__)


def _prepare(base_addr: Union[int, str], debug: bool) -> Optional[int]:
    # Setup logging for module usage only if no handlers exist
    if debug and not logger.handlers:
        setup_logging(True)

    try:
        base_addr = parse_memory_address(base_addr)
    except ValueError:
        logger.error(f"Invalid base address format: {base_addr}")
        return None

    logger.info(f"Using image base address: 0x{base_addr:x}")
    return base_addr


def analyze_ipc(image_data: Union[bytes, bytearray],
                base_addr: Union[int, str],
                sections: Iterable[Section],
                relocations: Iterable[Relocation],
                demangler: Optional[Demangler] = None,
                config: Optional[HeuristicConfig] = None,
                debug: bool = False) -> Optional[IPCAnalyzer]:
    """
    Analyze IPC structures of an image held in memory.

    Args:
        image_data: The loaded image, image-relative offsets starting at 0
        base_addr: Load base address (int or hex string)
        sections: TEXT, RODATA and DATA sections of the image
        relocations: Relocations as resolved by the loader
        demangler: Optional demangling service (defaults to PyDemangler)
        config: Optional heuristic parameters
        debug: Enable debug logging

    Returns:
        The analyzer holding the results, or None if the input is invalid
    """
    base_addr = _prepare(base_addr, debug)
    if base_addr is None:
        return None

    image = BinaryImage(ImageReader(image_data), base_addr, sections, relocations)
    analyzer = IPCAnalyzer(image, demangler, config)
    analyzer.analyze()
    return analyzer


def analyze_ipc_file(image_path: str,
                     base_addr: Union[int, str],
                     sections: Iterable[Section],
                     relocations: Iterable[Relocation],
                     demangler: Optional[Demangler] = None,
                     config: Optional[HeuristicConfig] = None,
                     debug: bool = False) -> Optional[IPCAnalyzer]:
    """
    Same as analyze_ipc(), reading a flat image file through a memory map.

    The image is unmapped before returning; the analyzer results are plain
    Python values and stay valid.
    """
    base_addr = _prepare(base_addr, debug)
    if base_addr is None:
        return None

    if not os.path.isfile(image_path):
        logger.error(f"Image file not found: {image_path}")
        return None

    with MappedImageReader(image_path) as reader:
        if reader.data is None:
            logger.error("Failed to map image file")
            return None

        image = BinaryImage(reader, base_addr, sections, relocations)
        analyzer = IPCAnalyzer(image, demangler, config)
        analyzer.analyze()
        return analyzer
