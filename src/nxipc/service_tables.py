"""
Service table locator.

Generated service dispatch code builds the "SFCI" magic with

    MOV  W?, #0x4653
    MOVK W?, #0x4943, LSL#16

Each match is attributed to the enclosing process function through the
relocation whose addend is the closest function start at or before it; that
relocation's slot is the service table.
"""

import bisect
import logging
from typing import List, Optional, Tuple

from .image import BinaryImage, MemoryAccessError
from .types import HeuristicConfig, SectionKind

logger = logging.getLogger(__name__)


class ServiceTableLocator:

    def __init__(self, image: BinaryImage, config: Optional[HeuristicConfig] = None):
        self.image = image
        self.config = config or HeuristicConfig()
        self._candidates: Optional[List[Tuple[int, int]]] = None
        self._addends: List[int] = []

    @property
    def candidates(self) -> List[Tuple[int, int]]:
        """(addend, offset) pairs with a positive addend, sorted by addend"""
        if self._candidates is None:
            pairs = [(reloc.addend, reloc.offset) for reloc in self.image.relocations if reloc.addend > 0]
            pairs.sort(key=lambda pair: pair[0])
            self._candidates = pairs
            self._addends = [addend for addend, _ in pairs]
        return self._candidates

    def is_magic_sequence(self, offset: int) -> bool:
        reader = self.image.reader
        shift = self.config.instruction_shift
        first = (reader.read_u32(offset) & 0xFFFFFF00) >> shift
        if first != self.config.mov_pattern:
            return False
        second = (reader.read_u32(offset + self.config.instruction_size) & 0xFFFFFF00) >> shift
        return second == self.config.movk_pattern

    def find_candidate(self, match_offset: int) -> Optional[Tuple[int, int]]:
        """Greatest candidate addend that is still <= match_offset"""
        candidates = self.candidates
        index = bisect.bisect_right(self._addends, match_offset)
        if index == 0:
            return None
        return candidates[index - 1]

    def find_return(self, func_offset: int) -> int:
        """Offset of the first RET at or after func_offset, or the end of TEXT."""
        text = self.image.get_section(SectionKind.TEXT)
        reader = self.image.reader
        offset = func_offset

        while offset < text.end:
            if reader.read_u32(offset) == self.config.ret_instruction:
                break
            offset += self.config.instruction_size

        return offset

    def locate(self) -> List[int]:
        text = self.image.get_section(SectionKind.TEXT)
        step = self.config.instruction_size
        table_addrs: List[int] = []

        for offset in range(text.offset, text.end, step):
            try:
                if not self.is_magic_sequence(offset):
                    continue
            except MemoryAccessError:
                continue

            candidate = self.find_candidate(offset)
            if candidate is None:
                logger.debug(f"No process function candidate before match at 0x{offset:x}")
                continue
            func_offset, table_offset = candidate

            try:
                ret_offset = self.find_return(func_offset)
            except MemoryAccessError:
                logger.debug(f"RET scan from 0x{func_offset:x} left the image")
                continue

            # The magic must sit inside the process function
            if ret_offset > offset:
                table_addr = self.image.to_address(table_offset)
                table_addrs.append(table_addr)
                logger.debug(f"Service table 0x{table_addr:x} (func 0x{func_offset:x}, "
                             f"magic 0x{offset:x}, ret 0x{ret_offset:x})")
            else:
                logger.debug(f"Rejected match at 0x{offset:x}: RET at 0x{ret_offset:x} precedes it")

        logger.info(f"Located {len(table_addrs)} service tables")
        return table_addrs
