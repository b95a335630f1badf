"""
Relocation index: relocated slot address -> resolved pointer value.
"""

import logging
from typing import Dict, Iterator, Optional, Set, Tuple

from .image import BinaryImage
from .types import Relocation

logger = logging.getLogger(__name__)


def relocation_origin(reloc: Relocation) -> Optional[int]:
    """
    Image-relative value a relocation writes into its slot, or None if the
    relocation does not produce a usable pointer.
    """
    sym = reloc.symbol
    if sym is not None and sym.is_defined and sym.value == 0:
        # NOTE: this branch only ever contributes 0; kept as-is until it is
        # known whether the addend was meant here.
        return sym.value
    if reloc.addend != 0:
        return reloc.addend
    return None


class RelocationIndex:
    """
    Lazily built map of relocated entries to their new values.

    Keys and values are virtual addresses (image base applied). The map is built
    once on first use and never modified afterwards.
    """

    def __init__(self, image: BinaryImage):
        self.image = image
        self._entries: Optional[Dict[int, int]] = None
        self._targets: Optional[Set[int]] = None
        self._values: Optional[Set[int]] = None

    def resolve(self) -> Dict[int, int]:
        if self._entries is not None:
            return self._entries

        entries: Dict[int, int] = {}
        skipped = 0
        base = self.image.base_address

        for reloc in self.image.relocations:
            origin = relocation_origin(reloc)
            if origin is None:
                skipped += 1
                continue

            # Target -> Value
            entries[base + reloc.offset] = base + origin

        self._entries = entries
        self._targets = set(entries)
        self._values = set(entries.values())

        logger.debug(f"Relocation index: {len(entries)} entries, {skipped} relocations skipped")
        return self._entries

    def is_target(self, address: int) -> bool:
        if self._targets is None:
            self.resolve()
        return address in self._targets

    def is_pointed_to(self, address: int) -> bool:
        """Whether some relocated slot resolves to this address"""
        if self._values is None:
            self.resolve()
        return address in self._values

    def items(self) -> Iterator[Tuple[int, int]]:
        return iter(self.resolve().items())

    def values(self) -> Iterator[int]:
        return iter(self.resolve().values())

    def __len__(self):
        return len(self.resolve())
