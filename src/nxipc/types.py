from enum import IntEnum
from typing import List, Optional, Sequence

# =============================================================================
# Image Constants and Enums
# =============================================================================

SHN_UNDEF = 0  # Undefined section index


class SectionKind(IntEnum):
    """Section kinds supplied by the image loader"""
    TEXT = 0
    RODATA = 1
    DATA = 2
    BSS = 3


# =============================================================================
# Image Structures
# =============================================================================

class Section:
    """A named section range, expressed as image-relative offset and size"""

    def __init__(self, kind: SectionKind, offset: int, size: int):
        self.kind = SectionKind(kind)
        self.offset = offset
        self.size = size

    @property
    def end(self) -> int:
        return self.offset + self.size

    def contains(self, offset: int) -> bool:
        return self.offset <= offset < self.offset + self.size

    def __repr__(self):
        return f"Section({self.kind.name}, offset=0x{self.offset:x}, size=0x{self.size:x})"


class Symbol:
    """Minimal symbol reference attached to a relocation"""

    def __init__(self, value: int, section_index: int = SHN_UNDEF, name: str = ""):
        self.value = value                  # st_value
        self.section_index = section_index  # st_shndx
        self.name = name

    @property
    def is_defined(self) -> bool:
        return self.section_index != SHN_UNDEF

    def __repr__(self):
        return f"Symbol({self.name!r}, value=0x{self.value:x}, shndx={self.section_index})"


class Relocation:
    """Relocation entry as handed over by the loader (r_offset, r_addend, symbol)"""

    def __init__(self, offset: int, addend: int = 0, symbol: Optional[Symbol] = None):
        self.offset = offset
        self.addend = addend
        self.symbol = symbol

    def __repr__(self):
        return f"Relocation(offset=0x{self.offset:x}, addend=0x{self.addend:x}, symbol={self.symbol!r})"


# =============================================================================
# Analysis Results
# =============================================================================

class IPCVTableEntry:
    """
    One confirmed IPC vtable.

    full_name is the demangled (or synthetic) name, short_name the abbreviated form,
    address the vtable virtual address and method_addresses the IPC implementation
    functions in slot order.
    """

    def __init__(self, full_name: str, short_name: str, address: int, method_addresses: Sequence[int]):
        self.full_name = full_name
        self.short_name = short_name
        self.address = address
        self.method_addresses = tuple(method_addresses)

    def __eq__(self, other):
        if not isinstance(other, IPCVTableEntry):
            return NotImplemented
        return (self.full_name == other.full_name and
                self.short_name == other.short_name and
                self.address == other.address and
                self.method_addresses == other.method_addresses)

    def __hash__(self):
        return hash((self.full_name, self.short_name, self.address, self.method_addresses))

    def __repr__(self):
        return (f"IPCVTableEntry({self.short_name!r}, address=0x{self.address:x}, "
                f"methods={len(self.method_addresses)})")


# =============================================================================
# Heuristic Configuration
# =============================================================================

class HeuristicConfig:
    """
    Fixed layout assumptions used by the IPC heuristics.

    Every offset is relative to the structure it describes. The defaults match
    AArch64 userland binaries built with the console SDK toolchain.
    """

    def __init__(self):
        # --- vtable layout ---
        self.pointer_size = 8
        self.rtti_slot_offset = 0x8         # vtable + 8 -> RTTI record
        self.type_name_slot_offset = 0x8    # RTTI + 8 -> mangled type name
        self.fingerprint_offset = 0x20      # shared non-overridable virtual function
        self.methods_offset = 0x30          # first IPC method slot
        self.max_type_name_length = 512

        # --- seed selection ---
        self.service_object_markers: List[str] = ["UnmanagedServiceObject"]
        self.domain_manager_type_names: List[str] = [
            "N2nn2sf4cmif6server23CmifServerDomainManager6DomainE",
        ]

        # --- service table idiom ("SFCI") ---
        #   MOV  W?, #0x4653
        #   MOVK W?, #0x4943, LSL#16
        self.instruction_size = 4
        self.mov_pattern = 0x5288CA
        self.movk_pattern = 0x72A928
        self.instruction_shift = 8          # drops the Rd field
        self.ret_instruction = 0xD65F03C0   # RET

        # --- naming ---
        self.mangling_marker = "_Z"
        self.vtable_symbol_prefix = "_ZTV"
        self.synthetic_name_format = "SRV_{:X}::vtable"
        self.factory_prefix = "nn::sf::detail::ObjectImplFactoryWithStatelessAllocator<"
        self.factory_marker = "_tO2N<"

    def is_seed_name(self, type_name: str) -> bool:
        """RTTI名称是否属于服务对象或域管理器"""
        if any(marker in type_name for marker in self.service_object_markers):
            return True
        return type_name in self.domain_manager_type_names
