"""
Symbol demangling and shortening for IPC vtable names.

The demangling service itself is pluggable: anything with a
``demangle(name) -> Optional[str]`` method works. ``PyDemangler`` is the
default and wraps the LLVM demangler bindings.
"""

import logging
from typing import Optional

import pydemangler

from .types import HeuristicConfig

logger = logging.getLogger(__name__)

# Itanium special-name prefixes and the "Scope::name" suffix they become
_SPECIAL_NAMES = (
    ("vtable for ", "vtable"),
    ("typeinfo name for ", "typeinfo_name"),
    ("typeinfo for ", "typeinfo"),
)


class Demangler:
    """Demangling service interface"""

    def demangle(self, mangled: str) -> Optional[str]:
        raise NotImplementedError


class PyDemangler(Demangler):
    """Demangles through pydemangler (LLVM Itanium/MSVC demangler)"""

    def demangle(self, mangled: str) -> Optional[str]:
        demangled = pydemangler.demangle(mangled)
        if not demangled or demangled == mangled:
            return None
        return demangled


def normalize_special_name(demangled: str) -> str:
    """Rewrite "vtable for X" style output as "X::vtable"."""
    for prefix, suffix in _SPECIAL_NAMES:
        if demangled.startswith(prefix):
            return f"{demangled[len(prefix):]}::{suffix}"
    return demangled


def fix_template_separators(name: str) -> str:
    """Turn '-' back into ':' inside template argument lists."""
    chars = list(name)
    template_level = 0

    for i, ch in enumerate(chars):
        if ch == '<':
            template_level += 1
        elif ch == '>' and template_level != 0:
            template_level -= 1

        if template_level > 0 and ch == '-':
            chars[i] = ':'

    return ''.join(chars)


def demangle_ipc_symbol(mangled: str, demangler: Demangler,
                        config: Optional[HeuristicConfig] = None) -> str:
    """
    Demangle an IPC symbol.

    Returns the demangled name, or the marker-prefixed mangled name when the
    demangler cannot handle it.
    """
    config = config or HeuristicConfig()

    # Needed by the demangler
    if not mangled.startswith(config.mangling_marker):
        mangled = config.mangling_marker + mangled

    demangled = demangler.demangle(mangled)
    if not demangled:
        logger.debug(f"Could not demangle {mangled}")
        return mangled

    return fix_template_separators(normalize_special_name(demangled))


def shorten_ipc_symbol(long_sym: str, config: Optional[HeuristicConfig] = None) -> str:
    """
    Abbreviate object factory names to "<Interface>::<member>".

    Names that are not wrapped in the stateless allocator factory template are
    returned unchanged.
    """
    config = config or HeuristicConfig()
    if not long_sym.startswith(config.factory_prefix):
        return long_sym

    marker_index = long_sym.find(config.factory_marker)
    if marker_index == -1:
        return long_sym

    name_start = marker_index + len(config.factory_marker)
    name_end = long_sym.find('>', name_start)
    if name_end == -1:
        return long_sym

    suffix = long_sym[long_sym.rfind(':') + 1:]
    return f"{long_sym[name_start:name_end]}::{suffix}"
