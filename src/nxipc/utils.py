#!/usr/bin/env python3
"""
Utilities Module
================

This module contains utility functions shared by the IPC analysis, including:
- Address parsing
- Logging configuration
"""

import logging
from typing import Union


def parse_memory_address(addr_str: Union[str, int]) -> int:
    """Parse memory address from string, supporting hex and decimal formats"""
    if isinstance(addr_str, int):
        return addr_str

    addr_str = addr_str.strip()

    if addr_str.lower().startswith('0x'):
        return int(addr_str, 16)

    if any(c in addr_str.lower() for c in 'abcdef'):
        return int(addr_str, 16)

    return int(addr_str, 10)


def setup_logging(debug: bool):
    """Setup logging configuration"""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s',
        force=True
    )
