"""
Core domain layer for catalog-dedupe.

This package contains pure business logic with no I/O.
All code here should be testable without files, databases or a terminal.
"""

from __future__ import annotations

__all__ = []
