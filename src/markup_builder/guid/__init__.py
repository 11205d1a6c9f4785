"""Identifier classification helpers."""

from .resolver import GuidKind, classify, normalize, resolve_guids

__all__ = ["GuidKind", "classify", "normalize", "resolve_guids"]
