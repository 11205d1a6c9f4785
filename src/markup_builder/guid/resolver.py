"""Classification and normalisation of object identifier strings."""

from __future__ import annotations

import re
from enum import Enum
from typing import Final, Iterable

_URN_PREFIX: Final = re.compile(r"^urn:(?:uuid:)?", flags=re.IGNORECASE)
_IFC_PATTERN: Final = re.compile(r"^[0-9A-Za-z_$]{22}$")
_MS_PATTERN: Final = re.compile(
    r"^(?:\{?[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}\}?"
    r"|[0-9A-Fa-f]{32})$"
)


class GuidKind(str, Enum):
    IFC = "IFC"
    MS = "MS"
    UNKNOWN = "UNKNOWN"


def normalize(value: str | None) -> str:
    """Trim whitespace and drop a leading ``urn:`` or ``urn:uuid:`` prefix."""
    if value is None:
        return ""
    text = str(value).strip()
    return _URN_PREFIX.sub("", text, count=1).strip()


def classify(value: str | None) -> GuidKind:
    """Return the identifier scheme of ``value`` after normalisation.

    A 22 character base64-like string is an IFC GUID. A canonical
    8-4-4-4-12 hex GUID, or 32 contiguous hex digits, is an MS GUID.
    """
    text = normalize(value)
    if _IFC_PATTERN.match(text):
        return GuidKind.IFC
    if _MS_PATTERN.match(text):
        return GuidKind.MS
    return GuidKind.UNKNOWN


def resolve_guids(values: Iterable[str | None]) -> tuple[str, str]:
    """Return the first IFC and the first MS identifier found in ``values``."""
    ifc = ""
    ms = ""
    for value in values:
        kind = classify(value)
        if kind is GuidKind.IFC and not ifc:
            ifc = normalize(value)
        elif kind is GuidKind.MS and not ms:
            ms = normalize(value)
        if ifc and ms:
            break
    return ifc, ms
