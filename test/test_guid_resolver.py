from __future__ import annotations

import pytest

from markup_builder.guid import GuidKind, classify, normalize, resolve_guids

IFC_GUID = "2O2Fr$t4X7Zf8NOew3FLOH"
MS_GUID = "3f2504e0-4f89-11d3-9a0c-0305e82c3301"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  urn:uuid:3F2504E0-4F89-11D3-9A0C-0305E82C3301 ", "3F2504E0-4F89-11D3-9A0C-0305E82C3301"),
        ("URN:abc", "abc"),
        ("urn:UUID:xyz", "xyz"),
        (None, ""),
        ("plain", "plain"),
    ],
)
def test_normalize_strips_urn_prefix_and_whitespace(raw, expected) -> None:
    assert normalize(raw) == expected


@pytest.mark.parametrize(
    "value, kind",
    [
        (IFC_GUID, GuidKind.IFC),
        ("0123456789abcdefABCD_$", GuidKind.IFC),
        (MS_GUID, GuidKind.MS),
        ("{3F2504E0-4F89-11D3-9A0C-0305E82C3301}", GuidKind.MS),
        ("3f2504e04f8911d39a0c0305e82c3301", GuidKind.MS),
        ("urn:uuid:" + MS_GUID, GuidKind.MS),
        ("2O2Fr$t4X7Zf8NOew3FLO", GuidKind.UNKNOWN),
        ("3f2504e0-4f89-11d3-9a0c-0305e82c330", GuidKind.UNKNOWN),
        ("not-a-guid", GuidKind.UNKNOWN),
        ("", GuidKind.UNKNOWN),
    ],
)
def test_classify_recognises_ifc_and_ms_identifiers(value, kind) -> None:
    assert classify(value) is kind


def test_classify_is_stable_under_normalize() -> None:
    for value in (IFC_GUID, " urn:" + MS_GUID, "garbage", "{" + MS_GUID + "}"):
        assert classify(normalize(value)) is classify(value)
        assert normalize(normalize(value)) == normalize(value)


def test_resolve_guids_keeps_first_match_of_each_kind() -> None:
    other_ifc = "3vB2YO$MX4xv5uCqZZG05x"
    ifc, ms = resolve_guids(["junk", " " + IFC_GUID, other_ifc, "urn:uuid:" + MS_GUID, None])

    assert ifc == IFC_GUID
    assert ms == MS_GUID


def test_resolve_guids_returns_empty_strings_without_matches() -> None:
    assert resolve_guids(["", "abc", None]) == ("", "")
