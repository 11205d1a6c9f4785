from __future__ import annotations

from types import SimpleNamespace

import anyio

from markup_builder.core.models import ReferenceInfo
from markup_builder.flattening import (
    EmptyProperties,
    PropertyFlattener,
    PropertyObjectMap,
    PropertySetArray,
    decode_record,
    flatten_record,
    sanitize_key,
    serialize_value,
)
from markup_builder.flattening.patterns import find_canonical_values, match_canonical_field

IFC_GUID = "2O2Fr$t4X7Zf8NOew3FLOH"
MS_GUID = "3f2504e0-4f89-11d3-9a0c-0305e82c3301"


class FakeFetcher:
    def __init__(
        self,
        *,
        reference: ReferenceInfo | None = None,
        layers: list[str] | None = None,
        external_id: str = "",
    ) -> None:
        self.reference = reference or ReferenceInfo()
        self.layers = layers or []
        self.external_id = external_id
        self.calls: list[str] = []

    async def fetch_reference_info(self, model_id, object_id) -> ReferenceInfo:
        self.calls.append("reference")
        return self.reference

    async def fetch_presentation_layers(self, model_id, object_id) -> list[str]:
        self.calls.append("layers")
        return list(self.layers)

    async def fetch_external_id(self, model_id, object_id) -> str:
        self.calls.append("external_id")
        return self.external_id


def _property_set(name, *properties) -> dict:
    return {"name": name, "properties": [{"name": key, "value": value} for key, value in properties]}


def test_sanitize_key_collapses_whitespace_and_strips_symbols() -> None:
    assert sanitize_key("  Pset Wall Common ") == "Pset_Wall_Common"
    assert sanitize_key("Length+Width") == "Length.Width"
    assert sanitize_key("Fire (Rating)%") == "Fire_Rating"
    assert sanitize_key("MixedCase") == "MixedCase"


def test_serialize_value_formats_scalars_and_containers() -> None:
    assert serialize_value(None) == ""
    assert serialize_value(True) == "true"
    assert serialize_value(False) == "false"
    assert serialize_value(120.0) == "120"
    assert serialize_value(1.5) == "1.5"
    assert serialize_value(["a", 2, None]) == "a | 2 | "
    assert serialize_value({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'


def test_decode_record_produces_tagged_property_payloads() -> None:
    sets = decode_record({"id": 5, "properties": [_property_set("Pset1", ("Name", "Beam"))]})
    mapping = decode_record({"id": 6, "properties": {"Colour": "red"}})
    empty = decode_record({"runtimeId": 7})

    assert isinstance(sets.properties, PropertySetArray)
    assert sets.object_id == "5"
    assert isinstance(mapping.properties, PropertyObjectMap)
    assert isinstance(empty.properties, EmptyProperties)
    assert empty.object_id == "7"


def test_decode_record_prefers_display_value_and_defaults_names() -> None:
    decoded = decode_record(
        {
            "properties": [
                {
                    "name": None,
                    "properties": [
                        {"name": "", "value": 1, "displayValue": "1 mm"},
                        {"name": "Raw", "value": 2, "displayValue": None},
                    ],
                }
            ]
        }
    )

    property_set = decoded.properties.sets[0]
    assert property_set.name == "Unknown"
    assert [(prop.name, prop.value) for prop in property_set.properties] == [
        ("Unknown", "1 mm"),
        ("Raw", 2),
    ]


def test_decode_record_accepts_attribute_objects() -> None:
    raw = SimpleNamespace(
        id=9,
        name="Slab",
        type="IfcSlab",
        product=SimpleNamespace(name="Deck", description="", type=""),
        globalId=IFC_GUID,
        properties=[SimpleNamespace(name="Pset", properties=[SimpleNamespace(name="A", value="x", displayValue=None)])],
    )

    record = flatten_record(raw, "m1")

    assert record["Name"] == "Slab"
    assert record["ProductName"] == "Deck"
    assert record["Pset.A"] == "x"
    assert record["GUID"] == IFC_GUID


def test_flatten_seeds_reserved_keys() -> None:
    record = flatten_record({}, "m1", "Demo", {"m1": "tower.ifc"})

    assert record == {
        "Project": "Demo",
        "ModelId": "m1",
        "FileName": "tower.ifc",
        "Name": "",
        "Type": "Unknown",
        "GUID": "",
        "GUID_IFC": "",
        "GUID_MS": "",
    }


def test_flatten_suffixes_colliding_keys_in_first_seen_order() -> None:
    raw = {
        "properties": [
            _property_set("Pset 1", ("Name", "a"), ("Name", "b")),
            _property_set("Pset_1", ("Name", "c")),
            _property_set("Pset1", ("Name_1", "d")),
        ]
    }

    record = flatten_record(raw, "m1")

    assert record["Pset_1.Name"] == "a"
    assert record["Pset_1.Name_1"] == "b"
    assert record["Pset_1.Name_2"] == "c"
    assert record["Pset1.Name_1"] == "d"
    assert len(record) == len(set(record))


def test_flatten_collision_skips_suffixes_already_taken() -> None:
    raw = {
        "properties": [
            _property_set("P", ("A_1", "first"), ("A", "second"), ("A", "third")),
        ]
    }

    record = flatten_record(raw, "m1")

    assert record["P.A_1"] == "first"
    assert record["P.A"] == "second"
    assert record["P.A_2"] == "third"


def test_flatten_plain_object_properties_use_properties_group() -> None:
    record = flatten_record({"properties": {"Fire Rating": "EI60", "Load": 2.0}}, "m1")

    assert record["Properties.Fire_Rating"] == "EI60"
    assert record["Properties.Load"] == "2"


def test_flatten_copies_top_level_fields() -> None:
    raw = {
        "id": 42,
        "name": "Column C1",
        "type": "IfcColumn",
        "product": {"name": "HEA 200", "description": "Steel column", "type": "Column"},
    }

    record = flatten_record(raw, "m1")

    assert record["ObjectId"] == "42"
    assert record["Name"] == "Column C1"
    assert record["Type"] == "IfcColumn"
    assert record["ProductName"] == "HEA 200"
    assert record["ProductDescription"] == "Steel column"
    assert record["ProductType"] == "Column"


def test_product_fields_fall_back_to_pattern_table() -> None:
    raw = {
        "properties": [
            _property_set("Identity", ("Product Name", ""), ("Product_Name", "Beam X")),
            _property_set("Meta", ("PRODUCT OBJECT TYPE", "Girder")),
        ],
        "product": {"description": "Given"},
    }

    record = flatten_record(raw, "m1")

    assert record["ProductName"] == "Beam X"
    assert record["ProductDescription"] == "Given"
    assert record["ProductType"] == "Girder"


def test_pattern_table_is_ordered_and_ignores_canonical_keys() -> None:
    assert match_canonical_field("Identity.Product_Name") == "ProductName"
    assert match_canonical_field("ProductName") is None
    assert match_canonical_field("Pset.Height") is None
    assert find_canonical_values([("a.product name", " "), ("b.productname", "x"), ("c.product_name", "y")]) == {
        "ProductName": "x"
    }


def test_guid_keys_take_precedence_over_top_level_global_id() -> None:
    other_ifc = "3vB2YO$MX4xv5uCqZZG05x"
    raw = {
        "globalId": other_ifc,
        "properties": [
            _property_set("Tekla", ("TEKLA_GUID", MS_GUID)),
            _property_set("Ifc", ("GlobalId", IFC_GUID)),
            _property_set("Other", ("Comment", "3vB2YO$MX4xv5uCqZZG05y")),
        ],
    }

    record = flatten_record(raw, "m1")

    assert record["GUID_IFC"] == IFC_GUID
    assert record["GUID_MS"] == MS_GUID
    assert record["GUID"] == IFC_GUID


def test_top_level_global_id_used_when_properties_have_none() -> None:
    record = flatten_record({"GlobalId": "urn:uuid:" + MS_GUID}, "m1")

    assert record["GUID_IFC"] == ""
    assert record["GUID_MS"] == MS_GUID
    assert record["GUID"] == MS_GUID


def test_enrichment_fills_only_missing_fields() -> None:
    fetcher = FakeFetcher(
        reference=ReferenceInfo(global_id=IFC_GUID, file_name="ref.ifc", common_type="Beam"),
        layers=["Structure", "Level 1"],
        external_id=MS_GUID,
    )
    flattener = PropertyFlattener(fetcher)
    raw = {"id": 1, "type": "IfcBeam"}

    record = anyio.run(flattener.flatten, raw, "m1", "Demo", {"m1": "tower.ifc"})

    assert record["FileName"] == "tower.ifc"
    assert record["Type"] == "IfcBeam"
    assert record["GUID_IFC"] == IFC_GUID
    assert record["GUID_MS"] == MS_GUID
    assert record["GUID"] == IFC_GUID
    assert record["Presentation_Layers"] == "Structure | Level 1"


def test_enrichment_skipped_when_guids_and_layers_present() -> None:
    fetcher = FakeFetcher(reference=ReferenceInfo(global_id="3vB2YO$MX4xv5uCqZZG05x"))
    flattener = PropertyFlattener(fetcher)
    raw = {
        "id": 1,
        "type": "IfcBeam",
        "properties": [
            _property_set("Ids", ("GUID", IFC_GUID), ("MS_GUID", MS_GUID)),
        ],
    }

    record = anyio.run(flattener.flatten, raw, "m1", "Demo", {"m1": "tower.ifc"})

    assert "reference" not in fetcher.calls
    assert "external_id" not in fetcher.calls
    assert record["GUID_IFC"] == IFC_GUID


def test_enrichment_without_object_id_is_not_attempted() -> None:
    fetcher = FakeFetcher(external_id=MS_GUID)
    flattener = PropertyFlattener(fetcher)

    record = anyio.run(flattener.flatten, {"properties": {"A": "1"}}, "m1")

    assert fetcher.calls == []
    assert record["GUID_MS"] == ""


def test_flatten_is_idempotent_with_same_enrichment() -> None:
    fetcher = FakeFetcher(
        reference=ReferenceInfo(file_name="ref.ifc", common_type="Beam"),
        layers=["A"],
        external_id=MS_GUID,
    )
    flattener = PropertyFlattener(fetcher)
    raw = {
        "id": 3,
        "properties": [_property_set("Pset", ("Name", "x"), ("Name", "y"))],
    }

    first = anyio.run(flattener.flatten, raw, "m1")
    second = anyio.run(flattener.flatten, raw, "m1")

    assert first == second
    assert list(first) == list(second)
