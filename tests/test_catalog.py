"""
Catalog tests — bundled JSON data, loader errors, immutability.
"""

import json

import pydantic
import pytest

from printdesk.catalog import (
    MaterialCatalog, PrinterCatalog, load_catalogs, load_material_catalog, load_printer_catalog,
)
from printdesk.errors import ValidationError
from printdesk.models import PrinterType, PropertyLevel


def _material_entry(name="PLA", cost=0.05):
    return {
        "name": name,
        "cost_per_gram": cost,
        "density": 1.24,
        "properties": {
            "strength": "medium",
            "flexibility": "low",
            "temperature_resistance": "low",
            "chemical_resistance": "low",
            "biodegradable": True,
        },
        "recommended_for": ["prototyping"],
    }


# ============================================================
# Bundled data
# ============================================================

def test_bundled_catalogs_load(materials, printers):
    """Nine materials, five printers, in file order."""
    assert materials.names() == [
        "PLA", "PETG", "ABS", "TPU", "ASA", "PC", "PA", "Standard Resin", "Tough Resin",
    ]
    assert len(printers) == 5
    assert printers.ids()[0] == "prusa-mk4"


def test_material_properties_parsed(materials):
    tpu = materials.get("TPU")
    assert tpu.properties.flexibility == PropertyLevel.VERY_HIGH
    assert tpu.properties.flexibility.is_high
    assert materials.get("PLA").properties.biodegradable is True


def test_printer_fields_parsed(printers):
    form3 = printers.get("formlabs-form3")
    assert form3.printer_type == PrinterType.SLA
    assert form3.default_settings.nozzle_temp is None
    assert form3.material_cost_multiplier == 1.2
    assert printers.get("prusa-mk4").max_build_volume.volume == pytest.approx(25 * 21 * 22)


def test_supporting_keeps_catalog_order(printers):
    assert [p.id for p in printers.supporting("PC")] == ["bambu-x1c", "ultimaker-s5"]
    assert printers.supporting("Unobtainium") == []


def test_cost_range(materials):
    assert materials.cost_range() == (0.05, 0.2)


# ============================================================
# Lookups and errors
# ============================================================

def test_unknown_material_raises_with_context(materials):
    with pytest.raises(ValidationError) as exc:
        materials.get("Unobtainium")
    assert exc.value.field == "material"
    assert exc.value.context["catalog"] == "materials"
    assert exc.value.to_dict()["value"] == "Unobtainium"


def test_unknown_printer_raises(printers):
    with pytest.raises(ValidationError) as exc:
        printers.get("nope")
    assert "nope" in exc.value.message


def test_contains_ignores_non_strings(materials):
    assert "PLA" in materials
    assert "pla" not in materials
    assert 42 not in materials


def test_duplicate_material_rejected(materials):
    pla = materials.get("PLA")
    with pytest.raises(ValidationError):
        MaterialCatalog([pla, pla])


def test_empty_catalogs_rejected():
    with pytest.raises(ValidationError):
        MaterialCatalog([])
    with pytest.raises(ValidationError):
        PrinterCatalog([])


# ============================================================
# Loading from a directory
# ============================================================

def test_load_from_custom_directory(tmp_path, catalogs):
    (tmp_path / "materials.json").write_text(json.dumps({"materials": [_material_entry()]}))
    (tmp_path / "printers.json").write_text(json.dumps({"printers": [
        catalogs[1].get("prusa-mk4").model_dump(mode="json"),
    ]}))
    materials, printers = load_catalogs(tmp_path)
    assert materials.names() == ["PLA"]
    assert printers.ids() == ["prusa-mk4"]


def test_invalid_entry_raises_validation_error(tmp_path):
    path = tmp_path / "materials.json"
    path.write_text(json.dumps({"materials": [_material_entry(cost=-1)]}))
    with pytest.raises(ValidationError) as exc:
        load_material_catalog(path)
    assert exc.value.context["catalog"] == "materials"


def test_missing_list_key_raises(tmp_path):
    path = tmp_path / "printers.json"
    path.write_text(json.dumps({"machines": []}))
    with pytest.raises(ValidationError):
        load_printer_catalog(path)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_material_catalog(tmp_path / "missing.json")


# ============================================================
# Immutability
# ============================================================

def test_catalog_entries_are_frozen(materials):
    with pytest.raises(pydantic.ValidationError):
        materials.get("PLA").cost_per_gram = 0.01


def test_catalog_mapping_is_read_only(materials):
    with pytest.raises(TypeError):
        materials._materials["Fake"] = materials.get("PLA")
