"""
Printer Selector tests — compatibility filter, weighted scoring, errors.
"""

import pytest

from printdesk.errors import NoCompatibleOptionError, NoCompatiblePrinterError, ValidationError
from printdesk.models import Dimensions
from printdesk.printer_selector import PrinterSelector


@pytest.fixture
def selector(printers):
    return PrinterSelector(printers)


# ============================================================
# Filtering
# ============================================================

def test_no_dimensions_filters_by_material_only(selector):
    """No bounding box → every PLA printer qualifies, volume score neutral."""
    ids = [p.id for p in selector.filter_compatible("PLA")]
    assert ids == ["prusa-mk4", "bambu-x1c", "ultimaker-s5", "creality-cr10-s5"]
    selection = selector.select_printer("PLA")
    assert "Volume efficiency: 50.0%" in selection.reasoning


def test_oversized_model_only_fits_large_format(selector):
    selection = selector.select_printer("PLA", Dimensions(x=30, y=30, z=30))
    assert selection.printer.id == "creality-cr10-s5"
    assert selection.alternatives == ()


@pytest.mark.parametrize("dims", [
    Dimensions(x=25.5, y=1, z=1),
    Dimensions(x=1, y=22, z=1),
    Dimensions(x=1, y=1, z=23),
])
def test_exceeded_axis_never_selected(selector, dims):
    """The Prusa (25 x 21 x 22) drops out when any single axis is too big; the Bambu (25.6³) fits."""
    selection = selector.select_printer("ASA", dims)
    chosen = [selection.printer.id] + [a.id for a in selection.alternatives]
    assert "prusa-mk4" not in chosen
    assert selection.printer.id == "bambu-x1c"


def test_exact_fit_is_allowed(selector):
    ids = [p.id for p in selector.filter_compatible("ASA", Dimensions(x=25, y=21, z=22))]
    assert "prusa-mk4" in ids


def test_dimension_mapping_accepted(selector):
    selection = selector.select_printer("PLA", {"x": 1, "y": 1, "z": 1})
    assert selection.printer.id == "creality-cr10-s5"


# ============================================================
# Scoring
# ============================================================

def test_pla_general_ranking(selector):
    """Cheapest machine wins when volume is unknown and the job is general."""
    selection = selector.select_printer("PLA")
    assert selection.printer.id == "creality-cr10-s5"
    assert selection.score == 0.8
    assert [(a.id, a.score) for a in selection.alternatives] == [
        ("prusa-mk4", 0.77), ("bambu-x1c", 0.7),
    ]


def test_cost_normalized_within_filtered_set(selector):
    """Only the SLA printer handles resin, so it is both cheapest and dearest."""
    selection = selector.select_printer("Tough Resin")
    assert selection.printer.id == "formlabs-form3"
    assert "Cost efficiency: 100.0%" in selection.reasoning


def test_volume_efficiency_bands(selector, printers):
    prusa = printers.get("prusa-mk4")       # 11550 cm³
    assert selector.volume_efficiency(prusa, None) == 0.5
    assert selector.volume_efficiency(prusa, Dimensions(x=10, y=10, z=10)) == 0.7
    assert selector.volume_efficiency(prusa, Dimensions(x=20, y=20, z=20)) == 1.0
    assert selector.volume_efficiency(prusa, Dimensions(x=24, y=20, z=21)) == 0.3


def test_quality_rating(selector, printers):
    form3 = printers.get("formlabs-form3")
    bambu = printers.get("bambu-x1c")
    creality = printers.get("creality-cr10-s5")
    assert selector.quality_rating(form3, "general") == pytest.approx(0.7)
    assert selector.quality_rating(form3, "functional") == pytest.approx(0.9)
    assert selector.quality_rating(bambu, "engineering") == pytest.approx(0.8)
    assert selector.quality_rating(creality, "engineering") == pytest.approx(0.5)


def test_quality_preference_echoed(selector):
    selection = selector.select_printer("PLA", preferences={"quality_preference": "high"})
    assert selection.reasoning.endswith("Quality preference: high")


@pytest.mark.parametrize("material", ["PLA", "PETG", "ABS", "TPU", "ASA", "PC", "PA", "Standard Resin"])
@pytest.mark.parametrize("project_type", ["general", "functional", "engineering", "decorative"])
def test_selection_invariants(selector, material, project_type):
    selection = selector.select_printer(material, Dimensions(x=5, y=5, z=5), project_type)
    assert material in selection.printer.supported_materials
    assert 0.0 <= selection.score <= 1.0
    scores = [a.score for a in selection.alternatives]
    assert scores == sorted(scores, reverse=True)
    assert selection.printer.id not in [a.id for a in selection.alternatives]


def test_selection_is_deterministic(selector):
    dims = Dimensions(x=12, y=12, z=12)
    assert selector.select_printer("PETG", dims, "functional") == \
        selector.select_printer("PETG", dims, "functional")


def test_weights_sum_to_one():
    assert sum(PrinterSelector.WEIGHTS.values()) == pytest.approx(1.0)


# ============================================================
# Errors
# ============================================================

def test_material_without_printers_raises(selector):
    with pytest.raises(NoCompatiblePrinterError) as exc:
        selector.select_printer("Unobtainium")
    assert exc.value.material == "Unobtainium"
    assert exc.value.dimensions is None
    assert exc.value.context["catalog"] == "printers"
    assert isinstance(exc.value, NoCompatibleOptionError)


def test_too_big_for_every_printer_raises(selector):
    dims = Dimensions(x=40, y=40, z=40)
    with pytest.raises(NoCompatiblePrinterError) as exc:
        selector.select_printer("PC", dims)
    assert exc.value.message == (
        "No compatible printers found for material: PC with dimensions 40 x 40 x 40"
    )
    assert exc.value.context["dimensions"] == {"x": 40.0, "y": 40.0, "z": 40.0}


def test_bad_inputs_raise(selector):
    with pytest.raises(ValidationError):
        selector.select_printer("")
    with pytest.raises(ValidationError):
        selector.select_printer("PLA", "big")
    with pytest.raises(ValidationError):
        selector.select_printer("PLA", {"x": -1, "y": 1, "z": 1})
    with pytest.raises(ValidationError):
        selector.select_printer("PLA", project_type=None)
    with pytest.raises(ValidationError):
        selector.select_printer("PLA", preferences=["fast"])


# ============================================================
# Catalog helpers
# ============================================================

def test_catalog_helpers(selector):
    assert len(selector.get_available_printers()) == 5
    assert selector.get_printer_by_id("bambu-x1c").name == "Bambu Lab X1 Carbon"
    with pytest.raises(ValidationError):
        selector.get_printer_by_id("missing")
