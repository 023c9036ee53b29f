"""
API tests — print requests, catalog lookups, settings check, diagnostics.

The orchestrator is overridden with stubbed analyzer and bundled catalogs.
"""

from conftest import StubAnalyzer, StubPricing, sample_request
from printdesk.catalog import PrinterCatalog
from printdesk.main import app
from printdesk.orchestrator import PrintPlanOrchestrator
from printdesk.routers.print_requests import get_orchestrator


def _override(orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator


# ============================================================
# Health + catalogs
# ============================================================

def test_health(client):
    """Health endpoint returns ok."""
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "app": "printdesk"}


def test_list_materials(client):
    resp = client.get("/api/materials")
    assert resp.status_code == 200
    names = [m["name"] for m in resp.json()]
    assert len(names) == 9
    assert "PLA" in names


def test_get_material(client):
    resp = client.get("/api/materials/PLA")
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "PLA"
    assert body["properties"]["biodegradable"] is True


def test_unknown_material_is_404(client):
    assert client.get("/api/materials/Unobtainium").status_code == 404


def test_list_printers(client):
    resp = client.get("/api/printers")
    assert resp.status_code == 200
    assert len(resp.json()) == 5


def test_get_printer(client):
    resp = client.get("/api/printers/prusa-mk4")
    assert resp.status_code == 200
    assert resp.json()["printer_type"] == "FDM"
    assert client.get("/api/printers/missing").status_code == 404


# ============================================================
# Settings check
# ============================================================

def test_validate_settings_ok(client):
    resp = client.post("/api/settings/validate", json={"layer_height": 0.2, "nozzle_temp": 210})
    assert resp.status_code == 200
    assert resp.json() == {"valid": True}


def test_validate_settings_out_of_range(client):
    resp = client.post("/api/settings/validate", json={"layer_height": 0.8, "nozzle_temp": 210})
    assert resp.json() == {"valid": False}


# ============================================================
# Print requests
# ============================================================

def test_print_request_round_trip(client):
    """Full plan comes back with material, printer, settings and price."""
    resp = client.post("/api/print-requests", json=sample_request())
    assert resp.status_code == 200
    body = resp.json()
    assert body["recommendations"]["material"] == "PETG"
    assert body["recommendations"]["settings"]["layer_height"] > 0
    assert body["pricing"]["total"] > 0
    assert body["ai_analysis"]["degraded"] is True


def test_print_request_bad_email_is_422(client):
    resp = client.post("/api/print-requests", json=sample_request(user_email="nope"))
    assert resp.status_code == 422


def test_print_request_no_printer_is_422(client, materials, printers):
    _override(PrintPlanOrchestrator(
        materials=materials,
        printers=PrinterCatalog([printers.get("formlabs-form3")]),
        analyzer=StubAnalyzer(),
    ))
    resp = client.post("/api/print-requests", json=sample_request())
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail["error"] == "NoCompatiblePrinterError"
    assert detail["material"] == "PETG"


def test_print_request_pricing_failure_is_502(client, make_orchestrator):
    _override(make_orchestrator(pricing=StubPricing(error=RuntimeError("rates offline"))))
    resp = client.post("/api/print-requests", json=sample_request())
    assert resp.status_code == 502
    detail = resp.json()["detail"]
    assert detail["service"] == "pricing"
    assert "rates offline" in detail["message"]


# ============================================================
# Diagnostics
# ============================================================

def test_diagnostics(client):
    resp = client.get("/api/diagnostics")
    assert resp.status_code == 200
    assert resp.json() == {"materials": 9, "printers": 5, "gemini_configured": False}
