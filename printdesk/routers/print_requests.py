"""
Print-request API.

POST /api/print-requests        — full plan (material, printer, settings, price)
GET  /api/materials[/{name}]    — material catalog
GET  /api/printers[/{id}]       — printer catalog
POST /api/settings/validate     — sanity-check a settings bundle
GET  /api/diagnostics           — catalog sizes + whether Gemini is configured
"""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException

from ..errors import ExternalServiceError, NoCompatibleOptionError, ValidationError
from ..orchestrator import PrintPlanOrchestrator
from ..schemas import PrintRequest, SettingsCheck, SettingsCheckResult
from ..settings_optimizer import validate_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["print-requests"])


@lru_cache(maxsize=1)
def get_orchestrator() -> PrintPlanOrchestrator:
    return PrintPlanOrchestrator()


@router.post("/print-requests")
async def create_print_request(request: PrintRequest,
                               orchestrator: PrintPlanOrchestrator = Depends(get_orchestrator)):
    """Run the full pipeline for one project."""
    try:
        return await orchestrator.process_request(request)
    except (ValidationError, NoCompatibleOptionError) as e:
        raise HTTPException(status_code=422, detail=e.to_dict())
    except ExternalServiceError as e:
        raise HTTPException(status_code=502, detail=e.to_dict())


@router.get("/materials")
def list_materials(orchestrator: PrintPlanOrchestrator = Depends(get_orchestrator)):
    return [m.model_dump(mode="json") for m in orchestrator.materials]


@router.get("/materials/{name}")
def get_material(name: str, orchestrator: PrintPlanOrchestrator = Depends(get_orchestrator)):
    if name not in orchestrator.materials:
        raise HTTPException(status_code=404, detail=f"Material '{name}' not found")
    return orchestrator.advisor.get_material_info(name)


@router.get("/printers")
def list_printers(orchestrator: PrintPlanOrchestrator = Depends(get_orchestrator)):
    return [p.model_dump(mode="json") for p in orchestrator.selector.get_available_printers()]


@router.get("/printers/{printer_id}")
def get_printer(printer_id: str, orchestrator: PrintPlanOrchestrator = Depends(get_orchestrator)):
    try:
        printer = orchestrator.selector.get_printer_by_id(printer_id)
    except ValidationError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return printer.model_dump(mode="json")


@router.post("/settings/validate", response_model=SettingsCheckResult)
def check_settings(check: SettingsCheck):
    return SettingsCheckResult(valid=validate_settings(check.model_dump()))


@router.get("/diagnostics")
def diagnostics(orchestrator: PrintPlanOrchestrator = Depends(get_orchestrator)):
    client = getattr(orchestrator.analyzer, "client", None)
    return {
        "materials": len(orchestrator.materials),
        "printers": len(orchestrator.printers),
        "gemini_configured": bool(client is not None and client.is_configured),
    }
