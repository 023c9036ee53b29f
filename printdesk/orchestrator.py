"""
Print-plan pipeline.

One request, one strictly sequential pass:
    validate → analyze → material → bounding box → printer → settings → price → compile

Suspension points are exactly two (analyzer, pricing), awaited in order.
Any exception aborts the whole request; nothing partial is returned or cached.

The single trust boundary between the heuristic and AI paths:
    analyzer confidence > 0.7  → the analyzer's material replaces the advisor's pick
    analyzer confidence ≤ 0.7  → the advisor's pick stands
"""

import inspect
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Protocol, Union

from pydantic import ValidationError as PydanticValidationError

from .catalog import MaterialCatalog, PrinterCatalog, default_catalogs
from .errors import ExternalServiceError, PrintDeskError, ValidationError
from .material_advisor import MaterialAdvisor
from .models import (
    AnalysisOutcome, ConfidentAnalysis, DegradedAnalysis, Dimensions, ModelCharacteristics,
    PricingFlags, QualityRecommendation, Recommendation, RequirementKey, RequirementLevel,
    ScoredOption,
)
from .pricing_engine import PricingEngine
from .printer_selector import PrinterSelector
from .project_analyzer import ProjectAnalyzer
from .schemas import PrintRequest, Urgency
from .settings_optimizer import SettingsOptimizer

logger = logging.getLogger(__name__)

AI_OVERRIDE_CONFIDENCE = 0.7
UNEXPECTED_FAILURE_CONFIDENCE = 0.5

# (keywords, project type), first match wins
PROJECT_TYPE_KEYWORDS = [
    (("prototype", "test"), "prototype"),
    (("functional", "mechanical"), "functional"),
    (("decorative", "display"), "decorative"),
    (("engineering", "structural"), "engineering"),
    (("outdoor", "weather"), "outdoor"),
]


class Analyzer(Protocol):
    async def analyze(self, description, images=(), preferred_material=None,
                      preferred_color=None) -> AnalysisOutcome: ...


class Pricer(Protocol):
    def calculate_cost(self, material, printer, settings, model_characteristics, flags) -> Any: ...


def determine_project_type(description: str) -> str:
    text = description.lower()
    for keywords, project_type in PROJECT_TYPE_KEYWORDS:
        if any(k in text for k in keywords):
            return project_type
    return "general"


def extract_requirements(description: str) -> dict:
    text = description.lower()
    requirements = {}
    if "strong" in text or "durable" in text:
        requirements[RequirementKey.STRENGTH] = RequirementLevel.HIGH
    if "flexible" in text or "bend" in text:
        requirements[RequirementKey.FLEXIBILITY] = RequirementLevel.HIGH
    if "temperature" in text or "heat" in text:
        requirements[RequirementKey.TEMPERATURE] = RequirementLevel.HIGH
    return requirements


def bounding_box(volume: float) -> Dimensions:
    """Cube with the given volume. Not real geometry."""
    side = volume ** (1 / 3)
    return Dimensions(x=side, y=side, z=side)


def apply_ai_override(recommendation: Recommendation, analysis: AnalysisOutcome,
                      catalog: MaterialCatalog, scores: Mapping[str, float]) -> Recommendation:
    """
    Replace the advisor's winner with the analyzer's material when confidence > 0.7.

    The new winner carries its own advisor score from `scores`. The former
    winner drops into the alternatives; the new winner never appears there.
    Anything at or below the threshold returns the input untouched.
    """
    signals = analysis.signals
    if not signals.confidence > AI_OVERRIDE_CONFIDENCE:
        return recommendation

    material = catalog.get(signals.recommended_material)
    former = ScoredOption(
        name=recommendation.material,
        score=recommendation.score,
        reasoning=recommendation.reasoning,
    )
    candidates = [former, *recommendation.alternatives]
    alternatives = [c for c in candidates if c.name != material.name]
    alternatives.sort(key=lambda c: -c.score)

    return recommendation.model_copy(update={
        "material": material.name,
        "score": scores[material.name],
        "reasoning": f"AI-recommended {material.name}: {signals.reasoning}",
        "properties": material.properties,
        "alternatives": tuple(alternatives[:2]),
        "source": "ai",
    })


class PrintPlanOrchestrator:
    """Sequences analyzer, advisor, selector, optimizer and pricing for one request."""

    def __init__(self, materials: Optional[MaterialCatalog] = None,
                 printers: Optional[PrinterCatalog] = None,
                 analyzer: Optional[Analyzer] = None,
                 pricing: Optional[Pricer] = None):
        if materials is None or printers is None:
            default_materials, default_printers = default_catalogs()
            materials = materials or default_materials
            printers = printers or default_printers
        self.materials = materials
        self.printers = printers
        self.advisor = MaterialAdvisor(materials)
        self.selector = PrinterSelector(printers)
        self.analyzer = analyzer or ProjectAnalyzer(known_materials=materials.names())
        self.pricing = pricing or PricingEngine(materials)

    async def process_request(self, request: Union[PrintRequest, Mapping]) -> dict:
        request = self._validate(request)
        request_id = f"REQ_{uuid.uuid4().hex[:12].upper()}"
        logger.info("Processing print request %s: %s", request_id, request.project_name)

        try:
            result = await self._run(request_id, request)
        except PrintDeskError as e:
            logger.warning("Print request %s aborted: %s", request_id, e.message)
            raise
        except Exception:
            logger.exception("Print request %s failed unexpectedly", request_id)
            raise

        logger.info(
            "Print request %s complete: material=%s printer=%s total=%.2f",
            request_id, result["recommendations"]["material"],
            result["recommendations"]["printer"]["id"], result["pricing"]["total"],
        )
        return result

    @staticmethod
    def _validate(request) -> PrintRequest:
        if isinstance(request, PrintRequest):
            return request
        if not isinstance(request, Mapping):
            raise ValidationError(
                "Request data must be a valid object.", field="request", value=request,
            )
        try:
            return PrintRequest.model_validate(dict(request))
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first["loc"]) or None
            raise ValidationError(
                f"Invalid {field}: {first['msg']}" if field else first["msg"],
                field=field, value=first.get("input"),
            ) from e

    async def _analyze(self, request: PrintRequest) -> AnalysisOutcome:
        try:
            return await self.analyzer.analyze(
                request.description,
                list(request.render_images),
                request.preferred_material,
                request.preferred_color,
            )
        except ValidationError:
            raise
        except Exception as e:
            logger.warning("Analyzer raised, using fallback signals: %s", e)
            return DegradedAnalysis(
                signals=ProjectAnalyzer.fallback_signals(
                    request.description, request.preferred_material,
                    confidence=UNEXPECTED_FAILURE_CONFIDENCE,
                ),
                failure_reason=str(e) or type(e).__name__,
            )

    async def _price(self, material, printer, settings, characteristics, flags) -> dict:
        try:
            cost = self.pricing.calculate_cost(material, printer, settings, characteristics, flags)
            if inspect.isawaitable(cost):
                cost = await cost
        except PrintDeskError:
            raise
        except Exception as e:
            raise ExternalServiceError("pricing", str(e) or type(e).__name__) from e
        if not isinstance(cost, Mapping) or "total" not in cost:
            raise ExternalServiceError("pricing", "result is missing 'total'")
        return dict(cost)

    async def _run(self, request_id: str, request: PrintRequest) -> dict:
        # --- Analyze ---
        analysis = await self._analyze(request)
        signals = analysis.signals

        # --- Material ---
        project_type = determine_project_type(request.description)
        requirements = extract_requirements(request.description)
        recommendation = self.advisor.recommend_material(
            request.description,
            request.preferred_material,
            project_type,
            requirements,
        )
        scores = self.advisor.score_all(
            request.description,
            request.preferred_material,
            project_type,
            requirements,
        )
        recommendation = apply_ai_override(recommendation, analysis, self.materials, scores)
        material = self.materials.get(recommendation.material)

        # --- Printer ---
        dimensions = bounding_box(signals.estimated_volume)
        selection = self.selector.select_printer(
            material.name,
            dimensions,
            project_type,
            {"quality_preference": signals.quality_recommendation.value},
        )

        # --- Settings ---
        characteristics = ModelCharacteristics(
            has_overhangs=signals.supports_needed,
            complexity=signals.complexity.value,
            estimated_volume=signals.estimated_volume,
            volume_category=signals.volume_category,
        )
        plan = SettingsOptimizer(material, selection.printer).optimize_settings(
            project_type,
            characteristics,
            {"speed_preference": signals.quality_recommendation.value},
        )

        # --- Price ---
        flags = PricingFlags(
            supports=signals.supports_needed,
            post_processing=(
                request.post_processing
                or signals.quality_recommendation == QualityRecommendation.HIGH
            ),
            rush_order=request.urgency == Urgency.RUSH,
        )
        pricing = await self._price(material.name, selection.printer, plan.settings,
                                    characteristics, flags)

        return self._compile(
            request_id, request, analysis, project_type, recommendation, selection, plan, pricing,
        )

    @staticmethod
    def _compile(request_id, request, analysis, project_type, recommendation, selection,
                 plan, pricing) -> dict:
        signals = analysis.signals
        printer = selection.printer
        return {
            "request_id": request_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "user": {
                "name": request.user_name,
                "email": request.user_email,
            },
            "project": {
                "name": request.project_name,
                "description": request.description,
                "project_type": project_type,
                "quantity": request.quantity,
                "urgency": request.urgency.value,
                "preferred_material": request.preferred_material,
                "preferred_color": request.preferred_color,
                "special_instructions": request.special_instructions,
            },
            "recommendations": {
                "material": recommendation.material,
                "material_source": recommendation.source,
                "material_score": recommendation.score,
                "material_properties": recommendation.properties.model_dump(mode="json"),
                "printer": {
                    "id": printer.id,
                    "name": printer.name,
                    "printer_type": printer.printer_type.value,
                    "hourly_rate": printer.hourly_rate,
                    "score": selection.score,
                },
                "settings": plan.settings.model_dump(mode="json"),
                "quality_level": plan.quality_level.value,
                "estimated_print_time": plan.estimated_print_time,
            },
            "reasoning": {
                "material": recommendation.reasoning,
                "printer": selection.reasoning,
                "settings": plan.reasoning,
                "analysis": signals.reasoning,
            },
            "alternatives": {
                "materials": [a.model_dump() for a in recommendation.alternatives],
                "printers": [a.model_dump() for a in selection.alternatives],
            },
            "ai_analysis": {
                "source": "gemini" if isinstance(analysis, ConfidentAnalysis) else "fallback",
                "degraded": analysis.degraded,
                "failure_reason": getattr(analysis, "failure_reason", None),
                "confidence": signals.confidence,
                "complexity": signals.complexity.value,
                "supports_needed": signals.supports_needed,
                "volume_category": signals.volume_category.value,
                "quality_recommendation": signals.quality_recommendation.value,
                "recommended_material": signals.recommended_material,
            },
            "pricing": pricing,
        }
