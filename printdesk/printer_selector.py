"""
Printer Selector — picks the best catalog printer for a material + bounding box.

Filter first (material supported, fits on every axis), then score survivors:
    0.4·material + 0.3·volume + 0.2·cost + 0.1·quality
Cost is normalized across the filtered set only.
"""

import logging
from typing import Mapping, Optional

from .catalog import PrinterCatalog
from .errors import NoCompatiblePrinterError, ValidationError
from .models import Dimensions, Printer, PrinterSelection, PrinterType, ScoredOption

logger = logging.getLogger(__name__)

QUALITY_FEATURES = ("high-speed", "high-precision", "professional-grade", "multi-color")
DEMANDING_PROJECT_TYPES = ("engineering", "functional")

# Utilization band that counts as a good fit
UTILIZATION_MIN = 0.2
UTILIZATION_MAX = 0.8


class PrinterSelector:
    """Filter-then-score printer selection over an injected catalog."""

    WEIGHTS = {
        "material": 0.4,
        "volume": 0.3,
        "cost": 0.2,
        "quality": 0.1,
    }
    NEUTRAL = 0.5

    def __init__(self, catalog: PrinterCatalog):
        self.catalog = catalog

    def select_printer(self, material: str, dimensions: Optional[Dimensions] = None,
                       project_type: str = "general",
                       preferences: Optional[Mapping] = None) -> PrinterSelection:
        """
        Select the best printer for a material (and optional bounding box).

        Raises NoCompatiblePrinterError when nothing in the catalog can
        print this material at this size.
        """
        dimensions = self._validate_input(material, dimensions, project_type, preferences)
        preferences = preferences or {}

        compatible = self.filter_compatible(material, dimensions)
        if not compatible:
            logger.warning(
                "No compatible printer for material=%s dimensions=%s", material, dimensions,
            )
            raise NoCompatiblePrinterError(material, dimensions, catalog=self.catalog.name)

        scored = self._score_printers(compatible, dimensions, project_type, preferences)
        best = scored[0]

        logger.debug(
            "Printer selection for %s: compatible=%d selected=%s score=%.2f",
            material, len(compatible), best["printer"].name, best["score"],
        )

        return PrinterSelection(
            printer=best["printer"],
            score=best["score"],
            reasoning=best["reasoning"],
            alternatives=tuple(
                ScoredOption(
                    name=s["printer"].name, id=s["printer"].id,
                    score=s["score"], reasoning=s["reasoning"],
                )
                for s in scored[1:3]
            ),
        )

    def _validate_input(self, material, dimensions, project_type, preferences) -> Optional[Dimensions]:
        if not material or not isinstance(material, str):
            raise ValidationError(
                "Material must be a non-empty string.", field="material", value=material,
            )
        if not project_type or not isinstance(project_type, str):
            raise ValidationError(
                "Project type must be a non-empty string.",
                field="project_type", value=project_type,
            )
        if preferences is not None and not isinstance(preferences, Mapping):
            raise ValidationError(
                "Preferences must be a mapping.", field="preferences", value=preferences,
            )
        if dimensions is None or isinstance(dimensions, Dimensions):
            return dimensions
        if isinstance(dimensions, Mapping):
            try:
                return Dimensions(**dimensions)
            except (TypeError, ValueError) as e:
                raise ValidationError(
                    f"Invalid dimensions: {e}", field="dimensions", value=dict(dimensions),
                ) from e
        raise ValidationError(
            "Dimensions must have x, y, z properties.", field="dimensions", value=dimensions,
        )

    def filter_compatible(self, material: str, dimensions: Optional[Dimensions] = None) -> list[Printer]:
        """Printers that support the material and fit the box on every axis."""
        compatible = []
        for printer in self.catalog.supporting(material):
            if dimensions is not None:
                limit = printer.max_build_volume
                if dimensions.x > limit.x or dimensions.y > limit.y or dimensions.z > limit.z:
                    continue
            compatible.append(printer)
        return compatible

    def _score_printers(self, printers: list, dimensions: Optional[Dimensions],
                        project_type: str, preferences: Mapping) -> list:
        rates = [p.hourly_rate for p in printers]
        min_rate, max_rate = min(rates), max(rates)
        quality_preference = preferences.get("quality_preference")

        results = []
        for printer in printers:
            material_score = 1.0
            volume_score = self.volume_efficiency(printer, dimensions)
            cost_score = self.cost_efficiency(printer, min_rate, max_rate)
            quality_score = self.quality_rating(printer, project_type)

            score = (
                material_score * self.WEIGHTS["material"]
                + volume_score * self.WEIGHTS["volume"]
                + cost_score * self.WEIGHTS["cost"]
                + quality_score * self.WEIGHTS["quality"]
            )
            reasoning = [
                f"Material compatibility: {material_score * 100:.1f}%",
                f"Volume efficiency: {volume_score * 100:.1f}%",
                f"Cost efficiency: {cost_score * 100:.1f}%",
                f"Quality rating: {quality_score * 100:.1f}%",
            ]
            if quality_preference:
                reasoning.append(f"Quality preference: {quality_preference}")
            results.append({
                "printer": printer,
                "score": round(score, 2),
                "reasoning": "; ".join(reasoning),
            })
        return sorted(results, key=lambda r: -r["score"])

    # --- Sub-scores (each in [0, 1]) ---

    def volume_efficiency(self, printer: Printer, dimensions: Optional[Dimensions]) -> float:
        if dimensions is None:
            return self.NEUTRAL
        utilization = dimensions.volume / printer.max_build_volume.volume
        if UTILIZATION_MIN <= utilization <= UTILIZATION_MAX:
            return 1.0
        if utilization < UTILIZATION_MIN:
            return 0.7     # oversized machine
        return 0.3         # tight fit

    @staticmethod
    def cost_efficiency(printer: Printer, min_rate: float, max_rate: float) -> float:
        if max_rate == min_rate:
            return 1.0
        return 1 - ((printer.hourly_rate - min_rate) / (max_rate - min_rate))

    @staticmethod
    def quality_rating(printer: Printer, project_type: str) -> float:
        score = 0.5
        score += 0.1 * sum(1 for f in QUALITY_FEATURES if f in printer.features)
        if project_type.lower() in DEMANDING_PROJECT_TYPES:
            if "carbon-fiber-reinforced" in printer.features:
                score += 0.1
            if printer.printer_type == PrinterType.SLA:
                score += 0.2
        return min(score, 1.0)

    # --- Catalog helpers ---

    def get_available_printers(self) -> list[Printer]:
        return list(self.catalog)

    def get_printer_by_id(self, printer_id: str) -> Printer:
        return self.catalog.get(printer_id)
