"""
Pricing Engine — default implementation of the pricing call contract.

Pure math — no AI. Grams × cost/gram, hours × rate, subtotal × multipliers.

Input: material + printer + PrintSettings + ModelCharacteristics + PricingFlags
Output: cost dict {material_cost, printer_cost, ..., total, breakdown}
"""

import logging
from typing import Optional, Union

from .catalog import MaterialCatalog
from .errors import ValidationError
from .models import (
    ComplexityTier, Material, ModelCharacteristics, PricingFlags, Printer, PrintSettings,
    VOLUME_ESTIMATES, VolumeCategory,
)

logger = logging.getLogger(__name__)


class PricingEngine:
    """Turns a finished print plan into a priced job."""

    BASE_SETUP_FEE = 3.00
    MINIMUM_CHARGE = 5.00
    WASTE_FACTOR = 1.1
    SUPPORT_FEE = 2.00
    POST_PROCESSING_MULTIPLIER = 1.5
    RUSH_ORDER_MULTIPLIER = 1.5

    # Price multiplier applied to material + machine cost
    COMPLEXITY_MULTIPLIERS = {
        ComplexityTier.SIMPLE: 1.0,
        ComplexityTier.MEDIUM: 1.2,
        ComplexityTier.COMPLEX: 1.5,
        ComplexityTier.VERY_COMPLEX: 2.0,
    }
    # Print-time factor
    COMPLEXITY_TIME_FACTORS = {
        ComplexityTier.SIMPLE: 0.8,
        ComplexityTier.MEDIUM: 1.0,
        ComplexityTier.COMPLEX: 1.4,
        ComplexityTier.VERY_COMPLEX: 2.0,
    }

    BASE_HOURS = 0.5
    MIN_HOURS = 0.25
    SUPPORT_TIME_FACTOR = 1.3
    DEFAULT_VOLUME = 0.1            # cm³, when nothing is known
    AVERAGE_HOURLY_RATE = 2.5       # for quick range estimates

    # size category → hours of machine time, for quick range estimates
    SIZE_TIME_ESTIMATES = {
        VolumeCategory.SMALL: 0.5,
        VolumeCategory.MEDIUM: 1.5,
        VolumeCategory.LARGE: 4.0,
    }

    def __init__(self, material_catalog: MaterialCatalog):
        self.materials = material_catalog

    def calculate_cost(self, material: Union[str, Material], printer: Printer,
                       settings: PrintSettings,
                       model_characteristics: Optional[ModelCharacteristics] = None,
                       flags: Optional[PricingFlags] = None) -> dict:
        """
        Price one print job.

        Args:
            material: material name (or catalog Material)
            printer: selected Printer
            settings: optimized PrintSettings
            model_characteristics: estimated volume + complexity
            flags: supports / post_processing / rush_order

        Returns:
            dict with cost components rounded to cents, estimated_hours and breakdown text
        """
        material, characteristics, flags = self._validate_input(
            material, printer, settings, model_characteristics, flags,
        )
        complexity = self._complexity(characteristics)

        material_cost = self._calculate_material_cost(material, characteristics, settings)
        hours = self._estimate_hours(characteristics, settings, complexity)
        printer_cost = hours * printer.hourly_rate * printer.material_cost_multiplier
        complexity_multiplier = self.COMPLEXITY_MULTIPLIERS[complexity]

        subtotal = (material_cost + printer_cost) * complexity_multiplier
        additional_costs = self._calculate_additional_costs(subtotal, flags)
        total = max(subtotal + additional_costs + self.BASE_SETUP_FEE, self.MINIMUM_CHARGE)

        logger.debug(
            "Cost for %s on %s: material=%.2f printer=%.2f total=%.2f",
            material.name, printer.id, material_cost, printer_cost, total,
        )

        return {
            "material_cost": round(material_cost, 2),
            "printer_cost": round(printer_cost, 2),
            "complexity_multiplier": complexity_multiplier,
            "additional_costs": round(additional_costs, 2),
            "setup_fee": round(self.BASE_SETUP_FEE, 2),
            "subtotal": round(subtotal, 2),
            "total": round(total, 2),
            "estimated_hours": round(hours, 2),
            "breakdown": self._breakdown(material, printer, complexity, flags),
        }

    def _validate_input(self, material, printer, settings, model_characteristics, flags):
        if isinstance(material, str):
            material = self.materials.get(material)
        elif not isinstance(material, Material):
            raise ValidationError(
                "Material must be a name or catalog Material.", field="material", value=material,
            )
        if not isinstance(printer, Printer):
            raise ValidationError("Printer must be a catalog Printer.", field="printer", value=printer)
        if not isinstance(settings, PrintSettings):
            raise ValidationError("Settings must be PrintSettings.", field="settings", value=settings)
        return (
            material,
            model_characteristics or ModelCharacteristics(),
            flags or PricingFlags(),
        )

    def _complexity(self, characteristics: ModelCharacteristics) -> ComplexityTier:
        try:
            return ComplexityTier(characteristics.complexity)
        except ValueError:
            return ComplexityTier.MEDIUM

    def _calculate_material_cost(self, material: Material, characteristics: ModelCharacteristics,
                                 settings: PrintSettings) -> float:
        """volume × infill × density × waste × cost/gram"""
        volume = characteristics.estimated_volume or self.DEFAULT_VOLUME
        grams = volume * (settings.infill_percent / 100) * material.density * self.WASTE_FACTOR
        return grams * material.cost_per_gram

    def _estimate_hours(self, characteristics: ModelCharacteristics, settings: PrintSettings,
                        complexity: ComplexityTier) -> float:
        hours = self.BASE_HOURS
        volume = characteristics.estimated_volume or self.DEFAULT_VOLUME
        if volume > 1:
            hours += volume * 0.3
        if volume > 10:
            hours += volume * 0.1

        hours *= 0.2 / settings.layer_height
        hours *= 1 + (settings.infill_percent / 100) * 0.5
        if settings.supports_enabled:
            hours *= self.SUPPORT_TIME_FACTOR
        hours *= self.COMPLEXITY_TIME_FACTORS[complexity]
        return max(hours, self.MIN_HOURS)

    def _calculate_additional_costs(self, subtotal: float, flags: PricingFlags) -> float:
        """Support fee, then service multipliers applied to subtotal + fees."""
        fees = self.SUPPORT_FEE if flags.supports else 0.0
        multiplier = 1.0
        if flags.post_processing:
            multiplier *= self.POST_PROCESSING_MULTIPLIER
        if flags.rush_order:
            multiplier *= self.RUSH_ORDER_MULTIPLIER
        return fees + (subtotal + fees) * (multiplier - 1)

    def _breakdown(self, material: Material, printer: Printer, complexity: ComplexityTier,
                   flags: PricingFlags) -> str:
        lines = [
            f"Material: {material.name} at ${material.cost_per_gram}/gram",
            f"Printer: {printer.name} at ${printer.hourly_rate}/hour",
        ]
        multiplier = self.COMPLEXITY_MULTIPLIERS[complexity]
        if multiplier > 1.0:
            lines.append(f"Complexity multiplier: {multiplier}x for {complexity.value} project")
        if flags.supports:
            lines.append(f"Supports: ${self.SUPPORT_FEE:.2f} additional")
        if flags.post_processing:
            lines.append(f"Post-processing: {self.POST_PROCESSING_MULTIPLIER}x multiplier")
        if flags.rush_order:
            lines.append(f"Rush order: {self.RUSH_ORDER_MULTIPLIER}x multiplier")
        return "; ".join(lines)

    def estimate_cost_range(self, material: str, complexity: str = "medium",
                            size_category: str = "medium") -> dict:
        """Ballpark min/max before a full plan exists."""
        mat = self.materials.get(material)
        try:
            tier = ComplexityTier(complexity)
        except ValueError:
            tier = ComplexityTier.MEDIUM
        try:
            size = VolumeCategory(size_category)
        except ValueError:
            size = VolumeCategory.MEDIUM

        material_cost = VOLUME_ESTIMATES[size] * mat.density * mat.cost_per_gram * self.WASTE_FACTOR
        printer_cost = self.SIZE_TIME_ESTIMATES[size] * self.AVERAGE_HOURLY_RATE
        base = (material_cost + printer_cost) * self.COMPLEXITY_MULTIPLIERS[tier] + self.BASE_SETUP_FEE

        return {
            "min_cost": round(max(base * 0.8, self.MINIMUM_CHARGE), 2),
            "max_cost": round(base * 1.3, 2),
            "estimated_cost": round(base, 2),
            "breakdown": f"Based on {size.value} {mat.name} project with {tier.value} complexity",
        }

    def get_pricing_configuration(self) -> dict:
        return {
            "base_setup_fee": self.BASE_SETUP_FEE,
            "minimum_charge": self.MINIMUM_CHARGE,
            "complexity_multipliers": {k.value: v for k, v in self.COMPLEXITY_MULTIPLIERS.items()},
            "support_fee": self.SUPPORT_FEE,
            "post_processing_multiplier": self.POST_PROCESSING_MULTIPLIER,
            "rush_order_multiplier": self.RUSH_ORDER_MULTIPLIER,
        }
