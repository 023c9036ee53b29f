"""
Settings Optimizer — deterministic slicer settings for one material + printer.

Rule tables only, no scoring:
- layer height from project type / complexity
- infill from project type
- supports unless the model is known to have no overhangs
- temperatures by material, falling back to the printer's defaults
- speed from the user's preference, else project type
- quality tier and a rough time estimate derived from the above
"""

import logging
import math
from typing import Mapping, Optional, Union

from .errors import ValidationError
from .models import (
    Cooling, Material, ModelCharacteristics, Printer, PrintSettings, QualityLevel,
    Retraction, SettingsPlan,
)

logger = logging.getLogger(__name__)

LAYER_HEIGHTS = {"fine": 0.1, "standard": 0.2, "draft": 0.3}   # mm
SPEEDS = {"slow": 30, "standard": 50, "fast": 80}              # mm/s

# material name (lowercase) → (nozzle °C, bed °C)
TEMPERATURES = {
    "pla": (210, 60),
    "petg": (245, 80),
    "abs": (250, 100),
    "tpu": (230, 50),
    "asa": (260, 100),
    "pc": (280, 120),
    "pa": (270, 80),
}
FALLBACK_NOZZLE_TEMP = 220
FALLBACK_BED_TEMP = 60

RETRACTION = Retraction(distance=3.0, speed=40.0)
COOLING_MATERIALS = ("pla",)

# Sanity limits for validate_settings
LAYER_HEIGHT_RANGE = (0.05, 0.5)
NOZZLE_TEMP_RANGE = (150, 300)

DEFAULT_BASE_HOURS = 2.0
HOURS_PER_CM3 = 0.5


def format_print_time(hours: float) -> str:
    """'45 minutes' under an hour, else '1.5 hours'. Halves round up."""
    if hours < 1:
        return f"{math.floor(hours * 60 + 0.5)} minutes"
    return f"{math.floor(hours * 10 + 0.5) / 10} hours"


def validate_settings(settings: Union[PrintSettings, Mapping, None]) -> bool:
    """Layer height in [0.05, 0.5] mm and nozzle temp in [150, 300] °C."""
    if isinstance(settings, PrintSettings):
        layer_height, nozzle_temp = settings.layer_height, settings.nozzle_temp
    elif isinstance(settings, Mapping):
        layer_height, nozzle_temp = settings.get("layer_height"), settings.get("nozzle_temp")
    else:
        return False

    try:
        layer_height = float(layer_height)
        nozzle_temp = float(nozzle_temp)
    except (TypeError, ValueError):
        return False

    if not LAYER_HEIGHT_RANGE[0] <= layer_height <= LAYER_HEIGHT_RANGE[1]:
        return False
    if not NOZZLE_TEMP_RANGE[0] <= nozzle_temp <= NOZZLE_TEMP_RANGE[1]:
        return False
    return True


class SettingsOptimizer:
    """Derives a full PrintSettings bundle for one material on one printer."""

    def __init__(self, material: Material, printer: Printer):
        if not isinstance(material, Material):
            raise ValidationError(
                "Material must be a catalog Material.", field="material", value=material,
            )
        if not isinstance(printer, Printer):
            raise ValidationError(
                "Printer must be a catalog Printer.", field="printer", value=printer,
            )
        self.material = material
        self.printer = printer

    def optimize_settings(self, project_type: str = "general",
                          model_characteristics=None,
                          user_preferences: Optional[Mapping] = None) -> SettingsPlan:
        characteristics, prefs = self._validate_input(
            project_type, model_characteristics, user_preferences,
        )
        ptype = project_type.lower()

        layer_height = self.layer_height(ptype, characteristics)
        print_speed = self.print_speed(ptype, prefs.get("speed_preference"))
        nozzle_temp, bed_temp = self.temperatures()
        hours = self.estimate_hours(layer_height, print_speed, characteristics)
        print_time = format_print_time(hours)
        quality = self.quality_level(layer_height, print_speed)

        settings = PrintSettings(
            layer_height=layer_height,
            infill_percent=self.infill(ptype),
            supports_enabled=self.supports(characteristics),
            nozzle_temp=nozzle_temp,
            bed_temp=bed_temp,
            print_speed=print_speed,
            retraction=RETRACTION,
            cooling=self.cooling(),
            quality_level=quality,
            estimated_print_time=print_time,
        )

        logger.debug(
            "Settings for '%s' project on %s: layer=%.2f infill=%d%% supports=%s quality=%s",
            project_type, self.printer.id, settings.layer_height, settings.infill_percent,
            settings.supports_enabled, quality.value,
        )

        return SettingsPlan(
            settings=settings,
            reasoning=self._reasoning(settings),
            quality_level=quality,
            estimated_print_time=print_time,
            estimated_hours=round(hours, 2),
        )

    def _validate_input(self, project_type, model_characteristics, user_preferences):
        if not project_type or not isinstance(project_type, str):
            raise ValidationError(
                "Project type must be a non-empty string.",
                field="project_type", value=project_type,
            )

        if model_characteristics is None:
            characteristics = ModelCharacteristics()
        elif isinstance(model_characteristics, ModelCharacteristics):
            characteristics = model_characteristics
        elif isinstance(model_characteristics, Mapping):
            try:
                characteristics = ModelCharacteristics(**model_characteristics)
            except (TypeError, ValueError) as e:
                raise ValidationError(
                    f"Invalid model characteristics: {e}",
                    field="model_characteristics", value=dict(model_characteristics),
                ) from e
        else:
            raise ValidationError(
                "Model characteristics must be a mapping.",
                field="model_characteristics", value=model_characteristics,
            )

        if user_preferences is not None and not isinstance(user_preferences, Mapping):
            raise ValidationError(
                "User preferences must be a mapping.",
                field="user_preferences", value=user_preferences,
            )
        prefs = dict(user_preferences or {})
        speed_pref = prefs.get("speed_preference")
        if speed_pref is not None and not isinstance(speed_pref, str):
            # Enum members (e.g. QualityRecommendation) pass through as their value
            speed_pref = getattr(speed_pref, "value", None)
            if not isinstance(speed_pref, str):
                raise ValidationError(
                    "Speed preference must be a string.",
                    field="user_preferences.speed_preference",
                    value=prefs.get("speed_preference"),
                )
            prefs["speed_preference"] = speed_pref
        return characteristics, prefs

    # --- Rule tables ---

    @staticmethod
    def layer_height(project_type: str, characteristics: ModelCharacteristics) -> float:
        if project_type in ("decorative", "jewelry") or characteristics.complexity == "high":
            return LAYER_HEIGHTS["fine"]
        if project_type in ("prototype", "draft"):
            return LAYER_HEIGHTS["draft"]
        return LAYER_HEIGHTS["standard"]

    @staticmethod
    def infill(project_type: str) -> int:
        if project_type in ("decorative", "display"):
            return 10
        if project_type in ("prototype", "test"):
            return 20
        if project_type in ("structural", "load-bearing"):
            return 60
        return 40

    @staticmethod
    def supports(characteristics: ModelCharacteristics) -> bool:
        # Unknown overhangs → print with supports
        return characteristics.has_overhangs is not False

    def temperatures(self) -> tuple[int, int]:
        known = TEMPERATURES.get(self.material.name.lower())
        if known:
            return known
        defaults = self.printer.default_settings
        return (
            defaults.nozzle_temp or FALLBACK_NOZZLE_TEMP,
            defaults.bed_temp or FALLBACK_BED_TEMP,
        )

    @staticmethod
    def print_speed(project_type: str, speed_preference: Optional[str] = None) -> int:
        if speed_preference:
            pref = speed_preference.lower()
            if pref == "fast":
                return SPEEDS["fast"]
            if pref == "slow":
                return SPEEDS["slow"]
            return SPEEDS["standard"]
        if project_type in ("prototype", "draft"):
            return SPEEDS["fast"]
        if project_type in ("decorative", "high-quality"):
            return SPEEDS["slow"]
        return SPEEDS["standard"]

    def cooling(self) -> Cooling:
        if self.material.name.lower() in COOLING_MATERIALS:
            return Cooling(fan_speed=100, min_layer_time=5)
        return Cooling(fan_speed=50, min_layer_time=10)

    @staticmethod
    def quality_level(layer_height: float, print_speed: int) -> QualityLevel:
        if layer_height == LAYER_HEIGHTS["fine"] and print_speed == SPEEDS["slow"]:
            return QualityLevel.HIGH
        if layer_height == LAYER_HEIGHTS["draft"] and print_speed == SPEEDS["fast"]:
            return QualityLevel.DRAFT
        return QualityLevel.STANDARD

    @staticmethod
    def estimate_hours(layer_height: float, print_speed: int,
                       characteristics: ModelCharacteristics) -> float:
        """
        Rough print time.

        base = volume × 0.5 h (2.0 h when volume unknown)
        hours = base × (layer / 0.2) × (50 / speed)
        """
        if characteristics.estimated_volume:
            base = characteristics.estimated_volume * HOURS_PER_CM3
        else:
            base = DEFAULT_BASE_HOURS
        return base * (layer_height / LAYER_HEIGHTS["standard"]) * (SPEEDS["standard"] / print_speed)

    def _reasoning(self, settings: PrintSettings) -> str:
        reasons = []
        if settings.layer_height == LAYER_HEIGHTS["fine"]:
            reasons.append("Fine layer height for high detail and smooth surface finish")
        elif settings.layer_height == LAYER_HEIGHTS["draft"]:
            reasons.append("Draft layer height for faster printing and prototyping")
        else:
            reasons.append("Standard layer height balancing quality and speed")

        if settings.infill_percent == 10:
            reasons.append("Low infill for decorative/display purposes")
        elif settings.infill_percent == 60:
            reasons.append("High infill for structural strength and durability")
        else:
            reasons.append("Medium infill for functional parts")

        if settings.supports_enabled:
            reasons.append("Supports enabled for overhangs and complex geometry")
        else:
            reasons.append("No supports needed for simple geometry")

        reasons.append(f"Temperature optimized for {self.material.name} material properties")
        return "; ".join(reasons)

    # --- Extras ---

    def get_default_settings(self) -> dict:
        """Printer defaults with 20% infill and supports on."""
        defaults = self.printer.default_settings
        return {
            "layer_height": defaults.layer_height,
            "infill_percent": 20,
            "supports_enabled": True,
            "nozzle_temp": defaults.nozzle_temp,
            "bed_temp": defaults.bed_temp,
            "print_speed": defaults.print_speed,
        }

    def validate_settings(self, settings) -> bool:
        return validate_settings(settings)
