from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Union
import enum


# --- Enums ---

class PropertyLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very high"

    @property
    def is_high(self) -> bool:
        return self in (PropertyLevel.HIGH, PropertyLevel.VERY_HIGH)


class PrinterType(str, enum.Enum):
    FDM = "FDM"
    SLA = "SLA"     # high-detail resin


class ComplexityTier(str, enum.Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"
    VERY_COMPLEX = "very_complex"


class VolumeCategory(str, enum.Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class QualityRecommendation(str, enum.Enum):
    DRAFT = "draft"
    STANDARD = "standard"
    HIGH = "high"


class QualityLevel(str, enum.Enum):
    DRAFT = "Draft"
    STANDARD = "Standard"
    HIGH = "High"


class RequirementKey(str, enum.Enum):
    STRENGTH = "strength"
    FLEXIBILITY = "flexibility"
    TEMPERATURE = "temperature"


class RequirementLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Coarse stand-in for real geometry, cm³ per volume category
VOLUME_ESTIMATES = {
    VolumeCategory.SMALL: 0.5,
    VolumeCategory.MEDIUM: 2.0,
    VolumeCategory.LARGE: 8.0,
}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# --- Catalog entries ---

class MaterialProperties(_Frozen):
    strength: PropertyLevel
    flexibility: PropertyLevel
    temperature_resistance: PropertyLevel
    chemical_resistance: PropertyLevel
    biodegradable: bool = False


class Material(_Frozen):
    name: str = Field(min_length=1)
    cost_per_gram: float = Field(gt=0)      # USD
    density: float = Field(gt=0)            # g/cm³
    properties: MaterialProperties
    recommended_for: tuple[str, ...] = ()


class Dimensions(_Frozen):
    """Bounding box in cm."""
    x: float = Field(gt=0)
    y: float = Field(gt=0)
    z: float = Field(gt=0)

    @property
    def volume(self) -> float:
        return self.x * self.y * self.z


class PrinterDefaults(_Frozen):
    layer_height: float = 0.2
    nozzle_temp: Optional[int] = None
    bed_temp: Optional[int] = None
    print_speed: int = 50


class Printer(_Frozen):
    id: str = Field(min_length=1)
    name: str
    printer_type: PrinterType
    supported_materials: tuple[str, ...]
    max_build_volume: Dimensions
    hourly_rate: float = Field(ge=0)        # USD/hour
    features: tuple[str, ...] = ()
    default_settings: PrinterDefaults = PrinterDefaults()
    material_cost_multiplier: float = 1.0


# --- Per-request values ---

class ProjectSignals(_Frozen):
    recommended_material: str
    complexity: ComplexityTier = ComplexityTier.MEDIUM
    supports_needed: bool = True
    volume_category: VolumeCategory = VolumeCategory.MEDIUM
    quality_recommendation: QualityRecommendation = QualityRecommendation.STANDARD
    reasoning: str = ""
    confidence: float = Field(ge=0.0, le=1.0)

    @property
    def estimated_volume(self) -> float:
        return VOLUME_ESTIMATES[self.volume_category]


class ConfidentAnalysis(_Frozen):
    """Validated answer from the AI analyzer."""
    signals: ProjectSignals
    degraded: bool = False


class DegradedAnalysis(_Frozen):
    """Keyword-heuristic signals used because the AI path failed."""
    signals: ProjectSignals
    failure_reason: str
    degraded: bool = True


AnalysisOutcome = Union[ConfidentAnalysis, DegradedAnalysis]


class ScoredOption(_Frozen):
    name: str
    score: float
    reasoning: str
    id: Optional[str] = None


class Recommendation(_Frozen):
    material: str
    score: float
    reasoning: str
    properties: MaterialProperties
    alternatives: tuple[ScoredOption, ...] = ()
    source: str = "advisor"     # "advisor" | "ai"


class PrinterSelection(_Frozen):
    printer: Printer
    score: float
    reasoning: str
    alternatives: tuple[ScoredOption, ...] = ()


class ModelCharacteristics(_Frozen):
    has_overhangs: Optional[bool] = None
    complexity: Optional[str] = None
    estimated_volume: Optional[float] = Field(default=None, ge=0)
    volume_category: Optional[VolumeCategory] = None


class Retraction(_Frozen):
    distance: float     # mm
    speed: float        # mm/s


class Cooling(_Frozen):
    fan_speed: int      # %
    min_layer_time: int  # s


class PrintSettings(_Frozen):
    layer_height: float         # mm
    infill_percent: int
    supports_enabled: bool
    nozzle_temp: int            # °C
    bed_temp: int               # °C
    print_speed: int            # mm/s
    retraction: Retraction
    cooling: Cooling
    quality_level: QualityLevel
    estimated_print_time: str


class SettingsPlan(_Frozen):
    settings: PrintSettings
    reasoning: str
    quality_level: QualityLevel
    estimated_print_time: str
    estimated_hours: float


class PricingFlags(_Frozen):
    supports: bool = False
    post_processing: bool = False
    rush_order: bool = False
