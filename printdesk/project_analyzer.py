"""
Project Analyzer — coarse project signals from a free-text description.

Primary path: ask Gemini for a JSON verdict (material, complexity, supports,
volume category, quality, confidence) and validate it against the catalog.
Any failure on that path — no key, HTTP error, timeout, garbage reply —
degrades to a keyword heuristic instead of raising. The result is tagged
(ConfidentAnalysis vs DegradedAnalysis) so callers never have to guess from
the confidence number which path produced it.

Fallback confidence is pinned at 0.6: always below the 0.7 override gate, so
a silently degraded AI path never overrides the Material Advisor.
"""

import asyncio
import json
import logging
import re
from typing import Iterable, Optional, Sequence

from .config import settings
from .errors import ValidationError
from .gemini_client import GeminiClient
from .models import (
    AnalysisOutcome, ComplexityTier, ConfidentAnalysis, DegradedAnalysis, ProjectSignals,
    QualityRecommendation, VolumeCategory,
)

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.6
FALLBACK_MATERIAL = "PLA"
FALLBACK_REASONING = "Fallback analysis based on description keywords"

REQUIRED_FIELDS = (
    "recommendedMaterial", "complexity", "supportsNeeded", "volumeCategory",
    "qualityRecommendation", "reasoning", "confidence",
)

ANALYSIS_PROMPT = """Analyze this 3D printing project for a makerspace print desk:

Project Description: "{description}"

Please provide recommendations for:
1. Best material ({materials})
2. Project complexity ({complexities})
3. Whether supports are likely needed (true/false)
4. Estimated print volume category ({volumes})
5. Recommended print quality ({qualities})
{preferences}{images}
Respond in JSON format:
{{
  "recommendedMaterial": "material_name",
  "complexity": "complexity_level",
  "supportsNeeded": true/false,
  "volumeCategory": "volume_size",
  "qualityRecommendation": "quality_level",
  "reasoning": "brief explanation",
  "confidence": 0.0-1.0
}}"""


class AnalysisRejected(ValueError):
    """The AI reply was received but failed validation."""


class ProjectAnalyzer:

    def __init__(self, client: Optional[GeminiClient] = None,
                 known_materials: Optional[Iterable[str]] = None,
                 timeout: Optional[float] = None):
        self.client = client or GeminiClient()
        if known_materials is None:
            from .catalog import default_catalogs
            known_materials = default_catalogs()[0].names()
        self.known_materials = tuple(known_materials)
        self.timeout = timeout or settings.ANALYZER_TIMEOUT_SECONDS

    async def analyze(self, description: str, images: Sequence[str] = (),
                      preferred_material: Optional[str] = None,
                      preferred_color: Optional[str] = None) -> AnalysisOutcome:
        """
        Analyze a project. Never raises for service failures; only bad
        arguments (caller errors) raise ValidationError.
        """
        images = self._validate_input(description, images, preferred_material, preferred_color)

        try:
            prompt = self.build_prompt(description, images, preferred_material, preferred_color)
            text = await asyncio.wait_for(self.client.generate(prompt), timeout=self.timeout)
            signals = self.parse_response(text)
        except asyncio.TimeoutError:
            reason = f"Gemini analysis timed out after {self.timeout:g}s"
            logger.warning("Project analysis degraded to fallback: %s", reason)
            return DegradedAnalysis(
                signals=self.fallback_signals(description, preferred_material),
                failure_reason=reason,
            )
        except Exception as e:
            logger.warning("Project analysis degraded to fallback: %s", e)
            return DegradedAnalysis(
                signals=self.fallback_signals(description, preferred_material),
                failure_reason=str(e) or type(e).__name__,
            )

        logger.info(
            "Gemini analysis: material=%s complexity=%s confidence=%.2f",
            signals.recommended_material, signals.complexity.value, signals.confidence,
        )
        return ConfidentAnalysis(signals=signals)

    def _validate_input(self, description, images, preferred_material, preferred_color) -> tuple:
        if not description or not isinstance(description, str):
            raise ValidationError(
                "Project description must be a non-empty string.",
                field="description", value=description,
            )
        if images is None:
            images = ()
        if isinstance(images, (str, bytes)) or not isinstance(images, (list, tuple)):
            raise ValidationError("Image URLs must be a list.", field="images", value=images)
        if preferred_material is not None and not isinstance(preferred_material, str):
            raise ValidationError(
                "Preferred material must be a string.",
                field="preferred_material", value=preferred_material,
            )
        if preferred_color is not None and not isinstance(preferred_color, str):
            raise ValidationError(
                "Preferred color must be a string.",
                field="preferred_color", value=preferred_color,
            )
        return tuple(images)

    def build_prompt(self, description: str, images: Sequence[str] = (),
                     preferred_material: Optional[str] = None,
                     preferred_color: Optional[str] = None) -> str:
        preferences = ""
        if preferred_material or preferred_color:
            preferences = "\nConsider the user's preferences:"
            if preferred_material:
                preferences += f"\n- Preferred Material: {preferred_material}"
            if preferred_color:
                preferences += f"\n- Preferred Color: {preferred_color}"
            preferences += "\n"

        image_lines = ""
        if images:
            image_lines = "\nReference images:\n" + "\n".join(f"- {url}" for url in images) + "\n"

        return ANALYSIS_PROMPT.format(
            description=description,
            materials=", ".join(self.known_materials),
            complexities=", ".join(t.value for t in ComplexityTier),
            volumes=", ".join(v.value for v in VolumeCategory),
            qualities=", ".join(q.value for q in QualityRecommendation),
            preferences=preferences,
            images=image_lines,
        )

    def parse_response(self, text: str) -> ProjectSignals:
        """Extract and validate the JSON verdict. Raises AnalysisRejected."""
        if not isinstance(text, str):
            raise AnalysisRejected("No text in Gemini response")
        match = re.search(r"\{[\s\S]*\}", text)
        if not match:
            raise AnalysisRejected("No JSON found in Gemini response")
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise AnalysisRejected(f"Malformed JSON in Gemini response: {e}") from e
        if not isinstance(data, dict):
            raise AnalysisRejected("Gemini response is not a JSON object")

        for field in REQUIRED_FIELDS:
            if field not in data:
                raise AnalysisRejected(f"Missing required field in analysis: {field}")

        material = data["recommendedMaterial"]
        if material not in self.known_materials:
            raise AnalysisRejected(f"Invalid material recommendation: {material}")

        try:
            complexity = ComplexityTier(data["complexity"])
        except ValueError:
            raise AnalysisRejected(f"Invalid complexity level: {data['complexity']}")

        confidence = data["confidence"]
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) \
                or not 0 <= confidence <= 1:
            raise AnalysisRejected(f"Invalid confidence value: {confidence}")

        try:
            volume = VolumeCategory(data["volumeCategory"])
        except ValueError:
            volume = VolumeCategory.MEDIUM
        try:
            quality = QualityRecommendation(data["qualityRecommendation"])
        except ValueError:
            quality = QualityRecommendation.STANDARD

        return ProjectSignals(
            recommended_material=material,
            complexity=complexity,
            supports_needed=bool(data["supportsNeeded"]),
            volume_category=volume,
            quality_recommendation=quality,
            reasoning=str(data["reasoning"]),
            confidence=float(confidence),
        )

    @staticmethod
    def fallback_signals(description: str, preferred_material: Optional[str] = None,
                         confidence: float = FALLBACK_CONFIDENCE) -> ProjectSignals:
        """Keyword heuristic used whenever the AI path is unavailable."""
        text = description.lower()

        material = preferred_material or FALLBACK_MATERIAL
        if "strong" in text or "durable" in text:
            material = "PETG"
        elif "flexible" in text or "soft" in text:
            material = "TPU"
        elif "high temperature" in text or "heat" in text:
            material = "ABS"

        complexity = ComplexityTier.MEDIUM
        if "simple" in text or "basic" in text:
            complexity = ComplexityTier.SIMPLE
        elif "complex" in text or "detailed" in text:
            complexity = ComplexityTier.COMPLEX

        volume = VolumeCategory.MEDIUM
        if "small" in text or "miniature" in text:
            volume = VolumeCategory.SMALL
        elif "large" in text or "big" in text:
            volume = VolumeCategory.LARGE

        return ProjectSignals(
            recommended_material=material,
            complexity=complexity,
            supports_needed=True,
            volume_category=volume,
            quality_recommendation=QualityRecommendation.STANDARD,
            reasoning=FALLBACK_REASONING,
            confidence=confidence,
        )
