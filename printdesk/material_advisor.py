"""
Material Advisor — scores every catalog material against a project.

Pure Python scoring. No AI.
Per-material score = 0.4·type + 0.3·description + 0.2·requirements + 0.1·cost,
each sub-score in [0, 1]. A known user preference gets a flat +0.1 bonus.
Output: top pick + the next two as alternatives, with reasoning strings.
"""

import logging
from typing import Mapping, Optional

from .catalog import MaterialCatalog
from .errors import ValidationError
from .models import (
    Material, Recommendation, RequirementKey, RequirementLevel, ScoredOption,
)

logger = logging.getLogger(__name__)

# Project type → recommended_for categories
TYPE_CATEGORIES = {
    "prototype": ["prototyping", "educational projects"],
    "functional": ["functional parts", "mechanical components", "structural components"],
    "decorative": ["decorative items"],
    "engineering": ["engineering prototypes", "high-performance parts", "engineering applications"],
    "outdoor": ["outdoor applications"],
    "food": ["food containers"],
    "flexible": ["phone cases", "gaskets", "shock absorption", "flexible joints"],
    "high-temperature": ["high-temperature applications"],
    "chemical-resistant": ["chemical-resistant components"],
}

# Description keyword buckets → the material property that answers them
KEYWORD_BUCKETS = [
    ("strength", ["strong", "durable", "robust", "tough", "structural"]),
    ("flexibility", ["flexible", "bend", "elastic", "soft", "cushion"]),
    ("temperature_resistance", ["hot", "cold", "temperature", "thermal", "heat"]),
    ("chemical_resistance", ["chemical", "acid", "solvent", "corrosion", "resistant"]),
    ("biodegradable", ["eco", "green", "sustainable", "biodegradable", "environment"]),
]

REQUIREMENT_PROPERTIES = {
    RequirementKey.STRENGTH: "strength",
    RequirementKey.FLEXIBILITY: "flexibility",
    RequirementKey.TEMPERATURE: "temperature_resistance",
}

# Cost only counts for throwaway / classroom work
COST_SENSITIVE_TYPES = {"prototype", "educational"}


def normalize_requirements(requirements: Optional[Mapping]) -> dict:
    """
    Coerce {"strength": "high", ...} into {RequirementKey: RequirementLevel}.
    Unknown keys or levels raise ValidationError.
    """
    if not requirements:
        return {}
    if not isinstance(requirements, Mapping):
        raise ValidationError(
            "Requirements must be a mapping of requirement → level.",
            field="requirements", value=requirements,
        )
    normalized = {}
    for key, level in requirements.items():
        try:
            req_key = RequirementKey(str(key.value if isinstance(key, RequirementKey) else key).lower())
        except ValueError:
            raise ValidationError(
                f"Unknown requirement: {key}. "
                f"Expected one of: {[k.value for k in RequirementKey]}",
                field="requirements", value=key,
            )
        try:
            req_level = RequirementLevel(
                str(level.value if isinstance(level, RequirementLevel) else level).lower()
            )
        except ValueError:
            raise ValidationError(
                f"Unknown level for {req_key.value}: {level}. "
                f"Expected one of: {[lv.value for lv in RequirementLevel]}",
                field=f"requirements.{req_key.value}", value=level,
            )
        normalized[req_key] = req_level
    return normalized


class MaterialAdvisor:
    """Weighted multi-factor material scorer over an injected catalog."""

    WEIGHTS = {
        "type": 0.4,
        "description": 0.3,
        "requirements": 0.2,
        "cost": 0.1,
    }
    PREFERENCE_BONUS = 0.1
    KEYWORD_MATCH_SCORE = 0.3
    NEUTRAL = 0.5

    def __init__(self, catalog: MaterialCatalog):
        self.catalog = catalog

    def recommend_material(self, description: str, user_preference: Optional[str] = None,
                           project_type: str = "general",
                           requirements: Optional[Mapping] = None) -> Recommendation:
        """
        Recommend the best catalog material for a project.

        Args:
            description: free-text project description
            user_preference: material name the user asked for (bonus if known)
            project_type: "functional", "decorative", "prototype", ... (unknown → neutral)
            requirements: {"strength"|"flexibility"|"temperature": "low"|"medium"|"high"}

        Returns:
            Recommendation with ≤2 ranked alternatives
        """
        scored = self._rank(description, user_preference, project_type, requirements)

        best = scored[0]
        material = self.catalog.get(best["material"])

        logger.debug(
            "Material recommendation for '%s' project: preference=%s recommended=%s score=%.2f",
            project_type, user_preference, best["material"], best["score"],
        )

        return Recommendation(
            material=best["material"],
            score=best["score"],
            reasoning=best["reasoning"],
            properties=material.properties,
            alternatives=tuple(
                ScoredOption(name=s["material"], score=s["score"], reasoning=s["reasoning"])
                for s in scored[1:3]
            ),
        )

    def score_all(self, description: str, user_preference: Optional[str] = None,
                  project_type: str = "general",
                  requirements: Optional[Mapping] = None) -> dict:
        """Material name → score (preference bonus included) for the whole catalog."""
        scored = self._rank(description, user_preference, project_type, requirements)
        return {s["material"]: s["score"] for s in scored}

    def _rank(self, description, user_preference, project_type, requirements) -> list:
        self._validate_input(description, user_preference, project_type)
        reqs = normalize_requirements(requirements)
        scored = self._score_materials(description, project_type, reqs)
        return self._apply_preference(scored, user_preference)

    def _validate_input(self, description, user_preference, project_type) -> None:
        if not description or not isinstance(description, str):
            raise ValidationError(
                "Project description must be a non-empty string.",
                field="description", value=description,
            )
        if user_preference is not None and not isinstance(user_preference, str):
            raise ValidationError(
                "User preference must be a string.",
                field="user_preference", value=user_preference,
            )
        if not project_type or not isinstance(project_type, str):
            raise ValidationError(
                "Project type must be a non-empty string.",
                field="project_type", value=project_type,
            )

    def _score_materials(self, description: str, project_type: str, requirements: dict) -> list:
        """Score every material. Sorted descending; ties keep catalog order."""
        results = []
        for material in self.catalog:
            type_score = self.type_compatibility(material, project_type)
            desc_score = self.description_match(material, description)
            req_score = self.requirements_match(material, requirements)
            cost_score = self.cost_efficiency(material, project_type)

            score = (
                type_score * self.WEIGHTS["type"]
                + desc_score * self.WEIGHTS["description"]
                + req_score * self.WEIGHTS["requirements"]
                + cost_score * self.WEIGHTS["cost"]
            )
            reasoning = [
                f"Type compatibility: {type_score * 100:.1f}%",
                f"Description match: {desc_score * 100:.1f}%",
                f"Requirements match: {req_score * 100:.1f}%",
                f"Cost efficiency: {cost_score * 100:.1f}%",
            ]
            results.append({
                "material": material.name,
                "score": round(score, 2),
                "reasoning": "; ".join(reasoning),
            })
        return sorted(results, key=lambda r: -r["score"])

    def _apply_preference(self, scored: list, user_preference: Optional[str]) -> list:
        if not user_preference or user_preference not in self.catalog:
            return scored
        boosted = []
        for entry in scored:
            if entry["material"] == user_preference:
                entry = {
                    "material": entry["material"],
                    "score": round(min(entry["score"] + self.PREFERENCE_BONUS, 1.0), 2),
                    "reasoning": entry["reasoning"] + "; User preference bonus",
                }
            boosted.append(entry)
        return sorted(boosted, key=lambda r: -r["score"])

    # --- Sub-scores (each in [0, 1]) ---

    def type_compatibility(self, material: Material, project_type: str) -> float:
        categories = TYPE_CATEGORIES.get(project_type.lower(), [])
        if not categories:
            return self.NEUTRAL
        tags = [t.lower() for t in material.recommended_for]
        matches = [c for c in categories if any(c in tag for tag in tags)]
        return len(matches) / len(categories)

    def description_match(self, material: Material, description: str) -> float:
        text = description.lower()
        props = material.properties
        score = 0.0
        buckets_hit = 0
        for prop, keywords in KEYWORD_BUCKETS:
            if not any(k in text for k in keywords):
                continue
            buckets_hit += 1
            value = getattr(props, prop)
            satisfied = value if prop == "biodegradable" else value.is_high
            if satisfied:
                score += self.KEYWORD_MATCH_SCORE
        return score / buckets_hit if buckets_hit else self.NEUTRAL

    def requirements_match(self, material: Material, requirements: dict) -> float:
        if not requirements:
            return self.NEUTRAL
        score = 0
        for key, level in requirements.items():
            value = getattr(material.properties, REQUIREMENT_PROPERTIES[key])
            if level == RequirementLevel.HIGH:
                score += 1 if value.is_high else 0
            else:
                score += 1 if value.value == level.value else 0
        return score / len(requirements)

    def cost_efficiency(self, material: Material, project_type: str) -> float:
        if project_type.lower() not in COST_SENSITIVE_TYPES:
            return self.NEUTRAL
        min_cost, max_cost = self.catalog.cost_range()
        if max_cost == min_cost:
            return 1.0
        return 1 - ((material.cost_per_gram - min_cost) / (max_cost - min_cost))

    # --- Catalog helpers ---

    def get_material_info(self, name: str) -> dict:
        material = self.catalog.get(name)
        return material.model_dump(mode="json")

    def get_all_materials(self) -> list[str]:
        return self.catalog.names()

    def is_material_supported(self, name) -> bool:
        return name in self.catalog
