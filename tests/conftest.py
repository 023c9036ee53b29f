"""
Shared test fixtures — bundled catalogs, stub analyzers/pricing, test client.
"""

import os
import pytest
from fastapi.testclient import TestClient

# No real Gemini calls from tests
os.environ["GEMINI_API_KEY"] = ""

from printdesk.catalog import load_catalogs
from printdesk.main import app
from printdesk.models import (
    ComplexityTier, ConfidentAnalysis, DegradedAnalysis, ProjectSignals, QualityRecommendation,
    VolumeCategory,
)
from printdesk.orchestrator import PrintPlanOrchestrator
from printdesk.project_analyzer import ProjectAnalyzer
from printdesk.routers.print_requests import get_orchestrator


class StubAnalyzer:
    """Returns a fixed outcome and records every call."""

    def __init__(self, outcome=None, error=None):
        self.outcome = outcome
        self.error = error
        self.calls = []

    async def analyze(self, description, images=(), preferred_material=None, preferred_color=None):
        self.calls.append((description, tuple(images), preferred_material, preferred_color))
        if self.error is not None:
            raise self.error
        if self.outcome is None:
            return DegradedAnalysis(
                signals=ProjectAnalyzer.fallback_signals(description, preferred_material),
                failure_reason="stub",
            )
        return self.outcome


class StubPricing:
    """Pricing collaborator that records its arguments."""

    def __init__(self, total=42.0, error=None):
        self.total = total
        self.error = error
        self.calls = []

    def calculate_cost(self, material, printer, settings, model_characteristics, flags):
        self.calls.append({
            "material": material,
            "printer": printer,
            "settings": settings,
            "model_characteristics": model_characteristics,
            "flags": flags,
        })
        if self.error is not None:
            raise self.error
        return {"total": self.total, "breakdown": "stub"}


def confident(material, confidence, complexity=ComplexityTier.MEDIUM,
              volume=VolumeCategory.MEDIUM, quality=QualityRecommendation.STANDARD,
              supports=True):
    return ConfidentAnalysis(signals=ProjectSignals(
        recommended_material=material,
        complexity=complexity,
        supports_needed=supports,
        volume_category=volume,
        quality_recommendation=quality,
        reasoning="Stubbed AI verdict",
        confidence=confidence,
    ))


@pytest.fixture(scope="session")
def catalogs():
    return load_catalogs()


@pytest.fixture
def materials(catalogs):
    return catalogs[0]


@pytest.fixture
def printers(catalogs):
    return catalogs[1]


@pytest.fixture
def make_orchestrator(materials, printers):
    """Factory: orchestrator over the bundled catalogs with injected collaborators."""
    def _make(analyzer=None, pricing=None):
        return PrintPlanOrchestrator(
            materials=materials,
            printers=printers,
            analyzer=analyzer or StubAnalyzer(),
            pricing=pricing,
        )
    return _make


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()


@pytest.fixture
def client(orchestrator):
    """FastAPI test client with the orchestrator overridden."""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


def sample_request(**overrides):
    data = {
        "project_name": "Bracket",
        "description": "A mechanical bracket for a shelf",
        "user_name": "Sam Rivera",
        "user_email": "sam@example.edu",
        "quantity": 1,
    }
    data.update(overrides)
    return data
