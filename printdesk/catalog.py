"""
Material and printer catalogs — static reference data, loaded once.

Source: printdesk/data/materials.json and printers.json, or the directory named
by CATALOG_DIR. Catalogs are read-only after construction: entries are frozen
models behind a MappingProxyType, so any number of concurrent requests can
share one instance.

Catalogs are passed into the advisor/selector/pricing constructors —
nothing in the scoring code reaches for a global.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from .config import settings
from .errors import ValidationError
from .models import Material, Printer

logger = logging.getLogger(__name__)

# Bundled catalog files
DATA_DIR = Path(__file__).parent / "data"


class MaterialCatalog:
    """Materials keyed by name, in file order."""

    name = "materials"

    def __init__(self, materials: Iterable[Material]):
        entries = {}
        for material in materials:
            if material.name in entries:
                raise ValidationError(
                    f"Duplicate material in catalog: {material.name}",
                    field="name", value=material.name, catalog=self.name,
                )
            entries[material.name] = material
        if not entries:
            raise ValidationError("Material catalog is empty.", catalog=self.name)
        self._materials = MappingProxyType(entries)

    def __contains__(self, name) -> bool:
        return isinstance(name, str) and name in self._materials

    def __iter__(self):
        return iter(self._materials.values())

    def __len__(self) -> int:
        return len(self._materials)

    def names(self) -> list[str]:
        return list(self._materials.keys())

    def get(self, name: str) -> Material:
        """Look up a material by exact name, or raise ValidationError."""
        if not name or not isinstance(name, str):
            raise ValidationError(
                "Material name must be a non-empty string.",
                field="material", value=name, catalog=self.name,
            )
        material = self._materials.get(name)
        if material is None:
            raise ValidationError(
                f"Material '{name}' not found in catalog.",
                field="material", value=name, catalog=self.name,
            )
        return material

    def cost_range(self) -> tuple[float, float]:
        """(min, max) cost per gram across the whole catalog."""
        costs = [m.cost_per_gram for m in self._materials.values()]
        return min(costs), max(costs)


class PrinterCatalog:
    """Printers keyed by id, in file order."""

    name = "printers"

    def __init__(self, printers: Iterable[Printer]):
        entries = {}
        for printer in printers:
            if printer.id in entries:
                raise ValidationError(
                    f"Duplicate printer id in catalog: {printer.id}",
                    field="id", value=printer.id, catalog=self.name,
                )
            entries[printer.id] = printer
        if not entries:
            raise ValidationError("Printer catalog is empty.", catalog=self.name)
        self._printers = MappingProxyType(entries)

    def __iter__(self):
        return iter(self._printers.values())

    def __len__(self) -> int:
        return len(self._printers)

    def ids(self) -> list[str]:
        return list(self._printers.keys())

    def get(self, printer_id: str) -> Printer:
        printer = self._printers.get(printer_id)
        if printer is None:
            raise ValidationError(
                f"Printer with ID '{printer_id}' not found.",
                field="printer_id", value=printer_id, catalog=self.name,
            )
        return printer

    def supporting(self, material: str) -> list[Printer]:
        """Printers that list this material, in catalog order."""
        return [p for p in self._printers.values() if material in p.supported_materials]


def _read_entries(path: Path, key: str) -> list:
    if not path.exists():
        raise FileNotFoundError(f"No catalog file found: {path}")
    with open(path) as f:
        data = json.load(f)
    entries = data.get(key) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ValidationError(
            f"Catalog file {path.name} must contain a '{key}' list.",
            field=key, catalog=key,
        )
    return entries


def load_material_catalog(path: Path) -> MaterialCatalog:
    entries = _read_entries(Path(path), "materials")
    try:
        catalog = MaterialCatalog(Material.model_validate(e) for e in entries)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid material entry in {path}: {e.errors()[0]['msg']}",
            catalog="materials",
        ) from e
    logger.info("Loaded %d materials from %s", len(catalog), path)
    return catalog


def load_printer_catalog(path: Path) -> PrinterCatalog:
    entries = _read_entries(Path(path), "printers")
    try:
        catalog = PrinterCatalog(Printer.model_validate(e) for e in entries)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid printer entry in {path}: {e.errors()[0]['msg']}",
            catalog="printers",
        ) from e
    logger.info("Loaded %d printers from %s", len(catalog), path)
    return catalog


def load_catalogs(directory: Optional[Path] = None) -> tuple[MaterialCatalog, PrinterCatalog]:
    """Load both catalogs from a directory (defaults to the bundled data)."""
    directory = Path(directory) if directory else DATA_DIR
    return (
        load_material_catalog(directory / "materials.json"),
        load_printer_catalog(directory / "printers.json"),
    )


@lru_cache(maxsize=1)
def default_catalogs() -> tuple[MaterialCatalog, PrinterCatalog]:
    """Process-wide catalogs from CATALOG_DIR (or bundled data). Loaded once."""
    return load_catalogs(Path(settings.CATALOG_DIR) if settings.CATALOG_DIR else None)
