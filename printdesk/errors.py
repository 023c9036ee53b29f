"""
Error taxonomy for the print-plan pipeline.

ValidationError         — bad input. Fatal to the request, never retried.
NoCompatibleOptionError — nothing in a catalog fits the request. Fatal.
ExternalServiceError    — a collaborator failed. The analyzer recovers locally
                          (keyword fallback); pricing has no fallback and propagates.

Every error carries a context dict so callers can log or display it.
"""


class PrintDeskError(Exception):
    """Base class for every error raised by the pipeline."""

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            **self.context,
        }


class ValidationError(PrintDeskError, ValueError):
    """Malformed, missing or out-of-range input."""

    def __init__(self, message: str, field: str = None, value=None, **context):
        super().__init__(message, field=field, value=value, **context)
        self.field = field
        self.value = value


class NoCompatibleOptionError(PrintDeskError):
    """No catalog entry satisfies the request constraints."""


class NoCompatiblePrinterError(NoCompatibleOptionError):
    def __init__(self, material: str, dimensions=None, catalog: str = "printers"):
        message = f"No compatible printers found for material: {material}"
        if dimensions is not None:
            message += (
                f" with dimensions {dimensions.x:g} x {dimensions.y:g} x {dimensions.z:g}"
            )
        super().__init__(
            message,
            material=material,
            dimensions=dimensions.model_dump() if dimensions is not None else None,
            catalog=catalog,
        )
        self.material = material
        self.dimensions = dimensions


class ExternalServiceError(PrintDeskError):
    """A collaborator (Gemini, pricing) failed or returned garbage."""

    def __init__(self, service: str, message: str, **context):
        super().__init__(f"{service} failed: {message}", service=service, **context)
        self.service = service
