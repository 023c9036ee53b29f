from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
import enum
import re


EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
URL_PATTERN = r"^https?://.+"


class Urgency(str, enum.Enum):
    STANDARD = "standard"
    RUSH = "rush"


class PrintRequest(BaseModel):
    project_name: str = Field(min_length=1)
    description: str
    preferred_material: Optional[str] = None
    preferred_color: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    urgency: Urgency = Urgency.STANDARD
    special_instructions: Optional[str] = None
    user_name: str = Field(min_length=1)
    user_email: str = Field(pattern=EMAIL_PATTERN)
    render_images: List[str] = []
    post_processing: bool = False

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Description must be a non-empty string.")
        return v.strip()

    @field_validator("preferred_material", "preferred_color", "special_instructions")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("render_images")
    @classmethod
    def http_urls_only(cls, v: List[str]) -> List[str]:
        for url in v:
            if not re.match(URL_PATTERN, url):
                raise ValueError(f"Image URL must be a valid HTTP/HTTPS URL: {url}")
        return v


class SettingsCheck(BaseModel):
    layer_height: float
    nozzle_temp: float
    bed_temp: Optional[float] = None
    print_speed: Optional[float] = None


class SettingsCheckResult(BaseModel):
    valid: bool
