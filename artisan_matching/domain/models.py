"""Core domain models supplied by callers of the matching engine.

This module defines:
- CandidateProfile: read-only artisan profile scored against a query
- MatchOptions: per-request tuning knobs
- MatchFeedback: buyer feedback accepted by the learning hook

Profiles come from an external store and are frequently incomplete, so every
field tolerates ``None`` and wrong-but-harmless types instead of failing
validation.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return ""
    return str(value).strip()


def _as_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        return []
    items = []
    for item in value:
        text = _as_text(item)
        if text:
            items.append(text)
    return items


class CandidateProfile(BaseModel):
    """Artisan profile evaluated by the matcher.

    Attributes:
        id: Caller-side identifier (uid, document id, ...)
        name: Display name
        profession: Primary artistic profession
        skills: Free-form skill tags
        materials: Materials the artisan works with
        techniques: Techniques the artisan practices
        specializations: Specialization phrases
        description: Free-text biography/description
        location: Home location text
        service_areas: Places the artisan serves
        in_range: Caller-computed "within delivery range" flag, if known
    """

    id: str = ""
    name: str = ""
    profession: str = ""
    skills: List[str] = Field(default_factory=list)
    materials: List[str] = Field(default_factory=list)
    techniques: List[str] = Field(default_factory=list)
    specializations: List[str] = Field(default_factory=list)
    description: str = ""
    location: str = ""
    service_areas: List[str] = Field(default_factory=list)
    in_range: Optional[bool] = None

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("id", "name", "profession", "description", "location", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        """Treat missing text as empty."""
        return _as_text(v)

    @field_validator(
        "skills", "materials", "techniques", "specializations", "service_areas", mode="before"
    )
    @classmethod
    def coerce_text_list(cls, v: Any) -> List[str]:
        """Treat missing lists as empty and drop blank entries."""
        return _as_text_list(v)

    @field_validator("in_range", mode="before")
    @classmethod
    def coerce_in_range(cls, v: Any) -> Optional[bool]:
        """Only real booleans count; anything else means unknown."""
        return v if isinstance(v, bool) else None

    @classmethod
    def from_user_document(cls, doc: Dict[str, Any]) -> "CandidateProfile":
        """Build a profile from a nested user document.

        Understands the shape stored by the profile service::

            {
              "uid": ..., "name"/"displayName": ...,
              "artisticProfession": ..., "description": ...,
              "artisanConnectProfile": {
                "matchingData": {"skills": [...], "materials": [...], "techniques": [...]},
                "specializations": [...],
                "locationData": {"address": {"city": ...}, "serviceAreas": [...]}
              }
            }

        Missing branches are treated as empty.
        """
        doc = doc if isinstance(doc, dict) else {}
        connect = doc.get("artisanConnectProfile") or {}
        if not isinstance(connect, dict):
            connect = {}
        matching_data = connect.get("matchingData") or {}
        if not isinstance(matching_data, dict):
            matching_data = {}
        location_data = connect.get("locationData") or {}
        if not isinstance(location_data, dict):
            location_data = {}
        address = location_data.get("address") or {}
        if not isinstance(address, dict):
            address = {}

        location_parts = [_as_text(address.get(key)) for key in ("city", "state", "country")]

        return cls(
            id=doc.get("uid") or doc.get("id"),
            name=doc.get("name") or doc.get("displayName"),
            profession=doc.get("artisticProfession") or doc.get("profession"),
            skills=matching_data.get("skills"),
            materials=matching_data.get("materials"),
            techniques=matching_data.get("techniques"),
            specializations=connect.get("specializations"),
            description=doc.get("description"),
            location=", ".join(part for part in location_parts if part),
            service_areas=location_data.get("serviceAreas"),
        )

    @classmethod
    def coerce(cls, value: Any) -> "CandidateProfile":
        """Accept a profile, a flat dict or a nested user document."""
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            if "artisanConnectProfile" in value or "artisticProfession" in value:
                return cls.from_user_document(value)
            return cls.model_validate(value)
        raise TypeError(f"Cannot build a CandidateProfile from {type(value).__name__}")


class MatchOptions(BaseModel):
    """Per-request matching options.

    ``None`` for max_results/min_score means "use the tier default" so the
    deterministic and emergency tiers can keep their own limits.
    """

    max_results: Optional[int] = Field(None, ge=1, le=1000)
    min_score: Optional[float] = Field(None, ge=0.0, le=1.0)
    enable_fuzzy_matching: bool = False
    enable_synonym_matching: bool = True
    boost_exact_matches: bool = False
    location: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator("location", mode="before")
    @classmethod
    def blank_location_is_none(cls, v: Any) -> Optional[str]:
        text = _as_text(v)
        return text or None


class MatchFeedback(str, Enum):
    """Buyer feedback on a suggested artisan."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
