"""Schema for the artisan synonym/taxonomy tables."""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator


def _normalize_term(term: str) -> str:
    """Lowercase and collapse whitespace in a table term."""
    return " ".join(str(term).lower().split())


def _normalize_synonym_map(value: Dict[str, List[str]]) -> Dict[str, Tuple[str, ...]]:
    normalized: Dict[str, Tuple[str, ...]] = {}
    for canonical, synonyms in (value or {}).items():
        key = _normalize_term(canonical)
        if not key:
            raise ValueError("Canonical terms cannot be empty")
        seen = []
        for synonym in synonyms or []:
            term = _normalize_term(synonym)
            if term and term != key and term not in seen:
                seen.append(term)
        normalized[key] = tuple(seen)
    return normalized


class SynonymTable(BaseModel):
    """Immutable lookup tables shared by every matching request.

    Attributes:
        version: Version label of the data asset
        professions: Canonical profession -> synonyms
        materials: Canonical material -> synonyms
        techniques: Canonical technique -> synonyms
        products: Product category -> product words detected in queries
        product_professions: Product word -> profession inferred from it
    """

    version: str = Field("unversioned", min_length=1)
    professions: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    materials: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    techniques: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    products: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    product_professions: Dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @field_validator("professions", "materials", "techniques", "products", mode="before")
    @classmethod
    def normalize_synonyms(cls, v):
        """Lowercase terms, drop blanks and duplicates."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("Expected a mapping of term -> list of synonyms")
        return _normalize_synonym_map(v)

    @field_validator("product_professions", mode="before")
    @classmethod
    def normalize_product_professions(cls, v):
        """Lowercase product words and inferred professions."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("Expected a mapping of product -> profession")
        return {_normalize_term(k): _normalize_term(p) for k, p in v.items() if _normalize_term(k)}

    @model_validator(mode="after")
    def validate_inferences(self):
        """Every inferred profession must be a canonical profession."""
        unknown = sorted(
            {p for p in self.product_professions.values() if p not in self.professions}
        )
        if unknown:
            raise ValueError(
                f"product_professions refers to unknown professions: {', '.join(unknown)}"
            )
        return self

    def product_words(self) -> List[str]:
        """All product words, category order first, then inference-only words."""
        words: List[str] = []
        for category_words in self.products.values():
            for word in category_words:
                if word not in words:
                    words.append(word)
        for word in self.product_professions:
            if word not in words:
                words.append(word)
        return words

    def infer_profession(self, product: str) -> Optional[str]:
        """Return the profession implied by a product word, if any."""
        return self.product_professions.get(product)

    @property
    def size(self) -> int:
        """Total number of canonical terms across the three synonym tables."""
        return len(self.professions) + len(self.materials) + len(self.techniques)
