"""Synonym and product tables used for query analysis and scoring."""

from .loader import DEFAULT_TAXONOMY_PATH, TaxonomyError, default_taxonomy, load_taxonomy
from .models import SynonymTable

__all__ = [
    "SynonymTable",
    "TaxonomyError",
    "DEFAULT_TAXONOMY_PATH",
    "default_taxonomy",
    "load_taxonomy",
]
