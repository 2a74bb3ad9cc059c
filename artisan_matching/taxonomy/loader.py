"""Loader for the versioned taxonomy data asset."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from artisan_matching.logging import get_logger

from .models import SynonymTable

logger = get_logger(__name__, component="taxonomy")

DEFAULT_TAXONOMY_PATH = Path(__file__).parent / "data" / "taxonomy.yaml"


class TaxonomyError(Exception):
    """Raised when the taxonomy asset cannot be read or validated."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


def load_taxonomy(path: Optional[Path] = None) -> SynonymTable:
    """Load and validate a taxonomy YAML file.

    Args:
        path: Path to the YAML asset (defaults to the packaged taxonomy)

    Returns:
        Validated, frozen SynonymTable

    Raises:
        TaxonomyError: If the file is missing, unparsable or invalid
    """
    taxonomy_path = Path(path) if path else DEFAULT_TAXONOMY_PATH

    try:
        with open(taxonomy_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise TaxonomyError(f"Taxonomy file not found: {taxonomy_path}", path=taxonomy_path)
    except yaml.YAMLError as e:
        raise TaxonomyError(f"Failed to parse taxonomy YAML: {e}", path=taxonomy_path)

    if not isinstance(data, dict) or not data:
        raise TaxonomyError(f"Taxonomy file is empty: {taxonomy_path}", path=taxonomy_path)

    try:
        table = SynonymTable.model_validate(data)
    except ValidationError as e:
        details = "; ".join(
            f"{' -> '.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise TaxonomyError(f"Invalid taxonomy: {details}", path=taxonomy_path)

    logger.info(
        "Taxonomy loaded",
        extra={
            "event": "taxonomy.loaded",
            "taxonomy_version": table.version,
            "taxonomy_path": str(taxonomy_path),
            "canonical_terms": table.size,
        },
    )
    return table


@lru_cache(maxsize=1)
def default_taxonomy() -> SynonymTable:
    """Return the packaged taxonomy, loaded once per process."""
    return load_taxonomy(DEFAULT_TAXONOMY_PATH)
