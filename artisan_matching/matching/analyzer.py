"""Keyword/synonym query analysis.

Scans a normalized query against the taxonomy tables and produces a
QueryAnalysis:
1. Canonical profession/material/technique terms (exact hits)
2. Synonyms of those terms (non-exact hits)
3. Optional fuzzy hits for misspelled words
4. Product words, which also infer the profession that makes them
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple, Union

from rapidfuzz import fuzz

from artisan_matching.domain.models import MatchOptions
from artisan_matching.logging import get_logger
from artisan_matching.taxonomy.models import SynonymTable

from .models import ExtractionMethod, Query, QueryAnalysis

logger = get_logger(__name__, component="analyzer")

BASE_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.8
PER_MATCH_CONFIDENCE = 0.1
PER_EXACT_CONFIDENCE = 0.1

# Query words shorter than this are never fuzzy-matched
MIN_FUZZY_TOKEN_LENGTH = 4


def _append_unique(items: List[str], value: str) -> None:
    if value not in items:
        items.append(value)


@dataclass
class _ScanState:
    keywords: List[str] = field(default_factory=list)
    professions: List[str] = field(default_factory=list)
    materials: List[str] = field(default_factory=list)
    techniques: List[str] = field(default_factory=list)
    exact_professions: Set[str] = field(default_factory=set)
    total_matches: int = 0
    exact_matches: int = 0
    fuzzy_matches: int = 0


class QueryAnalyzer:
    """Turns free-text buyer queries into a QueryAnalysis.

    Stateless apart from the shared, read-only taxonomy; one instance can
    serve concurrent requests.
    """

    def __init__(
        self,
        taxonomy: SynonymTable,
        min_query_length: int = 2,
        fuzzy_threshold: int = 85,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize QueryAnalyzer.

        Args:
            taxonomy: Synonym/product tables to scan against
            min_query_length: Normalized queries shorter than this are not analyzed
            fuzzy_threshold: rapidfuzz ratio (0-100) needed for a fuzzy hit
            logger_instance: Optional logger (defaults to module logger)
        """
        self.taxonomy = taxonomy
        self.min_query_length = min_query_length
        self.fuzzy_threshold = fuzzy_threshold
        self.logger = logger_instance or logger

    def analyze(
        self, query: Union[str, Query, None], options: Optional[MatchOptions] = None
    ) -> QueryAnalysis:
        """Analyze a query.

        Empty queries and queries shorter than min_query_length return an
        empty analysis with confidence 0. Any other query gets at least the
        base confidence of 0.3, even when nothing was recognized.

        Args:
            query: Raw query text or a Query
            options: Matching options (synonym and fuzzy toggles)

        Returns:
            QueryAnalysis for the query
        """
        if not isinstance(query, Query):
            query = Query.from_text(query)
        options = options or MatchOptions()
        text = query.normalized

        if len(text) < self.min_query_length:
            self.logger.debug(
                "Query too short to analyze",
                extra={
                    "event": "matching.query.too_short",
                    "query_length": len(text),
                    "min_query_length": self.min_query_length,
                },
            )
            return QueryAnalysis.empty()

        state = _ScanState()
        tokens = [t for t in text.split() if len(t) >= MIN_FUZZY_TOKEN_LENGTH]
        fuzzy_tokens = tokens if options.enable_fuzzy_matching else []

        self._scan_table(
            self.taxonomy.professions, text, fuzzy_tokens, state, state.professions,
            options.enable_synonym_matching, track_exact=state.exact_professions,
        )
        self._scan_table(
            self.taxonomy.materials, text, fuzzy_tokens, state, state.materials,
            options.enable_synonym_matching,
        )
        self._scan_table(
            self.taxonomy.techniques, text, fuzzy_tokens, state, state.techniques,
            options.enable_synonym_matching,
        )
        self._scan_products(text, state)

        analysis = QueryAnalysis(
            detected_keywords=tuple(state.keywords),
            possible_professions=tuple(state.professions),
            extracted_materials=tuple(state.materials),
            extracted_techniques=tuple(state.techniques),
            confidence=self._confidence(state.total_matches, state.exact_matches),
            method=self._method(state),
            exact_professions=frozenset(state.exact_professions),
        )

        self.logger.debug(
            "Query analyzed",
            extra={
                "event": "matching.query.analyzed",
                "keywords": list(analysis.detected_keywords),
                "professions": list(analysis.possible_professions),
                "total_matches": state.total_matches,
                "exact_matches": state.exact_matches,
                "confidence": analysis.confidence,
                "method": analysis.method.value,
            },
        )
        return analysis

    def _scan_table(
        self,
        table: Dict[str, Tuple[str, ...]],
        text: str,
        fuzzy_tokens: List[str],
        state: _ScanState,
        bucket: List[str],
        use_synonyms: bool,
        track_exact: Optional[Set[str]] = None,
    ) -> None:
        """Record at most one hit per canonical term: canonical, else synonym, else fuzzy."""
        for canonical, synonyms in table.items():
            if canonical in text:
                _append_unique(bucket, canonical)
                _append_unique(state.keywords, canonical)
                state.exact_matches += 1
                state.total_matches += 1
                if track_exact is not None:
                    track_exact.add(canonical)
                continue

            if use_synonyms:
                synonym = next((s for s in synonyms if s in text), None)
                if synonym is not None:
                    _append_unique(bucket, canonical)
                    _append_unique(state.keywords, synonym)
                    state.total_matches += 1
                    continue

            if fuzzy_tokens:
                candidates = (canonical,) + (synonyms if use_synonyms else ())
                term = self._fuzzy_hit(candidates, fuzzy_tokens)
                if term is not None:
                    _append_unique(bucket, canonical)
                    _append_unique(state.keywords, term)
                    state.total_matches += 1
                    state.fuzzy_matches += 1

    def _fuzzy_hit(self, terms: Tuple[str, ...], tokens: List[str]) -> Optional[str]:
        for term in terms:
            for token in tokens:
                if fuzz.ratio(token, term) >= self.fuzzy_threshold:
                    return term
        return None

    def _scan_products(self, text: str, state: _ScanState) -> None:
        for product in self.taxonomy.product_words():
            if product not in text:
                continue
            _append_unique(state.keywords, product)
            state.total_matches += 1
            inferred = self.taxonomy.infer_profession(product)
            if inferred:
                _append_unique(state.professions, inferred)

    @staticmethod
    def _confidence(total_matches: int, exact_matches: int) -> float:
        if total_matches == 0:
            return BASE_CONFIDENCE
        return min(
            MAX_CONFIDENCE,
            BASE_CONFIDENCE
            + PER_MATCH_CONFIDENCE * total_matches
            + PER_EXACT_CONFIDENCE * exact_matches,
        )

    @staticmethod
    def _method(state: _ScanState) -> ExtractionMethod:
        non_exact = state.total_matches - state.exact_matches
        if state.exact_matches > 0 and non_exact > 0:
            return ExtractionMethod.HYBRID
        if non_exact > 0:
            if state.fuzzy_matches == non_exact:
                return ExtractionMethod.FUZZY
            return ExtractionMethod.SYNONYM
        return ExtractionMethod.KEYWORD
