"""
Apidex Configuration Module

Centralized configuration for the Apidex documentation store and search
engine.  Runtime settings live on the instance-based :class:`ApidexConfig`;
the query vocabularies are process-wide constants on :class:`Vocabulary`.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


# =============================================================================
# Instance-Based Configuration
# =============================================================================

@dataclass
class ApidexConfig:
    """
    Instance-based configuration for Apidex.

    Each ``ApidexConfig`` instance is self-contained and can be passed
    through the call stack, so several stores (or test fixtures) can live
    in the same process.

    Create from environment variables::

        config = ApidexConfig.from_env()

    Or with explicit values::

        config = ApidexConfig(data_dir=Path("./data"), max_matches_per_service=3)
    """

    # ── Storage ───────────────────────────────────────────────────
    data_dir: Path = field(default_factory=lambda: Path.cwd() / "data")
    document_suffix: str = ".json"

    # ── Search ────────────────────────────────────────────────────
    max_matches_per_service: int = 5
    max_search_services: int = 0  # 0 = no cap
    # Points awarded by the endpoint scorer. Integers keep scores exact.
    ranking_weights: dict = field(default_factory=lambda: {
        "keyword_match": 1,
        "path_match": 2,
        "method_match": 3,
        "category_match": 1,
        "phrase_match": 5,
    })

    # ── Document fetch fan-out ────────────────────────────────────
    max_concurrent_fetches: int = 4
    fetch_timeout_seconds: float = 10.0

    # ── Logging ───────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ── Factory ───────────────────────────────────────────────────

    @classmethod
    def from_env(cls) -> "ApidexConfig":
        """Build a config snapshot from current environment variables.

        Reads :envvar:`APIDEX_DATA_DIR`, :envvar:`APIDEX_MAX_MATCHES`,
        :envvar:`APIDEX_MAX_SERVICES`, :envvar:`APIDEX_MAX_WORKERS`,
        :envvar:`APIDEX_FETCH_TIMEOUT` and :envvar:`APIDEX_LOG_LEVEL`.
        """
        data_dir = os.getenv("APIDEX_DATA_DIR", "").strip()
        return cls(
            data_dir=Path(data_dir) if data_dir else Path.cwd() / "data",
            max_matches_per_service=int(os.getenv("APIDEX_MAX_MATCHES", "5")),
            max_search_services=int(os.getenv("APIDEX_MAX_SERVICES", "0")),
            max_concurrent_fetches=int(os.getenv("APIDEX_MAX_WORKERS", "4")),
            fetch_timeout_seconds=float(os.getenv("APIDEX_FETCH_TIMEOUT", "10")),
            log_level=os.getenv("APIDEX_LOG_LEVEL", "INFO").upper(),
        )

    # ── Validation ────────────────────────────────────────────────

    def validate(self) -> bool:
        """
        Validate numeric limits and the log level.

        Raises :class:`~apidex.exceptions.ConfigError` on failure.
        """
        from apidex.exceptions import ConfigError

        if self.max_matches_per_service < 1:
            raise ConfigError(
                f"max_matches_per_service must be >= 1 (got {self.max_matches_per_service}).\n"
                "  Set via: export APIDEX_MAX_MATCHES=5"
            )
        if self.max_search_services < 0:
            raise ConfigError(
                f"max_search_services must be >= 0 (got {self.max_search_services}).\n"
                "  Set via: export APIDEX_MAX_SERVICES=0"
            )
        if self.max_concurrent_fetches < 1:
            raise ConfigError(
                f"max_concurrent_fetches must be >= 1 (got {self.max_concurrent_fetches}).\n"
                "  Set via: export APIDEX_MAX_WORKERS=4"
            )
        if self.fetch_timeout_seconds <= 0:
            raise ConfigError(
                f"fetch_timeout_seconds must be positive (got {self.fetch_timeout_seconds}).\n"
                "  Set via: export APIDEX_FETCH_TIMEOUT=10"
            )
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"Unknown log level '{self.log_level}'.")
        return True


# =============================================================================
# Query Vocabulary
# =============================================================================

class Vocabulary:
    """
    Word lists used by the keyword extractor.

    Both sets are immutable.  A token in :attr:`DOMAIN_WORDS` is always
    kept, even when it also appears in :attr:`STOP_WORDS`.
    """

    # Common English function words: articles, pronouns, auxiliaries,
    # prepositions, plus generic verbs that carry no API meaning.
    STOP_WORDS: frozenset = frozenset({
        "a", "an", "the", "and", "or", "but", "is", "are", "was", "were",
        "be", "been", "being", "in", "on", "at", "to", "for", "with",
        "about", "against", "between", "into", "through", "during",
        "before", "after", "above", "below", "from", "up", "down", "of",
        "off", "over", "under", "again", "further", "then", "once", "here",
        "there", "when", "where", "why", "how", "all", "any", "both",
        "each", "few", "more", "most", "other", "some", "such", "no", "nor",
        "not", "only", "own", "same", "so", "than", "too", "very", "can",
        "will", "just", "should", "now", "i", "me", "my", "myself", "we",
        "our", "ours", "ourselves", "you", "your", "yours", "yourself",
        "yourselves", "he", "him", "his", "himself", "she", "her", "hers",
        "herself", "it", "its", "itself", "they", "them", "their", "theirs",
        "themselves", "what", "which", "who", "whom", "this", "that",
        "these", "those", "am", "have", "has", "had", "having", "do",
        "does", "did", "doing", "would", "could", "ought", "get", "gets",
        "got", "use", "used", "using",
    })

    # Communication / API nouns and verbs that are always significant.
    DOMAIN_WORDS: frozenset = frozenset({
        "sms", "message", "call", "voice", "phone", "text", "media", "mms",
        "video", "email", "send", "receive", "create", "delete", "update",
        "get", "post", "put", "api", "verify", "authentication", "image",
        "upload", "download", "user", "account",
    })

    @classmethod
    def is_significant(cls, token: str) -> bool:
        """Return True when *token* survives stop-word filtering."""
        return token in cls.DOMAIN_WORDS or token not in cls.STOP_WORDS

    @classmethod
    def as_dict(cls) -> dict:
        """Return both lists sorted, for display and MCP resources."""
        return {
            "stop_words": sorted(cls.STOP_WORDS),
            "domain_words": sorted(cls.DOMAIN_WORDS),
        }
