"""
Pattern-based film title extraction.

Turns a cinema's event title ("Saturday Morning Picture Club: Song of the Sea",
"Apocalypse Now : Final Cut + Q&A") into the title of the film being shown.
Runs entirely locally; the generative fallback only sees titles this pass
leaves looking suspicious.
"""

import html
import re
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from cinecatalog.services.title_patterns import (
    DOUBLE_FEATURE_PATTERN,
    EVENT_PREFIX_PATTERNS,
    EVENT_PREFIXES,
    FRANCHISE_PATTERN,
    NON_FILM_PATTERNS,
    PRESENTS_PATTERN,
    SINGALONG_PATTERN,
    TITLE_SUFFIXES,
    VERSION_SUFFIX_PATTERNS,
    PrefixKind,
)

COMPILATION_CONFIDENCE_CAP = 0.3
EVENT_PREFIX_CONFIDENCE_CAP = 0.9
SUFFIX_CONFIDENCE_CAP = 0.85
DOUBLE_FEATURE_CONFIDENCE_CAP = 0.7


class Classification(str, Enum):
    """What kind of listing a title describes."""

    NORMAL = "normal"
    COMPILATION = "compilation"
    LIVE_BROADCAST = "live_broadcast"
    NON_FILM = "non_film"


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of extracting a film title from a raw listing title."""

    original_title: str
    extracted_title: str  # Display title, keeps version suffixes
    canonical_title: str  # Matching title, version suffix stripped
    classification: Classification = Classification.NORMAL
    confidence: float = 1.0
    method: str = "none"
    version: str | None = None
    event_type: str | None = None

    @property
    def is_non_film(self) -> bool:
        return self.classification is Classification.NON_FILM

    @property
    def is_compilation(self) -> bool:
        return self.classification is Classification.COMPILATION


@dataclass(frozen=True)
class ExtractionState:
    """Intermediate state threaded through the extraction rules."""

    original: str
    title: str
    classification: Classification = Classification.NORMAL
    confidence: float = 1.0
    methods: tuple[str, ...] = ()
    event_type: str | None = None
    suffix_fired: bool = False
    stop: bool = False

    def capped(self, cap: float, method: str, **changes) -> "ExtractionState":
        return replace(
            self,
            confidence=min(self.confidence, cap),
            methods=self.methods + (method,),
            **changes,
        )


Rule = Callable[[ExtractionState], ExtractionState | None]


def _non_film_rule(state: ExtractionState) -> ExtractionState | None:
    if not any(p.search(state.title) for p in NON_FILM_PATTERNS):
        return None
    return replace(
        state,
        classification=Classification.NON_FILM,
        confidence=0.0,
        methods=("non_film_detected",),
        stop=True,
    )


def _html_entity_rule(state: ExtractionState) -> ExtractionState | None:
    decoded = html.unescape(state.title)
    if decoded == state.title:
        return None
    return replace(state, title=decoded)


def _presents_rule(state: ExtractionState) -> ExtractionState | None:
    match = PRESENTS_PATTERN.match(state.title)
    if not match:
        return None
    return state.capped(0.95, "presents_pattern", title=match.group(1).strip())


def _singalong_rule(state: ExtractionState) -> ExtractionState | None:
    match = SINGALONG_PATTERN.match(state.title)
    if not match:
        return None
    return state.capped(0.90, "singalong_pattern", title=match.group(1).strip())


def _event_prefix_rule(state: ExtractionState) -> ExtractionState | None:
    for prefix in EVENT_PREFIXES:
        match = prefix.pattern.match(state.title)
        if not match:
            continue

        title = state.title[match.end():].strip()
        if prefix.kind is PrefixKind.FESTIVAL_COMPILATION:
            return state.capped(
                COMPILATION_CONFIDENCE_CAP,
                f"prefix:{prefix.name}",
                title=title,
                classification=Classification.COMPILATION,
                event_type=prefix.name,
            )
        classification = (
            Classification.LIVE_BROADCAST
            if prefix.kind is PrefixKind.LIVE_BROADCAST
            else state.classification
        )
        return state.capped(
            EVENT_PREFIX_CONFIDENCE_CAP,
            f"prefix:{prefix.name}",
            title=title,
            classification=classification,
            event_type=prefix.name,
        )
    return None


def _suffix_rule(state: ExtractionState) -> ExtractionState | None:
    title = state.title
    fired = 0
    for pattern in TITLE_SUFFIXES:
        stripped = pattern.sub("", title)
        if stripped != title:
            title = stripped.strip()
            fired += 1
    if not fired:
        return None
    return state.capped(
        SUFFIX_CONFIDENCE_CAP, f"suffix_removed:{fired}", title=title, suffix_fired=True
    )


def _double_feature_rule(state: ExtractionState) -> ExtractionState | None:
    # "Film + Q&A" was already handled by the suffix table; don't split again.
    if state.suffix_fired:
        return None
    match = DOUBLE_FEATURE_PATTERN.match(state.title)
    if not match:
        return None
    return state.capped(
        DOUBLE_FEATURE_CONFIDENCE_CAP, "double_feature", title=match.group(1).strip()
    )


def _cleanup_rule(state: ExtractionState) -> ExtractionState | None:
    title = re.sub(r"\s+", " ", state.title).strip()
    title = title.strip("\"'“”‘’").strip()
    if title == state.title:
        return None
    return replace(state, title=title)


EXTRACTION_RULES: tuple[Rule, ...] = (
    _non_film_rule,
    _html_entity_rule,
    _presents_rule,
    _singalong_rule,
    _event_prefix_rule,
    _suffix_rule,
    _double_feature_rule,
    _cleanup_rule,
)


def run_rules(raw_title: str, rules: tuple[Rule, ...] = EXTRACTION_RULES) -> ExtractionState:
    """Fold `rules` over the raw title, stopping early when a rule says so."""
    state = ExtractionState(original=raw_title, title=raw_title.strip())
    for rule in rules:
        outcome = rule(state)
        if outcome is None:
            continue
        state = outcome
        if state.stop:
            break
    return state


def detect_version(title: str) -> tuple[str, str | None]:
    """
    Split a version suffix ("Final Cut", "Director's Cut") off a title.

    Returns:
        (base_title, version) where version is None if there was none
    """
    for pattern in VERSION_SUFFIX_PATTERNS:
        match = pattern.search(title)
        if match:
            version = match.group(0).strip().lstrip(":-(").rstrip(")").strip()
            return title[: match.start()].strip(), version
    return title, None


def extract_title(raw_title: str) -> ExtractionResult:
    """
    Extract the film title from a raw cinema listing title.

    Args:
        raw_title: Title exactly as it appears on the cinema website

    Returns:
        ExtractionResult. Titles no rule touched come back unchanged with
        confidence 1.0 and method "none".
    """
    original = raw_title.strip()
    state = run_rules(raw_title)

    if state.classification is Classification.NON_FILM:
        return ExtractionResult(
            original_title=raw_title,
            extracted_title=original,
            canonical_title=original,
            classification=Classification.NON_FILM,
            confidence=0.0,
            method="non_film_detected",
        )

    extracted = state.title or original
    canonical, version = detect_version(extracted)
    methods = state.methods
    if version:
        methods = methods + ("version_suffix",)

    return ExtractionResult(
        original_title=raw_title,
        extracted_title=extracted,
        canonical_title=canonical or extracted,
        classification=state.classification,
        confidence=max(0.0, min(1.0, state.confidence)),
        method="+".join(methods) if methods else "none",
        version=version,
        event_type=state.event_type,
    )


def is_likely_clean(title: str) -> bool:
    """
    Check whether a title already looks like a bare film title.

    Clean titles skip the generative fallback entirely.
    """
    if any(p.search(title) for p in EVENT_PREFIX_PATTERNS):
        return False

    if re.search(r"\(\d{4}\)\s*$", title):
        return False

    if title == title.upper() and len(title) > 3 and any(ch.isalpha() for ch in title):
        return False

    if len(title) > 60:
        return False

    # Version suffixes are legitimate parts of a title
    if any(p.search(title) for p in VERSION_SUFFIX_PATTERNS):
        return True

    # "Something: Film" with a short prefix is usually an event series,
    # unless it's a franchise subtitle like "Star Wars: A New Hope".
    colon = title.find(":")
    if colon > 0:
        before = title[:colon].strip()
        if len(before.split()) <= 2 and not FRANCHISE_PATTERN.match(title):
            return False

    return True


def clean_basic_cruft(title: str) -> str:
    """
    Strip ratings, bracketed tags and trailing add-ons.

    Used to tidy generative output and as a last-resort display title.
    """
    cleaned = re.sub(r"\s*\((?:U|PG|12A?|15|18|R18)\*?\)\s*$", "", title, flags=re.IGNORECASE)
    cleaned = re.sub(r"\s*\[[^\]]+\]\s*$", "", cleaned)
    cleaned = re.sub(r"\s+-\s+(?:35mm|70mm|4K|IMAX)\s*$", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"\s*\+\s*Q\s*&\s*A.*$", "", cleaned, flags=re.IGNORECASE)
    return re.sub(r"\s+", " ", cleaned).strip()
