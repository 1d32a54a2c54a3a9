"""
Generative fallback for film title extraction.

The pattern extractor handles the bulk of listings. Titles it leaves looking
suspicious are sent to Gemini, whose answer is validated before use and
never trusted blindly: any failure degrades to the pattern result with a
low confidence instead of raising.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cinecatalog.config import settings
from cinecatalog.services.gemini_client import (
    GeminiClient,
    GenerationError,
    RateLimitError,
    strip_code_fences,
)
from cinecatalog.services.pattern_extractor import (
    COMPILATION_CONFIDENCE_CAP,
    ExtractionResult,
    clean_basic_cruft,
    detect_version,
    extract_title,
    is_likely_clean,
)

logger = logging.getLogger(__name__)

# Pattern results at or above this confidence are used without a model call
LOCAL_CONFIDENCE_THRESHOLD = 0.85

# Cap applied when generation fails and we fall back to the pattern result
DEGRADED_CONFIDENCE_CAP = 0.4

CONFIDENCE_SCORES: dict[str, float] = {"high": 0.9, "medium": 0.7, "low": 0.4}

PROMPT_TEMPLATE = """Extract film title information from this cinema screening listing.

Listing: "{raw_title}"
{description_block}
Return ONLY a JSON object (no markdown) with:
- title: The display title (as shown, with version if present)
- canonical: The base film title without version suffixes like "Director's Cut", "Final Cut", "Extended Edition", "Redux", "Restored", "Remastered" (for matching/deduplication)
- version: The version/cut if present (e.g., "Final Cut", "Director's Cut")
- event: Event type if any (e.g., "35mm screening", "Q&A", "kids screening")
- confidence: "high" | "medium" | "low"

"canonical" should strip version suffixes but keep legitimate subtitles:
- "Apocalypse Now : Final Cut" -> canonical: "Apocalypse Now", version: "Final Cut"
- "Star Wars: A New Hope" -> canonical: "Star Wars: A New Hope"

Examples:
- "Saturday Morning Picture Club: The Muppets Christmas Carol" -> {{"title": "The Muppets Christmas Carol", "canonical": "The Muppets Christmas Carol", "event": "kids screening", "confidence": "high"}}
- "35mm: Casablanca (PG)" -> {{"title": "Casablanca", "canonical": "Casablanca", "event": "35mm screening", "confidence": "high"}}"""

Sleep = Callable[[float], Awaitable[None]]


class GeneratedTitle(BaseModel):
    """Shape the model is asked to return."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    canonical: str | None = None
    version: str | None = None
    event: str | None = None
    confidence: Literal["high", "medium", "low"] = "medium"


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff for rate-limited calls."""

    max_attempts: int = 3
    base_delay: float = 15.0
    backoff_factor: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (1-based)."""
        return self.base_delay * self.backoff_factor ** (attempt - 1)

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.extraction_max_attempts,
            base_delay=settings.extraction_base_delay,
            backoff_factor=settings.extraction_backoff_factor,
        )


class ExtractionCache:
    """Memo of generated extractions, owned by one extractor for one run."""

    def __init__(self) -> None:
        self._entries: dict[str, ExtractionResult] = {}

    @staticmethod
    def key(raw_title: str, description: str | None = None) -> str:
        return f"{raw_title}\x1f{description or ''}"

    def get(self, raw_title: str, description: str | None = None) -> ExtractionResult | None:
        return self._entries.get(self.key(raw_title, description))

    def set(self, raw_title: str, description: str | None, result: ExtractionResult) -> None:
        self._entries[self.key(raw_title, description)] = result

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class ExtractionStats:
    """Where each extraction was resolved."""

    local: int = 0
    generated: int = 0
    degraded: int = 0
    cached: int = 0
    non_film: int = 0

    @property
    def total(self) -> int:
        return self.local + self.generated + self.degraded + self.cached + self.non_film


class TitleExtractor:
    """
    Film title extraction with a generative fallback.

    Usage:
        extractor = TitleExtractor()
        result = await extractor.extract("Drink & Dine: Heat + Q&A")
        results = await extractor.batch_extract(titles)
    """

    def __init__(
        self,
        client: GeminiClient | None = None,
        retry_policy: RetryPolicy | None = None,
        cache: ExtractionCache | None = None,
        max_workers: int | None = None,
        requests_per_minute: int | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """
        Initialize title extractor.

        Args:
            client: Gemini client (creates default if not provided)
            retry_policy: Backoff for rate-limited calls
            cache: Memo cache (a fresh one if not provided)
            max_workers: Concurrent generation workers in batch mode
            requests_per_minute: Inference service rate limit
            sleep: Async sleep, replaceable in tests
        """
        self.client = client or GeminiClient()
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.cache = cache if cache is not None else ExtractionCache()
        self.max_workers = max(1, max_workers or settings.extraction_max_workers)
        self.requests_per_minute = requests_per_minute or settings.gemini_requests_per_minute
        self.stats = ExtractionStats()
        self._sleep = sleep

    @property
    def call_delay(self) -> float:
        """Seconds each worker waits between its own dispatches."""
        return self.max_workers * 60.0 / self.requests_per_minute

    async def extract(self, raw_title: str, description: str | None = None) -> ExtractionResult:
        """
        Extract a film title, calling the model only when needed.

        Never raises: service failures degrade to the pattern result.
        """
        pattern = extract_title(raw_title)
        local = self._resolve_locally(pattern)
        if local is not None:
            return local

        cached = self.cache.get(raw_title, description)
        if cached is not None:
            self.stats.cached += 1
            return cached

        return await self._generate(pattern, description)

    async def batch_extract(
        self,
        raw_titles: Iterable[str],
        descriptions: Mapping[str, str] | None = None,
    ) -> dict[str, ExtractionResult]:
        """
        Extract many titles with rate-limited model calls.

        Pass 1 resolves locally clean and cached titles with no delay.
        Pass 2 splits the remainder round-robin across `max_workers`
        workers; each waits `call_delay` between its own calls, so the
        number of sleeps depends only on how many titles needed the model.

        Args:
            raw_titles: Raw listing titles (duplicates are collapsed)
            descriptions: Optional listing blurbs keyed by raw title

        Returns:
            Mapping of raw title to ExtractionResult
        """
        descriptions = descriptions or {}
        results: dict[str, ExtractionResult] = {}
        pending: list[tuple[str, ExtractionResult]] = []

        for raw_title in dict.fromkeys(raw_titles):
            pattern = extract_title(raw_title)
            local = self._resolve_locally(pattern)
            if local is not None:
                results[raw_title] = local
                continue

            cached = self.cache.get(raw_title, descriptions.get(raw_title))
            if cached is not None:
                self.stats.cached += 1
                results[raw_title] = cached
                continue

            pending.append((raw_title, pattern))

        logger.info(
            f"Title extraction: {len(results)} resolved locally, "
            f"{len(pending)} need generation"
        )

        async def worker(chunk: list[tuple[str, ExtractionResult]]) -> None:
            for index, (raw_title, pattern) in enumerate(chunk):
                if index:
                    await self._sleep(self.call_delay)
                results[raw_title] = await self._generate(
                    pattern, descriptions.get(raw_title)
                )

        chunks = [pending[i :: self.max_workers] for i in range(self.max_workers)]
        await asyncio.gather(*(worker(chunk) for chunk in chunks if chunk))

        logger.info(f"Title extraction stats: {self.stats}")
        return results

    def _resolve_locally(self, pattern: ExtractionResult) -> ExtractionResult | None:
        if pattern.is_non_film:
            self.stats.non_film += 1
            return pattern

        # The model can't say more about a shorts programme than the prefix did
        if pattern.is_compilation:
            self.stats.local += 1
            return pattern

        if is_likely_clean(pattern.original_title.strip()) or (
            pattern.confidence >= LOCAL_CONFIDENCE_THRESHOLD
            and is_likely_clean(pattern.extracted_title)
        ):
            self.stats.local += 1
            return pattern

        return None

    async def _generate(
        self, pattern: ExtractionResult, description: str | None
    ) -> ExtractionResult:
        raw_title = pattern.original_title
        prompt = build_prompt(raw_title, description)

        for attempt in range(1, self.retry_policy.max_attempts + 1):
            try:
                text = await self.client.generate_text(prompt)
            except RateLimitError:
                if attempt == self.retry_policy.max_attempts:
                    logger.warning(
                        f"Rate limit persisted after {attempt} attempts for '{raw_title}'"
                    )
                    break
                delay = self.retry_policy.delay_for(attempt)
                logger.info(
                    f"Rate limited on '{raw_title}', retrying in {delay:.0f}s "
                    f"(attempt {attempt}/{self.retry_policy.max_attempts})"
                )
                await self._sleep(delay)
                continue
            except GenerationError as e:
                logger.warning(f"Generative extraction failed for '{raw_title}': {e}")
                break

            try:
                generated = GeneratedTitle.model_validate_json(strip_code_fences(text))
            except ValidationError as e:
                logger.warning(f"Unusable model output for '{raw_title}': {e}")
                break

            result = from_generated(pattern, generated)
            self.stats.generated += 1
            self.cache.set(raw_title, description, result)
            return result

        self.stats.degraded += 1
        result = degrade(pattern)
        self.cache.set(raw_title, description, result)
        return result


def build_prompt(raw_title: str, description: str | None = None) -> str:
    description_block = f'Description: "{description.strip()}"\n' if description else ""
    return PROMPT_TEMPLATE.format(raw_title=raw_title, description_block=description_block)


def from_generated(pattern: ExtractionResult, generated: GeneratedTitle) -> ExtractionResult:
    """Merge a validated model answer with what the pattern pass already knows."""
    display = clean_basic_cruft(generated.title) or pattern.extracted_title
    base, detected_version = detect_version(display)

    confidence = CONFIDENCE_SCORES[generated.confidence]
    if pattern.is_compilation:
        confidence = min(confidence, COMPILATION_CONFIDENCE_CAP)

    return ExtractionResult(
        original_title=pattern.original_title,
        extracted_title=display,
        canonical_title=(generated.canonical or "").strip() or base,
        classification=pattern.classification,
        confidence=confidence,
        method="generative",
        version=generated.version or detected_version,
        event_type=generated.event or pattern.event_type,
    )


def degrade(pattern: ExtractionResult) -> ExtractionResult:
    """Pattern result with the confidence a failed generation deserves."""
    return replace(
        pattern,
        confidence=min(pattern.confidence, DEGRADED_CONFIDENCE_CAP),
        method="pattern_fallback",
    )
