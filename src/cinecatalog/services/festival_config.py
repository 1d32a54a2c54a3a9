"""
Per-festival tagging configuration.

Each entry says which venues host the festival and whether every screening
there during the window belongs to it (AUTO) or only those with a title or
booking-URL signal (TITLE). Entries are keyed by slug base; the edition year
comes from the seeded festivals table ("bfi-flare" + 2026 = "bfi-flare-2026").
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

SLUG_YEAR_RE = re.compile(r"-\d{4}$")


class FestivalStrategy(str, Enum):
    AUTO = "auto"  # Exclusive venue during the window
    TITLE = "title"  # Shared venue, needs a keyword or URL signal


@dataclass(frozen=True)
class FestivalTaggingConfig:
    """Tagging rules for one festival, independent of edition year."""

    slug_base: str
    venues: tuple[str, ...]
    strategy: FestivalStrategy
    typical_months: tuple[int, ...]  # 1-12
    title_keywords: tuple[str, ...] = ()
    url_patterns: tuple[re.Pattern[str], ...] = ()
    # (section name, pattern tried against title and booking URL)
    section_patterns: tuple[tuple[str, re.Pattern[str]], ...] = field(default=())


def _re(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


FESTIVAL_CONFIGS: dict[str, FestivalTaggingConfig] = {
    config.slug_base: config
    for config in (
        # Exclusive venue during the window
        FestivalTaggingConfig(
            slug_base="frightfest",
            venues=("prince-charles",),
            strategy=FestivalStrategy.AUTO,
            typical_months=(8,),
        ),
        FestivalTaggingConfig(
            slug_base="liff",
            venues=("genesis",),
            strategy=FestivalStrategy.AUTO,
            typical_months=(6, 7),
        ),
        # Shared venues
        FestivalTaggingConfig(
            slug_base="bfi-flare",
            venues=("bfi-southbank",),
            strategy=FestivalStrategy.TITLE,
            typical_months=(3,),
            title_keywords=("flare", "bfi flare"),
            url_patterns=(_re(r"/flare/"), _re(r"whatson\.bfi\.org\.uk/flare")),
            section_patterns=(
                ("Hearts", _re(r"\bhearts\b")),
                ("Bodies", _re(r"\bbodies\b")),
                ("Minds", _re(r"\bminds\b")),
            ),
        ),
        FestivalTaggingConfig(
            slug_base="raindance",
            venues=("curzon-soho",),
            strategy=FestivalStrategy.TITLE,
            typical_months=(6,),
            title_keywords=("raindance",),
            url_patterns=(_re(r"raindance\.org"),),
        ),
        FestivalTaggingConfig(
            slug_base="lsff",
            venues=("ica", "bfi-southbank", "rio-dalston", "rich-mix"),
            strategy=FestivalStrategy.TITLE,
            typical_months=(1, 2),
            title_keywords=("lsff", "london short film festival", "short film festival"),
            url_patterns=(_re(r"shortfilms\.org\.uk"),),
        ),
        FestivalTaggingConfig(
            slug_base="lkff",
            venues=("bfi-southbank", "cine-lumiere", "ica"),
            strategy=FestivalStrategy.TITLE,
            typical_months=(11,),
            title_keywords=("lkff", "korean film festival", "london korean"),
            url_patterns=(_re(r"koreanfilm\.co\.uk"),),
        ),
        FestivalTaggingConfig(
            slug_base="open-city",
            venues=("ica", "close-up-cinema", "barbican", "rich-mix"),
            strategy=FestivalStrategy.TITLE,
            typical_months=(4, 9),
            title_keywords=("open city", "open city docs"),
            url_patterns=(_re(r"opencitylondon\.com"),),
        ),
        FestivalTaggingConfig(
            slug_base="ukjff",
            venues=("barbican", "curzon-soho"),
            strategy=FestivalStrategy.TITLE,
            typical_months=(11,),
            title_keywords=("ukjff", "jewish film", "uk jewish film"),
            url_patterns=(_re(r"ukjewishfilm"), _re(r"eventive\.org")),
        ),
        FestivalTaggingConfig(
            slug_base="liaf",
            venues=("barbican", "close-up-cinema", "garden"),
            strategy=FestivalStrategy.TITLE,
            typical_months=(11, 12),
            title_keywords=("liaf", "animation festival", "london international animation"),
            url_patterns=(_re(r"liaf\.org\.uk"),),
        ),
        FestivalTaggingConfig(
            slug_base="docnroll",
            venues=("barbican", "bfi-southbank", "rio-dalston"),
            strategy=FestivalStrategy.TITLE,
            typical_months=(10, 11),
            title_keywords=("doc'n roll", "docnroll", "doc n roll"),
            url_patterns=(_re(r"docnrollfestival\.com"),),
        ),
        FestivalTaggingConfig(
            slug_base="eeff",
            venues=("genesis", "rio-dalston", "rich-mix"),
            strategy=FestivalStrategy.TITLE,
            typical_months=(7,),
            title_keywords=("eeff", "east end film festival", "east end film"),
            url_patterns=(_re(r"eastendfilmfestival\.com"),),
        ),
        FestivalTaggingConfig(
            slug_base="sundance-london",
            venues=("curzon-soho", "picturehouse-central"),
            strategy=FestivalStrategy.TITLE,
            typical_months=(5,),
            title_keywords=("sundance", "sundance london"),
            url_patterns=(_re(r"sundance\.org"),),
        ),
        FestivalTaggingConfig(
            slug_base="bfi-lff",
            venues=("bfi-southbank", "bfi-imax", "curzon-soho", "curzon-mayfair"),
            strategy=FestivalStrategy.TITLE,
            typical_months=(10,),
            title_keywords=("lff", "london film festival"),
            url_patterns=(_re(r"/lff/"), _re(r"london-film-festival")),
            section_patterns=(
                ("Headline Gala", _re(r"headline\s+gala")),
                ("Special Presentation", _re(r"special\s+presentation")),
                ("Gala", _re(r"\bgala\b")),
                ("Treasures", _re(r"\btreasures\b")),
                ("Experimenta", _re(r"\bexperimenta\b")),
            ),
        ),
    )
}


def slug_base_of(slug: str) -> str:
    """"bfi-flare-2026" -> "bfi-flare"."""
    return SLUG_YEAR_RE.sub("", slug)


def get_festival_config(slug: str) -> FestivalTaggingConfig | None:
    """Config for a festival slug, with or without its year."""
    return FESTIVAL_CONFIGS.get(slug_base_of(slug))


def matches_title_signals(
    config: FestivalTaggingConfig, title: str, booking_url: str | None = None
) -> bool:
    """True if the title contains a keyword or the booking URL matches a pattern."""
    title_lower = title.lower()
    if any(keyword.lower() in title_lower for keyword in config.title_keywords):
        return True
    if booking_url and any(p.search(booking_url) for p in config.url_patterns):
        return True
    return False


def match_section(
    config: FestivalTaggingConfig, title: str, booking_url: str | None = None
) -> str | None:
    for section, pattern in config.section_patterns:
        if pattern.search(title) or (booking_url and pattern.search(booking_url)):
            return section
    return None


def validate_festival_configs(
    venue_ids: Iterable[str],
    seeded_slug_bases: Iterable[str],
    configs: dict[str, FestivalTaggingConfig] | None = None,
) -> list[str]:
    """
    Check the configuration against the venue registry and festival seeds.

    This is an offline contract enforced by the test-suite, not a runtime
    check.

    Args:
        venue_ids: Every known venue slug
        seeded_slug_bases: Slug bases that have at least one seeded edition
        configs: Configs to check (defaults to FESTIVAL_CONFIGS)

    Returns:
        Human-readable problems; empty when everything is consistent
    """
    configs = FESTIVAL_CONFIGS if configs is None else configs
    known_venues = set(venue_ids)
    seeded = set(seeded_slug_bases)
    problems: list[str] = []

    for key, config in configs.items():
        if key != config.slug_base:
            problems.append(f"{key}: keyed under a different slug base ({config.slug_base})")
        if not config.venues:
            problems.append(f"{key}: no venues configured")
        for venue in config.venues:
            if venue not in known_venues:
                problems.append(f"{key}: unknown venue '{venue}'")
        if config.slug_base not in seeded:
            problems.append(f"{key}: no seeded festival edition")
        if config.strategy is FestivalStrategy.TITLE and not (
            config.title_keywords or config.url_patterns
        ):
            problems.append(f"{key}: TITLE strategy without keywords or URL patterns")
        if not config.typical_months:
            problems.append(f"{key}: no typical months")
        for month in config.typical_months:
            if not 1 <= month <= 12:
                problems.append(f"{key}: month {month} out of range")

    return problems
