"""
Shared title extraction patterns.

Single source for the event prefixes, trailing cruft, version suffixes and
non-film markers used by the pattern extractor, the clean-title heuristic
and the generative fallback.
"""

import re
from dataclasses import dataclass
from enum import Enum


class PrefixKind(str, Enum):
    """What an event prefix tells us about the screening behind it."""

    EVENT = "event"
    FORMAT = "format"
    LIVE_BROADCAST = "live_broadcast"
    FESTIVAL_COMPILATION = "festival_compilation"


@dataclass(frozen=True)
class EventPrefix:
    """
    A known event-series prefix, e.g. "Saturday Morning Picture Club".

    Most prefixes are separated from the film title by a colon. A few
    (marketing banners like "UK PREMIERE") are written without one and set
    `needs_colon=False`.
    """

    name: str
    kind: PrefixKind = PrefixKind.EVENT
    needs_colon: bool = True

    @property
    def pattern(self) -> re.Pattern[str]:
        separator = r"\s*:\s*" if self.needs_colon else r"(?:\s*:\s*|\s+)"
        return re.compile(rf"^{re.escape(self.name)}{separator}", re.IGNORECASE)


_E = PrefixKind.EVENT
_FMT = PrefixKind.FORMAT
_LIVE = PrefixKind.LIVE_BROADCAST
_FEST = PrefixKind.FESTIVAL_COMPILATION

# Order matters: the first matching prefix is stripped and the scan stops.
EVENT_PREFIXES: tuple[EventPrefix, ...] = (
    # Dining/drinking events
    EventPrefix("Drink & Dine"),
    EventPrefix("Drink and Dine"),
    EventPrefix("Dine & Drink"),
    # Cinema clubs and series
    EventPrefix("Arabic Cinema Club"),
    EventPrefix("Saturday Morning Picture Club"),
    EventPrefix("Classic Matinee"),
    EventPrefix("Varda Film Club"),
    EventPrefix("Artist's Film Picks"),
    EventPrefix("Films For Workers"),
    EventPrefix("Reclaim the Frame presents"),
    EventPrefix("Sonic Cinema"),
    EventPrefix("The Liberated Film Club"),
    EventPrefix("Underscore Cinema"),
    EventPrefix("Dub Me Always"),
    EventPrefix("Carers & Babies"),
    EventPrefix("Carers and Babies"),
    EventPrefix("Parent & Baby"),
    EventPrefix("Baby Cinema"),
    EventPrefix("Film Club"),
    EventPrefix("Dochouse"),
    EventPrefix("Doc House"),
    EventPrefix("Documentary"),
    EventPrefix("Silver Screen"),
    # Access screenings
    EventPrefix("Relaxed Screening"),
    EventPrefix("Relaxed"),
    EventPrefix("Dementia Friendly"),
    EventPrefix("Autism Friendly"),
    # Special screenings
    EventPrefix("Queer Horror Nights"),
    EventPrefix("A Festive Feast"),
    EventPrefix("Funeral Parade presents"),
    EventPrefix("UK Premiere", needs_colon=False),
    EventPrefix("World Premiere", needs_colon=False),
    EventPrefix("Sneak Preview"),
    EventPrefix("Preview"),
    EventPrefix("Advanced Screening"),
    EventPrefix("Special Screening"),
    EventPrefix("Member Screening"),
    EventPrefix("Q&A"),
    EventPrefix("Intro"),
    # Live broadcasts
    EventPrefix("Met Opera Live", _LIVE),
    EventPrefix("Met Opera Encore", _LIVE),
    EventPrefix("National Theatre Live", _LIVE),
    EventPrefix("NT Live", _LIVE),
    EventPrefix("Royal Opera House", _LIVE),
    EventPrefix("Royal Ballet & Opera", _LIVE),
    EventPrefix("ROH Live", _LIVE),
    EventPrefix("ROH", _LIVE),
    EventPrefix("RBO Encore", _LIVE),
    EventPrefix("RBO Live", _LIVE),
    EventPrefix("RBO", _LIVE),
    EventPrefix("Royal Ballet", _LIVE),
    EventPrefix("Bolshoi Ballet", _LIVE),
    EventPrefix("Berliner Philharmoniker Live", _LIVE),
    # Documentaries/exhibitions
    EventPrefix("Exhibition on Screen"),
    EventPrefix("Doc 'N Roll"),
    EventPrefix("Doc N Roll"),
    # Festival screenings, usually shorts programmes rather than one film
    EventPrefix("LSFF", _FEST),
    EventPrefix("LFF", _FEST),
    EventPrefix("BFI Flare", _FEST),
    # Format markers
    EventPrefix("35mm", _FMT),
    EventPrefix("70mm", _FMT),
    EventPrefix("4K", _FMT),
    EventPrefix("IMAX", _FMT),
)

# Stricter set used only by is_likely_clean(): any hit means "worth a closer look".
EVENT_PREFIX_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^(saturday|sunday|weekday)\s+(morning|afternoon)",
        r"^(kids?|family|toddler|baby)\s*(club|time|film)",
        r"^(uk|world)\s+premiere",
        r"^(35|70)mm[:\s]",
        r"^(imax|4k|restoration)[:\s]",
        r"^(sing[\s-]?a[\s-]?long|quote[\s-]?a[\s-]?long)[:\s]",
        r"^(preview|sneak|advance)[:\s]",
        r"^(special|member'?s?)\s+screening",
        r"^(double|triple)\s+(feature|bill)",
        r"^(cult|classic|christmas)\s+(classic|film)",
        r"^(late\s+night|midnight)",
        r"^(marathon|retrospective|tribute)[:\s]",
        r"^(q\s*&\s*a|live\s+q)",
        r"^(intro(duced)?\s+by|with\s+q)",
        r"^(classic\s+matinee)[:\s]",
        r"^(queer|horror|comedy|sci-?fi)\s+(night|horror|film)",
        r"^(doc\s*'?n'?\s*roll)[:\s]",
        r"^(lsff|lff|bfi|afi|tiff)[:\s]",
        r"^(nt\s+live|met\s+opera|rbo|roh)[:\s]",
        r"^(underscore\s+cinema)[:\s]",
        r"^(neurospicy|dyke\s+tv)[:\s!]",
        r"\+\s*q\s*&?\s*a\s*$",
        r"with\s+shadow\s+cast",
        r"\+\s*(discussion|intro|live)",
    )
)

# Trailing cruft. Every matching entry is applied, in order.
TITLE_SUFFIXES: tuple[re.Pattern[str], ...] = (
    # Q&A and intro
    re.compile(r"\s*\+\s*Q\s*&\s*A.*$", re.IGNORECASE),
    re.compile(r"\s*\+\s*Intro.*$", re.IGNORECASE),
    re.compile(r"\s*\+\s*Panel.*$", re.IGNORECASE),
    re.compile(r"\s*\+\s*Discussion.*$", re.IGNORECASE),
    re.compile(r"\s*with\s+Q\s*&\s*A.*$", re.IGNORECASE),
    # Special events
    re.compile(r"\s*with\s+Shadow\s+Cast.*$", re.IGNORECASE),
    re.compile(r"\s*with\s+Live\s+.*$", re.IGNORECASE),
    re.compile(r"\s*\+\s*(?:PJ|Pajama|Pyjama)\s+Party.*$", re.IGNORECASE),
    # BBFC ratings and bracketed tags
    re.compile(r"\s*\((?:U|PG|12A?|15|18|R18|TBC)\*?\)$", re.IGNORECASE),
    re.compile(r"\s*\[[^\]]+\]$"),
    # Format/restoration markers
    re.compile(r"\s*\(4K\s+Restoration\)$", re.IGNORECASE),
    re.compile(r"\s*\(4K\s+Remaster(?:ed)?\)$", re.IGNORECASE),
    re.compile(r"\s*\(4K\s+Re-?release\)$", re.IGNORECASE),
    re.compile(r"\s*\(Restored\)$", re.IGNORECASE),
    re.compile(r"\s*\(Digital\s+Restoration\)$", re.IGNORECASE),
    re.compile(r"\s*\((?:35|70)mm\)$", re.IGNORECASE),
    re.compile(r"\s*-\s*(?:35mm|70mm|4K|IMAX)$", re.IGNORECASE),
    re.compile(r"\s*4K$", re.IGNORECASE),
    # Anniversary editions
    re.compile(r"\s*[-•]\s*\d+(?:th|st|nd|rd)?\s+Anniversary.*$", re.IGNORECASE),
    re.compile(r"\s*\(\d+(?:th|st|nd|rd)?\s+Anniversary\)$", re.IGNORECASE),
    # Preview/encore screenings
    re.compile(r"\s*-\s*Preview$", re.IGNORECASE),
    re.compile(r"\s*\(Preview\)$", re.IGNORECASE),
    re.compile(r"\s*\(\d{4}\s+Encore\)$", re.IGNORECASE),
    re.compile(r"\s*Encore$", re.IGNORECASE),
    # Double bills
    re.compile(r"\s*Double[- ]?Bill$", re.IGNORECASE),
    # Screening-year placeholders, not release years
    re.compile(r"\s*\(202[5-9]\)$"),
    re.compile(r"\s*\(203\d\)$"),
    re.compile(r"\s*TBC$", re.IGNORECASE),
    re.compile(r"\s+Sing-?A?-?Long!?$", re.IGNORECASE),
    # Drink add-ons
    re.compile(r"\s*\+\s*(?:Prosecco|Mulled\s+Wine).*$", re.IGNORECASE),
)

# Different cuts of the same film: kept for display, stripped for matching.
VERSION_SUFFIX_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        # Colon-separated (most common at the Prince Charles)
        r"\s*:\s*(?:The\s+)?Final\s+Cut$",
        r"\s*:\s*Director['’]?s?\s+Cut$",
        r"\s*:\s*Extended\s+(?:Edition|Cut)$",
        r"\s*:\s*Original\s+(?:Edition|Cut)$",
        r"\s*:\s*Theatrical\s+(?:Edition|Cut)$",
        r"\s*:\s*(?:Redux|Remastered|Restored|Re-?release)$",
        r"\s*:\s*Ultimate\s+(?:Edition|Cut)$",
        r"\s*:\s*Uncut$",
        r"\s*:\s*Special\s+Edition$",
        # Hyphen-separated
        r"\s+-\s*(?:The\s+)?Final\s+Cut$",
        r"\s+-\s*Director['’]?s?\s+Cut$",
        r"\s+-\s*Extended\s+(?:Edition|Cut)$",
        r"\s+-\s*Original\s+Cut$",
        r"\s+-\s*(?:Redux|Remastered|Restored)$",
        # Parenthesised
        r"\s*\((?:The\s+)?Final\s+Cut\)$",
        r"\s*\(Director['’]?s?\s+Cut\)$",
        r"\s*\(Extended\s+(?:Edition|Cut)\)$",
        r"\s*\((?:Original|Theatrical)\s+Cut\)$",
        r"\s*\(Redux\)$",
        # Bare trailing word
        r"\s+Redux$",
    )
)

# Events that are not films at all (quizzes, readings, talks, gigs).
NON_FILM_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\bQuiz\b",
        r"\bReading\s+Group\b",
        r"\bCaf[eé]s?\s+Philo\b",
        r"\bCompetition\b",
        r"\bStory\s+Time\b",
        r"\bBaby\s+Comptines\b",
        r"\bLanguage\s+Activity\b",
        r"\bIn\s+conversation\s+with\b",
        r"\bCome\s+and\s+Sing\b",
        r"\bMarathon$",
        r"\bOrgan\s+Trio\b",
        r"\bBlues\s+at\b",
        r"\bFunky\s+Stuff\b",
        r"\bMusic\s+Video\s+Preservation\b",
        r"\bComedy:",
        r"\bClub\s+Room\s+Comedy\b",
        r"\bVinyl\s+(?:Reggae|Sisters)\b",
        r"\bAnimated\s+Shorts\s+for\b",
    )
)

# 'Presenter presents "Film Title"'
PRESENTS_PATTERN = re.compile(r'^.+\s+presents?\s+["“”](.+)["“”]$', re.IGNORECASE)

# "Sing-A-Long-A Film Title"
SINGALONG_PATTERN = re.compile(r"^Sing-?A-?Long-?A?\s+(.+)$", re.IGNORECASE)

# First film of "Film A + Film B"; an unspaced "+" belongs to the title
DOUBLE_FEATURE_PATTERN = re.compile(r"^(.+?)\s+\+\s+.+$")

# Titles whose colon introduces a real subtitle rather than an event prefix.
FRANCHISE_PATTERN = re.compile(
    r"^(?:star\s+wars|star\s+trek|john\s+wick|blade\s+runner|mission|indiana\s+jones"
    r"|harry\s+potter|the\s+lord\s+of\s+the\s+rings|lord\s+of\s+the\s+rings"
    r"|pirates\s+of\s+the\s+caribbean|jurassic|the\s+matrix|matrix|batman|spider-?man"
    r"|alien|terminator|mad\s+max|back\s+to\s+the\s+future|die\s+hard|rocky|rambo"
    r"|the\s+godfather|toy\s+story|avengers|guardians|shrek|the\s+dark\s+knight"
    r"|kill\s+bill|dune|wallace\s+(?:&|and)\s+gromit|x-men|planet\s+of\s+the\s+apes)\b",
    re.IGNORECASE,
)
