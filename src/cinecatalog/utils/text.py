"""Text normalization utilities for film title matching."""

import hashlib
import re
import unicodedata

YEAR_SUFFIX_RE = re.compile(r"\s*\((\d{4})\)\s*$")


def normalize_for_matching(title: str) -> str:
    """
    Normalize a film title for equality and similarity comparisons.

    - Case and accents are folded: "Amélie" → "amelie"
    - "&" reads as "and": "Lock, Stock & Two..." → "lock stock and two..."
    - Punctuation is dropped, whitespace collapsed

    Args:
        title: Display or canonical film title

    Returns:
        Lowercase ASCII string of words separated by single spaces
    """
    text = unicodedata.normalize("NFKD", title)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = text.lower().replace("&", " and ")

    # Apostrophes join rather than split: "singin'" -> "singin"
    text = re.sub(r"['’`]", "", text)
    text = re.sub(r"[^a-z0-9]+", " ", text)

    return re.sub(r"\s+", " ", text).strip()


def canonical_key(title: str, year: int | None = None) -> str:
    """
    Deterministic clustering key for a canonical title and optional year.

    Two calls with titles that normalise identically always return the same
    key, which is what duplicate clustering relies on.
    """
    basis = normalize_for_matching(title)
    if year:
        basis = f"{basis}|{year}"
    return hashlib.sha256(basis.encode("utf-8")).hexdigest()[:32]


def split_title_year(title: str) -> tuple[str, int | None]:
    """
    Separate a trailing release year from a title.

    Examples:
        "A Star Is Born (1954)" → ("A Star Is Born", 1954)
        "Nosferatu" → ("Nosferatu", None)
    """
    match = YEAR_SUFFIX_RE.search(title)
    if not match:
        return title.strip(), None
    return title[: match.start()].strip(), int(match.group(1))


def slugify(text: str) -> str:
    """
    Convert text to a URL-safe slug.

    Args:
        text: Text to slugify

    Returns:
        Lowercase slug with hyphens
    """
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = text.lower()

    # Replace spaces and underscores with hyphens
    text = re.sub(r"[\s_]+", "-", text)

    # Remove non-alphanumeric characters (except hyphens)
    text = re.sub(r"[^a-z0-9-]", "", text)

    # Remove multiple consecutive hyphens
    text = re.sub(r"-+", "-", text)

    return text.strip("-")
