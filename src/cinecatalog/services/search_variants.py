"""Alternative search titles for TMDb matching."""

import re

from cinecatalog.services.pattern_extractor import extract_title


def generate_search_variations(title: str) -> list[str]:
    """
    Generate search titles to try against TMDb, best guess first.

    Args:
        title: Raw or extracted film title

    Returns:
        Ordered, de-duplicated list of non-empty search strings
    """
    result = extract_title(title)
    base = result.canonical_title
    variations = [base]

    if result.extracted_title != base:
        variations.append(result.extracted_title)

    original = result.original_title.strip()
    if original != result.extracted_title and result.confidence > 0.5:
        variations.append(original)

    # "Film (1954)" -> "Film"
    without_year = re.sub(r"\s*\(\d{4}\)$", "", base)
    if without_year != base:
        variations.append(without_year)

    if base.startswith("The "):
        variations.append(base[4:])
    else:
        variations.append(f"The {base}")

    if base.startswith("A "):
        variations.append(base[2:])

    without_ellipsis = re.sub(r"(?:\.{2,}|…)$", "", base).strip()
    if without_ellipsis != base:
        variations.append(without_ellipsis)

    return [v for v in dict.fromkeys(variations) if v]
