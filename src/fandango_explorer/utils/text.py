"""Text helpers for matching movie and theater names against page text."""

import re


def collapse_whitespace(text: str | None) -> str:
    """Collapse runs of whitespace (including newlines) into single spaces."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def same_text(a: str | None, b: str | None) -> bool:
    """Case-insensitive, whitespace-insensitive equality."""
    return collapse_whitespace(a).casefold() == collapse_whitespace(b).casefold()


def contains_text(haystack: str | None, needle: str | None) -> bool:
    """Case-insensitive substring test; an empty needle never matches."""
    needle = collapse_whitespace(needle).casefold()
    if not needle:
        return False
    return needle in collapse_whitespace(haystack).casefold()


def normalise_title(title: str) -> str:
    """
    Normalize a listing title for fuzzy matching.

    Removes decorations Fandango adds around the film name:
    - Year suffixes: "Dune (2021)" → "Dune"
    - Bracketed tags: "Dune [IMAX]" → "Dune"
    - Format suffixes: "Dune - The IMAX 2D Experience" → "Dune"
    - Extra whitespace

    Args:
        title: Raw title as rendered on the page

    Returns:
        Normalized title suitable for matching
    """
    title = title.strip()

    # Dash suffixes need surrounding whitespace so "Spider-Man" survives
    title = re.sub(r"\s+[-–—]\s+\S.*$", "", title)

    # Year suffixes: "Title (2024)"
    title = re.sub(r"\s*\(\d{4}\)\s*$", "", title)

    # Square bracket tags: "Title [IMAX]"
    title = re.sub(r"\s*\[[^\]]+\]\s*", " ", title)

    # Trailing format markers
    title = re.sub(r"\s+(?:3D|2D|IMAX|RPX|XD|Dolby Cinema|Open Caption)$", "", title, flags=re.IGNORECASE)

    return collapse_whitespace(title)


def slugify(text: str) -> str:
    """
    Convert text to a URL-safe slug.

    Fandango movie URLs embed a slug of the title ("dune-part-two-2024"),
    which the extractor uses as one of its lookup strategies.

    Args:
        text: Text to slugify

    Returns:
        Lowercase slug with hyphens
    """
    text = text.lower()
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"[^a-z0-9-]", "", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("-")


def file_safe(name: str) -> str:
    """Make a string safe to embed in a screenshot filename."""
    name = re.sub(r'[\\/*?:"<>|]', "", name)
    return re.sub(r"\s+", "_", name.strip())
