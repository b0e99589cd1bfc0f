"""
Title normalization for duplicate matching.

All functions are pure and have no I/O dependencies.
"""

from __future__ import annotations

import re
import unicodedata

from .models import InvalidArgumentError

_WHITESPACE_RE = re.compile(r"\s+")

# Trailing qualifiers that describe an edition or credit rather than the work.
QUALIFIER_PATTERNS = [
    r"\s*\([^()]*\)\s*$",
    r"\s*\[[^\[\]]*\]\s*$",
    r"\s*[,:;–—-]\s*by\s+[^()\[\]]+$",
]


def normalize_title(value: str) -> str:
    """
    Normalize a title into its comparison key.

    Process:
    1. Unicode decomposition (NFKD), accents on Latin letters dropped
    2. Lowercase
    3. Recompose (NFC) so other scripts keep their own marks intact
    4. Punctuation converted to spaces (keeps word boundaries)
    5. Collapse whitespace and trim

    Examples:
        "The Great Gatsby"        → "the great gatsby"
        "the great gatsby!!"      → "the great gatsby"
        "Harry Potter/Philosopher" → "harry potter philosopher"
        "Café Society"            → "cafe society"
        "हिन्दी, भाषा"              → "हिन्दी भाषा"

    Args:
        value: The raw title (empty string is valid)

    Returns:
        Normalized title

    Raises:
        InvalidArgumentError: if value is None or not a string
    """
    if not isinstance(value, str):
        raise InvalidArgumentError(
            f"title must be a string, got {type(value).__name__}"
        )
    if not value:
        return ""

    # Lowercasing can reintroduce combining marks ("İ") and compatibility
    # decomposition can reintroduce capitals ("ℌ"), so fold both ways.
    folded = unicodedata.normalize("NFC", _fold_marks(_fold_marks(value).lower()))
    spaced = "".join(ch if _is_word_char(ch) else " " for ch in folded)
    return _WHITESPACE_RE.sub(" ", spaced).strip()


def _fold_marks(value: str) -> str:
    """Decompose and drop the marks sitting on Latin letters ("é" → "e")."""
    kept = []
    latin_base = False
    for ch in unicodedata.normalize("NFKD", value):
        if unicodedata.category(ch).startswith("M"):
            if latin_base:
                continue
        else:
            latin_base = unicodedata.name(ch, "").startswith("LATIN")
        kept.append(ch)
    return "".join(kept)


def _is_word_char(ch: str) -> bool:
    # Vowel signs and viramas (category M) belong to the word they sit in.
    if ch == "_":
        return False
    return ch.isalnum() or ch.isspace() or unicodedata.category(ch).startswith("M")


def strip_qualifiers(value: str) -> str:
    """
    Remove trailing edition/credit qualifiers from a raw title.

    Examples:
        "Dune (Deluxe Edition)"        → "Dune"
        "Emma, by Jane Austen"         → "Emma"
        "Stand by Me"                  → "Stand by Me"
        "Book Title (Author) [Kindle]" → "Book Title"
    """
    if not value:
        return ""
    previous = None
    current = value.strip()
    # Qualifiers can stack, peel them until nothing changes.
    while previous != current:
        previous = current
        for pattern in QUALIFIER_PATTERNS:
            candidate = re.sub(pattern, "", current, flags=re.IGNORECASE).strip()
            if candidate:
                current = candidate
    return current


def core_title(value: str) -> str:
    """Normalized title with trailing qualifiers removed."""
    return normalize_title(strip_qualifiers(value))
