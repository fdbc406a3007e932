from __future__ import annotations

import re

from unidecode import unidecode

# Anything that is not a lower-case ASCII letter or digit after transliteration
SLUG_SEP_RE = re.compile(r"[^a-z0-9]+")

# Slug used when a name transliterates to nothing usable
EMPTY_SLUG = "xxxx"


def normalize_nom(nom: str) -> str:
    """Grouping key for street and place names: lower-cased, diacritics stripped.

    "Allée des Acacias" and "allee des acacias" share the same key. Spacing and
    punctuation are left untouched.
    """
    return unidecode(nom or "").lower()


def slugify(nom: str) -> str:
    """Key-safe slug: normalized name with non-alphanumeric runs collapsed to '-'."""
    slug = SLUG_SEP_RE.sub("-", normalize_nom(nom)).strip("-")
    return slug or EMPTY_SLUG
