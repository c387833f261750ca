"""Short URL slugs for courses.

A course slug is built from the initials of the meaningful words of its
title ("Introduction to Machine Learning" -> "iml"). A single short word
is kept whole ("Python" -> "python").
"""

import re
import unicodedata
from typing import Iterable

COMMON_WORDS = {
    # french
    'le', 'la', 'les', 'un', 'une', 'des', 'de', 'du', 'et', 'pour', 'avec',
    # english
    'the', 'a', 'an', 'and', 'or', 'of', 'to', 'in', 'on', 'at',
}
SHORT_WORD_MAX = 6
FALLBACK_SLUG = 'course'


def _words(text: str):
    normalized = unicodedata.normalize('NFD', text.strip().lower())
    normalized = ''.join(ch for ch in normalized if not unicodedata.combining(ch))
    return [w for w in re.split(r'[^a-z0-9]+', normalized) if w and w not in COMMON_WORDS]


def generate_slug(text: str) -> str:
    words = _words(text or '')
    if not words:
        return FALLBACK_SLUG
    if len(words) == 1 and len(words[0]) <= SHORT_WORD_MAX:
        return words[0]
    return ''.join(w[0] for w in words)


def unique_slug(base: str, existing: Iterable[str]) -> str:
    """Return `base`, or `base-N` with the smallest N not in `existing`."""
    taken = set(existing)
    slug = base
    counter = 1
    while slug in taken:
        slug = f'{base}-{counter}'
        counter += 1
    return slug
