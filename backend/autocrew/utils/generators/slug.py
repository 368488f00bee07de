"""URL-safe slug generation.

Slugs are 3-50 characters of lowercase letters, digits and single hyphens,
with no hyphen at either end.
"""

import logging
import re
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 50
SLUG_MIN_LENGTH = 3

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_VALID_SLUG = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")

ExistsCheck = Callable[[str], Awaitable[bool]]


def generate_slug(value: str) -> str:
    """
    Convert free text (e.g. a company name) to a slug.

    Returns an empty string when nothing alphanumeric survives.

    Usage:
        generate_slug("ACME Corporation")  # "acme-corporation"
    """
    slug = _NON_ALNUM.sub("-", value.lower()).strip("-")
    return slug[:SLUG_MAX_LENGTH].rstrip("-")


def is_valid_slug(candidate: str) -> bool:
    if not SLUG_MIN_LENGTH <= len(candidate) <= SLUG_MAX_LENGTH:
        return False
    return _VALID_SLUG.fullmatch(candidate) is not None


async def generate_unique_slug(base: str, exists: ExistsCheck) -> str:
    """
    Return `base`, or `base-N` for the smallest N >= 1 that `exists` rejects.

    `exists` is awaited once per candidate, one at a time. When the suffix
    would push past the length limit the base is shortened, never the suffix.
    """
    slug = base
    counter = 1

    while await exists(slug):
        suffix = f"-{counter}"
        slug = base[:SLUG_MAX_LENGTH - len(suffix)] + suffix
        counter += 1

    if slug != base:
        logger.debug("Slug %r taken, using %r", base, slug)
    return slug
