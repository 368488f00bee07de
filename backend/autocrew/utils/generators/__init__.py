"""Identifier generators for organizations and crews.

The generators never touch the database: callers inject the lookup they
need (an existence check or a prefix listing).
"""

from autocrew.utils.generators.slug import generate_slug, is_valid_slug, generate_unique_slug
from autocrew.utils.generators.client_code import extract_prefix, generate_client_code
from autocrew.utils.generators.crew_code import crew_type_abbreviation, generate_crew_code

__all__ = [
    "generate_slug",
    "is_valid_slug",
    "generate_unique_slug",
    "extract_prefix",
    "generate_client_code",
    "crew_type_abbreviation",
    "generate_crew_code",
]
