"""Client code generation.

Codes look like ``ACME-001``: a prefix taken from the company name and a
per-prefix sequence number, zero-padded to at least three digits.
"""

import logging
import re
from typing import Awaitable, Callable, Iterable

logger = logging.getLogger(__name__)

FALLBACK_PREFIX = "CLIENT"
PREFIX_MAX_LENGTH = 10
SEQUENCE_WIDTH = 3

_LEGAL_SUFFIXES = re.compile(
    r"\b(Inc|Ltd|Corp|LLC|Limited|Corporation|Company|Co|Solutions|Services)\b\.?",
    re.IGNORECASE,
)
_NON_ALNUM_OR_SPACE = re.compile(r"[^A-Za-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")
_TRAILING_NUMBER = re.compile(r"-(\d+)$")

CodeLister = Callable[[str], Awaitable[Iterable[str]]]


def extract_prefix(company_name: str) -> str:
    """
    Derive the code prefix from a company name.

    Legal suffixes and punctuation are dropped, then the first word is
    uppercased and cut to 10 characters. Falls back to ``CLIENT``.
    """
    name = _LEGAL_SUFFIXES.sub("", company_name)
    name = _NON_ALNUM_OR_SPACE.sub("", name)
    name = _WHITESPACE.sub(" ", name).strip()

    first_word = name.split(" ")[0] if name else ""
    prefix = first_word.upper()[:PREFIX_MAX_LENGTH]
    return prefix or FALLBACK_PREFIX


def sequence_number(code: str) -> int:
    """Trailing ``-digits`` of a code, or 0 when there are none."""
    match = _TRAILING_NUMBER.search(code)
    return int(match.group(1)) if match else 0


def next_code(prefix: str, existing_codes: Iterable[str]) -> str:
    highest = max((sequence_number(code) for code in existing_codes), default=0)
    return f"{prefix}-{highest + 1:0{SEQUENCE_WIDTH}d}"


async def generate_client_code(company_name: str, list_codes_with_prefix: CodeLister) -> str:
    """
    Allocate the next client code for a company name.

    `list_codes_with_prefix` receives ``"PREFIX-"`` and returns every stored
    code starting with it. Two concurrent callers can get the same answer;
    the unique constraint on the stored column settles the race and the
    caller retries (see autocrew.db.transaction.insert_with_retry).
    """
    prefix = extract_prefix(company_name)
    existing = list(await list_codes_with_prefix(f"{prefix}-"))
    code = next_code(prefix, existing)
    logger.debug("Allocated client code %s (%d existing with prefix)", code, len(existing))
    return code
