"""Crew code generation: ``{CLIENT_CODE}-{TYPE}-{NNN}``, e.g. ``ACME-001-SUP-002``."""

import logging

from autocrew.utils.generators.client_code import CodeLister, next_code

logger = logging.getLogger(__name__)

CREW_TYPE_ABBREVIATIONS = {
    "customer_support": "SUP",
    "lead_generation": "LEAD",
}


def crew_type_abbreviation(crew_type: str) -> str:
    return CREW_TYPE_ABBREVIATIONS.get(crew_type, "CREW")


async def generate_crew_code(client_code: str, crew_type: str, list_codes_with_prefix: CodeLister) -> str:
    prefix = f"{client_code}-{crew_type_abbreviation(crew_type)}"
    existing = list(await list_codes_with_prefix(f"{prefix}-"))
    code = next_code(prefix, existing)
    logger.debug("Allocated crew code %s", code)
    return code
