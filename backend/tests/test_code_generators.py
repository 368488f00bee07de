import pytest

from autocrew.utils.generators import (
    crew_type_abbreviation,
    extract_prefix,
    generate_client_code,
    generate_crew_code,
)
from autocrew.utils.generators.client_code import sequence_number


class CodeLister:
    def __init__(self, codes):
        self.codes = list(codes)
        self.prefixes = []

    async def __call__(self, prefix: str):
        self.prefixes.append(prefix)
        return [code for code in self.codes if code.startswith(prefix)]


class TestExtractPrefix:
    def test_strips_legal_suffix(self):
        assert extract_prefix("ACME Corporation") == "ACME"
        assert extract_prefix("Acme Inc.") == "ACME"
        assert extract_prefix("TechStart Solutions LLC") == "TECHSTART"

    def test_suffix_match_is_case_insensitive_whole_word(self):
        assert extract_prefix("globex corp") == "GLOBEX"
        # "Co" inside a word is not a suffix
        assert extract_prefix("Cobalt Labs") == "COBALT"

    def test_takes_first_word(self):
        assert extract_prefix("Blue Sky Ventures") == "BLUE"

    def test_drops_punctuation(self):
        assert extract_prefix("O'Reilly & Sons") == "OREILLY"

    def test_truncates_to_ten(self):
        assert extract_prefix("Supercalifragilistic Ltd") == "SUPERCALIF"

    def test_falls_back_to_client(self):
        assert extract_prefix("") == "CLIENT"
        assert extract_prefix("Inc Ltd") == "CLIENT"
        assert extract_prefix("!!!") == "CLIENT"
        assert extract_prefix("日本") == "CLIENT"

    def test_tolerates_very_long_input(self):
        assert extract_prefix("word " * 10000) == "WORD"


class TestGenerateClientCode:
    async def test_first_code_for_prefix(self):
        lister = CodeLister([])
        assert await generate_client_code("ACME Corporation", lister) == "ACME-001"
        assert lister.prefixes == ["ACME-"]

    async def test_next_after_highest(self):
        lister = CodeLister(["ACME-001", "ACME-002"])
        assert await generate_client_code("Acme Inc", lister) == "ACME-003"

    async def test_uses_max_not_count(self):
        lister = CodeLister(["ACME-001", "ACME-007"])
        assert await generate_client_code("Acme", lister) == "ACME-008"

    async def test_malformed_codes_count_as_zero(self):
        lister = CodeLister(["ACME-legacy", "ACME-"])
        assert await generate_client_code("Acme", lister) == "ACME-001"

    async def test_grows_past_three_digits(self):
        lister = CodeLister(["ACME-999"])
        assert await generate_client_code("Acme", lister) == "ACME-1000"

    async def test_fallback_prefix(self):
        lister = CodeLister(["CLIENT-004"])
        assert await generate_client_code("", lister) == "CLIENT-005"

    async def test_lookup_failure_propagates(self):
        async def failing(prefix):
            raise TimeoutError("store timed out")

        with pytest.raises(TimeoutError):
            await generate_client_code("Acme", failing)


def test_sequence_number():
    assert sequence_number("ACME-042") == 42
    assert sequence_number("ACME-001-SUP-003") == 3
    assert sequence_number("ACME") == 0


class TestCrewCode:
    def test_abbreviations(self):
        assert crew_type_abbreviation("customer_support") == "SUP"
        assert crew_type_abbreviation("lead_generation") == "LEAD"
        assert crew_type_abbreviation("something_else") == "CREW"

    async def test_sequence_is_per_client_and_type(self):
        lister = CodeLister(["ACME-001-SUP-001", "ACME-001-SUP-002", "ACME-001-LEAD-001", "ACME-002-SUP-009"])
        assert await generate_crew_code("ACME-001", "customer_support", lister) == "ACME-001-SUP-003"
        assert await generate_crew_code("ACME-001", "lead_generation", lister) == "ACME-001-LEAD-002"
        assert await generate_crew_code("GLOBEX-001", "lead_generation", lister) == "GLOBEX-001-LEAD-001"
