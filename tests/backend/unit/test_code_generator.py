"""
Unit tests for services.code_generator module.
"""
import re
from unittest.mock import patch

import pytest
from activation_hub.services.code_generator import (
    generate_activation_code,
    mask_code,
    normalize_code,
    to_base36,
)

CODE_PATTERN = re.compile(r"^[0-9A-Z]+-[0-9A-Z]{6}-[0-9A-F]{8}$")


class TestBase36:
    @pytest.mark.parametrize("value,expected", [(0, "0"), (35, "z"), (36, "10"), (1295, "zz")])
    def test_known_values(self, value, expected):
        assert to_base36(value) == expected

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_base36(-1)


class TestGenerateActivationCode:
    def test_format(self):
        code = generate_activation_code()
        assert CODE_PATTERN.match(code), code
        assert code == code.upper()

    def test_timestamp_prefix(self):
        """First group is the base36 millisecond timestamp."""
        with patch("activation_hub.services.code_generator.time.time_ns", return_value=1_700_000_000_000 * 1_000_000):
            code = generate_activation_code()
        assert code.split("-")[0] == to_base36(1_700_000_000_000).upper()

    def test_many_codes_are_distinct(self):
        codes = {generate_activation_code() for _ in range(2000)}
        assert len(codes) == 2000


class TestNormalizeAndMask:
    def test_normalize(self):
        assert normalize_code("  mdmnbpjx-3s0p6e-b1360c10 \n") == "MDMNBPJX-3S0P6E-B1360C10"
        assert normalize_code(None) == ""

    def test_mask_grouped_code(self):
        assert mask_code("MDMNBPJX-3S0P6E-B1360C10") == "MDMNBPJX-****-0C10"

    def test_mask_short_code(self):
        assert mask_code("ABCD1234") == "AB****34"
