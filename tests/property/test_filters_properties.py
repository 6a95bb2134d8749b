# tests/property/test_filters_properties.py
"""Property tests for filter validation."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from cpt.contracts import FilterValidationError
from cpt.core.filters import BrokenFilters, build_broken_query, is_valid_class_name, is_valid_pattern
from tests.property.settings import QUICK_SETTINGS, STANDARD_SETTINGS

identifiers = st.from_regex(r"[A-Za-z_][A-Za-z0-9_]{0,15}", fullmatch=True)


class TestFilterProperties:
    @given(text=st.text(min_size=1))
    @STANDARD_SETTINGS
    def test_patterns_with_quotes_or_wildcards_rejected(self, text: str) -> None:
        assert is_valid_pattern(text) == (not any(char in text for char in "\"'%"))

    @given(parts=st.lists(identifiers, min_size=1, max_size=6))
    @STANDARD_SETTINGS
    def test_dotted_identifiers_accepted(self, parts: list[str]) -> None:
        assert is_valid_class_name(".".join(parts))

    @given(prefix=identifiers, bad=st.sampled_from(["'", '"', ";", " ", "-", "..", "%", "("]), suffix=identifiers)
    @QUICK_SETTINGS
    def test_class_names_with_sql_characters_rejected(self, prefix: str, bad: str, suffix: str) -> None:
        with pytest.raises(FilterValidationError):
            build_broken_query(BrokenFilters(workflow_class=f"{prefix}{bad}{suffix}"))
