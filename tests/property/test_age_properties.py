# tests/property/test_age_properties.py
"""Property tests for retention age expressions."""

from datetime import datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from cpt.contracts import AgeFormatError
from cpt.core.age import parse_age, parse_duration, parse_timestamp
from tests.property.settings import QUICK_SETTINGS, STANDARD_SETTINGS

AS_OF = datetime(2024, 6, 1, 12, 0, 0)

days = st.integers(min_value=1, max_value=3650)
hours = st.integers(min_value=1, max_value=87600)
timestamps = st.datetimes(min_value=datetime(1970, 1, 1), max_value=datetime(2100, 12, 31))


class TestAgeProperties:
    """Relative ages always lie in the past of their reference instant."""

    @given(n=days)
    @STANDARD_SETTINGS
    def test_days_equal_24_hours_each(self, n: int) -> None:
        assert parse_age(f"{n}d", as_of=AS_OF) == parse_age(f"{n * 24}h", as_of=AS_OF) == AS_OF - timedelta(days=n)

    @given(n=hours)
    @STANDARD_SETTINGS
    def test_hours_are_strictly_in_the_past(self, n: int) -> None:
        assert parse_age(f"{n}h", as_of=AS_OF) < AS_OF

    @given(n=st.integers(min_value=-3650, max_value=0))
    @QUICK_SETTINGS
    def test_non_positive_days_never_parse(self, n: int) -> None:
        with pytest.raises(AgeFormatError):
            parse_age(f"{n}d", as_of=AS_OF)

    @given(moment=timestamps)
    @STANDARD_SETTINGS
    def test_timestamp_text_parses_back(self, moment: datetime) -> None:
        text = moment.strftime("%Y-%m-%d %H:%M:%S.%f")
        assert parse_timestamp(text) == moment
        assert parse_age(text, as_of=AS_OF) == moment


class TestDurationProperties:
    """Component order does not matter."""

    @given(h=st.integers(0, 500), m=st.integers(0, 59), s=st.integers(0, 59))
    @STANDARD_SETTINGS
    def test_components_add_up(self, h: int, m: int, s: int) -> None:
        expected = timedelta(hours=h, minutes=m, seconds=s)
        assert parse_duration(f"{h}h{m}m{s}s") == expected
        assert parse_duration(f"{s}s{m}m{h}h") == expected
