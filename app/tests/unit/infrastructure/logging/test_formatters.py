"""Unit tests for the masking and truncation processors."""

import pytest

from infrastructure.logging import mask_sensitive_data, truncate_large_values


@pytest.mark.unit
class TestMaskSensitiveData:
    def test_masks_top_level_keys(self):
        processor = mask_sensitive_data()

        result = processor(None, "info", {"event": "sign_in", "password": "hunter2", "email": "a@b.c"})

        assert result["password"] == "***REDACTED***"
        assert result["email"] == "a@b.c"
        assert result["event"] == "sign_in"

    def test_matching_is_case_insensitive_substring(self):
        result = mask_sensitive_data()(None, "info", {"X-Api_Key": "k", "refreshToken": "t"})

        assert result == {"X-Api_Key": "***REDACTED***", "refreshToken": "***REDACTED***"}

    def test_masks_nested_values(self):
        result = mask_sensitive_data()(
            None,
            "info",
            {"data": {"email": "a@b.c", "password": "x", "items": [{"secret": "s"}]}},
        )

        assert result["data"] == {
            "email": "a@b.c",
            "password": "***REDACTED***",
            "items": [{"secret": "***REDACTED***"}],
        }

    def test_none_values_are_kept(self):
        assert mask_sensitive_data()(None, "info", {"token": None}) == {"token": None}

    def test_additional_patterns(self):
        processor = mask_sensitive_data(mask_value="[x]", additional_patterns=frozenset({"ssn"}))

        assert processor(None, "info", {"ssn": "123"}) == {"ssn": "[x]"}


@pytest.mark.unit
class TestTruncateLargeValues:
    def test_truncates_long_strings(self):
        result = truncate_large_values(max_length=5)(None, "info", {"body": "abcdefgh"})

        assert result["body"] == "abcde...[truncated, 8 chars total]"

    def test_short_and_non_string_values_untouched(self):
        event = {"body": "abc", "count": 10**9}

        assert truncate_large_values(max_length=5)(None, "info", dict(event)) == event
