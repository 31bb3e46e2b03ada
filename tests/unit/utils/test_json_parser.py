"""Tests for completion JSON parsing."""

import pytest

from fishregs.utils.json_parser import parse_json_safely, strip_code_fences


class TestStripCodeFences:
    """Test suite for strip_code_fences."""

    def test_fenced_block(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_fence_inside_prose(self):
        assert strip_code_fences('Here you go:\n```\n[1, 2]\n```\nDone.') == "[1, 2]"

    def test_unclosed_fence(self):
        assert strip_code_fences('```json\n{"a": 1}') == '{"a": 1}'


class TestParseJsonSafely:
    """Test suite for parse_json_safely."""

    def test_plain_object(self):
        assert parse_json_safely('{"lakeName": "TEST LAKE"}') == {"lakeName": "TEST LAKE"}

    def test_leading_prose_and_trailing_text(self):
        text = 'The regulations are: {"specialRegulations": []} Let me know if you need more.'

        assert parse_json_safely(text) == {"specialRegulations": []}

    def test_array_payload(self):
        assert parse_json_safely('Result: [{"species": "Walleye"}]') == [{"species": "Walleye"}]

    @pytest.mark.parametrize("text", [None, "", "no json here", "{broken"])
    def test_unparseable_returns_none(self, text):
        assert parse_json_safely(text) is None
