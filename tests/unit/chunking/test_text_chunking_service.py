"""Tests for the text chunking service."""

import pytest

from fishregs.core.exceptions import ValidationError
from fishregs.services.chunking.models import TextChunk
from fishregs.services.chunking.text_chunking_service import (
    TextChunkingService,
    contains_fishing_content,
)


def _paragraphs(count: int, sentence: str = "Walleye daily limit is six fish on this lake. ") -> str:
    paragraph = (sentence * 9).strip()
    return "\n\n".join(f"{paragraph} Paragraph {n}." for n in range(count))


class TestChunkText:
    """Test suite for chunk_text."""

    @pytest.fixture
    def service(self) -> TextChunkingService:
        return TextChunkingService(max_chunk_size=2000, overlap_size=100)

    @pytest.mark.parametrize("text", ["", "   \n\t  ", None])
    def test_blank_text_raises(self, service, text):
        with pytest.raises(ValidationError, match="Text is empty or null"):
            service.chunk_text(text)

    def test_short_text_is_single_chunk(self, service):
        text = "Walleye: daily limit 6."

        chunks = service.chunk_text(text)

        assert len(chunks) == 1
        assert chunks[0].content == text
        assert chunks[0].chunk_number == 1
        assert chunks[0].page_start == 1
        assert chunks[0].page_end == 1
        assert chunks[0].contains_fishing_regulations is True

    def test_chunks_are_bounded_and_cover_the_text(self, service):
        text = _paragraphs(12)

        chunks = service.chunk_text(text)

        assert len(chunks) > 1
        assert [c.chunk_number for c in chunks] == list(range(1, len(chunks) + 1))
        assert all(len(c.source_text) <= 2000 for c in chunks)
        assert "".join(c.source_text for c in chunks) == text

    def test_later_chunks_repeat_previous_tail(self, service):
        text = _paragraphs(12)

        chunks = service.chunk_text(text)

        assert chunks[0].overlap_length == 0
        for previous, current in zip(chunks, chunks[1:]):
            assert current.overlap_length == 100
            assert current.content[:100] == previous.source_text[-100:]

    def test_prefers_paragraph_breaks(self, service):
        chunks = service.chunk_text(_paragraphs(12))

        assert chunks[0].source_text.endswith("\n\n")

    def test_falls_back_to_word_break(self, service):
        text = "walleye " * 600

        chunks = service.chunk_text(text)

        first = chunks[0].source_text
        assert first.endswith(" ")
        assert 1800 < len(first) <= 2000

    def test_hard_cut_without_boundaries(self, service):
        text = "x" * 5000

        chunks = service.chunk_text(text, overlap_size=0)

        assert [len(c.content) for c in chunks] == [2000, 2000, 1000]

    def test_page_estimates_follow_position(self):
        service = TextChunkingService(max_chunk_size=4000, overlap_size=0)
        text = "x" * 9000

        chunks = service.chunk_text(text)

        assert [(c.page_start, c.page_end) for c in chunks] == [(1, 3), (3, 5), (5, 5)]


class TestFilterAndValidate:
    """Test suite for fishing-content filtering and chunking validation."""

    @pytest.fixture
    def service(self) -> TextChunkingService:
        return TextChunkingService()

    def test_filter_keeps_fishing_chunks_and_renumbers(self, service):
        chunks = [
            TextChunk(1, 1, 1, "Table of contents", contains_fishing_regulations=False),
            TextChunk(2, 1, 1, "Walleye limit 6", contains_fishing_regulations=True),
            TextChunk(3, 2, 2, "Advertisement", contains_fishing_regulations=False),
            TextChunk(4, 2, 2, "Trout season opens", contains_fishing_regulations=True),
        ]

        kept = service.filter_fishing_regulation_chunks(chunks)

        assert [c.content for c in kept] == ["Walleye limit 6", "Trout season opens"]
        assert [c.chunk_number for c in kept] == [1, 2]

    def test_validate_full_coverage(self, service):
        text = "Walleye daily limit is six. " * 10
        chunks = service.chunk_text(text)

        result = service.validate_chunking(text, chunks)

        assert result.coverage_percentage == pytest.approx(100.0)
        assert result.fishing_content_percentage == pytest.approx(100.0)
        assert result.quality_score == pytest.approx(1.0)
        assert result.issues == []
        assert result.is_valid is True

    def test_validate_reports_low_coverage_and_fishing_content(self, service):
        text = "a" * 1000
        chunks = [TextChunk(1, 1, 1, "a" * 500)]

        result = service.validate_chunking(text, chunks)

        assert result.coverage_percentage == pytest.approx(50.0)
        assert result.fishing_content_percentage == 0.0
        assert result.quality_score == pytest.approx(0.35)
        assert len(result.issues) == 2
        assert result.is_valid is False

    def test_validate_without_chunks(self, service):
        result = service.validate_chunking("text", [])

        assert result.is_valid is False
        assert result.issues == ["No chunks generated"]


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Northern pike possession limit", True),
        ("ANGLING IS PERMITTED", True),
        ("Table of contents", False),
        ("", False),
    ],
)
def test_contains_fishing_content(text, expected):
    assert contains_fishing_content(text) is expected
