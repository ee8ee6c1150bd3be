"""Tests for the text chunker."""

from __future__ import annotations

import pytest

from docretriever.errors import InputValidationError, TextTooLargeError, TooManyChunksError
from docretriever.utils.text import (
    CHUNK_MODES,
    chunk_paragraphs,
    chunk_text,
    iter_paragraph_spans,
)

SENTENCES = "Sentence one. Sentence two. Sentence three. Sentence four."


def _signature(passages):
    return [(p.content, p.sequence_index, p.start_offset, p.end_offset) for p in passages]


def _uncovered(text, passages):
    covered = set()
    for passage in passages:
        covered.update(range(passage.start_offset, passage.end_offset))
    return [i for i in range(len(text)) if i not in covered]


class TestChunkText:
    """Test chunk_text function."""

    def test_chunk_short_text(self) -> None:
        """Should return single chunk for short text."""
        passages = chunk_text("Short text", "doc", chunk_size=100, overlap=10)

        assert len(passages) == 1
        assert passages[0].content == "Short text"
        assert passages[0].start_offset == 0
        assert passages[0].end_offset == len("Short text")
        assert passages[0].document_id == "doc"

    def test_snaps_to_sentence_boundary(self) -> None:
        """First window should end right after a period, last chunk at the end."""
        passages = chunk_text(SENTENCES, "doc", chunk_size=40, overlap=10)

        assert passages[0].content == "Sentence one. Sentence two."
        assert passages[0].end_offset == 27
        assert SENTENCES[passages[0].end_offset - 1] == "."
        assert passages[-1].end_offset == len(SENTENCES)
        assert passages[-1].content.endswith("Sentence four.")

    def test_window_after_snap_starts_at_previous_end(self) -> None:
        """A short snapped window caps the next start at its own end."""
        passages = chunk_text(SENTENCES, "doc", chunk_size=40, overlap=10)

        assert [(p.start_offset, p.end_offset) for p in passages] == [(0, 27), (27, 58)]
        assert passages[1].content == "Sentence three. Sentence four."
        assert _uncovered(SENTENCES, passages) == []

    def test_snaps_to_newline(self) -> None:
        """A newline past the middle of the window is a break point too."""
        text = "a" * 30 + "\n" + "b" * 30
        passages = chunk_text(text, "doc", chunk_size=40, overlap=5)

        assert passages[0].end_offset == 31
        assert passages[0].content == "a" * 30

    def test_ignores_break_in_first_half(self) -> None:
        """A period in the first half of the window does not shrink it."""
        text = "ab. " + "c" * 60
        passages = chunk_text(text, "doc", chunk_size=40, overlap=0)

        assert passages[0].end_offset == 40

    def test_overlap_between_windows(self) -> None:
        """Consecutive fixed windows should overlap by the configured amount."""
        text = "0123456789" * 20
        passages = chunk_text(text, "doc", chunk_size=100, overlap=20)

        assert passages[1].start_offset == 80
        assert passages[0].content[-20:] == passages[1].content[:20]

    def test_sequence_and_offsets(self) -> None:
        """Offsets grow, sequence numbers count up and the text is reached to its end."""
        text = ("Lorem ipsum dolor sit amet, consectetur. " * 30).strip()
        passages = chunk_text(text, "doc", chunk_size=100, overlap=20)

        assert [p.sequence_index for p in passages] == list(range(len(passages)))
        starts = [p.start_offset for p in passages]
        assert starts == sorted(starts)
        assert len(set(starts)) == len(starts)
        for passage in passages:
            assert 0 <= passage.start_offset < passage.end_offset <= len(text)
            assert text[passage.start_offset : passage.end_offset].strip() == passage.content
            assert passage.content
        assert passages[-1].end_offset == len(text)

    def test_deterministic(self) -> None:
        """Same input yields the same passages apart from their ids."""
        text = "Some text. " * 100
        first = chunk_text(text, "doc", chunk_size=64, overlap=16)
        second = chunk_text(text, "doc", chunk_size=64, overlap=16)

        assert _signature(first) == _signature(second)
        assert {p.id for p in first}.isdisjoint({p.id for p in second})

    def test_overlap_larger_than_chunk(self) -> None:
        """Should still move forward one character at a time."""
        passages = chunk_text("abcdefghij", "doc", chunk_size=3, overlap=5)

        assert [p.start_offset for p in passages] == list(range(8))
        assert passages[-1].end_offset == 10

    def test_chunk_empty_text(self) -> None:
        """Should handle empty and whitespace-only text."""
        assert chunk_text("", "doc") == []
        assert chunk_text("   \n\t ", "doc") == []

    def test_text_too_large(self) -> None:
        with pytest.raises(TextTooLargeError):
            chunk_text("x" * 11, "doc", max_text_chars=10)

    def test_too_many_chunks(self) -> None:
        with pytest.raises(TooManyChunksError):
            chunk_text("x" * 100, "doc", chunk_size=1, overlap=0, max_chunks=10)

    def test_chunk_count_at_limit(self) -> None:
        """Exactly max_chunks passages is allowed."""
        passages = chunk_text("x" * 10, "doc", chunk_size=1, overlap=0, max_chunks=10)
        assert len(passages) == 10

    @pytest.mark.parametrize("chunk_size, overlap", [(0, 0), (-5, 0), (10, -1)])
    def test_invalid_parameters(self, chunk_size: int, overlap: int) -> None:
        with pytest.raises(InputValidationError):
            chunk_text("text", "doc", chunk_size=chunk_size, overlap=overlap)


class TestChunkParagraphs:
    """Test paragraph-mode chunking."""

    def test_paragraph_spans(self) -> None:
        text = "First paragraph.\n\n\nSecond one here.\n \nThird."
        spans = iter_paragraph_spans(text)

        assert [text[start:end] for start, end in spans] == [
            "First paragraph.",
            "Second one here.",
            "Third.",
        ]

    def test_small_paragraphs_one_passage_each(self) -> None:
        """Offsets should point at each paragraph in the original text."""
        text = "First paragraph.\n\n\nSecond one here.\n \nThird."
        passages = chunk_paragraphs(text, "doc", chunk_size=100, overlap=10)

        assert [p.content for p in passages] == ["First paragraph.", "Second one here.", "Third."]
        assert [p.sequence_index for p in passages] == [0, 1, 2]
        for passage in passages:
            assert text[passage.start_offset : passage.end_offset] == passage.content

    def test_large_paragraph_is_windowed(self) -> None:
        """Long paragraphs are split and renumbered across the document."""
        intro = "Intro paragraph."
        long_para = "word " * 40
        text = f"{intro}\n\n{long_para.strip()}\n\nOutro."
        passages = chunk_paragraphs(text, "doc", chunk_size=50, overlap=10)

        assert passages[0].content == intro
        assert passages[-1].content == "Outro."
        assert len(passages) > 3
        assert [p.sequence_index for p in passages] == list(range(len(passages)))
        for passage in passages:
            assert 0 <= passage.start_offset < passage.end_offset <= len(text)
            assert text[passage.start_offset : passage.end_offset].strip() == passage.content

    def test_blank_text(self) -> None:
        assert chunk_paragraphs("\n\n  \n\n", "doc") == []

    def test_too_many_chunks_across_paragraphs(self) -> None:
        text = "\n\n".join(["para"] * 5)
        with pytest.raises(TooManyChunksError):
            chunk_paragraphs(text, "doc", chunk_size=10, max_chunks=4)

    def test_modes_registry(self) -> None:
        assert CHUNK_MODES["window"] is chunk_text
        assert CHUNK_MODES["paragraph"] is chunk_paragraphs


COVERAGE_TEXTS = [
    SENTENCES,
    ("x" * 280 + ". ") * 20,
    ("Lorem ipsum dolor sit amet, consectetur. " * 30).strip(),
    "short line\n" * 40 + "tail without a break " * 10,
    "First paragraph. It has two sentences.\n\n" + "word " * 120 + "\n \n\tIndented. Last.",
]

COVERAGE_PARAMS = [(1, 0), (3, 5), (7, 3), (10, 15), (40, 10), (100, 20), (500, 50)]


class TestCoverage:
    """Every character of the input should belong to some passage."""

    def test_default_parameters_cover_long_sentences(self) -> None:
        text = ("x" * 280 + ". ") * 20
        passages = chunk_text(text, "doc")

        assert _uncovered(text, passages) == []
        assert passages[-1].end_offset == len(text)

    @pytest.mark.parametrize("text", COVERAGE_TEXTS)
    @pytest.mark.parametrize("chunk_size, overlap", COVERAGE_PARAMS)
    def test_window_mode_covers_text(self, text: str, chunk_size: int, overlap: int) -> None:
        passages = chunk_text(text, "doc", chunk_size=chunk_size, overlap=overlap)

        assert _uncovered(text, passages) == []
        assert passages[-1].end_offset == len(text)
        for previous, current in zip(passages, passages[1:]):
            assert previous.start_offset < current.start_offset <= previous.end_offset

    @pytest.mark.parametrize("text", COVERAGE_TEXTS)
    @pytest.mark.parametrize("chunk_size, overlap", COVERAGE_PARAMS)
    def test_paragraph_mode_skips_only_separators(
        self, text: str, chunk_size: int, overlap: int
    ) -> None:
        passages = chunk_paragraphs(text, "doc", chunk_size=chunk_size, overlap=overlap)

        assert all(text[i].isspace() for i in _uncovered(text, passages))
