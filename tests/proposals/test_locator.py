"""
Unit tests for the fuzzy text locator.
"""
from proposals.locator import MatchResult, MatchStrategy, NoMatch, absolute_index, locate, normalize_whitespace
from proposals.models import ParagraphDocument
from proposals.schema import ConfidenceTier


class TestExactMatch:
    """Tests for exact substring matching."""

    def test_exact_hit(self):
        """An exact substring is found with high confidence."""
        document = ParagraphDocument.from_texts(["Hello world\n"])
        match = locate(document, "world")
        assert match == MatchResult(0, 6, 5, ConfidenceTier.HIGH, MatchStrategy.EXACT)

    def test_first_paragraph_wins(self):
        """When several paragraphs match, the earliest one is used."""
        document = ParagraphDocument.from_texts(["Intro\n", "a duplicate line\n", "another duplicate line\n"])
        match = locate(document, "duplicate line")
        assert match.paragraph_index == 1

    def test_absolute_index(self):
        """Paragraph start index plus offset gives the document index."""
        document = ParagraphDocument.from_texts(["Hello world\n", "Second para\n"])
        match = locate(document, "para")
        assert match.paragraph_index == 1
        assert absolute_index(document, match) == 13 + 7


class TestWhitespaceNormalizedMatch:
    """Tests for whitespace-insensitive matching."""

    def test_collapsed_spaces_in_document(self):
        """Extra spaces in the document still match, with medium confidence."""
        document = ParagraphDocument.from_texts(["The  quick brown fox\n"])
        match = locate(document, "The quick")
        assert match.strategy == MatchStrategy.WHITESPACE_NORMALIZED
        assert match.confidence_tier == ConfidenceTier.MEDIUM
        assert (match.offset, match.length) == (0, 10)

    def test_extra_spaces_in_hint(self):
        """Drifting whitespace in the hint maps back to the original span."""
        document = ParagraphDocument.from_texts(["Hello world\n"])
        match = locate(document, "Hello   world")
        assert (match.paragraph_index, match.offset, match.length) == (0, 0, 11)

    def test_normalize_whitespace(self):
        """Runs of whitespace collapse and the ends are trimmed."""
        assert normalize_whitespace("  a \n\t b  ") == "a b"


class TestCoreTextMatch:
    """Tests for matching with the context words dropped."""

    def test_context_words_dropped(self):
        """A hint whose outer words are wrong still matches on its core."""
        document = ParagraphDocument.from_texts(["The quick brown fox jumps\n"])
        match = locate(document, "A quick brown cat")
        assert match.strategy == MatchStrategy.CORE_TEXT
        assert match.confidence_tier == ConfidenceTier.MEDIUM
        assert (match.offset, match.length) == (4, 11)
        assert (match.context_prefix, match.context_suffix) == ("A", "cat")

    def test_two_word_hint_has_no_core(self):
        """Hints of two words or fewer are not trimmed."""
        document = ParagraphDocument.from_texts(["The quick brown fox\n"])
        assert isinstance(locate(document, "slow fox"), NoMatch)


class TestNoMatch:
    """Tests for unlocatable hints."""

    def test_empty_hint(self):
        """An empty or blank hint is never matched."""
        document = ParagraphDocument.from_texts(["Hello\n"])
        assert locate(document, "") == NoMatch(reason="findText is empty")
        assert locate(document, "   ") == NoMatch(reason="findText is empty")

    def test_missing_text(self):
        """Text absent from every paragraph is reported."""
        document = ParagraphDocument.from_texts(["Hello\n"])
        result = locate(document, "Goodbye")
        assert isinstance(result, NoMatch)
        assert "Goodbye" in result.reason

    def test_empty_document(self):
        """Nothing matches in a document without paragraphs."""
        assert isinstance(locate(ParagraphDocument(), "anything at all here"), NoMatch)
