"""
Unit tests for the JSON repair engine.
"""
import json

from proposals.json_repair import (
    RepairAttempt,
    balance_brackets,
    parses,
    remove_trailing_commas,
    repair_json,
)


class TestParses:
    """Valid input is never touched."""

    def test_valid_input_is_byte_identical(self):
        """Already-valid JSON comes back unchanged."""
        text = '{"a": [1, 2, {"b": "c"}],   "d": null}'
        assert repair_json(text) is text

    def test_repair_is_idempotent(self):
        """Repairing repaired output changes nothing."""
        broken = '{"response": "line one\nline two", "edit": {"type": "rewrite"'
        once = repair_json(broken)
        assert repair_json(once) == once


class TestControlCharacters:
    """Tests for escaping literal control characters inside strings."""

    def test_literal_newline_in_string(self):
        """A raw newline inside a string value becomes an escape."""
        broken = '{"newContent": "Hello\nWorld"}'
        repaired = repair_json(broken)
        assert json.loads(repaired)["newContent"] == "Hello\nWorld"

    def test_tab_and_carriage_return(self):
        """Tabs and carriage returns inside strings are escaped."""
        broken = '{"a": "x\ty\r\nz"}'
        assert json.loads(repair_json(broken))["a"] == "x\ty\r\nz"

    def test_whitespace_between_tokens_is_kept(self):
        """Newlines outside strings are structural whitespace and stay literal."""
        attempt = RepairAttempt('{\n"a": 1\n}')
        assert attempt.escape_control_characters() == '{\n"a": 1\n}'

    def test_escaped_quote_does_not_end_string(self):
        """A quote preceded by one backslash stays inside the string."""
        broken = '{"a": "say \\"hi\\"\nnow"}'
        assert json.loads(repair_json(broken))["a"] == 'say "hi"\nnow'

    def test_even_backslashes_end_string(self):
        """A quote after an escaped backslash closes the string."""
        broken = '{"path": "C:\\\\", "b": "x\ny"}'
        parsed = json.loads(repair_json(broken))
        assert parsed["path"] == "C:\\"
        assert parsed["b"] == "x\ny"

    def test_unterminated_string_is_closed(self):
        """A string cut off by truncation gets a closing quote."""
        attempt = RepairAttempt('{"a": "trunc')
        assert attempt.escape_control_characters() == '{"a": "trunc"'


class TestBracketBalancing:
    """Tests for appending missing closers."""

    def test_exactly_n_closers_appended(self):
        """An object missing N closing braces gets exactly N appended."""
        text = '{"a": {"b": {"c": 1'
        balanced = balance_brackets(text)
        assert balanced == text + "}}}"
        assert parses(balanced)

    def test_innermost_closer_first(self):
        """Closers are appended in nesting order."""
        assert balance_brackets('{"a": [1, {"b": 2') == '{"a": [1, {"b": 2}]}'

    def test_braces_inside_strings_are_ignored(self):
        """Brackets inside string literals are not structural."""
        text = '{"a": "{[not structure"'
        assert balance_brackets(text) == text + "}"

    def test_balanced_input_unchanged(self):
        """Nothing is appended to balanced text."""
        assert balance_brackets('{"a": [1]}') == '{"a": [1]}'

    def test_truncated_edit_reply(self):
        """A reply cut off mid-edit becomes parseable."""
        broken = '{"response": "Rewriting", "edit": {"type": "rewrite", "newContent": "New text'
        parsed = json.loads(repair_json(broken))
        assert parsed["edit"]["newContent"] == "New text"


class TestTrailingCommas:
    """Tests for dropping dangling commas."""

    def test_comma_before_closing_brace(self):
        """A comma right before '}' is removed."""
        assert remove_trailing_commas('{"a": 1,}') == '{"a": 1}'

    def test_comma_before_closing_bracket_with_whitespace(self):
        """Whitespace between the comma and ']' is ignored."""
        assert remove_trailing_commas('[1, 2,\n  ]') == '[1, 2\n  ]'

    def test_comma_between_values_kept(self):
        """Ordinary separators, including before strings, are kept."""
        assert remove_trailing_commas('[1, "a"]') == '[1, "a"]'

    def test_comma_inside_string_kept(self):
        """Commas inside string literals are never structural."""
        assert remove_trailing_commas('{"a": "x,}"}') == '{"a": "x,}"}'

    def test_truncation_leaving_comma(self):
        """Truncation right after a comma is repaired end to end."""
        assert json.loads(repair_json('{"a": [1, 2,')) == {"a": [1, 2]}


class TestUnrepairable:
    """The engine returns the original when repair fails."""

    def test_garbage_is_returned_unchanged(self):
        """Input that cannot be repaired comes back as-is."""
        text = '{"a": 1 "b": 2}'
        assert repair_json(text) == text

    def test_non_json_braces(self):
        """Prose with braces is not mangled."""
        text = "{this is not json}"
        assert repair_json(text) == text
