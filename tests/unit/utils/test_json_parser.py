"""Tests for lenient JSON parsing of Oracle output."""

from paper_review.utils.json_parser import parse_json_safely, strip_code_fences


class TestStripCodeFences:

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_fence(self):
        assert strip_code_fences('```\n[1, 2]\n```') == "[1, 2]"

    def test_unfenced_text_untouched(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestParseJsonSafely:

    def test_plain_object(self):
        assert parse_json_safely('{"summary": "fine"}') == {"summary": "fine"}

    def test_fenced_object(self):
        assert parse_json_safely('```json\n{"score": 0.5}\n```') == {"score": 0.5}

    def test_concatenated_objects_merged(self):
        text = '{"issues": [1], "notes": "a"}\n{"issues": [2], "notes": "b"}'

        assert parse_json_safely(text) == {"issues": [1, 2], "notes": "b"}

    def test_concatenated_lists_flattened(self):
        assert parse_json_safely("[1, 2]\n[3]") == [1, 2, 3]

    def test_object_inside_prose(self):
        text = 'Here is my answer: {"verdict": {"label": "weak_accept"}} Hope that helps.'

        assert parse_json_safely(text) == {"verdict": {"label": "weak_accept"}}

    def test_unrecoverable_text(self):
        assert parse_json_safely("I cannot answer that.") is None

    def test_empty_text(self):
        assert parse_json_safely("") is None
