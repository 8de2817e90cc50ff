"""Tests for patient input sanitization and validation."""
import pytest

from triage_service.input_sanitization import (
    MAX_IMAGE_BYTES,
    is_acceptable_image,
    is_valid_age,
    is_valid_symptom_text,
    parse_age,
    sanitize_filename,
    sanitize_input,
)


class TestSanitizeInput:
    """Test sanitize_input."""

    def test_plain_text_unchanged(self):
        assert sanitize_input("Fever and cough for 3 days") == "Fever and cough for 3 days"

    def test_trims_whitespace(self):
        assert sanitize_input("   headache  \n") == "headache"

    def test_removes_script_block(self):
        result = sanitize_input("pain<script>alert('x')</script> in chest")
        assert "alert" not in result
        assert result == "pain in chest"

    def test_script_tags_case_insensitive(self):
        result = sanitize_input("a<SCRIPT type='text/javascript'>steal()</SCRIPT>b")
        assert result == "ab"

    def test_removes_angle_brackets(self):
        assert sanitize_input("<b>bold</b> rash") == "bbold/b rash"

    def test_removes_control_chars(self):
        assert sanitize_input("itch\x00ing\x07") == "itching"

    def test_keeps_newlines_inside(self):
        assert sanitize_input("line one\nline two") == "line one\nline two"

    @pytest.mark.parametrize("value", [None, "", 42, ["list"], b"bytes"])
    def test_non_strings_become_empty(self, value):
        assert sanitize_input(value) == ""

    @pytest.mark.parametrize("value", [
        "plain text",
        "  <script>x</script>  ",
        "<scr<script></script>ipt>alert(1)</script>",
        "<<>>",
        " \x00 padded \x01 ",
        "a <b>c</b> d\n",
        "\x0b\x0c  text",
    ])
    def test_idempotent(self, value):
        once = sanitize_input(value)
        assert sanitize_input(once) == once


class TestIsValidSymptomText:
    """Test is_valid_symptom_text."""

    def test_lower_boundary(self):
        assert is_valid_symptom_text("a" * 10) is True
        assert is_valid_symptom_text("a" * 9) is False

    def test_upper_boundary(self):
        assert is_valid_symptom_text("a" * 2000) is True
        assert is_valid_symptom_text("a" * 2001) is False

    def test_length_is_measured_after_trim(self):
        assert is_valid_symptom_text("   " + "a" * 9 + "   ") is False
        assert is_valid_symptom_text("   " + "a" * 10 + "   ") is True

    @pytest.mark.parametrize("value", [None, 12345678901, ["fever and cough"]])
    def test_non_strings_rejected(self, value):
        assert is_valid_symptom_text(value) is False


class TestIsValidAge:
    """Test is_valid_age and parse_age."""

    @pytest.mark.parametrize("value", ["42", 42, "1", "120", "42 years", 42.9, " 7"])
    def test_valid(self, value):
        assert is_valid_age(value) is True

    @pytest.mark.parametrize("value", ["0", 0, "121", -5, "-5", "abc", "", None, True, float("nan")])
    def test_invalid(self, value):
        assert is_valid_age(value) is False

    def test_parse_leading_integer(self):
        assert parse_age("42 years") == 42
        assert parse_age(42.9) == 42
        assert parse_age("years 42") is None


class TestIsAcceptableImage:
    """Test is_acceptable_image."""

    @pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "image/webp", "IMAGE/PNG"])
    def test_allowed_types(self, content_type):
        assert is_acceptable_image(content_type, 1024) is True

    @pytest.mark.parametrize("content_type", ["image/gif", "image/bmp", "application/pdf", "", None])
    def test_rejected_types(self, content_type):
        assert is_acceptable_image(content_type, 1024) is False

    def test_size_bounds(self):
        assert is_acceptable_image("image/png", 0) is False
        assert is_acceptable_image("image/png", MAX_IMAGE_BYTES) is True
        assert is_acceptable_image("image/png", MAX_IMAGE_BYTES + 1) is False


class TestSanitizeFilename:
    """Test sanitize_filename."""

    def test_strips_path(self):
        assert sanitize_filename("../../etc/passwd") == "passwd"
        assert sanitize_filename("C:\\Users\\me\\rash.png") == "rash.png"

    def test_replaces_unsafe_chars(self):
        assert sanitize_filename('a<b>:"c|?*.png') == "a_b___c___.png"

    def test_empty(self):
        assert sanitize_filename("") == "image"
        assert sanitize_filename(None) == "image"

    def test_hidden_file_prefix(self):
        assert sanitize_filename(".hidden.jpg") == "hidden.jpg"

    def test_long_name_keeps_extension(self):
        result = sanitize_filename("x" * 300 + ".jpeg")
        assert len(result) <= 255
        assert result.endswith(".jpeg")
