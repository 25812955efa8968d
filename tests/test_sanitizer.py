"""Unit tests for visitor input sanitization and field validation."""

import pytest

from portfolio_api.core.config import ValidationSettings
from portfolio_api.schemas.contact import contact_field_rules
from portfolio_api.utils.sanitizer import (
    FieldKind,
    FieldRule,
    ValidationErrorKind,
    sanitize_text,
    validate_email_field,
    validate_fields,
    validate_phone_field,
    validate_text_field,
)


class TestSanitizeText:
    def test_strips_markup_characters(self) -> None:
        assert sanitize_text("<script>alert('x')</script>", 100) == "scriptalertxscript"

    def test_collapses_whitespace_and_trims(self) -> None:
        assert sanitize_text("  hello \n\t  world  ", 100) == "hello world"

    def test_truncates_to_max_length(self) -> None:
        assert sanitize_text("abcdefghij", 4) == "abcd"

    def test_truncation_does_not_leave_trailing_space(self) -> None:
        assert sanitize_text("abc defg", 4) == "abc"

    @pytest.mark.parametrize("value", [None, 42, ["a"], {"a": 1}])
    def test_non_string_sanitizes_to_empty(self, value) -> None:
        assert sanitize_text(value, 10) == ""

    @pytest.mark.parametrize(
        "value",
        [
            "  plain text  ",
            "a  (b)  [c]  {d}",
            "x" * 60 + "   " + "y" * 60,
            "tabs\tand\nnewlines",
            "<<>>&&//\\\\",
        ],
    )
    def test_is_idempotent(self, value: str) -> None:
        once = sanitize_text(value, 50)
        assert sanitize_text(once, 50) == once


class TestValidateTextField:
    rule = FieldRule(name="subject", min_length=5, max_length=20)

    def test_valid_value(self) -> None:
        sanitized, errors = validate_text_field(self.rule, "  Project  inquiry ")
        assert sanitized == "Project inquiry"
        assert errors == []

    def test_empty_reports_only_required(self) -> None:
        _, errors = validate_text_field(self.rule, "   <>  ")
        assert [e.kind for e in errors] == [ValidationErrorKind.REQUIRED_FIELD]

    def test_too_short(self) -> None:
        _, errors = validate_text_field(self.rule, "Hey")
        assert [e.kind for e in errors] == [ValidationErrorKind.TOO_SHORT]

    def test_too_long_uses_length_before_truncation(self) -> None:
        sanitized, errors = validate_text_field(self.rule, "a" * 21)
        assert len(sanitized) == 20
        assert [e.kind for e in errors] == [ValidationErrorKind.TOO_LONG]

    def test_spam_is_case_insensitive(self) -> None:
        _, errors = validate_text_field(self.rule, "CLICK HERE now")
        assert [e.kind for e in errors] == [ValidationErrorKind.SPAM_DETECTED]

    def test_multiple_violations_are_separate_entries(self) -> None:
        _, errors = validate_text_field(self.rule, "you are a winner " * 3)
        kinds = [e.kind for e in errors]
        assert ValidationErrorKind.TOO_LONG in kinds
        assert ValidationErrorKind.SPAM_DETECTED in kinds
        assert len(kinds) == 2

    def test_error_message_uses_field_label(self) -> None:
        _, errors = validate_text_field(FieldRule(name="name", min_length=2, label="Your name"), "")
        assert errors[0].message == "Your name is required"


class TestValidateEmailField:
    rule = FieldRule(name="email", max_length=100, kind=FieldKind.EMAIL)

    def test_lowercases_and_trims(self) -> None:
        sanitized, errors = validate_email_field(self.rule, "  Jane.Doe@Example.COM ")
        assert sanitized == "jane.doe@example.com"
        assert errors == []

    @pytest.mark.parametrize(
        "value",
        [
            "not-an-email",
            "a@",
            "@b.com",
            "a b@c.com",
            "a@b..com",
            "john..doe@example.com",
            ".john@example.com",
            "john.@example.com",
            "Jane <jane@example.com>",
        ],
    )
    def test_invalid_grammar(self, value: str) -> None:
        _, errors = validate_email_field(self.rule, value)
        assert [e.kind for e in errors] == [ValidationErrorKind.INVALID_EMAIL]

    def test_missing(self) -> None:
        _, errors = validate_email_field(self.rule, None)
        assert [e.kind for e in errors] == [ValidationErrorKind.REQUIRED_FIELD]

    def test_too_long(self) -> None:
        _, errors = validate_email_field(self.rule, "a" * 95 + "@b.com")
        assert [e.kind for e in errors] == [ValidationErrorKind.TOO_LONG]

    def test_generic_text_checks_are_skipped(self) -> None:
        sanitized, errors = validate_email_field(self.rule, "o'brien+winner@example.com")
        assert errors == []
        assert sanitized == "o'brien+winner@example.com"


class TestValidatePhoneField:
    rule = FieldRule(name="phone", max_length=30, kind=FieldKind.PHONE, required=False)

    def test_accepts_common_formats(self) -> None:
        for value in ["+1 (555) 123-4567", "555.123.4567", "+44 20 7946 0958"]:
            assert validate_phone_field(self.rule, value)[1] == []

    def test_rejects_letters(self) -> None:
        _, errors = validate_phone_field(self.rule, "call me maybe")
        assert [e.kind for e in errors] == [ValidationErrorKind.INVALID_CHARACTERS]

    def test_blank_optional_phone_is_fine(self) -> None:
        assert validate_phone_field(self.rule, "  ") == ("", [])


class TestValidateFields:
    rules = contact_field_rules(ValidationSettings())

    def test_valid_submission(self) -> None:
        result = validate_fields(
            self.rules,
            {
                "name": "Jane Doe",
                "email": "jane@example.com",
                "subject": "Project inquiry",
                "message": "I would like to talk about a project.",
            },
        )
        assert result.valid is True
        assert result.errors == []
        assert result.sanitized_fields["name"] == "Jane Doe"
        assert "phone" not in result.sanitized_fields

    def test_collects_every_field_in_input_order(self) -> None:
        result = validate_fields(
            self.rules,
            {"name": "J", "email": "nope", "subject": "", "message": "short", "phone": "abc"},
        )
        assert result.valid is False
        assert [e.field for e in result.errors] == ["name", "email", "subject", "message", "phone"]
        assert result.error_kinds("email") == [ValidationErrorKind.INVALID_EMAIL]
        assert result.error_kinds("subject") == [ValidationErrorKind.REQUIRED_FIELD]

    @pytest.mark.parametrize("payload", [{}, {"name": 1, "email": [], "subject": {}, "message": None}])
    def test_never_raises_for_odd_input(self, payload: dict) -> None:
        result = validate_fields(self.rules, payload)
        assert result.valid is False
        assert all(e.kind is ValidationErrorKind.REQUIRED_FIELD for e in result.errors)
        assert len(result.errors) == 4

    def test_valid_is_false_iff_errors(self) -> None:
        result = validate_fields([FieldRule(name="message", min_length=1, max_length=10)], {"message": "hi"})
        assert result.valid is (not result.errors)
