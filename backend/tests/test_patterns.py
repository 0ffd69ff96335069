"""Unit tag rule compilation and matching tests."""

import pytest

from unittags.errors import PatternError, TagParseError
from unittags.patterns import compile_literal_rule, compile_rule, is_regex_pattern


class TestLiteralRules:
    """Literal IDs match the whole decimal string only."""

    @pytest.mark.parametrize("unit_id", [1, 100, 1234567, 16777215])
    def test_literal_matches_exact_id(self, unit_id: int) -> None:
        rule = compile_rule(str(unit_id), "Name")
        assert rule.match(str(unit_id))
        assert rule.apply(str(unit_id)) == "Name"

    @pytest.mark.parametrize("other", ["1100", "1001", "10", "100100"])
    def test_literal_does_not_match_substring(self, other: str) -> None:
        rule = compile_rule("100", "Dispatch")
        assert not rule.match(other)
        assert rule.apply(other) is None

    def test_literal_fields_are_trimmed(self) -> None:
        rule = compile_rule("  100 ", " Dispatch ")
        assert rule.apply("100") == "Dispatch"

    def test_literal_special_characters_are_escaped(self) -> None:
        rule = compile_rule("1.0", "Dotted")
        assert rule.match("1.0")
        assert not rule.match("100")


class TestRegexRules:
    """/expr/ rules are used verbatim, with group rewriting."""

    def test_is_regex_pattern(self) -> None:
        assert is_regex_pattern("/12\\d+/")
        assert not is_regex_pattern("12")
        assert not is_regex_pattern("/")

    def test_dollar_group_reference(self) -> None:
        rule = compile_rule("/(12)(\\d{4})/", "Car $2")
        assert rule.apply("123456") == "Car 3456"

    def test_backslash_group_reference(self) -> None:
        rule = compile_rule("/(\\d)(\\d)/", "\\2-\\1")
        assert rule.apply("47") == "7-4"

    def test_braced_and_whole_match_references(self) -> None:
        rule = compile_rule("/(?P<fleet>\\d{2})\\d+/", "Fleet ${fleet} ($&)")
        assert rule.apply("42001") == "Fleet 42 (42001)"

    def test_escaped_dollar(self) -> None:
        rule = compile_rule("/5\\d/", "$$5")
        assert rule.apply("55") == "$5"

    def test_regex_is_full_match(self) -> None:
        rule = compile_rule("/9\\d\\d/", "Supervisor")
        assert rule.match("901")
        assert not rule.match("9012")

    def test_constant_template(self) -> None:
        assert compile_rule("/9\\d\\d/", "Supervisor").is_constant
        assert not compile_rule("/(9)\\d\\d/", "Sup $1").is_constant


class TestInvalidRules:
    def test_invalid_regex_raises(self) -> None:
        with pytest.raises(PatternError):
            compile_rule("/(unclosed/", "x")

    def test_pattern_error_is_parse_error(self) -> None:
        with pytest.raises(TagParseError):
            compile_rule("/[/", "x")

    @pytest.mark.parametrize("raw", ["", "   ", "//"])
    def test_empty_pattern_raises(self, raw: str) -> None:
        with pytest.raises(PatternError):
            compile_rule(raw, "x")

    def test_missing_group_reference_raises(self) -> None:
        with pytest.raises(PatternError):
            compile_rule("/(\\d)/", "Unit $3")

    def test_unknown_named_group_raises(self) -> None:
        with pytest.raises(PatternError):
            compile_rule("/(?P<a>\\d)/", "${b}")


class TestLiteralOverrideRules:
    def test_alias_text_is_verbatim(self) -> None:
        rule = compile_literal_rule("7", "Cost $1 \\1")
        assert rule.apply("7") == "Cost $1 \\1"

    def test_empty_identifier_raises(self) -> None:
        with pytest.raises(PatternError):
            compile_literal_rule(" ", "x")


class TestTemplateEscapes:
    """Backslashes that are not group references escape the next character."""

    def test_unknown_escape_drops_backslash(self) -> None:
        rule = compile_rule("100", "Fire\\Rescue")
        assert rule.apply("100") == "FireRescue"

    def test_escaped_backslash_is_literal(self) -> None:
        rule = compile_rule("100", "Fire\\\\Rescue")
        assert rule.apply("100") == "Fire\\Rescue"

    def test_trailing_backslash_is_literal(self) -> None:
        rule = compile_rule("100", "Unit\\")
        assert rule.apply("100") == "Unit\\"

    def test_escaped_backslash_before_digit_is_not_a_reference(self) -> None:
        rule = compile_rule("100", "Bay\\\\1")
        assert rule.is_constant
        assert rule.apply("100") == "Bay\\1"

    def test_escapes_mixed_with_references(self) -> None:
        rule = compile_rule("/(\\d)(\\d)/", "\\Q\\2\\\\$1")
        assert rule.apply("47") == "Q7\\4"

    def test_unclosed_named_reference_is_literal(self) -> None:
        rule = compile_rule("/(\\d)/", "\\g<1")
        assert rule.apply("5") == "g<1"
