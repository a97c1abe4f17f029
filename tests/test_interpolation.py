"""Tests for directive extraction and substitution."""

import re

import pytest

from cfize.directives import DEFAULT_CAPTURE_PATTERN, EvaluationContext, cfize, tokenize
from cfize.exceptions import CfizeError, ConfigurationError, EvaluationError, InputTypeError
from cfize.surface import StaticSurface


class TestTokenize:
    """Test partitioning of template text."""

    def test_single_directive(self):
        """Text splits into prefix, directive and suffix."""
        tokens = tokenize("a C{x} b", DEFAULT_CAPTURE_PATTERN)

        assert [t.text for t in tokens] == ["a ", "C{x}", " b"]
        assert [t.directive for t in tokens] == [None, "x", None]

    def test_adjacent_directives(self):
        """Adjacent directives are separated by empty literals."""
        tokens = tokenize("C{x}C{y}", DEFAULT_CAPTURE_PATTERN)

        assert [t.text for t in tokens] == ["", "C{x}", "", "C{y}", ""]
        assert [t.is_directive for t in tokens] == [False, True, False, True, False]

    def test_no_directive(self):
        """Text without matches is a single literal token."""
        tokens = tokenize("just text", DEFAULT_CAPTURE_PATTERN)

        assert len(tokens) == 1
        assert tokens[0].text == "just text"
        assert not tokens[0].is_directive

    def test_non_greedy_match(self):
        """The default pattern stops at the first closing brace."""
        tokens = tokenize("C{a} and C{b}", DEFAULT_CAPTURE_PATTERN)

        assert [t.directive for t in tokens if t.is_directive] == ["a", "b"]

    def test_zero_width_match_rejected(self):
        """A pattern matching an empty span would never terminate."""
        with pytest.raises(ConfigurationError, match="empty span"):
            tokenize("abc", re.compile(r'(?P<directive>)'))


class TestCfize:
    """Test cfize substitution."""

    def setup_method(self):
        """Set up test fixtures."""
        self.surface = StaticSurface("prod-stack", "us-east-1")

    def test_literal_text_unchanged(self):
        """Text without directives is returned unchanged."""
        text = "plain {text} with C and braces } {"
        assert cfize(text) == text

    def test_empty_text(self):
        """Empty text renders to an empty string."""
        assert cfize("") == ""

    def test_arithmetic_substitution(self):
        """Directive results replace the directive with exact spacing."""
        assert cfize("A C{1+1} B") == "A 2 B"

    def test_string_function_substitution(self):
        """Directives can call surface functions."""
        result = cfize("name=C{join('-', ['web', 'server'])};", surface=self.surface)
        assert result == "name=web-server;"

    def test_stack_lookups_with_static_surface(self):
        """Static surface resolves stack name and region to strings."""
        result = cfize("C{stack_name()}@C{region()}", surface=self.surface)
        assert result == "prod-stack@us-east-1"

    def test_intrinsic_result_produces_join(self):
        """An unresolved intrinsic result yields an Fn::Join."""
        result = cfize("stack: C{stack_name()}!")

        assert result == {
            "Fn::Join": ["", ["stack: ", {"Ref": "AWS::StackName"}, "!"]]
        }

    def test_directives_evaluated_left_to_right(self):
        """Side effects of multiple directives happen in text order."""
        calls = []

        def record(name):
            calls.append(name)

        result = cfize("C{record('x')} C{record('y')}", functions={'record': record})

        assert calls == ['x', 'y']
        assert result == " "

    def test_null_result_renders_nothing(self):
        """Directives returning null disappear from the output."""
        assert cfize("a C{null} b") == "a  b"

    def test_boolean_and_float_results(self):
        """Scalars are rendered as strings."""
        assert cfize("C{true}/C{false}/C{1 / 2}") == "true/false/0.5"

    def test_variables(self):
        """Variables are visible to directives."""
        result = cfize("env=C{env.name}", variables={'env': {'name': 'prod'}})
        assert result == "env=prod"

    def test_result_not_reprocessed(self):
        """Directive output containing directive syntax is left literal."""
        result = cfize("C{nested}", variables={'nested': 'C{1+1}'})
        assert result == "C{1+1}"

    def test_directive_does_not_cross_newlines(self):
        """The default pattern matches within a single line."""
        text = "C{1\n+1}"
        assert cfize(text) == text

    def test_custom_pattern(self):
        """A custom pattern with a 'directive' group is honoured."""
        result = cfize("Hello ${'World'}", capture_pattern=r'\$\{(?P<directive>.*?)\}')
        assert result == "Hello World"

    def test_shared_context_across_calls(self):
        """A caller-supplied context is reused for every directive."""
        context = EvaluationContext(surface=self.surface)
        context.set_variable('tier', 'web')

        assert cfize("C{tier}-C{region()}", context=context) == "web-us-east-1"

    def test_non_string_text_rejected(self):
        """Non-string text raises InputTypeError, which is also a TypeError."""
        with pytest.raises(InputTypeError) as exc_info:
            cfize(42)

        assert isinstance(exc_info.value, TypeError)
        assert "'text' must be a string" in str(exc_info.value)

    def test_pattern_without_directive_group_rejected(self):
        """Missing named group fails before any directive is evaluated."""
        calls = []

        with pytest.raises(ConfigurationError) as exc_info:
            cfize(
                "${record('x')}",
                capture_pattern=re.compile(r'\$\{(.*?)\}'),
                functions={'record': calls.append}
            )

        assert "directive" in str(exc_info.value)
        assert calls == []

    def test_invalid_regex_rejected(self):
        """Uncompilable pattern strings are configuration errors."""
        with pytest.raises(ConfigurationError, match="not a valid regular expression"):
            cfize("text", capture_pattern="(")

    def test_non_pattern_rejected(self):
        """Only strings and compiled patterns are accepted."""
        with pytest.raises(ConfigurationError, match="must be a regular expression"):
            cfize("text", capture_pattern=123)

    def test_evaluation_error_propagates(self):
        """Undefined names raise EvaluationError naming the directive."""
        with pytest.raises(EvaluationError) as exc_info:
            cfize("before C{missing_value} after")

        assert exc_info.value.directive == "missing_value"
        assert "Undefined name 'missing_value'" in str(exc_info.value)

    def test_deeply_nested_directive_rejected(self):
        """Excessive nesting stays inside the CfizeError hierarchy."""
        with pytest.raises(CfizeError, match="nested too deeply"):
            cfize("C{" + "(" * 3000 + "1" + ")" * 3000 + "}")

    def test_function_errors_propagate_unmodified(self):
        """Exceptions raised by directive functions are not wrapped."""
        def explode():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom") as exc_info:
            cfize("C{explode()}", functions={'explode': explode})

        assert not isinstance(exc_info.value, EvaluationError)

    def test_unjoinable_result_rejected(self):
        """Plain mappings cannot be rendered into text."""
        with pytest.raises(InputTypeError):
            cfize("C{settings}", variables={'settings': {'a': 1, 'b': 2}})
