"""Tests for the directive expression language and function registry."""

import pytest

from cfize.directives.expressions import ExpressionEvaluator, ExpressionParser, tokenize_expression
from cfize.directives.registry import FunctionRegistry
from cfize.exceptions import ConfigurationError, EvaluationError
from cfize.surface import StaticSurface


class TestExpressionEvaluator:
    """Test evaluation of directive expressions."""

    def setup_method(self):
        """Set up test fixtures."""
        self.registry = FunctionRegistry(StaticSurface("prod-stack", "eu-west-1"))
        self.evaluator = ExpressionEvaluator(
            self.registry,
            variables={'env': {'name': 'prod', 'zones': ['a', 'b']}, 'count': 3}
        )

    def evaluate(self, source):
        return self.evaluator.evaluate(source)

    @pytest.mark.parametrize("source,expected", [
        ("1+1", 2),
        ("1 + 2 * 3", 7),
        ("(1 + 2) * 3", 9),
        ("-4 + 10", 6),
        ("7 // 2", 3),
        ("7 % 4", 3),
        ("1 / 2", 0.5),
        ("count * 2", 6),
        ("2.5 + .5", 3.0),
    ])
    def test_arithmetic(self, source, expected):
        """Arithmetic follows the usual precedence."""
        assert self.evaluate(source) == expected

    def test_string_literals_and_concatenation(self):
        """Single and double quoted strings concatenate with '+'."""
        assert self.evaluate("'web' + \"-\" + 'server'") == "web-server"

    def test_string_escapes(self):
        """Backslash escapes are decoded."""
        assert self.evaluate(r"'line\none\t\'q\''") == "line\none\t'q'"

    def test_keywords(self):
        """true, false and null are literals."""
        assert self.evaluate("true") is True
        assert self.evaluate("false") is False
        assert self.evaluate("null") is None

    def test_list_and_dict_literals(self):
        """Lists and mappings can be built and indexed."""
        assert self.evaluate("[1, 2, 3][1]") == 2
        assert self.evaluate("{'k': 'v'}['k']") == 'v'
        assert self.evaluate("{'k': 'v'}.k") == 'v'
        assert self.evaluate("[1] + [2]") == [1, 2]
        assert self.evaluate("[]") == []

    def test_variable_lookups(self):
        """Dotted and indexed lookups navigate variables."""
        assert self.evaluate("env.name") == 'prod'
        assert self.evaluate("env.zones[-1]") == 'b'
        assert self.evaluate("env['zones'][0]") == 'a'

    def test_surface_functions(self):
        """Built-in surface functions are callable."""
        assert self.evaluate("join('-', ['a', ['b', 'c']])") == "a-b-c"
        assert self.evaluate("stack_name()") == "prod-stack"
        assert self.evaluate("region()") == "eu-west-1"
        assert self.evaluate("base64('hello')") == "aGVsbG8="

    def test_keyword_arguments(self):
        """Registered functions accept keyword arguments."""
        def greet(name, punctuation='!'):
            return name + punctuation

        self.registry.register('greet', greet)

        assert self.evaluate("greet('hi')") == "hi!"
        assert self.evaluate("greet('hi', punctuation='?')") == "hi?"

    @pytest.mark.parametrize("source,message", [
        ("", "Empty directive"),
        ("1 +", "Unexpected end of directive"),
        ("1 2", "Unexpected 2"),
        ("(1 + 2", "Expected ')'"),
        ("1 @ 2", "Unexpected character '@'"),
        ("missing", "Undefined name 'missing'"),
        ("nope()", "Unknown function 'nope'"),
        ("__import__('os')", "Unknown function '__import__'"),
        ("join", "'join' is a function"),
        ("'x'.upper()", "Only named functions can be called"),
        ("'a' + 1", "Cannot add str and int"),
        ("'a' * 2", "requires numbers"),
        ("-'a'", "Cannot negate str"),
        ("1 / 0", "Division by zero"),
        ("env.missing", "Key 'missing' not found"),
        ("env.zones[5]", "out of range"),
        ("env.zones['a']", "Index must be an integer"),
        ("count.value", "Cannot look up"),
        ("join(separator=',', ['a'])", "Positional argument after keyword argument"),
    ])
    def test_errors(self, source, message):
        """Malformed or invalid directives raise EvaluationError."""
        with pytest.raises(EvaluationError) as exc_info:
            self.evaluate(source)

        assert message in str(exc_info.value)
        assert exc_info.value.directive == source

    def test_function_exceptions_not_wrapped(self):
        """Errors raised inside registered functions propagate as-is."""
        def fail():
            raise ConfigurationError("Please specify a `thing`")

        self.registry.register('fail', fail)

        with pytest.raises(ConfigurationError, match="thing"):
            self.evaluate("fail()")

    @pytest.mark.parametrize("source", [
        "(" * 3000 + "1" + ")" * 3000,
        "-" * 3000 + "1",
        "[" * 3000 + "]" * 3000,
    ])
    def test_deep_nesting_rejected(self, source):
        """Directives nested beyond the interpreter stack raise EvaluationError."""
        with pytest.raises(EvaluationError, match="nested too deeply") as exc_info:
            self.evaluate(source)

        assert exc_info.value.directive == source


class TestExpressionParser:
    """Test tokenizing and parsing."""

    def test_tokenize_kinds(self):
        """Tokens carry their kind and decoded value."""
        tokens = tokenize_expression("join(',', [1, 2.5])")

        kinds = [t.kind for t in tokens]
        assert kinds == ['name', 'op', 'string', 'op', 'op', 'number', 'op', 'number', 'op', 'op', 'end']
        assert tokens[2].value == ','
        assert tokens[5].value == 1
        assert tokens[7].value == 2.5

    def test_parse_does_not_evaluate(self):
        """Parsing only builds the tree; nothing is called."""
        node = ExpressionParser("unknown_function(1)").parse()
        assert type(node).__name__ == 'Call'


class TestFunctionRegistry:
    """Test the directive function registry."""

    def setup_method(self):
        """Set up test fixtures."""
        self.registry = FunctionRegistry(StaticSurface("s", "r"))

    def test_builtins(self):
        """Surface functions are registered by default."""
        assert self.registry.names() == ['base64', 'join', 'region', 'stack_name']
        assert 'join' in self.registry

    def test_register_and_override(self):
        """Host functions can be added and may replace built-ins."""
        self.registry.register('region', lambda: 'override')

        assert self.registry.get('region')() == 'override'

    def test_invalid_name_rejected(self):
        """Function names must be identifiers."""
        with pytest.raises(ConfigurationError, match="Invalid directive function name"):
            self.registry.register('not-valid', lambda: None)

    def test_non_callable_rejected(self):
        """Only callables can be registered."""
        with pytest.raises(ConfigurationError, match="must be callable"):
            self.registry.register('value', 42)

    def test_get_unknown(self):
        """Unknown names return None."""
        assert self.registry.get('missing') is None
