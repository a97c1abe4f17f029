"""
Restricted expression language for embedded directives.

Directives are parsed into a small AST and evaluated by walking it. Only
literals, arithmetic, mapping/list lookups, variables and calls to functions
from a FunctionRegistry are available; nothing is executed as Python code.

Grammar:
    expr     := additive
    additive := term (('+' | '-') term)*
    term     := unary (('*' | '/' | '//' | '%') unary)*
    unary    := '-' unary | postfix
    postfix  := primary ('(' args? ')' | '.' NAME | '[' expr ']')*
    primary  := NUMBER | STRING | true | false | null | NAME
              | '(' expr ')' | '[' items ']' | '{' entries '}'
    args     := arg (',' arg)*      arg := NAME '=' expr | expr
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import EvaluationError
from .registry import FunctionRegistry


logger = logging.getLogger(__name__)


TOKEN_PATTERN = re.compile(r'''
    (?P<number>\d+\.\d*|\.\d+|\d+)
  | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
  | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<op>//|[-+*/%()\[\]{},.:=])
''', re.VERBOSE | re.DOTALL)

ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '\\': '\\', "'": "'", '"': '"'}

KEYWORDS = {'true': True, 'false': False, 'null': None}


@dataclass
class Token:
    kind: str  # number, string, name, op, end
    value: Any
    position: int


# AST nodes

@dataclass
class Literal:
    value: Any


@dataclass
class Name:
    name: str


@dataclass
class ListExpr:
    items: List[Any]


@dataclass
class DictExpr:
    entries: List[Tuple[Any, Any]]


@dataclass
class UnaryOp:
    op: str
    operand: Any


@dataclass
class BinaryOp:
    op: str
    left: Any
    right: Any


@dataclass
class Lookup:
    target: Any
    key: Any


@dataclass
class Call:
    function: Any
    args: List[Any] = field(default_factory=list)
    kwargs: Dict[str, Any] = field(default_factory=dict)


def tokenize_expression(source: str) -> List[Token]:
    """
    Split directive source into tokens.

    Raises:
        EvaluationError: On characters outside the language
    """
    tokens = []
    position = 0
    while position < len(source):
        if source[position].isspace():
            position += 1
            continue

        match = TOKEN_PATTERN.match(source, position)
        if not match:
            raise EvaluationError(
                f"Unexpected character {source[position]!r} at position {position}", source
            )

        kind = match.lastgroup
        text = match.group(kind)
        if kind == 'number':
            value: Any = float(text) if '.' in text else int(text)
        elif kind == 'string':
            value = _unescape(text[1:-1])
        else:
            value = text
        tokens.append(Token(kind, value, position))
        position = match.end()

    tokens.append(Token('end', None, position))
    return tokens


def _unescape(body: str) -> str:
    chars = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == '\\' and i + 1 < len(body):
            following = body[i + 1]
            chars.append(ESCAPES.get(following, '\\' + following))
            i += 2
        else:
            chars.append(char)
            i += 1
    return ''.join(chars)


class ExpressionParser:
    """Recursive-descent parser producing the AST for one directive."""

    def __init__(self, source: str):
        self.source = source
        self.tokens = tokenize_expression(source)
        self.index = 0

    def parse(self) -> Any:
        """
        Parse the whole directive.

        Returns:
            Root AST node

        Raises:
            EvaluationError: If the directive is empty or malformed
        """
        if self._peek().kind == 'end':
            raise EvaluationError("Empty directive", self.source)
        node = self._additive()
        if self._peek().kind != 'end':
            token = self._peek()
            raise EvaluationError(
                f"Unexpected {token.value!r} at position {token.position}", self.source
            )
        return node

    def _peek(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _at_op(self, *ops: str) -> bool:
        token = self._peek()
        return token.kind == 'op' and token.value in ops

    def _expect(self, op: str) -> Token:
        if not self._at_op(op):
            token = self._peek()
            found = 'end of directive' if token.kind == 'end' else repr(token.value)
            raise EvaluationError(
                f"Expected {op!r} at position {token.position}, found {found}", self.source
            )
        return self._advance()

    def _additive(self) -> Any:
        node = self._term()
        while self._at_op('+', '-'):
            op = self._advance().value
            node = BinaryOp(op, node, self._term())
        return node

    def _term(self) -> Any:
        node = self._unary()
        while self._at_op('*', '/', '//', '%'):
            op = self._advance().value
            node = BinaryOp(op, node, self._unary())
        return node

    def _unary(self) -> Any:
        if self._at_op('-'):
            self._advance()
            return UnaryOp('-', self._unary())
        return self._postfix()

    def _postfix(self) -> Any:
        node = self._primary()
        while True:
            if self._at_op('('):
                self._advance()
                node = self._call(node)
            elif self._at_op('.'):
                self._advance()
                token = self._advance()
                if token.kind != 'name':
                    raise EvaluationError(
                        f"Expected a key name after '.' at position {token.position}", self.source
                    )
                node = Lookup(node, Literal(token.value))
            elif self._at_op('['):
                self._advance()
                key = self._additive()
                self._expect(']')
                node = Lookup(node, key)
            else:
                return node

    def _call(self, function: Any) -> Call:
        call = Call(function)
        if self._at_op(')'):
            self._advance()
            return call

        while True:
            token = self._peek()
            if token.kind == 'name' and self._is_keyword_argument():
                self._advance()
                self._advance()
                call.kwargs[token.value] = self._additive()
            else:
                if call.kwargs:
                    raise EvaluationError(
                        f"Positional argument after keyword argument at position {token.position}",
                        self.source
                    )
                call.args.append(self._additive())

            if self._at_op(','):
                self._advance()
                continue
            self._expect(')')
            return call

    def _is_keyword_argument(self) -> bool:
        following = self.tokens[self.index + 1]
        return following.kind == 'op' and following.value == '='

    def _primary(self) -> Any:
        token = self._advance()

        if token.kind in ('number', 'string'):
            return Literal(token.value)

        if token.kind == 'name':
            if token.value in KEYWORDS:
                return Literal(KEYWORDS[token.value])
            return Name(token.value)

        if token.kind == 'op':
            if token.value == '(':
                node = self._additive()
                self._expect(')')
                return node
            if token.value == '[':
                items = []
                while not self._at_op(']'):
                    items.append(self._additive())
                    if not self._at_op(']'):
                        self._expect(',')
                self._advance()
                return ListExpr(items)
            if token.value == '{':
                entries = []
                while not self._at_op('}'):
                    key = self._additive()
                    self._expect(':')
                    entries.append((key, self._additive()))
                    if not self._at_op('}'):
                        self._expect(',')
                self._advance()
                return DictExpr(entries)

        found = 'end of directive' if token.kind == 'end' else repr(token.value)
        raise EvaluationError(f"Unexpected {found} at position {token.position}", self.source)


class ExpressionEvaluator:
    """
    Tree-walking evaluator for directive expressions.

    Names resolve to variables first, then to registered functions. Only
    registered functions can be called. Exceptions raised by the functions
    themselves propagate unchanged.
    """

    def __init__(self, registry: FunctionRegistry, variables: Optional[Dict[str, Any]] = None):
        """
        Initialize the evaluator.

        Args:
            registry: Functions callable from directives
            variables: Named values visible to directives
        """
        self.registry = registry
        self.variables = dict(variables or {})

    def evaluate(self, source: str) -> Any:
        """
        Parse and evaluate one directive.

        Args:
            source: Directive text (without delimiters)

        Returns:
            The directive's value

        Raises:
            EvaluationError: If the directive is malformed or evaluation fails
        """
        try:
            node = ExpressionParser(source).parse()
            return self._eval(node)
        except RecursionError as e:
            raise EvaluationError("Directive nested too deeply", source) from e
        except EvaluationError as e:
            if e.directive is None:
                raise EvaluationError(str(e), source) from e
            raise

    def _eval(self, node: Any) -> Any:
        if isinstance(node, Literal):
            return node.value
        elif isinstance(node, Name):
            return self._resolve_name(node.name)
        elif isinstance(node, ListExpr):
            return [self._eval(item) for item in node.items]
        elif isinstance(node, DictExpr):
            result = {}
            for key_node, value_node in node.entries:
                key = self._eval(key_node)
                if not isinstance(key, (str, int, float, bool)) and key is not None:
                    raise EvaluationError(f"Mapping keys must be scalars, got {type(key).__name__}")
                result[key] = self._eval(value_node)
            return result
        elif isinstance(node, UnaryOp):
            operand = self._eval(node.operand)
            if not _is_number(operand):
                raise EvaluationError(f"Cannot negate {type(operand).__name__}")
            return -operand
        elif isinstance(node, BinaryOp):
            return self._binary(node.op, self._eval(node.left), self._eval(node.right))
        elif isinstance(node, Lookup):
            return self._lookup(self._eval(node.target), self._eval(node.key))
        elif isinstance(node, Call):
            return self._call(node)
        raise EvaluationError(f"Unknown expression node {type(node).__name__}")

    def _resolve_name(self, name: str) -> Any:
        if name in self.variables:
            return self.variables[name]
        if name in self.registry:
            raise EvaluationError(f"'{name}' is a function; call it as {name}()")
        raise EvaluationError(f"Undefined name '{name}'")

    def _call(self, node: Call) -> Any:
        if not isinstance(node.function, Name):
            raise EvaluationError("Only named functions can be called")

        name = node.function.name
        function = self.registry.get(name)
        if function is None:
            raise EvaluationError(f"Unknown function '{name}'")

        args = [self._eval(arg) for arg in node.args]
        kwargs = {key: self._eval(value) for key, value in node.kwargs.items()}
        logger.debug(f"Calling directive function {name} with {len(args)} args")
        return function(*args, **kwargs)

    def _binary(self, op: str, left: Any, right: Any) -> Any:
        if op == '+':
            if _is_number(left) and _is_number(right):
                return left + right
            if isinstance(left, str) and isinstance(right, str):
                return left + right
            if isinstance(left, list) and isinstance(right, list):
                return left + right
            raise EvaluationError(
                f"Cannot add {type(left).__name__} and {type(right).__name__}"
            )

        if not (_is_number(left) and _is_number(right)):
            raise EvaluationError(
                f"Operator '{op}' requires numbers, got {type(left).__name__} and {type(right).__name__}"
            )
        if op == '-':
            return left - right
        if op == '*':
            return left * right
        if right == 0:
            raise EvaluationError("Division by zero")
        if op == '/':
            return left / right
        if op == '//':
            return left // right
        return left % right

    def _lookup(self, target: Any, key: Any) -> Any:
        if isinstance(target, dict):
            if isinstance(key, (list, dict)):
                raise EvaluationError(f"Mapping keys must be scalars, got {type(key).__name__}")
            if key not in target:
                raise EvaluationError(f"Key {key!r} not found")
            return target[key]
        if isinstance(target, (list, str)):
            if not isinstance(key, int) or isinstance(key, bool):
                raise EvaluationError(f"Index must be an integer, got {type(key).__name__}")
            if not -len(target) <= key < len(target):
                raise EvaluationError(f"Index {key} out of range")
            return target[key]
        raise EvaluationError(f"Cannot look up {key!r} in {type(target).__name__}")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
