"""
Directive interpolation.
Finds C{...} directives in template text, evaluates each one with the
restricted expression language and substitutes the result in place.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from ..exceptions import ConfigurationError, InputTypeError
from ..surface import IntrinsicSurface, Joined, ScriptingSurface
from .expressions import ExpressionEvaluator
from .registry import FunctionRegistry


logger = logging.getLogger(__name__)

DIRECTIVE_GROUP = 'directive'

# Non-greedy so that "C{a} C{b}" yields two directives
DEFAULT_CAPTURE_PATTERN = re.compile(r'C\{(?P<directive>.*?)\}')


@dataclass
class TemplateToken:
    """A slice of template text; directive is set when the slice matched the capture pattern."""
    text: str
    directive: Optional[str] = None

    @property
    def is_directive(self) -> bool:
        return self.directive is not None


class EvaluationContext:
    """
    Evaluation context shared by every directive of one template.

    Exposes the scripting surface built-ins, host functions and variables
    to directives through a FunctionRegistry and an ExpressionEvaluator.
    """

    def __init__(
        self,
        surface: Optional[ScriptingSurface] = None,
        functions: Optional[Dict[str, Callable[..., Any]]] = None,
        variables: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the context.

        Args:
            surface: Scripting surface (defaults to CloudFormation intrinsics)
            functions: Additional functions callable from directives
            variables: Named values visible to directives
        """
        self.surface = surface or IntrinsicSurface()
        self.registry = FunctionRegistry(self.surface)
        if functions:
            self.registry.register_all(functions)
        self.evaluator = ExpressionEvaluator(self.registry, variables)

    def register(self, name: str, function: Callable[..., Any]) -> None:
        self.registry.register(name, function)

    def set_variable(self, name: str, value: Any) -> None:
        self.evaluator.variables[name] = value

    def evaluate(self, directive: str) -> Any:
        """Evaluate one directive's source text."""
        return self.evaluator.evaluate(directive)


def compile_capture_pattern(capture_pattern: Union[str, re.Pattern, None] = None) -> re.Pattern:
    """
    Validate and compile a capture pattern.

    Args:
        capture_pattern: Pattern string, compiled pattern, or None for the default

    Returns:
        Compiled pattern exposing the 'directive' group

    Raises:
        ConfigurationError: If the pattern is invalid or lacks the 'directive' group
    """
    if capture_pattern is None:
        return DEFAULT_CAPTURE_PATTERN

    if isinstance(capture_pattern, str):
        try:
            capture_pattern = re.compile(capture_pattern)
        except re.error as e:
            raise ConfigurationError(f"'capture_pattern' is not a valid regular expression: {e}") from e
    elif not isinstance(capture_pattern, re.Pattern):
        raise ConfigurationError(
            f"'capture_pattern' must be a regular expression, got {type(capture_pattern).__name__}"
        )

    if DIRECTIVE_GROUP not in capture_pattern.groupindex:
        raise ConfigurationError(
            f"'capture_pattern' must include a named group '{DIRECTIVE_GROUP}': {capture_pattern.pattern!r}"
        )

    return capture_pattern


def tokenize(text: str, capture_pattern: re.Pattern) -> List[TemplateToken]:
    """
    Split text into alternating literal and directive tokens.

    The remaining suffix is partitioned at the first match until no match
    is left; the final suffix is always the last token.

    Args:
        text: Template text
        capture_pattern: Compiled pattern with a 'directive' group

    Returns:
        Tokens in original order, including empty literals

    Raises:
        ConfigurationError: If the pattern matches an empty span
    """
    tokens: List[TemplateToken] = []
    remaining = text

    while True:
        match = capture_pattern.search(remaining)
        if match is None:
            break
        if match.end() == match.start():
            raise ConfigurationError(
                f"'capture_pattern' matched an empty span at position {match.start()}: "
                f"{capture_pattern.pattern!r}"
            )

        tokens.append(TemplateToken(remaining[:match.start()]))
        tokens.append(TemplateToken(match.group(0), match.group(DIRECTIVE_GROUP) or ''))
        remaining = remaining[match.end():]

    tokens.append(TemplateToken(remaining))
    return tokens


def cfize(
    text: str,
    capture_pattern: Union[str, re.Pattern, None] = None,
    context: Optional[EvaluationContext] = None,
    surface: Optional[ScriptingSurface] = None,
    functions: Optional[Dict[str, Callable[..., Any]]] = None,
    variables: Optional[Dict[str, Any]] = None
) -> Joined:
    """
    Evaluate every directive in text and substitute its result.

    Args:
        text: Template text containing directives such as C{join('-', ['a', 'b'])}
        capture_pattern: Override for the default C{...} pattern; must have a 'directive' group
        context: Evaluation context to use; a new one is built from surface,
            functions and variables when omitted
        surface: Scripting surface for a new context
        functions: Extra directive functions for a new context
        variables: Variables for a new context

    Returns:
        The rendered string, or an Fn::Join intrinsic when a directive
        produced an unresolved value such as a Ref

    Raises:
        InputTypeError: If text is not a string or a result cannot be joined
        ConfigurationError: If the capture pattern is invalid
        EvaluationError: If a directive cannot be evaluated
    """
    if not isinstance(text, str):
        raise InputTypeError(f"'text' must be a string, got {type(text).__name__}")

    pattern = compile_capture_pattern(capture_pattern)
    tokens = tokenize(text, pattern)
    logger.debug(f"Tokenized template into {len(tokens)} tokens")

    if context is None:
        context = EvaluationContext(surface=surface, functions=functions, variables=variables)

    rendered: List[Any] = []
    for token in tokens:
        if not token.is_directive:
            rendered.append(token.text)
            continue

        logger.debug(f"Evaluating directive: {token.directive}")
        value = context.evaluate(token.directive)
        # Directives evaluated only for their side effects render as nothing
        rendered.append('' if value is None else value)

    return context.surface.join('', [value for value in rendered if value != ''])
