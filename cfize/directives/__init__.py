"""
Directive interpolation module.
Extracts C{...} directives from template text and evaluates them with a
restricted expression language.
"""

from .interpolation import (
    DEFAULT_CAPTURE_PATTERN,
    EvaluationContext,
    TemplateToken,
    cfize,
    compile_capture_pattern,
    tokenize,
)
from .expressions import ExpressionEvaluator, ExpressionParser
from .registry import FunctionRegistry

__all__ = [
    'DEFAULT_CAPTURE_PATTERN',
    'EvaluationContext',
    'TemplateToken',
    'cfize',
    'compile_capture_pattern',
    'tokenize',
    'ExpressionEvaluator',
    'ExpressionParser',
    'FunctionRegistry',
]
