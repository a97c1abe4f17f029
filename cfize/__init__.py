"""
cfize: embedded-directive templating and cfn-init bootstrap builder for
CloudFormation templates.
"""

from .directives import DEFAULT_CAPTURE_PATTERN, EvaluationContext, cfize
from .exceptions import (
    CfizeError,
    ConfigurationError,
    EvaluationError,
    InputTypeError,
    ValidationError,
)
from .loader import OptionsLoader
from .provisioning import BootstrapBuilder, BootstrapOptions, ConfigSection, Flavor, Resource
from .surface import IntrinsicSurface, ScriptingSurface, StaticSurface

__all__ = [
    'DEFAULT_CAPTURE_PATTERN',
    'EvaluationContext',
    'cfize',
    'CfizeError',
    'ConfigurationError',
    'EvaluationError',
    'InputTypeError',
    'ValidationError',
    'OptionsLoader',
    'BootstrapBuilder',
    'BootstrapOptions',
    'ConfigSection',
    'Flavor',
    'Resource',
    'IntrinsicSurface',
    'ScriptingSurface',
    'StaticSurface',
]
