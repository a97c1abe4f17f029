"""
Scripting surface consumed by directives and the bootstrap builder.

The surface is the only place that knows how strings are joined, encoded and
how the stack name and region are obtained. Two implementations ship:

- IntrinsicSurface: emits CloudFormation intrinsic functions (Ref, Fn::Join,
  Fn::Base64) so values resolve when the stack is created.
- StaticSurface: resolves stack name and region to literal strings and
  base64-encodes eagerly, for rendering outside of CloudFormation.
"""

import base64 as b64
import logging
from typing import Any, Dict, Iterator, List, Union

from .exceptions import EvaluationError, InputTypeError


logger = logging.getLogger(__name__)

REF_KEY = "Ref"
FN_JOIN_KEY = "Fn::Join"
FN_BASE64_KEY = "Fn::Base64"

STACK_NAME_PSEUDO_PARAMETER = "AWS::StackName"
REGION_PSEUDO_PARAMETER = "AWS::Region"

Joined = Union[str, Dict[str, Any]]


def is_intrinsic(value: Any) -> bool:
    """Return True for a single-key mapping such as {"Ref": ...} or {"Fn::GetAtt": ...}."""
    if not isinstance(value, dict) or len(value) != 1:
        return False
    key = next(iter(value))
    return isinstance(key, str) and (key == REF_KEY or key.startswith("Fn::"))


class ScriptingSurface:
    """
    Base scripting surface.

    Subclasses supply base64, stack_name and region. Joining is shared:
    nested lists are flattened, scalars are coerced to strings and adjacent
    strings are merged. A plain string is returned when every element is a
    string, otherwise an Fn::Join intrinsic.
    """

    def join(self, separator: str, values: Any) -> Joined:
        """
        Join values with separator.

        Args:
            separator: String placed between elements
            values: String, intrinsic, or arbitrarily nested list of them

        Returns:
            Joined string, or an Fn::Join intrinsic when any element is unresolved

        Raises:
            InputTypeError: If the separator or an element is not reducible to a string
        """
        if not isinstance(separator, str):
            raise InputTypeError(
                f"join separator must be a string, got {type(separator).__name__}"
            )

        parts: List[Any] = []
        for leaf in self._flatten(values, separator):
            if isinstance(leaf, str) and parts and isinstance(parts[-1], str):
                parts[-1] = parts[-1] + separator + leaf
            else:
                parts.append(leaf)

        if all(isinstance(part, str) for part in parts):
            return separator.join(parts)
        return {FN_JOIN_KEY: [separator, parts]}

    def base64(self, value: Any) -> Any:
        """Base64-encode value; each surface supplies its own encoding."""
        raise NotImplementedError

    def stack_name(self) -> Any:
        """Name of the stack being built; each surface supplies its own lookup."""
        raise NotImplementedError

    def region(self) -> Any:
        """Region the stack is deployed to; each surface supplies its own lookup."""
        raise NotImplementedError

    def _flatten(self, values: Any, separator: str) -> Iterator[Any]:
        if isinstance(values, (list, tuple)):
            for value in values:
                yield from self._flatten(value, separator)
        elif is_intrinsic(values):
            inner = values.get(FN_JOIN_KEY)
            # An Fn::Join with the same separator can be spliced in place
            if separator == "" and isinstance(inner, list) and len(inner) == 2 and inner[0] == "":
                yield from self._flatten(inner[1], separator)
            else:
                yield values
        else:
            yield self._coerce(values)

    def _coerce(self, value: Any) -> str:
        if isinstance(value, bool):
            return 'true' if value else 'false'
        elif isinstance(value, str):
            return value
        elif isinstance(value, (int, float)):
            return str(value)
        raise InputTypeError(
            f"join element must be a string, number or intrinsic, got {type(value).__name__}: {value!r}"
        )


class IntrinsicSurface(ScriptingSurface):
    """Surface emitting CloudFormation intrinsic functions."""

    def base64(self, value: Any) -> Dict[str, Any]:
        return {FN_BASE64_KEY: value}

    def stack_name(self) -> Dict[str, str]:
        return {REF_KEY: STACK_NAME_PSEUDO_PARAMETER}

    def region(self) -> Dict[str, str]:
        return {REF_KEY: REGION_PSEUDO_PARAMETER}


class StaticSurface(ScriptingSurface):
    """Surface with a fixed stack name and region and eager base64 encoding."""

    def __init__(self, stack_name: str, region: str):
        """
        Initialize the static surface.

        Args:
            stack_name: Literal stack name returned by stack_name()
            region: Literal region returned by region()
        """
        self._stack_name = stack_name
        self._region = region

    def base64(self, value: Any) -> str:
        if not isinstance(value, str):
            raise EvaluationError(
                f"StaticSurface can only base64-encode strings, got {type(value).__name__}"
            )
        logger.debug(f"Encoding {len(value)} characters as base64")
        return b64.b64encode(value.encode('utf-8')).decode('ascii')

    def stack_name(self) -> str:
        return self._stack_name

    def region(self) -> str:
        return self._region
