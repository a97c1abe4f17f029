"""
Function registry for embedded directives.

Holds the fixed set of functions a directive may call: the scripting
surface built-ins plus anything the host registers (for example the
bootstrap builder operations).
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional

from ..exceptions import ConfigurationError
from ..surface import ScriptingSurface


logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


class FunctionRegistry:
    """
    Registry of directive functions.

    Built-ins are bound to the injected surface; host functions may
    override them by registering under the same name.
    """

    def __init__(self, surface: ScriptingSurface):
        """Initialize the registry with the surface built-ins."""
        self.surface = surface
        self._functions: Dict[str, Callable[..., Any]] = self._load_builtin_functions()

    def _load_builtin_functions(self) -> Dict[str, Callable[..., Any]]:
        """
        Load the scripting surface built-ins.

        Returns:
            Dictionary of built-in functions
        """
        return {
            "join": self.surface.join,
            "base64": self.surface.base64,
            "stack_name": self.surface.stack_name,
            "region": self.surface.region,
        }

    def register(self, name: str, function: Callable[..., Any]) -> None:
        """
        Register a function.

        Args:
            name: Name used to call the function from directives
            function: The callable

        Raises:
            ConfigurationError: If the name is not an identifier or the function is not callable
        """
        if not isinstance(name, str) or not NAME_PATTERN.match(name):
            raise ConfigurationError(f"Invalid directive function name: {name!r}")
        if not callable(function):
            raise ConfigurationError(f"Directive function '{name}' must be callable")

        self._functions[name] = function
        logger.debug(f"Registered directive function: {name}")

    def register_all(self, functions: Dict[str, Callable[..., Any]]) -> None:
        for name, function in functions.items():
            self.register(name, function)

    def get(self, name: str) -> Optional[Callable[..., Any]]:
        """
        Get a function by name.

        Args:
            name: Function name

        Returns:
            The callable or None if not registered
        """
        return self._functions.get(name)

    def names(self) -> List[str]:
        return sorted(self._functions)

    def __contains__(self, name: str) -> bool:
        return name in self._functions
