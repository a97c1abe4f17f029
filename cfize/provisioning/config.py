"""
Config section builder.

A ConfigSection owns a private copy of one AWS::CloudFormation::Init
section. The builder that opened it writes the result back only when the
configuration block completes.
"""

import copy
from typing import Any, Dict, List, Optional, Union


class ConfigSection:
    """Builds the commands, files and packages of one cfn-init config section."""

    def __init__(self, section: Optional[Dict[str, Any]] = None):
        """
        Initialize the builder.

        Args:
            section: Existing section mapping; it is copied, never mutated
        """
        self._section: Dict[str, Any] = copy.deepcopy(section) if section else {}

    @property
    def commands(self) -> Dict[str, Any]:
        return self._section.setdefault('commands', {})

    @property
    def files(self) -> Dict[str, Any]:
        return self._section.setdefault('files', {})

    @property
    def packages(self) -> Dict[str, Any]:
        return self._section.setdefault('packages', {})

    def command(self, name: str, cmd: Any, options: Optional[Dict[str, Any]] = None) -> None:
        """
        Register a command.

        Args:
            name: Command key; cfn-init runs commands in key order
            cmd: Shell string or argument list
            options: Extra command options (env, cwd, test, ignoreErrors, ...)
        """
        entry = dict(options or {})
        entry['command'] = cmd
        self.commands[name] = entry

    def file(self, path: str, options: Optional[Dict[str, Any]] = None) -> None:
        """Register a file (content, source, mode, owner, group, ...) at path."""
        self.files[path] = dict(options or {})

    def package(self, manager: str, name: str, versions: Union[List[str], str, None] = None) -> None:
        """
        Register a package.

        Args:
            manager: Package manager (apt, yum, rpm, python, rubygems, msi)
            name: Package name
            versions: Versions to install, empty means latest; rpm and msi
                take a package URL string instead, stored as given
        """
        self.packages.setdefault(manager, {})[name] = versions if versions is not None else []

    def to_dict(self) -> Dict[str, Any]:
        return self._section
