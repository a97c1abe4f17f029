"""Bootstrap options loader with strict validation."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union
import yaml

from cfize.exceptions import ConfigurationError, ValidationError
from cfize.provisioning.types import BootstrapOptions, Flavor


logger = logging.getLogger(__name__)


class PreservingLoader(yaml.SafeLoader):
    """YAML loader that keeps words like 'on', 'yes' and 'no' as strings."""
    pass


# Config set and resource names such as 'on' or 'no' must not turn into booleans;
# only the literal true/false spellings stay booleans.
PreservingLoader.yaml_implicit_resolvers = dict(PreservingLoader.yaml_implicit_resolvers)
for first_char in 'oOyYnN':
    if first_char in PreservingLoader.yaml_implicit_resolvers:
        PreservingLoader.yaml_implicit_resolvers[first_char] = [
            (tag, regexp) for tag, regexp in PreservingLoader.yaml_implicit_resolvers[first_char]
            if tag != 'tag:yaml.org,2002:bool'
        ]


class OptionsLoader:
    """Loads BootstrapOptions from YAML, either top-level or under a 'bootstrap' key."""

    SECTION_KEY = 'bootstrap'
    FLAVORS = {flavor.value for flavor in Flavor}

    def __init__(self):
        self.errors: List[ValidationError] = []

    def load(self, path: Union[str, Path]) -> BootstrapOptions:
        """
        Load and validate options from a YAML file.

        Raises:
            ConfigurationError: With every validation error found
        """
        self.errors = []
        try:
            with open(path, 'r') as f:
                document = yaml.load(f, Loader=PreservingLoader)
        except (OSError, yaml.YAMLError) as e:
            self._add_error(f"Failed to load options: {e}")
            self._raise_validation_errors()

        logger.debug(f"Loaded bootstrap options from {path}")
        return self.load_dict(document)

    def load_dict(self, document: Any) -> BootstrapOptions:
        """
        Validate an already-parsed options document.

        Raises:
            ConfigurationError: With every validation error found
        """
        self.errors = []
        if document is None or not isinstance(document, dict):
            self._add_error("Options must be a YAML object/dictionary")
            self._raise_validation_errors()

        if self.SECTION_KEY in document:
            for key in document:
                if key != self.SECTION_KEY:
                    self._add_error(f"Unknown field '{key}' next to '{self.SECTION_KEY}'", str(key))
            document = document[self.SECTION_KEY]
            if not isinstance(document, dict):
                self._add_error(f"'{self.SECTION_KEY}' must be a dictionary", self.SECTION_KEY)
                self._raise_validation_errors()

        known: Dict[str, Any] = {}
        for key, value in document.items():
            if key in BootstrapOptions.__dataclass_fields__:
                known[key] = value
            else:
                self._add_error(f"Unknown bootstrap option '{key}'", str(key))

        options = BootstrapOptions(**known)
        self.errors.extend(options.validate())

        flavor = options.flavor
        if isinstance(flavor, str) and flavor.lower() not in self.FLAVORS:
            self._add_error(
                f"Unsupported flavor '{flavor}'. Supported: {sorted(self.FLAVORS)}", 'flavor'
            )

        if self.errors:
            self._raise_validation_errors()

        return options

    def _add_error(self, message: str, path: str = ""):
        """Add validation error."""
        self.errors.append(ValidationError(message, path))

    def _raise_validation_errors(self):
        """Raise ConfigurationError with accumulated errors."""
        raise ConfigurationError(errors=self.errors)
