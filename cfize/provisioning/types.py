"""
Bootstrap option definitions.

Defines the host flavors and the options accepted by
BootstrapBuilder.cfn_init_setup.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from ..exceptions import ConfigurationError, ValidationError
from ..surface import is_intrinsic


class Flavor(str, Enum):
    """Host operating-system family, selects the cfn-bootstrap install path."""
    REDHAT = "redhat"
    CENTOS = "centos"
    AMAZON = "amazon"
    UBUNTU = "ubuntu"
    DEBIAN = "debian"


RPM_FLAVORS = {Flavor.REDHAT.value, Flavor.CENTOS.value, Flavor.AMAZON.value}
APT_FLAVORS = {Flavor.UBUNTU.value, Flavor.DEBIAN.value}

DEFAULT_HUP_INTERVAL = 1

ConfigSetNames = Union[str, List[str]]


def config_set_names(value: ConfigSetNames) -> List[str]:
    """Normalize a single config-set name or a list of names to a list."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


@dataclass
class BootstrapOptions:
    """
    Options for the generated bootstrap script.

    Attributes:
        flavor: Host OS family; None means ubuntu/debian
        signal: Logical name of the resource to cfn-signal (usually the one
            carrying the creation policy); no signalling when unset
        cfn_init_config_set: Config set(s) cfn-init applies at boot (required)
        cfn_hup_config_set: Config set(s) cfn-hup re-applies on metadata
            updates; cfn-hup is not configured when unset
        access_key: Access key written to cfn-credentials
        secret_key: Secret key written to cfn-credentials
        interval: cfn-hup polling interval in minutes, or an intrinsic such as a Ref
    """
    flavor: Optional[Union[Flavor, str]] = None
    signal: Optional[str] = None
    cfn_init_config_set: Optional[ConfigSetNames] = None
    cfn_hup_config_set: Optional[ConfigSetNames] = None
    access_key: Optional[Any] = None
    secret_key: Optional[Any] = None
    interval: Optional[Any] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'BootstrapOptions':
        """
        Build options from a mapping, rejecting unknown keys.

        Raises:
            ConfigurationError: If the mapping contains unknown keys
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(str(key) for key in data if key not in known)
        if unknown:
            raise ConfigurationError(errors=[
                ValidationError(f"Unknown bootstrap option '{key}'", key) for key in unknown
            ])
        return cls(**dict(data))

    @property
    def flavor_name(self) -> Optional[str]:
        if self.flavor is None:
            return None
        if isinstance(self.flavor, Flavor):
            return self.flavor.value
        return str(self.flavor).lower()

    @property
    def hup_interval(self) -> Any:
        return DEFAULT_HUP_INTERVAL if self.interval is None else self.interval

    def validate(self) -> List[ValidationError]:
        """
        Validate option types and required fields.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.flavor is not None and not isinstance(self.flavor, str):
            errors.append(ValidationError(
                f"'flavor' must be a string, got {type(self.flavor).__name__}", 'flavor'
            ))

        if self.signal is not None and not isinstance(self.signal, str):
            errors.append(ValidationError(
                f"'signal' must be a resource name, got {type(self.signal).__name__}", 'signal'
            ))

        if self.cfn_init_config_set is None:
            errors.append(ValidationError(
                "'cfn_init_config_set' is required", 'cfn_init_config_set'
            ))
        else:
            errors.extend(self._validate_config_set('cfn_init_config_set', self.cfn_init_config_set))

        if self.cfn_hup_config_set is not None:
            errors.extend(self._validate_config_set('cfn_hup_config_set', self.cfn_hup_config_set))

        for key in ('access_key', 'secret_key'):
            value = getattr(self, key)
            if value is not None and not (isinstance(value, str) or is_intrinsic(value)):
                errors.append(ValidationError(
                    f"'{key}' must be a string or intrinsic function", key
                ))

        if self.interval is not None and not is_intrinsic(self.interval):
            if isinstance(self.interval, bool) or not isinstance(self.interval, int) or self.interval < 1:
                errors.append(ValidationError(
                    f"'interval' must be a positive integer or intrinsic function, got {self.interval!r}", 'interval'
                ))

        return errors

    def _validate_config_set(self, key: str, value: Any) -> List[ValidationError]:
        names = config_set_names(value)
        if not names:
            return [ValidationError(f"'{key}' must not be empty", key)]
        errors = []
        for i, name in enumerate(names):
            if not isinstance(name, str) or not name:
                errors.append(ValidationError(f"'{key}[{i}]' must be a non-empty string", key))
        return errors
