"""
Bootstrap metadata builder.

Populates a resource's AWS::CloudFormation::Init and
AWS::CloudFormation::Authentication metadata and generates the user-data
shell script that installs cfn-bootstrap, runs cfn-init against the
configured config sets, optionally starts cfn-hup and signals the stack.
"""

import copy
import logging
from contextlib import contextmanager
from dataclasses import asdict
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from ..exceptions import ConfigurationError, ValidationError
from ..surface import IntrinsicSurface, ScriptingSurface
from .config import ConfigSection
from .resource import Resource
from .types import APT_FLAVORS, RPM_FLAVORS, BootstrapOptions, config_set_names


logger = logging.getLogger(__name__)

INIT_KEY = 'AWS::CloudFormation::Init'
AUTHENTICATION_KEY = 'AWS::CloudFormation::Authentication'
CONFIG_SETS_KEY = 'configSets'
DEFAULT_CONFIG_SET = 'default'

METADATA_ATTRIBUTE = 'Metadata'
USER_DATA_ATTRIBUTE = 'UserData'

CFN_HUP = 'cfn_hup'

CFN_BOOTSTRAP_RPM = 'https://s3.amazonaws.com/cloudformation-examples/aws-cfn-bootstrap-latest.amzn1.noarch.rpm'
CFN_BOOTSTRAP_TARBALL = 'https://s3.amazonaws.com/cloudformation-examples/aws-cfn-bootstrap-latest.tar.gz'

CFN_INIT = '/usr/local/bin/cfn-init'
CFN_SIGNAL = '/usr/local/bin/cfn-signal'
CFN_HUP_BIN = '/usr/local/bin/cfn-hup'

OptionsInput = Union[BootstrapOptions, Mapping[str, Any], None]


class BootstrapBuilder:
    """
    Builds cfn-init metadata and the bootstrap script for one resource.

    Nested builders work on copies: config sets and config sections are
    copied out of the metadata, changed, and written back when the
    operation completes, so a failing configuration block leaves the
    stored metadata untouched.
    """

    def __init__(self, resource: Resource, surface: Optional[ScriptingSurface] = None):
        """
        Initialize the builder.

        Args:
            resource: Resource whose Metadata and UserData are populated
            surface: Scripting surface used for joins, encoding and stack lookups
        """
        self.resource = resource
        self.surface = surface or IntrinsicSurface()

    def cfn_metadata(self) -> Dict[str, Any]:
        """Return the resource's Metadata mapping, creating it if absent."""
        metadata = self.resource.get_attribute(METADATA_ATTRIBUTE)
        if metadata is None:
            metadata = {}
            self.resource.set_attribute(METADATA_ATTRIBUTE, metadata)
        return metadata

    def cloudformation_init(self) -> Dict[str, Any]:
        """Return the AWS::CloudFormation::Init mapping, creating it if absent."""
        return self.cfn_metadata().setdefault(INIT_KEY, {})

    def cfn_auth(self, name: str, options: Optional[Dict[str, Any]] = None) -> None:
        """
        Register an authentication method (AWS::CloudFormation::Authentication).

        Args:
            name: Authentication method name, referenced by files and sources
            options: Method definition (type, buckets, roleName, ...), stored verbatim
        """
        authentication = self.cfn_metadata().setdefault(AUTHENTICATION_KEY, {})
        authentication[name] = options if options is not None else {}

    def config_set(self, name: str) -> Dict[str, str]:
        """Reference to another config set, for use inside a config set list."""
        return {"ConfigSet": name}

    def cfn_init_config_set(self, name: str, sections: Any) -> None:
        """
        Add sections to a config set without duplicates.

        Existing entries keep their position; new entries are appended in
        the order given.

        Args:
            name: Config set name
            sections: Section name, config set reference, or a list of them
        """
        init = self.cloudformation_init()
        existing = init.get(CONFIG_SETS_KEY)
        config_sets = copy.deepcopy(existing) if existing is not None else {DEFAULT_CONFIG_SET: []}

        merged = list(config_sets.get(name, []))
        for section in config_set_names(sections):
            if section not in merged:
                merged.append(section)
        config_sets[name] = merged

        init[CONFIG_SETS_KEY] = config_sets
        logger.debug(f"Config set '{name}' on {self.resource.name}: {merged}")

    @contextmanager
    def config_section(self, name: str) -> Iterator[ConfigSection]:
        """
        Open a config section for editing.

        The section is written back to the metadata only when the
        with-block exits without an exception.

        Args:
            name: Config section name
        """
        section = ConfigSection(self.cloudformation_init().get(name))
        yield section
        self.cloudformation_init()[name] = section.to_dict()
        logger.debug(f"Wrote config section '{name}' on {self.resource.name}")

    def cfn_init_config(self, name: str, block: Callable[[ConfigSection], Any]) -> None:
        """
        Configure a config section with a block.

        Args:
            name: Config section name
            block: Called with the ConfigSection; use its command, file and
                package methods to populate it
        """
        with self.config_section(name) as section:
            block(section)

    def cfn_init_setup(self, options: OptionsInput = None, **overrides: Any) -> Any:
        """
        Reset cfn-init metadata and install the bootstrap script as UserData.

        Args:
            options: BootstrapOptions or a mapping of option names
            **overrides: Individual options, applied on top of options

        Returns:
            The base64-encoded script assigned to UserData

        Raises:
            ConfigurationError: If options are invalid or cfn_init_config_set is missing
        """
        opts = self._coerce_options(options, overrides)
        errors = opts.validate()
        if errors:
            raise ConfigurationError(errors=errors)

        self.cfn_metadata()[INIT_KEY] = {}

        script: List[Any] = ["#!/bin/bash -xe\n"]
        script.extend(self._install_lines(opts.flavor_name))
        script.extend(self._error_exit_lines(opts.signal))
        script.append([
            CFN_INIT,
            " --configsets '", self.surface.join(',', config_set_names(opts.cfn_init_config_set)), "'",
            " --stack ", self.surface.stack_name(),
            " --resource ", self.resource.name,
            " --region ", self.surface.region(),
            " || error_exit 'Failed to run cfn-init'\n"
        ])

        if opts.cfn_hup_config_set is not None:
            self.cfn_hup(opts)
            script.append(f"{CFN_HUP_BIN} || error_exit 'Failed to start cfn-hup'\n")

        if opts.signal:
            script.append(self._signal_line(opts.signal, success=True))

        logger.debug(f"Assembled bootstrap script for {self.resource.name} with {len(script)} lines")
        user_data = self.surface.base64(self.surface.join('', script))
        self.resource.set_attribute(USER_DATA_ATTRIBUTE, user_data)
        return user_data

    def cfn_hup(self, options: OptionsInput) -> None:
        """
        Configure cfn-hup through a dedicated cfn_hup config set.

        Writes cfn-hup.conf, an optional cfn-credentials file and a reload
        hook that re-runs cfn-init on metadata updates.

        Raises:
            ConfigurationError: If cfn_hup_config_set is missing
        """
        opts = self._coerce_options(options, {})
        if opts.cfn_hup_config_set is None:
            raise ConfigurationError(
                "Please specify a `cfn_hup_config_set`",
                errors=[ValidationError("'cfn_hup_config_set' is required", 'cfn_hup_config_set')]
            )

        resource_name = self.resource.name
        target_config_set = self.surface.join(',', config_set_names(opts.cfn_hup_config_set))
        stack_name = self.surface.stack_name()
        region = self.surface.region()

        self.cfn_init_config_set(CFN_HUP, [CFN_HUP])

        with self.config_section(CFN_HUP) as section:
            if opts.access_key and opts.secret_key:
                section.file('/etc/cfn/cfn-credentials', {
                    'content': self.surface.join('', [
                        "AWSAccessKeyId=", opts.access_key, "\n",
                        "AWSSecretKey=", opts.secret_key, "\n"
                    ]),
                    'mode': '000400',
                    'owner': 'root',
                    'group': 'root'
                })

            section.file('/etc/cfn/cfn-hup.conf', {
                'content': self.surface.join('', [
                    "[main]\n",
                    "stack=", stack_name, "\n",
                    "region=", region, "\n",
                    "interval=", opts.hup_interval, "\n"
                ]),
                'mode': '000400',
                'owner': 'root',
                'group': 'root'
            })

            section.file('/etc/cfn/hooks.d/cfn-init-reload.conf', {
                'content': self.surface.join('', [
                    "[cfn-auto-reloader-hook]\n",
                    "triggers=post.update\n",
                    f"path=Resources.{resource_name}.Metadata\n",
                    "action=", CFN_INIT,
                    " -c '", target_config_set, "'",
                    " -s ", stack_name,
                    " --region ", region,
                    f" -r {resource_name}",
                    "\n",
                    "runas=root\n"
                ])
            })

    def functions(self) -> Dict[str, Callable[..., Any]]:
        """Builder operations exposed to directives."""
        return {
            'cfn_auth': self.cfn_auth,
            'config_set': self.config_set,
            'cfn_init_config_set': self.cfn_init_config_set,
            'cfn_init_setup': self.cfn_init_setup,
        }

    def _install_lines(self, flavor: Optional[str]) -> List[str]:
        lines = [
            "which cfn-init > /dev/null\n",
            "if [[ $? -ne 0 ]]\n",
            "then\n",
        ]
        if flavor in RPM_FLAVORS:
            lines.append(f"rpm -Uvh {CFN_BOOTSTRAP_RPM}\n")
        elif flavor is None or flavor in APT_FLAVORS:
            lines.extend([
                "apt-get update --fix-missing\n",
                "apt-get install -y python-pip\n",
                "pip install setuptools\n",
                f"easy_install {CFN_BOOTSTRAP_TARBALL}\n",
            ])
        else:
            logger.warning(
                f"Unrecognized flavor '{flavor}' for {self.resource.name}; "
                "bootstrap script will not install cfn-bootstrap"
            )
        lines.append("fi\n")
        return lines

    def _error_exit_lines(self, signal: Optional[str]) -> List[Any]:
        lines: List[Any] = [
            "# Helper function\n",
            "function error_exit\n",
            "{\n",
        ]
        if signal:
            lines.append(self._signal_line(signal, success=False))
        lines.extend([
            "  exit 1\n",
            "}\n",
        ])
        return lines

    def _signal_line(self, signal: str, success: bool) -> List[Any]:
        return [
            CFN_SIGNAL,
            " -s true" if success else " -s false",
            " --resource '", signal, "'",
            " --stack ", self.surface.stack_name(),
            " --region ", self.surface.region(),
            "\n"
        ]

    def _coerce_options(self, options: OptionsInput, overrides: Mapping[str, Any]) -> BootstrapOptions:
        if options is None:
            data: Dict[str, Any] = {}
        elif isinstance(options, BootstrapOptions):
            if not overrides:
                return options
            data = asdict(options)
        elif isinstance(options, Mapping):
            data = dict(options)
        else:
            raise ConfigurationError(
                f"Bootstrap options must be a mapping or BootstrapOptions, got {type(options).__name__}"
            )
        data.update(overrides)
        return BootstrapOptions.from_dict(data)
