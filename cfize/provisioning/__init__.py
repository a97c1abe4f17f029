"""
Provisioning module.
Builds cfn-init metadata and the bootstrap user-data script for resources.
"""

from .bootstrap import BootstrapBuilder
from .config import ConfigSection
from .resource import Resource
from .types import BootstrapOptions, Flavor

__all__ = [
    'BootstrapBuilder',
    'BootstrapOptions',
    'ConfigSection',
    'Flavor',
    'Resource',
]
