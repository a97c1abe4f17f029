"""Shared fixtures for cfize tests."""

import base64

import pytest

from cfize.provisioning import BootstrapBuilder, Resource
from cfize.surface import IntrinsicSurface, StaticSurface


STACK_NAME = "prod-stack"
REGION = "us-east-1"


def decode_user_data(resource: Resource) -> str:
    """Decode the base64 UserData produced with a StaticSurface."""
    return base64.b64decode(resource.get_attribute('UserData')).decode('utf-8')


@pytest.fixture
def static_surface():
    return StaticSurface(STACK_NAME, REGION)


@pytest.fixture
def intrinsic_surface():
    return IntrinsicSurface()


@pytest.fixture
def resource():
    return Resource("WebServer")


@pytest.fixture
def builder(resource, static_surface):
    return BootstrapBuilder(resource, static_surface)
