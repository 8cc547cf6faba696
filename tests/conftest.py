# tests/conftest.py
"""
Shared fixtures: registries loaded from the sample definitions shipped in
definitions/, and systems built from them.
"""

import os

import pytest

from mini_mbs.parser import ElementRegistry, JointRegistry, parse_system_file


DEFINITIONS = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "definitions")


@pytest.fixture
def definitions_dir():
    return DEFINITIONS


@pytest.fixture
def element_registry():
    registry = ElementRegistry()
    registry.load_folder(os.path.join(DEFINITIONS, "elements"))
    return registry


@pytest.fixture
def joint_registry():
    registry = JointRegistry()
    registry.load_folder(os.path.join(DEFINITIONS, "joints"))
    return registry


@pytest.fixture
def double_pendulum(element_registry, joint_registry):
    return parse_system_file(
        os.path.join(DEFINITIONS, "systems", "double_pendulum.xml"),
        element_registry,
        joint_registry,
    )


@pytest.fixture
def cart_pendulum(element_registry, joint_registry):
    return parse_system_file(
        os.path.join(DEFINITIONS, "systems", "cart_pendulum.xml"),
        element_registry,
        joint_registry,
    )
