# mini_mbs/parser/registry.py
"""
Element and joint type registries.

A registry maps case-insensitive type names to parsed definitions and
creates Elements / Joints from them. Registries are plain objects: create
one per loading context and pass it to the system loader.

Examples:
---------
>>> elements = ElementRegistry()
>>> elements.load_folder("definitions/elements")
>>> joints = JointRegistry()
>>> joints.load_folder("definitions/joints")
>>> system = MultibodySystem.load_from_file("definitions/systems/double_pendulum.xml", elements, joints)
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..config import CONFIG
from ..element import Element
from ..exceptions import (
    ElementAlreadyExistsError,
    ElementNotFoundError,
    JointAlreadyExistsError,
    JointNotFoundError,
)
from ..model import Joint
from .definitions import ElementDefinition, JointDefinition
from .parameters import ParameterSet


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ElementRegistry:
    """Registered element types, by lower-cased name."""

    def __init__(self):
        self._definitions: Dict[str, ElementDefinition] = {}

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def names(self) -> List[str]:
        return sorted(self._definitions)

    def add(self, definition: ElementDefinition) -> ElementDefinition:
        key = definition.name.lower()
        if key in self._definitions:
            raise ElementAlreadyExistsError(f"An element type named '{definition.name}' is already registered")
        self._definitions[key] = definition
        logger.debug(f"Registered element type '{key}' ({len(definition.frames)} frames)")
        return definition

    def load_definition(self, text: str) -> ElementDefinition:
        """Parse element definition XML and register it."""
        return self.add(ElementDefinition.from_xml(text))

    def load_file(self, path: PathLike) -> ElementDefinition:
        return self.load_definition(Path(path).read_text(encoding="utf-8"))

    def load_folder(self, path: PathLike) -> List[ElementDefinition]:
        """Register every file with the element extension in ``path`` (sorted by name)."""
        files = sorted(Path(path).glob(f"*{CONFIG.element_file_extension}"))
        loaded = [self.load_file(file) for file in files]
        logger.info(f"Loaded {len(loaded)} element definitions from {path}")
        return loaded

    def get(self, name: str) -> ElementDefinition:
        key = name.lower()
        if key not in self._definitions:
            raise ElementNotFoundError(f"No element type with name '{name}' is registered")
        return self._definitions[key]

    def create(self, type_name: str, parameters: Optional[ParameterSet] = None, name: Optional[str] = None) -> Element:
        """
        Instantiate an element of type ``type_name``.

        ``name`` defaults to the type name.
        """
        definition = self.get(type_name)
        return definition.instantiate(name if name is not None else type_name.lower(), parameters)


class JointRegistry:
    """Registered joint types, by lower-cased name."""

    def __init__(self):
        self._definitions: Dict[str, JointDefinition] = {}

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def names(self) -> List[str]:
        return sorted(self._definitions)

    def add(self, definition: JointDefinition) -> JointDefinition:
        key = definition.name.lower()
        if key in self._definitions:
            raise JointAlreadyExistsError(f"A joint type named '{definition.name}' is already registered")
        self._definitions[key] = definition
        logger.debug(
            f"Registered joint type '{key}' "
            f"(free: {', '.join(d.name.lower() for d in definition.free_degrees_of_freedom) or 'none'})"
        )
        return definition

    def load_definition(self, text: str) -> JointDefinition:
        """Parse joint definition XML and register it."""
        return self.add(JointDefinition.from_xml(text))

    def load_file(self, path: PathLike) -> JointDefinition:
        return self.load_definition(Path(path).read_text(encoding="utf-8"))

    def load_folder(self, path: PathLike) -> List[JointDefinition]:
        files = sorted(Path(path).glob(f"*{CONFIG.joint_file_extension}"))
        loaded = [self.load_file(file) for file in files]
        logger.info(f"Loaded {len(loaded)} joint definitions from {path}")
        return loaded

    def get(self, name: str) -> JointDefinition:
        key = name.lower()
        if key not in self._definitions:
            raise JointNotFoundError(f"No joint type with name '{name}' is registered")
        return self._definitions[key]

    def create(self, type_name: str) -> Joint:
        return self.get(type_name).instantiate()
