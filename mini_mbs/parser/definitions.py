# mini_mbs/parser/definitions.py
"""
ELEMENT AND JOINT DEFINITIONS (*.edf / *.jdf)
=============================================

A definition is the parsed, not yet evaluated, content of one definition
file. Values stay operation trees until an element is instantiated with a
concrete ParameterSet, so one definition serves many bodies.

Element definition:

    <ElementDefinition>
      <Name>rod</Name>
      <Author>...</Author>
      <Description>...</Description>            (optional)
      <URL>...</URL>                            (optional)
      <Properties>
        <Mass><Parameter name="m"/></Mass>
        <Inertia><Identity/></Inertia>
      </Properties>
      <Frames>                                  (optional)
        <Frame name="tip" reference="origin">   (reference defaults to origin)
          <Translation><Vector>...</Vector></Translation>   (default zero)
          <Rotation><Matrix>...</Matrix></Rotation>         (default identity)
        </Frame>
      </Frames>
    </ElementDefinition>

Joint definition:

    <JointDefinition>
      <Name>revolute_z</Name>
      <Author>...</Author>
      <DegreesOfFreedom default="lock">
        <Free type="gamma"/>
      </DegreesOfFreedom>
    </JointDefinition>
"""

from dataclasses import dataclass, field
import logging
from typing import Dict, Optional, Tuple
import xml.etree.ElementTree as ET

import numpy as np

from ..config import CONFIG
from ..element import Element
from ..exceptions import BadDefinitionError
from ..kernel.dof import Dof
from ..model import ORIGIN_FRAME_NAME, Frame, Joint
from . import data
from . import operations as ops
from .parameters import ParameterSet


logger = logging.getLogger(__name__)

COG_FRAME_NAME = "cog"


def _header(root: ET.Element, tag: str, required: bool) -> str:
    node = root.find(tag)
    if node is None:
        if required:
            raise BadDefinitionError(f"<{root.tag}> is missing required entry <{tag}>")
        return ""
    return (node.text or "").strip()


def _write_header(root: ET.Element, name: str, author: str, description: str, url: str) -> None:
    ET.SubElement(root, "Name").text = name
    ET.SubElement(root, "Author").text = author
    if description:
        ET.SubElement(root, "Description").text = description
    if url:
        ET.SubElement(root, "URL").text = url


def _expect_root(root: ET.Element, tag: str) -> None:
    if root.tag != tag:
        raise BadDefinitionError(f"Expected root <{tag}>, found <{root.tag}>")


# =============================================================================
# Element definitions
# =============================================================================

@dataclass(frozen=True)
class FrameDefinition:
    """One <Frame> entry: name, reference frame name and two operations."""
    name: str
    reference: str = ORIGIN_FRAME_NAME
    translation: ops.VectorOperation = field(default_factory=ops.ZeroVector)
    rotation: ops.MatrixOperation = field(default_factory=ops.IdentityMatrix)

    @classmethod
    def from_node(cls, node: ET.Element) -> "FrameDefinition":
        name = node.get("name")
        if not name:
            raise BadDefinitionError("<Frame> is missing attribute 'name'")
        translation_node = node.find("Translation")
        rotation_node = node.find("Rotation")
        return cls(
            name=name.lower(),
            reference=node.get("reference", ORIGIN_FRAME_NAME).lower(),
            translation=(
                data.parse_vector(data.single_child(translation_node, f"translation of frame '{name}'"))
                if translation_node is not None else ops.ZeroVector()
            ),
            rotation=(
                data.parse_matrix(data.single_child(rotation_node, f"rotation of frame '{name}'"))
                if rotation_node is not None else ops.IdentityMatrix()
            ),
        )

    def to_xml(self) -> ET.Element:
        node = ET.Element("Frame", name=self.name, reference=self.reference)
        node.append(data.wrap("Translation", self.translation.to_xml()))
        node.append(data.wrap("Rotation", self.rotation.to_xml()))
        return node


@dataclass(frozen=True)
class ElementDefinition:
    """Parsed *.edf content: header, mass/inertia operations and frames."""
    name: str
    author: str
    mass: ops.ScalarOperation
    inertia: ops.MatrixOperation
    frames: Tuple[FrameDefinition, ...] = ()
    description: str = ""
    url: str = ""

    def __post_init__(self):
        object.__setattr__(self, "frames", tuple(self.frames))
        names = [frame.name for frame in self.frames]
        if ORIGIN_FRAME_NAME in names:
            raise BadDefinitionError(f"Element '{self.name}': frame name '{ORIGIN_FRAME_NAME}' is reserved")
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise BadDefinitionError(f"Element '{self.name}': duplicate frames {duplicates}")
        known = set(names) | {ORIGIN_FRAME_NAME}
        for frame in self.frames:
            if frame.reference not in known:
                raise BadDefinitionError(
                    f"Element '{self.name}': frame '{frame.name}' references unknown frame '{frame.reference}'"
                )

    @classmethod
    def from_xml(cls, text: str) -> "ElementDefinition":
        root = data.parse_xml(text)
        _expect_root(root, "ElementDefinition")

        properties = root.find("Properties")
        if properties is None:
            raise BadDefinitionError("<ElementDefinition> is missing required entry <Properties>")
        mass = data.parse_scalar(data.single_child(properties.find("Mass"), "mass property"))
        inertia = data.parse_matrix(data.single_child(properties.find("Inertia"), "inertia property"))

        frames_node = root.find("Frames")
        frames = tuple(
            FrameDefinition.from_node(node) for node in (frames_node if frames_node is not None else [])
        )

        return cls(
            name=_header(root, "Name", required=True),
            author=_header(root, "Author", required=True),
            description=_header(root, "Description", required=False),
            url=_header(root, "URL", required=False),
            mass=mass,
            inertia=inertia,
            frames=frames,
        )

    def to_xml(self) -> ET.Element:
        root = ET.Element("ElementDefinition")
        _write_header(root, self.name, self.author, self.description, self.url)
        properties = ET.SubElement(root, "Properties")
        properties.append(data.wrap("Mass", self.mass.to_xml()))
        properties.append(data.wrap("Inertia", self.inertia.to_xml()))
        if self.frames:
            frames = ET.SubElement(root, "Frames")
            for frame in self.frames:
                frames.append(frame.to_xml())
        return root

    def to_string(self) -> str:
        return data.to_string(self.to_xml())

    def build_frames(self, parameters: ParameterSet) -> Dict[str, Frame]:
        """
        Resolve all frames against ``parameters``.

        Frames may reference frames declared after them. Reference cycles
        and non-orthonormal rotations raise BadDefinitionError.
        """
        entries = {frame.name: frame for frame in self.frames}
        built: Dict[str, Frame] = {ORIGIN_FRAME_NAME: Frame.origin()}
        in_progress = set()

        def build(name: str) -> Frame:
            if name in built:
                return built[name]
            if name in in_progress:
                raise BadDefinitionError(f"Element '{self.name}': frame '{name}' has a cyclic reference")
            in_progress.add(name)
            entry = entries[name]
            reference = build(entry.reference)
            offset = entry.translation.resolve(parameters)
            rotation = entry.rotation.resolve(parameters)
            if offset.shape != (3,) or rotation.shape != (3, 3):
                raise BadDefinitionError(
                    f"Element '{self.name}': frame '{name}' needs a 3-vector translation and a 3×3 rotation"
                )
            if not np.allclose(rotation @ rotation.T, np.eye(3), atol=CONFIG.orthogonality_tolerance):
                raise BadDefinitionError(f"Element '{self.name}': rotation of frame '{name}' is not orthonormal")
            built[name] = Frame(name, offset=offset, rotation=rotation, reference=reference)
            return built[name]

        for name in entries:
            build(name)
        return built

    def instantiate(self, name: str, parameters: Optional[ParameterSet] = None) -> Element:
        """Create an Element named ``name`` with all operations resolved."""
        parameters = parameters if parameters is not None else ParameterSet()
        mass = self.mass.resolve(parameters)
        inertia = self.inertia.resolve(parameters)
        if inertia.shape != (3, 3):
            raise BadDefinitionError(f"Element '{self.name}': inertia must be 3×3, got {inertia.shape}")
        frames = self.build_frames(parameters)
        cog = COG_FRAME_NAME if COG_FRAME_NAME in frames else ORIGIN_FRAME_NAME
        return Element(
            name,
            mass,
            inertia,
            frames=frames,
            cog=cog,
            type_name=self.name.lower(),
        )


# =============================================================================
# Joint definitions
# =============================================================================

@dataclass(frozen=True)
class JointDefinition:
    """Parsed *.jdf content: header and the free/locked DOF partition."""
    name: str
    author: str
    free_degrees_of_freedom: Tuple[Dof, ...]
    locked_degrees_of_freedom: Tuple[Dof, ...]
    description: str = ""
    url: str = ""

    @classmethod
    def from_xml(cls, text: str) -> "JointDefinition":
        root = data.parse_xml(text)
        _expect_root(root, "JointDefinition")

        dof_node = root.find("DegreesOfFreedom")
        if dof_node is None:
            raise BadDefinitionError("<JointDefinition> is missing required entry <DegreesOfFreedom>")
        default = dof_node.get("default", "lock").strip().lower()
        if default not in ("free", "lock"):
            raise BadDefinitionError(f"DegreesOfFreedom default must be 'free' or 'lock', got '{default}'")

        free = set(Dof) if default == "free" else set()
        overridden = set()
        for child in dof_node:
            if child.tag not in ("Free", "Locked"):
                raise BadDefinitionError(f"Unknown DegreesOfFreedom entry <{child.tag}>")
            try:
                dof = Dof.parse(child.get("type", ""))
            except ValueError as e:
                raise BadDefinitionError(str(e)) from e
            if dof in overridden:
                raise BadDefinitionError(f"Degree of freedom '{dof.name.lower()}' is listed twice")
            overridden.add(dof)
            if child.tag == "Free":
                free.add(dof)
            else:
                free.discard(dof)

        return cls(
            name=_header(root, "Name", required=True),
            author=_header(root, "Author", required=True),
            description=_header(root, "Description", required=False),
            url=_header(root, "URL", required=False),
            free_degrees_of_freedom=tuple(sorted(free)),
            locked_degrees_of_freedom=tuple(d for d in Dof if d not in free),
        )

    def to_xml(self) -> ET.Element:
        root = ET.Element("JointDefinition")
        _write_header(root, self.name, self.author, self.description, self.url)
        dof_node = ET.SubElement(root, "DegreesOfFreedom", default="lock")
        for dof in self.free_degrees_of_freedom:
            ET.SubElement(dof_node, "Free", type=dof.name.lower())
        return root

    def to_string(self) -> str:
        return data.to_string(self.to_xml())

    def instantiate(self) -> Joint:
        """A new, not yet attached Joint of this type."""
        return Joint(self.name.lower(), self.free_degrees_of_freedom, self.locked_degrees_of_freedom)
