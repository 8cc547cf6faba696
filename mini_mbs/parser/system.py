# mini_mbs/parser/system.py
"""
SYSTEM DEFINITION LOADER
========================

    <MultibodySystem>
      <Gravity><Vector>...</Vector></Gravity>          (optional, default CONFIG.default_gravity)
      <Parameters>                                      (optional, global)
        <ScalarParameter name="l"><Number>0.5</Number></ScalarParameter>
        <VectorParameter name="v"><Vector>...</Vector></VectorParameter>
        <MatrixParameter name="I"><Identity/></MatrixParameter>
      </Parameters>
      <Bodies>
        <Body name="upper" type="rod">
          <Parameters>...</Parameters>                  (optional, override globals)
          <Link type="revolute_z" localframe="origin" remote="base"/>
        </Body>
        <Body name="lower" type="rod">
          <Link type="revolute_z" localframe="origin" remote="upper/tip"/>
        </Body>
      </Bodies>
    </MultibodySystem>

``remote`` is "base" (the system base frame) or "body" / "body/frame";
the frame defaults to "origin". Body, type, joint and frame names are
case-insensitive.

Loading has two phases: from_xml() parses into a SystemDefinition
(operation trees only, nothing resolved), build() resolves parameters,
creates elements and joints through the registries, attaches joints to
frames and initializes the system.
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Optional, Tuple, Union
import xml.etree.ElementTree as ET

from ..exceptions import BadDefinitionError, TopologyError
from ..model import ORIGIN_FRAME_NAME
from ..system import MultibodySystem
from . import data
from . import operations as ops
from .parameters import ParameterSet
from .registry import ElementRegistry, JointRegistry


logger = logging.getLogger(__name__)

BASE_BODY_NAME = "base"

_PARAMETER_PARSERS = {
    "ScalarParameter": data.parse_scalar,
    "VectorParameter": data.parse_vector,
    "MatrixParameter": data.parse_matrix,
}


@dataclass(frozen=True)
class ParameterDefinition:
    """One <ScalarParameter>/<VectorParameter>/<MatrixParameter> entry."""
    kind: str
    name: str
    operation: object

    def to_xml(self) -> ET.Element:
        node = ET.Element(self.kind, name=self.name)
        node.append(self.operation.to_xml())
        return node


def parse_parameters(node: Optional[ET.Element]) -> Tuple[ParameterDefinition, ...]:
    if node is None:
        return ()
    entries = []
    for child in node:
        parser = _PARAMETER_PARSERS.get(child.tag)
        if parser is None:
            raise BadDefinitionError(f"Error while parsing parameters: unknown parameter type <{child.tag}>")
        name = child.get("name")
        if not name:
            raise BadDefinitionError(f"<{child.tag}> is missing attribute 'name'")
        entries.append(ParameterDefinition(child.tag, name, parser(data.single_child(child, f"parameter '{name}'"))))
    return tuple(entries)


def resolve_parameters(entries: Tuple[ParameterDefinition, ...]) -> ParameterSet:
    """Evaluate parameter entries; they may not reference other parameters."""
    parameters = ParameterSet()
    for entry in entries:
        try:
            parameters.add(entry.name, entry.operation.resolve(None))
        except ValueError as e:
            raise BadDefinitionError(str(e)) from e
    return parameters


def _parameters_to_xml(entries: Tuple[ParameterDefinition, ...]) -> ET.Element:
    node = ET.Element("Parameters")
    for entry in entries:
        node.append(entry.to_xml())
    return node


@dataclass(frozen=True)
class LinkDefinition:
    """The <Link> of a body: joint type, local frame and remote body/frame."""
    joint_type: str
    local_frame: str = ORIGIN_FRAME_NAME
    remote_body: str = BASE_BODY_NAME
    remote_frame: str = ORIGIN_FRAME_NAME

    @classmethod
    def from_node(cls, node: ET.Element) -> "LinkDefinition":
        for attribute in ("type", "localframe", "remote"):
            if node.get(attribute) is None:
                raise BadDefinitionError(f"<Link> is missing attribute '{attribute}'")
        remote = node.get("remote").strip().lower().split("/")
        if len(remote) > 2 or not remote[0]:
            raise BadDefinitionError(f"Bad remote '{node.get('remote')}': expected 'body' or 'body/frame'")
        return cls(
            joint_type=node.get("type").strip().lower(),
            local_frame=node.get("localframe").strip().lower(),
            remote_body=remote[0],
            remote_frame=remote[1] if len(remote) > 1 else ORIGIN_FRAME_NAME,
        )

    @property
    def remote(self) -> str:
        if self.remote_body == BASE_BODY_NAME:
            return BASE_BODY_NAME
        return f"{self.remote_body}/{self.remote_frame}"

    def to_xml(self) -> ET.Element:
        return ET.Element("Link", type=self.joint_type, localframe=self.local_frame, remote=self.remote)


@dataclass(frozen=True)
class BodyDefinition:
    name: str
    element_type: str
    link: LinkDefinition
    parameters: Tuple[ParameterDefinition, ...] = ()

    @classmethod
    def from_node(cls, node: ET.Element) -> "BodyDefinition":
        if node.tag != "Body":
            raise BadDefinitionError(f"<Bodies> can only contain <Body> entries, found <{node.tag}>")
        name, element_type = node.get("name"), node.get("type")
        if not name or not element_type:
            raise BadDefinitionError("<Body> needs 'name' and 'type' attributes")
        links = node.findall("Link")
        if len(links) != 1:
            raise BadDefinitionError(f"Body '{name}' must have exactly one <Link> entry, found {len(links)}")
        return cls(
            name=name.strip().lower(),
            element_type=element_type.strip().lower(),
            link=LinkDefinition.from_node(links[0]),
            parameters=parse_parameters(node.find("Parameters")),
        )

    def to_xml(self) -> ET.Element:
        node = ET.Element("Body", name=self.name, type=self.element_type)
        if self.parameters:
            node.append(_parameters_to_xml(self.parameters))
        node.append(self.link.to_xml())
        return node


@dataclass(frozen=True)
class SystemDefinition:
    """Parsed system file: gravity, global parameters and bodies."""
    bodies: Tuple[BodyDefinition, ...]
    gravity: Optional[ops.VectorOperation] = None
    parameters: Tuple[ParameterDefinition, ...] = field(default_factory=tuple)

    @classmethod
    def from_xml(cls, text: str) -> "SystemDefinition":
        root = data.parse_xml(text)
        if root.tag != "MultibodySystem":
            raise BadDefinitionError(f"Expected root <MultibodySystem>, found <{root.tag}>")

        gravity_node = root.find("Gravity")
        gravity = None
        if gravity_node is not None:
            gravity = data.parse_vector(data.single_child(gravity_node, "gravity"))

        bodies_node = root.find("Bodies")
        if bodies_node is None:
            raise BadDefinitionError("Error while parsing bodies: <Bodies> entry is missing")
        bodies = tuple(BodyDefinition.from_node(node) for node in bodies_node)
        if not bodies:
            raise BadDefinitionError("Error while parsing bodies: <Bodies> must define at least one body")

        names = [body.name for body in bodies]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise BadDefinitionError(f"Duplicate body names {duplicates}")
        if BASE_BODY_NAME in names:
            raise BadDefinitionError(f"Body name '{BASE_BODY_NAME}' is reserved")

        return cls(bodies=bodies, gravity=gravity, parameters=parse_parameters(root.find("Parameters")))

    def to_xml(self) -> ET.Element:
        root = ET.Element("MultibodySystem")
        if self.gravity is not None:
            root.append(data.wrap("Gravity", self.gravity.to_xml()))
        if self.parameters:
            root.append(_parameters_to_xml(self.parameters))
        bodies = ET.SubElement(root, "Bodies")
        for body in self.bodies:
            bodies.append(body.to_xml())
        return root

    def to_string(self) -> str:
        return data.to_string(self.to_xml())

    def build(self, element_registry: ElementRegistry, joint_registry: JointRegistry) -> MultibodySystem:
        """
        Create, connect and initialize the system.

        Raises:
        -------
        ElementNotFoundError, JointNotFoundError
            Unknown element or joint type.
        ParameterNotFoundError
            An operation references a parameter that is not defined.
        TopologyError
            Unknown remote body or frame, unknown local frame, a body linked
            to itself, or cyclic links.
        """
        gravity = self.gravity.resolve(None) if self.gravity is not None else None
        global_parameters = resolve_parameters(self.parameters)

        elements = {}
        for body in self.bodies:
            parameters = global_parameters.merge(resolve_parameters(body.parameters))
            elements[body.name] = element_registry.create(body.element_type, parameters, name=body.name)

        system = MultibodySystem(gravitation_vector=gravity)
        for body in self.bodies:
            element = elements[body.name]
            link = body.link
            joint = joint_registry.create(link.joint_type)

            if link.remote_body == BASE_BODY_NAME:
                parent = None
                base_frame = system.base_frame
            else:
                if link.remote_body == body.name:
                    raise TopologyError(f"Body '{body.name}' can not be linked to itself")
                parent = elements.get(link.remote_body)
                if parent is None:
                    raise TopologyError(f"Body '{body.name}': remote body '{link.remote_body}' was not found")
                base_frame = _find_frame(parent, link.remote_frame, body.name)

            follower_frame = _find_frame(element, link.local_frame, body.name)
            element.parent = parent
            element.base_joint = joint.with_frames(base_frame, follower_frame)

        system.elements = list(elements.values())
        system.initialize_system()
        return system


def _find_frame(element, frame_name: str, body_name: str):
    try:
        return element.get_frame(frame_name)
    except KeyError as e:
        raise TopologyError(
            f"Body '{body_name}': frame '{frame_name}' was not found on body '{element.name}' "
            f"of type '{element.type_name}'"
        ) from e


def parse_system(text: str, element_registry: ElementRegistry, joint_registry: JointRegistry) -> MultibodySystem:
    """Parse and build a system definition."""
    system = SystemDefinition.from_xml(text).build(element_registry, joint_registry)
    logger.info(f"Loaded system with bodies: {', '.join(e.name for e in system.elements)}")
    return system


def parse_system_file(
    path: Union[str, Path],
    element_registry: ElementRegistry,
    joint_registry: JointRegistry,
) -> MultibodySystem:
    return parse_system(Path(path).read_text(encoding="utf-8"), element_registry, joint_registry)
