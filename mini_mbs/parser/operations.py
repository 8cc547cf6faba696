# mini_mbs/parser/operations.py
"""
OPERATION TREES: The Parameter Language of Definition Files
===========================================================

Definition files never contain bare numbers where a value is expected;
they contain a small expression tree:

    <Mass>
      <Multiply>
        <Parameter name="density"/>
        <Parameter name="volume"/>
      </Multiply>
    </Mass>

Each node type is a frozen dataclass with two methods:

    resolve(parameters)  evaluate against a ParameterSet
    to_xml()             serialize back to an ElementTree node

Three families exist, by result type: scalar, vector (3,) and matrix.
"""

from dataclasses import dataclass
from functools import reduce
import math
import operator
from typing import Optional, Tuple
import xml.etree.ElementTree as ET

import numpy as np

from ..exceptions import BadDefinitionError
from .parameters import ParameterSet


def _empty(parameters: Optional[ParameterSet]) -> ParameterSet:
    return parameters if parameters is not None else ParameterSet()


class ScalarOperation:
    """Base class of operations evaluating to a float."""

    def resolve(self, parameters: Optional[ParameterSet] = None) -> float:
        raise NotImplementedError

    def to_xml(self) -> ET.Element:
        raise NotImplementedError


class VectorOperation:
    """Base class of operations evaluating to a 3-vector."""

    def resolve(self, parameters: Optional[ParameterSet] = None) -> np.ndarray:
        raise NotImplementedError

    def to_xml(self) -> ET.Element:
        raise NotImplementedError


class MatrixOperation:
    """Base class of operations evaluating to a matrix."""

    def resolve(self, parameters: Optional[ParameterSet] = None) -> np.ndarray:
        raise NotImplementedError

    def to_xml(self) -> ET.Element:
        raise NotImplementedError


# =============================================================================
# Scalar
# =============================================================================

@dataclass(frozen=True)
class Number(ScalarOperation):
    value: float

    def resolve(self, parameters=None) -> float:
        return float(self.value)

    def to_xml(self) -> ET.Element:
        node = ET.Element("Number")
        node.text = repr(float(self.value))
        return node


@dataclass(frozen=True)
class Zero(ScalarOperation):
    def resolve(self, parameters=None) -> float:
        return 0.0

    def to_xml(self) -> ET.Element:
        return ET.Element("Zero")


@dataclass(frozen=True)
class ScalarParameter(ScalarOperation):
    name: str

    def resolve(self, parameters=None) -> float:
        return _empty(parameters).get_scalar(self.name)

    def to_xml(self) -> ET.Element:
        return ET.Element("Parameter", name=self.name)


@dataclass(frozen=True)
class UnaryOperation(ScalarOperation):
    """f(operand) for a fixed function f."""
    operand: ScalarOperation

    tag = ""

    def apply(self, value: float) -> float:
        raise NotImplementedError

    def resolve(self, parameters=None) -> float:
        return self.apply(self.operand.resolve(parameters))

    def to_xml(self) -> ET.Element:
        node = ET.Element(self.tag)
        node.append(self.operand.to_xml())
        return node


@dataclass(frozen=True)
class Sin(UnaryOperation):
    tag = "Sin"

    def apply(self, value: float) -> float:
        return math.sin(value)


@dataclass(frozen=True)
class Cos(UnaryOperation):
    tag = "Cos"

    def apply(self, value: float) -> float:
        return math.cos(value)


@dataclass(frozen=True)
class Rad2Deg(UnaryOperation):
    tag = "Rad2Deg"

    def apply(self, value: float) -> float:
        return math.degrees(value)


@dataclass(frozen=True)
class Deg2Rad(UnaryOperation):
    tag = "Deg2Rad"

    def apply(self, value: float) -> float:
        return math.radians(value)


@dataclass(frozen=True)
class ListOperation(ScalarOperation):
    """
    Left fold of a binary operator over two or more operands.

    Subtract and Divide fold left: (((a - b) - c) - ...).
    """
    operands: Tuple[ScalarOperation, ...]

    tag = ""
    combine = None

    def __post_init__(self):
        object.__setattr__(self, "operands", tuple(self.operands))
        if len(self.operands) < 2:
            raise BadDefinitionError(f"{self.tag} needs at least two operands, got {len(self.operands)}")

    def resolve(self, parameters=None) -> float:
        values = [operand.resolve(parameters) for operand in self.operands]
        return float(reduce(type(self).combine, values))

    def to_xml(self) -> ET.Element:
        node = ET.Element(self.tag)
        for operand in self.operands:
            node.append(operand.to_xml())
        return node


@dataclass(frozen=True)
class Add(ListOperation):
    tag = "Add"
    combine = operator.add


@dataclass(frozen=True)
class Subtract(ListOperation):
    tag = "Subtract"
    combine = operator.sub


@dataclass(frozen=True)
class Multiply(ListOperation):
    tag = "Multiply"
    combine = operator.mul


@dataclass(frozen=True)
class Divide(ListOperation):
    tag = "Divide"
    combine = operator.truediv


# =============================================================================
# Vector
# =============================================================================

@dataclass(frozen=True)
class StaticVector(VectorOperation):
    """A vector of three scalar operations (x, y, z)."""
    components: Tuple[ScalarOperation, ScalarOperation, ScalarOperation]

    def __post_init__(self):
        object.__setattr__(self, "components", tuple(self.components))
        if len(self.components) != 3:
            raise BadDefinitionError(f"Vector needs exactly three components, got {len(self.components)}")

    @classmethod
    def from_values(cls, values) -> "StaticVector":
        return cls(tuple(Number(float(v)) for v in values))

    def resolve(self, parameters=None) -> np.ndarray:
        return np.array([c.resolve(parameters) for c in self.components], dtype=float)

    def to_xml(self) -> ET.Element:
        node = ET.Element("Vector")
        for component in self.components:
            node.append(component.to_xml())
        return node


@dataclass(frozen=True)
class ZeroVector(VectorOperation):
    def resolve(self, parameters=None) -> np.ndarray:
        return np.zeros(3)

    def to_xml(self) -> ET.Element:
        return StaticVector((Zero(), Zero(), Zero())).to_xml()


@dataclass(frozen=True)
class VectorParameter(VectorOperation):
    name: str

    def resolve(self, parameters=None) -> np.ndarray:
        return _empty(parameters).get_vector(self.name)

    def to_xml(self) -> ET.Element:
        return ET.Element("Parameter", name=self.name)


# =============================================================================
# Matrix
# =============================================================================

@dataclass(frozen=True)
class StaticMatrix(MatrixOperation):
    """Rows of scalar operations; all rows have the same length."""
    rows: Tuple[Tuple[ScalarOperation, ...], ...]

    def __post_init__(self):
        rows = tuple(tuple(row) for row in self.rows)
        object.__setattr__(self, "rows", rows)
        if not rows:
            raise BadDefinitionError("Matrix needs at least one row")
        lengths = sorted({len(row) for row in rows})
        if len(lengths) > 1:
            raise BadDefinitionError(f"Matrix rows must have the same length, found lengths {lengths}")
        if lengths[0] == 0:
            raise BadDefinitionError("Matrix rows need at least one entry")

    @classmethod
    def from_values(cls, values) -> "StaticMatrix":
        return cls(tuple(tuple(Number(float(v)) for v in row) for row in np.asarray(values, dtype=float)))

    def resolve(self, parameters=None) -> np.ndarray:
        return np.array(
            [[entry.resolve(parameters) for entry in row] for row in self.rows],
            dtype=float,
        )

    def to_xml(self) -> ET.Element:
        node = ET.Element("Matrix")
        for row in self.rows:
            row_node = ET.SubElement(node, "Row")
            for entry in row:
                row_node.append(entry.to_xml())
        return node


@dataclass(frozen=True)
class IdentityMatrix(MatrixOperation):
    size: int = 3

    def resolve(self, parameters=None) -> np.ndarray:
        return np.eye(self.size)

    def to_xml(self) -> ET.Element:
        node = ET.Element("Identity")
        if self.size != 3:
            node.set("size", str(self.size))
        return node


@dataclass(frozen=True)
class MatrixParameter(MatrixOperation):
    name: str

    def resolve(self, parameters=None) -> np.ndarray:
        return _empty(parameters).get_matrix(self.name)

    def to_xml(self) -> ET.Element:
        return ET.Element("Parameter", name=self.name)
