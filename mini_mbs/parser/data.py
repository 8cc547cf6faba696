# mini_mbs/parser/data.py
"""
XML nodes → operation trees.

Every failure raises BadDefinitionError naming the offending node, before
any Element or Joint is constructed.
"""

from typing import List, Optional
import xml.etree.ElementTree as ET

from ..exceptions import BadDefinitionError
from . import operations as ops


_UNARY = {
    "Sin": ops.Sin,
    "Cos": ops.Cos,
    "Rad2Deg": ops.Rad2Deg,
    "Deg2Rad": ops.Deg2Rad,
}

_LIST = {
    "Add": ops.Add,
    "Subtract": ops.Subtract,
    "Multiply": ops.Multiply,
    "Divide": ops.Divide,
}


def parse_xml(text: str) -> ET.Element:
    """Parse XML text into its root node, mapping syntax errors to BadDefinitionError."""
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise BadDefinitionError(f"Malformed XML: {e}") from e


def single_child(node: Optional[ET.Element], what: str) -> ET.Element:
    """The only child of ``node``; raises if the node is missing or has 0 or >1 children."""
    if node is None:
        raise BadDefinitionError(f"Error while parsing {what}: entry is missing")
    children = list(node)
    if len(children) != 1:
        raise BadDefinitionError(
            f"Error while parsing {what}: expected exactly one entry, found {len(children)}"
        )
    return children[0]


def _attribute(node: ET.Element, name: str) -> str:
    value = node.get(name)
    if value is None:
        raise BadDefinitionError(f"<{node.tag}> is missing attribute '{name}'")
    return value


def parse_scalar(node: Optional[ET.Element]) -> ops.ScalarOperation:
    if node is None:
        raise BadDefinitionError("Error while parsing scalar: no child was found")

    tag = node.tag
    if tag == "Parameter":
        return ops.ScalarParameter(_attribute(node, "name"))
    if tag == "Number":
        try:
            return ops.Number(float((node.text or "").strip()))
        except ValueError as e:
            raise BadDefinitionError(f"Error while parsing scalar: '{node.text}' is not a number") from e
    if tag == "Zero":
        return ops.Zero()
    if tag in _UNARY:
        return _UNARY[tag](parse_scalar(single_child(node, tag)))
    if tag in _LIST:
        children = list(node)
        if len(children) < 2:
            raise BadDefinitionError(f"Error while parsing scalar: <{tag}> must have at least two children")
        return _LIST[tag](tuple(parse_scalar(child) for child in children))
    raise BadDefinitionError(f"Error while parsing scalar: unknown type <{tag}>")


def parse_vector(node: Optional[ET.Element]) -> ops.VectorOperation:
    if node is None:
        raise BadDefinitionError("Error while parsing vector: no child was found")

    if node.tag == "Parameter":
        return ops.VectorParameter(_attribute(node, "name"))
    if node.tag == "Vector":
        children = list(node)
        if len(children) != 3:
            raise BadDefinitionError(
                f"Error while parsing vector: vectors must have exactly three elements, found {len(children)}"
            )
        return ops.StaticVector(tuple(parse_scalar(child) for child in children))
    raise BadDefinitionError(f"Error while parsing vector: unknown type <{node.tag}>")


def parse_matrix(node: Optional[ET.Element]) -> ops.MatrixOperation:
    if node is None:
        raise BadDefinitionError("Error while parsing matrix: no child was found")

    if node.tag == "Parameter":
        return ops.MatrixParameter(_attribute(node, "name"))
    if node.tag == "Identity":
        try:
            return ops.IdentityMatrix(int(node.get("size", "3")))
        except ValueError as e:
            raise BadDefinitionError(f"Error while parsing matrix: bad identity size '{node.get('size')}'") from e
    if node.tag == "Matrix":
        row_nodes = list(node)
        if not row_nodes:
            raise BadDefinitionError("Error while parsing matrix: matrix must have at least one row")
        rows: List[tuple] = []
        for row_node in row_nodes:
            if row_node.tag != "Row":
                raise BadDefinitionError(
                    f"Error while parsing matrix: matrix can only have <Row> children, found <{row_node.tag}>"
                )
            entries = list(row_node)
            if not entries:
                raise BadDefinitionError("Error while parsing matrix: rows must have at least one child")
            rows.append(tuple(parse_scalar(entry) for entry in entries))
        lengths = sorted({len(row) for row in rows})
        if len(lengths) > 1:
            raise BadDefinitionError(
                f"Error while parsing matrix: rows must have same length, found lengths {lengths}"
            )
        return ops.StaticMatrix(tuple(rows))
    raise BadDefinitionError(f"Error while parsing matrix: unknown type <{node.tag}>")


def wrap(tag: str, child: ET.Element) -> ET.Element:
    """<tag>child</tag>: the property/translation/rotation wrapper nodes."""
    node = ET.Element(tag)
    node.append(child)
    return node


def to_string(root: ET.Element) -> str:
    """Serialize a definition tree with indentation."""
    ET.indent(root)
    return ET.tostring(root, encoding="unicode")
