# tests/test_parser.py
"""
PARSER TESTS: Operation Trees, Definitions and Registries
=========================================================
"""

import math
import xml.etree.ElementTree as ET

import numpy as np
import pytest
from numpy.testing import assert_allclose

from mini_mbs import (
    BadDefinitionError,
    ElementAlreadyExistsError,
    ElementNotFoundError,
    JointAlreadyExistsError,
    JointNotFoundError,
    ParameterNotFoundError,
)
from mini_mbs.kernel import Dof
from mini_mbs.parser import (
    ElementDefinition,
    ElementRegistry,
    JointDefinition,
    JointRegistry,
    ParameterSet,
    parse_system,
)
from mini_mbs.parser import data
from mini_mbs.parser import operations as ops


def scalar(xml):
    return data.parse_scalar(ET.fromstring(xml))


def element_xml(mass="<Number>2.0</Number>", inertia="<Identity/>", frames="", name="block"):
    return f"""
    <ElementDefinition>
      <Name>{name}</Name>
      <Author>test</Author>
      <Properties>
        <Mass>{mass}</Mass>
        <Inertia>{inertia}</Inertia>
      </Properties>
      {frames}
    </ElementDefinition>
    """


def joint_xml(dofs, default="lock", name="hinge"):
    return f"""
    <JointDefinition>
      <Name>{name}</Name>
      <Author>test</Author>
      <DegreesOfFreedom default="{default}">{dofs}</DegreesOfFreedom>
    </JointDefinition>
    """


class TestParameterSet:
    def test_tables_by_dimension(self):
        params = ParameterSet()
        params.add("a", 1.5)
        params.add("a", np.array([1.0, 2.0, 3.0]))
        params.add("a", np.eye(3))
        assert params.get_scalar("a") == 1.5
        assert params.has_vector("a") and params.has_matrix("a")
        assert len(params) == 3

    def test_missing_raises(self):
        with pytest.raises(ParameterNotFoundError):
            ParameterSet().get_scalar("nope")
        with pytest.raises(ParameterNotFoundError):
            ParameterSet().get_matrix("nope")

    def test_duplicate_rejected(self):
        params = ParameterSet()
        params.add("a", 1.0)
        with pytest.raises(ValueError):
            params.add("a", 2.0)

    def test_merge_prefers_right(self):
        left, right = ParameterSet(), ParameterSet()
        left.add("a", 1.0)
        left.add("b", 2.0)
        right.add("a", 10.0)
        merged = left + right
        assert merged.get_scalar("a") == 10.0
        assert merged.get_scalar("b") == 2.0
        assert left.get_scalar("a") == 1.0


class TestOperations:
    def test_scalar_nodes(self):
        params = ParameterSet()
        params.add("l", 2.0)
        assert scalar("<Number>1.25</Number>").resolve() == 1.25
        assert scalar("<Zero/>").resolve() == 0.0
        assert scalar('<Parameter name="l"/>').resolve(params) == 2.0
        assert scalar("<Deg2Rad><Number>180</Number></Deg2Rad>").resolve() == pytest.approx(math.pi)
        assert scalar("<Rad2Deg><Number>1</Number></Rad2Deg>").resolve() == pytest.approx(180 / math.pi)
        assert scalar("<Sin><Number>0.5</Number></Sin>").resolve() == pytest.approx(math.sin(0.5))
        assert scalar("<Cos><Number>0.5</Number></Cos>").resolve() == pytest.approx(math.cos(0.5))

    def test_list_operations_fold_left(self):
        three = "<Number>12</Number><Number>3</Number><Number>2</Number>"
        assert scalar(f"<Add>{three}</Add>").resolve() == 17.0
        assert scalar(f"<Subtract>{three}</Subtract>").resolve() == 7.0
        assert scalar(f"<Multiply>{three}</Multiply>").resolve() == 72.0
        assert scalar(f"<Divide>{three}</Divide>").resolve() == 2.0

    def test_list_operation_needs_two_children(self):
        with pytest.raises(BadDefinitionError, match="at least two"):
            scalar("<Add><Number>1</Number></Add>")

    def test_unknown_scalar(self):
        with pytest.raises(BadDefinitionError, match="unknown type"):
            scalar("<Power><Number>1</Number></Power>")

    def test_bad_number(self):
        with pytest.raises(BadDefinitionError, match="not a number"):
            scalar("<Number>one</Number>")

    def test_vector(self):
        vector = data.parse_vector(ET.fromstring("<Vector><Number>1</Number><Zero/><Number>-2</Number></Vector>"))
        assert_allclose(vector.resolve(), [1.0, 0.0, -2.0])
        with pytest.raises(BadDefinitionError, match="exactly three"):
            data.parse_vector(ET.fromstring("<Vector><Number>1</Number><Zero/></Vector>"))

    def test_matrix(self):
        matrix = data.parse_matrix(ET.fromstring(
            "<Matrix><Row><Number>1</Number><Number>2</Number></Row>"
            "<Row><Number>3</Number><Number>4</Number></Row></Matrix>"
        ))
        assert_allclose(matrix.resolve(), [[1.0, 2.0], [3.0, 4.0]])
        assert_allclose(data.parse_matrix(ET.fromstring("<Identity/>")).resolve(), np.eye(3))

    def test_matrix_row_lengths_must_match(self):
        with pytest.raises(BadDefinitionError, match="same length"):
            data.parse_matrix(ET.fromstring(
                "<Matrix><Row><Number>1</Number></Row><Row><Number>3</Number><Number>4</Number></Row></Matrix>"
            ))

    def test_matrix_only_rows(self):
        with pytest.raises(BadDefinitionError, match="Row"):
            data.parse_matrix(ET.fromstring("<Matrix><Column><Number>1</Number></Column></Matrix>"))

    def test_missing_parameter(self):
        with pytest.raises(ParameterNotFoundError):
            ops.VectorParameter("offset").resolve(ParameterSet())

    def test_to_xml_round_trip(self):
        tree = ops.Divide((
            ops.Multiply((ops.ScalarParameter("m"), ops.Number(0.1))),
            ops.Cos(ops.Deg2Rad(ops.Number(30.0))),
        ))
        assert scalar(ET.tostring(tree.to_xml(), encoding="unicode")) == tree

        matrix = ops.StaticMatrix.from_values(np.diag([1.0, 2.0, 3.0]))
        assert data.parse_matrix(matrix.to_xml()) == matrix
        assert data.parse_vector(ops.ZeroVector().to_xml()).resolve().tolist() == [0.0, 0.0, 0.0]


class TestElementDefinition:
    def test_header_and_properties(self):
        definition = ElementDefinition.from_xml(element_xml())
        assert definition.name == "block"
        assert definition.author == "test"
        assert definition.description == ""
        element = definition.instantiate("b1")
        assert element.mass == 2.0
        assert_allclose(element.inertia, np.eye(3))
        assert element.type_name == "block"
        assert element.cog is element.origin

    def test_frames_and_cog(self):
        frames = """
        <Frames>
          <Frame name="Tip" reference="mid">
            <Translation><Vector><Number>0.5</Number><Zero/><Zero/></Vector></Translation>
          </Frame>
          <Frame name="mid">
            <Translation><Vector><Number>0.5</Number><Zero/><Zero/></Vector></Translation>
            <Rotation><Matrix>
              <Row><Zero/><Number>-1</Number><Zero/></Row>
              <Row><Number>1</Number><Zero/><Zero/></Row>
              <Row><Zero/><Zero/><Number>1</Number></Row>
            </Matrix></Rotation>
          </Frame>
          <Frame name="cog" reference="origin">
            <Translation><Parameter name="c"/></Translation>
          </Frame>
        </Frames>
        """
        params = ParameterSet()
        params.add("c", np.array([0.1, 0.2, 0.3]))
        element = ElementDefinition.from_xml(element_xml(frames=frames)).instantiate("b", params)

        # tip references mid, declared after it; names are lower-cased
        assert_allclose(element.frames["tip"].get_offset_origin(), [0.5, 0.5, 0.0], atol=1e-12)
        assert element.cog is element.frames["cog"]
        assert_allclose(element.cog.get_offset_origin(), [0.1, 0.2, 0.3])

    def test_mass_needs_exactly_one_entry(self):
        with pytest.raises(BadDefinitionError, match="mass"):
            ElementDefinition.from_xml(element_xml(mass="<Number>1</Number><Number>2</Number>"))
        with pytest.raises(BadDefinitionError, match="mass"):
            ElementDefinition.from_xml(element_xml(mass=""))

    def test_missing_name(self):
        with pytest.raises(BadDefinitionError, match="Name"):
            ElementDefinition.from_xml(element_xml().replace("<Name>block</Name>", ""))

    def test_malformed_xml(self):
        with pytest.raises(BadDefinitionError, match="Malformed"):
            ElementDefinition.from_xml("<ElementDefinition><Name>x</Name>")

    def test_unknown_frame_reference(self):
        frames = '<Frames><Frame name="a" reference="b"/></Frames>'
        with pytest.raises(BadDefinitionError, match="unknown frame"):
            ElementDefinition.from_xml(element_xml(frames=frames))

    def test_cyclic_frame_reference(self):
        frames = '<Frames><Frame name="a" reference="b"/><Frame name="b" reference="a"/></Frames>'
        definition = ElementDefinition.from_xml(element_xml(frames=frames))
        with pytest.raises(BadDefinitionError, match="cyclic"):
            definition.instantiate("x")

    def test_reserved_origin_frame(self):
        with pytest.raises(BadDefinitionError, match="reserved"):
            ElementDefinition.from_xml(element_xml(frames='<Frames><Frame name="origin"/></Frames>'))

    def test_rotation_must_be_orthonormal(self):
        frames = """
        <Frames><Frame name="bad"><Rotation><Matrix>
          <Row><Number>2</Number><Zero/><Zero/></Row>
          <Row><Zero/><Number>1</Number><Zero/></Row>
          <Row><Zero/><Zero/><Number>1</Number></Row>
        </Matrix></Rotation></Frame></Frames>
        """
        definition = ElementDefinition.from_xml(element_xml(frames=frames))
        with pytest.raises(BadDefinitionError, match="orthonormal"):
            definition.instantiate("x")

    def test_inertia_must_be_3x3(self):
        inertia = "<Matrix><Row><Number>1</Number></Row></Matrix>"
        with pytest.raises(BadDefinitionError, match="3×3"):
            ElementDefinition.from_xml(element_xml(inertia=inertia)).instantiate("x")

    def test_missing_parameter_on_instantiate(self):
        definition = ElementDefinition.from_xml(element_xml(mass='<Parameter name="m"/>'))
        with pytest.raises(ParameterNotFoundError):
            definition.instantiate("x")

    def test_serialization_round_trip(self, definitions_dir):
        with open(f"{definitions_dir}/elements/rod.edf", encoding="utf-8") as f:
            original = ElementDefinition.from_xml(f.read())
        restored = ElementDefinition.from_xml(original.to_string())
        assert restored == original


class TestJointDefinition:
    def test_default_lock_with_one_free(self):
        definition = JointDefinition.from_xml(joint_xml('<Free type="gamma"/>'))
        assert definition.free_degrees_of_freedom == (Dof.GAMMA,)
        assert len(definition.locked_degrees_of_freedom) == 5

    def test_default_free_with_locked(self):
        definition = JointDefinition.from_xml(joint_xml('<Locked type="X"/>', default="free"))
        assert Dof.X in definition.locked_degrees_of_freedom
        assert len(definition.free_degrees_of_freedom) == 5

    def test_instantiate(self):
        joint = JointDefinition.from_xml(joint_xml('<Free type="beta"/>', name="Hinge_Y")).instantiate()
        assert joint.name == "hinge_y"
        assert joint.free_degrees_of_freedom == (Dof.BETA,)
        assert joint.base_frame is None

    def test_unknown_dof(self):
        with pytest.raises(BadDefinitionError, match="Unknown degree of freedom"):
            JointDefinition.from_xml(joint_xml('<Free type="theta"/>'))

    def test_duplicate_dof(self):
        with pytest.raises(BadDefinitionError, match="twice"):
            JointDefinition.from_xml(joint_xml('<Free type="x"/><Locked type="x"/>'))

    def test_bad_default(self):
        with pytest.raises(BadDefinitionError, match="default"):
            JointDefinition.from_xml(joint_xml("", default="maybe"))

    def test_missing_dof_node(self):
        text = "<JointDefinition><Name>j</Name><Author>a</Author></JointDefinition>"
        with pytest.raises(BadDefinitionError, match="DegreesOfFreedom"):
            JointDefinition.from_xml(text)

    def test_serialization_round_trip(self):
        original = JointDefinition.from_xml(joint_xml('<Locked type="z"/><Locked type="alpha"/>', default="free"))
        restored = JointDefinition.from_xml(original.to_string())
        assert restored == original


class TestRegistries:
    def test_load_folder(self, element_registry, joint_registry):
        assert element_registry.names() == ["point_mass", "rod"]
        assert "revolute_z" in joint_registry
        assert "REVOLUTE_Z" in joint_registry
        assert len(joint_registry) == 6

    def test_duplicate_names_are_case_insensitive(self):
        elements = ElementRegistry()
        elements.load_definition(element_xml(name="Block"))
        with pytest.raises(ElementAlreadyExistsError):
            elements.load_definition(element_xml(name="BLOCK"))

        joints = JointRegistry()
        joints.load_definition(joint_xml("", name="j"))
        with pytest.raises(JointAlreadyExistsError):
            joints.load_definition(joint_xml("", name="J"))

    def test_not_found(self):
        with pytest.raises(ElementNotFoundError):
            ElementRegistry().create("ghost")
        with pytest.raises(JointNotFoundError):
            JointRegistry().create("ghost")

    def test_create_element(self, element_registry):
        params = ParameterSet()
        params.add("mass", 3.0)
        params.add("length", 2.0)
        rod = element_registry.create("Rod", params, name="arm")
        assert rod.name == "arm"
        assert rod.mass == 3.0
        assert_allclose(np.diag(rod.inertia), [0.0, 1.0, 1.0])
        assert_allclose(rod.cog.get_offset_origin(), [1.0, 0.0, 0.0])
        assert_allclose(rod.frames["tip"].get_offset_origin(), [2.0, 0.0, 0.0])

    def test_create_element_default_name(self, element_registry):
        params = ParameterSet()
        params.add("mass", 1.0)
        assert element_registry.create("POINT_MASS", params).name == "point_mass"

    def test_create_joint(self, joint_registry):
        joint = joint_registry.create("spherical")
        assert joint.free_degrees_of_freedom == (Dof.ALPHA, Dof.BETA, Dof.GAMMA)
        assert joint_registry.create("fixed").degree_of_freedom_count == 0
        assert joint_registry.create("free").degree_of_freedom_count == 6


class TestRoundTrip:
    def test_reloaded_definitions_give_same_dynamics(self, definitions_dir, element_registry, joint_registry):
        elements, joints = ElementRegistry(), JointRegistry()
        for name in element_registry.names():
            elements.load_definition(element_registry.get(name).to_string())
        for name in joint_registry.names():
            joints.load_definition(joint_registry.get(name).to_string())

        with open(f"{definitions_dir}/systems/double_pendulum.xml", encoding="utf-8") as f:
            text = f.read()
        original = parse_system(text, element_registry, joint_registry)
        restored = parse_system(text, elements, joints)

        state = np.array([0.4, -1.1, 0.7, 2.0])
        for system in (original, restored):
            system.update_elements(system.create_state_vector(state.copy()))

        assert_allclose(restored.get_global_mass_matrix(), original.get_global_mass_matrix())
        assert_allclose(restored.get_generalized_mass_matrix(), original.get_generalized_mass_matrix())
        assert_allclose(restored.get_global_jacobian(), original.get_global_jacobian())
        assert_allclose(restored.get_global_jacobian_derivative(), original.get_global_jacobian_derivative())
