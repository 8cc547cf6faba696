# tests/test_system_loader.py
"""
SYSTEM LOADER TESTS
===================

Systems built from XML through the registries: parameter scoping, body
ordering, link resolution, and every load-time failure mode.

Reference values (double pendulum, rods along x, hinged about z):
    upper: m = 1, L = 1,   I_zz = 1/12
    lower: m = 1, L = 0.5, I_zz = 1/48

    M11 = I1 + m1(L1/2)² + I2 + m2(L1² + (L2/2)² + L1·L2·cos θ2)
    M12 = I2 + m2((L2/2)² + L1(L2/2)·cos θ2)
    M22 = I2 + m2(L2/2)²
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from mini_mbs import (
    BadDefinitionError,
    ElementNotFoundError,
    JointNotFoundError,
    MultibodySystem,
    ParameterNotFoundError,
    TopologyError,
)
from mini_mbs.kernel import Dof
from mini_mbs.parser import SystemDefinition, parse_system


def set_positions(system, positions):
    n = system.total_degrees_of_freedom
    state = np.zeros(2 * n)
    state[:n] = positions
    system.update_elements(system.create_state_vector(state))


def two_rods(upper_link, lower_link, extra=""):
    return f"""
    <MultibodySystem>
      <Parameters>
        <ScalarParameter name="mass"><Number>1</Number></ScalarParameter>
        <ScalarParameter name="length"><Number>1</Number></ScalarParameter>
      </Parameters>
      <Bodies>
        <Body name="a" type="rod">{upper_link}</Body>
        <Body name="b" type="rod">{lower_link}</Body>
        {extra}
      </Bodies>
    </MultibodySystem>
    """


BASE_LINK = '<Link type="revolute_z" localframe="origin" remote="base"/>'
TIP_LINK = '<Link type="revolute_z" localframe="origin" remote="a/tip"/>'


class TestDoublePendulum:
    def test_structure(self, double_pendulum):
        assert [e.name for e in double_pendulum.elements] == ["upper", "lower"]
        assert double_pendulum.total_degrees_of_freedom == 2
        upper, lower = double_pendulum.elements
        assert lower.parent is upper
        assert upper.parent is None
        assert upper.base_joint.free_degrees_of_freedom == (Dof.GAMMA,)
        assert lower.base_joint.base_frame is upper.frames["tip"]
        assert upper.base_joint.base_frame is double_pendulum.base_frame

    def test_gravity_from_file(self, double_pendulum):
        assert_allclose(double_pendulum.gravitation_vector, [0.0, -9.81, 0.0])

    def test_body_parameters_override_globals(self, double_pendulum):
        upper = double_pendulum.get_element("upper")
        lower = double_pendulum.get_element("LOWER")
        assert_allclose(upper.frames["tip"].get_offset_origin(), [1.0, 0.0, 0.0])
        assert_allclose(lower.frames["tip"].get_offset_origin(), [0.5, 0.0, 0.0])
        assert lower.mass == 1.0
        assert lower.inertia[2, 2] == pytest.approx(0.25 / 12)

    def test_cog_positions(self, double_pendulum):
        set_positions(double_pendulum, [np.pi / 2, -np.pi / 2])
        upper, lower = double_pendulum.elements
        assert_allclose(upper.get_cog_position(), [0.0, 0.5, 0.0], atol=1e-12)
        assert_allclose(lower.get_cog_position(), [0.25, 1.0, 0.0], atol=1e-12)

    @pytest.mark.parametrize("theta2", [0.0, 0.7, np.pi / 2, 2.5])
    def test_generalized_mass_matrix(self, double_pendulum, theta2):
        set_positions(double_pendulum, [0.3, theta2])
        M = double_pendulum.get_generalized_mass_matrix()

        i1, i2 = 1.0 / 12.0, 1.0 / 48.0
        c = np.cos(theta2)
        m11 = i1 + 0.25 + i2 + (1.0 + 0.0625 + 0.5 * c)
        m12 = i2 + 0.0625 + 0.25 * c
        m22 = i2 + 0.0625
        assert_allclose(M, [[m11, m12], [m12, m22]], atol=1e-12)

    def test_mass_matrix_at_rest_in_rational_form(self, double_pendulum):
        set_positions(double_pendulum, [0.0, 0.0])
        M = double_pendulum.get_generalized_mass_matrix()
        assert_allclose(M, [[92 / 48, 1 / 3], [1 / 3, 1 / 12]], atol=1e-12)


class TestCartPendulum:
    def test_parent_listed_later_is_ordered_first(self, cart_pendulum):
        assert [e.name for e in cart_pendulum.elements] == ["cart", "pole"]
        assert cart_pendulum.get_element("pole").dof_offset == 1

    def test_mappings(self, cart_pendulum):
        assert cart_pendulum.generate_mappings() == [{0: 0, 6: 2}, {5: 1, 11: 3}]

    def test_generalized_mass_matrix(self, cart_pendulum):
        m_cart, m_pole, length = 2.0, 0.3, 0.8
        set_positions(cart_pendulum, [0.4, 0.0])
        M = cart_pendulum.get_generalized_mass_matrix()
        assert_allclose(M, [[m_cart + m_pole, 0.0], [0.0, m_pole * length ** 2 / 3]], atol=1e-12)

        set_positions(cart_pendulum, [0.4, np.pi / 2])
        M = cart_pendulum.get_generalized_mass_matrix()
        assert M[0, 1] == pytest.approx(-m_pole * length / 2)
        assert M[1, 0] == pytest.approx(M[0, 1])

    def test_pole_rides_on_cart(self, cart_pendulum):
        set_positions(cart_pendulum, [0.4, 0.0])
        assert_allclose(cart_pendulum.get_element("pole").get_cog_position(), [0.8, 0.0, 0.0], atol=1e-12)


class TestLoading:
    def test_classmethod_load(self, element_registry, joint_registry):
        system = MultibodySystem.load(two_rods(BASE_LINK, TIP_LINK), element_registry, joint_registry)
        assert system.initialized
        assert system.raw_degrees_of_freedom == 12

    def test_default_gravity(self, element_registry, joint_registry):
        system = parse_system(two_rods(BASE_LINK, TIP_LINK), element_registry, joint_registry)
        assert_allclose(system.gravitation_vector, [0.0, 0.0, -9.81])

    def test_names_are_case_insensitive(self, element_registry, joint_registry):
        text = two_rods(
            '<Link type="REVOLUTE_Z" localframe="Origin" remote="BASE"/>',
            '<Link type="revolute_z" localframe="origin" remote="A/Tip"/>',
        )
        system = parse_system(text, element_registry, joint_registry)
        assert system.get_element("b").parent is system.get_element("a")

    def test_definition_round_trip(self, definitions_dir):
        with open(f"{definitions_dir}/systems/double_pendulum.xml", encoding="utf-8") as f:
            original = SystemDefinition.from_xml(f.read())
        assert SystemDefinition.from_xml(original.to_string()) == original


class TestLoadErrors:
    def load(self, text, element_registry, joint_registry):
        return parse_system(text, element_registry, joint_registry)

    def test_unknown_remote_body(self, element_registry, joint_registry):
        text = two_rods(BASE_LINK, '<Link type="revolute_z" localframe="origin" remote="ghost/tip"/>')
        with pytest.raises(TopologyError, match="ghost"):
            self.load(text, element_registry, joint_registry)

    def test_unknown_remote_frame(self, element_registry, joint_registry):
        text = two_rods(BASE_LINK, '<Link type="revolute_z" localframe="origin" remote="a/elbow"/>')
        with pytest.raises(TopologyError, match="elbow"):
            self.load(text, element_registry, joint_registry)

    def test_unknown_local_frame(self, element_registry, joint_registry):
        text = two_rods(BASE_LINK, '<Link type="revolute_z" localframe="knee" remote="a/tip"/>')
        with pytest.raises(TopologyError, match="knee"):
            self.load(text, element_registry, joint_registry)

    def test_self_link(self, element_registry, joint_registry):
        text = two_rods('<Link type="revolute_z" localframe="origin" remote="a/tip"/>', TIP_LINK)
        with pytest.raises(TopologyError, match="itself"):
            self.load(text, element_registry, joint_registry)

    def test_cyclic_links(self, element_registry, joint_registry):
        text = two_rods('<Link type="revolute_z" localframe="origin" remote="b/tip"/>', TIP_LINK)
        with pytest.raises(TopologyError):
            self.load(text, element_registry, joint_registry)

    def test_unknown_element_type(self, element_registry, joint_registry):
        text = two_rods(BASE_LINK, TIP_LINK).replace('name="b" type="rod"', 'name="b" type="plate"')
        with pytest.raises(ElementNotFoundError):
            self.load(text, element_registry, joint_registry)

    def test_unknown_joint_type(self, element_registry, joint_registry):
        text = two_rods(BASE_LINK, '<Link type="hinge" localframe="origin" remote="a/tip"/>')
        with pytest.raises(JointNotFoundError):
            self.load(text, element_registry, joint_registry)

    def test_missing_parameter(self, element_registry, joint_registry):
        text = two_rods(BASE_LINK, TIP_LINK).replace(
            '<ScalarParameter name="length"><Number>1</Number></ScalarParameter>', ""
        )
        with pytest.raises(ParameterNotFoundError):
            self.load(text, element_registry, joint_registry)

    def test_missing_bodies(self, element_registry, joint_registry):
        with pytest.raises(BadDefinitionError, match="Bodies"):
            self.load("<MultibodySystem/>", element_registry, joint_registry)

    def test_empty_bodies(self, element_registry, joint_registry):
        with pytest.raises(BadDefinitionError, match="at least one body"):
            self.load("<MultibodySystem><Bodies/></MultibodySystem>", element_registry, joint_registry)

    def test_missing_link(self, element_registry, joint_registry):
        with pytest.raises(BadDefinitionError, match="Link"):
            self.load(two_rods(BASE_LINK, ""), element_registry, joint_registry)

    def test_link_missing_attribute(self, element_registry, joint_registry):
        text = two_rods(BASE_LINK, '<Link type="revolute_z" remote="a/tip"/>')
        with pytest.raises(BadDefinitionError, match="localframe"):
            self.load(text, element_registry, joint_registry)

    def test_duplicate_body_names(self, element_registry, joint_registry):
        extra = f'<Body name="A" type="rod">{BASE_LINK}</Body>'
        with pytest.raises(BadDefinitionError, match="Duplicate"):
            self.load(two_rods(BASE_LINK, TIP_LINK, extra), element_registry, joint_registry)

    def test_reserved_base_name(self, element_registry, joint_registry):
        extra = f'<Body name="base" type="rod">{BASE_LINK}</Body>'
        with pytest.raises(BadDefinitionError, match="reserved"):
            self.load(two_rods(BASE_LINK, TIP_LINK, extra), element_registry, joint_registry)

    def test_malformed_xml(self, element_registry, joint_registry):
        with pytest.raises(BadDefinitionError):
            self.load("<MultibodySystem><Bodies>", element_registry, joint_registry)
