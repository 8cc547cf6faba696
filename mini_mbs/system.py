# mini_mbs/system.py
"""
MULTIBODY SYSTEM: Ordering, Bookkeeping and Global Assembly
===========================================================

PURPOSE:
--------
MultibodySystem owns the element tree and assembles the global quantities
an equation-of-motion solver needs at each step:

    M(q)         generalized mass matrix              (n × n)
    J(q)         kinematic Jacobian                    (6N × n)
    J̇(q, q̇)      Jacobian time derivative              (6N × n)
    f            applied force/moment vector           (n,)
    c(q, q̇)      Coriolis/centrifugal vector           (6N,)

N is the number of elements, n the total number of free DOF.

LIFECYCLE:
----------
    Loaded       elements constructed, joints attached to frames
    Initialized  initialize_system(): topological order, ids, offsets,
                 keep matrices, P-vectors
    Stepping     repeat: update_elements(state) then query the getters

The getters read element caches only; call update_elements() with the
current state before querying them.

LAYOUTS:
--------
Rows of J are always in the RAW layout (6 per element: translational
velocity of the centre of gravity, then angular velocity). Columns, the
mass matrix and the force vector use the COMPACT layout (free DOF only,
element by element in topological order). The system keep matrix
(6N × n) maps one to the other.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy.linalg import block_diag

from .config import CONFIG
from .element import Element
from .exceptions import TopologyError
from .kernel.assemble import insert_block, scatter_add_matrix
from .kernel.dof import DOF_PER_ELEMENT, DOFManager, state_existence_vector
from .kernel.rotation import roessel_matrix
from .model import Frame
from .state import StateVector


logger = logging.getLogger(__name__)


class MultibodySystem:
    """
    A tree of rigid elements connected by joints.

    Parameters:
    -----------
    elements : list of Element, optional
        Elements in any order. Each element's base joint must already be
        attached to its base and follower frames.

    gravitation_vector : array-like (3,), optional
        Gravity (m/s²). Defaults to CONFIG.default_gravity.

    base_frame : Frame, optional
        The ground frame that root joints attach to. Defaults to an origin
        frame named "base".

    Examples:
    ---------
    >>> system = MultibodySystem([link])      # link: a root Element
    >>> system.initialize_system()
    >>> state = system.create_state_vector()
    >>> state.positions[0] = 0.5
    >>> system.update_elements(state)
    >>> M = system.get_global_mass_matrix()
    """

    def __init__(
        self,
        elements: Optional[List[Element]] = None,
        gravitation_vector=None,
        base_frame: Optional[Frame] = None,
    ):
        self.elements: List[Element] = list(elements or [])
        if gravitation_vector is None:
            gravitation_vector = CONFIG.default_gravity
        self.gravitation_vector = np.array(gravitation_vector, dtype=float).reshape(3)
        self.base_frame = base_frame if base_frame is not None else Frame.origin("base")

        self.dof = DOFManager()
        self.total_degrees_of_freedom = 0
        self.element_state_existence_vectors: List[np.ndarray] = []
        self.state_existence_vector = np.zeros(0)
        self.keep_matrix = np.zeros((0, 0))
        self.initialized = False

    def __repr__(self) -> str:
        return (
            f"MultibodySystem(elements={len(self.elements)}, "
            f"dof={self.total_degrees_of_freedom}, initialized={self.initialized})"
        )

    @property
    def raw_degrees_of_freedom(self) -> int:
        """6·N: size of the raw layout."""
        return self.dof.ndof(len(self.elements))

    def get_element(self, name: str) -> Element:
        """Element by (case-insensitive) name. Raises KeyError if absent."""
        key = name.lower()
        for element in self.elements:
            if element.name.lower() == key:
                return element
        raise KeyError(f"No element named '{name}' in system")

    # =========================================================================
    # Initialization
    # =========================================================================

    def initialize_system(self) -> None:
        """
        Order the elements, assign ids and offsets, and prepare every element.

        Elements are placed by repeated selection: an unplaced element is
        placed once its parent is placed (or it has none). A pass over the
        unplaced elements that places nothing means some parent is not
        part of this system or the parents form a cycle.

        Raises:
        -------
        TopologyError
            If the parent relation cannot be ordered.
        """
        self.elements = self._topological_order(self.elements)

        offset = 0
        for element_id, element in enumerate(self.elements):
            element.element_id = element_id
            element.dof_offset = offset
            element.system = self
            element.children = []
            offset += element.degree_of_freedom_count
        for element in self.elements:
            if element.parent is not None:
                element.parent.children.append(element)
        self.total_degrees_of_freedom = offset

        self.element_state_existence_vectors = [
            self.get_element_state_existence_vector(element) for element in self.elements
        ]
        if self.elements:
            self.state_existence_vector = np.concatenate(self.element_state_existence_vectors)
        else:
            self.state_existence_vector = np.zeros(0)

        self.setup_elements()
        self.keep_matrix = self._build_keep_matrix()
        # Frames and parents are final now; bring every cached pose up to date
        for element in self.elements:
            element.update(element.local_state)
        self.initialized = True

        logger.info(
            f"Initialized system: {len(self.elements)} elements, "
            f"{self.total_degrees_of_freedom} free DOF"
        )
        for element in self.elements:
            logger.debug(
                f"  [{element.element_id}] {element.name} ({element.type_name}) "
                f"parent={element.parent.name if element.parent else 'base'} "
                f"offset={element.dof_offset} dof={element.degree_of_freedom_count}"
            )

    @staticmethod
    def _topological_order(elements: Sequence[Element]) -> List[Element]:
        unplaced = list(elements)
        placed: List[Element] = []
        placed_ids = set()
        while unplaced:
            remaining = []
            for element in unplaced:
                if element.parent is None or id(element.parent) in placed_ids:
                    placed.append(element)
                    placed_ids.add(id(element))
                else:
                    remaining.append(element)
            if len(remaining) == len(unplaced):
                names = ", ".join(e.name for e in remaining)
                raise TopologyError(
                    f"Cannot order elements [{names}]: parent missing from system or cyclic"
                )
            unplaced = remaining
        return placed

    def get_element_state_existence_vector(self, element: Element) -> np.ndarray:
        """12-slot existence vector of one element, from its joint's free DOF."""
        return state_existence_vector(element.base_joint.free_degrees_of_freedom)

    def setup_elements(self) -> None:
        """Build keep matrices and P-vectors of every element."""
        for element, active_states in zip(self.elements, self.element_state_existence_vectors):
            element.create_keep_matrix(active_states)
            element.set_local_p_vector_cog()
            element.set_local_p_vector_rotation()
            element.set_local_p_joint_frames()

    def _build_keep_matrix(self) -> np.ndarray:
        keep = np.zeros((self.raw_degrees_of_freedom, self.total_degrees_of_freedom))
        for element in self.elements:
            insert_block(keep, element.keep_matrix_scalar, element.raw_index, element.dof_offset)
        return keep

    # =========================================================================
    # State
    # =========================================================================

    def generate_mappings(self, include_time_derivatives: bool = True) -> List[Dict[int, int]]:
        """
        One {local slot: backing index} mapping per element.

        Free DOF d of an element with compact offset o, being its i-th free
        DOF, maps slot d to o + i and (with time derivatives) slot d + 6 to
        n + o + i.
        """
        n = self.total_degrees_of_freedom
        mappings = []
        for element in self.elements:
            mapping = {}
            for i, dof in enumerate(element.base_joint.free_degrees_of_freedom):
                mapping[int(dof)] = element.dof_offset + i
                if include_time_derivatives:
                    mapping[int(dof) + DOF_PER_ELEMENT] = n + element.dof_offset + i
            mappings.append(mapping)
        return mappings

    def create_state_vector(self, global_state: Optional[np.ndarray] = None) -> StateVector:
        """
        A StateVector for this system.

        If ``global_state`` is given it is aliased (length 2·n); otherwise a
        zero array is allocated.
        """
        if global_state is None:
            return StateVector.zeros(self.total_degrees_of_freedom, self.generate_mappings())
        return StateVector(global_state, self.generate_mappings())

    def update_elements(self, state_vector: StateVector) -> None:
        """Refresh every element's caches from the current state."""
        for element in self.elements:
            element.update(state_vector.get_state_vector_for_id(element.element_id).to_array())

    # =========================================================================
    # Global assembly
    # =========================================================================

    def get_global_mass_matrix(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Block-diagonal n × n mass matrix of the local (joint-space) masses."""
        n = self.total_degrees_of_freedom
        if out is None:
            out = np.zeros((n, n))
        else:
            out.fill(0.0)
        for element in self.elements:
            element.get_global_mass_matrix(out)
        return out

    def get_raw_jacobian(self) -> np.ndarray:
        """Jacobian in the raw layout (6N × 6N)."""
        raw = np.zeros((self.raw_degrees_of_freedom, self.raw_degrees_of_freedom))
        for element in self.elements:
            element.get_element_jacobian(raw)
        return raw

    def get_raw_jacobian_derivative(self) -> np.ndarray:
        raw = np.zeros((self.raw_degrees_of_freedom, self.raw_degrees_of_freedom))
        for element in self.elements:
            element.get_element_jacobian_derivative(raw)
        return raw

    def get_global_jacobian(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Global Jacobian (6N × n): raw Jacobian times the system keep matrix."""
        jacobian = self.get_raw_jacobian() @ self.keep_matrix
        if out is None:
            return jacobian
        out[...] = jacobian
        return out

    def get_global_jacobian_derivative(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Time derivative of the global Jacobian (6N × n)."""
        jacobian = self.get_raw_jacobian_derivative() @ self.keep_matrix
        if out is None:
            return jacobian
        out[...] = jacobian
        return out

    def get_global_free_force_vector(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Applied force/moment vector in the compact layout (n,).

        Each element adds its gravity force at its own slots and subtracts
        it at its parent's; the raw result is reduced by the keep matrix.
        """
        raw = np.zeros(self.raw_degrees_of_freedom)
        for element in self.elements:
            element.get_global_force_moment_vector(raw)
        force = self.keep_matrix.T @ raw
        if out is None:
            return force
        out[...] = force
        return out

    def get_coriolis_vector(self, velocities, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Coriolis/centrifugal vector (6N,).

        J̇·q̇, plus ω × (I_world·ω) in each element's rotational rows.
        ``velocities`` is the compact q̇ (n,) the elements were last updated
        with.
        """
        velocities = np.asarray(velocities, dtype=float)
        coriolis = self.get_global_jacobian_derivative() @ velocities
        for element in self.elements:
            omega = element.get_angular_velocity()
            gyroscopic = roessel_matrix(omega) @ element.get_inertia_global() @ omega
            rotational_rows = self.dof.element_dofs(element.element_id)[3:]
            coriolis[rotational_rows] += gyroscopic
        if out is None:
            return coriolis
        out[...] = coriolis
        return out

    def get_body_mass_matrix(self) -> np.ndarray:
        """Raw-layout body mass matrix (6N × 6N): blocks of m·I₃ and world inertia."""
        body_mass = np.zeros((self.raw_degrees_of_freedom, self.raw_degrees_of_freedom))
        for element in self.elements:
            block = block_diag(element.mass * np.eye(3), element.get_inertia_global())
            scatter_add_matrix(body_mass, self.dof.element_dofs(element.element_id), block)
        return body_mass

    def get_generalized_mass_matrix(self) -> np.ndarray:
        """Jᵀ · M_body · J (n × n): the configuration-dependent mass matrix."""
        jacobian = self.get_global_jacobian()
        return jacobian.T @ self.get_body_mass_matrix() @ jacobian

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def load(cls, text: str, element_registry, joint_registry) -> "MultibodySystem":
        """Parse a system definition and return the initialized system."""
        from .parser.system import parse_system
        return parse_system(text, element_registry, joint_registry)

    @classmethod
    def load_from_file(cls, path, element_registry, joint_registry) -> "MultibodySystem":
        from .parser.system import parse_system_file
        return parse_system_file(path, element_registry, joint_registry)
