# mini_mbs/element.py
"""
ELEMENT: Rigid Body Node of the Multibody Tree
==============================================

PURPOSE:
--------
An Element is one rigid body. It owns its mass properties and frames, the
joint that attaches it to its parent, and a cache of per-step quantities
computed from its 12-slot joint state. Everything the system assembles
(mass matrix, Jacobian, Jacobian derivative, forces, angular velocities)
is produced by asking elements. Every global kinematic quantity is
composed from the parent's cached values during update(), so one
update pass over the tree in parent-first order costs O(N).

KINEMATICS:
-----------
For element i with parent p, let

    R_p, r_p   global rotation / origin position of the parent
               (identity / zero for a root)
    B, b       rotation / offset of the joint base frame in parent coords
    F, f       rotation / offset of the follower frame in element coords
    t, R_loc   joint translation (X, Y, Z) and rotation Rx·Ry·Rz

Then

    A   = R_p · B                       rotation applied to the joint translation
    c   = r_p + R_p · b + A · t         joint centre
    R_i = A · R_loc · Fᵀ                element rotation
    r_i = c - R_i · f                   element origin
    p   = r_i + R_i · s                 centre of gravity (s = cog offset)

Time derivatives follow by the product rule at every level of the
chain.

JACOBIAN:
---------
The velocity of element i's centre of gravity and its angular velocity
depend on the DOF of i and of every ancestor j. Column by column:

    translational DOF k of j:   ∂p/∂q = A_j · e_k                 ∂ω/∂q = 0
    rotational DOF θ of j:      ∂ω/∂θ̇ = w = A_j · vee(∂R_loc/∂θ · R_locᵀ)
                                ∂p/∂θ = w × (p - c_j)

Columns of all other elements are zero. The Jacobian derivative uses the
time derivatives of the partials (∂R/∂θ)˙ and of R_loc.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy.linalg import block_diag

from .kernel import rotation
from .kernel.assemble import add_block, insert_block, project_block_columns
from .kernel.dof import DOF_PER_ELEMENT, ROTATIONAL_DOFS, Dof, keep_matrix_identity, keep_matrix_scalar
from .model import Frame, Joint


logger = logging.getLogger(__name__)


class Element:
    """
    One rigid body of a multibody system.

    Parameters:
    -----------
    name : str
        Body name, unique within a system

    mass : float
        Mass (kg)

    inertia : array-like (3, 3)
        Inertia tensor about the centre of gravity, in element coordinates

    frames : dict of str -> Frame, optional
        Named frames of the element. The origin frame is added if absent.

    cog : str, optional
        Name of the centre-of-gravity frame (default "origin")

    base_joint : Joint, optional
        Joint attaching this element to its parent. Must carry its base and
        follower frames before the system is initialized.

    parent : Element, optional
        Parent element; None for a root

    type_name : str, optional
        Name of the element type this body was created from

    Notes:
    ------
    Ids, offsets, keep matrices and P-vectors are assigned by
    MultibodySystem.initialize_system(). Until then the kinematic getters
    must not be called.
    """

    def __init__(
        self,
        name: str,
        mass: float,
        inertia,
        frames: Optional[Dict[str, Frame]] = None,
        cog: str = "origin",
        base_joint: Optional[Joint] = None,
        parent: Optional["Element"] = None,
        type_name: str = "",
    ):
        self.name = name
        self.type_name = type_name
        self.mass = float(mass)
        self.inertia = np.array(inertia, dtype=float).reshape(3, 3)

        self.frames: Dict[str, Frame] = dict(frames or {})
        if "origin" not in self.frames:
            self.frames["origin"] = Frame.origin()
        self.origin: Frame = self.frames["origin"]
        self.cog: Frame = self.frames[cog]

        self.base_joint = base_joint
        self.parent = parent
        self.children: List["Element"] = []

        # Assigned by MultibodySystem
        self.element_id: int = -1
        self.dof_offset: int = 0
        self.system = None

        # Keep matrices (set in create_keep_matrix)
        self.keep_matrix_scalar = np.eye(DOF_PER_ELEMENT)
        self.keep_matrix_identity = np.eye(3 * DOF_PER_ELEMENT)

        # P-vectors / P-matrices (set in setup)
        self.local_p_vector_cog = np.zeros(3)
        self.local_p_vector_rotation = np.zeros((3, DOF_PER_ELEMENT))
        self.local_p_matrix_base = np.eye(3)
        self.local_p_vector_base = np.zeros(3)
        self.local_p_matrix_follower = np.eye(3)
        self.local_p_vector_follower = np.zeros(3)

        # Per-step caches (set in update)
        self.update(np.zeros(2 * DOF_PER_ELEMENT))

    def __repr__(self) -> str:
        return f"Element(name={self.name!r}, id={self.element_id}, type={self.type_name!r})"

    @property
    def degree_of_freedom_count(self) -> int:
        return self.base_joint.degree_of_freedom_count

    @property
    def raw_index(self) -> int:
        """First row/column of this element in the raw 6-per-element layout."""
        return self.system.dof.idx(self.element_id, Dof.X)

    def get_frame(self, name: str) -> Frame:
        """Frame by name. Raises KeyError if the element has no such frame."""
        return self.frames[name]

    # =========================================================================
    # Setup (once, after the system is initialized)
    # =========================================================================

    def create_keep_matrix(self, active_states: np.ndarray) -> None:
        """
        Build the scalar (6 × k) and identity-block (18 × 3k) keep matrices.

        active_states is the element's 12-slot state existence vector.
        """
        self.keep_matrix_scalar = keep_matrix_scalar(active_states)
        self.keep_matrix_identity = keep_matrix_identity(active_states)

    def set_local_p_vector_cog(self) -> None:
        """Cache the centre-of-gravity offset from the element origin."""
        self.local_p_vector_cog = self.cog.get_offset_origin()

    def set_local_p_vector_rotation(self) -> None:
        """
        Cache the identity-vector selection of the rotational DOF.

        Column d is zero for a translational DOF and the unit vector of the
        rotation axis for ALPHA (e_x), BETA (e_y) and GAMMA (e_z).
        """
        selection = np.zeros((3, DOF_PER_ELEMENT))
        for axis, dof in enumerate(ROTATIONAL_DOFS):
            selection[axis, int(dof)] = 1.0
        self.local_p_vector_rotation = selection

    def set_local_p_joint_frames(self) -> None:
        """Cache base/follower frame rotations and offsets of the base joint."""
        base = self.base_joint.base_frame
        follower = self.base_joint.follower_frame
        self.local_p_matrix_base = base.get_rotation_origin()
        self.local_p_vector_base = base.get_offset_origin()
        self.local_p_matrix_follower = follower.get_rotation_origin()
        self.local_p_vector_follower = follower.get_offset_origin()

    # =========================================================================
    # Per-step update
    # =========================================================================

    def update(self, local_state: Sequence[float]) -> None:
        """
        Refresh all per-step caches from the 12-slot local state.

        Slots 0..5 are X, Y, Z, ALPHA, BETA, GAMMA; slots 6..11 their rates.
        The parent (if any) must have been updated first.
        """
        local_state = np.asarray(local_state, dtype=float)
        self.local_state = local_state.copy()
        self.local_translation = local_state[0:3].copy()
        self.local_translation_derivative = local_state[6:9].copy()
        self.update_local_rotation_matrices(local_state)
        self.update_global_kinematics()

    def update_local_rotation_matrices(self, local_state: np.ndarray) -> None:
        """Local rotation matrix, its partials and all their time derivatives."""
        a, b, c = local_state[3], local_state[4], local_state[5]
        da, db, dc = local_state[9], local_state[10], local_state[11]

        self.local_rotation_matrix_alpha = rotation.rot_x(a)
        self.local_rotation_matrix_beta = rotation.rot_y(b)
        self.local_rotation_matrix_gamma = rotation.rot_z(c)
        self.local_rotation_matrix = (
            self.local_rotation_matrix_alpha
            @ self.local_rotation_matrix_beta
            @ self.local_rotation_matrix_gamma
        )

        self.local_rotation_matrix_partial_diff_alpha = rotation.partial_alpha(a, b, c)
        self.local_rotation_matrix_partial_diff_beta = rotation.partial_beta(a, b, c)
        self.local_rotation_matrix_partial_diff_gamma = rotation.partial_gamma(a, b, c)

        self.local_rotation_matrix_partial_diff_total_alpha = rotation.partial_alpha_derivative(a, b, c, da, db, dc)
        self.local_rotation_matrix_partial_diff_total_beta = rotation.partial_beta_derivative(a, b, c, da, db, dc)
        self.local_rotation_matrix_partial_diff_total_gamma = rotation.partial_gamma_derivative(a, b, c, da, db, dc)

        self.local_rotation_matrix_total_derivative = rotation.total_time_derivative(a, b, c, da, db, dc)

    def _local_partials(self):
        return (
            self.local_rotation_matrix_partial_diff_alpha,
            self.local_rotation_matrix_partial_diff_beta,
            self.local_rotation_matrix_partial_diff_gamma,
        )

    def _local_partial_derivatives(self):
        return (
            self.local_rotation_matrix_partial_diff_total_alpha,
            self.local_rotation_matrix_partial_diff_total_beta,
            self.local_rotation_matrix_partial_diff_total_gamma,
        )

    def get_local_rotation_axes(self) -> np.ndarray:
        """
        Rotation axes of ALPHA, BETA, GAMMA in base-frame coordinates (3×3, one per column).

        Axis θ is vee(∂R/∂θ · Rᵀ), i.e. e_x, Rx·e_y and Rx·Ry·e_z.
        """
        R = self.local_rotation_matrix
        return np.column_stack([rotation.vee(D @ R.T) for D in self._local_partials()])

    def get_local_rotation_axes_derivative(self) -> np.ndarray:
        """Time derivative of get_local_rotation_axes."""
        R = self.local_rotation_matrix
        R_dot = self.local_rotation_matrix_total_derivative
        return np.column_stack([
            rotation.vee(D_dot @ R.T + D @ R_dot.T)
            for D, D_dot in zip(self._local_partials(), self._local_partial_derivatives())
        ])

    # =========================================================================
    # Parent-chain composition
    # =========================================================================

    def update_global_kinematics(self) -> None:
        """
        Compose this element's global pose and its rate from the parent's caches.

        The parent must already be current: MultibodySystem.update_elements
        visits elements parent first, so one pass costs O(N).
        """
        if self.parent is None:
            product, product_dot = np.eye(3), np.zeros((3, 3))
            r_parent, v_parent = np.zeros(3), np.zeros(3)
        else:
            product = self.parent.parent_matrix_rotation
            product_dot = self.parent.parent_matrix_rotation_derivative
            r_parent = self.parent.parent_vector
            v_parent = self.parent.parent_vector_derivative

        A = product @ self.local_p_matrix_base
        A_dot = product_dot @ self.local_p_matrix_base
        follower_T = self.local_p_matrix_follower.T

        self.parent_matrix_product = product
        self.parent_matrix_product_derivative = product_dot
        self.parent_matrix_translation = A
        self.parent_matrix_translation_derivative = A_dot
        self.parent_matrix_rotation = A @ self.local_rotation_matrix @ follower_T
        self.parent_matrix_rotation_derivative = (
            A_dot @ self.local_rotation_matrix + A @ self.local_rotation_matrix_total_derivative
        ) @ follower_T

        self.joint_position = r_parent + product @ self.local_p_vector_base + A @ self.local_translation
        self.joint_velocity = (
            v_parent
            + product_dot @ self.local_p_vector_base
            + A_dot @ self.local_translation
            + A @ self.local_translation_derivative
        )
        self.parent_vector = self.joint_position - self.parent_matrix_rotation @ self.local_p_vector_follower
        self.parent_vector_derivative = (
            self.joint_velocity - self.parent_matrix_rotation_derivative @ self.local_p_vector_follower
        )

    def get_parent_matrix_product(self) -> np.ndarray:
        """Product of all parent rotations: the parent's global rotation (I for a root)."""
        return self.parent_matrix_product

    def get_parent_matrix_product_derivative(self) -> np.ndarray:
        return self.parent_matrix_product_derivative

    def get_parent_matrix_translation(self) -> np.ndarray:
        """A = R_parent · B: maps the joint translation into global coordinates."""
        return self.parent_matrix_translation

    def get_parent_matrix_translation_derivative(self) -> np.ndarray:
        return self.parent_matrix_translation_derivative

    def get_parent_matrix_rotation(self) -> np.ndarray:
        """Global rotation of this element: A · R_loc · Fᵀ."""
        return self.parent_matrix_rotation

    def get_parent_matrix_rotation_derivative(self) -> np.ndarray:
        """d/dt (A · R_loc · Fᵀ) = Ȧ · R_loc · Fᵀ + A · Ṙ_loc · Fᵀ."""
        return self.parent_matrix_rotation_derivative

    def get_joint_position(self) -> np.ndarray:
        """Joint centre c = r_parent + R_parent · b + A · t."""
        return self.joint_position

    def get_joint_velocity(self) -> np.ndarray:
        return self.joint_velocity

    def get_parent_vector(self) -> np.ndarray:
        """Global position of this element's origin: c - R · f."""
        return self.parent_vector

    def get_parent_vector_derivative(self) -> np.ndarray:
        return self.parent_vector_derivative

    def get_cog_position(self) -> np.ndarray:
        return self.get_parent_vector() + self.get_parent_matrix_rotation() @ self.local_p_vector_cog

    def get_cog_velocity(self) -> np.ndarray:
        return (
            self.get_parent_vector_derivative()
            + self.get_parent_matrix_rotation_derivative() @ self.local_p_vector_cog
        )

    def get_chain(self) -> List["Element"]:
        """Ancestors from the root down to (and including) this element."""
        chain = [self]
        while chain[-1].parent is not None:
            chain.append(chain[-1].parent)
        return chain[::-1]

    # =========================================================================
    # Jacobian
    # =========================================================================

    def _jacobian_columns(self, element: "Element", point: np.ndarray):
        """
        Translational and rotational 3×6 blocks of ``element``'s DOF for ``point``.

        ``element`` is this element or one of its ancestors; ``point`` lies
        on this element.
        """
        A = element.get_parent_matrix_translation()
        axes = A @ element.get_local_rotation_axes()
        lever = point - element.get_joint_position()

        translational = np.zeros((3, DOF_PER_ELEMENT))
        rotational = np.zeros((3, DOF_PER_ELEMENT))
        translational[:, 0:3] = A
        rotational[:, 3:6] = axes
        for k in range(3):
            translational[:, 3 + k] = np.cross(axes[:, k], lever)
        return translational, rotational

    def _jacobian_columns_derivative(self, element: "Element", point: np.ndarray, point_velocity: np.ndarray):
        """Time derivatives of the blocks returned by _jacobian_columns."""
        A = element.get_parent_matrix_translation()
        A_dot = element.get_parent_matrix_translation_derivative()
        axes = A @ element.get_local_rotation_axes()
        axes_dot = A_dot @ element.get_local_rotation_axes() + A @ element.get_local_rotation_axes_derivative()
        lever = point - element.get_joint_position()
        lever_dot = point_velocity - element.get_joint_velocity()

        translational = np.zeros((3, DOF_PER_ELEMENT))
        rotational = np.zeros((3, DOF_PER_ELEMENT))
        translational[:, 0:3] = A_dot
        rotational[:, 3:6] = axes_dot
        for k in range(3):
            translational[:, 3 + k] = np.cross(axes_dot[:, k], lever) + np.cross(axes[:, k], lever_dot)
        return translational, rotational

    def _raw_width(self) -> int:
        return self.system.raw_degrees_of_freedom

    def get_translational_jacobian_matrix(self) -> np.ndarray:
        """∂(cog velocity)/∂q̇ in the raw layout (3 × 6N)."""
        jacobian = np.zeros((3, self._raw_width()))
        point = self.get_cog_position()
        for element in self.get_chain():
            translational, _ = self._jacobian_columns(element, point)
            insert_block(jacobian, translational, 0, element.raw_index)
        return jacobian

    def get_rotational_jacobian(self) -> np.ndarray:
        """
        ∂ω/∂q̇ in the raw layout (3 × 6N).

        Ancestors contribute additively: this is the parent's rotational
        Jacobian plus the columns of this element's own rotational DOF.
        """
        if self.parent is None:
            jacobian = np.zeros((3, self._raw_width()))
        else:
            jacobian = self.parent.get_rotational_jacobian()
        axes = self.get_parent_matrix_translation() @ self.get_local_rotation_axes()
        insert_block(jacobian, axes @ self.local_p_vector_rotation, 0, self.raw_index)
        return jacobian

    def get_translational_jacobian_derivative(self) -> np.ndarray:
        jacobian = np.zeros((3, self._raw_width()))
        point = self.get_cog_position()
        point_velocity = self.get_cog_velocity()
        for element in self.get_chain():
            translational, _ = self._jacobian_columns_derivative(element, point, point_velocity)
            insert_block(jacobian, translational, 0, element.raw_index)
        return jacobian

    def get_rotational_jacobian_derivative(self) -> np.ndarray:
        if self.parent is None:
            jacobian = np.zeros((3, self._raw_width()))
        else:
            jacobian = self.parent.get_rotational_jacobian_derivative()
        axes_dot = (
            self.get_parent_matrix_translation_derivative() @ self.get_local_rotation_axes()
            + self.get_parent_matrix_translation() @ self.get_local_rotation_axes_derivative()
        )
        insert_block(jacobian, axes_dot @ self.local_p_vector_rotation, 0, self.raw_index)
        return jacobian

    def get_element_jacobian(self, global_jacobian: np.ndarray) -> np.ndarray:
        """
        Write this element's rows of the raw global Jacobian (6N × 6N).

        Rows 6·id .. 6·id+3 hold the translational block, rows
        6·id+3 .. 6·id+6 the rotational block.
        """
        insert_block(global_jacobian, self.get_translational_jacobian_matrix(), self.raw_index, 0)
        insert_block(global_jacobian, self.get_rotational_jacobian(), self.raw_index + 3, 0)
        return global_jacobian

    def get_element_jacobian_derivative(self, global_jacobian_derivative: np.ndarray) -> np.ndarray:
        insert_block(global_jacobian_derivative, self.get_translational_jacobian_derivative(), self.raw_index, 0)
        insert_block(global_jacobian_derivative, self.get_rotational_jacobian_derivative(), self.raw_index + 3, 0)
        return global_jacobian_derivative

    def get_joint_jacobian(self) -> np.ndarray:
        """
        Compact 6 × k Jacobian of this element's own joint at its centre of gravity.

        Equal to the diagonal block of the compact global Jacobian.
        """
        translational, rotational = self._jacobian_columns(self, self.get_cog_position())
        return np.vstack([
            project_block_columns(translational, self.keep_matrix_identity),
            project_block_columns(rotational, self.keep_matrix_identity),
        ])

    # =========================================================================
    # Mass, forces, angular velocity
    # =========================================================================

    def get_raw_mass_matrix(self) -> np.ndarray:
        """6×6 block diagonal: mass·I₃ and the inertia tensor."""
        return block_diag(self.mass * np.eye(3), self.inertia)

    def get_local_mass_matrix(self) -> np.ndarray:
        """Kᵀ · M · K, reduced to the element's free DOF (k × k)."""
        K = self.keep_matrix_scalar
        return K.T @ self.get_raw_mass_matrix() @ K

    def get_global_mass_matrix(self, global_mass_matrix: np.ndarray) -> np.ndarray:
        """Insert the local mass matrix at this element's compact DOF offset."""
        return insert_block(global_mass_matrix, self.get_local_mass_matrix(), self.dof_offset)

    def get_raw_force_moment_vector(self) -> np.ndarray:
        """[m·g, 0]: gravity force and zero moment."""
        force_moment = np.zeros(DOF_PER_ELEMENT)
        force_moment[0:3] = self.mass * np.asarray(self.system.gravitation_vector, dtype=float)
        return force_moment

    def get_local_force_moment_vector(self) -> np.ndarray:
        """Force/moment vector reduced to the element's free DOF (k,)."""
        return self.keep_matrix_scalar.T @ self.get_raw_force_moment_vector()

    def get_global_force_moment_vector(self, global_force_vector: np.ndarray) -> np.ndarray:
        """
        Add this element's force to the raw global vector (6N,).

        The projected force is added at this element's slots and subtracted
        at the parent's slots: the reaction the joint passes back to the
        parent. A root passes its reaction to ground.
        """
        projected = self.keep_matrix_scalar @ self.get_local_force_moment_vector()
        add_block(global_force_vector, projected, self.raw_index)
        if self.parent is not None:
            add_block(global_force_vector, -projected, self.parent.raw_index)
        return global_force_vector

    def get_local_angular_velocity(self) -> np.ndarray:
        """Angular velocity of this element's own joint, in global coordinates."""
        omega_local = rotation.vee(self.local_rotation_matrix_total_derivative @ self.local_rotation_matrix.T)
        return self.get_parent_matrix_translation() @ omega_local

    def get_angular_velocity(self) -> np.ndarray:
        """Absolute angular velocity in global coordinates (sum over the chain)."""
        if self.parent is None:
            return self.get_local_angular_velocity()
        return self.parent.get_angular_velocity() + self.get_local_angular_velocity()

    def get_inertia_global(self) -> np.ndarray:
        """Inertia tensor about the centre of gravity, in global coordinates."""
        R = self.get_parent_matrix_rotation()
        return R @ self.inertia @ R.T
