# mini_mbs/kernel - Element-agnostic numerical core
"""
KERNEL: THE NUMERICAL FOUNDATION
================================

This package contains the pieces of the multibody engine that know nothing
about elements, joints or files:

- rotation.py  Euler-XYZ rotation matrices, analytic partials, time derivatives
- dof.py       the six raw DOF, raw/compact layouts, keep matrices
- assemble.py  block insertion and scatter-add into global arrays

Element (element.py) and MultibodySystem (system.py) are built on top.
"""

from .dof import Dof, DOFManager, keep_matrix_scalar, keep_matrix_identity, state_existence_vector
from .rotation import rot_x, rot_y, rot_z, rot_xyz, roessel_matrix

__all__ = [
    'Dof', 'DOFManager', 'keep_matrix_scalar', 'keep_matrix_identity', 'state_existence_vector',
    'rot_x', 'rot_y', 'rot_z', 'rot_xyz', 'roessel_matrix',
]
