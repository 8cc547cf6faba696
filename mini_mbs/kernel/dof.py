# mini_mbs/kernel/dof.py
"""
DOF: Degrees of Freedom, Raw Layout and Keep Matrices
=====================================================

PURPOSE:
--------
Every joint has the same six raw degrees of freedom:

    0 = X, 1 = Y, 2 = Z            (translation of the follower frame)
    3 = ALPHA, 4 = BETA, 5 = GAMMA (Euler-XYZ rotation)

A joint frees some of them and locks the rest. Two layouts exist side by
side:

    RAW layout:     6 slots per element, element i owns [6i, 6i+6)
    COMPACT layout: only the free DOF, in element order

The per-element state is 12 slots (6 positions + 6 velocities). A "state
existence vector" flags which of these 12 slots are backed by a real
state (1) and which belong to a locked DOF (0).

A KEEP MATRIX is the 0/1 selection matrix that maps raw to compact:

    compact = Kᵀ · raw          (drop locked entries)
    M_compact = Kᵀ · M · K      (drop locked rows and columns)

Two flavours are built for each element:
- scalar:   (6 × k), one 1 per column
- identity: (18 × 3k), one 3×3 identity block per column block, for
            quantities whose entries are 3-vectors
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, List

import numpy as np


DOF_PER_ELEMENT = 6
SLOTS_PER_ELEMENT = 2 * DOF_PER_ELEMENT  # positions + velocities


class Dof(IntEnum):
    """The six raw degrees of freedom of a joint."""
    X = 0
    Y = 1
    Z = 2
    ALPHA = 3
    BETA = 4
    GAMMA = 5

    @classmethod
    def parse(cls, name: str) -> "Dof":
        """
        Parse a symbolic DOF name (x, y, z, alpha, beta, gamma).

        Case-insensitive. Raises ValueError for unknown names.
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(
                f"Unknown degree of freedom '{name}'. "
                f"Expected one of: {', '.join(d.name.lower() for d in cls)}"
            )

    @property
    def is_rotational(self) -> bool:
        return self >= Dof.ALPHA


TRANSLATIONAL_DOFS = (Dof.X, Dof.Y, Dof.Z)
ROTATIONAL_DOFS = (Dof.ALPHA, Dof.BETA, Dof.GAMMA)


@dataclass
class DOFManager:
    """
    Raw DOF indexing for a multibody system.

    Maps (element_id, dof) to a row/column of the raw layout, exactly like
    a structural DOF manager maps (node_id, local_dof).

    Examples:
    ---------
    >>> dof = DOFManager()
    >>> dof.idx(1, Dof.ALPHA)
    9
    >>> dof.ndof(3)
    18
    >>> dof.element_dofs(1)
    [6, 7, 8, 9, 10, 11]
    """
    dof_per_element: int = DOF_PER_ELEMENT

    def idx(self, element_id: int, dof: int) -> int:
        return self.dof_per_element * element_id + int(dof)

    def ndof(self, n_elements: int) -> int:
        return self.dof_per_element * n_elements

    def element_dofs(self, element_id: int) -> List[int]:
        base = self.dof_per_element * element_id
        return list(range(base, base + self.dof_per_element))


def state_existence_vector(free_dofs: Iterable[Dof]) -> np.ndarray:
    """
    Build the 12-slot state existence vector of one element.

    Slot d (position) and slot d + 6 (velocity) are 1 for every free DOF d.
    """
    flags = np.zeros(SLOTS_PER_ELEMENT, dtype=float)
    for dof in free_dofs:
        flags[int(dof)] = 1.0
        flags[int(dof) + DOF_PER_ELEMENT] = 1.0
    return flags


def active_dofs(active_states: np.ndarray) -> List[int]:
    """Indices of the active DOF given a 6- or 12-slot existence vector."""
    n_available = DOF_PER_ELEMENT if len(active_states) > DOF_PER_ELEMENT else len(active_states)
    return [i for i in range(n_available) if active_states[i] == 1]


def keep_matrix_scalar(active_states: np.ndarray) -> np.ndarray:
    """
    Scalar keep matrix (available × active).

    Column c has a single 1 in the row of the c-th active DOF, so column
    order follows DOF order.
    """
    active = active_dofs(active_states)
    n_available = min(len(active_states), DOF_PER_ELEMENT)
    K = np.zeros((n_available, len(active)), dtype=float)
    for column, row in enumerate(active):
        K[row, column] = 1.0
    return K


def keep_matrix_identity(active_states: np.ndarray) -> np.ndarray:
    """
    Identity-block keep matrix (3·available × 3·active).

    Same selection pattern as keep_matrix_scalar, with every 1 replaced by
    a 3×3 identity block.
    """
    return np.kron(keep_matrix_scalar(active_states), np.eye(3))
