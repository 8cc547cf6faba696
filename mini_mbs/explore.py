# mini_mbs/explore.py
"""
CONFIGURATION SWEEPS
====================

PURPOSE:
--------
Evaluate a loaded system over a range of values of one generalized
coordinate and collect the results in a DataFrame: generalized mass
entries, applied forces and centre-of-gravity positions. Useful to check a
model by eye (e.g. the pendulum mass term m·L² varying with the elbow
angle) before handing it to an integrator.
"""

import logging
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from .system import MultibodySystem


logger = logging.getLogger(__name__)


def evaluate_state(system: MultibodySystem, global_state: np.ndarray) -> dict:
    """
    One row of results for the given compact state (length 2·n).

    Columns:
    - M_i_j   generalized mass matrix Jᵀ·M_body·J, upper triangle
    - f_i     applied force vector
    - <element>_x/_y/_z  centre-of-gravity position of every element
    """
    state = system.create_state_vector(np.array(global_state, dtype=float))
    system.update_elements(state)

    row = {}
    mass = system.get_generalized_mass_matrix()
    n = system.total_degrees_of_freedom
    for i in range(n):
        for j in range(i, n):
            row[f"M_{i}_{j}"] = mass[i, j]
    for i, value in enumerate(system.get_global_free_force_vector()):
        row[f"f_{i}"] = value
    for element in system.elements:
        x, y, z = element.get_cog_position()
        row[f"{element.name}_x"] = x
        row[f"{element.name}_y"] = y
        row[f"{element.name}_z"] = z
    return row


def sweep_coordinate(
    system: MultibodySystem,
    coordinate: int,
    values: Iterable[float],
    base_state: Optional[np.ndarray] = None,
) -> pd.DataFrame:
    """
    Evaluate ``system`` with generalized coordinate ``coordinate`` set to each of ``values``.

    Parameters:
    -----------
    system : MultibodySystem
        An initialized system

    coordinate : int
        Index into the compact positions (0 .. n-1)

    values : iterable of float
        Values assigned to that coordinate, one row each

    base_state : np.ndarray, optional
        Compact state (2·n) for all other coordinates; zero by default

    Returns:
    --------
    pd.DataFrame
        One row per value: a "value" column plus the columns of evaluate_state()
    """
    n = system.total_degrees_of_freedom
    if not 0 <= coordinate < n:
        raise IndexError(f"Coordinate {coordinate} out of range for a system with {n} DOF")

    state = np.zeros(2 * n) if base_state is None else np.array(base_state, dtype=float)
    rows = []
    for value in values:
        state[coordinate] = value
        row = {"value": float(value)}
        row.update(evaluate_state(system, state))
        rows.append(row)

    logger.info(f"Swept coordinate {coordinate} over {len(rows)} values")
    return pd.DataFrame(rows)
