# mini_mbs/kernel/assemble.py
"""
ASSEMBLY: Block Insertion and Scatter-Add
=========================================

PURPOSE:
--------
Every global quantity in the multibody kernel (mass matrix, Jacobian,
force vector, Coriolis vector) is built the same way: each element
computes a small local block, and the block is written or added into a
caller-supplied global array at the element's offset.

Two flavours:
- insert (overwrite): the block owns those entries, e.g. an element's
  Jacobian rows
- add (scatter-add):  several elements contribute to the same entries,
  e.g. the joint reaction subtracted from the parent's force slots

The kernel never reallocates the global array; the caller owns it.
"""

from typing import List, Optional

import numpy as np


def insert_block(
    target: np.ndarray,
    block: np.ndarray,
    row: int,
    col: Optional[int] = None
) -> np.ndarray:
    """
    Overwrite ``target`` with ``block`` starting at (row, col).

    For a vector target, only ``row`` is used. For a matrix target with
    ``col`` omitted, the block is placed on the diagonal at (row, row).

    Returns the target (modified in-place) to allow chaining.

    Example:
    --------
    >>> M = np.zeros((6, 6))
    >>> insert_block(M, 2.0 * np.eye(3), 3)   # lower-right 3×3 = 2·I
    """
    if target.ndim == 1:
        target[row:row + block.shape[0]] = block
        return target
    if col is None:
        col = row
    if block.ndim == 1:
        target[row:row + block.shape[0], col] = block
        return target
    n_rows, n_cols = block.shape
    target[row:row + n_rows, col:col + n_cols] = block
    return target


def add_block(
    target: np.ndarray,
    block: np.ndarray,
    row: int,
    col: Optional[int] = None
) -> np.ndarray:
    """Same placement rules as insert_block, but adds instead of overwriting."""
    if target.ndim == 1:
        target[row:row + block.shape[0]] += block
        return target
    if col is None:
        col = row
    n_rows, n_cols = block.shape
    target[row:row + n_rows, col:col + n_cols] += block
    return target


def scatter_add_matrix(
    target: np.ndarray,
    dof_map: List[int],
    block: np.ndarray
) -> np.ndarray:
    """
    Scatter-add a square block into target through an explicit DOF map.

        target[dof_map[a], dof_map[b]] += block[a, b]

    This is the classic finite-element assembly step; the DOF map need not
    be contiguous.
    """
    n = len(dof_map)
    assert block.shape == (n, n), \
        f"Block shape {block.shape} doesn't match dof_map length {n}"

    for a in range(n):
        ia = dof_map[a]
        for b in range(n):
            ib = dof_map[b]
            target[ia, ib] += block[a, b]
    return target


def project_block_columns(block: np.ndarray, keep_identity: np.ndarray) -> np.ndarray:
    """
    Drop the locked columns of a 3×6 block using an identity-block keep matrix.

    The block's six columns are 3-vectors (one per raw DOF). Stacked
    column-wise they form an 18-vector; the identity keep matrix removes
    the 3-vectors of locked DOF:

        stacked_compact = K_identityᵀ · stacked      (3k,)

    and the result is unstacked back into a 3×k block.
    """
    stacked = block.T.reshape(-1)
    compact = keep_identity.T @ stacked
    return compact.reshape(-1, 3).T
