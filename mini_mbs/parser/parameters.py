# mini_mbs/parser/parameters.py
"""
Named scalar, vector and matrix values used to resolve definition files.
"""

from typing import Dict, Union

import numpy as np

from ..exceptions import ParameterNotFoundError


class ParameterSet:
    """
    Three independent name → value tables: scalars, vectors and matrices.

    A name may exist in more than one table (a scalar "l" and a vector "l"
    do not clash). Names are case-sensitive.

    Examples:
    ---------
    >>> params = ParameterSet()
    >>> params.add("length", 0.5)
    >>> params.add("offset", np.array([0.0, 0.0, 1.0]))
    >>> params.get_scalar("length")
    0.5
    """

    def __init__(self):
        self.scalars: Dict[str, float] = {}
        self.vectors: Dict[str, np.ndarray] = {}
        self.matrices: Dict[str, np.ndarray] = {}

    def __repr__(self) -> str:
        return (
            f"ParameterSet(scalars={sorted(self.scalars)}, "
            f"vectors={sorted(self.vectors)}, matrices={sorted(self.matrices)})"
        )

    def __len__(self) -> int:
        return len(self.scalars) + len(self.vectors) + len(self.matrices)

    def add(self, name: str, value: Union[float, np.ndarray]) -> None:
        """
        Add a parameter; the table is chosen from the value's dimension.

        Raises ValueError if the name already exists in that table or the
        value is neither scalar, vector nor matrix.
        """
        array = np.asarray(value, dtype=float)
        if array.ndim == 0:
            table, value = self.scalars, float(array)
        elif array.ndim == 1:
            table, value = self.vectors, array.copy()
        elif array.ndim == 2:
            table, value = self.matrices, array.copy()
        else:
            raise ValueError(f"Parameter '{name}' must be a scalar, vector or matrix, got ndim={array.ndim}")
        if name in table:
            raise ValueError(f"Parameter '{name}' is already defined")
        table[name] = value

    def has_scalar(self, name: str) -> bool:
        return name in self.scalars

    def has_vector(self, name: str) -> bool:
        return name in self.vectors

    def has_matrix(self, name: str) -> bool:
        return name in self.matrices

    def get_scalar(self, name: str) -> float:
        if name not in self.scalars:
            raise ParameterNotFoundError(f"Scalar parameter '{name}' is not defined")
        return self.scalars[name]

    def get_vector(self, name: str) -> np.ndarray:
        if name not in self.vectors:
            raise ParameterNotFoundError(f"Vector parameter '{name}' is not defined")
        return self.vectors[name].copy()

    def get_matrix(self, name: str) -> np.ndarray:
        if name not in self.matrices:
            raise ParameterNotFoundError(f"Matrix parameter '{name}' is not defined")
        return self.matrices[name].copy()

    def merge(self, other: "ParameterSet") -> "ParameterSet":
        """New set with the entries of both; ``other`` wins on name clashes."""
        merged = ParameterSet()
        for source in (self, other):
            merged.scalars.update(source.scalars)
            merged.vectors.update({k: v.copy() for k, v in source.vectors.items()})
            merged.matrices.update({k: v.copy() for k, v in source.matrices.items()})
        return merged

    def __add__(self, other: "ParameterSet") -> "ParameterSet":
        return self.merge(other)
