# mini_mbs/state.py
"""
STATE VECTOR: Compact Storage, Full Per-Element View
====================================================

An integrator owns one flat array holding only the ACTIVE states:

    [ q_0 ... q_{n-1} | q̇_0 ... q̇_{n-1} ]      (n = total free DOF)

The kinematic code, on the other hand, wants every element to look the
same: 12 slots (6 positions + 6 velocities) regardless of which DOF its
joint frees. StateVectorStorage bridges the two with an index mapping
per element:

    local slot (0..11)  ->  index in the flat array, or no entry

Reading an unmapped (locked) slot yields 0.0; writing to one is ignored.
The flat array is aliased, never copied, so writes through a storage are
visible to the integrator immediately.
"""

from typing import Dict, Iterable, Iterator, List

import numpy as np

from .kernel.dof import SLOTS_PER_ELEMENT


class StateVectorStorage:
    """
    Fixed 12-slot view of one element's state inside the compact array.

    Examples:
    ---------
    >>> data = np.array([0.3, 1.5])           # one free DOF: angle, rate
    >>> view = StateVectorStorage(data, {5: 0, 11: 1})
    >>> view.at(5), view.at(0)
    (0.3, 0.0)
    >>> view.put(0, 9.9)                      # locked slot: ignored
    >>> view.put(11, 2.0)                     # free slot: writes through
    >>> data
    array([0.3, 2. ])
    """

    def __init__(self, global_state: np.ndarray, mapping: Dict[int, int]):
        self._global_state = global_state
        self._mapping = dict(mapping)

    @property
    def mapping(self) -> Dict[int, int]:
        return dict(self._mapping)

    def at(self, index: int) -> float:
        """Value of local slot ``index``; 0.0 for a locked slot."""
        key = self._mapping.get(index)
        if key is None:
            return 0.0
        return float(self._global_state[key])

    def put(self, index: int, value: float) -> None:
        """Write local slot ``index``; a no-op for a locked slot."""
        key = self._mapping.get(index)
        if key is not None:
            self._global_state[key] = value

    def is_mapped(self, index: int) -> bool:
        return index in self._mapping

    def to_array(self) -> np.ndarray:
        """Dense copy of all 12 slots."""
        local = np.zeros(SLOTS_PER_ELEMENT, dtype=float)
        for index, key in self._mapping.items():
            local[index] = self._global_state[key]
        return local

    def __getitem__(self, index: int) -> float:
        return self.at(index)

    def __setitem__(self, index: int, value: float) -> None:
        self.put(index, value)

    def __len__(self) -> int:
        return SLOTS_PER_ELEMENT

    def __iter__(self) -> Iterator[float]:
        return (self.at(i) for i in range(SLOTS_PER_ELEMENT))


class StateVector:
    """
    Compact global state with one StateVectorStorage per element.

    Parameters:
    -----------
    global_state : np.ndarray
        Flat float64 array of length 2·n, positions then velocities.
        Aliased, never copied. Lists, other dtypes and 2-D arrays raise
        TypeError / ValueError.

    mappings : iterable of dict
        One {local slot: global index} mapping per element, in element
        id order (see MultibodySystem.generate_mappings).
    """

    def __init__(self, global_state: np.ndarray, mappings: Iterable[Dict[int, int]]):
        if not isinstance(global_state, np.ndarray) or global_state.dtype != np.float64:
            raise TypeError(
                f"global_state must be a float64 numpy array to be aliased, got "
                f"{type(global_state).__name__} of dtype {getattr(global_state, 'dtype', None)}"
            )
        if global_state.ndim != 1:
            raise ValueError(f"global_state must be 1-D, got shape {global_state.shape}")
        self.global_state = global_state
        self.storages: List[StateVectorStorage] = [
            StateVectorStorage(self.global_state, mapping) for mapping in mappings
        ]

    @classmethod
    def zeros(cls, total_degrees_of_freedom: int, mappings: Iterable[Dict[int, int]]) -> "StateVector":
        return cls(np.zeros(2 * total_degrees_of_freedom), mappings)

    @property
    def total_degrees_of_freedom(self) -> int:
        return self.global_state.shape[0] // 2

    @property
    def positions(self) -> np.ndarray:
        """View of the generalized coordinates q."""
        return self.global_state[:self.total_degrees_of_freedom]

    @property
    def velocities(self) -> np.ndarray:
        """View of the generalized velocities q̇."""
        return self.global_state[self.total_degrees_of_freedom:]

    def get_state_vector_for_id(self, element_id: int) -> StateVectorStorage:
        """
        The 12-slot view of element ``element_id``.

        No index checking is performed.
        """
        return self.storages[element_id]

    def __len__(self) -> int:
        return len(self.storages)
