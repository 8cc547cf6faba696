# mini_mbs/model.py
"""
MODEL DEFINITIONS: Frame and Joint
==================================

PURPOSE:
--------
The two immutable building blocks of a multibody system:

- Frame: a coordinate frame attached to an element, given by an offset and
  a rotation relative to a reference frame. Frames form a tree per
  element, rooted at the element's origin frame.
- Joint: connects a base frame (on the parent element, or the system's
  base frame) to a follower frame (on the child element) and decides
  which of the six DOF are free.

Neither changes after a system is loaded. Motion lives in the joint
state, never in the frames.
"""

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Tuple

import numpy as np

from .exceptions import BadDefinitionError
from .kernel.dof import Dof


ORIGIN_FRAME_NAME = "origin"


def _frozen_array(value, shape: Tuple[int, ...]) -> np.ndarray:
    array = np.array(value, dtype=float).reshape(shape)
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class Frame:
    """
    A coordinate frame relative to a reference frame.

    Parameters:
    -----------
    name : str
        Frame name, unique within one element ("origin" is reserved)

    offset : array-like (3,)
        Position of this frame's origin, in reference-frame coordinates

    rotation : array-like (3, 3)
        Rotation from this frame's coordinates to reference-frame coordinates

    reference : Frame or None
        The reference frame. None marks the origin frame: zero offset,
        identity rotation, end of every reference chain.

    Examples:
    ---------
    >>> origin = Frame.origin()
    >>> tip = Frame("tip", offset=[1.0, 0.0, 0.0], reference=origin)
    >>> tip.get_offset_origin()
    array([1., 0., 0.])
    """
    name: str
    offset: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    reference: Optional["Frame"] = None

    def __post_init__(self):
        object.__setattr__(self, "offset", _frozen_array(self.offset, (3,)))
        object.__setattr__(self, "rotation", _frozen_array(self.rotation, (3, 3)))

    @classmethod
    def origin(cls, name: str = ORIGIN_FRAME_NAME) -> "Frame":
        """Create an origin frame (no reference)."""
        return cls(name)

    @property
    def is_origin(self) -> bool:
        return self.reference is None

    def get_rotation_origin(self) -> np.ndarray:
        """Rotation from this frame's coordinates to origin-frame coordinates."""
        if self.reference is None:
            return np.eye(3)
        return self.reference.get_rotation_origin() @ self.rotation

    def get_offset_origin(self) -> np.ndarray:
        """Position of this frame's origin in origin-frame coordinates."""
        if self.reference is None:
            return np.zeros(3)
        return self.reference.get_offset_origin() + self.reference.get_rotation_origin() @ self.offset


@dataclass(frozen=True, eq=False)
class Joint:
    """
    A joint between a base frame and a follower frame.

    The six DOF are split into free and locked sets. The sets must be
    disjoint and together contain every DOF exactly once.

    The joint state (per element, 12 slots) describes the follower frame
    relative to the base frame: translation (X, Y, Z) in base-frame
    coordinates and Euler-XYZ rotation (ALPHA, BETA, GAMMA).

    Parameters:
    -----------
    name : str
        Joint type name (e.g. "revolute_z")

    free_degrees_of_freedom : tuple of Dof
    locked_degrees_of_freedom : tuple of Dof

    base_frame : Frame or None
        Frame on the parent element (or the system base frame)

    follower_frame : Frame or None
        Frame on the owning element
    """
    name: str
    free_degrees_of_freedom: Tuple[Dof, ...]
    locked_degrees_of_freedom: Tuple[Dof, ...]
    base_frame: Optional[Frame] = None
    follower_frame: Optional[Frame] = None

    def __post_init__(self):
        free = tuple(sorted(Dof(d) for d in self.free_degrees_of_freedom))
        locked = tuple(sorted(Dof(d) for d in self.locked_degrees_of_freedom))
        if set(free) & set(locked):
            raise BadDefinitionError(
                f"Joint '{self.name}': DOF {sorted(d.name for d in set(free) & set(locked))} "
                f"are both free and locked"
            )
        if len(set(free)) != len(free) or len(set(locked)) != len(locked):
            raise BadDefinitionError(f"Joint '{self.name}': duplicate DOF entries")
        if set(free) | set(locked) != set(Dof):
            missing = set(Dof) - set(free) - set(locked)
            raise BadDefinitionError(
                f"Joint '{self.name}': DOF {sorted(d.name for d in missing)} are neither free nor locked"
            )
        object.__setattr__(self, "free_degrees_of_freedom", free)
        object.__setattr__(self, "locked_degrees_of_freedom", locked)

    @classmethod
    def from_free(cls, name: str, free: Iterable[Dof], **frames) -> "Joint":
        """Create a joint from its free DOF; everything else is locked."""
        free = tuple(Dof(d) for d in free)
        locked = tuple(d for d in Dof if d not in free)
        return cls(name, free, locked, **frames)

    @property
    def degree_of_freedom_count(self) -> int:
        return len(self.free_degrees_of_freedom)

    def is_free(self, dof: Dof) -> bool:
        return Dof(dof) in self.free_degrees_of_freedom

    def with_frames(self, base_frame: Frame, follower_frame: Frame) -> "Joint":
        """Return a copy of this joint attached to the given frames."""
        return replace(self, base_frame=base_frame, follower_frame=follower_frame)
