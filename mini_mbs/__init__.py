# mini_mbs - Tree-structured multibody kinematics and dynamics
"""
MINI-MBS: A Multibody Kinematics/Dynamics Kernel
================================================

This package computes, for a tree of rigid bodies connected by joints with
free and locked axes, what an equation-of-motion solver needs at each step:
the mass matrix, the kinematic Jacobian and its time derivative, the
applied force vector and the Coriolis/centrifugal vector.

ARCHITECTURE:
-------------
    kernel/         Element-agnostic core (rotations, DOF layout, assembly)
    model.py        Frame, Joint
    element.py      Element: recursive kinematics of one rigid body
    system.py       MultibodySystem: ordering and global assembly
    state.py        StateVector: compact state, 12-slot element view
    parser/         Definition files, registries, system loader
    config.py       Library defaults
    exceptions.py   Load-time errors
"""

from .config import CONFIG, MbsConfig
from .element import Element
from .exceptions import (
    BadDefinitionError,
    ElementAlreadyExistsError,
    ElementNotFoundError,
    JointAlreadyExistsError,
    JointNotFoundError,
    MbsError,
    ParameterNotFoundError,
    RegistryError,
    TopologyError,
)
from .kernel import Dof
from .logging_config import setup_logging
from .model import Frame, Joint
from .parser import ElementRegistry, JointRegistry, ParameterSet
from .state import StateVector, StateVectorStorage
from .system import MultibodySystem

__version__ = "0.1.0"
