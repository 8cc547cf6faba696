# mini_mbs/parser - Definition files and registries
"""
PARSER: LOAD-TIME INPUT
=======================

Everything that turns XML definition files into Elements, Joints and an
initialized MultibodySystem:

- parameters.py   ParameterSet (named scalar/vector/matrix values)
- operations.py   the operation-tree parameter language
- data.py         XML nodes → operation trees
- definitions.py  *.edf / *.jdf definitions
- registry.py     ElementRegistry, JointRegistry
- system.py       system definition loader

Nothing here runs during a simulation step.
"""

from .definitions import ElementDefinition, FrameDefinition, JointDefinition
from .parameters import ParameterSet
from .registry import ElementRegistry, JointRegistry
from .system import SystemDefinition, parse_system, parse_system_file

__all__ = [
    'ElementDefinition', 'FrameDefinition', 'JointDefinition',
    'ParameterSet',
    'ElementRegistry', 'JointRegistry',
    'SystemDefinition', 'parse_system', 'parse_system_file',
]
