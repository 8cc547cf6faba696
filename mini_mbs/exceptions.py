# mini_mbs/exceptions.py
"""
Load-time error taxonomy.

All of these are raised while definitions are parsed, registered or
assembled into a system. The per-step numerical loop raises none of them.
"""


class MbsError(Exception):
    """Base class for all multibody loading errors."""
    pass


class BadDefinitionError(MbsError, ValueError):
    """Raised when a definition is malformed or incomplete."""
    pass


class TopologyError(BadDefinitionError):
    """Raised when a body's parent body or frame cannot be resolved."""
    pass


class RegistryError(MbsError, ValueError):
    """Raised when a type name is registered twice."""
    pass


class ElementAlreadyExistsError(RegistryError):
    """Raised when an element type with the same name is already registered."""
    pass


class JointAlreadyExistsError(RegistryError):
    """Raised when a joint type with the same name is already registered."""
    pass


class ElementNotFoundError(MbsError, LookupError):
    """Raised when a requested element type is not registered."""
    pass


class JointNotFoundError(MbsError, LookupError):
    """Raised when a requested joint type is not registered."""
    pass


class ParameterNotFoundError(MbsError, LookupError):
    """Raised when an operation references a parameter that is not in the parameter set."""
    pass
