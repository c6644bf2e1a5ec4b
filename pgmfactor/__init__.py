"""
Dense discrete factors for probabilistic graphical model inference.
"""

from .factor import (
    DEBUG_DEFAULT,
    AccessError,
    ArityMismatch,
    ConstructionError,
    DuplicateVariable,
    Factor,
    FactorError,
    InvalidCardinality,
    MissingVariable,
    Odometer,
    OutOfRangeAssignment,
    OutOfRangeIndex,
    ScopeCardinalityMismatch,
    ValueCountMismatch,
    create,
    multiply,
    scale,
)
