"""
Mapping - raw source record to canonical document.

Components:
- fields: FieldProjector (raw scalars -> working fields)
- flags: FlagEvaluator (declarative visibility flags)
- collections: map_collection + per-collection item mappers
- assembler: CanonicalAssembler (composes the above)
"""

from .assembler import AssemblyResult, CanonicalAssembler
from .collections import map_collection
from .fields import FieldProjector
from .flags import FlagEvaluator, FlagSpec

__all__ = [
    "AssemblyResult",
    "CanonicalAssembler",
    "FieldProjector",
    "FlagEvaluator",
    "FlagSpec",
    "map_collection",
]
