"""
Contracts - the canonical, renderer-ready document model.
"""

from .canonical import CanonicalDocument, DataWarning

__all__ = [
    "CanonicalDocument",
    "DataWarning",
]
