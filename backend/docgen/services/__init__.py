"""
Services layer - wires configured collaborators into the pipeline.
"""

from .generation_service import GenerationService, get_generation_service

__all__ = [
    "GenerationService",
    "get_generation_service",
]
