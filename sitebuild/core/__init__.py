"""
sitebuild Core Module

Contains the value types shared by every layer:
- ContentUnit: an opaque, identity-tracked item of the corpus
- RenderOutput: output payload plus discovered dependency keys
"""

from sitebuild.core.units import ContentUnit, RenderOutput

__all__ = [
    "ContentUnit",
    "RenderOutput",
]
