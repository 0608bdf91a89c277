"""
Data sources for metarwx.

Sources retrieve raw dataserver documents per station, caching them on disk.
"""

from .cached import CachedSource
from .avwx import AvWxSource

__all__ = [
    'CachedSource',
    'AvWxSource',
]
