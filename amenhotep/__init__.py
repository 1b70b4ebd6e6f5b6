"""Cairo contract to Checkpoint indexer scaffolding."""

from ._version import __version__
from .core import IndexerScaffolder

__all__ = ["IndexerScaffolder", "__version__"]
