from .registry import build_registry

__all__ = ["build_registry"]
