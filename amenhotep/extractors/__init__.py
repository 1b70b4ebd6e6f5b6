from .cairo import CairoSchemaExtractor

__all__ = ["CairoSchemaExtractor"]
