from __future__ import annotations

from typing import Optional, Protocol

from amenhotep.models import ContractSchema


class SchemaExtractor(Protocol):
    name: str
    suffix: str

    def extract(self, text: str, path: str) -> Optional[ContractSchema]:
        ...
