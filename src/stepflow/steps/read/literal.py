"""Step canônico: reader.literal.

Emite, em ordem, os itens declarados em `config.items`. Útil para
dataflows pequenos e para testes.

Config esperada:
    items: [ ... ]            # lista literal ou "${{ rows }}"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, List, Mapping

from stepflow.core.pipeline.context import RunContext
from stepflow.core.pipeline.types import StepKind
from stepflow.steps.config import require


@dataclass
class LiteralReaderStep:
    alias: str
    items: List[Any]
    kind: StepKind = StepKind.READER

    @classmethod
    def create(cls, *, config: Mapping[str, Any], ctx: RunContext, alias: str) -> "LiteralReaderStep":
        items = require(config, "items", alias=alias, expected=(list, tuple), default=[])
        return cls(alias=alias, items=list(items))

    def read(self) -> Iterator[Any]:
        return iter(list(self.items))

    def execute(self, item: Any) -> Any:
        return item
