"""Step canônico: writer.collect.

Acumula os itens recebidos em um artifact do RunContext
(`<alias>.items`) e os repassa adiante. O artifact é criado no bind,
de forma que uma run sem dados ainda publique uma lista vazia.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping

from stepflow.core.pipeline.context import RunContext
from stepflow.core.pipeline.types import StepKind


def artifact_key(alias: str) -> str:
    return f"{alias}.items"


@dataclass
class CollectWriterStep:
    alias: str
    sink: List[Any]
    kind: StepKind = StepKind.WRITER

    @classmethod
    def create(cls, *, config: Mapping[str, Any], ctx: RunContext, alias: str) -> "CollectWriterStep":
        sink: List[Any] = []
        ctx.set_artifact(artifact_key(alias), sink)
        return cls(alias=alias, sink=sink)

    def execute(self, item: Any) -> Any:
        self.sink.append(item)
        return item
