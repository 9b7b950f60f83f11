"""Step canônico: transform.set_fields.

Acrescenta (ou sobrescreve) campos em itens dict. O item de entrada nunca
é mutado; um novo dict é emitido.

Config esperada:
    fields:
      status: active
      source: "${{ vars.source }}"   # não avaliado: valor aninhado

Observação: apenas valores de primeiro nível da config são avaliados.
Para um campo calculado, use `fields: "${{ {'source': vars.source} }}"`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from stepflow.core.pipeline.context import RunContext
from stepflow.core.pipeline.types import StepKind
from stepflow.steps.config import require


@dataclass
class SetFieldsStep:
    alias: str
    fields: Dict[str, Any]
    kind: StepKind = StepKind.TRANSFORM

    @classmethod
    def create(cls, *, config: Mapping[str, Any], ctx: RunContext, alias: str) -> "SetFieldsStep":
        return cls(alias=alias, fields=dict(require(config, "fields", alias=alias, expected=dict)))

    def execute(self, item: Any) -> Dict[str, Any]:
        if not isinstance(item, Mapping):
            raise TypeError(f"transform.set_fields expects mapping items, got {type(item).__name__}")
        return {**item, **self.fields}
