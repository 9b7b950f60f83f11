"""Step canônico: transform.select_fields.

Projeta itens dict sobre uma lista de campos, na ordem declarada.

Config esperada:
    fields: [id, name]
    strict: false            # opcional; true → campo ausente é falha do Step
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from stepflow.core.pipeline.context import RunContext
from stepflow.core.pipeline.types import StepKind
from stepflow.steps.config import require


@dataclass
class SelectFieldsStep:
    alias: str
    fields: List[str]
    strict: bool = False
    kind: StepKind = StepKind.TRANSFORM

    @classmethod
    def create(cls, *, config: Mapping[str, Any], ctx: RunContext, alias: str) -> "SelectFieldsStep":
        fields = require(config, "fields", alias=alias, expected=(list, tuple))
        return cls(
            alias=alias,
            fields=[str(f) for f in fields],
            strict=require(config, "strict", alias=alias, expected=bool, default=False),
        )

    def execute(self, item: Any) -> Dict[str, Any]:
        if not isinstance(item, Mapping):
            raise TypeError(f"transform.select_fields expects mapping items, got {type(item).__name__}")
        if self.strict:
            missing = [f for f in self.fields if f not in item]
            if missing:
                raise KeyError(f"missing fields: {', '.join(missing)}")
        return {f: item.get(f) for f in self.fields}
