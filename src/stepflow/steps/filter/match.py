"""Step canônico: filter.match.

Mantém apenas itens cujo campo casa com um valor (`equals`) ou com um
conjunto de valores (`in`). Itens descartados viram `NO_VALUE`.

Config esperada:
    field: status
    equals: active           # ou
    in: [active, pending]
    negate: false            # opcional; inverte o critério
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping

from stepflow.core.engine.iterators import NO_VALUE
from stepflow.core.exceptions import EngineConfigurationError
from stepflow.core.pipeline.context import RunContext
from stepflow.core.pipeline.types import StepKind
from stepflow.steps.config import require


@dataclass
class MatchFilterStep:
    alias: str
    field: str
    accepted: List[Any]
    negate: bool = False
    kind: StepKind = StepKind.FILTER

    @classmethod
    def create(cls, *, config: Mapping[str, Any], ctx: RunContext, alias: str) -> "MatchFilterStep":
        if ("equals" in config) == ("in" in config):
            raise EngineConfigurationError(
                message=f"Config {alias} must declare exactly one of `equals` or `in`",
                details={"step": alias, "keys": sorted(config)},
            )
        if "equals" in config:
            accepted = [config["equals"]]
        else:
            accepted = list(require(config, "in", alias=alias, expected=(list, tuple)))
        return cls(
            alias=alias,
            field=require(config, "field", alias=alias, expected=str),
            accepted=accepted,
            negate=require(config, "negate", alias=alias, expected=bool, default=False),
        )

    def execute(self, item: Any) -> Any:
        if not isinstance(item, Mapping):
            raise TypeError(f"filter.match expects mapping items, got {type(item).__name__}")
        matched = item.get(self.field) in self.accepted
        if matched != self.negate:
            return item
        return NO_VALUE
