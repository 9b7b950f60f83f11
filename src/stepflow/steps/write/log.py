"""Step canônico: writer.log: registra cada item como evento estruturado."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping

from stepflow.core.config import LOG_LEVELS
from stepflow.core.exceptions import EngineConfigurationError
from stepflow.core.pipeline.context import RunContext
from stepflow.core.pipeline.types import StepKind
from stepflow.steps.config import require


@dataclass
class LogWriterStep:
    alias: str
    ctx: RunContext
    level: str = "INFO"
    prefix: str = ""
    kind: StepKind = StepKind.WRITER

    @classmethod
    def create(cls, *, config: Mapping[str, Any], ctx: RunContext, alias: str) -> "LogWriterStep":
        level = require(config, "level", alias=alias, expected=str, default="INFO").upper()
        if level not in LOG_LEVELS:
            raise EngineConfigurationError(
                message=f"Config {alias}.level must be one of {', '.join(LOG_LEVELS)}",
                details={"step": alias, "level": level},
            )
        prefix = require(config, "prefix", alias=alias, expected=str, default="")
        return cls(alias=alias, ctx=ctx, level=level, prefix=prefix)

    def execute(self, item: Any) -> Any:
        try:
            rendered = json.dumps(item, ensure_ascii=False, sort_keys=True)
        except (TypeError, ValueError):
            rendered = repr(item)
        self.ctx.log(step_id=self.alias, level=self.level, message=f"{self.prefix}{rendered}", item=rendered)
        return item
