"""
Executor de Step (FlowStep).

O FlowStep liga um `StepRecord` persistido ao seu tipo de Step para uma
run específica:
    - interpreta a config YAML do registro
    - avalia as expressões de primeiro nível contra as variáveis da run
    - instancia o tipo de Step pelo registry
    - expõe `execute`, `read`, `log` e `close` ao iterador e ao Engine

Decisões arquiteturais:
    - O bind acontece antes de qualquer pull: erros de config, expressão ou
      tipo desconhecido impedem a run de começar
    - Apenas valores de primeiro nível são avaliados; mapeamentos e listas
      aninhados passam sem avaliação
    - Cada Step avalia sua config contra uma cópia própria das variáveis da
      run: valores resolvidos são dict/list comuns e nunca afetam outros Steps

Limites explícitos:
    - Não controla exaustão nem leitura do upstream (papel do iterador)
    - Não decide políticas de execução (papel do Engine)
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Mapping

import yaml

from stepflow.core.exceptions import EngineConfigurationError, ExpressionError, StepflowException
from stepflow.core.expressions import ExpressionEvaluator
from stepflow.core.model.step import StepRecord
from stepflow.core.pipeline.context import RunContext
from stepflow.core.pipeline.registry import StepTypeRegistry
from stepflow.core.pipeline.step import StepType
from stepflow.core.pipeline.types import StepKind


def _render(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    except (TypeError, ValueError):
        return repr(value)


def _parse_config(record: StepRecord) -> Dict[str, Any]:
    try:
        data = record.parsed_config()
    except yaml.YAMLError as exc:
        raise EngineConfigurationError(
            message=f"Step '{record.alias}' has invalid YAML config",
            details={"step": record.alias, "reason": str(exc)},
        ) from exc
    if not isinstance(data, Mapping):
        raise EngineConfigurationError(
            message=f"Step '{record.alias}' config must be a mapping",
            details={"step": record.alias, "received": type(data).__name__},
            hint="Use um documento YAML com chaves no primeiro nível.",
        )
    return dict(data)


class FlowStep:
    """Um Step ligado ao seu tipo e ao RunContext de uma run."""

    def __init__(self, record: StepRecord, ctx: RunContext, step_type: StepType, config: Dict[str, Any]):
        self.record = record
        self.ctx = ctx
        self.step_type = step_type
        self.config = config

    @classmethod
    def bind(
        cls,
        record: StepRecord,
        ctx: RunContext,
        *,
        registry: StepTypeRegistry,
        evaluator: ExpressionEvaluator,
    ) -> "FlowStep":
        raw = _parse_config(record)

        # cópia própria por Step: valores avaliados saem como dict/list comuns
        variables = ctx.plain_variables()
        config: Dict[str, Any] = {}
        for key, value in raw.items():
            try:
                config[key] = evaluator.evaluate(value, variables)
            except ExpressionError as exc:
                raise ExpressionError(
                    message=f"Step '{record.alias}': cannot evaluate config key '{key}': {exc.message}",
                    details={**exc.details, "step": record.alias, "key": key},
                    hint=exc.hint,
                ) from exc

        try:
            step_type = registry.create(record.type, config=config, ctx=ctx, alias=record.alias)
        except StepflowException:
            raise
        except Exception as exc:
            raise EngineConfigurationError(
                message=f"Step '{record.alias}' could not be configured: {exc}",
                details={"step": record.alias, "type": record.type, "exc_type": exc.__class__.__name__},
                hint="Revise a config do Step.",
            ) from exc

        if not isinstance(getattr(step_type, "kind", None), StepKind):
            raise EngineConfigurationError(
                message=f"Step type '{record.type}' did not declare a valid kind",
                details={"step": record.alias, "type": record.type},
            )
        return cls(record, ctx, step_type, config)

    @property
    def alias(self) -> str:
        return self.record.alias

    @property
    def kind(self) -> StepKind:
        return self.step_type.kind

    @property
    def is_reader(self) -> bool:
        return self.kind == StepKind.READER

    @property
    def variables(self) -> Mapping[str, Any]:
        return self.ctx.variables

    def log(self, message: str, *, level: str = "INFO", **extra: Any) -> None:
        self.ctx.log(step_id=self.alias, level=level, message=message, **extra)

    def log_iteration(self, iteration: int, value: Any) -> None:
        self.log(f"Iteration {iteration}: {_render(value)}", iteration=iteration, value=_render(value))

    def read(self) -> Iterable[Any]:
        if not self.is_reader:
            raise EngineConfigurationError(
                message=f"Step '{self.alias}' is not a reader",
                details={"step": self.alias, "kind": self.kind.value},
            )
        return self.step_type.read()

    def execute(self, item: Any) -> Any:
        return self.step_type.execute(item)

    def close(self) -> None:
        close = getattr(self.step_type, "close", None)
        if callable(close):
            close()
