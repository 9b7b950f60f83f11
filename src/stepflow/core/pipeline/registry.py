"""
Registro de tipos de Step.

Este módulo define o `StepTypeRegistry`, que associa o identificador
textual gravado em `StepRecord.type` (ex.: "reader.csv") à fábrica que
constrói o tipo de Step a partir da configuração resolvida.

Decisões arquiteturais:
    - Identificadores são strings não vazias e únicas no registry
    - Duplicidade é erro fatal no momento do registro
    - Tipo desconhecido é erro de configuração do Engine, nunca ignorado
    - A ordem de registro é preservada para listagem determinística

Limites explícitos:
    - Não resolve expressões de config (papel do FlowStep)
    - Não executa Steps
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from stepflow.core.exceptions import EngineConfigurationError

from .context import RunContext
from .step import StepType, StepTypeFactory


class DuplicateStepTypeError(ValueError):
    """
    Exceção levantada ao registrar duas fábricas para o mesmo tipo de Step.

    O registry não tenta sobrescrever nem renomear tipos automaticamente.
    """


@dataclass
class StepTypeRegistry:
    """
    Registro canônico de tipos de Step disponíveis para o Engine.

    Invariantes:
        - Cada `type_id` é único no registry
        - `list()` reflete exatamente a ordem de registro
    """

    _factories: Dict[str, StepTypeFactory] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)

    def add(self, type_id: str, factory: StepTypeFactory) -> None:
        if not isinstance(type_id, str) or not type_id.strip():
            raise ValueError("step type id must be a non-empty string")

        if type_id in self._factories:
            raise DuplicateStepTypeError(f"Duplicate step type: {type_id}")

        self._factories[type_id] = factory
        self._order.append(type_id)

    def has(self, type_id: str) -> bool:
        return type_id in self._factories

    def get(self, type_id: str) -> StepTypeFactory:
        if type_id not in self._factories:
            raise EngineConfigurationError(
                message=f"Unknown step type: {type_id}",
                details={"type": type_id, "known_types": list(self._order)},
                hint="Registre o tipo no StepTypeRegistry ou corrija `type` no Step.",
            )
        return self._factories[type_id]

    def list(self) -> List[str]:
        return list(self._order)

    def create(self, type_id: str, *, config: Mapping[str, Any], ctx: RunContext, alias: str) -> StepType:
        factory = self.get(type_id)
        return factory(config=config, ctx=ctx, alias=alias)
