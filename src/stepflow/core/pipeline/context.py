"""
Contexto de execução compartilhado de uma run de dataflow.

Este módulo define o `RunContext`, a estrutura canônica passada a todos os
FlowSteps e tipos de Step durante uma run.

O RunContext atua como o único meio permitido de:
    - leitura das variáveis do dataflow (somente leitura)
    - armazenamento de artefatos produzidos por Steps (ex.: writer.collect)
    - registro de logs estruturados de execução
    - coleta de warnings não fatais associados a Steps

Princípios fundamentais:
    - Isolamento por execução (cada run possui seu próprio contexto)
    - Variáveis são uma cópia profunda e imutável durante a run
    - Logs são eventos estruturados, não strings livres

Invariantes:
    - Logs sempre incluem `run_id` e `step_id`
    - Eventos abaixo de `log_level` não são registrados
    - Warnings são agrupados por `step_id`
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping

_LEVEL_ORDER = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


@dataclass
class RunContext:
    """
    Contexto de execução de uma run de dataflow.

    O RunContext consolida:
        - identidade da execução (run_id, created_at)
        - variáveis do dataflow, congeladas para a run
        - settings efetivos do Engine
        - artefatos produzidos por Steps
        - logs estruturados e warnings por Step

    Decisões arquiteturais:
        - `variables` é exposto como mapeamento somente leitura; Steps nunca
          mutam as variáveis do Dataflow
        - O nível mínimo de log vem de `settings.engine.log_level`
        - Logging nunca altera o fluxo de controle

    Limites explícitos:
        - Não executa Steps
        - Não persiste eventos automaticamente (isso é papel do Manifest)
    """
    run_id: str
    created_at: datetime
    variables: Mapping[str, Any] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    _artifacts: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _plain_variables: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        self._plain_variables = deepcopy(dict(self.variables or {}))
        self.variables = _freeze(deepcopy(self._plain_variables))

    def plain_variables(self) -> Dict[str, Any]:
        """Cópia profunda e mutável das variáveis, com os tipos originais (dict, list)."""
        return deepcopy(self._plain_variables)

    @property
    def log_level(self) -> str:
        engine = (self.settings or {}).get("engine", {}) or {}
        return str(engine.get("log_level", "INFO")).upper()

    # -----------------------------
    # Artifact store
    # -----------------------------
    def set_artifact(self, key: str, value: Any) -> None:
        self._artifacts[key] = value

    def has_artifact(self, key: str) -> bool:
        return key in self._artifacts

    def get_artifact(self, key: str) -> Any:
        if key not in self._artifacts:
            raise KeyError(key)
        return self._artifacts[key]

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, step_id: str, level: str, message: str, **extra: Any) -> None:
        level = level.upper()
        if _LEVEL_ORDER.get(level, 20) < _LEVEL_ORDER.get(self.log_level, 20):
            return
        event = {
            "run_id": self.run_id,
            "step_id": step_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def events_for(self, step_id: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e.get("step_id") == step_id]

    def add_warning(self, *, step_id: str, message: str) -> None:
        if step_id not in self.warnings:
            self.warnings[step_id] = []
        self.warnings[step_id].append(message)
