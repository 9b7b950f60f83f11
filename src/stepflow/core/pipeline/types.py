"""
Tipos canônicos do pipeline do stepflow.

Este módulo define as estruturas e enums que padronizam a comunicação
entre tipos de Step, FlowStep, Engine e Manifest.

Componentes principais:
    - StepKind   → forma do Step no fluxo (reader, transform, filter, writer)
    - StepStatus → estado final de um Step em uma run
    - RunStatus  → estado final da run como um todo
    - StepResult → estrutura imutável de resultado por Step

Invariantes:
    - Enums possuem valores textuais canônicos (serializáveis em JSON)
    - StepResult é imutável
    - Tipos não dependem de engine, persistência ou UI
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class StepKind(str, Enum):
    """
    Forma de um Step dentro do fluxo de dados.

    Tipos definidos:
        - READER: origem de itens; não possui dependências
        - TRANSFORM: mapeia um item em exatamente um item
        - FILTER: mapeia um item em zero ou um item
        - WRITER: consome itens com efeito colateral (sink)

    Decisões arquiteturais:
        - O Engine usa `READER` apenas para decidir o wiring da origem
        - Fan-in e fan-out não são kinds: emergem do grafo de dependências
    """
    READER = "reader"
    TRANSFORM = "transform"
    FILTER = "filter"
    WRITER = "writer"


class StepStatus(str, Enum):
    """
    Estados finais possíveis de um Step em uma run.

    Estados definidos:
        - SUCCESS: o iterador do Step terminou após entregar itens
        - ABORTED: o Step terminou sem entregar itens (entrada vazia) ou foi
          interrompido por fail-fast antes de terminar
        - FAILED: a transformação do Step levantou exceção
        - SKIPPED: o Step depende (direta ou indiretamente) de um Step FAILED
    """
    SUCCESS = "success"
    ABORTED = "aborted"
    FAILED = "failed"
    SKIPPED = "skipped"


class RunStatus(str, Enum):
    """
    Estado final de uma run.

    - COMPLETED: nenhuma falha e ao menos um terminal entregou itens
    - ABORTED: nenhuma falha, mas todos os terminais terminaram sem itens
      (entrada legitimamente vazia)
    - FAILED: falha de grafo, de binding ou de transformação, com causa
    """
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    """
    Resultado imutável de um Step ao final de uma run.

    Campos:
        - step_id: alias do Step
        - kind: forma do Step (`StepKind`), quando o binding ocorreu
        - status: estado final
        - summary: resumo textual
        - metrics: contagens (itens entregues, leituras do upstream)
        - warnings: avisos não fatais registrados no RunContext
        - payload: dados adicionais (ex.: `error` serializado)
    """
    step_id: str
    kind: Any
    status: StepStatus
    summary: str
    metrics: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    payload: Dict[str, Any] = field(default_factory=dict)
