"""
Contrato canônico de tipo de Step do stepflow.

Um tipo de Step é a lógica de transformação associada a `StepRecord.type`.
Ele é instanciado pelo FlowStep com a configuração já resolvida e é
aplicado item a item pelo iterador do Step.

Responsabilidades de um tipo de Step:
    - `execute(item)`: transformação pura por item (ou efeito de escrita)
    - `read()` (apenas readers): produzir o iterável de origem
    - `close()` (opcional): liberar recursos ao fim da run

Princípios fundamentais:
    - Tipos de Step não conhecem o Engine, o planner nem outros Steps
    - Tipos de Step não controlam exaustão nem leitura do upstream
      (isso é papel do iterador)
    - Conformidade é garantida por duck typing (@runtime_checkable)

Limites explícitos:
    - Não registram eventos de rastreabilidade diretamente
    - Não decidem políticas de execução (fail-fast)
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol, runtime_checkable

from .context import RunContext
from .types import StepKind


@runtime_checkable
class StepType(Protocol):
    """
    Contrato mínimo de um tipo de Step.

    Atributos obrigatórios:
        - kind: forma do Step no fluxo (`StepKind`)

    Decisões arquiteturais:
        - `execute` é chamado uma vez por item puxado do upstream
        - Filtros descartam um item retornando `NO_VALUE`
        - Exceções levantadas por `execute` viram `TransformationError`
          no iterador; o tipo de Step não precisa tratá-las
    """
    kind: StepKind

    def execute(self, item: Any) -> Any:
        """Transforma um item puxado do upstream."""
        ...


@runtime_checkable
class ReaderStepType(StepType, Protocol):
    """Tipo de Step de origem: fornece o iterável lido sob demanda."""

    def read(self) -> Iterable[Any]:
        """Retorna o iterável de origem. Chamado no primeiro pull, nunca antes."""
        ...


class StepTypeFactory(Protocol):
    """Construtor de tipos de Step a partir da config resolvida."""

    def __call__(self, *, config: Mapping[str, Any], ctx: RunContext, alias: str) -> StepType:
        ...
