"""
# Pipeline Core: stepflow

Este pacote define os **contratos canônicos** compartilhados entre tipos
de Step, FlowStep e Engine.

## Componentes

- **types**
  - `StepKind`: forma do Step (reader, transform, filter, writer)
  - `StepStatus` / `RunStatus`: estados finais de Step e de run
  - `StepResult`: resultado imutável por Step

- **step**
  - `StepType` / `ReaderStepType` (Protocol): contrato de um tipo de Step

- **context**
  - `RunContext`: variáveis somente leitura, artefatos, logs e warnings

- **registry**
  - `StepTypeRegistry`: associação `type` → fábrica de tipo de Step

## Princípios Fundamentais

- Tipos de Step **não conhecem** o Engine nem o grafo
- Tipos de Step **não controlam** leitura do upstream nem exaustão
- Nenhuma decisão implícita ou silenciosa
"""

from .context import RunContext
from .registry import DuplicateStepTypeError, StepTypeRegistry
from .step import ReaderStepType, StepType, StepTypeFactory
from .types import RunStatus, StepKind, StepResult, StepStatus

__all__ = [
    "RunContext",
    "DuplicateStepTypeError",
    "StepTypeRegistry",
    "ReaderStepType",
    "StepType",
    "StepTypeFactory",
    "RunStatus",
    "StepKind",
    "StepResult",
    "StepStatus",
]
