"""
Engine do stepflow.

Este pacote contém a implementação responsável por **planejar** e
**executar** dataflows:

Componentes principais:
    - planner   → grafo de dependências e ordem topológica determinística
    - executor  → FlowStep: bind de config, expressões e tipo de Step
    - iterators → protocolo pull-based (NO_VALUE, Iterator, Source, StepIterator)
    - engine    → wiring dos iteradores e execução com políticas explícitas

Princípios fundamentais:
    - Planejamento e execução são responsabilidades separadas
    - A ordem de execução é determinística para o mesmo grafo
    - Nenhuma decisão silenciosa é tomada durante a execução

Invariantes:
    - Nenhum Step puxa itens antes de suas dependências estarem conectadas
    - Cada Step tem exatamente um Iterator por run
    - O resultado reflete explicitamente o estado de cada Step
"""

from .engine import Engine, RunResult
from .executor import FlowStep
from .iterators import (
    NO_VALUE,
    IterableSource,
    Iterator,
    IteratorSource,
    MergeSource,
    Source,
    StepIterator,
)
from .planner import DependencyGraph, build_dataflow_graph, build_graph

__all__ = [
    "Engine",
    "RunResult",
    "FlowStep",
    "NO_VALUE",
    "Iterator",
    "Source",
    "IterableSource",
    "IteratorSource",
    "MergeSource",
    "StepIterator",
    "DependencyGraph",
    "build_graph",
    "build_dataflow_graph",
]
