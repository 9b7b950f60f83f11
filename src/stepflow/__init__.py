# src/stepflow/__init__.py
"""
stepflow: engine de dataflows configuráveis com execução em streaming.

Este pacote raiz define o namespace público do stepflow, um engine de
pipelines ETL em que cada Step (leitura, transformação, filtro ou escrita)
é um nó nomeado de um DAG explícito, conectado aos demais por arestas de
dependência declaradas.

Princípios centrais:
    - O pipeline é um DAG explícito de Steps, validado antes da execução
    - A execução é pull-based: consumidores pedem um item por vez
    - Nenhum dataset é materializado inteiro entre Steps
    - Configuração de Steps é avaliada tardiamente contra variáveis da run

Arquitetura em alto nível:
    - core.model        → registros de Step/Dataflow e referências de dependência
    - core.persistence  → contrato de store e repositório de Steps
    - core.engine       → grafo de dependências, iteradores, executor e engine
    - core.pipeline     → tipos canônicos, contexto de run e registry de tipos
    - core.config       → settings do engine (merge, load, hashing)
    - core.traceability → Manifest e Event Log da run
    - steps             → tipos de Step embutidos
"""
# src/stepflow/__init__.py
from .core.engine import Engine, RunResult
from .core.model import Dataflow, StepDraft, StepRecord
from .core.persistence import InMemoryRecordStore, StepRepository

__all__ = [
    "Engine",
    "RunResult",
    "Dataflow",
    "StepDraft",
    "StepRecord",
    "InMemoryRecordStore",
    "StepRepository",
]
