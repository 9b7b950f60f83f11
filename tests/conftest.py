# tests/conftest.py
"""
Fixtures compartilhados para testes do stepflow.

Este módulo define fixtures reutilizáveis que fornecem:
- store em memória e repositório com relógio determinístico
- contexto de execução controlado (RunContext)
- tipos de Step "contadores" para testes do engine e dos iteradores
- um Step gravador (RecordingStep) para testar iteradores isoladamente

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - Dados retornados são determinísticos e isolados
    - Tipos de Step de teste usam duck typing em vez de herança
    - Imports do core são feitos de forma lazy para melhorar a clareza
      de erros durante falhas de import

Invariantes:
    - Nenhuma fixture executa uma run real
    - Nenhuma fixture realiza I/O
    - Contadores começam zerados a cada teste

Limites explícitos:
    - Não substituir testes de integração (ver tests/e2e)
    - Não conter lógica de domínio
"""

from collections import Counter
from datetime import datetime, timezone

import pytest

FIXED_CLOCK = 1_700_000_000


# =====================================================
# Persistência
# =====================================================

@pytest.fixture
def store():
    """Store de registros em memória, isolado por teste."""
    from stepflow.core.persistence import InMemoryRecordStore

    return InMemoryRecordStore()


@pytest.fixture
def repository(store):
    """
    Repositório de Steps sobre o store em memória.

    O relógio é fixo para que `timecreated`/`timemodified` sejam
    determinísticos nos asserts.
    """
    from stepflow.core.persistence import StepRepository

    return StepRepository(store, clock=lambda: FIXED_CLOCK)


@pytest.fixture
def import_dataflow(repository):
    """
    Fábrica de dataflows persistidos a partir de uma definição de Steps.

    Uso:
        dataflow = import_dataflow({"read": {...}, "write": {...}}, vars={...})
    """

    def _import(steps, *, name="test-flow", vars=None):
        return repository.import_dataflow({"name": name, "vars": dict(vars or {}), "steps": steps})

    return _import


# =====================================================
# Pipeline (RunContext + tipos de Step)
# =====================================================

@pytest.fixture
def dummy_settings() -> dict:
    """Settings mínimos e já resolvidos (fail-fast ligado, nível DEBUG)."""
    return {"engine": {"fail_fast": True, "log_level": "DEBUG"}}


@pytest.fixture
def dummy_ctx(dummy_settings):
    """
    RunContext determinístico para testes.

    `run_id` e `created_at` são fixos; as variáveis simulam o contexto de
    expressões de um dataflow real.
    """
    from stepflow.core.pipeline.context import RunContext

    return RunContext(
        run_id="run-test-001",
        created_at=datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc),
        variables={"limit": 3, "name": "demo", "dataflow": {"id": 1, "name": "demo", "vars": {}}},
        settings=dummy_settings,
        meta={"source": "pytest"},
    )


@pytest.fixture
def calls():
    """Contador de chamadas `execute`/`read`/`close` por alias de Step."""
    return Counter()


class CountingStep:
    """
    Tipo de Step de teste que conta chamadas.

    - readers emitem `items` da config
    - transforms somam `add` ao item (padrão 0)
    - filters mantêm apenas itens pares
    - `fail_on` faz `execute` levantar RuntimeError para aquele item
    - `close_fails` faz `close` levantar RuntimeError (depois de contar)
    """

    def __init__(self, *, kind, alias, calls, config):
        self.kind = kind
        self.alias = alias
        self.calls = calls
        self.config = dict(config)

    def read(self):
        self.calls[f"{self.alias}.read"] += 1
        return iter(list(self.config.get("items", [])))

    def execute(self, item):
        from stepflow.core.engine.iterators import NO_VALUE
        from stepflow.core.pipeline.types import StepKind

        self.calls[self.alias] += 1
        if "fail_on" in self.config and item == self.config["fail_on"]:
            raise RuntimeError(f"boom on {item}")
        if self.kind == StepKind.FILTER:
            return item if item % 2 == 0 else NO_VALUE
        if self.kind == StepKind.TRANSFORM:
            return item + self.config.get("add", 0)
        return item

    def close(self):
        self.calls[f"{self.alias}.close"] += 1
        if self.config.get("close_fails"):
            raise RuntimeError(f"close failed for {self.alias}")


@pytest.fixture
def counting_registry(calls):
    """
    Registry com os tipos embutidos mais os tipos contadores de teste:
    `test.reader`, `test.transform`, `test.filter`, `test.writer`.
    """
    from stepflow.core.pipeline.types import StepKind
    from stepflow.steps import default_registry

    registry = default_registry()

    def factory(kind):
        def _create(*, config, ctx, alias):
            return CountingStep(kind=kind, alias=alias, calls=calls, config=config)

        return _create

    registry.add("test.reader", factory(StepKind.READER))
    registry.add("test.transform", factory(StepKind.TRANSFORM))
    registry.add("test.filter", factory(StepKind.FILTER))
    registry.add("test.writer", factory(StepKind.WRITER))
    return registry


@pytest.fixture
def engine_factory(repository, counting_registry):
    """Fábrica de Engine sobre o repositório e o registry de teste."""
    from stepflow.core.engine import Engine

    def _make(**settings_overrides):
        settings = {"engine": settings_overrides} if settings_overrides else None
        return Engine(repository=repository, registry=counting_registry, settings=settings)

    return _make


# =====================================================
# Iteradores
# =====================================================

class RecordingStep:
    """
    Step mínimo para testar `StepIterator` sem FlowStep.

    `fn` transforma o item (identidade por padrão); logs são acumulados em
    `self.logs` como tuplas (message, extra).
    """

    def __init__(self, alias="step", fn=None):
        self.alias = alias
        self.fn = fn or (lambda item: item)
        self.executed = []
        self.logs = []

    def execute(self, item):
        self.executed.append(item)
        return self.fn(item)

    def log(self, message, **extra):
        self.logs.append((message, extra))

    def log_iteration(self, iteration, value):
        self.logs.append((f"Iteration {iteration}", {"iteration": iteration, "value": value}))


@pytest.fixture
def RecordingStepCls():
    """Retorna a *classe* RecordingStep (instanciada por cada teste)."""
    return RecordingStep
