# tests/core/engine/test_iterators.py
"""
Testes do protocolo de iteradores pull-based.

Este módulo valida a máquina de estados do `StepIterator`:

- primeiro pull com upstream vazio → abort("no data") e NO_VALUE
- upstream com um único item → entrega o item e já termina finalizado
- iterador finalizado → NO_VALUE, sem efeitos colaterais
- `abort()` idempotente (log apenas na transição)
- filtros descartam itens retornando NO_VALUE
- falhas de transformação viram TransformationError sem tocar o upstream

E os adaptadores de origem (IterableSource, IteratorSource, MergeSource).

Limites explícitos:
    - Não usa Engine, registry nem FlowStep (ver test_engine/test_executor)
"""

import pytest

try:
    from stepflow.core.engine.iterators import (
        NO_VALUE,
        IterableSource,
        Iterator,
        IteratorSource,
        MergeSource,
        Source,
        StepIterator,
    )
    from stepflow.core.exceptions import TransformationError
except Exception as e:
    StepIterator = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"""Missing iterator protocol. Implement:
- src/stepflow/core/engine/iterators.py
Import error: {_IMPORT_ERR}
""")


def _iterator(RecordingStepCls, items, *, alias="step", fn=None):
    step = RecordingStepCls(alias=alias, fn=fn)
    return step, StepIterator(step, IterableSource(lambda: list(items)))


def _drain(iterator):
    out = []
    while not iterator.is_finished():
        value = iterator.next()
        if value is not NO_VALUE:
            out.append(value)
    return out


def test_no_value_is_a_falsy_singleton():
    _require_imports()
    assert not NO_VALUE
    assert repr(NO_VALUE) == "NO_VALUE"
    assert type(NO_VALUE)() is NO_VALUE


def test_step_iterator_satisfies_protocols(RecordingStepCls):
    _require_imports()
    _, iterator = _iterator(RecordingStepCls, [1])
    assert isinstance(iterator, Iterator)
    assert isinstance(iterator.source, Source)


def test_empty_source_aborts_on_first_pull(RecordingStepCls):
    """
    Verifica que o primeiro `next()` sobre um upstream vazio aborta o
    iterador, devolve NO_VALUE e não executa a transformação.
    """
    _require_imports()
    step, iterator = _iterator(RecordingStepCls, [])

    assert iterator.next() is NO_VALUE
    assert iterator.is_finished()
    assert iterator.abort_reason == "no data"
    assert iterator.iteration_count == 0
    assert step.executed == []
    assert any("Aborting at iteration 0" in message for message, _ in step.logs)


def test_single_item_source_yields_once_and_finishes(RecordingStepCls):
    """
    Verifica que, com um único item, o primeiro `next()` entrega o item e
    o iterador já fica finalizado (exaustão detectada um passo à frente).
    """
    _require_imports()
    step, iterator = _iterator(RecordingStepCls, [42])

    assert iterator.next() == 42
    assert iterator.is_finished()
    assert iterator.iteration_count == 1
    assert step.executed == [42]


def test_multi_item_source_preserves_order_and_counts(RecordingStepCls):
    _require_imports()
    step, iterator = _iterator(RecordingStepCls, [1, 2, 3], fn=lambda x: x * 10)

    assert _drain(iterator) == [10, 20, 30]
    assert iterator.iteration_count == 3
    assert iterator.pulled_count == 3
    iteration_logs = [extra["iteration"] for message, extra in step.logs if message.startswith("Iteration")]
    assert iteration_logs == [1, 2, 3]


def test_finished_iterator_returns_no_value_without_side_effects(RecordingStepCls):
    """Verifica que um iterador abortado não transforma nem loga mais nada."""
    _require_imports()
    step, iterator = _iterator(RecordingStepCls, [1, 2, 3])
    iterator.abort("stop")
    logs_before = list(step.logs)

    assert iterator.next() is NO_VALUE
    assert iterator.next() is NO_VALUE
    assert step.executed == []
    assert step.logs == logs_before
    assert iterator.iteration_count == 0


def test_abort_is_idempotent_and_logs_once(RecordingStepCls):
    _require_imports()
    step, iterator = _iterator(RecordingStepCls, [1])

    iterator.abort("first")
    iterator.abort("second")

    assert iterator.abort_reason == "first"
    assert len([m for m, _ in step.logs if m.startswith("Aborting")]) == 1


def test_is_ready_reflects_upstream_and_state(RecordingStepCls):
    _require_imports()
    _, iterator = _iterator(RecordingStepCls, [1, 2])
    assert iterator.is_ready()

    iterator.abort("stop")
    assert not iterator.is_ready()

    _, empty = _iterator(RecordingStepCls, [])
    assert not empty.is_ready()


def test_filter_drops_items_and_keeps_pulling(RecordingStepCls):
    _require_imports()
    step, iterator = _iterator(RecordingStepCls, [1, 2, 3, 4, 5], fn=lambda x: x if x % 2 == 0 else NO_VALUE)

    assert _drain(iterator) == [2, 4]
    assert iterator.iteration_count == 2
    assert iterator.pulled_count == 5
    assert step.executed == [1, 2, 3, 4, 5]


def test_filter_dropping_last_item_returns_no_value_and_finishes(RecordingStepCls):
    _require_imports()
    _, iterator = _iterator(RecordingStepCls, [2, 3], fn=lambda x: x if x % 2 == 0 else NO_VALUE)

    assert iterator.next() == 2
    assert iterator.next() is NO_VALUE
    assert iterator.is_finished()


def test_transformation_error_aborts_self_not_upstream(RecordingStepCls):
    """
    Verifica que uma exceção na transformação:
    - vira TransformationError com alias e iteração
    - aborta o próprio iterador
    - não altera o estado do upstream
    """
    _require_imports()

    def explode(x):
        if x == 2:
            raise ValueError("bad item")
        return x

    _, upstream = _iterator(RecordingStepCls, [1, 2, 3, 4, 5], alias="up")
    down_step = RecordingStepCls(alias="down", fn=explode)
    downstream = StepIterator(down_step, IteratorSource(upstream))

    assert downstream.next() == 1
    with pytest.raises(TransformationError) as excinfo:
        downstream.next()

    assert excinfo.value.step == "down"
    assert excinfo.value.details["iteration"] == 2
    assert isinstance(excinfo.value.__cause__, ValueError)
    assert downstream.is_finished()
    assert not upstream.is_finished()
    assert upstream.abort_reason is None


def test_upstream_failure_propagates_unchanged(RecordingStepCls):
    _require_imports()

    def explode(x):
        raise RuntimeError("boom")

    _, upstream = _iterator(RecordingStepCls, [1, 2], alias="up", fn=explode)
    down_step = RecordingStepCls(alias="down")
    downstream = StepIterator(down_step, IteratorSource(upstream))

    with pytest.raises(TransformationError) as excinfo:
        downstream.next()

    assert excinfo.value.step == "up"
    assert downstream.is_finished()
    assert down_step.executed == []


def test_reader_source_failure_is_a_transformation_error(RecordingStepCls):
    _require_imports()

    def broken_factory():
        raise FileNotFoundError("missing.csv")

    step = RecordingStepCls(alias="read")
    iterator = StepIterator(step, IterableSource(broken_factory))

    with pytest.raises(TransformationError) as excinfo:
        iterator.next()

    assert excinfo.value.step == "read"
    assert excinfo.value.details["exc_type"] == "FileNotFoundError"


def test_iterable_source_is_lazy():
    _require_imports()
    created = []

    def factory():
        created.append(True)
        return iter([1])

    source = IterableSource(factory)
    assert created == []

    assert source.valid()
    assert source.current() == 1
    source.advance()
    assert not source.valid()
    assert created == [True]


def test_iterable_source_keeps_falsy_items():
    _require_imports()
    source = IterableSource(lambda: [0, None, ""])
    seen = []
    while source.valid():
        seen.append(source.current())
        source.advance()
    assert seen == [0, None, ""]


def test_merge_source_round_robins_in_declared_order():
    _require_imports()
    merged = MergeSource([IterableSource(lambda: ["a1", "a2", "a3"]), IterableSource(lambda: ["b1"])])
    seen = []
    while merged.valid():
        seen.append(merged.current())
        merged.advance()

    assert seen == ["a1", "b1", "a2", "a3"]


def test_shared_upstream_serves_each_item_once(RecordingStepCls):
    """
    Fan-out: dois consumidores sobre o mesmo Iterator competem pelos itens;
    a transformação do upstream roda uma única vez por item.
    """
    _require_imports()
    up_step, upstream = _iterator(RecordingStepCls, [1, 2, 3, 4], alias="up")
    left = StepIterator(RecordingStepCls(alias="left"), IteratorSource(upstream))
    right = StepIterator(RecordingStepCls(alias="right"), IteratorSource(upstream))

    seen = []
    while not (left.is_finished() and right.is_finished()):
        for consumer in (left, right):
            value = consumer.next()
            if value is not NO_VALUE:
                seen.append(value)

    assert sorted(seen) == [1, 2, 3, 4]
    assert up_step.executed == [1, 2, 3, 4]
