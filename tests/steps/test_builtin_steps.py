# tests/steps/test_builtin_steps.py
"""
Testes dos tipos de Step embutidos (stepflow.steps).

Os testes asseguram que:
- readers só tocam a origem em `read()` e produzem itens na ordem da origem
- transforms e filtros respeitam a forma declarada (1 → 1, 1 → 0..1)
- writers produzem efeitos observáveis (artefato, arquivo, log)
- config ausente ou inválida vira EngineConfigurationError nomeando Step e chave

Limites explícitos:
    - Não usa o Engine (ver tests/e2e)
"""

import json

import pytest

from stepflow.core.engine.iterators import NO_VALUE
from stepflow.core.exceptions import EngineConfigurationError
from stepflow.core.pipeline.types import StepKind
from stepflow.steps import (
    CollectWriterStep,
    CsvReaderStep,
    JsonlWriterStep,
    LiteralReaderStep,
    LogWriterStep,
    MatchFilterStep,
    ParquetReaderStep,
    SelectFieldsStep,
    SetFieldsStep,
    artifact_key,
    default_registry,
)


def _create(step_cls, config, ctx, alias="s"):
    return step_cls.create(config=config, ctx=ctx, alias=alias)


# =====================================================
# Registry
# =====================================================

def test_default_registry_lists_all_builtins_and_is_fresh():
    first = default_registry()
    second = default_registry()

    assert first.list() == [
        "reader.literal",
        "reader.csv",
        "reader.parquet",
        "transform.set_fields",
        "transform.select_fields",
        "filter.match",
        "writer.collect",
        "writer.jsonl",
        "writer.log",
    ]
    first.add("custom.type", LiteralReaderStep.create)
    assert not second.has("custom.type")


# =====================================================
# Readers
# =====================================================

def test_literal_reader_defaults_to_empty(dummy_ctx):
    step = _create(LiteralReaderStep, {}, dummy_ctx)
    assert step.kind == StepKind.READER
    assert list(step.read()) == []


def test_literal_reader_rejects_non_list(dummy_ctx):
    with pytest.raises(EngineConfigurationError) as excinfo:
        _create(LiteralReaderStep, {"items": "abc"}, dummy_ctx, alias="lit")
    assert excinfo.value.details["key"] == "items"
    assert excinfo.value.details["step"] == "lit"


def test_csv_reader_streams_rows(tmp_path, dummy_ctx):
    path = tmp_path / "orders.csv"
    path.write_text("id;status\n1;paid\n2;open\n", encoding="utf-8")

    step = _create(CsvReaderStep, {"path": str(path), "delimiter": ";"}, dummy_ctx)
    rows = step.read()

    assert next(rows) == {"id": "1", "status": "paid"}
    step.close()
    with pytest.raises(StopIteration):
        next(rows)


def test_csv_reader_opens_file_lazily(tmp_path, dummy_ctx):
    missing = tmp_path / "later.csv"
    step = _create(CsvReaderStep, {"path": str(missing)}, dummy_ctx)

    rows = step.read()
    missing.write_text("a\n1\n", encoding="utf-8")

    assert list(rows) == [{"a": "1"}]


def test_csv_reader_missing_file_fails_on_first_pull(tmp_path, dummy_ctx):
    step = _create(CsvReaderStep, {"path": str(tmp_path / "nope.csv")}, dummy_ctx)
    rows = step.read()

    with pytest.raises(FileNotFoundError):
        next(rows)


def test_csv_reader_requires_path(dummy_ctx):
    with pytest.raises(EngineConfigurationError) as excinfo:
        _create(CsvReaderStep, {}, dummy_ctx, alias="read")
    assert excinfo.value.details == {"step": "read", "key": "path"}


def test_parquet_reader_reads_records(tmp_path, dummy_ctx):
    pd = pytest.importorskip("pandas")
    pytest.importorskip("pyarrow")
    path = tmp_path / "data.parquet"
    pd.DataFrame({"id": [1, 2], "name": ["a", "b"]}).to_parquet(path)

    step = _create(ParquetReaderStep, {"path": str(path), "columns": ["name"]}, dummy_ctx)

    assert list(step.read()) == [{"name": "a"}, {"name": "b"}]


def test_parquet_reader_missing_file(tmp_path, dummy_ctx):
    step = _create(ParquetReaderStep, {"path": str(tmp_path / "none.parquet")}, dummy_ctx)
    with pytest.raises(FileNotFoundError):
        step.read()


# =====================================================
# Transforms & filters
# =====================================================

def test_set_fields_merges_without_mutating_input(dummy_ctx):
    step = _create(SetFieldsStep, {"fields": {"source": "crm", "id": 9}}, dummy_ctx)
    item = {"id": 1, "name": "x"}

    assert step.execute(item) == {"id": 9, "name": "x", "source": "crm"}
    assert item == {"id": 1, "name": "x"}


def test_set_fields_rejects_non_mapping_items(dummy_ctx):
    step = _create(SetFieldsStep, {"fields": {"a": 1}}, dummy_ctx)
    with pytest.raises(TypeError):
        step.execute([1, 2])


def test_set_fields_requires_mapping_config(dummy_ctx):
    with pytest.raises(EngineConfigurationError):
        _create(SetFieldsStep, {"fields": ["a"]}, dummy_ctx)


def test_select_fields_projects_in_declared_order(dummy_ctx):
    step = _create(SelectFieldsStep, {"fields": ["b", "a", "z"]}, dummy_ctx)

    out = step.execute({"a": 1, "b": 2, "c": 3})

    assert list(out) == ["b", "a", "z"]
    assert out == {"b": 2, "a": 1, "z": None}


def test_select_fields_strict_raises_on_missing(dummy_ctx):
    step = _create(SelectFieldsStep, {"fields": ["a", "z"], "strict": True}, dummy_ctx)
    with pytest.raises(KeyError):
        step.execute({"a": 1})


def test_match_filter_equals_and_negate(dummy_ctx):
    keep = _create(MatchFilterStep, {"field": "status", "equals": "paid"}, dummy_ctx)
    drop = _create(MatchFilterStep, {"field": "status", "equals": "paid", "negate": True}, dummy_ctx)

    assert keep.kind == StepKind.FILTER
    assert keep.execute({"status": "paid"}) == {"status": "paid"}
    assert keep.execute({"status": "open"}) is NO_VALUE
    assert drop.execute({"status": "paid"}) is NO_VALUE
    assert drop.execute({"status": "open"}) == {"status": "open"}


def test_match_filter_in(dummy_ctx):
    step = _create(MatchFilterStep, {"field": "n", "in": [1, 3]}, dummy_ctx)
    assert [step.execute({"n": n}) is not NO_VALUE for n in (1, 2, 3)] == [True, False, True]


@pytest.mark.parametrize(
    "config",
    [
        {"field": "x"},
        {"field": "x", "equals": 1, "in": [1]},
        {"equals": 1},
        {"field": "x", "in": "abc"},
        {"field": "x", "equals": 1, "negate": "yes"},
    ],
)
def test_match_filter_invalid_config(dummy_ctx, config):
    with pytest.raises(EngineConfigurationError):
        _create(MatchFilterStep, config, dummy_ctx)


# =====================================================
# Writers
# =====================================================

def test_collect_writer_publishes_artifact(dummy_ctx):
    step = _create(CollectWriterStep, {}, dummy_ctx, alias="out")

    assert dummy_ctx.get_artifact(artifact_key("out")) == []
    step.execute({"a": 1})
    step.execute({"a": 2})

    assert dummy_ctx.get_artifact("out.items") == [{"a": 1}, {"a": 2}]


def test_jsonl_writer_writes_lines_and_closes(tmp_path, dummy_ctx):
    path = tmp_path / "out" / "items.jsonl"
    step = _create(JsonlWriterStep, {"path": str(path)}, dummy_ctx)

    assert not path.exists()
    step.execute({"b": 2, "a": "ç"})
    step.execute({"a": 3})
    step.close()
    step.close()

    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line) for line in lines] == [{"a": "ç", "b": 2}, {"a": 3}]
    assert step.written == 2


def test_jsonl_writer_append_mode(tmp_path, dummy_ctx):
    path = tmp_path / "items.jsonl"
    path.write_text('{"a": 0}\n', encoding="utf-8")
    step = _create(JsonlWriterStep, {"path": str(path), "append": True}, dummy_ctx)

    step.execute({"a": 1})
    step.close()

    assert path.read_text(encoding="utf-8").splitlines() == ['{"a": 0}', '{"a": 1}']


def test_log_writer_emits_structured_events(dummy_ctx):
    step = _create(LogWriterStep, {"level": "warning", "prefix": "row: "}, dummy_ctx, alias="audit")

    assert step.execute({"id": 1}) == {"id": 1}
    step.execute(object())

    events = dummy_ctx.events_for("audit")
    assert events[0]["level"] == "WARNING"
    assert events[0]["message"] == 'row: {"id": 1}'
    assert events[0]["item"] == '{"id": 1}'
    assert events[1]["item"].startswith("<object object")


def test_log_writer_rejects_unknown_level(dummy_ctx):
    with pytest.raises(EngineConfigurationError):
        _create(LogWriterStep, {"level": "loud"}, dummy_ctx)
