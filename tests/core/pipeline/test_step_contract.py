# tests/core/pipeline/test_step_contract.py
"""
Testes do contrato estrutural de tipos de Step.

Os built-ins devem satisfazer `StepType` (e readers, `ReaderStepType`) por
verificação em runtime, e declarar um `StepKind` coerente com o prefixo do
identificador registrado.
"""

import pytest

from stepflow.core.pipeline import ReaderStepType, StepKind, StepResult, StepStatus, StepType
from stepflow.steps import BUILTIN_STEP_TYPES


_CONFIGS = {
    "reader.csv": {"path": "unused.csv"},
    "reader.parquet": {"path": "unused.parquet"},
    "filter.match": {"field": "x", "equals": 1},
    "writer.jsonl": {"path": "unused.jsonl"},
}


@pytest.mark.parametrize("type_id", sorted(BUILTIN_STEP_TYPES))
def test_builtins_satisfy_step_protocol(type_id, dummy_ctx):
    factory = BUILTIN_STEP_TYPES[type_id].create
    step = factory(config=_CONFIGS.get(type_id, {}), ctx=dummy_ctx, alias="s")

    assert isinstance(step, StepType)
    assert step.kind.value == type_id.split(".")[0]
    if step.kind == StepKind.READER:
        assert isinstance(step, ReaderStepType)


def test_step_result_is_immutable():
    result = StepResult(step_id="a", kind=StepKind.WRITER, status=StepStatus.SUCCESS, summary="ok")

    assert result.metrics == {} and result.payload == {}
    with pytest.raises(Exception):
        result.status = StepStatus.FAILED  # type: ignore[misc]
