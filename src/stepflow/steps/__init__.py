"""
Tipos de Step embutidos do stepflow.

    reader.literal         → itens declarados na config
    reader.csv             → linhas de um CSV (lazy)
    reader.parquet         → linhas de um Parquet (pandas)
    transform.set_fields   → acrescenta campos a itens dict
    transform.select_fields→ projeta itens dict sobre uma lista de campos
    filter.match           → descarta itens que não casam com um valor
    writer.collect         → acumula itens em um artifact do RunContext
    writer.jsonl           → grava itens como linhas JSON
    writer.log             → registra itens como eventos estruturados
"""

from __future__ import annotations

from stepflow.core.pipeline.registry import StepTypeRegistry

from .filter.match import MatchFilterStep
from .read.csv_file import CsvReaderStep
from .read.literal import LiteralReaderStep
from .read.parquet_file import ParquetReaderStep
from .transform.select_fields import SelectFieldsStep
from .transform.set_fields import SetFieldsStep
from .write.collect import CollectWriterStep, artifact_key
from .write.jsonl import JsonlWriterStep
from .write.log import LogWriterStep

BUILTIN_STEP_TYPES = {
    "reader.literal": LiteralReaderStep,
    "reader.csv": CsvReaderStep,
    "reader.parquet": ParquetReaderStep,
    "transform.set_fields": SetFieldsStep,
    "transform.select_fields": SelectFieldsStep,
    "filter.match": MatchFilterStep,
    "writer.collect": CollectWriterStep,
    "writer.jsonl": JsonlWriterStep,
    "writer.log": LogWriterStep,
}


def default_registry() -> StepTypeRegistry:
    """Novo registry com todos os tipos embutidos (um por chamada)."""
    registry = StepTypeRegistry()
    for type_id, step_cls in BUILTIN_STEP_TYPES.items():
        registry.add(type_id, step_cls.create)
    return registry


__all__ = [
    "BUILTIN_STEP_TYPES",
    "default_registry",
    "artifact_key",
    "CsvReaderStep",
    "LiteralReaderStep",
    "ParquetReaderStep",
    "SelectFieldsStep",
    "SetFieldsStep",
    "MatchFilterStep",
    "CollectWriterStep",
    "JsonlWriterStep",
    "LogWriterStep",
]
