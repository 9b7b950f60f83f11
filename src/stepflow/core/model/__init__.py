"""
Modelo de dados do stepflow: Dataflow, StepRecord, StepDraft e
referências de dependência tipadas (ById / ByAlias).
"""

from .dataflow import Dataflow
from .references import ByAlias, ById, DependencyRef, normalize_depends_on, normalize_reference
from .step import StepDraft, StepRecord, derive_alias

__all__ = [
    "Dataflow",
    "ByAlias",
    "ById",
    "DependencyRef",
    "normalize_depends_on",
    "normalize_reference",
    "StepDraft",
    "StepRecord",
    "derive_alias",
]
