"""
Persistência do stepflow: contrato `RecordStore`, store em memória e
`StepRepository` (validação, arestas, import/export).
"""

from .repository import StepRepository
from .store import (
    DATAFLOWS_TABLE,
    STEP_DEPENDS_TABLE,
    STEPS_TABLE,
    InMemoryRecordStore,
    RecordStore,
)

__all__ = [
    "StepRepository",
    "DATAFLOWS_TABLE",
    "STEP_DEPENDS_TABLE",
    "STEPS_TABLE",
    "InMemoryRecordStore",
    "RecordStore",
]
