"""
Contrato de store de registros e implementação em memória.

O core trata a persistência como um colaborador externo: um store
transacional de registros, indexado por tabela e id. O contrato mínimo é:

    - save(table, row) -> id            (insere quando row["id"] é None)
    - find(table, criteria) -> rows      (igualdade campo a campo)
    - delete_where(table, criteria) -> n
    - insert_many(table, rows) -> ids    (atômico)

Falhas do store são sempre `StorageError`; o core não re-tenta.

`InMemoryRecordStore` é a implementação embutida, usada nos testes e em
execuções locais. Linhas são copiadas na entrada e na saída, de forma que
nenhum chamador compartilha estado mutável com o store.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from stepflow.core.exceptions import StorageError

DATAFLOWS_TABLE = "dataflows"
STEPS_TABLE = "steps"
STEP_DEPENDS_TABLE = "step_depends"


class RecordStore(Protocol):
    def save(self, table: str, row: Mapping[str, Any]) -> int:
        ...

    def find(self, table: str, criteria: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        ...

    def delete_where(self, table: str, criteria: Mapping[str, Any]) -> int:
        ...

    def insert_many(self, table: str, rows: Iterable[Mapping[str, Any]]) -> List[int]:
        ...


def _matches(row: Mapping[str, Any], criteria: Mapping[str, Any]) -> bool:
    return all(row.get(key) == value for key, value in criteria.items())


class InMemoryRecordStore:
    """Store transacional em memória (ids autoincrementais por tabela)."""

    def __init__(self) -> None:
        self._tables: Dict[str, Dict[int, Dict[str, Any]]] = {}
        self._sequences: Dict[str, int] = {}
        self._closed = False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _table(self, table: str) -> Dict[int, Dict[str, Any]]:
        if self._closed:
            raise StorageError(message="Record store is closed", details={"table": table})
        if not isinstance(table, str) or not table:
            raise StorageError(message="Table name must be a non-empty string", details={"table": table})
        return self._tables.setdefault(table, {})

    def _next_id(self, table: str) -> int:
        self._sequences[table] = self._sequences.get(table, 0) + 1
        return self._sequences[table]

    def _insert(self, table: str, row: Mapping[str, Any]) -> int:
        rows = self._table(table)
        new_id = self._next_id(table)
        stored = deepcopy(dict(row))
        stored["id"] = new_id
        rows[new_id] = stored
        return new_id

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------
    def save(self, table: str, row: Mapping[str, Any]) -> int:
        rows = self._table(table)
        row_id = row.get("id")
        if row_id is None:
            return self._insert(table, row)
        if row_id not in rows:
            raise StorageError(
                message=f"Cannot update missing record {table}#{row_id}",
                details={"table": table, "id": row_id},
            )
        rows[row_id] = deepcopy(dict(row))
        return row_id

    def find(self, table: str, criteria: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        rows = self._table(table)
        criteria = criteria or {}
        return [deepcopy(rows[key]) for key in sorted(rows) if _matches(rows[key], criteria)]

    def delete_where(self, table: str, criteria: Mapping[str, Any]) -> int:
        rows = self._table(table)
        doomed = [key for key, row in rows.items() if _matches(row, criteria)]
        for key in doomed:
            del rows[key]
        return len(doomed)

    def insert_many(self, table: str, rows: Iterable[Mapping[str, Any]]) -> List[int]:
        with self.transaction():
            return [self._insert(table, row) for row in rows]

    # ------------------------------------------------------------------
    # Transactions / lifecycle
    # ------------------------------------------------------------------
    def transaction(self) -> "StoreTransaction":
        """Reverte todas as escritas feitas no bloco se uma exceção escapar."""
        return StoreTransaction(self)

    def close(self) -> None:
        self._closed = True


class StoreTransaction:
    """
    Context manager de transação do `InMemoryRecordStore`.

    Não reatribui atributos da exceção em trânsito (as exceções do stepflow
    são dataclasses congeladas).
    """

    def __init__(self, store: InMemoryRecordStore) -> None:
        self._store = store
        self._snapshot: Optional[Tuple[Dict[str, Dict[int, Dict[str, Any]]], Dict[str, int]]] = None

    def __enter__(self) -> InMemoryRecordStore:
        self._snapshot = (deepcopy(self._store._tables), dict(self._store._sequences))
        return self._store

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None and self._snapshot is not None:
            self._store._tables, self._store._sequences = self._snapshot
        self._snapshot = None
        return False
