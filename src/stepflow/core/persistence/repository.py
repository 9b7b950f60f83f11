"""
Repositório de Dataflows e Steps sobre um `RecordStore`.

Este módulo concentra as regras de persistência do modelo:
    - validação antes de gravar (name/alias/type, unicidade de alias)
    - campos de auditoria (timecreated / timemodified)
    - gravação explícita de arestas de dependência (`commit_dependencies`)
    - import em duas fases de um documento de dataflow
    - export do dataflow de volta para um documento estruturado

Decisões arquiteturais:
    - Arestas nunca são gravadas implicitamente ao salvar um Step
    - `commit_dependencies` substitui o conjunto de arestas do Step
      (nunca faz merge), inclusive por um conjunto vazio
    - Aliases são resolvidos para ids dentro do mesmo dataflow; alias
      inexistente é `UnresolvedDependency`
    - Remover um Step remove também as arestas que apontam para ele

Limites explícitos:
    - Não constrói o grafo (papel do planner)
    - Não executa Steps
    - Não re-tenta falhas do store (`StorageError` é propagado)
"""

from __future__ import annotations

from contextlib import nullcontext
from datetime import datetime, timezone
from typing import Any, Callable, ContextManager, Dict, Iterable, List, Mapping, Optional, Tuple

from stepflow.core.exceptions import StorageError, UnresolvedDependency, ValidationError
from stepflow.core.model.dataflow import Dataflow
from stepflow.core.model.references import ByAlias, ById, DependencyRef, normalize_reference
from stepflow.core.model.step import StepDraft, StepRecord

from .store import DATAFLOWS_TABLE, STEP_DEPENDS_TABLE, STEPS_TABLE, RecordStore


def _now() -> int:
    return int(datetime.now(timezone.utc).timestamp())


class StepRepository:
    """Persistência de Dataflows, Steps e arestas de dependência."""

    def __init__(self, store: RecordStore, *, clock: Optional[Callable[[], int]] = None):
        self.store = store
        self._clock = clock or _now

    def _transaction(self) -> ContextManager[Any]:
        transaction = getattr(self.store, "transaction", None)
        return transaction() if callable(transaction) else nullcontext()

    # ------------------------------------------------------------------
    # Dataflows
    # ------------------------------------------------------------------
    def save_dataflow(self, dataflow: Dataflow) -> int:
        dataflow.validate()
        now = self._clock()
        if not dataflow.timecreated:
            dataflow.timecreated = now
        dataflow.timemodified = now
        dataflow.id = self.store.save(DATAFLOWS_TABLE, dataflow.to_row())
        return dataflow.id

    def get_dataflow(self, dataflow_id: int) -> Dataflow:
        rows = self.store.find(DATAFLOWS_TABLE, {"id": dataflow_id})
        if not rows:
            raise StorageError(
                message=f"Dataflow {dataflow_id} not found",
                details={"table": DATAFLOWS_TABLE, "id": dataflow_id},
            )
        return Dataflow.from_row(rows[0])

    def delete_dataflow(self, dataflow_id: int) -> None:
        with self._transaction():
            for step in self.find_steps(dataflow_id):
                self.delete_step(step)
            self.store.delete_where(DATAFLOWS_TABLE, {"id": dataflow_id})

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def save_step(self, record: StepRecord) -> int:
        record.validate()

        clashes = [
            row for row in self.store.find(STEPS_TABLE, {"dataflowid": record.dataflowid, "alias": record.alias})
            if row["id"] != record.id
        ]
        if clashes:
            raise ValidationError(
                message=f"Step alias '{record.alias}' already exists in dataflow {record.dataflowid}",
                details={"alias": record.alias, "dataflowid": record.dataflowid, "existing_id": clashes[0]["id"]},
                hint="Aliases devem ser únicos dentro de um dataflow.",
            )

        now = self._clock()
        if not record.timecreated:
            record.timecreated = now
        record.timemodified = now
        record.id = self.store.save(STEPS_TABLE, record.to_row())
        return record.id

    def get_step(self, step_id: int) -> StepRecord:
        rows = self.store.find(STEPS_TABLE, {"id": step_id})
        if not rows:
            raise StorageError(
                message=f"Step {step_id} not found",
                details={"table": STEPS_TABLE, "id": step_id},
            )
        return StepRecord.from_row(rows[0])

    def find_steps(self, dataflow_id: int) -> List[StepRecord]:
        return [StepRecord.from_row(row) for row in self.store.find(STEPS_TABLE, {"dataflowid": dataflow_id})]

    def find_step_by_alias(self, dataflow_id: int, alias: str) -> Optional[StepRecord]:
        rows = self.store.find(STEPS_TABLE, {"dataflowid": dataflow_id, "alias": alias})
        return StepRecord.from_row(rows[0]) if rows else None

    def delete_step(self, record: StepRecord) -> None:
        if record.id is None:
            return
        with self._transaction():
            self.store.delete_where(STEP_DEPENDS_TABLE, {"stepid": record.id})
            self.store.delete_where(STEP_DEPENDS_TABLE, {"dependson": record.id})
            self.store.delete_where(STEPS_TABLE, {"id": record.id})

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------
    def _resolve(self, record: StepRecord, ref: DependencyRef) -> int:
        if isinstance(ref, ById):
            return ref.id
        found = self.find_step_by_alias(record.dataflowid, ref.alias)
        if found is None:
            raise UnresolvedDependency(
                message=f"Step dependency does not exist: {ref.alias}",
                details={"step": record.alias, "reference": ref.alias, "dataflowid": record.dataflowid},
                hint="Declare o Step referenciado no mesmo dataflow ou corrija `depends_on`.",
            )
        return found.id

    def commit_dependencies(self, record: StepRecord, references: Iterable[Any]) -> List[int]:
        """Grava as arestas do Step, substituindo o conjunto anterior.

        Returns:
            List[int]: ids dos Steps dos quais `record` passa a depender.
        """
        if record.id is None:
            raise ValidationError(
                message="Step must be saved before its dependencies are committed",
                details={"alias": record.alias},
            )

        resolved: List[int] = []
        for reference in references:
            dependson = self._resolve(record, normalize_reference(reference))
            if dependson not in resolved:
                resolved.append(dependson)

        with self._transaction():
            self.store.delete_where(STEP_DEPENDS_TABLE, {"stepid": record.id})
            if resolved:
                self.store.insert_many(
                    STEP_DEPENDS_TABLE,
                    [{"stepid": record.id, "dependson": dep} for dep in resolved],
                )
        return resolved

    def upsert(self, draft: StepDraft) -> StepRecord:
        """Salva o Step do rascunho e em seguida grava suas dependências."""
        self.save_step(draft.record)
        self.commit_dependencies(draft.record, draft.depends_on)
        return draft.record

    def find_edges(self, dataflow_id: int) -> List[Tuple[int, int]]:
        edges: List[Tuple[int, int]] = []
        for step in self.find_steps(dataflow_id):
            for row in self.store.find(STEP_DEPENDS_TABLE, {"stepid": step.id}):
                edges.append((row["stepid"], row["dependson"]))
        return edges

    def dependencies(self, record: StepRecord) -> List[StepRecord]:
        """Steps dos quais `record` depende, na ordem das arestas gravadas."""
        result = []
        for row in self.store.find(STEP_DEPENDS_TABLE, {"stepid": record.id}):
            result.append(self.get_step(row["dependson"]))
        return result

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------
    def import_dataflow(self, document: Mapping[str, Any]) -> Dataflow:
        """Importa um documento de dataflow já parseado.

        Formato:
            name: str
            vars: {…}                 (opcional; `variables` também é aceito)
            steps:                    mapeamento alias → definição, ou lista
              read: {type: reader.literal, config: {...}}
              write: {type: writer.collect, depends_on: read}

        Todos os Steps são gravados antes de qualquer aresta, de forma que
        dependências possam referenciar Steps declarados depois.
        """
        if not isinstance(document, Mapping):
            raise ValidationError(
                message="Dataflow document must be a mapping",
                details={"received": type(document).__name__},
            )

        variables = document.get("vars", document.get("variables")) or {}
        dataflow = Dataflow(name=document.get("name") or "", variables=dict(variables))

        with self._transaction():
            self.save_dataflow(dataflow)

            drafts = [
                StepDraft.from_definition(dataflow.id, definition)
                for definition in _step_definitions(document.get("steps"))
            ]
            for draft in drafts:
                self.save_step(draft.record)
            for draft in drafts:
                self.commit_dependencies(draft.record, draft.depends_on)

        return dataflow

    def export_dataflow(self, dataflow_id: int) -> Dict[str, Any]:
        dataflow = self.get_dataflow(dataflow_id)
        steps = self.find_steps(dataflow_id)
        aliases = {s.id: s.alias for s in steps}

        depends: Dict[int, List[str]] = {}
        for stepid, dependson in self.find_edges(dataflow_id):
            depends.setdefault(stepid, []).append(aliases.get(dependson, str(dependson)))

        exported_steps: Dict[str, Dict[str, Any]] = {}
        for step in steps:
            entry: Dict[str, Any] = {"name": step.name, "type": step.type}
            if step.description:
                entry["description"] = step.description
            config = step.parsed_config()
            if config:
                entry["config"] = config
            deps = depends.get(step.id, [])
            if deps:
                entry["depends_on"] = deps[0] if len(deps) == 1 else deps
            exported_steps[step.alias] = entry

        document: Dict[str, Any] = {"name": dataflow.name}
        if dataflow.variables:
            document["vars"] = dict(dataflow.variables)
        document["steps"] = exported_steps
        return document


def _step_definitions(steps: Any) -> List[Dict[str, Any]]:
    if steps is None:
        return []
    if isinstance(steps, Mapping):
        definitions = []
        for key, definition in steps.items():
            definition = dict(definition or {})
            definition.setdefault("id", key)
            definitions.append(definition)
        return definitions
    if isinstance(steps, list):
        return [dict(definition) for definition in steps]
    raise ValidationError(
        message="Dataflow `steps` must be a mapping or a list",
        details={"received": type(steps).__name__},
    )
