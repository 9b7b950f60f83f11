"""
Engine de execução de dataflows do stepflow.

Fluxo de uma run:
    1. cria o RunContext (variáveis congeladas, settings efetivos) e o Manifest
    2. constrói o grafo de dependências a partir do repositório
    3. faz o bind de cada Step (config + expressões + tipo)
    4. conecta os iteradores em ordem topológica
    5. puxa os terminais em round-robin até todos terminarem
    6. consolida StepResults, status da run e Manifest

Erros de grafo e de bind (inclusive exceções estranhas ao stepflow)
resultam em FAILED antes de qualquer pull.

Todo Step vinculado é fechado exatamente uma vez. Uma falha em `close()`
é registrada como log ERROR e warning do Step e não interrompe os demais.

Falha de transformação (TransformationError):
    - o Step que falhou fica FAILED e seus descendentes SKIPPED
    - com `engine.fail_fast` (padrão), todos os iteradores vivos são
      abortados; caso contrário, ramos não afetados continuam drenando
    - o erro é persistido em `StepResult.payload["error"]` e no Manifest

Limites explícitos:
    - Não re-tenta Steps
    - Não executa Steps em paralelo: uma única cascata síncrona de pulls
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Set
from uuid import uuid4

from stepflow.core.config import compute_config_hash, compute_definition_hash, resolve_settings
from stepflow.core.errors import ErrorPayload, engine_execution_error, error_from_exception
from stepflow.core.exceptions import (
    EngineConfigurationError,
    TransformationError,
    ValidationError,
)
from stepflow.core.expressions import ExpressionEvaluator, JinjaExpressionEvaluator
from stepflow.core.model.dataflow import Dataflow
from stepflow.core.pipeline.context import RunContext
from stepflow.core.pipeline.registry import StepTypeRegistry
from stepflow.core.pipeline.types import RunStatus, StepResult, StepStatus
from stepflow.core.traceability import (
    RunManifest,
    create_manifest,
    run_finished,
    step_failed,
    step_finished,
    step_started,
)

from .executor import FlowStep
from .iterators import IterableSource, IteratorSource, MergeSource, Source, StepIterator
from .planner import DependencyGraph, build_dataflow_graph

ENGINE_LOG_ID = "engine"
FAIL_FAST_REASON = "fail-fast"
HALTED_REASON = "run halted"


@dataclass(frozen=True)
class RunResult:
    """Resultado agregado de uma run de dataflow."""

    status: RunStatus
    run_id: str
    steps: Dict[str, StepResult] = field(default_factory=dict)
    error: Optional[Dict[str, Any]] = None
    cause: Optional[BaseException] = None
    manifest: Optional[RunManifest] = None
    context: Optional[RunContext] = None

    @property
    def ok(self) -> bool:
        return self.status != RunStatus.FAILED


class Engine:
    """Engine canônico do stepflow (planner + executor + iteradores)."""

    def __init__(
        self,
        *,
        repository: Any,
        registry: Optional[StepTypeRegistry] = None,
        evaluator: Optional[ExpressionEvaluator] = None,
        settings: Optional[Mapping[str, Any]] = None,
    ):
        if registry is None:
            from stepflow.steps import default_registry

            registry = default_registry()
        self.repository = repository
        self.registry = registry
        self.evaluator: ExpressionEvaluator = evaluator or JinjaExpressionEvaluator()
        self.settings: Dict[str, Any] = resolve_settings(settings)

    def _fail_fast(self) -> bool:
        return bool(self.settings["engine"]["fail_fast"])

    # ------------------------------------------------------------------
    # Preparação: grafo, bind, wiring
    # ------------------------------------------------------------------
    def _plan(self, dataflow: Dataflow) -> DependencyGraph:
        if dataflow.id is None:
            raise ValidationError(
                message=f"Dataflow '{dataflow.name}' must be saved before it can run",
                details={"dataflow": dataflow.name},
            )
        return build_dataflow_graph(self.repository, dataflow.id)

    def _bind(self, graph: DependencyGraph, ctx: RunContext, bound: Dict[int, FlowStep]) -> None:
        for record in graph.ordered_steps():
            bound[record.id] = FlowStep.bind(record, ctx, registry=self.registry, evaluator=self.evaluator)

    @staticmethod
    def _wire(graph: DependencyGraph, bound: Dict[int, FlowStep]) -> Dict[int, StepIterator]:
        iterators: Dict[int, StepIterator] = {}
        for sid in graph.order:
            step = bound[sid]
            deps = graph.dependencies(sid)

            source: Source
            if step.is_reader:
                if deps:
                    raise EngineConfigurationError(
                        message=f"Reader step '{step.alias}' cannot depend on other steps",
                        details={"step": step.alias, "depends_on": [graph.alias_of(d) for d in deps]},
                    )
                source = IterableSource(step.read)
            elif not deps:
                raise EngineConfigurationError(
                    message=f"Step '{step.alias}' has no upstream and is not a reader",
                    details={"step": step.alias, "kind": step.kind.value},
                    hint="Declare `depends_on` ou use um tipo reader.",
                )
            elif len(deps) == 1:
                source = IteratorSource(iterators[deps[0]])
            else:
                source = MergeSource([IteratorSource(iterators[d]) for d in deps])

            iterators[sid] = StepIterator(step, source)
        return iterators

    # ------------------------------------------------------------------
    # Resultados
    # ------------------------------------------------------------------
    @staticmethod
    def _step_result(
        *,
        step: FlowStep,
        iterator: Optional[StepIterator],
        status: StepStatus,
        summary: str,
        ctx: RunContext,
        error: Optional[ErrorPayload] = None,
    ) -> StepResult:
        metrics: Dict[str, Any] = {}
        payload: Dict[str, Any] = {}
        if iterator is not None:
            metrics = {"iterations": iterator.iteration_count, "pulled": iterator.pulled_count}
            if iterator.abort_reason:
                payload["abort_reason"] = iterator.abort_reason
        if error is not None:
            payload["error"] = error.to_dict()
        return StepResult(
            step_id=step.alias,
            kind=step.kind,
            status=status,
            summary=summary,
            metrics=metrics,
            warnings=list(ctx.warnings.get(step.alias, [])),
            payload=payload,
        )

    @staticmethod
    def _result_dict(result: StepResult) -> Dict[str, Any]:
        data = asdict(result)
        data["kind"] = result.kind.value
        data["status"] = result.status.value
        return data

    def _failed_before_start(
        self,
        *,
        exc: BaseException,
        ctx: RunContext,
        manifest: RunManifest,
    ) -> RunResult:
        error = error_from_exception(exc).to_dict()
        ctx.log(step_id=ENGINE_LOG_ID, level="ERROR", message=f"Run failed before start: {exc}", error=error)
        run_finished(manifest, status=RunStatus.FAILED.value, error=error)
        return RunResult(
            status=RunStatus.FAILED,
            run_id=ctx.run_id,
            error=error,
            cause=exc,
            manifest=manifest,
            context=ctx,
        )

    # ------------------------------------------------------------------
    # Execução
    # ------------------------------------------------------------------
    def run(self, dataflow: Dataflow) -> RunResult:
        ctx = RunContext(
            run_id=uuid4().hex,
            created_at=datetime.now(timezone.utc),
            variables=dataflow.expression_context(),
            settings=self.settings,
            meta={"dataflow_id": dataflow.id, "dataflow_name": dataflow.name},
        )
        manifest = create_manifest(
            run_id=ctx.run_id,
            dataflow_id=dataflow.id,
            dataflow_name=dataflow.name,
            settings_hash=compute_config_hash(self.settings),
            definition_hash="",
            started_at=ctx.created_at,
        )
        ctx.log(step_id=ENGINE_LOG_ID, level="INFO", message=f"Run started for dataflow '{dataflow.name}'")

        bound: Dict[int, FlowStep] = {}
        closed: Set[int] = set()
        try:
            try:
                graph = self._plan(dataflow)
                manifest.inputs["definition_hash"] = compute_definition_hash(
                    self.repository.export_dataflow(dataflow.id)
                )
                self._bind(graph, ctx, bound)
                iterators = self._wire(graph, bound)
            except Exception as exc:
                # erros estranhos ao stepflow (ex.: avaliador customizado) também falham a run
                return self._failed_before_start(exc=exc, ctx=ctx, manifest=manifest)

            return self._drive(graph, bound, iterators, ctx, manifest, closed)
        finally:
            self._close_steps(bound, ctx, closed)

    def _drive(
        self,
        graph: DependencyGraph,
        bound: Dict[int, FlowStep],
        iterators: Dict[int, StepIterator],
        ctx: RunContext,
        manifest: RunManifest,
        closed: Set[int],
    ) -> RunResult:
        by_alias = {graph.alias_of(sid): sid for sid in graph.order}
        failed: Dict[int, ErrorPayload] = {}
        skipped: Set[int] = set()
        run_error: Optional[ErrorPayload] = None
        cause: Optional[BaseException] = None

        for sid in graph.order:
            step_started(manifest, step_id=bound[sid].alias, kind=bound[sid].kind.value)

        pending: List[int] = graph.terminals()
        while pending:
            for sid in list(pending):
                iterator = iterators[sid]
                if iterator.is_finished():
                    pending.remove(sid)
                    continue
                try:
                    iterator.next()
                except TransformationError as exc:
                    failing = by_alias.get(exc.step, sid)
                    failed[failing] = error_from_exception(exc)
                    skipped |= graph.descendants(failing)
                    if run_error is None:
                        run_error, cause = failed[failing], exc
                    ctx.log(step_id=ENGINE_LOG_ID, level="ERROR", message=str(exc), step=exc.step)
                except Exception as exc:
                    # falha fora de um Step: encerra a run com a causa original
                    failed[sid] = engine_execution_error(
                        step=graph.alias_of(sid),
                        exc_type=exc.__class__.__name__,
                        exc_message=str(exc),
                    )
                    skipped |= graph.descendants(sid)
                    if run_error is None:
                        run_error, cause = failed[sid], exc
                    self._halt(iterators, FAIL_FAST_REASON)
                    pending = []
                    break
                else:
                    continue

                if self._fail_fast():
                    self._halt(iterators, FAIL_FAST_REASON)
                    pending = []
                    break

        self._halt(iterators, HALTED_REASON)
        # fechar antes de consolidar: falhas de close entram nos warnings do Step
        self._close_steps(bound, ctx, closed)

        results: Dict[str, StepResult] = {}
        for sid in graph.order:
            step, iterator = bound[sid], iterators[sid]
            if sid in failed:
                result = self._step_result(
                    step=step, iterator=iterator, status=StepStatus.FAILED,
                    summary=failed[sid].message, ctx=ctx, error=failed[sid],
                )
                step_failed(manifest, step_id=step.alias, error=failed[sid].to_dict())
            else:
                if sid in skipped:
                    status, summary = StepStatus.SKIPPED, "skipped due to failed dependency"
                elif iterator.abort_reason in (FAIL_FAST_REASON, HALTED_REASON):
                    status, summary = StepStatus.ABORTED, f"halted: {iterator.abort_reason}"
                elif iterator.iteration_count > 0:
                    status, summary = StepStatus.SUCCESS, f"{iterator.iteration_count} item(s)"
                else:
                    status, summary = StepStatus.ABORTED, "finished without items"
                result = self._step_result(step=step, iterator=iterator, status=status, summary=summary, ctx=ctx)
                step_finished(manifest, step_id=step.alias, result=self._result_dict(result))
            results[step.alias] = result

        if run_error is not None:
            run_status = RunStatus.FAILED
        elif all(iterators[sid].iteration_count == 0 for sid in graph.terminals()):
            run_status = RunStatus.ABORTED
        else:
            run_status = RunStatus.COMPLETED

        error = run_error.to_dict() if run_error is not None else None
        run_finished(manifest, status=run_status.value, error=error)
        ctx.log(step_id=ENGINE_LOG_ID, level="INFO", message=f"Run finished: {run_status.value}")

        return RunResult(
            status=run_status,
            run_id=ctx.run_id,
            steps=results,
            error=error,
            cause=cause,
            manifest=manifest,
            context=ctx,
        )

    @staticmethod
    def _halt(iterators: Mapping[int, StepIterator], reason: str) -> None:
        for iterator in iterators.values():
            iterator.abort(reason)

    @staticmethod
    def _close_steps(bound: Mapping[int, FlowStep], ctx: RunContext, closed: Set[int]) -> None:
        """Fecha cada Step uma única vez; falha de um close não impede os demais."""
        for sid, step in bound.items():
            if sid in closed:
                continue
            closed.add(sid)
            try:
                step.close()
            except Exception as exc:
                ctx.log(
                    step_id=step.alias,
                    level="ERROR",
                    message=f"Close failed: {exc}",
                    exc_type=exc.__class__.__name__,
                )
                ctx.add_warning(step_id=step.alias, message=f"close failed: {exc.__class__.__name__}: {exc}")
