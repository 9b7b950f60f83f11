"""
Construção do grafo de dependências de um dataflow (DAG).

Este módulo é responsável por validar a estrutura de um dataflow e
produzir um grafo dirigido sobre os Steps, acompanhado de uma ordem
topológica determinística.

O planner opera exclusivamente em nível estrutural, analisando:
    - ids e aliases dos Steps
    - arestas de dependência (por id ou por alias)
    - formação de ciclos
    - referências pendentes

Decisões arquiteturais:
    - Utiliza ordenação topológica determinística (Kahn modificado)
    - Empates são resolvidos pelo menor id de Step
    - Referências não resolvidas e ciclos são falhas fatais, nunca
      arestas ignoradas
    - A construção é pura: nenhuma escrita no store acontece aqui

Invariantes:
    - Nenhum Step aparece na ordem antes de suas dependências
    - Todos os Steps do dataflow aparecem exatamente uma vez
    - A mesma entrada sempre produz a mesma ordem

Limites explícitos:
    - Não executa Steps
    - Não interage com RunContext
    - Não grava arestas (isso é `StepRepository.commit_dependencies`)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence, Set, Tuple

from stepflow.core.exceptions import CyclicDependency, UnresolvedDependency, ValidationError
from stepflow.core.model.references import ByAlias, ById, normalize_reference
from stepflow.core.model.step import StepRecord


@dataclass(frozen=True)
class DependencyGraph:
    """
    Grafo dirigido (DAG) de Steps de um dataflow.

    Campos:
        - steps: registros indexados por id
        - order: ids em ordem topológica determinística
        - edges: pares (stepid, dependsonid) resolvidos, sem duplicatas

    Todas as consultas retornam listas ordenadas por id, de forma que o
    wiring feito pelo Engine seja reprodutível.
    """

    steps: Dict[int, StepRecord]
    order: Tuple[int, ...]
    edges: Tuple[Tuple[int, int], ...]
    _deps: Dict[int, Tuple[int, ...]] = field(default_factory=dict, repr=False)
    _dependents: Dict[int, Tuple[int, ...]] = field(default_factory=dict, repr=False)

    def alias_of(self, step_id: int) -> str:
        return self.steps[step_id].alias

    def ordered_steps(self) -> List[StepRecord]:
        return [self.steps[sid] for sid in self.order]

    def dependencies(self, step_id: int) -> List[int]:
        return list(self._deps.get(step_id, ()))

    def dependents(self, step_id: int) -> List[int]:
        return list(self._dependents.get(step_id, ()))

    def roots(self) -> List[int]:
        return [sid for sid in self.order if not self._deps.get(sid)]

    def terminals(self) -> List[int]:
        return [sid for sid in self.order if not self._dependents.get(sid)]

    def descendants(self, step_id: int) -> Set[int]:
        seen: Set[int] = set()
        stack = list(self.dependents(step_id))
        while stack:
            sid = stack.pop()
            if sid in seen:
                continue
            seen.add(sid)
            stack.extend(self.dependents(sid))
        return seen


def _index_steps(steps: Sequence[StepRecord]) -> Tuple[Dict[int, StepRecord], Dict[str, int]]:
    by_id: Dict[int, StepRecord] = {}
    by_alias: Dict[str, int] = {}
    for step in steps:
        sid = step.id
        if not isinstance(sid, int) or isinstance(sid, bool):
            raise ValidationError(
                message=f"Step '{step.alias}' has no persisted id",
                details={"alias": step.alias},
                hint="Salve o Step antes de construir o grafo.",
            )
        if sid in by_id:
            raise ValidationError(message=f"Duplicate step id: {sid}", details={"id": sid})
        if step.alias in by_alias:
            raise ValidationError(
                message=f"Duplicate step alias: {step.alias}",
                details={"alias": step.alias, "ids": [by_alias[step.alias], sid]},
            )
        by_id[sid] = step
        by_alias[step.alias] = sid
    return by_id, by_alias


def _find_cycle(remaining: Set[int], deps: Dict[int, List[int]]) -> List[int]:
    """Retorna um ciclo (lista de ids, em ordem de dependência) dentro de `remaining`.

    Todo nó que sobra após Kahn alcança um ciclo seguindo suas dependências.
    """
    start = min(remaining)
    path: List[int] = []
    position: Dict[int, int] = {}
    node = start
    while node not in position:
        position[node] = len(path)
        path.append(node)
        node = min(d for d in deps[node] if d in remaining)
    return path[position[node]:]


def build_graph(steps: Sequence[StepRecord], edges: Iterable[Tuple[int, Any]]) -> DependencyGraph:
    """
    Valida e constrói o grafo de dependências de um dataflow.

    Args:
        steps (Sequence[StepRecord]): Steps persistidos do dataflow.
        edges (Iterable[Tuple[int, Any]]): pares (stepid, referência); a
            referência pode ser um id, um alias ou uma `DependencyRef`.

    Returns:
        DependencyGraph: grafo com ordem topológica determinística.

    Raises:
        ValidationError: Step sem id, id ou alias duplicado.
        UnresolvedDependency: referência (ou stepid) fora do dataflow.
        CyclicDependency: ciclo no grafo, com os ids participantes.
    """
    by_id, by_alias = _index_steps(steps)

    deps: Dict[int, List[int]] = {sid: [] for sid in by_id}
    for stepid, raw_ref in edges:
        if stepid not in by_id:
            raise UnresolvedDependency(
                message=f"Dependency edge references unknown step id {stepid}",
                details={"stepid": stepid, "reference": str(raw_ref)},
            )
        ref = normalize_reference(raw_ref)
        if isinstance(ref, ByAlias):
            target = by_alias.get(ref.alias)
        else:
            target = ref.id if ref.id in by_id else None
        if target is None:
            alias = by_id[stepid].alias
            raise UnresolvedDependency(
                message=f"Step '{alias}' depends on unknown step '{ref}'",
                details={"step": alias, "stepid": stepid, "reference": str(ref)},
                hint="Declare o Step referenciado no mesmo dataflow ou corrija `depends_on`.",
            )
        if target not in deps[stepid]:
            deps[stepid].append(target)

    # Kahn's algorithm (deterministic)
    incoming_count: Dict[int, int] = {sid: len(d) for sid, d in deps.items()}
    outgoing: Dict[int, Set[int]] = {sid: set() for sid in by_id}
    for sid, dlist in deps.items():
        for dep in dlist:
            outgoing[dep].add(sid)

    ready: List[int] = sorted(sid for sid, c in incoming_count.items() if c == 0)
    order: List[int] = []

    while ready:
        sid = ready.pop(0)
        order.append(sid)
        for child in sorted(outgoing[sid]):
            incoming_count[child] -= 1
            if incoming_count[child] == 0:
                ready.append(child)
                ready.sort()

    if len(order) != len(by_id):
        cycle = _find_cycle(set(by_id) - set(order), deps)
        aliases = [by_id[sid].alias for sid in cycle]
        raise CyclicDependency(
            message="Cyclic dependency between steps: " + " -> ".join(aliases + aliases[:1]),
            details={"cycle": cycle, "aliases": aliases},
            hint="Remova uma das dependências do ciclo.",
        )

    return DependencyGraph(
        steps=by_id,
        order=tuple(order),
        edges=tuple((sid, dep) for sid in order for dep in sorted(deps[sid])),
        _deps={sid: tuple(sorted(d)) for sid, d in deps.items()},
        _dependents={sid: tuple(sorted(children)) for sid, children in outgoing.items()},
    )


def build_dataflow_graph(repository: Any, dataflow_id: int) -> DependencyGraph:
    """Lê Steps e arestas de um dataflow pelo repositório e constrói o grafo."""
    steps = repository.find_steps(dataflow_id)
    edges = [(stepid, ById(dependson)) for stepid, dependson in repository.find_edges(dataflow_id)]
    return build_graph(steps, edges)
