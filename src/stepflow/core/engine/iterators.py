"""
Protocolo de iteradores pull-based do stepflow.

Cada Step em execução expõe aos seus consumidores exatamente um
`Iterator`. O consumidor pede um item por vez com `next()`; o iterador,
por sua vez, puxa um item do seu upstream (`Source`), aplica a
transformação do tipo de Step e devolve o resultado.

Máquina de estados (por instância):
    READY → READY | EXHAUSTED; EXHAUSTED é absorvente.

Componentes:
    - NO_VALUE       → sentinela "nenhum valor" (nunca um item válido)
    - Iterator       → contrato: is_finished, is_ready, abort, next
    - Source         → cursor sobre o upstream: valid, current, advance
    - IterableSource → origem a partir de um iterável Python (lazy)
    - IteratorSource → origem a partir do Iterator de outro Step
    - MergeSource    → fan-in round-robin de várias origens
    - StepIterator   → implementação canônica do protocolo para um Step

Decisões arquiteturais:
    - Composição, não herança: a lógica do tipo de Step fica no FlowStep;
      exaustão e prontidão ficam no StepIterator
    - No máximo um item em trânsito por origem (look-ahead de um item)
    - A exaustão é detectada um passo à frente, sem descartar o último item
    - `abort()` não se propaga para o upstream
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional, Protocol, Sequence, runtime_checkable

from stepflow.core.exceptions import TransformationError


class _NoValue:
    _instance: Optional["_NoValue"] = None

    def __new__(cls) -> "_NoValue":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_VALUE"


NO_VALUE = _NoValue()


@runtime_checkable
class Iterator(Protocol):
    def is_finished(self) -> bool:
        ...

    def is_ready(self) -> bool:
        ...

    def abort(self, reason: str = "aborted") -> None:
        ...

    def next(self) -> Any:
        ...


@runtime_checkable
class Source(Protocol):
    def valid(self) -> bool:
        ...

    def current(self) -> Any:
        ...

    def advance(self) -> None:
        ...


class IterableSource:
    """Adapta um iterável Python ao contrato `Source`.

    O iterável só é criado (via `factory`) na primeira consulta, e é lido
    com look-ahead de um item.
    """

    def __init__(self, factory: Callable[[], Iterable[Any]]):
        self._factory = factory
        self._iterator: Optional[Any] = None
        self._buffer: Any = NO_VALUE
        self._exhausted = False

    def _fill(self) -> None:
        if self._buffer is not NO_VALUE or self._exhausted:
            return
        if self._iterator is None:
            self._iterator = iter(self._factory())
        try:
            self._buffer = next(self._iterator)
        except StopIteration:
            self._exhausted = True

    def valid(self) -> bool:
        self._fill()
        return self._buffer is not NO_VALUE

    def current(self) -> Any:
        self._fill()
        return self._buffer

    def advance(self) -> None:
        self._fill()
        self._buffer = NO_VALUE


class IteratorSource:
    """Adapta o `Iterator` de um Step upstream ao contrato `Source`.

    Vários consumidores podem envolver o mesmo Iterator (fan-out): cada
    um mantém no máximo um item em trânsito, e o upstream é puxado uma
    única vez por item.
    """

    def __init__(self, upstream: Iterator):
        self.upstream = upstream
        self._buffer: Any = NO_VALUE

    def valid(self) -> bool:
        if self._buffer is NO_VALUE and not self.upstream.is_finished():
            self._buffer = self.upstream.next()
        return self._buffer is not NO_VALUE

    def current(self) -> Any:
        self.valid()
        return self._buffer

    def advance(self) -> None:
        self.valid()
        self._buffer = NO_VALUE


class MergeSource:
    """Fan-in: intercala várias origens em round-robin, na ordem dada."""

    def __init__(self, sources: Sequence[Source]):
        self.sources: List[Source] = list(sources)
        self._cursor = 0
        self._selected: Optional[int] = None

    def valid(self) -> bool:
        if self._selected is not None:
            return True
        count = len(self.sources)
        for offset in range(count):
            index = (self._cursor + offset) % count
            if self.sources[index].valid():
                self._selected = index
                return True
        return False

    def current(self) -> Any:
        if not self.valid():
            return NO_VALUE
        return self.sources[self._selected].current()

    def advance(self) -> None:
        if not self.valid():
            return
        self.sources[self._selected].advance()
        self._cursor = (self._selected + 1) % len(self.sources)
        self._selected = None


class StepIterator:
    """
    Iterador canônico de um Step em execução.

    Estado:
        - finished: monotônico (False → True)
        - iteration_count: itens entregues ao consumidor
        - pulled_count: itens lidos do upstream (inclui itens descartados
          por filtros)

    Regras de `next()`:
        - finalizado → NO_VALUE, sem efeitos colaterais
        - primeiro pull com upstream vazio → abort("no data") e NO_VALUE
        - lê o item corrente, avança o upstream e, se o upstream não tem
          mais itens, marca-se finalizado (o item corrente ainda é entregue)
        - aplica a transformação; filtros devolvem NO_VALUE para descartar
        - incrementa `iteration_count`, registra o log e devolve o valor
    """

    def __init__(self, step: Any, source: Source):
        self.step = step
        self.source = source
        self.iteration_count = 0
        self.pulled_count = 0
        self._finished = False
        self.abort_reason: Optional[str] = None

    def is_finished(self) -> bool:
        return self._finished

    def is_ready(self) -> bool:
        return not self._finished and self._source_valid()

    def abort(self, reason: str = "aborted") -> None:
        if self._finished:
            return
        self._finished = True
        self.abort_reason = reason
        self.step.log(
            f"Aborting at iteration {self.iteration_count}: {reason}",
            iteration=self.iteration_count,
            reason=reason,
        )

    def _failure(self, exc: Exception) -> TransformationError:
        return TransformationError(
            message=f"Step '{self.step.alias}' failed at iteration {self.pulled_count}: {exc}",
            details={
                "step": self.step.alias,
                "iteration": self.pulled_count,
                "exc_type": exc.__class__.__name__,
                "exc_message": str(exc),
            },
        )

    def _source_valid(self) -> bool:
        try:
            return self.source.valid()
        except TransformationError as exc:
            self.abort(f"upstream failure in '{exc.step}'")
            raise
        except Exception as exc:
            # readers: falha ao produzir o iterável de origem
            self.abort(f"source failed: {exc}")
            raise self._failure(exc) from exc

    def _transform(self, value: Any) -> Any:
        try:
            return self.step.execute(value)
        except Exception as exc:
            self.abort(f"transformation failed: {exc}")
            raise self._failure(exc) from exc

    def next(self) -> Any:
        if self._finished:
            return NO_VALUE

        if self.pulled_count == 0 and not self._source_valid():
            self.abort("no data")
            return NO_VALUE

        while True:
            value = self.source.current()
            self.source.advance()
            self.pulled_count += 1
            if not self._source_valid():
                self.abort("exhausted")

            result = self._transform(value)
            if result is not NO_VALUE:
                self.iteration_count += 1
                self.step.log_iteration(self.iteration_count, result)
                return result

            self.step.log(f"Filtered item {self.pulled_count}", level="DEBUG", pulled=self.pulled_count)
            if self._finished:
                return NO_VALUE
