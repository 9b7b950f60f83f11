"""
Referências de dependência entre Steps.

Uma dependência pode ser declarada por id numérico ou por alias. Este
módulo normaliza qualquer forma aceita em uma referência tipada, uma única
vez, na fronteira de entrada (import ou API):

    - ById(int)      → id persistido de um Step
    - ByAlias(str)   → alias de um Step no mesmo dataflow

Regras de normalização:
    - int → ById
    - string numérica ("12") → ById
    - outra string não vazia → ByAlias
    - objeto com `id` inteiro (ex.: StepRecord persistido) → ById
    - bool, None, string vazia ou qualquer outro tipo → ValidationError
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Tuple, Union

from stepflow.core.exceptions import ValidationError


@dataclass(frozen=True)
class ById:
    id: int

    def __str__(self) -> str:
        return str(self.id)


@dataclass(frozen=True)
class ByAlias:
    alias: str

    def __str__(self) -> str:
        return self.alias


DependencyRef = Union[ById, ByAlias]


def normalize_reference(value: Any) -> DependencyRef:
    if isinstance(value, (ById, ByAlias)):
        return value

    if isinstance(value, bool):
        raise ValidationError(
            message=f"Invalid dependency reference: {value!r}",
            details={"reference": repr(value)},
        )

    if isinstance(value, int):
        return ById(value)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValidationError(
                message="Dependency reference must not be empty",
                details={"reference": value},
            )
        if text.isdigit():
            return ById(int(text))
        return ByAlias(text)

    step_id = getattr(value, "id", None)
    if isinstance(step_id, int) and not isinstance(step_id, bool):
        return ById(step_id)

    raise ValidationError(
        message=f"Invalid dependency reference: {value!r}",
        details={"reference": repr(value)},
        hint="Use o alias do Step, seu id numérico ou um Step já persistido.",
    )


def normalize_depends_on(value: Any) -> Tuple[DependencyRef, ...]:
    """Normaliza `depends_on` (escalar ou sequência) em uma tupla de referências.

    A ordem declarada é preservada; duplicatas são removidas.
    """
    if value is None or value == "" or value == []:
        return ()

    items: Iterable[Any]
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]

    refs = []
    for item in items:
        ref = normalize_reference(item)
        if ref not in refs:
            refs.append(ref)
    return tuple(refs)
