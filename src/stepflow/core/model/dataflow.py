"""
Registro de Dataflow.

Um Dataflow é uma coleção nomeada de Steps mais um mapeamento de
variáveis (o contexto de execução de seus Steps). Os Steps pertencem ao
Dataflow pelo campo `dataflowid`; remoção em cascata é responsabilidade
do repositório.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from stepflow.core.exceptions import ValidationError

RESERVED_VARIABLES = ("dataflow",)


@dataclass
class Dataflow:
    name: str
    variables: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None
    timecreated: int = 0
    timemodified: int = 0

    def validate(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError(
                message="Dataflow name must not be empty",
                details={"field": "name"},
            )
        if not isinstance(self.variables, Mapping):
            raise ValidationError(
                message="Dataflow variables must be a mapping",
                details={"field": "variables", "received": type(self.variables).__name__},
            )
        for reserved in RESERVED_VARIABLES:
            if reserved in self.variables:
                raise ValidationError(
                    message=f"Variable name '{reserved}' is reserved",
                    details={"field": "variables", "variable": reserved},
                    hint="Renomeie a variável; `dataflow` é preenchido pelo Engine.",
                )

    def expression_context(self) -> Dict[str, Any]:
        """Variáveis expostas às expressões de config dos Steps.

        As variáveis do dataflow ficam no nível raiz e também sob
        `dataflow.vars`, junto de `dataflow.id` e `dataflow.name`.
        O nome `dataflow` é reservado e rejeitado em `validate()`.
        """
        context = dict(self.variables)
        context["dataflow"] = {
            "id": self.id,
            "name": self.name,
            "vars": dict(self.variables),
        }
        return context

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "variables": dict(self.variables),
            "timecreated": self.timecreated,
            "timemodified": self.timemodified,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Dataflow":
        return cls(
            id=row.get("id"),
            name=row.get("name", ""),
            variables=dict(row.get("variables") or {}),
            timecreated=row.get("timecreated", 0),
            timemodified=row.get("timemodified", 0),
        )
