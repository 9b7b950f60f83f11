"""
Registro de Step e rascunho de Step (build em duas fases).

Este módulo define:
    - `StepRecord`: identidade, tipo e configuração bruta de um nó do
      dataflow, exatamente como persistidos
    - `StepDraft`: um StepRecord ainda sem arestas, acompanhado das
      referências de dependência declaradas no import

Decisões arquiteturais:
    - Acessores explícitos por campo; nenhum getter/setter mágico por nome
    - Definir `name` sem alias deriva o alias (minúsculas, espaços → "_")
    - `config` é guardado como texto YAML e só é interpretado na execução
    - Dependências nunca ficam penduradas no registro persistido: elas vivem
      no StepDraft até `StepRepository.commit_dependencies`

Invariantes:
    - `validate()` rejeita name, alias ou type vazios (não há default)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from stepflow.core.exceptions import ValidationError

from .references import DependencyRef, normalize_depends_on


def derive_alias(name: str) -> str:
    return name.lower().replace(" ", "_")


class StepRecord:
    """
    Registro persistível de um Step.

    Campos:
        - id: inteiro atribuído pelo store ao salvar (None antes disso)
        - dataflowid: dataflow dono do Step
        - alias: referência humana, única no dataflow
        - name: rótulo de exibição
        - type: identificador do tipo de Step (ex.: "reader.csv")
        - description: texto livre
        - config: documento YAML bruto
        - timecreated, timemodified, userid, usermodified: auditoria
    """

    def __init__(
        self,
        *,
        dataflowid: int,
        type: str = "",
        name: str = "",
        alias: str = "",
        description: str = "",
        config: Any = "",
        id: Optional[int] = None,
        timecreated: int = 0,
        timemodified: int = 0,
        userid: int = 0,
        usermodified: int = 0,
    ) -> None:
        self.id = id
        self.dataflowid = dataflowid
        self.alias = alias
        self._name = ""
        self.type = type
        self.description = description
        self._config = ""
        self.timecreated = timecreated
        self.timemodified = timemodified
        self.userid = userid
        self.usermodified = usermodified
        if name:
            self.name = name
        self.config = config

    def __repr__(self) -> str:
        return f"StepRecord(id={self.id!r}, alias={self.alias!r}, type={self.type!r})"

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        if not self.alias and value:
            self.alias = derive_alias(value)
        self._name = value

    @property
    def config(self) -> str:
        """Documento YAML bruto, como persistido."""
        return self._config

    @config.setter
    def config(self, value: Any) -> None:
        if value is None:
            value = ""
        if isinstance(value, Mapping):
            value = yaml.safe_dump(dict(value), sort_keys=False)
        if not isinstance(value, str):
            raise ValidationError(
                message="Step config must be a mapping or YAML text",
                details={"alias": self.alias, "received": type(value).__name__},
            )
        self._config = value

    def parsed_config(self) -> Any:
        """Config interpretada como YAML, sem avaliação de expressões."""
        if not self._config.strip():
            return {}
        data = yaml.safe_load(self._config)
        return {} if data is None else data

    def validate(self) -> None:
        for field_name, value in (("name", self._name), ("alias", self.alias), ("type", self.type)):
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(
                    message=f"Step {field_name} must not be empty",
                    details={"field": field_name, "alias": self.alias or None},
                    hint=f"Informe `{field_name}` na definição do Step.",
                )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "dataflowid": self.dataflowid,
            "alias": self.alias,
            "name": self._name,
            "type": self.type,
            "description": self.description,
            "config": self._config,
            "timecreated": self.timecreated,
            "timemodified": self.timemodified,
            "userid": self.userid,
            "usermodified": self.usermodified,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StepRecord":
        record = cls(
            id=row.get("id"),
            dataflowid=row["dataflowid"],
            alias=row.get("alias", ""),
            type=row.get("type", ""),
            description=row.get("description", ""),
            config=row.get("config", ""),
            timecreated=row.get("timecreated", 0),
            timemodified=row.get("timemodified", 0),
            userid=row.get("userid", 0),
            usermodified=row.get("usermodified", 0),
        )
        record.name = row.get("name", "")
        return record


@dataclass
class StepDraft:
    """Step em memória ainda sem arestas persistidas."""

    record: StepRecord
    depends_on: Tuple[DependencyRef, ...] = ()

    @classmethod
    def from_definition(cls, dataflowid: int, definition: Mapping[str, Any]) -> "StepDraft":
        """Constrói um rascunho a partir do documento de import de um Step.

        Formato: `{name?, id, type, description?, config?, depends_on?}`.
        `id` é o alias; `name` assume `id` quando ausente.
        """
        alias = definition.get("id")
        if alias is None or not str(alias).strip():
            raise ValidationError(
                message="Step definition requires an id",
                details={"definition_keys": sorted(definition)},
            )
        alias = str(alias)

        record = StepRecord(dataflowid=dataflowid, alias=alias)
        record.name = definition.get("name") or alias
        record.type = definition.get("type") or ""
        record.description = definition.get("description") or ""
        record.config = definition.get("config") or ""

        return cls(record=record, depends_on=normalize_depends_on(definition.get("depends_on")))
