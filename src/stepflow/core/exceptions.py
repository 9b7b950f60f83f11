"""
stepflow: Canonical Exceptions (v1)

Este módulo define as exceções tipadas do stepflow.

Objetivo:
- Permitir que o modelo, o planner, os iteradores e o Engine levantem
  exceções semânticas tipadas
- Facilitar o mapeamento determinístico para ErrorPayload
- Evitar ValueError/RuntimeError genéricos nos pontos de falha do engine

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- A mensagem é curta e humana; o diagnóstico vai em `details`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True, eq=False)
class StepflowException(Exception):
    """Base class para exceções internas do stepflow.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover
        return self.message


# ---------------------------------------------------------------------------
# Modelo / Persistência
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ValidationError(StepflowException):
    """Campo obrigatório de Step ausente ou inválido (ex.: name vazio)."""


@dataclass(frozen=True, eq=False)
class StorageError(StepflowException):
    """Falha do store de registros. Nunca é re-tentada pelo core."""


# ---------------------------------------------------------------------------
# Grafo de dependências
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class GraphError(StepflowException):
    """Base para erros estruturais do grafo. Sempre fatal antes da execução."""


@dataclass(frozen=True, eq=False)
class UnresolvedDependency(GraphError):
    """Referência de dependência (id ou alias) sem Step correspondente no dataflow."""


@dataclass(frozen=True, eq=False)
class CyclicDependency(GraphError):
    """As arestas de dependência formam um ciclo; `details["cycle"]` lista os ids."""


# ---------------------------------------------------------------------------
# Execução
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ExpressionError(StepflowException):
    """Falha ao avaliar uma expressão da config de um Step."""


@dataclass(frozen=True, eq=False)
class EngineConfigurationError(StepflowException):
    """Configuração inválida ou inconsistente para execução (tipo desconhecido, wiring)."""


@dataclass(frozen=True, eq=False)
class TransformationError(StepflowException):
    """A transformação de um tipo de Step falhou durante `next()`."""

    @property
    def step(self) -> Optional[str]:
        return self.details.get("step")
