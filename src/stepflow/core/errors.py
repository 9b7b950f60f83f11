"""
stepflow: Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros reportados pelo stepflow.
Erros fazem parte do contrato operacional do engine (RunResult, Manifest)
e devem ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

Nenhum erro é convertido silenciosamente em um booleano genérico.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from .exceptions import StepflowException


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro do stepflow.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    """

    type: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

VALIDATION_ERROR = "VALIDATION_ERROR"
UNRESOLVED_DEPENDENCY = "UNRESOLVED_DEPENDENCY"
CYCLIC_DEPENDENCY = "CYCLIC_DEPENDENCY"
TRANSFORMATION_ERROR = "TRANSFORMATION_ERROR"
STORAGE_ERROR = "STORAGE_ERROR"
EXPRESSION_ERROR = "EXPRESSION_ERROR"

# Engine / Execução
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"
ENGINE_CONFIGURATION_ERROR = "ENGINE_CONFIGURATION_ERROR"

_CODES_BY_CLASS = {
    "ValidationError": VALIDATION_ERROR,
    "UnresolvedDependency": UNRESOLVED_DEPENDENCY,
    "CyclicDependency": CYCLIC_DEPENDENCY,
    "TransformationError": TRANSFORMATION_ERROR,
    "StorageError": STORAGE_ERROR,
    "ExpressionError": EXPRESSION_ERROR,
    "EngineConfigurationError": ENGINE_CONFIGURATION_ERROR,
}


def error_from_exception(exc: BaseException) -> ErrorPayload:
    """Converte exceções em ErrorPayload (serializável, acionável).

    Regras:
    - StepflowException: já vem com message/details/hint; o código é
      derivado da classe.
    - Outras exceções: encapsular como ENGINE_EXECUTION_ERROR sem expor
      stack trace.
    """
    if isinstance(exc, StepflowException):
        code = ENGINE_EXECUTION_ERROR
        for klass in type(exc).__mro__:
            if klass.__name__ in _CODES_BY_CLASS:
                code = _CODES_BY_CLASS[klass.__name__]
                break
        return ErrorPayload(
            type=code,
            message=str(exc) or "Erro de execução",
            details=dict(exc.details or {}),
            hint=exc.hint,
        )

    return engine_execution_error(
        exc_type=exc.__class__.__name__,
        exc_message=str(exc),
    )


def engine_execution_error(
    *,
    step: Optional[str] = None,
    exc_type: Optional[str] = None,
    exc_message: Optional[str] = None,
    hint: str = "Verifique os eventos da run para diagnosticar a falha. Nenhum retry é aplicado automaticamente.",
) -> ErrorPayload:
    return ErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message="Falha inesperada durante a execução do dataflow",
        details={
            "step": step,
            "exc_type": exc_type,
            "exc_message": exc_message,
        },
        hint=hint,
    )
