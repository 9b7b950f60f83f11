"""
Avaliação de expressões embutidas na configuração de Steps.

O core consome um avaliador através do contrato
`evaluate(raw_value, variables) -> value`, que deve ser puro: nenhum
efeito colateral visível ao engine.

O avaliador padrão (`JinjaExpressionEvaluator`) reconhece expressões no
formato `${{ ... }}` dentro de strings e as resolve com Jinja2:
    - "${{ limit }}" → valor nativo da expressão (int, list, dict...),
      sem re-interpretar strings ("123" continua "123")
    - "prefix-${{ name }}" → string interpolada
    - valores que não são strings, ou strings sem `${{`, são devolvidos
      sem alteração

Qualquer falha de avaliação (variável indefinida, sintaxe, erro em
runtime como `TypeError`) vira `ExpressionError`.

Limite conhecido (preservado de propósito):
    - Apenas um nível de substituição. O resultado de uma expressão não é
      reavaliado, mesmo que contenha `${{ ... }}`.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional, Protocol

from jinja2 import Environment, StrictUndefined, Undefined

from .exceptions import ExpressionError

EXPRESSION_START = "${{"
EXPRESSION_END = "}}"

_WHOLE_EXPRESSION = re.compile(r"^\$\{\{(?P<inner>.*)\}\}$", re.DOTALL)


class ExpressionEvaluator(Protocol):
    """Contrato do serviço de avaliação de expressões."""

    def evaluate(self, raw_value: Any, variables: Mapping[str, Any]) -> Any:
        ...


class JinjaExpressionEvaluator:
    """Avaliador padrão baseado em Jinja2 (tipos nativos, variáveis estritas)."""

    def __init__(self) -> None:
        self._env = Environment(
            variable_start_string=EXPRESSION_START,
            variable_end_string=EXPRESSION_END,
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

    @staticmethod
    def has_expression(raw_value: Any) -> bool:
        return isinstance(raw_value, str) and EXPRESSION_START in raw_value

    @staticmethod
    def _whole_expression(raw_value: str) -> Optional[str]:
        match = _WHOLE_EXPRESSION.match(raw_value)
        if match is None:
            return None
        inner = match.group("inner")
        if EXPRESSION_START in inner or EXPRESSION_END in inner:
            return None
        return inner

    def _evaluate(self, raw_value: str, variables: Mapping[str, Any]) -> Any:
        inner = self._whole_expression(raw_value)
        if inner is None:
            return self._env.from_string(raw_value).render(dict(variables))

        value = self._env.compile_expression(inner.strip(), undefined_to_none=False)(**dict(variables))
        if isinstance(value, Undefined):
            # expressão nua: StrictUndefined só falha quando usado
            value._fail_with_undefined_error()
        return value

    def evaluate(self, raw_value: Any, variables: Mapping[str, Any]) -> Any:
        if not self.has_expression(raw_value):
            return raw_value
        try:
            return self._evaluate(raw_value, variables)
        except Exception as exc:
            raise ExpressionError(
                message=f"Failed to evaluate expression: {raw_value}",
                details={"expression": raw_value, "reason": str(exc), "exc_type": exc.__class__.__name__},
                hint="Verifique se as variáveis referenciadas existem no dataflow e têm o tipo esperado.",
            ) from exc
