"""Leitura validada da config resolvida de tipos de Step embutidos."""

from __future__ import annotations

from typing import Any, Mapping, Tuple, Type, Union

from stepflow.core.exceptions import EngineConfigurationError

_MISSING = object()


def require(
    config: Mapping[str, Any],
    key: str,
    *,
    alias: str,
    expected: Union[Type[Any], Tuple[Type[Any], ...]],
    default: Any = _MISSING,
) -> Any:
    value = config.get(key, _MISSING)
    if value is _MISSING or value is None:
        if default is not _MISSING:
            return default
        raise EngineConfigurationError(
            message=f"Missing required config: {alias}.{key}",
            details={"step": alias, "key": key},
        )
    if not isinstance(value, expected) or (isinstance(value, bool) and expected is not bool):
        names = expected.__name__ if isinstance(expected, type) else " | ".join(t.__name__ for t in expected)
        raise EngineConfigurationError(
            message=f"Config {alias}.{key} must be {names}",
            details={"step": alias, "key": key, "received": type(value).__name__},
        )
    return value
