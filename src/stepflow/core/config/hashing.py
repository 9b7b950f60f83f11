"""
Hashing canônico de documentos estruturados do stepflow.

Dois hashes são registrados no Manifest da run:
    - `settings_hash`: settings efetivos do Engine
    - `definition_hash`: definição exportada do dataflow

Política de hashing (v1):
    - Serialização JSON canônica (chaves ordenadas, separadores compactos)
    - Codificação UTF-8
    - SHA-256

Normalização da definição:
    - `depends_on` é uma lista ordenada de aliases; a forma curta
      (`depends_on: read`) e a ordem de declaração não mudam o hash
    - Steps sem dependências não carregam `depends_on`
"""


import hashlib
import json
from copy import deepcopy
from typing import Any, Dict, Mapping


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Gera um hash determinístico de um documento estruturado.

    Args:
        config (Dict[str, Any]): Documento a ser identificado.

    Returns:
        str: Hash SHA-256 hexadecimal (64 caracteres).

    Raises:
        TypeError: Se o objeto fornecido não for um dicionário.
    """

    if not isinstance(config, dict):
        raise TypeError(
            f"Config para hashing deve ser dict, recebido: {type(config).__name__}"
        )

    canonical_json = json.dumps(
        config,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )

    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


def _normalize_depends_on(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return sorted(str(alias) for alias in value)


def compute_definition_hash(document: Dict[str, Any]) -> str:
    """
    Hash da definição de um dataflow (formato de `export_dataflow`).

    O documento de entrada não é mutado.

    Raises:
        TypeError: Se o documento não for um dicionário.
    """
    if not isinstance(document, dict):
        raise TypeError(
            f"Definição para hashing deve ser dict, recebido: {type(document).__name__}"
        )

    normalized = deepcopy(document)
    steps = normalized.get("steps")
    if isinstance(steps, Mapping):
        for entry in steps.values():
            if not isinstance(entry, dict) or "depends_on" not in entry:
                continue
            deps = _normalize_depends_on(entry["depends_on"])
            if deps:
                entry["depends_on"] = deps
            else:
                del entry["depends_on"]

    return compute_config_hash(normalized)
