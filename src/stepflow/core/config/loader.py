"""
Loader canônico de settings do engine stepflow.

Os settings controlam políticas de execução do Engine (fail-fast, nível de
log) e são resolvidos a partir de:
    - DEFAULT_SETTINGS embutidos (sempre presentes)
    - um arquivo de defaults do projeto (opcional)
    - um arquivo local de overrides (opcional)

Responsabilidades do módulo:
    - Carregar arquivos de settings em YAML ou JSON
    - Validar requisitos estruturais mínimos (tipo raiz, tipos de chaves conhecidas)
    - Resolver os settings finais via deep-merge determinístico

Invariantes:
    - O resultado é sempre um dicionário puro (`dict`)
    - Overrides nunca mutam os defaults
    - A mesma entrada sempre produz os mesmos settings

Limites explícitos:
    - Não lê a definição de dataflows (isso é papel do repositório)
    - Não interage com Engine ou Steps
"""

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml  # PyYAML

from .errors import (
    ConfigTypeConflictError,
    InvalidConfigRootTypeError,
    SettingsNotFoundError,
    UnsupportedConfigFormatError,
)
from .merge import deep_merge

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

DEFAULT_SETTINGS: Dict[str, Any] = {
    "engine": {
        "fail_fast": True,
        "log_level": "INFO",
    },
}


def _load_file(path: Path) -> Dict[str, Any]:
    """
    Carrega um arquivo de settings e valida sua estrutura básica.

    Arquivos vazios são interpretados como dicionários vazios.

    Raises:
        SettingsNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo raiz não for um dicionário.
    """
    if not path.exists():
        raise SettingsNotFoundError(f"Arquivo de settings não encontrado: {path}")

    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

    else:
        raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__}"
        )

    return data


def _validate_engine_settings(settings: Dict[str, Any]) -> None:
    engine = settings.get("engine")
    if not isinstance(engine, dict):
        raise InvalidConfigRootTypeError("settings.engine deve ser dict")

    if not isinstance(engine.get("fail_fast"), bool):
        raise ConfigTypeConflictError("settings.engine.fail_fast deve ser bool")

    level = engine.get("log_level")
    if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
        raise ConfigTypeConflictError(
            f"settings.engine.log_level deve ser um de {', '.join(LOG_LEVELS)}"
        )
    engine["log_level"] = level.upper()


def resolve_settings(overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Resolve os settings efetivos do Engine a partir de DEFAULT_SETTINGS.

    Args:
        overrides (Optional[Mapping[str, Any]]): Overrides explícitos.

    Returns:
        Dict[str, Any]: Settings efetivos (novo dicionário).

    Raises:
        ConfigTypeConflictError: Conflito de tipo no merge ou valor inválido.
        InvalidConfigRootTypeError: Se `engine` não for um dicionário.
    """
    effective = deep_merge(DEFAULT_SETTINGS, dict(overrides or {}))
    _validate_engine_settings(effective)
    return effective


def load_settings(
    *,
    defaults_path: str,
    local_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Carrega e resolve os settings do Engine a partir de arquivos.

    Política de resolução:
        - O arquivo de defaults é obrigatório
        - O arquivo local é opcional e só é lido se existir
        - Precedência: local > defaults > DEFAULT_SETTINGS

    Args:
        defaults_path (str): Caminho para o arquivo de settings do projeto.
        local_path (Optional[str]): Caminho opcional para overrides locais.

    Returns:
        Dict[str, Any]: Settings efetivos.
    """

    effective = _load_file(Path(defaults_path))

    if local_path is not None:
        local_file = Path(local_path)
        if local_file.exists():
            effective = deep_merge(effective, _load_file(local_file))

    return resolve_settings(effective)
