
"""
Camada de settings do stepflow.

Este pacote contém os utilitários responsáveis por carregar, mesclar,
validar estruturalmente e identificar os settings de execução do Engine.

Settings são:
    - declarativos
    - determinísticos
    - separados da definição do dataflow (Steps e variáveis)

Responsabilidades do pacote:
    - Defaults embutidos do Engine (`DEFAULT_SETTINGS`)
    - Carregamento de arquivos (defaults do projeto + overrides locais)
    - Resolução via deep-merge determinístico
    - Hashes canônicos (settings e definição) para rastreabilidade no Manifest
"""

from .errors import (
    ConfigError,
    ConfigTypeConflictError,
    InvalidConfigRootTypeError,
    SettingsNotFoundError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_config_hash, compute_definition_hash
from .loader import DEFAULT_SETTINGS, LOG_LEVELS, load_settings, resolve_settings
from .merge import deep_merge

__all__ = [
    "ConfigError",
    "ConfigTypeConflictError",
    "InvalidConfigRootTypeError",
    "SettingsNotFoundError",
    "UnsupportedConfigFormatError",
    "compute_config_hash",
    "compute_definition_hash",
    "DEFAULT_SETTINGS",
    "LOG_LEVELS",
    "load_settings",
    "resolve_settings",
    "deep_merge",
]
