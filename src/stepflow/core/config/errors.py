"""
Exceções canônicas da camada de settings do stepflow.

As exceções aqui definidas representam violações estruturais explícitas
ao carregar ou mesclar settings do engine, e não erros de execução de Steps.

Invariantes:
    - Todas as exceções de settings herdam de `ConfigError`
    - Nenhuma exceção representa erro de transformação ou de grafo
"""


class ConfigError(Exception):
    """
    Exceção base para erros relacionados aos settings do engine.

    Permite captura genérica de erros de settings e distinção clara entre
    falhas estruturais de configuração e falhas de execução do dataflow.
    """


class SettingsNotFoundError(ConfigError):
    """
    Exceção levantada quando o arquivo de settings base (defaults) não existe.

    Decisões arquiteturais:
        - O arquivo de defaults, quando informado, é obrigatório
        - Não há criação implícita de defaults a partir de um arquivo ausente
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Exceção levantada quando o formato do arquivo não é suportado.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """
    Exceção levantada quando o conteúdo raiz não é um dicionário (`dict`).

    Listas ou valores escalares no root são inválidos; o loader não tenta
    normalizar ou encapsular estruturas inválidas.
    """


class ConfigTypeConflictError(ConfigError):
    """
    Exceção levantada quando ocorre conflito de tipos durante o deep-merge.

    Exemplo de conflito:
        - base:     {"engine": {"fail_fast": true}}
        - override: {"engine": "DEBUG"}

    Nenhum merge parcial é produzido em caso de conflito.
    """
