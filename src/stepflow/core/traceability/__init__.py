"""
Pacote de rastreabilidade do stepflow: Manifest de run.

API pública exposta:
    - RunManifest     → estrutura canônica do Manifest
    - create_manifest → criação explícita do Manifest
    - add_event       → registro explícito de eventos no Event Log
    - step_started    → marca início de um Step
    - step_finished   → registra conclusão (success / aborted / skipped)
    - step_failed     → registra falha de um Step
    - run_finished    → registra o estado final da run
    - save_manifest   → persistência em JSON
    - load_manifest   → restauração do JSON

Invariantes:
    - O Manifest inicia com `steps` e `events` vazios
    - Eventos nunca são reordenados automaticamente
"""

from .manifest import (
    RunManifest,
    add_event,
    create_manifest,
    load_manifest,
    run_finished,
    save_manifest,
    step_failed,
    step_finished,
    step_started,
)

__all__ = [
    "RunManifest",
    "create_manifest",
    "add_event",
    "step_started",
    "step_finished",
    "step_failed",
    "run_finished",
    "save_manifest",
    "load_manifest",
]
