"""
Manifest de run: rastreabilidade de execuções de dataflows.

O Manifest consolida, de forma determinística e auditável:
    - metadados da run (run_id, dataflow, started_at)
    - hashes dos settings efetivos e da definição do dataflow
    - estado incremental de cada Step
    - Event Log ordenado de eventos explícitos

Princípios fundamentais:
    - Nenhum evento é emitido implicitamente
    - Toda mutação ocorre por chamadas explícitas da API
    - A ordem do Event Log reflete a ordem real de execução
    - O Manifest é serializável e reconstruível (round-trip JSON)

Decisões arquiteturais:
    - UTC é o timezone canônico para todos os timestamps
    - O formato de persistência é JSON determinístico
    - O Manifest é independente do Engine: o Engine chama a API, nunca o
      contrário

Limites explícitos:
    - Não executa Steps
    - Não decide políticas de execução (fail-fast, skip)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    """Timestamps sem timezone são assumidos como UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _ensure_tzaware_utc(dt).isoformat()


def _ms_between(start: datetime, end: datetime) -> int:
    s = _ensure_tzaware_utc(start)
    e = _ensure_tzaware_utc(end)
    return max(0, int((e - s).total_seconds() * 1000))


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunManifest:
    """
    Registro de uma run de dataflow.

    Campos:
        - run: metadados da run (run_id, dataflow_id, dataflow_name,
          started_at, finished_at, status)
        - inputs: hashes semânticos (settings_hash, definition_hash)
        - steps: estado incremental por alias de Step
        - events: Event Log ordenado

    Invariantes:
        - `steps` é sempre um dicionário indexado por alias
        - `events` é sempre uma lista ordenada
    """

    run: Dict[str, Any]
    inputs: Dict[str, Any]
    steps: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": dict(self.run),
            "inputs": dict(self.inputs),
            "steps": {k: dict(v) for k, v in self.steps.items()},
            "events": [dict(e) for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunManifest":
        return cls(
            run=dict(data.get("run", {})),
            inputs=dict(data.get("inputs", {})),
            steps={k: dict(v) for k, v in (data.get("steps", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )


def create_manifest(
    *,
    run_id: str,
    dataflow_id: Optional[int],
    dataflow_name: str,
    settings_hash: str,
    definition_hash: str,
    started_at: Optional[datetime] = None,
) -> RunManifest:
    """Cria o Manifest inicial de uma run, com `steps` e `events` vazios."""
    started_at = _ensure_tzaware_utc(started_at or _now())
    return RunManifest(
        run={
            "run_id": run_id,
            "dataflow_id": dataflow_id,
            "dataflow_name": dataflow_name,
            "started_at": _iso(started_at),
        },
        inputs={
            "settings_hash": settings_hash,
            "definition_hash": definition_hash,
        },
    )


def add_event(
    manifest: RunManifest,
    *,
    event_type: str,
    ts: Optional[datetime] = None,
    step_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """Acrescenta um evento ao final do Event Log."""
    event: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts or _now())}
    if step_id is not None:
        event["step_id"] = step_id
    if payload is not None:
        event["payload"] = payload
    manifest.events.append(event)


def step_started(manifest: RunManifest, *, step_id: str, kind: str, ts: Optional[datetime] = None) -> None:
    ts = _ensure_tzaware_utc(ts or _now())
    manifest.steps[step_id] = {
        "step_id": step_id,
        "kind": kind,
        "status": "running",
        "started_at": _iso(ts),
    }
    add_event(manifest, event_type="step_started", ts=ts, step_id=step_id, payload={"kind": kind})


def _close_step(manifest: RunManifest, step_id: str, ts: datetime, status: str) -> Dict[str, Any]:
    state = manifest.steps.setdefault(step_id, {"step_id": step_id})
    started_iso = state.get("started_at")
    started_dt = datetime.fromisoformat(started_iso) if started_iso else ts
    state["status"] = status
    state["finished_at"] = _iso(ts)
    state["duration_ms"] = _ms_between(started_dt, ts)
    return state


def step_finished(
    manifest: RunManifest,
    *,
    step_id: str,
    result: Dict[str, Any],
    ts: Optional[datetime] = None,
) -> None:
    """
    Registra a conclusão de um Step (success, aborted ou skipped).

    `result` é o StepResult serializado; `status`, `summary` e `metrics`
    são copiados para o estado do Step.
    """
    ts = _ensure_tzaware_utc(ts or _now())
    status = str(result.get("status", "success"))
    state = _close_step(manifest, step_id, ts, status)
    state["summary"] = result.get("summary", "")
    state["metrics"] = dict(result.get("metrics", {}) or {})
    add_event(
        manifest,
        event_type="step_finished",
        ts=ts,
        step_id=step_id,
        payload={"status": status, "duration_ms": state["duration_ms"]},
    )


def step_failed(
    manifest: RunManifest,
    *,
    step_id: str,
    error: Dict[str, Any],
    ts: Optional[datetime] = None,
) -> None:
    ts = _ensure_tzaware_utc(ts or _now())
    state = _close_step(manifest, step_id, ts, "failed")
    state["error"] = dict(error)
    add_event(
        manifest,
        event_type="step_failed",
        ts=ts,
        step_id=step_id,
        payload={"error": dict(error)},
    )


def run_finished(
    manifest: RunManifest,
    *,
    status: str,
    error: Optional[Dict[str, Any]] = None,
    ts: Optional[datetime] = None,
) -> None:
    ts = _ensure_tzaware_utc(ts or _now())
    manifest.run["status"] = status
    manifest.run["finished_at"] = _iso(ts)
    payload: Dict[str, Any] = {"status": status}
    if error is not None:
        payload["error"] = dict(error)
    add_event(manifest, event_type="run_finished", ts=ts, payload=payload)


def save_manifest(manifest: RunManifest, path: Union[str, Path]) -> None:
    """Persiste o Manifest em JSON determinístico (chaves ordenadas, UTF-8)."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as f:
        json.dump(manifest.to_dict(), f, ensure_ascii=False, indent=2, sort_keys=True, default=str)


def load_manifest(path: Union[str, Path]) -> RunManifest:
    with Path(path).open("r", encoding="utf-8") as f:
        return RunManifest.from_dict(json.load(f))
