"""Step canônico: writer.jsonl.

Grava cada item como uma linha JSON (UTF-8, chaves ordenadas).

Config esperada:
    path: str
    append: false            # opcional; true → acrescenta ao arquivo existente

Decisões:
- O arquivo só é aberto no primeiro item; run sem dados não cria arquivo
- `close()` é chamado pelo Engine ao fim da run, com ou sem falha
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Mapping, Optional

from stepflow.core.pipeline.context import RunContext
from stepflow.core.pipeline.types import StepKind
from stepflow.steps.config import require


@dataclass
class JsonlWriterStep:
    alias: str
    path: str
    append: bool = False
    kind: StepKind = StepKind.WRITER
    written: int = 0
    _handle: Optional[IO[str]] = field(default=None, init=False, repr=False)

    @classmethod
    def create(cls, *, config: Mapping[str, Any], ctx: RunContext, alias: str) -> "JsonlWriterStep":
        return cls(
            alias=alias,
            path=str(require(config, "path", alias=alias, expected=(str, Path))),
            append=require(config, "append", alias=alias, expected=bool, default=False),
        )

    def _open(self) -> IO[str]:
        if self._handle is None:
            target = Path(self.path).expanduser()
            target.parent.mkdir(parents=True, exist_ok=True)
            self._handle = target.open("a" if self.append else "w", encoding="utf-8")
        return self._handle

    def execute(self, item: Any) -> Any:
        line = json.dumps(item, ensure_ascii=False, sort_keys=True)
        self._open().write(line + "\n")
        self.written += 1
        return item

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
