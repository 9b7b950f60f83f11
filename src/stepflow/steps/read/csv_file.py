"""Step canônico: reader.csv.

Responsabilidades:
- ler um arquivo CSV linha a linha (lazy), com cabeçalho
- emitir cada linha como dict (valores sempre strings, sem coerção)

Config esperada:
    path: str
    delimiter: str           # opcional, padrão ","
    encoding: str            # opcional, padrão "utf-8"

Limites explícitos:
- NÃO infere schema
- NÃO normaliza valores
- O arquivo só é aberto no primeiro pull; arquivo ausente é falha do Step
"""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Generator, Iterator, Mapping, Optional

from stepflow.core.pipeline.context import RunContext
from stepflow.core.pipeline.types import StepKind
from stepflow.steps.config import require


def _resolve_path(path_value: str) -> Path:
    p = Path(path_value).expanduser()
    if not p.exists():
        raise FileNotFoundError(f"File not found: {p}")
    if not p.is_file():
        raise ValueError(f"Path is not a file: {p}")
    return p


@dataclass
class CsvReaderStep:
    alias: str
    path: str
    delimiter: str = ","
    encoding: str = "utf-8"
    kind: StepKind = StepKind.READER

    @classmethod
    def create(cls, *, config: Mapping[str, Any], ctx: RunContext, alias: str) -> "CsvReaderStep":
        return cls(
            alias=alias,
            path=str(require(config, "path", alias=alias, expected=(str, Path))),
            delimiter=require(config, "delimiter", alias=alias, expected=str, default=","),
            encoding=require(config, "encoding", alias=alias, expected=str, default="utf-8"),
        )

    _rows: Optional[Generator[Dict[str, Any], None, None]] = field(default=None, init=False, repr=False)

    def _iter_rows(self) -> Generator[Dict[str, Any], None, None]:
        path = _resolve_path(self.path)
        with path.open("r", encoding=self.encoding, newline="") as f:
            yield from csv.DictReader(f, delimiter=self.delimiter)

    def read(self) -> Iterator[Dict[str, Any]]:
        self._rows = self._iter_rows()
        return self._rows

    def execute(self, item: Any) -> Any:
        return item

    def close(self) -> None:
        # run interrompida antes do fim do arquivo
        if self._rows is not None:
            self._rows.close()
            self._rows = None
