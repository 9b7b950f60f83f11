"""Step canônico: reader.parquet.

Lê um arquivo Parquet com pandas e emite cada linha como dict.

Config esperada:
    path: str
    columns: [str]           # opcional, subconjunto de colunas

Limites explícitos:
- O DataFrame é carregado no primeiro pull (Parquet não é lido linha a linha)
- Requer pandas + um engine parquet (pyarrow), instalados pelo extra `parquet`
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional

from stepflow.core.exceptions import EngineConfigurationError
from stepflow.core.pipeline.context import RunContext
from stepflow.core.pipeline.types import StepKind
from stepflow.steps.config import require


def _load_parquet(path: Path, columns: Optional[List[str]]) -> List[Dict[str, Any]]:
    try:
        import pandas as pd  # type: ignore
    except ImportError as e:  # pragma: no cover
        raise EngineConfigurationError(
            message="Parquet support requires pandas + a parquet engine (pyarrow).",
            details={"path": str(path)},
            hint="Instale o extra `stepflow[parquet]`.",
        ) from e

    df = pd.read_parquet(path, columns=columns)
    return df.to_dict(orient="records")


@dataclass
class ParquetReaderStep:
    alias: str
    path: str
    columns: Optional[List[str]] = None
    kind: StepKind = StepKind.READER

    @classmethod
    def create(cls, *, config: Mapping[str, Any], ctx: RunContext, alias: str) -> "ParquetReaderStep":
        columns = require(config, "columns", alias=alias, expected=(list, tuple), default=None)
        return cls(
            alias=alias,
            path=str(require(config, "path", alias=alias, expected=(str, Path))),
            columns=[str(c) for c in columns] if columns is not None else None,
        )

    def read(self) -> Iterator[Dict[str, Any]]:
        path = Path(self.path).expanduser()
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        return iter(_load_parquet(path, self.columns))

    def execute(self, item: Any) -> Any:
        return item
