from __future__ import annotations

from pathlib import Path


SQL_DIR = Path(__file__).with_name("sql")


def load_sql(name: str) -> str:
    path = SQL_DIR / name
    if path.suffix != ".sql":
        raise ValueError(f"not a sql statement file: {name}")
    return path.read_text(encoding="utf-8").strip().rstrip(";")
