"""Entity types stored by the test tables."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel


class User(BaseModel):
    """Row of the ``users`` table; ``id`` is database-generated."""

    id: int = 0
    name: str = ""
    email: str = ""


@dataclass
class Log:
    """Row of the ``logs`` table, keyed by ``(code, source)``."""

    code: str = ""
    source: str = ""
    message: str | None = None
