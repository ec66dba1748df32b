"""Medal catalog entries as embedded in the osu! website."""

from __future__ import annotations

from pydantic import BaseModel


class MedalCatalogEntry(BaseModel):
    """One entry of the ``achievements`` list in a profile page's initial data."""

    id: int
    name: str
    icon_url: str
    grouping: str
    ordering: int
    description: str
    mode: str | None = None
    instructions: str | None = None
