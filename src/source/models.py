# src/source/models.py — v1
"""Raw primitives exchanged with the source collaborator."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RawAnchor(BaseModel):
    """One anchor (or embedded document frame) scraped from a page.

    ``row_cells`` holds the stripped text of the table row the anchor sits in,
    when it sits in one.
    """

    href: str
    identity_param: str | None = None
    filename_param: str | None = None
    link_text: str = ""
    title: str | None = None
    row_cells: list[str] = Field(default_factory=list)
    params: dict[str, str] = Field(default_factory=dict)


class DownloadedPayload(BaseModel):
    """Binary payload and declared content type returned by a download."""

    content: bytes
    content_type: str = ""

    @property
    def size(self) -> int:
        return len(self.content)
