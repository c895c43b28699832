# src/batch/models.py — v1
"""Discovery models: ScanResult."""

from __future__ import annotations

from pydantic import BaseModel, Field

from quillpress.core.models import SourceFile
from quillpress.core.paths import FilePath


class ScanResult(BaseModel):
    """Files found under the content root, split by kind, sorted by FilePath."""

    content_root: str
    documents: list[SourceFile] = Field(default_factory=list)
    assets: list[SourceFile] = Field(default_factory=list)
    ignored: int = 0

    @property
    def total(self) -> int:
        return len(self.documents) + len(self.assets)

    @property
    def document_paths(self) -> list[FilePath]:
        return [d.file_path for d in self.documents]

    @property
    def all_paths(self) -> list[FilePath]:
        return sorted([*self.document_paths, *(a.file_path for a in self.assets)])
