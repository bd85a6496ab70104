"""
File writer tool.

Produces a text file as an in-memory artifact encoded as a data URI. Nothing
is written to disk; the turn result exposes the file as its generated
artifact.
"""

import base64
import mimetypes
from pathlib import PurePosixPath
from typing import Any

from pydantic import BaseModel, Field, field_validator

MAX_CONTENT_CHARS = 1_000_000


class FileWriterInput(BaseModel):
    file_name: str = Field(..., min_length=1, description="Nome do arquivo, ex: relatorio.md")
    content: str = Field(..., max_length=MAX_CONTENT_CHARS, description="Conteúdo textual do arquivo")
    file_type: str | None = Field(None, description="MIME type; inferido pela extensão quando omitido")

    @field_validator("file_name")
    @classmethod
    def _plain_name(cls, value: str) -> str:
        name = PurePosixPath(value.replace("\\", "/")).name
        if not name or name in {".", ".."}:
            raise ValueError("file_name must be a plain file name")
        return name


class FileWriterTool:
    """Creates downloadable text artifacts."""

    @property
    def id(self) -> str:
        return "file_writer"

    @property
    def name(self) -> str:
        return "file_writer"

    @property
    def description(self) -> str:
        return "Cria um arquivo de texto para download a partir do conteúdo fornecido."

    @property
    def input_model(self) -> type[BaseModel]:
        return FileWriterInput

    async def execute(
        self,
        file_name: str,
        content: str,
        file_type: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        mime_type = file_type or mimetypes.guess_type(file_name)[0] or "text/plain"
        encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
        return {
            "fileName": file_name,
            "fileType": mime_type,
            "fileDataUri": f"data:{mime_type};base64,{encoded}",
            "size": len(content),
        }
