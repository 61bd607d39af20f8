# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import asyncio
import logging

from pathlib import Path
from pydantic import BaseModel, Field

from .base_tool import BaseTool, ToolArgumentError
from ..config import settings

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

ALLOWED_SUFFIXES = (".txt", ".md")


class FileWriter(BaseTool):
    TOOL_NAME = "FileWriter"
    TOOL_DESCRIPTION = """Writes a plain text or markdown file into the agent workspace.

Only .txt and .md files are supported; the file name must not contain directories.
Returns a descriptor with fileName, filePath, downloadUrl and sizeBytes. Once the
file has been written, do not call this tool again for the same content.
"""

    class Arguments(BaseModel):
        file_name: str = Field(
            ..., alias="fileName", description="Name of the file, ending in .txt or .md"
        )
        content: str = Field(..., description="Full text content of the file")

        model_config = {"populate_by_name": True}

    def __init__(self, workspace_dir: Path | None = None):
        self.workspace_dir = Path(workspace_dir or settings.workspace_dir)

    async def run(self, args: Arguments, cancellation: asyncio.Event | None = None) -> dict:
        name = Path(args.file_name).name
        if name != args.file_name or not name.lower().endswith(ALLOWED_SUFFIXES):
            raise ToolArgumentError(
                f"Invalid file name {args.file_name!r}: expected a bare .txt or .md name"
            )

        self.workspace_dir.mkdir(parents=True, exist_ok=True)
        path = self.workspace_dir / name
        path.write_text(args.content, encoding="utf-8")
        size = path.stat().st_size
        logger.info(f"Wrote {size} bytes to {path}")

        return {
            "success": True,
            "fileName": name,
            "filePath": str(path),
            "downloadUrl": f"/api/files/{name}",
            "sizeBytes": size,
            "message": f"File {name} created successfully",
        }
