# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Finds file descriptors inside arbitrary tool results.

A file descriptor is any JSON object carrying both a non-blank string
`fileName` and a non-blank string `filePath`. Tools describe the files they
wrote this way; the agent loop turns every descriptor into an Artifact.
"""

import json
import logging

from pathlib import PurePath
from typing import Any, Iterator, Optional
from dataclasses import dataclass
from pydantic_core import to_jsonable_python

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"

MIME_TYPES: dict[str, str] = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".csv": "text/csv",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ics": "text/calendar",
}


@dataclass(frozen=True)
class FileDescriptor:
    file_name: str
    file_path: str
    download_url: Optional[str] = None
    size_bytes: int = 0
    mime_type: str = DEFAULT_MIME_TYPE


def infer_mime_type(path: str) -> str:
    return MIME_TYPES.get(PurePath(path).suffix.lower(), DEFAULT_MIME_TYPE)


def _normalise(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return None
    return to_jsonable_python(value, fallback=str)


def _non_blank_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _as_size(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return 0


def _descriptor_from(node: dict) -> Optional[FileDescriptor]:
    name, path = node.get("fileName"), node.get("filePath")
    if not (_non_blank_str(name) and _non_blank_str(path)):
        return None

    url = node.get("downloadUrl")
    mime = node.get("mimeType")
    return FileDescriptor(
        file_name=name,
        file_path=path,
        download_url=url if _non_blank_str(url) else None,
        size_bytes=_as_size(node.get("sizeBytes", 0)),
        mime_type=mime if _non_blank_str(mime) else infer_mime_type(path),
    )


def _walk(node: Any) -> Iterator[FileDescriptor]:
    if isinstance(node, dict):
        descriptor = _descriptor_from(node)
        if descriptor is not None:
            yield descriptor
        for child in node.values():
            yield from _walk(child)
    elif isinstance(node, list):
        for child in node:
            yield from _walk(child)


def extract_file_descriptors(value: Any) -> Iterator[FileDescriptor]:
    """Lazily yield every file descriptor found anywhere in `value`.

    Extraction is pure: the same input always yields the same descriptors in
    the same (depth-first) order. Unparsable input yields nothing.
    """
    try:
        root = _normalise(value)
    except Exception as e:
        logger.debug(f"Cannot normalise tool result for artifact extraction: {e}")
        return
    yield from _walk(root)
