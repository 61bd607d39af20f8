# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .registry import ToolRegistry
from .base_tool import BaseTool, FunctionTool, ToolArgumentError
from .tool_call_parser import parse_tool_call
from .artifact_extraction import FileDescriptor, extract_file_descriptors, infer_mime_type

__all__ = [
    "ToolRegistry",
    "BaseTool",
    "FunctionTool",
    "ToolArgumentError",
    "parse_tool_call",
    "FileDescriptor",
    "extract_file_descriptors",
    "infer_mime_type",
]
