# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Some parsing utilities.

Small text helpers shared by the tool call parser and the agent loop.
"""


def extract_after_first(text: str, pattern: str, keep_pattern: bool = False) -> str:
    first_pos = text.find(pattern)
    offset = 0 if keep_pattern else len(pattern)
    return text[first_pos + offset:] if first_pos != -1 else ""


def truncate(text: str, limit: int) -> str:
    """Cut text to at most `limit` characters."""
    return text[:limit] if len(text) > limit else text
