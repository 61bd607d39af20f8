# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Agent Runtime Configuration

Centralized configuration for the agent loop, the chain scheduler and the CLI.
Values come from the environment (a `.env` file is honoured).
"""

import os

from pathlib import Path
from dataclasses import dataclass, field
from dotenv import load_dotenv

DEFAULT_CREATION_TOOLS = (
    "PdfCreate",
    "DocxCreate",
    "ExcelCreate",
    "PptxCreate",
    "ChartCreate",
    "FileWriter",
)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass
class RuntimeConfig:
    """Configuration for agent runs"""

    # Loop limits
    max_steps: int = 20
    signature_window: int = 15
    raw_output_limit: int = 4000  # characters of model text kept per event

    # Tools whose successful result ends the task
    creation_tools: frozenset[str] = field(
        default_factory=lambda: frozenset(DEFAULT_CREATION_TOOLS)
    )

    # Storage
    workspace_dir: Path = field(default_factory=lambda: Path.home() / "agent_workspace")
    db_path: Path | None = None

    # Misc
    log_level: str = "INFO"
    openai_model: str = "gpt-4o-mini"

    def __post_init__(self):
        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        if self.signature_window < 6:
            # The alternation check looks at the last six signatures
            raise ValueError("signature_window must be at least 6")
        self.workspace_dir = Path(self.workspace_dir).expanduser()
        if self.db_path is None:
            self.db_path = self.workspace_dir / "runs.db"
        self.db_path = Path(self.db_path).expanduser()

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        load_dotenv()

        creation_tools = os.getenv("AGENT_CREATION_TOOLS")
        workspace_dir = os.getenv("AGENT_WORKSPACE_DIR")
        db_path = os.getenv("AGENT_DB_PATH")

        kwargs = dict(
            max_steps=_env_int("AGENT_MAX_STEPS", cls.max_steps),
            signature_window=_env_int("AGENT_SIGNATURE_WINDOW", cls.signature_window),
            raw_output_limit=_env_int("AGENT_RAW_OUTPUT_LIMIT", cls.raw_output_limit),
            log_level=os.getenv("AGENT_LOG_LEVEL", cls.log_level).upper(),
            openai_model=os.getenv("OPENAI_MODEL", cls.openai_model),
            db_path=Path(db_path) if db_path else None,
        )
        if creation_tools:
            kwargs["creation_tools"] = frozenset(
                t.strip() for t in creation_tools.split(",") if t.strip()
            )
        if workspace_dir:
            kwargs["workspace_dir"] = Path(workspace_dir)
        return cls(**kwargs)


# Global config instance
settings = RuntimeConfig.from_env()
