# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Main entrypoint when running the runtime with `python -m agent_runtime`.
"""

import sys
import json
import logging
import asyncio
import argparse

from pathlib import Path

from .config import settings
from .events import EventBus
from .events.event_bus_utils import log_to_stdout
from .types.event_types import EventType
from .types.chain_types import ToolChainStatus
from .tools.registry import ToolRegistry
from .tools.calculator import Calculator
from .tools.file_tools import FileWriter
from .chains.plan import build_chain, load_plan
from .chains.scheduler import ToolChainScheduler
from .agents.agent_loop import AgentLoop
from .llm.providers.openai_backend import OpenAIChatBackend
from .storage.chat_store import InMemoryChatStore
from .storage.models import RunStatus
from .storage.run_repository import RunRepository

logging.captureWarnings(True)
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(levelname)s - %(filename)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def default_registry(workspace_dir: Path | None = None) -> ToolRegistry:
    return ToolRegistry([Calculator(), FileWriter(workspace_dir)])


def setup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="agent_runtime")
    subparsers = parser.add_subparsers(dest="command", required=True)

    chain_parser = subparsers.add_parser("chain", help="Execute a declarative tool chain")
    chain_parser.add_argument(
        "--plan", type=Path, required=True, help="Path to a JSON chain plan"
    )
    chain_parser.add_argument(
        "--workdir",
        type=Path,
        default=None,
        help="Directory where file-writing tools put their output",
    )

    run_parser = subparsers.add_parser("run", help="Run the agent loop on a prompt")
    run_parser.add_argument("--session", "-s", type=str, default="cli", help="Session id")
    run_parser.add_argument(
        "--prompt", "-p", type=str, required=True, help="The task for the agent"
    )
    run_parser.add_argument(
        "--workdir",
        type=Path,
        default=None,
        help="Directory where file-writing tools put their output",
    )
    run_parser.add_argument(
        "--max-steps", type=int, default=None, help="Override the step limit"
    )
    run_parser.add_argument(
        "--events-dir",
        type=Path,
        default=None,
        help="If set, the session's events are saved here when the run ends",
    )
    return parser


async def run_chain(plan_path: Path, workdir: Path | None) -> int:
    scheduler = ToolChainScheduler(default_registry(workdir))
    chain = build_chain(scheduler, load_plan(plan_path))
    await scheduler.execute_chain(chain)

    print(scheduler.export_chain_log(chain.id))
    print(json.dumps(scheduler.get_chain_statistics(chain.id), indent=2))
    return 0 if chain.status == ToolChainStatus.COMPLETED else 1


async def run_agent(
    session_id: str,
    prompt: str,
    workdir: Path | None,
    max_steps: int | None,
    events_dir: Path | None,
) -> int:
    registry = default_registry(workdir)
    bus = await EventBus.get_instance()
    bus.subscribe(set(EventType), log_to_stdout)

    repository = RunRepository(settings.db_path)
    loop = AgentLoop(
        registry=registry,
        backend=OpenAIChatBackend(registry=registry),
        chat_store=InMemoryChatStore(),
        repository=repository,
        event_bus=bus,
        max_steps=max_steps,
    )

    run = await loop.run(session_id, prompt)
    if events_dir is not None:
        await bus.save_state(events_dir)

    for artifact in repository.list_artifacts(run.id):
        print(f"Created {artifact.file_name} ({artifact.size_bytes} bytes) -> {artifact.file_path}")
    print(f"Run {run.id} ended: {run.status.value}")
    return 0 if run.status == RunStatus.COMPLETED else 1


def main() -> int:
    args = setup_parser().parse_args()

    try:
        if args.command == "chain":
            return asyncio.run(run_chain(args.plan, args.workdir))
        elif args.command == "run":
            return asyncio.run(
                run_agent(args.session, args.prompt, args.workdir, args.max_steps, args.events_dir)
            )
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    return 2


if __name__ == "__main__":
    sys.exit(main())
