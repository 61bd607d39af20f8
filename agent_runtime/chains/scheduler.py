# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Dependency-graph tool chain execution.

A chain runs in waves: every pending step whose dependencies have all
completed becomes ready, the ready steps run concurrently, and the scheduler
waits for the whole wave before computing the next one. When pending steps
remain but none can become ready (a cycle, a missing dependency or a failed
dependency), they are skipped and the chain ends.

Step arguments may reference outputs of earlier steps: any string of the form
"$name" is replaced by `chain.variables["name"]` at the time the step runs.
"""

import asyncio
import logging

from typing import Any, Iterable, Optional
from datetime import datetime

from ..tools.registry import ToolRegistry
from ..types.chain_types import (
    ToolChain,
    ToolChainStatus,
    ToolChainStep,
    ToolChainStepStatus,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class ToolNotFoundError(LookupError):
    pass


class ToolChainScheduler:
    """Executes tool chains and keeps the chains it has seen for inspection."""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry
        self._chains: dict[str, ToolChain] = {}
        self._cancel_signals: dict[str, asyncio.Event] = {}

    # Chain management ========================================================

    def create_chain(self, name: str) -> ToolChain:
        chain = ToolChain(name=name)
        chain.log(f"Chain created: {name}")
        self._chains[chain.id] = chain
        logger.info(f"Created tool chain {chain.id}: {name}")
        return chain

    def add_step(
        self,
        chain: ToolChain | str,
        tool_name: str,
        arguments: Optional[dict[str, Any]] = None,
        output_variable: Optional[str] = None,
        depends_on: Optional[Iterable[str]] = None,
        step_id: Optional[str] = None,
    ) -> ToolChainStep:
        """Append a step to a chain (given as object or id) and return it."""
        if isinstance(chain, str):
            found = self._chains.get(chain)
            if found is None:
                raise ValueError(f"Unknown tool chain: {chain}")
            chain = found
        if chain.status != ToolChainStatus.CREATED:
            raise ValueError(f"Cannot add steps to a chain that is {chain.status.value}")
        if step_id is not None and chain.get_step(step_id) is not None:
            raise ValueError(f"Duplicate step id {step_id!r} in chain {chain.id}")

        step = ToolChainStep(
            tool_name=tool_name,
            arguments=dict(arguments or {}),
            output_variable=output_variable,
            depends_on=set(depends_on or ()),
        )
        if step_id is not None:
            step.id = step_id
        chain.steps.append(step)
        chain.log(f"Step added: {tool_name} ({step.id})")
        return step

    def get_chain(self, chain_id: str) -> Optional[ToolChain]:
        return self._chains.get(chain_id)

    def cancel_chain(self, chain_id: str) -> bool:
        """Request cancellation of a chain.

        A running chain stops before its next wave; a chain that has not
        started is cancelled immediately. Returns False for unknown or
        already finished chains.
        """
        chain = self._chains.get(chain_id)
        if chain is None or chain.is_terminal:
            return False

        if chain.status == ToolChainStatus.RUNNING:
            self._cancel_signals.setdefault(chain_id, asyncio.Event()).set()
            chain.log("Cancellation requested")
        else:
            self._skip_pending(chain, "Chain cancelled")
            chain.status = ToolChainStatus.CANCELLED
            chain.completed_at = datetime.now()
            chain.log("Chain cancelled")
        logger.info(f"Cancelled chain {chain_id}")
        return True

    # Execution ===============================================================

    async def execute_chain(
        self, chain: ToolChain, cancellation: Optional[asyncio.Event] = None
    ) -> ToolChain:
        """Run `chain` to a terminal status and return it.

        Step failures are recorded on the steps and never raised. Cancelling
        the surrounding task leaves the chain CANCELLED, with its unfinished
        steps skipped, and re-raises the CancelledError.
        """
        self._chains.setdefault(chain.id, chain)
        if chain.is_terminal:
            logger.warning(f"Chain {chain.id} is already {chain.status.value}")
            return chain

        internal_signal = self._cancel_signals.setdefault(chain.id, asyncio.Event())

        def cancelled() -> bool:
            return internal_signal.is_set() or (
                cancellation is not None and cancellation.is_set()
            )

        logger.info(f"Executing tool chain {chain.id}: {chain.name}")
        chain.status = ToolChainStatus.RUNNING
        chain.started_at = datetime.now()
        chain.log("Chain execution started")

        try:
            wave = 0
            while chain.has_active_steps():
                if cancelled():
                    self._skip_pending(chain, "Chain cancelled")
                    chain.status = ToolChainStatus.CANCELLED
                    chain.log("Chain cancelled")
                    break

                ready = self._collect_ready(chain)
                if not ready:
                    skipped = self._skip_pending(chain, "Dependency not met")
                    logger.warning(
                        f"Chain {chain.id}: {skipped} step(s) can never run, skipping them"
                    )
                    break

                wave += 1
                chain.log(f"Wave {wave}: running {', '.join(s.tool_name for s in ready)}")
                await asyncio.gather(
                    *(self._execute_step(chain, step, cancellation) for step in ready)
                )

            if chain.status == ToolChainStatus.RUNNING:
                if any(s.status == ToolChainStepStatus.FAILED for s in chain.steps):
                    chain.status = ToolChainStatus.FAILED
                    chain.log("Chain failed with errors")
                else:
                    chain.status = ToolChainStatus.COMPLETED
                    chain.log("Chain completed successfully")

        except asyncio.CancelledError:
            logger.warning(f"Chain {chain.id} interrupted")
            self._skip_pending(chain, "Chain cancelled")
            chain.status = ToolChainStatus.CANCELLED
            chain.log("Chain cancelled")
            raise

        except Exception as e:
            logger.error(f"Error executing chain {chain.id}: {e}", exc_info=True)
            chain.status = ToolChainStatus.FAILED
            chain.log(f"Chain failed: {e}")

        finally:
            chain.completed_at = datetime.now()
            self._cancel_signals.pop(chain.id, None)

        logger.info(f"Chain {chain.id} finished: {chain.status.value}")
        return chain

    def _collect_ready(self, chain: ToolChain) -> list[ToolChainStep]:
        completed = {
            s.id for s in chain.steps if s.status == ToolChainStepStatus.COMPLETED
        }
        ready = []
        for step in chain.steps:
            if step.status == ToolChainStepStatus.PENDING and step.depends_on <= completed:
                step.status = ToolChainStepStatus.READY
                ready.append(step)
        return ready

    def _skip_pending(self, chain: ToolChain, reason: str) -> int:
        count = 0
        for step in chain.steps:
            if step.status in (ToolChainStepStatus.PENDING, ToolChainStepStatus.READY):
                step.status = ToolChainStepStatus.SKIPPED
                step.error = reason
                chain.log(f"Step {step.tool_name} skipped: {reason}")
                count += 1
        return count

    async def _execute_step(
        self,
        chain: ToolChain,
        step: ToolChainStep,
        cancellation: Optional[asyncio.Event],
    ) -> None:
        step.status = ToolChainStepStatus.RUNNING
        step.start_time = datetime.now()

        try:
            logger.info(f"Executing step {step.id}: {step.tool_name}")
            tool = self.registry.get(step.tool_name)
            if tool is None:
                raise ToolNotFoundError(f"Tool {step.tool_name} not found")

            arguments = self.resolve_arguments(step.arguments, chain.variables)
            result = await tool.invoke(arguments, cancellation)

            step.result = result
            if step.output_variable:
                chain.variables[step.output_variable] = result
                logger.debug(f"Stored result in variable {step.output_variable}")
            step.status = ToolChainStepStatus.COMPLETED
            chain.log(f"Step {step.tool_name} completed successfully")

        except asyncio.CancelledError:
            step.status = ToolChainStepStatus.SKIPPED
            step.error = "Chain cancelled"
            chain.log(f"Step {step.tool_name} interrupted")
            raise

        except Exception as e:
            step.status = ToolChainStepStatus.FAILED
            step.error = str(e)
            chain.log(f"Step {step.tool_name} failed: {e}")
            logger.error(f"Error executing step {step.id}: {step.tool_name}: {e}")

        finally:
            step.end_time = datetime.now()

    # Variable resolution =====================================================

    def resolve_arguments(
        self, arguments: dict[str, Any], variables: dict[str, Any]
    ) -> dict[str, Any]:
        return {key: self.resolve_value(value, variables) for key, value in arguments.items()}

    def resolve_value(self, value: Any, variables: dict[str, Any]) -> Any:
        if isinstance(value, str) and value.startswith("$"):
            name = value[1:]
            if name in variables:
                return variables[name]
            logger.warning(f"Variable {name} not found, using literal value")
            return value
        if isinstance(value, dict):
            return self.resolve_arguments(value, variables)
        if isinstance(value, list):
            return [self.resolve_value(v, variables) for v in value]
        return value

    # Statistics ==============================================================

    def get_chain_statistics(self, chain_id: str) -> Optional[dict[str, Any]]:
        chain = self._chains.get(chain_id)
        if chain is None:
            return None

        total = len(chain.steps)
        completed = sum(1 for s in chain.steps if s.status == ToolChainStepStatus.COMPLETED)
        failed = sum(1 for s in chain.steps if s.status == ToolChainStepStatus.FAILED)
        return {
            "chain_id": chain.id,
            "name": chain.name,
            "status": chain.status.value,
            "total_steps": total,
            "completed_steps": completed,
            "failed_steps": failed,
            "progress": completed / total if total else 0.0,
            "execution_seconds": chain.execution_seconds,
            "variables": len(chain.variables),
        }

    def export_chain_log(self, chain_id: str) -> Optional[str]:
        """Human-readable report of a chain, its log and its steps."""
        chain = self._chains.get(chain_id)
        if chain is None:
            return None

        lines = [
            f"Tool Chain: {chain.name} ({chain.id})",
            f"Status: {chain.status.value}",
            f"Created: {chain.created_at:%Y-%m-%d %H:%M:%S}",
        ]
        if chain.started_at:
            lines.append(f"Started: {chain.started_at:%Y-%m-%d %H:%M:%S}")
        if chain.completed_at:
            lines.append(f"Completed: {chain.completed_at:%Y-%m-%d %H:%M:%S}")

        lines.append("\nExecution Log:")
        lines.extend(chain.execution_log)

        lines.append("\nSteps:")
        for step in chain.steps:
            lines.append(f"\n  Step {step.tool_name} ({step.id}):")
            lines.append(f"    Status: {step.status.value}")
            if step.start_time:
                lines.append(f"    Started: {step.start_time:%H:%M:%S.%f}"[:-3])
            if step.end_time:
                lines.append(f"    Ended: {step.end_time:%H:%M:%S.%f}"[:-3])
            if step.duration_ms is not None:
                lines.append(f"    Duration: {step.duration_ms:.2f}ms")
            if step.error:
                lines.append(f"    Error: {step.error}")
        return "\n".join(lines)

    def get_statistics(self) -> dict[str, int]:
        chains = list(self._chains.values())
        return {
            "active_chains": len(chains),
            "total_steps": sum(len(c.steps) for c in chains),
            "completed_chains": sum(1 for c in chains if c.status == ToolChainStatus.COMPLETED),
            "failed_chains": sum(1 for c in chains if c.status == ToolChainStatus.FAILED),
            "running_chains": sum(1 for c in chains if c.status == ToolChainStatus.RUNNING),
        }
