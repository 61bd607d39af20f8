# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for building chains from declarative plans."""
import json
import pytest
from pydantic import ValidationError

from agent_runtime.chains.plan import ChainPlan, build_chain, load_plan
from agent_runtime.chains.scheduler import ToolChainScheduler
from agent_runtime.tools.calculator import Calculator
from agent_runtime.tools.registry import ToolRegistry
from agent_runtime.types.chain_types import ToolChainStatus, ToolChainStepStatus

PLAN = {
    "name": "two sums",
    "steps": [
        {"id": "s1", "tool": "calculate", "args": {"expression": "2 + 3"}, "output": "r1"},
        {"id": "s2", "tool": "calculate", "args": {"expression": "4 * 5"}, "depends_on": ["s1"]},
    ],
}


def test_build_chain_keeps_plan_ids():
    scheduler = ToolChainScheduler(ToolRegistry())
    chain = build_chain(scheduler, PLAN)

    assert chain.name == "two sums"
    assert [s.id for s in chain.steps] == ["s1", "s2"]
    assert chain.get_step("s2").depends_on == {"s1"}
    assert chain.get_step("s1").output_variable == "r1"
    assert scheduler.get_chain(chain.id) is chain


def test_load_plan(tmp_path):
    path = tmp_path / "plan.json"
    path.write_text(json.dumps(PLAN))
    plan = load_plan(path)
    assert isinstance(plan, ChainPlan)
    assert [s.tool for s in plan.steps] == ["calculate", "calculate"]


def test_invalid_plan():
    with pytest.raises(ValidationError):
        ChainPlan.model_validate({"steps": [{"args": {}}]})


@pytest.mark.asyncio
async def test_plan_executes_with_builtin_tools():
    scheduler = ToolChainScheduler(ToolRegistry([Calculator()]))
    chain = build_chain(scheduler, PLAN)
    await scheduler.execute_chain(chain)

    assert chain.status == ToolChainStatus.COMPLETED
    assert all(s.status == ToolChainStepStatus.COMPLETED for s in chain.steps)
    assert chain.variables["r1"] == {"expression": "2 + 3", "result": 5}
    assert chain.get_step("s2").result["result"] == 20
