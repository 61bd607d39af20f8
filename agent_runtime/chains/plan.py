# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Declarative chain plans.

A plan is a JSON document of the form:

    {
      "name": "fetch then summarise",
      "steps": [
        {"id": "s1", "tool": "fetch", "args": {"url": "https://example.com"}, "output": "page"},
        {"id": "s2", "tool": "summarise", "args": {"text": "$page"}, "depends_on": ["s1"]}
      ]
    }

Step ids are optional; steps without one get a generated id and cannot be
depended upon.
"""

import json

from typing import Any
from pathlib import Path
from pydantic import BaseModel, Field

from .scheduler import ToolChainScheduler
from ..types.chain_types import ToolChain


class PlanStep(BaseModel):
    id: str | None = None
    tool: str
    args: dict[str, Any] = Field(default_factory=dict)
    output: str | None = None
    depends_on: list[str] = Field(default_factory=list)


class ChainPlan(BaseModel):
    name: str = "chain"
    steps: list[PlanStep] = Field(default_factory=list)


def build_chain(scheduler: ToolChainScheduler, plan: ChainPlan | dict) -> ToolChain:
    if isinstance(plan, dict):
        plan = ChainPlan.model_validate(plan)

    chain = scheduler.create_chain(plan.name)
    for step in plan.steps:
        scheduler.add_step(
            chain,
            step.tool,
            step.args,
            output_variable=step.output,
            depends_on=step.depends_on,
            step_id=step.id,
        )
    return chain


def load_plan(path: Path) -> ChainPlan:
    return ChainPlan.model_validate(json.loads(Path(path).read_text()))
