# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .scheduler import ToolChainScheduler
from .plan import ChainPlan, build_chain, load_plan

__all__ = ["ToolChainScheduler", "ChainPlan", "build_chain", "load_plan"]
