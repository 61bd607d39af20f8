# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Agent runtime: a tool-using agent loop and a dependency-graph tool chain scheduler."""

__version__ = "0.1.0"
