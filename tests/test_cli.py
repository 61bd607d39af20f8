# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the command line entry point."""
import json
import pytest

from agent_runtime.__main__ import default_registry, main, setup_parser


def write_plan(tmp_path, steps):
    path = tmp_path / "plan.json"
    path.write_text(json.dumps({"name": "cli plan", "steps": steps}))
    return path


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        setup_parser().parse_args([])


def test_run_arguments():
    args = setup_parser().parse_args(["run", "-s", "abc", "-p", "hello", "--max-steps", "3"])
    assert (args.command, args.session, args.prompt, args.max_steps) == ("run", "abc", "hello", 3)


def test_default_registry(tmp_path):
    registry = default_registry(tmp_path)
    assert registry.names() == ["calculate", "FileWriter"]


def test_chain_command_success(tmp_path, monkeypatch, capsys):
    plan = write_plan(
        tmp_path,
        [
            {"id": "s1", "tool": "calculate", "args": {"expression": "6 * 7"}, "output": "r"},
            {
                "id": "s2",
                "tool": "FileWriter",
                "args": {"fileName": "out.txt", "content": "done"},
                "depends_on": ["s1"],
            },
        ],
    )
    monkeypatch.setattr(
        "sys.argv", ["agent_runtime", "chain", "--plan", str(plan), "--workdir", str(tmp_path / "ws")]
    )

    assert main() == 0
    out = capsys.readouterr().out
    assert "Tool Chain: cli plan" in out
    assert "Status: completed" in out
    assert (tmp_path / "ws" / "out.txt").read_text() == "done"


def test_chain_command_failure_exit_code(tmp_path, monkeypatch):
    plan = write_plan(tmp_path, [{"tool": "nonexistent"}])
    monkeypatch.setattr("sys.argv", ["agent_runtime", "chain", "--plan", str(plan)])
    assert main() == 1
