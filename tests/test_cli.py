import json
from pathlib import Path

import pytest

from cpu_scheduler.cli import build_parser, main


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    # Keep Rich from wrapping table cells and long lines.
    monkeypatch.setenv("COLUMNS", "200")


def test_presets_command(capsys):
    assert main(["presets"]) == 0
    out = capsys.readouterr().out
    assert "Convoy effect" in out
    assert "Proportional share" in out


def test_run_preset_with_auto_switch(capsys):
    assert main(["run", "-a", "fcfs", "-p", "convoy-effect", "-q", "2"]) == 0
    out = capsys.readouterr().out
    assert "First Come First Serve" in out
    assert "Round Robin" in out
    assert "convoy" in out


def test_run_plain_gantt_and_explain(capsys):
    assert main(["run", "-a", "fcfs", "-p", "rr heavy", "--plain", "--explain", "--no-switch"]) == 0
    out = capsys.readouterr().out
    assert "Gantt Chart:" in out
    assert "|================|" in out
    assert "At time 0, process P1 is selected" in out


def test_run_with_cost(capsys):
    assert main(["run", "-a", "rr", "-p", "rr heavy", "-q", "2", "--cost", "1", "--plain"]) == 0
    out = capsys.readouterr().out
    assert "#" in out
    assert "Context-switch cost" in out


def test_run_workload_file(tmp_path: Path, capsys):
    p = tmp_path / "w.json"
    p.write_text(json.dumps([{"pid": 1, "arrival_time": 0, "burst_time": 3}, {"pid": 2, "arrival_time": 1, "burst_time": 2}]))
    assert main(["run", "-a", "srtf", "-w", str(p)]) == 0
    assert "P2" in capsys.readouterr().out


def test_invalid_workload_exit_code(tmp_path: Path, capsys):
    p = tmp_path / "w.json"
    p.write_text(json.dumps([{"pid": 1, "burst_time": 2}, {"pid": 1, "burst_time": 3}]))
    assert main(["run", "-a", "fcfs", "-w", str(p)]) == 2
    assert "P1: duplicate pid" in capsys.readouterr().out


def test_unknown_preset_exit_code(capsys):
    assert main(["run", "-a", "fcfs", "-p", "nope"]) == 2
    assert "Unknown preset" in capsys.readouterr().out


def test_custom_strategy_path(capsys):
    assert main(["run", "-a", "custom", "-p", "rr heavy", "--strategy", "builtins:min"]) == 0
    assert "Custom" in capsys.readouterr().out


def test_compare(capsys):
    assert main(["compare", "-p", "sjf friendly", "-a", "fcfs", "sjf", "round_robin", "custom"]) == 0
    out = capsys.readouterr().out
    assert "Shortest Job First" in out
    assert "Round Robin" in out


def test_workload_source_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["run", "-a", "fcfs"])


def test_run_random_workload_is_reproducible(capsys):
    argv = ["run", "-a", "lottery", "--random", "6", "--seed", "3", "--no-switch"]
    assert main(argv) == 0
    first = capsys.readouterr().out
    assert main(argv) == 0
    assert capsys.readouterr().out == first
    assert "P6" in first
    assert "P7" not in first


def test_compare_random_workload(capsys):
    assert main(["compare", "--random", "5", "--seed", "11", "-a", "fcfs", "lottery"]) == 0
    out = capsys.readouterr().out
    assert "First Come First Serve" in out
    assert "Lottery" in out


def test_random_excludes_other_sources():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["run", "-a", "fcfs", "--random", "3", "-p", "convoy-effect"])
