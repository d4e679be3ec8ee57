"""Tests for the command-line entry point."""

import json

import pytest

import main
from conftest import make_task


@pytest.fixture
def tasks_file(tmp_path, diamond):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps({"tasks": diamond}))
    return path


def _run(capsys, *argv):
    code = main.main(list(argv))
    return code, capsys.readouterr().out


def test_validate_command(capsys, tasks_file):
    code, out = _run(capsys, "--tasks", str(tasks_file), "validate")

    assert code == 0
    assert json.loads(out)["is_valid"] is True


def test_graph_command(capsys, tasks_file):
    code, out = _run(capsys, "--tasks", str(tasks_file), "graph")

    assert code == 0
    assert json.loads(out)["critical_path"] == ["A", "B", "D"]


def test_graph_plot_is_written(capsys, tasks_file, tmp_path):
    plot = tmp_path / "graph.html"
    code, _ = _run(capsys, "--tasks", str(tasks_file), "graph", "--viz", "--plot", str(plot))

    assert code == 0
    assert plot.exists()


def test_what_if_command(capsys, tasks_file):
    code, out = _run(capsys, "--tasks", str(tasks_file), "what-if", "add_dependency", "A", "D")

    assert code == 0
    assert json.loads(out)["impact"]["validation"]["is_valid"] is False


def test_tree_command_unknown_task(capsys, tasks_file):
    code, out = _run(capsys, "--tasks", str(tasks_file), "tree", "missing")

    assert code == 0
    assert json.loads(out) is None


def test_processable_command(capsys, tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps([
        make_task("A", status="done"),
        make_task("B", ["A"]),
        make_task("C", ["B"]),
    ]))
    code, out = _run(capsys, "--tasks", str(path), "processable")

    assert code == 0
    assert [t["id"] for t in json.loads(out)] == ["B"]


def test_missing_file(capsys, tmp_path):
    code, out = _run(capsys, "--tasks", str(tmp_path / "nope.json"), "validate")

    assert code == 1
    assert out == ""


def test_malformed_json(capsys, tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text("{not json")

    code, _ = _run(capsys, "--tasks", str(path), "validate")

    assert code == 1


def test_duplicate_ids(capsys, tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps([make_task("A"), make_task("A")]))

    code, _ = _run(capsys, "--tasks", str(path), "validate")

    assert code == 1
