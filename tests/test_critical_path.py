"""Tests for the CPM forward/backward passes."""

import random

import pytest

from conftest import make_task
from dependency_graph import CriticalPathAnalyzer, DependencyGraphBuilder, EngineConfig


def _analyze(tasks, config=None):
    builder = DependencyGraphBuilder()
    builder.build(tasks)
    analyzer = CriticalPathAnalyzer(builder.create_nodes(), config)
    return analyzer, analyzer.analyze()


def test_linear_chain_is_fully_critical(linear_chain):
    analyzer, analysis = _analyze(linear_chain)

    assert analysis["critical_path"] == ["A", "B", "C"]
    assert analysis["total_duration"] == pytest.approx(6)
    for task_id in ("A", "B", "C"):
        assert analysis["slack_times"][task_id] == pytest.approx(0)
    assert analyzer.earliest_start == {"A": 0, "B": 2, "C": 4}


def test_diamond_schedule(diamond):
    analyzer, analysis = _analyze(diamond)

    assert analysis["critical_path"] == ["A", "B", "D"]
    assert analysis["slack_times"]["C"] == pytest.approx(2)
    assert analysis["total_duration"] == pytest.approx(5)
    assert analyzer.latest_start["C"] == pytest.approx(3)
    assert analyzer.latest_finish["A"] == pytest.approx(1)


def test_diamond_levels_processed_in_order_regardless_of_input_order(diamond):
    _, forward = _analyze(diamond)
    _, backward = _analyze(list(reversed(diamond)))

    assert forward["slack_times"] == pytest.approx(backward["slack_times"])
    assert forward["critical_path"] == backward["critical_path"]


def test_slack_is_never_negative_on_random_dags():
    rng = random.Random(11)
    priorities = ["high", "medium", "low"]
    tasks = []
    for i in range(60):
        candidates = [f"t{j}" for j in range(i)]
        deps = rng.sample(candidates, k=min(len(candidates), rng.randint(0, 4)))
        tasks.append(make_task(f"t{i}", deps, priority=rng.choice(priorities),
                               description="x" * rng.randint(0, 1200)))

    _, analysis = _analyze(tasks)

    for slack in analysis["slack_times"].values():
        assert slack > -1e-9


def test_parallel_levels_group_by_earliest_start(hub_tasks):
    _, analysis = _analyze(hub_tasks)

    assert analysis["levels"] == [
        {"level": 0, "start": 0, "tasks": ["root"], "can_start_in_parallel": True},
        {"level": 1, "start": 3, "tasks": ["x", "y", "z"], "can_start_in_parallel": True},
    ]


def test_bottlenecks_are_critical_tasks_with_many_dependents(hub_tasks):
    _, analysis = _analyze(hub_tasks)

    assert analysis["bottlenecks"] == ["root"]


def test_bottleneck_threshold_is_configurable(diamond):
    _, analysis = _analyze(diamond, EngineConfig(bottleneck_dependents_threshold=1))

    assert analysis["bottlenecks"] == ["A"]


def test_empty_snapshot():
    _, analysis = _analyze([])

    assert analysis["critical_path"] == []
    assert analysis["total_duration"] == 0
    assert analysis["levels"] == []


def test_apply_writes_schedule_onto_nodes(diamond):
    builder = DependencyGraphBuilder()
    builder.build(diamond)
    nodes = builder.create_nodes()
    analyzer = CriticalPathAnalyzer(nodes)
    analyzer.apply(analyzer.analyze())

    by_id = {node.id: node for node in nodes}
    assert by_id["B"].critical_path is True
    assert by_id["C"].critical_path is False
    assert by_id["D"].earliest_start == pytest.approx(4)
    assert by_id["D"].earliest_finish == pytest.approx(5)
    assert by_id["C"].slack == pytest.approx(2)


def test_cyclic_input_still_produces_values(cyclic_tasks):
    _, analysis = _analyze(cyclic_tasks)

    assert set(analysis["slack_times"]) == {"A", "B", "C", "D"}
