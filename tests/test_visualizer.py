"""Tests for visualization projections, tables and plotly figures."""

import plotly.graph_objects as go
import pytest

from conftest import make_task
from dependency_graph import DependencyVisualizer
from dependency_graph.visualizer import cycle_severity, cycle_suggestions, node_color, node_size


@pytest.fixture
def diamond_viz(service, diamond):
    return DependencyVisualizer(service.build_graph(diamond))


class TestNodeStyle:
    def test_colors(self, service):
        graph = service.build_graph([
            make_task("done", status="done"),
            make_task("wip", status="in-progress"),
            make_task("high", priority="high"),
            make_task("low", priority="low"),
        ])
        colors = {node.id: node_color(node) for node in graph.nodes}

        assert colors == {
            "done": "#10b981",
            "wip": "#3b82f6",
            "high": "#f59e0b",
            "low": "#06b6d4",
        }

    def test_sizes(self, service, diamond):
        graph = service.build_graph(diamond)
        sizes = {node.id: node_size(node) for node in graph.nodes}

        assert sizes["A"] == 28
        assert sizes["B"] == 38
        assert sizes["C"] == 20

    def test_size_grows_with_many_dependents(self, service):
        tasks = [make_task("hub", priority="low")] + [
            make_task(f"d{i}", ["hub"], priority="low") for i in range(5)
        ]
        hub = service.build_graph(tasks).get_node("hub")

        assert node_size(hub) == 20 + 8 + 10


class TestCycleSeverity:
    def test_high_priority_is_critical(self):
        assert cycle_severity([{"priority": "high", "status": "done"}]) == "critical"

    def test_in_progress_is_critical(self):
        assert cycle_severity([{"priority": "low", "status": "in-progress"}]) == "critical"

    def test_todo_is_warning(self):
        assert cycle_severity([{"priority": "low", "status": "todo"}]) == "warning"

    def test_otherwise_info(self):
        assert cycle_severity([{"priority": "medium", "status": "failed"}]) == "info"

    def test_two_task_cycle_suggestion(self):
        assert cycle_suggestions(["A", "B", "A"])[0] == "Remove the direct dependency between these two tasks"
        assert cycle_suggestions(["A", "B", "C", "A"])[0].startswith("Break the cycle")


def test_format_graph(diamond_viz):
    data = diamond_viz.format_graph()

    assert data["metadata"] == {
        "total_nodes": 4,
        "total_edges": 4,
        "max_depth": 2,
        "critical_path_length": 3,
        "has_cycles": False,
    }
    assert data["layout"]["levels"][1] == {"level": 1, "nodes": ["B", "C"], "y": 150}
    links = {(l["source"], l["target"]): l for l in data["links"]}
    assert links[("A", "B")]["type"] == "critical"
    assert links[("A", "B")]["strength"] == 3
    assert links[("A", "C")]["type"] == "dependency"
    nodes = {n["id"]: n for n in data["nodes"]}
    assert nodes["A"]["x"] == pytest.approx(400)
    assert nodes["C"]["slack"] == pytest.approx(2)


def test_format_graph_empty(service):
    data = DependencyVisualizer(service.build_graph([])).format_graph()

    assert data["metadata"]["max_depth"] == 0
    assert data["nodes"] == []


def test_format_tree(service, diamond):
    data = service.format_dependency_tree(diamond, "D")

    assert data["root"]["id"] == "D"
    rows = {row["id"]: row for row in data["tree"]}
    assert rows["D"]["children"] == ["B", "C"]
    assert rows["B"]["parent"] == "D"
    assert rows["A"]["level"] == 2
    assert rows["A"]["expanded"] is False
    assert rows["C"]["has_children"] is False
    assert data["paths"] == [
        {"from": "D", "to": "B", "type": "child"},
        {"from": "B", "to": "A", "type": "child"},
        {"from": "D", "to": "C", "type": "child"},
    ]


def test_format_tree_unknown_root(service, diamond):
    data = service.format_dependency_tree(diamond, "missing")

    assert data == {"root": None, "tree": [], "paths": []}


def test_format_critical_path(service, diamond):
    data = service.format_critical_path_for_visualization(diamond)

    assert [row["id"] for row in data["critical_path"]] == ["A", "B", "D"]
    assert data["critical_path"][2]["start_time"] == pytest.approx(4)
    assert data["schedule"][1] == {
        "level": 1,
        "tasks": ["B", "C"],
        "start_time": 1,
        "end_time": 4,
        "parallel_capacity": 2,
    }
    assert len(data["timeline"]) == 4


def test_format_cycles(service, cyclic_tasks):
    data = service.format_circular_dependencies(cyclic_tasks)

    assert len(data["cycles"]) == 1
    cycle = data["cycles"][0]
    assert cycle["id"] == "cycle_0"
    assert cycle["severity"] == "critical"
    assert len(cycle["paths"]) == 3
    assert {n["id"]: n["in_cycles"] for n in data["affected_nodes"]} == {"A": 1, "B": 1, "C": 1}
    assert data["impact"] == {
        "total_tasks_affected": 3,
        "critical_tasks_blocked": 1,
        "estimated_delay": 24,
    }


def test_schedule_table(diamond_viz):
    df = diamond_viz.schedule_table()

    assert list(df["Task"]) == ["A", "B", "C", "D"]
    assert list(df["Critical"]) == [True, True, False, True]
    assert df.loc[df["Task"] == "C", "Slack"].iloc[0] == pytest.approx(2)


def test_cycles_table(service, cyclic_tasks):
    graph = service.build_graph(cyclic_tasks)
    df = DependencyVisualizer(graph).cycles_table(service.detect_cycles(cyclic_tasks))

    assert len(df) == 1
    assert df.iloc[0]["Length"] == 3


def test_dependency_graph_plot(diamond_viz):
    fig = diamond_viz.create_dependency_graph_plot()

    assert isinstance(fig, go.Figure)
    names = [trace.name for trace in fig.data]
    assert names == ["Dependencies", "Critical Path", "Tasks"]


def test_empty_plot(service):
    fig = DependencyVisualizer(service.build_graph([])).create_dependency_graph_plot()

    assert len(fig.data) == 0
    assert fig.layout.annotations[0].text == "No tasks to visualize"


def test_timeline_chart(diamond_viz):
    fig = diamond_viz.create_timeline_chart()

    assert len(fig.data) == 1
    assert list(fig.data[0].base) == [0, 1, 1, 4]


def test_cycle_severity_chart(service, cyclic_tasks):
    graph = service.build_graph(cyclic_tasks)
    fig = DependencyVisualizer(graph).create_cycle_severity_chart(service.detect_cycles(cyclic_tasks))

    assert list(fig.data[0].y) == [1, 0, 0]
