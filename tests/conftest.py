"""Shared fixtures for dependency graph tests."""

import pytest

from dependency_graph import DependencyGraphService


def make_task(task_id, dependencies=(), status="todo", priority="medium", title=None, description=""):
    return {
        "id": task_id,
        "title": title or f"Task {task_id}",
        "status": status,
        "priority": priority,
        "dependencies": list(dependencies),
        "description": description,
    }


@pytest.fixture
def service():
    return DependencyGraphService()


@pytest.fixture
def linear_chain():
    """A -> B -> C, each task depending on the previous one."""
    return [
        make_task("A"),
        make_task("B", ["A"]),
        make_task("C", ["B"]),
    ]


@pytest.fixture
def cyclic_tasks():
    """A depends on B, B on C, C on A, plus an unrelated task D."""
    return [
        make_task("A", ["B"], priority="high"),
        make_task("B", ["C"]),
        make_task("C", ["A"]),
        make_task("D"),
    ]


@pytest.fixture
def diamond():
    """
    Diamond with unequal branches:

        A (low, 1) -> B (high, 3) -> D (low, 1)
        A          -> C (low, 1)  -> D
    """
    return [
        make_task("A", priority="low"),
        make_task("B", ["A"], priority="high"),
        make_task("C", ["A"], priority="low"),
        make_task("D", ["B", "C"], priority="low"),
    ]


@pytest.fixture
def hub_tasks():
    """One root task with three dependents, all on the critical path."""
    return [
        make_task("root", priority="high"),
        make_task("x", ["root"], priority="low"),
        make_task("y", ["root"], priority="low"),
        make_task("z", ["root"], priority="low"),
    ]
