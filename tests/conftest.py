"""Pytest configuration and shared fixtures."""

import threading
import time
from typing import Any

import pytest

from lineagescope.graph.model import Graph
from lineagescope.layout.force import CancelCheck, ForceConfig, ForceSolver, LinkSpec, NodeState

ERAS = ("antediluvian", "patriarchal", "exodus", "judges")


def make_graph(nodes: list[Any], links: list[dict[str, Any]] | None = None) -> Graph:
    """Build a graph from ids or node dicts plus source/target/type links."""
    records = [{"id": n} if isinstance(n, str) else n for n in nodes]
    return Graph.load(records, links or [])


def parent(source: str, target: str) -> dict[str, str]:
    return {"source": source, "target": target, "type": "parent"}


class LineSolver(ForceSolver):
    """Deterministic solver: free nodes on a horizontal line, pins respected.

    Keeps a reference to every buffer it was handed so tests can check
    that results were copied out of it.
    """

    def __init__(self) -> None:
        self.calls: list[list[NodeState]] = []

    def solve(
        self,
        nodes: list[NodeState],
        links: list[LinkSpec],
        config: ForceConfig,
        cancelled: CancelCheck | None = None,
    ) -> bool:
        self.calls.append(nodes)
        for i, node in enumerate(nodes):
            if node.pinned:
                node.x, node.y = node.fx, node.fy
            else:
                node.x, node.y = 100.0 * i, 0.0
        return True


class SlowSolver(ForceSolver):
    """Solver that works in timed chunks and honors cancellation."""

    def __init__(self, chunk_seconds: float = 0.05, chunks: int = 10) -> None:
        self.chunk_seconds = chunk_seconds
        self.chunks = chunks
        self.cancelled_runs = 0
        self.completed_runs = 0
        self.started = threading.Event()

    def solve(
        self,
        nodes: list[NodeState],
        links: list[LinkSpec],
        config: ForceConfig,
        cancelled: CancelCheck | None = None,
    ) -> bool:
        self.started.set()
        for _ in range(self.chunks):
            if cancelled is not None and cancelled():
                self.cancelled_runs += 1
                return False
            time.sleep(self.chunk_seconds)
        for i, node in enumerate(nodes):
            node.x, node.y = (node.fx, node.fy) if node.pinned else (10.0 * i, 10.0 * i)
        self.completed_runs += 1
        return True


@pytest.fixture
def family_graph() -> Graph:
    """A is the parent of B and C; B is the parent of D."""
    return make_graph(["A", "B", "C", "D"], [parent("A", "B"), parent("A", "C"), parent("B", "D")])


@pytest.fixture
def chain_graph() -> Graph:
    """A -> B -> C parent chain."""
    return make_graph(["A", "B", "C"], [parent("A", "B"), parent("B", "C")])


@pytest.fixture
def era_graph() -> Graph:
    """Twenty people, five per era, linked only across eras."""
    nodes = [{"id": f"p{i}", "name": f"Person {i}", "era": ERAS[i % 4]} for i in range(20)]
    links = [parent(f"p{i}", f"p{i + 1}") for i in range(19)]
    return make_graph(nodes, links)


@pytest.fixture
def people_dataset() -> dict[str, Any]:
    """Dataset in the people/relationships shape."""
    return {
        "people": [
            {"id": "abraham", "fullName": "Abraham", "gender": "male", "birthYear": -2166,
             "deathYear": -1991, "isKeyFigure": True},
            {"id": "sarah", "fullName": "Sarah", "gender": "female", "birthYear": -2156,
             "deathYear": -2029},
            {"id": "isaac", "fullName": "Isaac", "gender": "male", "birthYear": -2066,
             "deathYear": -1886, "parents": ["abraham", "sarah"]},
        ],
        "relationships": [
            {"from": "abraham", "to": "sarah", "type": "spouse"},
            {"from": "abraham", "to": "isaac", "type": "parent", "bidirectional": True},
            {"from": "sarah", "to": "isaac", "type": "parent"},
        ],
    }


@pytest.fixture
def line_solver() -> LineSolver:
    return LineSolver()
