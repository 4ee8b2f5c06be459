"""Tests for structural graph validation and scheduling."""

import pytest

from tradeflow.core.containers import Graph
from tradeflow.core.exceptions import CycleDetectedError, GraphValidationError
from tradeflow.graph import find_cycle, topological_order, validate, validation_issues


def _graph(nodes: dict, edges: list[tuple[str, str]]) -> Graph:
    return Graph.from_dict(
        {
            "id": "g",
            "nodes": {nid: {"kind": kind} for nid, kind in nodes.items()},
            "connections": [{"source": s, "target": t} for s, t in edges],
        }
    )


class TestValidate:
    def test_scenario_is_valid(self, scenario_graph):
        validate(scenario_graph)
        assert validation_issues(scenario_graph) == []

    def test_empty_graph(self):
        with pytest.raises(GraphValidationError) as exc:
            validate(Graph.from_dict({"id": "empty", "nodes": {}}))
        assert exc.value.reason == "empty-graph"

    def test_dangling_edge(self):
        graph = _graph({"t": "trigger"}, [("t", "ghost")])
        with pytest.raises(GraphValidationError) as exc:
            validate(graph)
        assert exc.value.reason == "dangling-edge"
        assert exc.value.ref == "t->ghost"

    def test_two_node_cycle(self):
        graph = _graph({"A": "notify", "B": "notify"}, [("A", "B"), ("B", "A")])
        with pytest.raises(CycleDetectedError) as exc:
            validate(graph)
        assert exc.value.cycle_path == ["A", "B", "A"]
        assert exc.value.reason == "cycle"

    def test_self_loop(self):
        graph = _graph({"t": "trigger", "A": "notify"}, [("t", "A"), ("A", "A")])
        with pytest.raises(CycleDetectedError) as exc:
            validate(graph)
        assert exc.value.cycle_path == ["A", "A"]

    def test_cycle_behind_entry_point(self):
        graph = _graph(
            {"t": "trigger", "a": "notify", "b": "notify", "c": "notify"},
            [("t", "a"), ("a", "b"), ("b", "c"), ("c", "a")],
        )
        assert find_cycle(graph) == ["a", "b", "c", "a"]

    def test_dangling_edge_reported_before_cycle(self):
        graph = _graph({"A": "notify", "B": "notify"}, [("A", "B"), ("B", "A"), ("B", "ghost")])
        with pytest.raises(GraphValidationError) as exc:
            validate(graph)
        assert exc.value.reason == "dangling-edge"

    def test_incompatible_edge(self):
        graph = Graph.from_dict(
            {
                "nodes": {
                    "t": {"kind": "trigger"},
                    "o": {"kind": "order"},
                    "c": {"kind": "condition", "config": {"expression": "close > 1"}},
                },
                "connections": [{"source": "t", "target": "o"}, {"source": "o", "target": "c"}],
            }
        )
        with pytest.raises(GraphValidationError) as exc:
            validate(graph)
        assert exc.value.reason == "incompatible-edge"
        assert exc.value.ref == "o->c"

    def test_validation_issues_reports_first_error(self):
        graph = _graph({"A": "notify", "B": "notify"}, [("A", "B"), ("B", "A")])
        issues = validation_issues(graph)
        assert len(issues) == 1
        assert issues[0].startswith("ERROR:")
        assert "A -> B -> A" in issues[0]

    def test_no_cycle(self, scenario_graph):
        assert find_cycle(scenario_graph) is None


class TestTopologicalOrder:
    def test_chain(self, scenario_graph):
        assert topological_order(scenario_graph) == ["trigger", "candles", "sma", "breakout", "buy"]

    def test_ties_broken_by_id(self):
        graph = _graph(
            {"t": "trigger", "n2": "notify", "n1": "notify", "z": "notify"},
            [("t", "n2"), ("t", "n1"), ("n1", "z"), ("n2", "z")],
        )
        assert topological_order(graph) == ["t", "n1", "n2", "z"]

    def test_stable_across_declaration_order(self):
        nodes = {"t": "trigger", "b": "notify", "a": "notify"}
        first = _graph(nodes, [("t", "b"), ("t", "a")])
        second = _graph(dict(reversed(list(nodes.items()))), [("t", "a"), ("t", "b")])
        assert topological_order(first) == topological_order(second) == ["t", "a", "b"]

    def test_every_edge_respected(self):
        graph = _graph(
            {"t1": "trigger", "t2": "trigger", "x": "notify", "y": "notify"},
            [("t2", "x"), ("x", "y"), ("t1", "y")],
        )
        order = topological_order(graph)
        for conn in graph.connections:
            assert order.index(conn.source) < order.index(conn.target)

    def test_cycle_raises(self):
        graph = _graph({"A": "notify", "B": "notify"}, [("A", "B"), ("B", "A")])
        with pytest.raises(CycleDetectedError):
            topological_order(graph)
