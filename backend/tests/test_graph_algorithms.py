"""Tests for transaction graph algorithms"""

import math

import networkx as nx
import pytest
from linkscope.analysis.graph_algorithms import (
    all_pairs_shortest_paths,
    approximate_betweenness,
    betweenness_centrality,
    calculate_centrality,
    detect_cycles,
    graph_statistics,
    run_algorithm,
    serialize_distances,
    shortest_path,
    strongly_connected_components,
)
from linkscope.models.graph import EdgeKind, GraphEdge, GraphModel, GraphNode

TRIANGLE = {"A": ["B"], "B": ["C"], "C": ["A"]}

# Two cycles joined by a bridge, plus a tail and an isolated node
MIXED = {
    "a": ["b"],
    "b": ["c", "d"],
    "c": ["a"],
    "d": ["e"],
    "e": ["f"],
    "f": ["d", "g"],
    "g": [],
    "h": [],
}

DIAMOND = {"s": ["x", "y"], "x": ["t"], "y": ["t"], "t": []}


def _to_networkx(adjacency):
    graph = nx.DiGraph()
    graph.add_nodes_from(adjacency)
    for node, successors in adjacency.items():
        graph.add_edges_from((node, successor) for successor in successors)
    return graph


def _graph_model(adjacency, **payloads):
    return GraphModel(
        root_txid=next(iter(adjacency)),
        depth=1,
        nodes=[GraphNode(txid=txid, **payloads.get(txid, {})) for txid in adjacency],
        edges=[
            GraphEdge(from_txid=source, to_txid=target, kind=EdgeKind.SPENT_BY)
            for source, targets in adjacency.items()
            for target in targets
        ],
    )


class TestCycleDetection:
    """Test DFS cycle detection"""

    def test_triangle(self):
        """Test that A->B->C->A is reported"""
        cycles = detect_cycles(TRIANGLE)

        assert any(len(cycle) == 3 and set(cycle) == {"A", "B", "C"} for cycle in cycles)

    def test_acyclic(self):
        assert detect_cycles(DIAMOND) == []

    def test_self_loop(self):
        assert detect_cycles({"A": ["A"]}) == [["A"]]

    def test_disconnected_components_all_searched(self):
        """Test that every DFS tree is explored"""
        cycles = detect_cycles(MIXED)
        cycle_sets = [set(cycle) for cycle in cycles]

        assert {"a", "b", "c"} in cycle_sets
        assert {"d", "e", "f"} in cycle_sets

    def test_cycles_follow_edges(self):
        """Test that every reported cycle is a closed walk in the graph"""
        for cycle in detect_cycles(MIXED):
            for current, following in zip(cycle, cycle[1:] + cycle[:1]):
                assert following in MIXED[current]


class TestStronglyConnectedComponents:
    """Test Tarjan's SCC algorithm"""

    def test_matches_networkx(self):
        components = strongly_connected_components(MIXED)
        expected = nx.strongly_connected_components(_to_networkx(MIXED))

        assert {frozenset(c) for c in components} == {frozenset(c) for c in expected}

    def test_partitions_node_set(self):
        """Test that every node is in exactly one component"""
        components = strongly_connected_components(MIXED)
        members = [node for component in components for node in component]

        assert sorted(members) == sorted(MIXED)

    def test_members_mutually_reachable(self):
        """Test that nodes in a component reach each other inside the component"""
        for component in strongly_connected_components(MIXED):
            restricted = {node: [s for s in MIXED[node] if s in component] for node in component}
            for source in component:
                for target in component:
                    assert shortest_path(restricted, source, target) is not None

    def test_singletons(self):
        components = strongly_connected_components(DIAMOND)

        assert sorted(len(c) for c in components) == [1, 1, 1, 1]

    def test_long_chain_does_not_recurse(self):
        """Test that deep graphs stay within the recursion limit"""
        chain = {str(i): [str(i + 1)] for i in range(5000)}
        chain["5000"] = ["0"]

        components = strongly_connected_components(chain)

        assert len(components) == 1
        assert len(components[0]) == 5001


class TestShortestPath:
    """Test BFS shortest path"""

    def test_finds_fewest_hops(self):
        graph = {"A": ["B", "D"], "B": ["C"], "C": ["E"], "D": ["E"], "E": []}

        assert shortest_path(graph, "A", "E") == ["A", "D", "E"]

    def test_no_path(self):
        assert shortest_path(DIAMOND, "t", "s") is None

    def test_same_node(self):
        assert shortest_path(DIAMOND, "s", "s") == ["s"]

    def test_unknown_node(self):
        assert shortest_path(DIAMOND, "s", "zz") is None

    def test_dangling_edge_ignored(self):
        """Test that edges to nodes outside the graph are treated as absent"""
        graph = {"A": ["ghost", "B"], "B": []}

        assert shortest_path(graph, "A", "B") == ["A", "B"]
        assert shortest_path(graph, "A", "ghost") is None


class TestAllPairsShortestPaths:
    """Test Floyd-Warshall distances"""

    def test_distances(self):
        distances = all_pairs_shortest_paths(MIXED)

        assert distances[("a", "a")] == 0
        assert distances[("a", "b")] == 1
        assert distances[("a", "g")] == 5
        assert math.isinf(distances[("g", "a")])
        assert math.isinf(distances[("h", "a")])

    def test_matches_bfs(self):
        """Test agreement with BFS path lengths"""
        distances = all_pairs_shortest_paths(MIXED)

        for (source, target), distance in distances.items():
            path = shortest_path(MIXED, source, target)
            if path is None:
                assert math.isinf(distance)
            else:
                assert distance == len(path) - 1

    def test_triangle_inequality(self):
        distances = all_pairs_shortest_paths(MIXED)

        for i in MIXED:
            for j in MIXED:
                for k in MIXED:
                    assert distances[(i, j)] <= distances[(i, k)] + distances[(k, j)]

    def test_serialize_uses_none_for_infinity(self):
        entries = serialize_distances(all_pairs_shortest_paths({"A": ["B"], "B": []}))
        by_pair = {(e.source, e.target): e.distance for e in entries}

        assert by_pair == {("A", "A"): 0, ("A", "B"): 1, ("B", "A"): None, ("B", "B"): 0}


class TestCentrality:
    """Test betweenness centrality"""

    @pytest.mark.parametrize("adjacency", [TRIANGLE, MIXED, DIAMOND])
    def test_brandes_matches_networkx(self, adjacency):
        centrality = betweenness_centrality(adjacency)
        expected = nx.betweenness_centrality(_to_networkx(adjacency), normalized=False)

        assert centrality == pytest.approx(expected)

    def test_brandes_splits_ties(self):
        """Test that equally short paths share credit"""
        centrality = betweenness_centrality(DIAMOND)

        assert centrality["x"] == pytest.approx(0.5)
        assert centrality["y"] == pytest.approx(0.5)

    def test_path_count_line(self):
        scores = approximate_betweenness({"A": ["B"], "B": ["C"], "C": []})

        assert scores == {"A": 0, "B": 1, "C": 0}

    def test_path_count_picks_one_tied_path(self):
        """Test that the approximation credits only one of two tied paths"""
        scores = approximate_betweenness(DIAMOND)

        assert scores["x"] + scores["y"] == 1

    def test_calculate_centrality_methods(self):
        assert calculate_centrality(DIAMOND)["x"] == pytest.approx(0.5)
        assert calculate_centrality(DIAMOND, method="path_count")["x"] in (0.0, 1.0)

        with pytest.raises(ValueError):
            calculate_centrality(DIAMOND, method="pagerank")


class TestGraphModelInput:
    """Test algorithms over GraphModel instances"""

    def test_adjacency_deduplicates_and_drops_dangling(self):
        graph = GraphModel(
            root_txid="A",
            depth=1,
            nodes=[GraphNode(txid="A"), GraphNode(txid="B")],
            edges=[
                GraphEdge(from_txid="A", to_txid="B", kind=EdgeKind.SPENDS),
                GraphEdge(from_txid="A", to_txid="B", kind=EdgeKind.SPENT_BY),
                GraphEdge(from_txid="A", to_txid="ghost", kind=EdgeKind.SPENT_BY),
                GraphEdge(from_txid="ghost", to_txid="B", kind=EdgeKind.SPENT_BY),
            ],
        )

        assert graph.adjacency() == {"A": ["B"], "B": []}
        assert betweenness_centrality(graph) == {"A": 0.0, "B": 0.0}

    def test_algorithms_accept_graph_model(self):
        graph = _graph_model(TRIANGLE)

        assert len(strongly_connected_components(graph)) == 1
        assert shortest_path(graph, "A", "C") == ["A", "B", "C"]

    def test_to_networkx(self):
        graph = _graph_model(MIXED, a={"block_height": 100})
        digraph = graph.to_networkx()

        assert set(digraph.nodes) == set(MIXED)
        assert digraph.number_of_edges() == 8
        assert digraph.nodes["a"]["block_height"] == 100

    def test_graph_statistics(self):
        graph = _graph_model(
            DIAMOND,
            s={"confirmations": 10, "total_output_value": 1000},
            x={"confirmations": 5, "total_output_value": 400},
            y={"total_output_value": 600},
        )

        stats = graph_statistics(graph)

        assert stats.transaction_count == 4
        assert stats.edge_count == 4
        assert stats.total_output_value == 2000
        assert stats.average_confirmations == 7.5


class TestRunAlgorithm:
    """Test dispatch by algorithm name"""

    def test_components(self):
        result = run_algorithm("components", TRIANGLE)

        assert result == [["A", "B", "C"]]

    def test_shortest_paths_are_json_ready(self):
        result = run_algorithm("shortest_paths", {"A": ["B"], "B": []})

        assert {"source": "B", "target": "A", "distance": None} in result

    def test_cycles_and_centrality(self):
        assert run_algorithm("cycles", DIAMOND) == []
        assert set(run_algorithm("centrality", DIAMOND)) == set(DIAMOND)

    def test_unknown(self):
        with pytest.raises(ValueError):
            run_algorithm("pagerank", TRIANGLE)
