"""Graph algorithms over the transaction reference graph"""

import logging
import math
from collections import deque
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple, Union

from linkscope.config import settings
from linkscope.models.graph import DistanceEntry, GraphModel, GraphStatistics

logger = logging.getLogger(__name__)

GraphLike = Union[GraphModel, Mapping[str, Sequence[str]]]

WHITE, GRAY, BLACK = 0, 1, 2


def _as_adjacency(graph: GraphLike) -> Tuple[List[str], Dict[str, List[str]]]:
    """
    Normalize to (nodes, successor lists)

    Successors outside the node set are dropped so dangling edges read as
    "no such neighbour".
    """
    if isinstance(graph, GraphModel):
        adjacency = graph.adjacency()
        return list(adjacency), adjacency

    nodes = list(graph)
    node_set = set(nodes)
    adjacency: Dict[str, List[str]] = {}
    for node in nodes:
        successors: List[str] = []
        for successor in graph[node]:
            if successor in node_set and successor not in successors:
                successors.append(successor)
        adjacency[node] = successors
    return nodes, adjacency


def detect_cycles(graph: GraphLike) -> List[List[str]]:
    """
    Find cycles with a coloured depth-first search

    Every time the search meets a node still on the current path, the path
    slice from that node onwards is reported. This yields *a* set of cycles
    covering every back edge, not a minimal cycle basis.
    """
    nodes, adjacency = _as_adjacency(graph)
    color = dict.fromkeys(nodes, WHITE)
    cycles: List[List[str]] = []

    for start in nodes:
        if color[start] != WHITE:
            continue

        color[start] = GRAY
        path = [start]
        stack = [iter(adjacency[start])]

        while stack:
            for neighbor in stack[-1]:
                if color[neighbor] == GRAY:
                    cycles.append(path[path.index(neighbor):])
                elif color[neighbor] == WHITE:
                    color[neighbor] = GRAY
                    path.append(neighbor)
                    stack.append(iter(adjacency[neighbor]))
                    break
            else:
                color[path.pop()] = BLACK
                stack.pop()

    logger.debug(f"Cycle detection: {len(cycles)} cycles in {len(nodes)} nodes")
    return cycles


def strongly_connected_components(graph: GraphLike) -> List[Set[str]]:
    """
    Tarjan's strongly connected components

    Iterative form of the classic recursion: each node gets a discovery index
    and a low-link; a node whose low-link equals its index roots a component,
    which is popped off the explicit stack. Every node lands in exactly one
    component (singletons included).
    """
    nodes, adjacency = _as_adjacency(graph)
    index: Dict[str, int] = {}
    low_link: Dict[str, int] = {}
    stack: List[str] = []
    on_stack: Set[str] = set()
    components: List[Set[str]] = []
    counter = 0

    for root in nodes:
        if root in index:
            continue

        index[root] = low_link[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)
        work = [(root, iter(adjacency[root]))]

        while work:
            node, successors = work[-1]
            descended = False

            for successor in successors:
                if successor not in index:
                    index[successor] = low_link[successor] = counter
                    counter += 1
                    stack.append(successor)
                    on_stack.add(successor)
                    work.append((successor, iter(adjacency[successor])))
                    descended = True
                    break
                if successor in on_stack:
                    low_link[node] = min(low_link[node], index[successor])

            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                low_link[parent] = min(low_link[parent], low_link[node])

            if low_link[node] == index[node]:
                component = set()
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.add(member)
                    if member == node:
                        break
                components.append(component)

    return components


def shortest_path(graph: GraphLike, source: str, target: str) -> Optional[List[str]]:
    """
    Breadth-first shortest path (fewest edges)

    Returns:
        Node list from source to target, or None if target is unreachable
    """
    _, adjacency = _as_adjacency(graph)
    if source not in adjacency or target not in adjacency:
        return None
    if source == target:
        return [source]

    parents: Dict[str, Optional[str]] = {source: None}
    queue = deque([source])

    while queue:
        current = queue.popleft()
        for neighbor in adjacency[current]:
            if neighbor in parents:
                continue
            parents[neighbor] = current
            if neighbor == target:
                return _walk_back(parents, target)
            queue.append(neighbor)

    return None


def _walk_back(parents: Dict[str, Optional[str]], target: str) -> List[str]:
    path = [target]
    while parents[path[-1]] is not None:
        path.append(parents[path[-1]])
    path.reverse()
    return path


def all_pairs_shortest_paths(graph: GraphLike) -> Dict[Tuple[str, str], float]:
    """
    Floyd-Warshall distances between every ordered pair of nodes

    Unreachable pairs are ``math.inf``. Runs in O(n^3); a warning is logged
    for graphs above ``floyd_warshall_warn_nodes``.
    """
    nodes, adjacency = _as_adjacency(graph)
    n = len(nodes)
    if n > settings.floyd_warshall_warn_nodes:
        logger.warning(f"Floyd-Warshall on {n} nodes (O(n^3)), this may take a while")

    position = {node: i for i, node in enumerate(nodes)}
    dist = [[math.inf] * n for _ in range(n)]
    for i, node in enumerate(nodes):
        dist[i][i] = 0
        for successor in adjacency[node]:
            j = position[successor]
            if i != j:
                dist[i][j] = 1

    for k in range(n):
        row_k = dist[k]
        for i in range(n):
            d_ik = dist[i][k]
            if d_ik == math.inf:
                continue
            row_i = dist[i]
            for j in range(n):
                candidate = d_ik + row_k[j]
                if candidate < row_i[j]:
                    row_i[j] = candidate

    return {(a, b): dist[i][j] for i, a in enumerate(nodes) for j, b in enumerate(nodes)}


def serialize_distances(distances: Dict[Tuple[str, str], float]) -> List[DistanceEntry]:
    """Flatten a distance map for JSON; infinity becomes None"""
    return [
        DistanceEntry(
            source=source,
            target=target,
            distance=None if math.isinf(distance) else int(distance),
        )
        for (source, target), distance in distances.items()
    ]


def betweenness_centrality(graph: GraphLike) -> Dict[str, float]:
    """
    Exact betweenness centrality (Brandes' algorithm, directed, unnormalized)

    For every node v: sum over pairs (s, t) with s != v != t of the share of
    shortest s->t paths passing through v. O(V * E) for unweighted graphs.
    """
    nodes, adjacency = _as_adjacency(graph)
    centrality = dict.fromkeys(nodes, 0.0)

    for source in nodes:
        order: List[str] = []
        predecessors: Dict[str, List[str]] = {node: [] for node in nodes}
        sigma = dict.fromkeys(nodes, 0)
        sigma[source] = 1
        distance = {source: 0}
        queue = deque([source])

        while queue:
            v = queue.popleft()
            order.append(v)
            for w in adjacency[v]:
                if w not in distance:
                    distance[w] = distance[v] + 1
                    queue.append(w)
                if distance[w] == distance[v] + 1:
                    sigma[w] += sigma[v]
                    predecessors[w].append(v)

        delta = dict.fromkeys(nodes, 0.0)
        for w in reversed(order):
            for v in predecessors[w]:
                delta[v] += sigma[v] / sigma[w] * (1.0 + delta[w])
            if w != source:
                centrality[w] += delta[w]

    return centrality


def approximate_betweenness(graph: GraphLike) -> Dict[str, int]:
    """
    Path-counting betweenness approximation

    For each ordered pair (s, t) only the first shortest path found by BFS
    is considered, and each of its interior nodes gets one point. Ties
    between equally short paths are broken by adjacency order, so scores can
    differ from exact betweenness.
    """
    nodes, adjacency = _as_adjacency(graph)
    scores = dict.fromkeys(nodes, 0)

    for source in nodes:
        parents: Dict[str, Optional[str]] = {source: None}
        queue = deque([source])
        while queue:
            current = queue.popleft()
            for neighbor in adjacency[current]:
                if neighbor not in parents:
                    parents[neighbor] = current
                    queue.append(neighbor)

        for target in parents:
            if target == source:
                continue
            for interior in _walk_back(parents, target)[1:-1]:
                scores[interior] += 1

    return scores


def calculate_centrality(graph: GraphLike, method: str = "brandes") -> Dict[str, float]:
    """
    Betweenness centrality per node

    Args:
        method: "brandes" (exact) or "path_count" (approximation)
    """
    if method == "brandes":
        return betweenness_centrality(graph)
    if method == "path_count":
        return {node: float(score) for node, score in approximate_betweenness(graph).items()}
    raise ValueError(f"Unknown centrality method: {method}")


def graph_statistics(graph: GraphModel) -> GraphStatistics:
    """Node/edge counts, total output value and mean confirmations"""
    confirmations = [node.confirmations for node in graph.nodes if node.confirmations is not None]
    average = round(sum(confirmations) / len(confirmations), 1) if confirmations else 0.0

    return GraphStatistics(
        transaction_count=len(graph.nodes),
        edge_count=len(graph.edges),
        total_output_value=sum(node.total_output_value or 0 for node in graph.nodes),
        average_confirmations=average,
    )


ALGORITHMS = ("centrality", "cycles", "components", "shortest_paths")


def run_algorithm(name: str, graph: GraphLike) -> Any:
    """Run a named algorithm and return JSON-ready data"""
    if name == "centrality":
        return calculate_centrality(graph)
    if name == "cycles":
        return detect_cycles(graph)
    if name == "components":
        return [sorted(component) for component in strongly_connected_components(graph)]
    if name == "shortest_paths":
        return [
            entry.model_dump() for entry in serialize_distances(all_pairs_shortest_paths(graph))
        ]
    raise ValueError(f"Unknown algorithm: {name}")
