"""
Preference cycle detection.

Builds the winner -> loser graph from decisive votes and reports cycles
found by a path-based depth-first search.
"""

from collections.abc import Iterable, Sequence

from ..models import Candidate, CycleReport, Vote


class CycleDetector:
    """
    Path-based cycle enumeration over the win graph.

    The DFS runs on an explicit stack, so deep graphs cannot exhaust the
    interpreter's recursion limit. Only cycles reachable in traversal order
    are reported; callers need membership, not a full cycle basis.
    """

    @staticmethod
    def build_graph(candidates: Sequence[Candidate], votes: Iterable[Vote]) -> dict[str, dict[str, None]]:
        """
        Adjacency map winner -> ordered set of losers.

        Includes ids referenced only by votes so stale edges are still walked.
        """
        graph: dict[str, dict[str, None]] = {c.id: {} for c in candidates}
        for vote in votes:
            graph.setdefault(vote.left_id, {})
            graph.setdefault(vote.right_id, {})
            if vote.is_tie or vote.winner_id is None:
                continue
            loser_id = vote.loser_id
            assert loser_id is not None
            graph[vote.winner_id][loser_id] = None
        return graph

    def detect(self, candidates: Sequence[Candidate], votes: Iterable[Vote]) -> CycleReport:
        """Find cycles and the set of candidate ids that sit on any of them."""
        graph = self.build_graph(candidates, votes)

        visited = set[str]()
        on_path = set[str]()
        path = list[str]()
        cycles = list[list[str]]()

        for start in graph:
            if start in visited:
                continue

            # Each frame is (node, iterator over its remaining neighbours).
            visited.add(start)
            on_path.add(start)
            path.append(start)
            stack = [(start, iter(graph[start]))]

            while stack:
                node, neighbours = stack[-1]
                advanced = False
                for neighbour in neighbours:
                    if neighbour not in visited:
                        visited.add(neighbour)
                        on_path.add(neighbour)
                        path.append(neighbour)
                        stack.append((neighbour, iter(graph[neighbour])))
                        advanced = True
                        break
                    if neighbour in on_path:
                        cycles.append(path[path.index(neighbour):])
                if not advanced:
                    stack.pop()
                    on_path.discard(node)
                    path.pop()

        in_cycle = frozenset(node for cycle in cycles for node in cycle)
        return CycleReport(cycles=cycles, in_cycle=in_cycle)
