from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Optional, Set, Tuple

import networkx as nx
import numpy as np

import config
from utils.utils import setup_logger

logger = setup_logger(__name__)


class MatchingError(RuntimeError):
    """Base class for contract violations of the graphs and the matching state."""


class IndexOutOfRange(MatchingError, IndexError):
    """An index outside ``[0, population)`` was passed to a graph or state operation."""


class NotPrecomputed(MatchingError):
    """Friend sets were requested before ``precompute_friends()``."""


class InvalidLinkState(MatchingError):
    """Linking an occupied slot or unlinking a link that does not exist."""


class GraphFrozen(MatchingError):
    """The graph was mutated after its friend sets were precomputed."""


class CompatibilityMode(Enum):
    """How strictly a new link must preserve friendships of already linked members."""
    Directional = "directional"
    Symmetric = "symmetric"

    @classmethod
    def parse(cls, value: "str | CompatibilityMode") -> "CompatibilityMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown compatibility mode: {value}") from None


class CompatibilityGraph:
    """
    The friendship relation of one city.

    The relation is kept as a symmetric boolean matrix of ``capacity x capacity``
    entries, of which only the first ``population`` rows and columns are used.
    Once all edges are added, ``precompute_friends`` freezes the graph and builds
    the adjacency sets read by the search.

    Attributes
    ----------
    capacity : int
        Upper bound on the population.
    population : int
        Number of active members, indexed ``0..population-1``.
    relation : np.ndarray
        Symmetric ``capacity x capacity`` boolean matrix.
    """
    def __init__(self, population: int, capacity: int = config.MAX_SIZE):
        if capacity <= 0:
            raise ValueError(f"Capacity must be positive, got {capacity}.")
        if not 0 <= population <= capacity:
            raise IndexOutOfRange(f"Population {population} outside [0, {capacity}].")
        self.capacity = capacity
        self.population = population
        self.relation = np.zeros((capacity, capacity), dtype=bool)
        self._friends: List[frozenset] = []
        self._frozen = False

    def __repr__(self):
        return f"CompatibilityGraph(population={self.population}, edges={len(self.edges())})"

    def _check_index(self, i: int):
        if not 0 <= i < self.population:
            raise IndexOutOfRange(f"Index {i} outside population {self.population} (capacity {self.capacity}).")

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def add_edge(self, i: int, j: int):
        """Make ``i`` and ``j`` friends. Callers must not pass ``i == j``."""
        if self.is_frozen:
            raise GraphFrozen("Cannot add an edge after precompute_friends().")
        self._check_index(i)
        self._check_index(j)
        self.relation[i, j] = True
        self.relation[j, i] = True

    def add_cycle(self, start: int, stop: int) -> "CompatibilityGraph":
        """
        Connect the members ``start..stop-1`` into a ring.

        Returns the graph itself, so several rings can be chained:
        ``CompatibilityGraph(10).add_cycle(0, 5).add_cycle(5, 10)``.
        """
        if stop <= start:
            raise ValueError(f"Empty ring: start={start}, stop={stop}.")
        if stop - 1 != start:
            self.add_edge(start, stop - 1)

        for i in range(start + 1, stop):
            self.add_edge(i, i - 1)
        return self

    def compute_friends(self, i: int) -> Set[int]:
        """Scan row ``i`` of the relation matrix; works before and after freezing."""
        self._check_index(i)
        return {int(j) for j in np.flatnonzero(self.relation[i]) if j != i}

    def precompute_friends(self):
        """
        Freeze the graph and build the friend set of every member.

        Must be called exactly once, after the last ``add_edge`` and before the
        first ``friends`` lookup.
        """
        if self.is_frozen:
            raise GraphFrozen("precompute_friends() was already called.")
        self._friends = [frozenset(self.compute_friends(i)) for i in range(self.population)]
        self._frozen = True
        logger.debug(f"Precomputed friends: population={self.population}, edges={len(self.edges())}")

    def friends(self, i: int) -> frozenset:
        if not self.is_frozen:
            raise NotPrecomputed("friends() called before precompute_friends().")
        self._check_index(i)
        return self._friends[i]

    def edges(self) -> List[Tuple[int, int]]:
        rows, cols = np.nonzero(np.triu(self.relation, k=1))
        return [(int(i), int(j)) for i, j in zip(rows, cols)]

    @classmethod
    def from_networkx(cls, graph: nx.Graph, capacity: int = config.MAX_SIZE) -> "CompatibilityGraph":
        """
        Build a frozen city from an undirected networkx graph.

        Nodes must be the integers ``0..n-1``; self loops are ignored.
        """
        nodes = sorted(graph.nodes)
        if nodes != list(range(len(nodes))):
            raise ValueError("Graph nodes must be the integers 0..n-1.")
        if len(nodes) > capacity:
            raise ValueError(f"Population {len(nodes)} exceeds capacity {capacity}.")
        city = cls(len(nodes), capacity)
        for i, j in graph.edges:
            if i != j:
                city.add_edge(i, j)
        city.precompute_friends()
        return city

    @classmethod
    def from_rings(cls, sizes: List[int], capacity: int = config.MAX_SIZE) -> "CompatibilityGraph":
        """Build a frozen city made of disjoint rings of the given sizes."""
        if any(size <= 0 for size in sizes):
            raise ValueError(f"Ring sizes must be positive, got {sizes}.")
        population = sum(sizes)
        if population > capacity:
            raise ValueError(f"Population {population} exceeds capacity {capacity}.")
        city = cls(population, capacity)
        start = 0
        for size in sizes:
            city.add_cycle(start, start + size)
            start += size
        city.precompute_friends()
        return city


class MatchState:
    """
    A partial pairing between the members of two frozen cities.

    ``forward[a]`` holds the B-partner of ``a`` and ``backward[b]`` the A-partner
    of ``b``; both are ``None`` for unpaired members and always describe the same
    partial bijection. ``packed_hash`` encodes the set of links as the sum of
    ``(b + 1) << (a * bits_per_slot)`` and is kept up to date on every
    link/unlink.

    Attributes
    ----------
    graph_a, graph_b : CompatibilityGraph
        The two cities. Both must be frozen.
    mode : CompatibilityMode
        Directional checks A-friends only, Symmetric checks both directions.
    bits_per_slot : int
        Width of one A-slot in the packed hash.
    """
    def __init__(self, graph_a: CompatibilityGraph, graph_b: CompatibilityGraph,
                 mode: "CompatibilityMode | str" = config.COMPATIBILITY_MODE):
        for name, graph in (("A", graph_a), ("B", graph_b)):
            if not graph.is_frozen:
                raise NotPrecomputed(f"City {name} must be frozen with precompute_friends().")
        self.graph_a = graph_a
        self.graph_b = graph_b
        self.mode = CompatibilityMode.parse(mode)
        self.forward: List[Optional[int]] = [None] * graph_a.capacity
        self.backward: List[Optional[int]] = [None] * graph_b.capacity
        self.bits_per_slot = max(graph_a.capacity, graph_b.capacity).bit_length()
        self._hash = 0
        self._size = 0

    def __repr__(self):
        return f"MatchState(mode={self.mode.value}, pairs={self.pairs()})"

    @property
    def size(self) -> int:
        return self._size

    def _slot(self, pa: int, pb: int) -> int:
        return (pb + 1) << (pa * self.bits_per_slot)

    def try_link(self, pa: int, pb: int) -> bool:
        """
        Link ``pa`` with ``pb`` and report whether the link preserves friendships.

        The link is recorded before the check and left in place whatever the
        outcome; the caller must ``unlink`` it when it is not kept.

        Parameters
        ----------
        pa : int
            Member of city A, currently unpaired.
        pb : int
            Member of city B, currently unpaired.

        Returns
        -------
        bool
            True if every already linked friend of ``pa`` is linked to a friend of
            ``pb`` (and, in symmetric mode, the other way round).
        """
        self.graph_a._check_index(pa)
        self.graph_b._check_index(pb)
        if self.forward[pa] is not None or self.backward[pb] is not None:
            raise InvalidLinkState(
                f"Cannot link ({pa}, {pb}): A{pa} -> {self.forward[pa]}, B{pb} <- {self.backward[pb]}."
            )

        self._hash += self._slot(pa, pb)
        self._size += 1
        self.forward[pa] = pb
        self.backward[pb] = pa

        friends_of_a = self.graph_a.friends(pa)
        friends_of_b = self.graph_b.friends(pb)

        for friend in friends_of_a:
            linked = self.forward[friend]
            if linked is not None and linked not in friends_of_b:
                return False

        if self.mode == CompatibilityMode.Symmetric:
            for friend in friends_of_b:
                linked = self.backward[friend]
                if linked is not None and linked not in friends_of_a:
                    return False
        return True

    def unlink(self, pa: int, pb: int):
        self.graph_a._check_index(pa)
        self.graph_b._check_index(pb)
        if self.forward[pa] != pb or self.backward[pb] != pa:
            raise InvalidLinkState(f"Cannot unlink ({pa}, {pb}): no such link.")

        self._hash -= self._slot(pa, pb)
        self._size -= 1
        self.forward[pa] = None
        self.backward[pb] = None

    @contextmanager
    def linked(self, pa: int, pb: int) -> Iterator[bool]:
        """Tentatively link ``pa`` and ``pb``; the link is removed on exit."""
        compatible = self.try_link(pa, pb)
        try:
            yield compatible
        finally:
            self.unlink(pa, pb)

    def packed_hash(self) -> int:
        return self._hash

    def pairs(self) -> List[Tuple[int, int]]:
        return [(a, b) for a, b in enumerate(self.forward) if b is not None]

    def is_consistent(self) -> bool:
        """Check that ``forward`` and ``backward`` describe the same bijection."""
        for a, b in enumerate(self.forward):
            if b is not None and self.backward[b] != a:
                return False
        for b, a in enumerate(self.backward):
            if a is not None and self.forward[a] != b:
                return False
        return sum(self._slot(a, b) for a, b in self.pairs()) == self._hash
