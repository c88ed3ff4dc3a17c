import networkx as nx
import random
from typing import List, Optional


class Generator:
    """
    Abstract base class for friendship network generators.

    Generated networks are undirected, with nodes ``0..num_nodes-1``.
    """
    def __init__(self, num_nodes: int):
        if num_nodes < 0:
            raise ValueError("Number of nodes must be non-negative.")
        self.num_nodes = num_nodes

    def generate_network(self) -> nx.Graph:
        """Generates a single network. Must be implemented by subclasses."""
        raise NotImplementedError("Subclasses should implement this method!")

    def generate_networks(self, n: int) -> List[nx.Graph]:
        """Generates a list of n independent networks."""
        if n <= 0:
            return []
        return [self.generate_network() for _ in range(n)]


class RingGenerator(Generator):
    """
    Disjoint union of rings, e.g. ``RingGenerator([5, 5])`` is two 5-rings on
    nodes 0..4 and 5..9. A ring of one node has no edge, a ring of two nodes a
    single edge.
    """
    def __init__(self, ring_sizes: List[int]):
        if any(size <= 0 for size in ring_sizes):
            raise ValueError(f"Ring sizes must be positive, got {ring_sizes}.")
        super().__init__(sum(ring_sizes))
        self.ring_sizes = list(ring_sizes)

    def generate_network(self) -> nx.Graph:
        graph = nx.Graph()
        graph.add_nodes_from(range(self.num_nodes))
        start = 0
        for size in self.ring_sizes:
            if size > 1:
                nx.add_cycle(graph, range(start, start + size))
            start += size
        return graph


class ERGenerator(Generator):
    """
    Generates Erdős-Rényi (ER) friendship networks with a given average degree.
    """
    def __init__(self, num_nodes: int, average_degree: float, seed: Optional[int] = None):
        super().__init__(num_nodes)
        if average_degree < 0:
            raise ValueError("Average degree must be non-negative.")
        self.average_degree = average_degree
        self.rng = random.Random(seed)

    def generate_network(self) -> nx.Graph:
        graph = nx.Graph()
        graph.add_nodes_from(range(self.num_nodes))
        if self.num_nodes <= 1:
            return graph
        p = min(1.0, self.average_degree / (self.num_nodes - 1))
        for i in range(self.num_nodes):
            for j in range(i + 1, self.num_nodes):
                if self.rng.random() < p:
                    graph.add_edge(i, j)
        return graph
