import networkx as nx
import pytest

from matching import (
    CompatibilityGraph,
    CompatibilityMode,
    GraphFrozen,
    IndexOutOfRange,
    InvalidLinkState,
    MatchState,
    NotPrecomputed,
)


def ring(n, capacity=15):
    return CompatibilityGraph.from_rings([n], capacity)


def path(n, capacity=15):
    city = CompatibilityGraph(n, capacity)
    for i in range(1, n):
        city.add_edge(i - 1, i)
    city.precompute_friends()
    return city


class TestCompatibilityGraph:
    def test_add_edge_is_symmetric(self):
        city = CompatibilityGraph(4)
        city.add_edge(0, 3)
        assert city.relation[0, 3] and city.relation[3, 0]
        assert not city.relation[0, 1]

    def test_add_cycle_builds_ring(self):
        city = CompatibilityGraph(5).add_cycle(0, 5)
        assert sorted(city.edges()) == [(0, 1), (0, 4), (1, 2), (2, 3), (3, 4)]

    def test_add_cycle_chains(self):
        city = CompatibilityGraph(10).add_cycle(0, 5).add_cycle(5, 10)
        city.precompute_friends()
        assert city.friends(0) == {1, 4}
        assert city.friends(5) == {6, 9}
        assert 5 not in city.friends(4)

    def test_add_cycle_small_rings(self):
        city = CompatibilityGraph(3).add_cycle(0, 1).add_cycle(1, 3)
        assert city.edges() == [(1, 2)]
        with pytest.raises(ValueError):
            city.add_cycle(2, 2)

    def test_friends_mirror_relation(self):
        city = CompatibilityGraph.from_networkx(nx.gnp_random_graph(12, 0.4, seed=3))
        for i in range(city.population):
            for j in range(city.population):
                assert city.relation[i, j] == city.relation[j, i]
                assert (j in city.friends(i)) == (i in city.friends(j))
                assert (j in city.friends(i)) == (i != j and bool(city.relation[i, j]))

    def test_friends_before_precompute(self):
        city = CompatibilityGraph(3)
        city.add_edge(0, 1)
        with pytest.raises(NotPrecomputed):
            city.friends(0)
        assert city.compute_friends(0) == {1}

    def test_friends_index_out_of_range(self):
        city = ring(5)
        with pytest.raises(IndexOutOfRange):
            city.friends(5)
        with pytest.raises(IndexOutOfRange):
            city.friends(15)
        with pytest.raises(IndexError):
            city.friends(-1)

    def test_edge_index_out_of_range(self):
        city = CompatibilityGraph(3, capacity=4)
        with pytest.raises(IndexOutOfRange):
            city.add_edge(0, 3)

    def test_population_above_capacity(self):
        with pytest.raises(IndexOutOfRange):
            CompatibilityGraph(16, capacity=15)

    def test_frozen_graph_rejects_changes(self):
        city = ring(4)
        with pytest.raises(GraphFrozen):
            city.add_edge(0, 2)
        with pytest.raises(GraphFrozen):
            city.precompute_friends()

    def test_from_networkx_keeps_edges(self):
        graph = nx.cycle_graph(6)
        graph.add_edge(2, 2)
        city = CompatibilityGraph.from_networkx(graph)
        assert city.population == 6
        assert city.edges() == sorted(tuple(sorted(edge)) for edge in nx.cycle_graph(6).edges)

    def test_from_networkx_rejects_bad_input(self):
        with pytest.raises(ValueError):
            CompatibilityGraph.from_networkx(nx.path_graph([1, 2, 3]))
        with pytest.raises(ValueError):
            CompatibilityGraph.from_networkx(nx.cycle_graph(6), capacity=5)

    def test_from_rings(self):
        city = CompatibilityGraph.from_rings([5, 5])
        assert city.population == 10
        assert city.is_frozen
        assert len(city.edges()) == 10
        with pytest.raises(ValueError):
            CompatibilityGraph.from_rings([10, 10])

    def test_empty_city(self):
        city = CompatibilityGraph(0)
        city.precompute_friends()
        assert city.is_frozen
        assert city.edges() == []


class TestMatchState:
    def test_requires_frozen_graphs(self):
        with pytest.raises(NotPrecomputed):
            MatchState(CompatibilityGraph(2), ring(3))

    def test_single_members_link(self):
        state = MatchState(CompatibilityGraph.from_rings([1]), CompatibilityGraph.from_rings([1]))
        assert state.try_link(0, 0)
        assert state.pairs() == [(0, 0)]
        state.unlink(0, 0)
        assert state.pairs() == []

    def test_link_is_kept_after_failed_check(self):
        state = MatchState(ring(4), ring(4))
        assert state.try_link(0, 0)
        # A1 ~ A0, but B2 is not a friend of B0
        assert state.try_link(1, 2) is False
        assert state.forward[1] == 2 and state.backward[2] == 1
        assert state.is_consistent()
        state.unlink(1, 2)
        assert state.forward[1] is None and state.backward[2] is None

    def test_directional_check(self):
        state = MatchState(path(3), ring(3))
        assert state.try_link(0, 0)
        assert state.try_link(1, 1)
        # A2 is only a friend of A1, B2 is a friend of B1
        assert state.try_link(2, 2)

    def test_symmetric_mode_is_stricter(self):
        # B is a triangle, A a path: B2 ~ B0 has no counterpart A2 ~ A0
        for mode, expected in ((CompatibilityMode.Directional, True), (CompatibilityMode.Symmetric, False)):
            state = MatchState(path(3), ring(3), mode=mode)
            assert state.try_link(0, 0)
            assert state.try_link(1, 1)
            assert state.try_link(2, 2) is expected

    def test_mode_from_string(self):
        assert MatchState(ring(3), ring(3), mode="Symmetric").mode == CompatibilityMode.Symmetric
        with pytest.raises(ValueError):
            MatchState(ring(3), ring(3), mode="sideways")

    def test_packed_hash_encoding(self):
        state = MatchState(ring(5), ring(5))
        assert state.bits_per_slot == 4
        state.try_link(0, 2)
        state.try_link(3, 4)
        assert state.packed_hash() == (2 + 1) + ((4 + 1) << 12)

    def test_packed_hash_is_order_independent(self):
        first = MatchState(ring(6), ring(6))
        second = MatchState(ring(6), ring(6))
        links = [(0, 1), (2, 3), (5, 0)]
        for pa, pb in links:
            first.try_link(pa, pb)
        for pa, pb in reversed(links):
            second.try_link(pa, pb)
        assert first.packed_hash() == second.packed_hash()
        assert first.forward == second.forward

        for pa, pb in links:
            first.unlink(pa, pb)
        assert first.packed_hash() == 0
        assert first.size == 0

    def test_packed_hash_distinguishes_states(self):
        state = MatchState(ring(15), ring(15))
        seen = set()
        for pa in range(15):
            for pb in range(15):
                state.try_link(pa, pb)
                seen.add(state.packed_hash())
                state.unlink(pa, pb)
        assert len(seen) == 15 * 15

    def test_link_occupied_slot(self):
        state = MatchState(ring(4), ring(4))
        state.try_link(0, 0)
        with pytest.raises(InvalidLinkState):
            state.try_link(0, 1)
        with pytest.raises(InvalidLinkState):
            state.try_link(1, 0)
        assert state.pairs() == [(0, 0)]

    def test_unlink_absent_link(self):
        state = MatchState(ring(4), ring(4))
        state.try_link(0, 0)
        with pytest.raises(InvalidLinkState):
            state.unlink(0, 1)
        with pytest.raises(InvalidLinkState):
            state.unlink(1, 1)

    def test_link_index_out_of_range(self):
        state = MatchState(ring(4), ring(3))
        with pytest.raises(IndexOutOfRange):
            state.try_link(4, 0)
        with pytest.raises(IndexOutOfRange):
            state.try_link(0, 3)

    def test_unlink_index_out_of_range(self):
        state = MatchState(ring(4, capacity=6), ring(3, capacity=6))
        # inside the slot arrays but outside the populations
        with pytest.raises(IndexOutOfRange):
            state.unlink(4, 0)
        with pytest.raises(IndexOutOfRange):
            state.unlink(0, 3)
        with pytest.raises(IndexOutOfRange):
            state.unlink(-1, 0)

    def test_linked_context_always_unlinks(self):
        state = MatchState(ring(4), ring(4))
        with state.linked(0, 1) as compatible:
            assert compatible
            assert state.forward[0] == 1
            assert state.backward[1] == 0
        assert state.pairs() == []

        with pytest.raises(KeyError):
            with state.linked(2, 2):
                raise KeyError("boom")
        assert state.pairs() == []
        assert state.packed_hash() == 0
