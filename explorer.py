from __future__ import annotations

from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Iterator, Optional, Tuple

import config
from matching import CompatibilityGraph, CompatibilityMode, InvalidLinkState, MatchState
from transposition import TranspositionTable
from utils.utils import setup_logger, timer

logger = setup_logger(__name__)


class MemoPolicy(Enum):
    """Which search results are written to the transposition table."""
    # every result, including those cut short by the caller's bound
    Always = "always"
    # only results whose adversary scan ran to the end
    Exhausted = "exhausted"

    @classmethod
    def parse(cls, value: "str | MemoPolicy") -> "MemoPolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown memo policy: {value}") from None


@contextmanager
def scan(queue: Deque[int], restore_order: bool = False) -> Iterator[Iterator[int]]:
    """
    Borrow every candidate of ``queue`` in turn.

    Each candidate is popped from the right end and put back on the left end
    once the caller moves on, so it is absent from the queue while the caller
    works with it. A scan that stops early leaves the queue rotated by the
    number of candidates taken, unless ``restore_order`` rotates it back.
    """
    taken = 0

    def candidates():
        nonlocal taken
        for _ in range(len(queue)):
            candidate = queue.pop()
            taken += 1
            try:
                yield candidate
            finally:
                queue.appendleft(candidate)

    iterator = candidates()
    try:
        yield iterator
    finally:
        iterator.close()
        if restore_order:
            queue.rotate(-taken)


@dataclass
class SearchResult:
    """Outcome of one top-level search."""

    depth: int
    calls: int
    table_entries: int = 0
    cache_hits: int = 0
    elapsed: float = 0.0


class Explorer:
    """
    Adversarial search for the guaranteed matching depth.

    The game alternates between two players. The adversary picks which pending
    member of city A is committed next; the matcher answers with a compatible,
    unused member of city B. ``explore`` returns the number of commitments the
    matcher can guarantee from the current state, i.e. the minimum over the
    adversary's choices of the maximum over the matcher's answers.

    Both scans are pruned. The matcher stops once its best answer reaches the
    adversary's current minimum, and the adversary stops once its minimum drops
    to the ``bound`` the caller already holds, because the caller cannot gain
    from a more precise value.

    Attributes
    ----------
    table : TranspositionTable | None
        Cache of previously explored states, ``None`` disables memoization.
    memo_policy : MemoPolicy
        Which results are cached.
    exact_bounds : bool
        Pass ``best - 1`` instead of ``best`` as the child's bound. The child is
        then only cut short when its value cannot raise the matcher's best, and
        the returned depth is the exact minimax value. Implies ``restore_order``.
    restore_order : bool
        Rotate the pending queues back after a scan stops early. By default a
        cut-short scan leaves its queue rotated, so the enclosing scan may visit
        some candidates twice and skip others; depths then depend on the order.
    calls : int
        Number of expanded invocations (cache hits are not counted).
    """
    def __init__(self, table: Optional[TranspositionTable] = None,
                 memo_policy: "MemoPolicy | str" = config.MEMO_POLICY,
                 exact_bounds: bool = config.EXACT_BOUNDS,
                 restore_order: bool = config.RESTORE_ORDER):
        self.table = table
        self.memo_policy = MemoPolicy.parse(memo_policy)
        self.exact_bounds = exact_bounds
        self.restore_order = restore_order or exact_bounds
        self.calls = 0

    def explore(self, state: MatchState, pending_a: Deque[int], pending_b: Deque[int], bound: int = 0) -> int:
        """
        Guaranteed number of further commitments from the current state.

        Parameters
        ----------
        state : MatchState
            Current partial pairing; left unchanged on return.
        pending_a, pending_b : deque
            Unpaired members of each city. They hold the same members on return,
            in the same order when ``restore_order`` is set.
        bound : int
            Depth the caller already holds. Once the result is known to be at
            most ``bound``, the search may stop with any value ``<= bound``.

        Returns
        -------
        int
            A depth in ``[0, capacity]``.
        """
        key = state.packed_hash()
        if self.table is not None:
            cached = self.table.get(key)
            if cached is not None:
                return cached

        self.calls += 1

        running_min, exhausted = self._adversary_response(state, pending_a, pending_b, bound)
        if running_min is None or running_min > state.graph_a.capacity:
            result = 0
        else:
            result = running_min

        if self.table is not None and (exhausted or self.memo_policy == MemoPolicy.Always):
            self.table.store(key, result)
        return result

    def _adversary_response(self, state: MatchState, pending_a: Deque[int], pending_b: Deque[int],
                            bound: int) -> Tuple[Optional[int], bool]:
        """
        Minimum over the pending A-members of the matcher's best answer.

        Returns the running minimum (``None`` when there is no A-member left)
        and whether every A-member was tried.
        """
        running_min = None
        remaining = len(pending_a)
        with scan(pending_a, self.restore_order) as candidates:
            for a in candidates:
                remaining -= 1
                best_for_a = self._matcher_response(state, a, pending_a, pending_b, running_min)
                running_min = best_for_a if running_min is None else min(running_min, best_for_a)
                if running_min <= bound:
                    return running_min, remaining == 0
        return running_min, True

    def _matcher_response(self, state: MatchState, a: int, pending_a: Deque[int], pending_b: Deque[int],
                          running_min: Optional[int]) -> int:
        """Maximum over the pending B-members of ``1 + explore`` after linking them with ``a``."""
        best_for_a = 0
        with scan(pending_b, self.restore_order) as candidates:
            for b in candidates:
                with state.linked(a, b) as compatible:
                    if not compatible:
                        continue
                    child_bound = best_for_a - 1 if self.exact_bounds else best_for_a
                    best_for_a = max(best_for_a, 1 + self.explore(state, pending_a, pending_b, child_bound))
                if running_min is not None and best_for_a >= running_min:
                    break
        return best_for_a


@timer
def run_search(explorer: Explorer, state: MatchState, pending_a: Deque[int], pending_b: Deque[int]) -> int:
    return explorer.explore(state, pending_a, pending_b, 0)


def guaranteed_depth(graph_a: CompatibilityGraph, graph_b: CompatibilityGraph,
                     mode: "CompatibilityMode | str" = config.COMPATIBILITY_MODE,
                     memoize: bool = config.MEMOIZATION,
                     max_entries: int = config.TABLE_MAX_ENTRIES,
                     memo_policy: "MemoPolicy | str" = config.MEMO_POLICY,
                     exact_bounds: bool = config.EXACT_BOUNDS,
                     restore_order: bool = config.RESTORE_ORDER) -> SearchResult:
    """
    Search the guaranteed matching depth between two frozen cities.

    Parameters
    ----------
    graph_a, graph_b : CompatibilityGraph
        City A, whose members are committed by the adversary, and city B.
    mode : CompatibilityMode | str
        ``"directional"`` or ``"symmetric"``.
    memoize : bool
        Use a transposition table of at most ``max_entries`` states.
    memo_policy : MemoPolicy | str
        ``"always"`` or ``"exhausted"``, see ``MemoPolicy``.
    exact_bounds, restore_order : bool
        See ``Explorer``.

    Returns
    -------
    SearchResult
        The depth, the number of expanded invocations and table statistics.
    """
    state = MatchState(graph_a, graph_b, mode)
    pending_a = deque(range(graph_a.population))
    pending_b = deque(range(graph_b.population))
    table = TranspositionTable(max_entries) if memoize else None
    explorer = Explorer(table, memo_policy, exact_bounds, restore_order)

    logger.debug(
        f"Search start: |A|={graph_a.population}, |B|={graph_b.population}, mode={state.mode.value}, "
        f"memoize={memoize}, policy={explorer.memo_policy.value}, exact_bounds={exact_bounds}, restore_order={explorer.restore_order}"
    )
    depth, elapsed = run_search(explorer, state, pending_a, pending_b)

    if state.size or not state.is_consistent() \
            or sorted(pending_a) != list(range(graph_a.population)) \
            or sorted(pending_b) != list(range(graph_b.population)):
        raise InvalidLinkState(f"Search did not unwind: pairs={state.pairs()}")

    result = SearchResult(
        depth=depth,
        calls=explorer.calls,
        table_entries=len(table) if table is not None else 0,
        cache_hits=table.hits if table is not None else 0,
        elapsed=elapsed,
    )
    logger.debug(f"Search end: {result}")
    return result
