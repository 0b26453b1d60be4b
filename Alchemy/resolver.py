"""Path resolver: derives a valid, cycle-free build order for one element.

The search is a memoized depth-first traversal over the recipe graph with a
three-state tag per element (in progress, resolved, unreachable). Recipes
are tried in registration order and the first one whose ingredients can
both be obtained wins; no attempt is made to find a globally shorter plan.

The traversal keeps its own stack of frames instead of recursing, so long
recipe chains never run into the interpreter's recursion limit.

An element that fails only because some ancestor is still in progress is
tagged as blocked and parked on the frame of its deepest blocker. While that
frame is open the tag answers every further lookup. When the frame closes
its parked elements are settled in one batch, much like Tarjan's algorithm
pops a strongly connected component: if the blocker resolved they are
released to be searched again, otherwise they move down to the next blocker
or become unreachable. Each element is therefore explored a bounded number
of times per top-level call, and no outcome depends on query order.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    NamedTuple,
    Optional,
    Set,
    Tuple,
    Union,
)

from .catalog import ElementRef, Recipe, element_id
from .errors import Unreachable
from .graph import RecipeGraph
from .resolver_logging import LogLevel, ResolverLogger, create_logger


class BuildStep(NamedTuple):
    """Combine two already available elements to obtain a third."""
    ingredient_a: str
    ingredient_b: str
    produced: str

    def consumes(self, ref: ElementRef) -> bool:
        key = element_id(ref)
        return key == self.ingredient_a or key == self.ingredient_b


@dataclass(frozen=True)
class BuildPlan:
    """
    Ordered, non-redundant sequence of crafting steps.

    Every ingredient of a step is either available from the start or the
    output of a strictly earlier step, and no element is produced twice.
    """
    steps: Tuple[BuildStep, ...] = ()

    def __iter__(self) -> Iterator[BuildStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __getitem__(self, index: int) -> BuildStep:
        return self.steps[index]

    @property
    def final_step(self) -> Optional[BuildStep]:
        return self.steps[-1] if self.steps else None

    def produced(self) -> Tuple[str, ...]:
        """Ids of the elements crafted by the plan, in order."""
        return tuple(step.produced for step in self.steps)

    def consumed(self) -> FrozenSet[str]:
        """Ids of every element used as an ingredient somewhere in the plan."""
        return frozenset(
            key for step in self.steps for key in (step.ingredient_a, step.ingredient_b)
        )


EMPTY_PLAN = BuildPlan()


def merge_plans(plans: Iterable[BuildPlan]) -> BuildPlan:
    """
    Concatenate plans, dropping any step whose output was already produced.

    Each input plan must be valid on its own; the result is then valid too,
    since a skipped step's output is always available from an earlier one.
    """
    steps: List[BuildStep] = []
    seen: Set[str] = set()
    for plan in plans:
        for step in plan:
            if step.produced in seen:
                continue
            seen.add(step.produced)
            steps.append(step)
    return BuildPlan(tuple(steps))


# =============================================================================
# Resolution cache
# =============================================================================

class NodeState(Enum):
    """Per-element tag of a resolution session."""
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    UNREACHABLE = "unreachable"
    BLOCKED = "blocked"  # Failed while an ancestor is in progress; settled when it closes


class ResolutionCache:
    """
    Mutable per-session state of a PathResolver.

    Absent elements have not been visited (or were released after failing
    only because an ancestor was in progress). BLOCKED entries only exist
    while a search is running. One cache must not be shared between
    concurrently running resolvers.
    """

    def __init__(self):
        self._states: Dict[str, NodeState] = {}
        self._plans: Dict[str, BuildPlan] = {}
        self._blockers: Dict[str, FrozenSet[str]] = {}

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, key: object) -> bool:
        return key in self._states

    def state(self, key: str) -> Optional[NodeState]:
        return self._states.get(key)

    def plan(self, key: str) -> Optional[BuildPlan]:
        return self._plans.get(key)

    def mark_in_progress(self, key: str) -> None:
        self._states[key] = NodeState.IN_PROGRESS

    def blockers(self, key: str) -> FrozenSet[str]:
        """In-progress elements a BLOCKED element is waiting on."""
        return self._blockers.get(key, frozenset())

    def mark_resolved(self, key: str, plan: BuildPlan) -> None:
        self._states[key] = NodeState.RESOLVED
        self._plans[key] = plan
        self._blockers.pop(key, None)

    def mark_unreachable(self, key: str) -> None:
        self._states[key] = NodeState.UNREACHABLE
        self._plans.pop(key, None)
        self._blockers.pop(key, None)

    def mark_blocked(self, key: str, blockers: FrozenSet[str]) -> None:
        self._states[key] = NodeState.BLOCKED
        self._plans.pop(key, None)
        self._blockers[key] = blockers

    def forget(self, key: str) -> None:
        self._states.pop(key, None)
        self._plans.pop(key, None)
        self._blockers.pop(key, None)

    def in_progress(self) -> FrozenSet[str]:
        return frozenset(k for k, s in self._states.items() if s is NodeState.IN_PROGRESS)

    def count(self, state: NodeState) -> int:
        return sum(1 for s in self._states.values() if s is state)

    def clear(self) -> None:
        self._states.clear()
        self._plans.clear()
        self._blockers.clear()


# =============================================================================
# Search
# =============================================================================

@dataclass(frozen=True)
class _Blocked:
    """A failed lookup; ``blockers`` are the in-progress elements it ran into."""
    blockers: FrozenSet[str] = frozenset()


_Outcome = Union[BuildPlan, _Blocked]


@dataclass
class _Frame:
    """One element being explored on the search stack."""
    element: str
    recipes: Tuple[Recipe, ...]
    index: int = 0
    plans: List[BuildPlan] = field(default_factory=list)
    blockers: Set[str] = field(default_factory=set)
    result: Optional[BuildPlan] = None
    parked: List[str] = field(default_factory=list)  # BLOCKED elements settled when this frame closes

    @property
    def recipe(self) -> Recipe:
        return self.recipes[self.index]

    @property
    def pending(self) -> str:
        """Next ingredient of the current recipe still to be obtained."""
        return self.recipe.ingredients[len(self.plans)]

    def reject(self, blockers: FrozenSet[str]) -> None:
        self.blockers |= blockers
        self.index += 1
        self.plans = []


class PathResolver:
    """
    Computes BuildPlans over a RecipeGraph, memoizing every outcome.

    Parameters
    ----------
    graph : RecipeGraph
        The graph to search. Shared read-only.
    available : iterable of element or id, optional
        Elements the player already owns. Like base elements they resolve
        to the empty plan and are never crafted again.
    cache : ResolutionCache, optional
        Session cache. A fresh one is created when omitted.
    logger : ResolverLogger, optional
        Logger for search decisions. Silent when omitted.
    """

    def __init__(
        self,
        graph: RecipeGraph,
        available: Iterable[ElementRef] = (),
        cache: Optional[ResolutionCache] = None,
        logger: Optional[ResolverLogger] = None,
    ):
        self._graph = graph
        self._catalog = graph.catalog
        self._available = frozenset(element_id(ref) for ref in available)
        self.cache = cache if cache is not None else ResolutionCache()
        self._logger = logger or create_logger(LogLevel.SILENT)

    @property
    def graph(self) -> RecipeGraph:
        return self._graph

    @property
    def available(self) -> FrozenSet[str]:
        return self._available

    def is_available(self, ref: ElementRef) -> bool:
        """True for base elements and elements the player already owns."""
        key = element_id(ref)
        return key in self._available or self._graph.is_base(key)

    def resolve(self, target: ElementRef) -> BuildPlan:
        """
        Return the plan that crafts ``target`` from available elements.

        Raises
        ------
        ElementNotFound
            If ``target`` is not part of the catalog.
        Unreachable
            If no cycle-free chain of recipes leads to ``target``.
        """
        element = self._catalog[target]
        outcome = self._lookup(element.id)
        if outcome is None:
            outcome = self._search(element.id)
        if isinstance(outcome, BuildPlan):
            return outcome
        raise Unreachable(element.id, element.name)

    def try_resolve(self, target: ElementRef) -> Optional[BuildPlan]:
        """Like resolve, but return None instead of raising Unreachable."""
        try:
            return self.resolve(target)
        except Unreachable:
            return None

    def _lookup(self, key: str) -> Optional[_Outcome]:
        """Return the known outcome for ``key``, or None if it must be searched."""
        if self.is_available(key):
            return EMPTY_PLAN
        state = self.cache.state(key)
        if state is NodeState.RESOLVED:
            return self.cache.plan(key)
        if state is NodeState.UNREACHABLE:
            return _Blocked()
        if state is NodeState.IN_PROGRESS:
            return _Blocked(frozenset((key,)))
        if state is NodeState.BLOCKED:
            return _Blocked(self.cache.blockers(key))
        return None

    def _search(self, target: str) -> _Outcome:
        depth_limit = len(self._graph)
        stack = [self._open(target)]
        positions = {target: 0}  # In-progress element -> index of its frame
        outcome: Optional[_Outcome] = None

        while True:
            frame = stack[-1]
            if outcome is not None:
                self._accept(frame, outcome)
                outcome = None

            child = self._advance(frame)
            if child is not None:
                assert len(stack) < depth_limit, (
                    f"search depth exceeded the element count ({depth_limit})"
                )
                positions[child] = len(stack)
                stack.append(self._open(child))
                continue

            stack.pop()
            del positions[frame.element]
            outcome = self._close(frame, stack, positions)
            if not stack:
                return outcome

    def _open(self, key: str) -> _Frame:
        self.cache.mark_in_progress(key)
        self._logger.log_resolve_start(self._catalog.name_of(key))
        return _Frame(element=key, recipes=self._graph.recipes_for(key))

    def _advance(self, frame: _Frame) -> Optional[str]:
        """
        Move the frame forward until it needs an unexplored ingredient.

        Returns the id of that ingredient, or None once the frame has either
        found a plan (``frame.result``) or run out of recipes.
        """
        while frame.index < len(frame.recipes):
            recipe = frame.recipe
            if len(frame.plans) == len(recipe.ingredients):
                last = BuildStep(recipe.ingredient_a, recipe.ingredient_b, frame.element)
                frame.result = merge_plans([*frame.plans, BuildPlan((last,))])
                return None
            found = self._lookup(frame.pending)
            if found is None:
                return frame.pending
            self._accept(frame, found)
        return None

    def _accept(self, frame: _Frame, outcome: _Outcome) -> None:
        """Feed the outcome for ``frame.pending`` back into the frame."""
        if isinstance(outcome, BuildPlan):
            frame.plans.append(outcome)
            return
        if self._logger.enabled_for(LogLevel.TRACE):
            pending = self._catalog.name_of(frame.pending)
            if outcome.blockers:
                reason = "cycle through " + ", ".join(
                    sorted(self._catalog.name_of(k) for k in outcome.blockers)
                )
            else:
                reason = f"{pending} is unreachable"
            recipe = frame.recipe
            combination = (
                f"{self._catalog.name_of(recipe.ingredient_a)} + "
                f"{self._catalog.name_of(recipe.ingredient_b)}"
            )
            self._logger.log_recipe_rejected(
                self._catalog.name_of(frame.element), combination, reason
            )
        frame.reject(outcome.blockers)

    def _close(self, frame: _Frame, stack: List[_Frame], positions: Dict[str, int]) -> _Outcome:
        """Record the frame's outcome and settle the elements parked on it."""
        name = self._catalog.name_of(frame.element)
        if frame.result is not None:
            self.cache.mark_resolved(frame.element, frame.result)
            # Parked failures assumed this element could not be made.
            for key in frame.parked:
                self.cache.forget(key)
            self._logger.log_element_resolved(name, len(frame.result))
            return frame.result

        blockers = frozenset(frame.blockers - {frame.element})
        self._settle(frame.element, blockers, stack, positions)
        for key in frame.parked:
            inherited = (self.cache.blockers(key) - {frame.element}) | blockers
            self._settle(key, inherited, stack, positions)
        self._logger.log_element_unreachable(name, permanent=not blockers)
        return _Blocked(blockers)

    def _settle(
        self,
        key: str,
        blockers: FrozenSet[str],
        stack: List[_Frame],
        positions: Dict[str, int],
    ) -> None:
        """Mark a failure unreachable, or park it on its deepest open blocker."""
        if not blockers:
            self.cache.mark_unreachable(key)
            return
        self.cache.mark_blocked(key, blockers)
        stack[max(positions[b] for b in blockers)].parked.append(key)
