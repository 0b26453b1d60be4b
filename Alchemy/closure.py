"""Closure builder: resolves every element of the catalog in one session.

The result is the per-element record consumed by the book export: the plan
that crafts the element (or the fact that nothing can) and the elements it
unlocks through their selected recipes.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Set

from .catalog import Element
from .graph import RecipeGraph
from .resolver import BuildPlan, BuildStep, PathResolver, merge_plans
from .resolver_logging import LogLevel, ResolverLogger, create_logger


@dataclass(frozen=True)
class CatalogEntry:
    """Everything the book needs to know about one element."""
    element: Element
    plan: Optional[BuildPlan]  # None when the element is unreachable
    used_by: FrozenSet[Element] = frozenset()

    @property
    def is_reachable(self) -> bool:
        return self.plan is not None

    @property
    def selected_step(self) -> Optional[BuildStep]:
        """The final step of the plan, i.e. the recipe chosen for this element."""
        if self.plan is None:
            return None
        return self.plan.final_step


class ClosureBuilder:
    """
    Drives a PathResolver over the whole catalog.

    One resolver, and therefore one ResolutionCache, is reused for every
    element, so shared sub-plans are computed once per run.
    """

    def __init__(
        self,
        graph: RecipeGraph,
        resolver: Optional[PathResolver] = None,
        logger: Optional[ResolverLogger] = None,
    ):
        self._graph = graph
        self._logger = logger or create_logger(LogLevel.SILENT)
        self._resolver = resolver or PathResolver(graph, logger=self._logger)
        self._entries: Optional[Dict[Element, CatalogEntry]] = None

    @property
    def resolver(self) -> PathResolver:
        return self._resolver

    def build_all(self) -> Dict[Element, CatalogEntry]:
        """
        Resolve every element and derive what each one unlocks.

        Returns
        -------
        dict
            Mapping of Element -> CatalogEntry, in catalog order. Unreachable
            elements are included with ``plan=None``.
        """
        if self._entries is not None:
            return dict(self._entries)

        catalog = self._graph.catalog
        plans: Dict[str, Optional[BuildPlan]] = {}
        for element in catalog:
            plans[element.id] = self._resolver.try_resolve(element)

        # X is used by Y when Y's selected recipe (its final step) consumes X
        used_by: Dict[str, Set[str]] = {}
        for produced_id, plan in plans.items():
            step = plan.final_step if plan is not None else None
            if step is None:
                continue
            for ing_id in {step.ingredient_a, step.ingredient_b}:
                used_by.setdefault(ing_id, set()).add(produced_id)

        entries: Dict[Element, CatalogEntry] = {}
        for element in catalog:
            entries[element] = CatalogEntry(
                element=element,
                plan=plans[element.id],
                used_by=frozenset(catalog[k] for k in used_by.get(element.id, ())),
            )

        self._entries = entries
        self._logger.log_closure_summary(entries)
        return dict(entries)

    def completion_plan(self) -> BuildPlan:
        """
        One plan that discovers every reachable element of the catalog.

        Plans are merged in catalog order, so each element is crafted once,
        the first time any plan needs it.
        """
        entries = self.build_all()
        reachable: List[BuildPlan] = [e.plan for e in entries.values() if e.plan is not None]
        return merge_plans(reachable)
