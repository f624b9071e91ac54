"""
Progressive selection: solution -> modules -> system -> complete.

Solutions that do not need module configuration leave the sub-machine for
the flat catalog straight away. Going back keeps what was picked, as long as
the primary solution still lists it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from onboarding.catalog import line_items as li
from onboarding.catalog.line_items import LineItemCard
from onboarding.catalog.models import CatalogItem, Solution
from onboarding.core.errors import (
    INVALID_TRANSITION,
    NO_MODULE_SELECTED,
    NO_SOLUTION_SELECTED,
    NO_SYSTEM_SELECTED,
    NOT_SELECTABLE,
    NotFoundError,
    ValidationIssue,
)
from onboarding.core.logging_config import logger


class SelectionState(str, Enum):
    SOLUTION_SELECT = "solution_select"
    MODULE_SELECT = "module_select"
    SYSTEM_SELECT = "system_select"
    COMPLETE = "complete"
    FLAT_CATALOG = "flat_catalog"


_BACK = {
    SelectionState.MODULE_SELECT: SelectionState.SOLUTION_SELECT,
    SelectionState.SYSTEM_SELECT: SelectionState.MODULE_SELECT,
    SelectionState.COMPLETE: SelectionState.SYSTEM_SELECT,
    SelectionState.FLAT_CATALOG: SelectionState.SOLUTION_SELECT,
}


class ProgressiveSelectionFlow:
    def __init__(self, solutions: Sequence[Solution], catalog: Sequence[CatalogItem]):
        self.solutions: Dict[str, Solution] = {s.id: s for s in solutions}
        self.catalog: Dict[str, CatalogItem] = {i.id: i for i in catalog}
        self.state = SelectionState.SOLUTION_SELECT

        self.solution_ids: List[str] = []
        self.module_ids: List[str] = []
        self.system_id: Optional[str] = None
        self.cards: List[LineItemCard] = []

    def _log(self, **fields: Any):
        return logger.bind(state=self.state.value, **fields)

    def _issue(self, code: str, message: str, **meta: Any) -> ValidationIssue:
        issue = ValidationIssue(code, message, {"state": self.state.value, **meta})
        self._log(code=code).info("selection_rejected")
        return issue

    def _wrong_state(self, action: str) -> ValidationIssue:
        return self._issue(INVALID_TRANSITION, f"Cannot {action} in state {self.state.value}.", action=action)

    @property
    def primary_solution(self) -> Optional[Solution]:
        """First chosen solution that needs module configuration, if any."""
        for sid in self.solution_ids:
            if self.solutions[sid].requires_modules:
                return self.solutions[sid]
        return None

    # --- choices ---

    def choose_solutions(self, solution_ids: Sequence[str]) -> Optional[ValidationIssue]:
        if self.state != SelectionState.SOLUTION_SELECT:
            return self._wrong_state("choose solutions")
        unknown = [sid for sid in solution_ids if sid not in self.solutions]
        if unknown:
            raise NotFoundError(f"Unknown solution ids: {unknown}", {"solutionIds": unknown})
        before = self.primary_solution
        self.solution_ids = list(dict.fromkeys(solution_ids))
        if self.primary_solution != before:
            self._drop_unlisted_picks()
        return None

    def _drop_unlisted_picks(self) -> None:
        """Keep module and system picks only while the primary solution still lists them."""
        modules = {i.id for i in self._listed_in("module_category")}
        systems = {i.id for i in self._listed_in("system_category")}
        dropped = [i for i in self.module_ids if i not in modules]
        self.module_ids = [i for i in self.module_ids if i in modules]
        if self.system_id is not None and self.system_id not in systems:
            dropped.append(self.system_id)
            self.system_id = None
        if dropped:
            self._log(dropped=dropped).info("selection_picks_dropped")

    def toggle_module(self, item_id: str) -> Optional[ValidationIssue]:
        if self.state != SelectionState.MODULE_SELECT:
            return self._wrong_state("toggle a module")
        if item_id in self.module_ids:
            self.module_ids.remove(item_id)
            return None
        if item_id not in {i.id for i in self.selectable_items()}:
            return self._issue(NOT_SELECTABLE, f"{item_id} is not an available module.", itemId=item_id)
        self.module_ids.append(item_id)
        return None

    def choose_system(self, item_id: Optional[str]) -> Optional[ValidationIssue]:
        if self.state != SelectionState.SYSTEM_SELECT:
            return self._wrong_state("choose a system")
        if item_id is not None and item_id not in {i.id for i in self.selectable_items()}:
            return self._issue(NOT_SELECTABLE, f"{item_id} is not an available system.", itemId=item_id)
        self.system_id = item_id
        return None

    # --- catalog gating ---

    def _listed_in(self, category_attr: str) -> List[CatalogItem]:
        primary = self.primary_solution
        if primary is None:
            return []
        category = getattr(primary, category_attr)
        return [i for i in self.catalog.values() if i.category == category and i.listed_for(primary.id)]

    def selectable_items(self) -> List[CatalogItem]:
        if self.state == SelectionState.FLAT_CATALOG:
            return [
                i for i in self.catalog.values()
                if any(i.listed_for(sid) for sid in self.solution_ids)
            ]
        if self.state == SelectionState.MODULE_SELECT:
            return self._listed_in("module_category")
        if self.state == SelectionState.SYSTEM_SELECT:
            return self._listed_in("system_category")
        return []

    # --- transitions ---

    def advance(self) -> Optional[ValidationIssue]:
        state = self.state

        if state == SelectionState.SOLUTION_SELECT:
            if not self.solution_ids:
                return self._issue(NO_SOLUTION_SELECTED, "Choose at least one solution.")
            nxt = (
                SelectionState.MODULE_SELECT
                if self.primary_solution is not None
                else SelectionState.FLAT_CATALOG
            )
        elif state == SelectionState.MODULE_SELECT:
            if not self.module_ids:
                return self._issue(NO_MODULE_SELECTED, "Choose at least one module.")
            nxt = SelectionState.SYSTEM_SELECT
        elif state == SelectionState.SYSTEM_SELECT:
            if self.system_id is None:
                return self._issue(NO_SYSTEM_SELECTED, "Choose a system.")
            nxt = SelectionState.COMPLETE
        else:
            return self._wrong_state("advance")

        self.state = nxt
        if nxt == SelectionState.COMPLETE:
            self.cards = self.materialize()
        self._log(previous=state.value).info("selection_advanced")
        return None

    def back(self) -> Optional[ValidationIssue]:
        previous = _BACK.get(self.state)
        if previous is None:
            return self._wrong_state("go back")
        if self.state == SelectionState.COMPLETE:
            self.cards = []
        self.state = previous
        return None

    def materialize(self) -> List[LineItemCard]:
        """Fresh cards for the picked modules (in pick order) and the system."""
        ids = list(self.module_ids)
        if self.system_id is not None:
            ids.append(self.system_id)
        return [li.instantiate(self.catalog[i]) for i in ids]
