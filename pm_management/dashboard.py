"""State container tying the row source, aggregation and export selection together."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from .analytics.aggregation import TieBreak, aggregate, append_event
from .analytics.pivot import PivotRow, build_rows
from .client import RowSource
from .errors import AmbiguousTimestampError, FetchError
from .models import AssetSummary, CategoryGroup, EventSubmission, MaintenanceRow, PMId
from .selection import SelectionState, filter_available

logger = logging.getLogger(__name__)


class RequestFence:
    """Issues increasing tokens; only the most recently issued one is current."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._latest = 0

    def issue(self) -> int:
        self._latest = next(self._counter)
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest

    @property
    def latest(self) -> int:
        return self._latest


@dataclass(slots=True, frozen=True)
class DataScope:
    customer_id: str
    branch: str


class MaintenanceDashboard:
    """
    Owns the rows last fetched for a customer/branch, the category groups built
    from them, and the export selection.

    Groups are rebuilt wholesale whenever rows or the search text change. A
    rebuild keeps the selection but points it at the rebuilt summaries.
    """

    def __init__(
        self,
        source: RowSource,
        *,
        selection: SelectionState | None = None,
        tie_break: TieBreak | str = TieBreak.FIRST_WINS,
    ) -> None:
        self.source = source
        self.selection = selection if selection is not None else SelectionState()
        self.tie_break = TieBreak(tie_break)
        self.fence = RequestFence()
        self.scope: DataScope | None = None
        self.error: str | None = None
        self.search_text = ""
        self._rows: List[MaintenanceRow] = []
        self._groups: Dict[str, CategoryGroup] = {}

    @property
    def rows(self) -> List[MaintenanceRow]:
        return list(self._rows)

    @property
    def groups(self) -> Dict[str, CategoryGroup]:
        return self._groups

    async def load(self, customer_id: str, branch: str) -> bool:
        """
        Fetch rows for a customer/branch and rebuild the groups.

        Returns ``False`` when a newer load was issued while this one was in
        flight; its response (or failure) is then discarded.
        """

        token = self.fence.issue()
        try:
            rows = await self.source.fetch_rows(customer_id, branch)
        except FetchError as exc:
            if not self.fence.is_current(token):
                logger.debug("Ignoring failure of superseded request %d", token)
                return False
            logger.error("Failed to load PM rows for %s/%s: %s", customer_id, branch, exc)
            self.error = exc.message
            self.scope = DataScope(customer_id, branch)
            self._rows = []
            self._groups = {}
            return True

        if not self.fence.is_current(token):
            logger.debug("Discarding stale response %d (latest is %d)", token, self.fence.latest)
            return False

        rows = list(rows)
        scope = DataScope(customer_id, branch)
        try:
            full, groups = self._build(rows, self.search_text)
        except AmbiguousTimestampError as exc:
            logger.error("Cannot aggregate PM rows for %s/%s: %s", customer_id, branch, exc)
            self.error = str(exc)
            self.scope = scope
            self._rows = []
            self._groups = {}
            return True

        self.error = None
        self._commit(rows, full, groups, scope=scope)
        return True

    def set_rows(self, rows: List[MaintenanceRow], *, scope: DataScope | None = None) -> None:
        """
        Replace the rows directly, e.g. from a local snapshot.

        Aggregation errors propagate and leave the previous data in place.
        """

        rows = list(rows)
        full, groups = self._build(rows, self.search_text)
        self.fence.issue()
        self.error = None
        self._commit(rows, full, groups, scope=scope)

    def apply_search(self, search_text: str) -> None:
        search_text = search_text or ""
        full, groups = self._build(self._rows, search_text)
        self.search_text = search_text
        self._commit(self._rows, full, groups, scope=self.scope)

    def record_event(self, submission: EventSubmission, pm_id: PMId) -> None:
        """Fold a successfully submitted event into the loaded rows without refetching."""
        category = next((row.category for row in self._rows if row.asset_id == submission.asset_id), None)
        group = self._groups.get(category) if category is not None else None
        columns = group.checklist_columns if group is not None else []

        rows = list(self._rows)
        append_event(rows, submission, pm_id, columns=columns)
        full, groups = self._build(rows, self.search_text)
        self._commit(rows, full, groups, scope=self.scope)

    def pivot_rows(self, category: str) -> List[PivotRow]:
        group = self._groups.get(category)
        return build_rows(group) if group is not None else []

    def all_assets(self) -> List[AssetSummary]:
        return [summary for group in self._groups.values() for summary in group.assets.values()]

    def _build(
        self, rows: List[MaintenanceRow], search_text: str
    ) -> Tuple[Dict[str, CategoryGroup], Dict[str, CategoryGroup]]:
        """Return the unfiltered groups and the groups narrowed by ``search_text``."""
        full = aggregate(rows, tie_break=self.tie_break)
        if not search_text:
            return full, full

        groups: Dict[str, CategoryGroup] = {}
        for category, group in full.items():
            kept = filter_available(search_text, group.assets.values())
            if kept:
                groups[category] = CategoryGroup(
                    category=category,
                    assets={summary.asset_id: summary for summary in kept},
                    checklist_columns=group.checklist_columns,
                )
        return full, groups

    def _commit(
        self,
        rows: List[MaintenanceRow],
        full: Dict[str, CategoryGroup],
        groups: Dict[str, CategoryGroup],
        *,
        scope: DataScope | None,
    ) -> None:
        self.scope = scope
        self._rows = rows
        self._groups = groups
        self.selection.refresh(
            {summary.asset_id: summary for group in full.values() for summary in group.assets.values()}
        )
