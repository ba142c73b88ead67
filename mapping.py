"""
SOV Activity Mapping
====================
Groups extracted SOV items into billing activities. An item belongs to at
most one activity; SovItem.assigned mirrors whether it is currently placed.
"""

from dataclasses import dataclass, field
from typing import Optional

from activity_codes import activity_label, normalize_activity_code
from engine import SovItem


@dataclass
class Activity:
    activity_id: int
    name: str
    code: Optional[str] = None
    item_ids: list[int] = field(default_factory=list)

    @property
    def label(self) -> str:
        if self.code:
            return activity_label(self.code)
        return self.name or "Unnamed Activity"


class ActivityMapping:
    """In-memory item -> activity assignment for one conversion session."""

    def __init__(self, items: list[SovItem]):
        self.items = items
        self._items_by_id = {item.id: item for item in items}
        self.activities: list[Activity] = []
        self._activity_counter = 0
        self.add_activity("Activity 1")

    # ── Activities ───────────────────────────────────────────────────────

    def add_activity(self, name: Optional[str] = None, code: Optional[str] = None) -> Activity:
        self._activity_counter += 1
        activity = Activity(
            activity_id=self._activity_counter,
            name=name or f"Activity {self._activity_counter}",
            code=normalize_activity_code(code) if code else None,
        )
        self.activities.append(activity)
        return activity

    def get_activity(self, activity_id: int) -> Activity:
        for activity in self.activities:
            if activity.activity_id == activity_id:
                return activity
        raise KeyError(f"Activity {activity_id} not found")

    def get_item(self, item_id: int) -> SovItem:
        try:
            return self._items_by_id[item_id]
        except KeyError:
            raise KeyError(f"SOV item {item_id} not found") from None

    def set_code(self, activity_id: int, code: Optional[str]) -> Activity:
        activity = self.get_activity(activity_id)
        activity.code = normalize_activity_code(code) if code else None
        return activity

    def remove_activity(self, activity_id: int) -> None:
        """Delete an activity and release its items back to the unassigned pool."""
        activity = self.get_activity(activity_id)
        for item_id in activity.item_ids:
            self._items_by_id[item_id].assigned = False
        self.activities.remove(activity)

    # ── Assignment ───────────────────────────────────────────────────────

    def assign(self, item_id: int, activity_id: int) -> bool:
        """Place an unassigned item into an activity. Returns False if the
        item already belongs to an activity (it is not moved)."""
        item = self.get_item(item_id)
        activity = self.get_activity(activity_id)
        if item.assigned:
            return False
        activity.item_ids.append(item_id)
        item.assigned = True
        return True

    def unassign(self, item_id: int, activity_id: int) -> bool:
        item = self.get_item(item_id)
        activity = self.get_activity(activity_id)
        if item_id not in activity.item_ids:
            return False
        activity.item_ids.remove(item_id)
        item.assigned = False
        return True

    def assign_all(self, activity_id: Optional[int] = None) -> int:
        """Put every unassigned item into one activity (the first by default).
        Returns the number of items added."""
        if not self.activities:
            raise ValueError("No activity available. Please add an activity first.")
        activity = self.get_activity(activity_id) if activity_id is not None else self.activities[0]

        count = 0
        for item in self.unassigned_items():
            activity.item_ids.append(item.id)
            item.assigned = True
            count += 1
        return count

    # ── Queries ──────────────────────────────────────────────────────────

    def unassigned_items(self) -> list[SovItem]:
        return [item for item in self.items if not item.assigned]

    def activity_items(self, activity_id: int) -> list[SovItem]:
        activity = self.get_activity(activity_id)
        return [self._items_by_id[item_id] for item_id in activity.item_ids]

    def activity_total(self, activity_id: int) -> float:
        return sum(item.this_billing_value for item in self.activity_items(activity_id))

    def non_empty_activities(self) -> list[Activity]:
        return [activity for activity in self.activities if activity.item_ids]

    def to_dict(self) -> list[dict]:
        return [
            {
                "activity_id": activity.activity_id,
                "name": activity.name,
                "code": activity.code,
                "label": activity.label,
                "item_ids": list(activity.item_ids),
                "total": self.activity_total(activity.activity_id),
            }
            for activity in self.activities
        ]
