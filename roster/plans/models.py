"""Plan record types.

Serialized as camelCase JSON::

    {
      "createdAt": "...",
      "personCountBefore": 1234,
      "summary": {"totalActions": 2, "byPass": {"0": {"count": 1, "type": "delete", "label": "junk removal"}}},
      "actions": [{"id": 1, "pass": 0, "type": "delete", "reason": "junk name",
                   "targets": [{"id": 7, "name": "AUSA"}], "status": "pending"}]
    }
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ActionType = Literal["delete", "merge"]
ActionStatus = Literal["pending", "rejected", "executed", "skipped"]

STATUS_PENDING = "pending"
STATUS_REJECTED = "rejected"
STATUS_EXECUTED = "executed"
STATUS_SKIPPED = "skipped"

# pass → (type, label) as reported in the plan summary
PASS_LABELS: dict[int, tuple[str, str]] = {
    0: ("delete", "junk removal"),
    1: ("merge", "exact normalized"),
    2: ("merge", "single-word evidence"),
    3: ("delete", "single-word cleanup"),
    4: ("mixed", "key figure variants"),
    5: ("merge", "middle-initial"),
    6: ("merge", "OCR/nickname"),
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PersonRef(_CamelModel):
    id: int
    name: str


class DeduplicationAction(_CamelModel):
    id: int
    pass_: int = Field(alias="pass", ge=0, le=6)
    type: ActionType
    reason: str
    targets: list[PersonRef] | None = None
    canonical: PersonRef | None = None
    duplicates: list[PersonRef] | None = None
    evidence: str | None = None
    status: ActionStatus = STATUS_PENDING


class PassSummary(_CamelModel):
    count: int
    type: str
    label: str


class PlanSummary(_CamelModel):
    total_actions: int
    by_pass: dict[str, PassSummary] = Field(default_factory=dict)


class DeduplicationPlan(_CamelModel):
    created_at: datetime
    person_count_before: int
    summary: PlanSummary
    actions: list[DeduplicationAction] = Field(default_factory=list)

    @classmethod
    def from_actions(cls, actions: list[DeduplicationAction], person_count_before: int) -> DeduplicationPlan:
        by_pass: dict[str, PassSummary] = {}
        for action in actions:
            key = str(action.pass_)
            if key not in by_pass:
                type_, label = PASS_LABELS[action.pass_]
                by_pass[key] = PassSummary(count=0, type=type_, label=label)
            by_pass[key].count += 1

        return cls(
            created_at=datetime.now(timezone.utc),
            person_count_before=person_count_before,
            summary=PlanSummary(total_actions=len(actions), by_pass=by_pass),
            actions=actions,
        )

    def status_counts(self) -> Counter:
        return Counter(a.status for a in self.actions)

    def pending(self) -> list[DeduplicationAction]:
        return [a for a in self.actions if a.status == STATUS_PENDING]

    def get_action(self, action_id: int) -> DeduplicationAction:
        for action in self.actions:
            if action.id == action_id:
                return action
        raise KeyError(f"Action #{action_id} not found in plan")
