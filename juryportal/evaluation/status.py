# juryportal/evaluation/status.py
from enum import Enum


class EvaluationStatus(Enum):
    IN_PROGRESS = "in_progress"
    GROUP_SUBMITTED = "group_submitted"
    ALL_SUBMITTED = "all_submitted"


STATUS_VALUES = [s.value for s in EvaluationStatus]

EDITING_FLAG = "editing"

# Precedence used when several rows exist for one group
STATUS_PRIORITY = {
    EvaluationStatus.ALL_SUBMITTED.value: 3,
    EvaluationStatus.GROUP_SUBMITTED.value: 2,
    EvaluationStatus.IN_PROGRESS.value: 1,
}

# Cosmetic row highlight handed to the record store; never read back
STATUS_HIGHLIGHT = {
    EvaluationStatus.IN_PROGRESS.value: "#fef9c3",
    EvaluationStatus.GROUP_SUBMITTED.value: "#dcfce7",
    EvaluationStatus.ALL_SUBMITTED.value: "#bbf7d0",
}


def highlight_for(status):
    return STATUS_HIGHLIGHT.get(status)


def priority_of(status):
    return STATUS_PRIORITY.get(str(status or "").strip(), 0)
