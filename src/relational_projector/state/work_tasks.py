"""Work-task state."""

from __future__ import annotations

from uuid import UUID

from relational_projector.events.models import WorkTask
from relational_projector.state.records import ChangeType, WorkTaskState


class WorkTaskStore:
    """Work tasks with a status. Tasks created without one are never tracked."""

    def __init__(self) -> None:
        self._by_id: dict[UUID, WorkTaskState] = {}

    def get(self, work_task_id: UUID) -> WorkTaskState | None:
        return self._by_id.get(work_task_id)

    def records(self) -> list[WorkTaskState]:
        return list(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def created(self, work_task_id: UUID, work_task: WorkTask) -> WorkTaskState | None:
        if not work_task.status:
            return None

        state = self._by_id.get(work_task_id)
        if state is None:
            state = WorkTaskState(id=work_task_id, change=ChangeType.NEW)
            self._by_id[work_task_id] = state
        else:
            state.change = ChangeType.UPDATED
        state.number = work_task.number
        state.status = work_task.status
        return state

    def status_changed(self, work_task_id: UUID, status: str | None) -> WorkTaskState | None:
        state = self._by_id.get(work_task_id)
        if state is None:
            return None
        state.status = status
        state.change = ChangeType.UPDATED
        return state
