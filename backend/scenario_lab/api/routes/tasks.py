from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ValidationError

from scenario_lab.models.task import TaskMessage, TaskSnapshot, TaskSubmission
from scenario_lab.services.task_runner import task_runner

router = APIRouter(prefix="/tasks", tags=["tasks"])


class TaskCreated(BaseModel):
    id: str


class TaskDetail(BaseModel):
    task: TaskSnapshot
    messages: list[TaskMessage]


@router.post("", response_model=TaskCreated, status_code=202)
def submit_task(submission: TaskSubmission):
    """Queue a sensitivity, simulation, solve or triad run in the background."""
    try:
        task_id = task_runner.submit(submission.kind, submission.payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    return TaskCreated(id=task_id)


@router.get("/{task_id}", response_model=TaskDetail)
def get_task(task_id: str):
    """Current status plus any messages posted since the last poll."""
    try:
        return TaskDetail(task=task_runner.get(task_id), messages=task_runner.messages(task_id))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")


@router.delete("/{task_id}", response_model=TaskSnapshot)
def cancel_task(task_id: str):
    try:
        return task_runner.cancel(task_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
