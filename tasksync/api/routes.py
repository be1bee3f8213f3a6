"""
Task routes.

Every handler is a plain ``def`` so FastAPI runs it in its threadpool; storage
access is serialized through the lock created by ``create_app``.
"""
import logging
from typing import List, Optional

import pydantic
from fastapi import APIRouter, Query, Request
from fastapi.responses import PlainTextResponse

from tasksync.exceptions import ValidationError
from tasksync.tasks.models import DaySummaryResult, SummaryConfig, Task
from tasksync.tasks.operations import find_single_task

logger = logging.getLogger(__name__)

DEFAULT_NEXT_COUNT = 10

router = APIRouter()


def _state(request: Request):
    return request.app.state.storage, request.app.state.lock


@router.get("/", response_class=PlainTextResponse)
def root():
    return "Hello World"


@router.get("/health")
def health():
    return {"running": "ok"}


@router.get("/tasks/", response_model=List[Task])
def get_tasks(request: Request):
    storage, lock = _state(request)
    with lock:
        return storage.next_tasks(DEFAULT_NEXT_COUNT)


@router.post("/tasks/")
def save_task(task: Task, request: Request):
    storage, lock = _state(request)
    with lock:
        storage.save(task)
    logger.info(f"Saved task {task.ulid}")
    return "Success"


@router.patch("/tasks/{ulid}")
def patch_task(ulid: str, task: Task, request: Request):
    if ulid != task.ulid:
        raise ValidationError(
            "The ulids don't match",
            field="ulid",
            value=task.ulid,
            context={"path_ulid": ulid},
        )
    storage, lock = _state(request)
    with lock:
        storage.update(task)
    return "Successfully updated task"


@router.delete("/tasks/{ulid}")
def delete_task(ulid: str, request: Request):
    storage, lock = _state(request)
    with lock:
        task = find_single_task(storage, ulid)
        storage.delete(task)
    logger.info(f"Deleted task {task.ulid}")
    return "Successfully deleted"


@router.get("/tasks/search", response_model=List[Task])
def search_tasks(request: Request, ulid: str = Query(...)):
    storage, lock = _state(request)
    with lock:
        return storage.search_using_ulid(ulid)


@router.get("/tasks/next/{count}", response_model=List[Task])
def get_next_tasks(count: int, request: Request):
    storage, lock = _state(request)
    with lock:
        return storage.next_tasks(count)


@router.get("/tasks/unsafe_query/", response_model=List[Task])
def get_unsafe_query_tasks(request: Request, clause: str = Query(...)):
    storage, lock = _state(request)
    with lock:
        return storage.unsafe_query(clause)


@router.get("/tasks/summarize_day/", response_model=DaySummaryResult)
def get_day_summary(request: Request, summary_config: Optional[str] = None):
    config = None
    if summary_config:
        try:
            config = SummaryConfig.model_validate_json(summary_config)
        except pydantic.ValidationError as e:
            raise ValidationError(
                f"Invalid summary_config: {e}",
                field="summary_config",
                value=summary_config,
            ) from e

    storage, lock = _state(request)
    with lock:
        return storage.summarize_day(config)


@router.get("/tasks/deleted_ulids/{n_days}", response_model=List[str])
def get_deleted_ulids(n_days: int, request: Request):
    storage, lock = _state(request)
    with lock:
        return sorted(storage.deleted_ulids(n_days))
