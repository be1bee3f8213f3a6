"""
Editing a task as YAML in the user's $EDITOR.
"""
import logging
from typing import Callable, Optional

import click
import pydantic
import yaml

from tasksync.exceptions import ValidationError
from tasksync.storage.interface import TaskStorage
from tasksync.tasks.models import Task
from tasksync.tasks.operations import find_single_task

logger = logging.getLogger(__name__)

# modified_utc is owned by the storage layer
EDITABLE_EXCLUDE = {"modified_utc"}


def task_to_yaml(task: Task) -> str:
    return yaml.safe_dump(
        task.model_dump(mode="json", exclude=EDITABLE_EXCLUDE),
        sort_keys=False,
        allow_unicode=True,
    )


def task_from_yaml(text: str, original: Task) -> Task:
    """
    Rebuild a task from edited YAML.

    Raises:
        ValidationError: If the YAML is malformed, a field is invalid or the
            ulid was changed
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValidationError(f"Edited task is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("Edited task must be a YAML mapping")

    if data.get("ulid", original.ulid) != original.ulid:
        raise ValidationError(
            "The ulid of a task cannot be changed",
            field="ulid",
            value=data.get("ulid"),
            context={"original": original.ulid},
        )
    data["ulid"] = original.ulid
    data["modified_utc"] = original.modified_utc

    try:
        return Task.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Edited task is invalid: {e}") from e


def edit_task(
    storage: TaskStorage,
    ulid_suffix: str,
    edit: Optional[Callable[[str], Optional[str]]] = None,
) -> Optional[Task]:
    """
    Open the task matching ``ulid_suffix`` in an editor and save the result.

    Args:
        storage: Storage holding the task
        ulid_suffix: Abbreviated identifier
        edit: Editor callback, defaults to ``click.edit``

    Returns:
        The updated task, or None if the editor was closed without changes
    """
    task = find_single_task(storage, ulid_suffix)
    edit = edit or (lambda text: click.edit(text, extension=".yaml"))

    edited = edit(task_to_yaml(task))
    if edited is None:
        logger.info(f"No changes made to {task.ulid}")
        return None

    updated = task_from_yaml(edited, task)
    if updated.content_equals(task):
        logger.info(f"No changes made to {task.ulid}")
        return None
    storage.update(updated)
    return updated
