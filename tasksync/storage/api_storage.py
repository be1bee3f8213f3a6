"""
Remote implementation of the TaskStorage contract.

Forwards every operation over HTTP to a tasksync server, which exposes its own
SQLiteStorage. Errors come back as ServiceError subclasses; nothing is retried.
"""
import logging
from typing import Any, List, Optional, Set

from tasksync.adapters import HTTPClientAdapter, HTTPClientAdapterFactory, HTTPResponse, RequestError
from tasksync.exceptions import BackendUnreachableError, from_error_response
from tasksync.storage.interface import TaskStorage
from tasksync.tasks.models import DaySummaryResult, SummaryConfig, Task

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class APIStorage(TaskStorage):
    """Task list stored on a remote tasksync server."""

    def __init__(
        self,
        uri: str,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        client: Optional[HTTPClientAdapter] = None,
    ):
        """
        Initialize the remote backend.

        Args:
            uri: Base URL of the server, e.g. ``http://localhost:8080``
            timeout: Transport timeout in seconds for every request
            client: HTTP client adapter to use instead of a new httpx client
        """
        self.uri = uri.rstrip("/")
        self._client = client if client is not None else HTTPClientAdapterFactory.create_client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> HTTPResponse:
        url = f"{self.uri}{path}"
        logger.debug(f"{method.upper()} {url}")
        try:
            response = getattr(self._client, method)(url, **kwargs)
        except RequestError as e:
            raise BackendUnreachableError(self.uri, original_error=e) from e

        if not response.is_success:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            error = from_error_response(response.status_code, body, uri=url)
            logger.warning(f"{method.upper()} {url} failed: {error.message}")
            raise error
        return response

    @staticmethod
    def _tasks(response: HTTPResponse) -> List[Task]:
        return [Task.model_validate(item) for item in response.json()]

    def save(self, task: Task) -> None:
        self._request("post", "/tasks/", json=task.model_dump(mode="json"))

    def update(self, task: Task) -> None:
        self._request("patch", f"/tasks/{task.ulid}", json=task.model_dump(mode="json"))

    def delete(self, task: Task) -> None:
        self._request("delete", f"/tasks/{task.ulid}")

    def search_using_ulid(self, ulid_suffix: str) -> List[Task]:
        return self._tasks(self._request("get", "/tasks/search", params={"ulid": ulid_suffix}))

    def next_tasks(self, count: int) -> List[Task]:
        return self._tasks(self._request("get", f"/tasks/next/{count}"))

    def unsafe_query(self, clause: str) -> List[Task]:
        return self._tasks(self._request("get", "/tasks/unsafe_query/", params={"clause": clause}))

    def summarize_day(self, config: Optional[SummaryConfig] = None) -> DaySummaryResult:
        config = config or SummaryConfig()
        response = self._request(
            "get",
            "/tasks/summarize_day/",
            params={"summary_config": config.model_dump_json()},
        )
        return DaySummaryResult.model_validate(response.json())

    def deleted_ulids(self, n_days: int) -> Set[str]:
        return set(self._request("get", f"/tasks/deleted_ulids/{n_days}").json())
