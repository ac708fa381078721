"""Routing of server notifications to registered handlers."""

from __future__ import annotations

from typing import Any, Protocol

import anyio.lowlevel
from anyio.abc import TaskGroup

from mcp_elicit.shared.logging import get_logger

logger = get_logger(__name__)


class NotificationHandlerFnT(Protocol):
    async def __call__(self, params: dict[str, Any] | None) -> None: ...  # pragma: no branch


class NotificationRouter:
    """Maps a notification method to at most one handler.

    Notifications are advisory: unknown methods are dropped and handler
    failures are logged, never raised. When a task group is attached, handlers
    run in the background so that a handler issuing its own requests cannot
    stall the transport that delivered the notification.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, NotificationHandlerFnT] = {}
        self._task_group: TaskGroup | None = None

    def attach(self, task_group: TaskGroup | None) -> None:
        self._task_group = task_group

    def register(self, method: str, handler: NotificationHandlerFnT) -> None:
        if method in self._handlers:
            logger.debug(f"Replacing notification handler for {method}")
        self._handlers[method] = handler

    async def dispatch(self, method: str, params: dict[str, Any] | None) -> None:
        handler = self._handlers.get(method)
        if handler is None:
            logger.debug(f"No handler for notification {method}")
            await anyio.lowlevel.checkpoint()
            return

        if self._task_group is not None:
            self._task_group.start_soon(self._run, method, handler, params)
        else:
            await self._run(method, handler, params)

    async def _run(self, method: str, handler: NotificationHandlerFnT, params: dict[str, Any] | None) -> None:
        try:
            await handler(params)
        except Exception:
            logger.exception(f"Notification handler for {method} failed")
