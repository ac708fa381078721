"""Request/response correlation for the session client."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import anyio
from pydantic import BaseModel

from mcp_elicit.shared.exceptions import McpError, ResultValidationError, TransportError
from mcp_elicit.shared.logging import get_logger
from mcp_elicit.shared.validation import ResultValidator

if TYPE_CHECKING:
    from mcp_elicit.client.transport import ClientTransport

logger = get_logger(__name__)

ReceiveResultT = TypeVar("ReceiveResultT", bound=BaseModel)

RequestId = int


class PendingRequest(Generic[ReceiveResultT]):
    """
    One in-flight request waiting for its response.

    A pending request is resolved exactly once: the first call to
    ``fulfill`` or ``reject`` wins and later calls are ignored.
    """

    def __init__(
        self,
        request_id: RequestId,
        method: str,
        params: dict[str, Any] | None,
        result_type: type[ReceiveResultT],
    ) -> None:
        self.request_id = request_id
        self.method = method
        self.params = params
        self.result_type = result_type
        self._done = anyio.Event()
        self._value: ReceiveResultT | None = None
        self._error: Exception | None = None

    @property
    def resolved(self) -> bool:
        return self._done.is_set()

    def fulfill(self, value: ReceiveResultT) -> bool:
        if self.resolved:
            return False
        self._value = value
        self._done.set()
        return True

    def reject(self, error: Exception) -> bool:
        if self.resolved:
            return False
        self._error = error
        self._done.set()
        return True

    async def wait(self) -> None:
        await self._done.wait()

    def outcome(self) -> ReceiveResultT:
        """Return the value, or raise the error, of a resolved request."""
        if not self.resolved:
            raise RuntimeError(f"Request {self.request_id} ({self.method}) is still pending")
        if self._error is not None:
            raise self._error
        assert self._value is not None
        return self._value


class RequestDispatcher:
    """Sends requests over the session's transport and resolves one
    PendingRequest per response.

    Results are validated against their declared model. By default a result
    that fails validation is still delivered (with a warning) so that vendor
    extensions and minor server deviations do not break the session. With
    ``strict=True`` such results are rejected with ResultValidationError.
    """

    _pending: dict[RequestId, PendingRequest[Any]]

    def __init__(self, validator: ResultValidator | None = None, *, strict: bool = False) -> None:
        self._validator = validator or ResultValidator()
        self._strict = strict
        self._request_id = 0
        self._pending = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def send(
        self,
        transport: ClientTransport,
        method: str,
        params: dict[str, Any] | None,
        result_type: type[ReceiveResultT],
    ) -> ReceiveResultT:
        """Send a request and wait for its response.

        Raises:
            McpError: if the server answered with an error
            TransportError: if the transport failed while carrying the request
            SessionClosedError: if the session was torn down first
        """
        request_id = self._request_id
        self._request_id = request_id + 1

        pending = PendingRequest(request_id, method, params, result_type)
        self._pending[request_id] = pending
        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(self._carry, transport, pending)
                await pending.wait()
                # Teardown may resolve the request before the transport answers
                tg.cancel_scope.cancel()
        finally:
            self._pending.pop(request_id, None)

        return pending.outcome()

    def close(self, error: Exception) -> int:
        """Reject every pending request with ``error``. Returns the number rejected."""
        rejected = 0
        for pending in list(self._pending.values()):
            if pending.reject(error):
                rejected += 1
        self._pending.clear()
        return rejected

    async def _carry(self, transport: ClientTransport, pending: PendingRequest[Any]) -> None:
        try:
            payload = await transport.send_request(pending.method, pending.params)
        except McpError as e:
            pending.reject(e)
        except Exception as e:
            logger.warning(f"Transport failed while sending {pending.method}: {e}")
            error = TransportError(f"Transport failed while sending {pending.method}: {e}")
            error.__cause__ = e
            pending.reject(error)
        else:
            try:
                pending.fulfill(self._build_result(pending, payload))
            except ResultValidationError as e:
                pending.reject(e)

    def _build_result(self, pending: PendingRequest[ReceiveResultT], payload: Any) -> ReceiveResultT:
        result_type = pending.result_type
        if self._validator.validate(result_type, payload):
            try:
                return result_type.model_validate(payload)
            except Exception:
                # Accepted fail-open by the validator
                return self._construct(pending, payload)

        if self._strict:
            raise ResultValidationError(
                f"Invalid result for {pending.method}: expected {result_type.__name__}",
                data=payload,
            )

        logger.warning(
            f"Result for {pending.method} does not match {result_type.__name__}, delivering it unvalidated"
        )
        return self._construct(pending, payload)

    def _construct(self, pending: PendingRequest[ReceiveResultT], payload: Any) -> ReceiveResultT:
        if payload is None:
            return pending.result_type.model_construct()
        if not isinstance(payload, Mapping):
            # Nothing can be delivered unvalidated unless it is a JSON object
            raise ResultValidationError(
                f"Invalid result for {pending.method}: expected an object, got {type(payload).__name__}",
                data=payload,
            )
        return pending.result_type.model_construct(**payload)
