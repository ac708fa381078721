"""Single-slot rendezvous between server elicitation requests and a human decision.

The server's ``elicitation/create`` request is suspended in ``offer`` until the
human side calls ``decide`` for the same slot. Only one slot can be active at
a time; a second offer is refused rather than queued.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import uuid4

import anyio

from mcp_elicit import types
from mcp_elicit.shared.exceptions import ConcurrentElicitationError
from mcp_elicit.shared.logging import get_logger
from mcp_elicit.shared.validation import ResultValidator

logger = get_logger(__name__)


@dataclass
class ElicitationPrompt:
    """What the human interface is shown, and the callbacks it must answer with.

    Exactly one of ``submit``, ``decline`` or ``cancel`` should be called.
    Extra calls are ignored.
    """

    slot_id: str
    message: str
    requested_schema: dict[str, Any]
    _rendezvous: ElicitationRendezvous = field(repr=False)

    def submit(self, content: dict[str, Any]) -> bool:
        return self._rendezvous.decide(self.slot_id, types.ElicitResult(action="accept", content=content))

    def decline(self) -> bool:
        return self._rendezvous.decide(self.slot_id, types.ElicitResult(action="decline"))

    def cancel(self) -> bool:
        return self._rendezvous.decide(self.slot_id, types.ElicitResult(action="cancel"))


class ElicitationPresenterFnT(Protocol):
    async def __call__(self, prompt: ElicitationPrompt) -> None: ...  # pragma: no branch


class ElicitationSlot:
    def __init__(self, slot_id: str, params: types.ElicitRequestParams) -> None:
        self.slot_id = slot_id
        self.params = params
        self._decided = anyio.Event()
        self._decision: types.ElicitResult | None = None
        self._error: Exception | None = None

    @property
    def decided(self) -> bool:
        return self._decided.is_set()

    def resolve(self, decision: types.ElicitResult) -> None:
        self._decision = decision
        self._decided.set()

    def fail(self, error: Exception) -> None:
        self._error = error
        self._decided.set()

    async def wait(self) -> types.ElicitResult:
        await self._decided.wait()
        if self._error is not None:
            raise self._error
        assert self._decision is not None
        return self._decision


class ElicitationRendezvous:
    """Holds at most one elicitation awaiting a human decision."""

    def __init__(
        self,
        validator: ResultValidator | None = None,
        presenter: ElicitationPresenterFnT | None = None,
    ) -> None:
        self._validator = validator or ResultValidator()
        self._presenter = presenter
        self._slot: ElicitationSlot | None = None

    @property
    def active(self) -> ElicitationPrompt | None:
        """The prompt of the active slot, if any."""
        if self._slot is None:
            return None
        return self._prompt(self._slot)

    async def offer(self, params: types.ElicitRequestParams) -> types.ElicitResult:
        """Suspend until a human decides on ``params``.

        Raises:
            ConcurrentElicitationError: if another elicitation is still pending
            SessionClosedError: if the session is torn down before a decision
        """
        if self._slot is not None:
            raise ConcurrentElicitationError(
                f"Elicitation {self._slot.slot_id} is still awaiting a decision; concurrent elicitation not supported"
            )

        slot = ElicitationSlot(uuid4().hex, params)
        self._slot = slot
        logger.info(f"Elicitation {slot.slot_id} awaiting decision: {params.message}")
        try:
            if self._presenter is not None:
                try:
                    await self._presenter(self._prompt(slot))
                except Exception:
                    logger.exception(f"Elicitation presenter failed, cancelling {slot.slot_id}")
                    self.decide(slot.slot_id, types.ElicitResult(action="cancel"))
            return await slot.wait()
        finally:
            if self._slot is slot:
                self._slot = None

    def decide(self, slot_id: str, decision: types.ElicitResult) -> bool:
        """Record the human decision for ``slot_id``.

        Accepted content is checked against the requested schema, but it is
        forwarded to the server even when it does not conform. Deciding a slot
        that is not active is a no-op and returns False.
        """
        slot = self._slot
        if slot is None or slot.slot_id != slot_id:
            logger.debug(f"Ignoring decision for inactive elicitation {slot_id}")
            return False

        if decision.action == "accept":
            content = decision.content or {}
            if not self._validator.validate(slot.params.requested_schema, content):
                logger.warning(f"Elicitation {slot_id} content does not match the requested schema, submitting anyway")

        self._slot = None
        slot.resolve(decision)
        logger.info(f"Elicitation {slot_id} resolved: {decision.action}")
        return True

    def close(self, error: Exception) -> bool:
        """Reject the active slot, if any, with ``error``."""
        slot = self._slot
        if slot is None:
            return False
        self._slot = None
        slot.fail(error)
        return True

    def _prompt(self, slot: ElicitationSlot) -> ElicitationPrompt:
        return ElicitationPrompt(
            slot_id=slot.slot_id,
            message=slot.params.message,
            requested_schema=slot.params.requested_schema,
            _rendezvous=self,
        )
