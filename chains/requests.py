# PATH: chains/requests.py
"""
chains/requests.py - Tracked remote calls.

Every outbound call goes through RequestTracker.execute_request, which
gives it an identity, measures its latency and records exactly one
status transition (queued → completed | error).

Failures are reported twice: raised to the caller and broadcast as an
`error` notification on the owning service's emitter. Raised errors that
were broadcast carry details["broadcast"] = True. Dispatch setup failures
(InternalError) are only raised.
"""

from typing import Any, Callable, Optional, Sequence

from chains.providers import RPCTransport
from core.constants import Event
from core.events import EventEmitter
from core.exceptions import InternalError, ProtocolError, TransportError, WatcherError
from core.logging import get_logger
from core.models import RequestRecord, TimedResult
from core.time import monotonic_ms

logger = get_logger(__name__)


class RequestTracker:
    """Wraps the transport with request bookkeeping."""

    def __init__(
        self,
        emitter: EventEmitter,
        transport: Optional[RPCTransport] = None,
        clock: Callable[[], float] = monotonic_ms,
    ):
        self.emitter = emitter
        self.transport = transport
        self._clock = clock

    async def execute_request(
        self,
        method: str,
        params: Optional[Sequence[Any]] = None,
    ) -> TimedResult:
        """
        Issue a tracked remote call.

        Args:
            method: RPC method name
            params: Positional parameters (default none)

        Returns:
            TimedResult with the final request record, duration and raw result

        Raises:
            ValueError: If method is empty
            InternalError: If the call could not be dispatched at all
            TransportError: If the remote call failed
        """
        if not isinstance(method, str) or not method:
            raise ValueError("method must be a non-empty string")

        record = RequestRecord(method=method, params=list(params or []))
        start = self._clock()

        try:
            if self.transport is None:
                raise RuntimeError("RPC transport is not initialized")
            pending = self.transport.request(record.method, record.params)
        except Exception as exception:
            record.fail()
            raise InternalError(
                f"Request exception: {exception}",
                details={"request": record.to_dict()},
            ) from exception

        try:
            response = await pending
        except Exception as err:
            duration = int(self._clock() - start)
            record.fail()
            self.emitter.emit(Event.ERROR, err)
            logger.debug(
                f"{method} failed: {err}",
                extra={"context": {"request_id": record.id, "duration_ms": duration}},
            )
            details = {"request": record.to_dict(), "duration_ms": duration, "broadcast": True}
            if isinstance(err, ProtocolError):
                raise ProtocolError(
                    f"Could not call: {err.message}",
                    details={**err.details, **details},
                ) from err
            if isinstance(err, WatcherError):
                raise TransportError(
                    f"Could not call: {err.message}",
                    code=err.code,
                    details={**err.details, **details},
                ) from err
            raise TransportError(f"Could not call: {err}", details=details) from err

        duration = int(self._clock() - start)
        record.complete()

        logger.debug(
            f"{method} completed",
            extra={
                "context": {
                    "request_id": record.id,
                    "duration_ms": duration,
                    "endpoint": response.endpoint_used,
                }
            },
        )

        return TimedResult(
            request=record,
            duration=duration,
            result=response.result,
            endpoint=response.endpoint_used,
        )
