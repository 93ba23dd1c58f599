"""WebSocket prober: one JSON-RPC request, first reply wins."""

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable, Iterable

import websockets
from websockets.exceptions import WebSocketException

from rpcprobe.models import DEFAULT_PLACEHOLDER_MARKERS, ProbeOutcome, Transport
from rpcprobe.probes import Prober, monotonic_ms
from rpcprobe.request import PROBE_BODY

logger = logging.getLogger(__name__)

# Seconds to wait for the closing handshake once the reply has arrived.
_CLOSE_TIMEOUT = 1.0


class WebSocketProber(Prober):
    """Probe an endpoint over a short-lived WebSocket connection.

    The socket is used as a single-shot channel: the payload is sent once
    the connection opens and the first message received is the response.
    Closing happens in a background task, so a slow closing handshake
    never counts against the probe timeout.  Connection errors, a close
    before any reply, and a reply that is not JSON all count as failures.
    """

    transport = Transport.WEBSOCKET
    transport_errors = (WebSocketException, OSError, ValueError)

    def __init__(
        self,
        placeholder_markers: Iterable[str] = DEFAULT_PLACEHOLDER_MARKERS,
        *,
        connect: Callable = websockets.connect,
    ) -> None:
        super().__init__(placeholder_markers)
        self._connect = connect
        self._closing: set[asyncio.Task] = set()

    async def _exchange(self, url: str, timeout: float | None) -> ProbeOutcome:
        stack = contextlib.AsyncExitStack()
        try:
            ws = await stack.enter_async_context(
                self._connect(url, close_timeout=_CLOSE_TIMEOUT)
            )
            await ws.send(PROBE_BODY)
            start = monotonic_ms()
            message = await ws.recv()
            latency_ms = round(monotonic_ms() - start)
        finally:
            self._close_in_background(stack, url)

        payload = json.loads(message)
        logger.debug("%s answered in %d ms", url, latency_ms)
        return ProbeOutcome(payload=payload, latency_ms=latency_ms)

    async def wait_closed(self) -> None:
        """Wait until every connection this prober opened has been closed."""
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    def _close_in_background(self, stack: contextlib.AsyncExitStack, url: str) -> None:
        task = asyncio.create_task(self._close(stack, url))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close(self, stack: contextlib.AsyncExitStack, url: str) -> None:
        try:
            await stack.aclose()
        except self.transport_errors as exc:
            logger.debug("Closing connection to %s failed: %s", url, exc)
