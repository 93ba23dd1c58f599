"""HTTP(S) prober: JSON-RPC POST over httpx."""

import logging
from collections.abc import Iterable

import httpx

from rpcprobe.models import DEFAULT_PLACEHOLDER_MARKERS, ProbeOutcome, Transport
from rpcprobe.probes import Prober, monotonic_ms
from rpcprobe.request import PROBE_BODY

logger = logging.getLogger(__name__)

_HEADERS = {"Content-Type": "application/json"}


class HttpProber(Prober):
    """Probe an endpoint with a single JSON-RPC POST.

    A fresh ``httpx.AsyncClient`` is opened for every probe so that no
    connection state is shared between endpoints.  Non-2xx responses and
    bodies that are not JSON count as failures.
    """

    transport = Transport.HTTP
    transport_errors = (httpx.HTTPError, httpx.InvalidURL, OSError, ValueError)

    def __init__(
        self,
        placeholder_markers: Iterable[str] = DEFAULT_PLACEHOLDER_MARKERS,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(placeholder_markers)
        self._http_transport = http_transport

    async def _exchange(self, url: str, timeout: float | None) -> ProbeOutcome:
        async with httpx.AsyncClient(
            headers=_HEADERS,
            timeout=timeout,
            transport=self._http_transport,
        ) as client:
            start = monotonic_ms()
            response = await client.post(url, content=PROBE_BODY)
            latency_ms = round(monotonic_ms() - start)
            response.raise_for_status()
            payload = response.json()

        logger.debug("%s answered in %d ms", url, latency_ms)
        return ProbeOutcome(payload=payload, latency_ms=latency_ms)
