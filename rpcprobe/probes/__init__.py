"""Prober registry and abstract Prober base class."""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import TYPE_CHECKING

from rpcprobe.models import DEFAULT_PLACEHOLDER_MARKERS, has_placeholder

if TYPE_CHECKING:
    from rpcprobe.models import ProbeOutcome, Transport

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    """Monotonic clock reading in milliseconds."""
    return time.perf_counter() * 1000


class Prober(ABC):
    """Abstract base class for transport probers.

    ``probe()`` is shared by every transport: it skips URLs that still
    carry a secret placeholder, races the transport exchange against the
    timeout, and turns any error in ``transport_errors`` into ``None``.
    Subclasses only implement ``_exchange()``.
    """

    transport: Transport

    #: Exceptions that mean "endpoint did not answer usefully".
    transport_errors: tuple[type[BaseException], ...] = (OSError, ValueError)

    def __init__(
        self, placeholder_markers: Iterable[str] = DEFAULT_PLACEHOLDER_MARKERS
    ) -> None:
        self.placeholder_markers = tuple(placeholder_markers)

    async def probe(self, url: str, timeout_ms: int = 0) -> ProbeOutcome | None:
        """Send the probe payload to *url* and time the response.

        Args:
            url: Endpoint URL.
            timeout_ms: Per-probe timeout in milliseconds; ``0`` disables
                the timeout.

        Returns:
            A ``ProbeOutcome``, or ``None`` if the endpoint was skipped,
            failed, or timed out.
        """
        if has_placeholder(url, self.placeholder_markers):
            logger.debug("Skipping %s: unresolved secret placeholder", url)
            return None

        timeout = timeout_ms / 1000 if timeout_ms else None
        try:
            return await asyncio.wait_for(self._exchange(url, timeout), timeout)
        except TimeoutError:
            logger.debug("Probe of %s timed out after %d ms", url, timeout_ms)
        except self.transport_errors as exc:
            logger.debug("Probe of %s failed: %s", url, exc)
        return None

    @abstractmethod
    async def _exchange(self, url: str, timeout: float | None) -> ProbeOutcome:
        """Perform one request/response exchange with *url*.

        Args:
            url: Endpoint URL.
            timeout: Timeout in seconds, or ``None`` for no timeout.

        Returns:
            The decoded response with its measured latency.

        Raises:
            Any of ``transport_errors`` on failure.
        """


def _build_registry() -> dict[Transport, type[Prober]]:
    """Build the transport → Prober-class mapping.

    Imports are deferred to avoid circular imports and to keep the
    registry definition in one place.
    """
    from rpcprobe.models import Transport
    from rpcprobe.probes.http import HttpProber
    from rpcprobe.probes.websocket import WebSocketProber

    return {
        Transport.HTTP: HttpProber,
        Transport.WEBSOCKET: WebSocketProber,
    }


def get_prober(
    transport: Transport,
    placeholder_markers: Iterable[str] = DEFAULT_PLACEHOLDER_MARKERS,
) -> Prober:
    """Look up and instantiate the prober for *transport*.

    Args:
        transport: Transport of the endpoint to probe.
        placeholder_markers: Substrings marking a URL as needing a secret.

    Returns:
        An instance of the matching ``Prober`` subclass.

    Raises:
        ValueError: If *transport* is not in the registry.
    """
    registry = _build_registry()
    prober_cls = registry.get(transport)
    if prober_cls is None:
        known = ", ".join(sorted(t.value for t in registry))
        raise ValueError(f"Unknown transport {transport!r}. Known transports: {known}")
    return prober_cls(placeholder_markers)
