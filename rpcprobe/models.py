"""Data models: Endpoint, ProbeOutcome, ProbeResult, ProbeReport dataclasses."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlsplit

DEFAULT_PLACEHOLDER_MARKERS: tuple[str, ...] = ("API_KEY",)

_HTTP_SCHEMES = frozenset({"http", "https"})


class Transport(Enum):
    """Wire transport used to reach an endpoint."""

    HTTP = "http"
    WEBSOCKET = "websocket"


@dataclass(frozen=True)
class Endpoint:
    """A candidate RPC endpoint for one chain.

    Attributes:
        url: Endpoint URL exactly as supplied.
        transport: Transport chosen from the URL scheme at ingestion.
    """

    url: str
    transport: Transport

    @classmethod
    def from_url(cls, url: str) -> "Endpoint":
        """Build an ``Endpoint``, selecting the transport from the scheme.

        ``http`` and ``https`` URLs are probed over HTTP.  Anything else,
        including a URL with no scheme at all, is treated as a WebSocket
        endpoint.
        """
        scheme = urlsplit(url.strip()).scheme.lower()
        transport = Transport.HTTP if scheme in _HTTP_SCHEMES else Transport.WEBSOCKET
        return cls(url=url, transport=transport)


def has_placeholder(url: str, markers: Iterable[str] = DEFAULT_PLACEHOLDER_MARKERS) -> bool:
    """Return True if *url* still contains an unresolved secret marker."""
    return any(marker in url for marker in markers)


@dataclass(frozen=True)
class ProbeOutcome:
    """Raw response of one successful probe exchange.

    Attributes:
        payload: Decoded JSON body of the response.
        latency_ms: Milliseconds between dispatch and response arrival.
    """

    payload: Any
    latency_ms: int | None = None


@dataclass(frozen=True)
class ProbeResult:
    """Normalized result for one endpoint.

    Attributes:
        endpoint: The probed endpoint.
        success: Whether the endpoint returned any parsable response.
        height: Latest block number reported, if one could be extracted.
        latency_ms: Measured round-trip latency; only set alongside
            ``height``.
    """

    endpoint: Endpoint
    success: bool
    height: int | None = None
    latency_ms: int | None = None

    @property
    def has_height(self) -> bool:
        """True when the response carried a usable block number."""
        return self.height is not None

    def to_dict(self) -> dict:
        """Serialize to the wire shape used in report JSON."""
        out: dict[str, Any] = {
            "rpc": {"url": self.endpoint.url},
            "success": self.success,
        }
        if self.height is not None:
            out["height"] = self.height
        if self.latency_ms is not None:
            out["latencyMs"] = self.latency_ms
        return out


@dataclass(frozen=True)
class ProbeReport:
    """All probe results for one run, partitioned by liveness.

    ``all`` keeps input order; ``working`` and ``not_working`` keep the
    relative order of ``all``.
    """

    all: tuple[ProbeResult, ...] = ()
    working: tuple[ProbeResult, ...] = ()
    not_working: tuple[ProbeResult, ...] = ()

    @classmethod
    def from_results(cls, results: Sequence[ProbeResult]) -> "ProbeReport":
        """Partition *results* into working / not-working in one pass."""
        working: list[ProbeResult] = []
        not_working: list[ProbeResult] = []
        for result in results:
            if result.success:
                working.append(result)
            else:
                not_working.append(result)
        return cls(
            all=tuple(results),
            working=tuple(working),
            not_working=tuple(not_working),
        )

    def to_dict(self) -> dict:
        """Serialize to ``{"allRpcs", "workingRpcs", "notWorkingRpcs"}``."""
        return {
            "allRpcs": [r.to_dict() for r in self.all],
            "workingRpcs": [r.to_dict() for r in self.working],
            "notWorkingRpcs": [r.to_dict() for r in self.not_working],
        }
