"""Aggregator: concurrent fan-out of probes, ordered collection, partition."""

import asyncio
import contextlib
import logging
import time
from collections.abc import Iterable, Mapping, Sequence

from rpcprobe.models import (
    DEFAULT_PLACEHOLDER_MARKERS,
    Endpoint,
    ProbeOutcome,
    ProbeReport,
    Transport,
    has_placeholder,
)
from rpcprobe.normalize import normalize
from rpcprobe.probes import Prober, get_prober

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 1_000


async def run(
    endpoints: Sequence[Endpoint],
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    *,
    max_concurrency: int | None = None,
    probers: Mapping[Transport, Prober] | None = None,
    placeholder_markers: Iterable[str] = DEFAULT_PLACEHOLDER_MARKERS,
) -> ProbeReport:
    """Probe every endpoint concurrently and build a report.

    All probes are started together and the report is produced once every
    one of them has finished, failed, or timed out.  With
    ``max_concurrency=None`` there is one open connection per endpoint at
    worst; pass a positive integer to cap the number in flight.

    Args:
        endpoints: Endpoints to probe, in the order the report should use.
        timeout_ms: Per-probe timeout applied to both transports; ``0``
            disables it.
        max_concurrency: Upper bound on simultaneous probes, or ``None``
            for no bound.
        probers: Prober to use per transport.  Missing transports fall
            back to the registry (``get_prober``).
        placeholder_markers: URL substrings that mark an endpoint as
            needing a secret; such endpoints are reported as not working
            without being contacted.

    Returns:
        A ``ProbeReport`` whose ``all`` list matches *endpoints* in order.

    Raises:
        ValueError: If *max_concurrency* is not positive.
    """
    if max_concurrency is not None and max_concurrency < 1:
        raise ValueError(f"max_concurrency must be positive, got {max_concurrency}")

    markers = tuple(placeholder_markers)
    selected: dict[Transport, Prober] = dict(probers or {})
    for endpoint in endpoints:
        if endpoint.transport not in selected:
            selected[endpoint.transport] = get_prober(endpoint.transport, markers)

    limiter = (
        asyncio.Semaphore(max_concurrency)
        if max_concurrency is not None
        else contextlib.nullcontext()
    )

    async def _probe_one(endpoint: Endpoint) -> ProbeOutcome | None:
        if has_placeholder(endpoint.url, markers):
            logger.debug("Not probing %s: unresolved secret placeholder", endpoint.url)
            return None
        async with limiter:
            return await selected[endpoint.transport].probe(endpoint.url, timeout_ms)

    logger.debug(
        "Probing %d endpoint(s) (timeout=%d ms, max_concurrency=%s)",
        len(endpoints),
        timeout_ms,
        max_concurrency,
    )
    t0 = time.monotonic()
    outcomes = await asyncio.gather(
        *(_probe_one(e) for e in endpoints), return_exceptions=True
    )
    duration = time.monotonic() - t0

    results = []
    for endpoint, outcome in zip(endpoints, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            logger.warning(
                "Probe of %s raised %s: %s",
                endpoint.url,
                type(outcome).__name__,
                outcome,
            )
            outcome = None
        results.append(normalize(endpoint, outcome))

    report = ProbeReport.from_results(results)
    logger.info(
        "Probed %d endpoint(s) in %.2fs: %d working, %d not working",
        len(report.all),
        duration,
        len(report.working),
        len(report.not_working),
    )
    return report


def check_endpoints(
    endpoints: Sequence[Endpoint],
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    **kwargs,
) -> ProbeReport:
    """Synchronous wrapper around ``run()`` for callers without a loop.

    Keyword arguments are passed through to ``run()``.
    """
    return asyncio.run(run(endpoints, timeout_ms, **kwargs))
