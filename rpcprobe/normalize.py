"""Result normalizer: raw probe outcome → ProbeResult."""

import logging
import re

from rpcprobe.models import Endpoint, ProbeOutcome, ProbeResult

logger = logging.getLogger(__name__)

# JSON-RPC quantity: 0x-prefixed hex digits, nothing else.
_HEX_QUANTITY = re.compile(r"0[xX][0-9a-fA-F]+")


def normalize(endpoint: Endpoint, outcome: ProbeOutcome | None) -> ProbeResult:
    """Convert a probe outcome into a comparable ``ProbeResult``.

    Any non-``None`` outcome marks the endpoint as working, even when the
    payload carries no usable block number.  In that case both ``height``
    and ``latency_ms`` are left unset.

    Args:
        endpoint: Endpoint the outcome belongs to.
        outcome: Outcome returned by a prober, or ``None`` on failure.

    Returns:
        The normalized result.
    """
    if outcome is None:
        return ProbeResult(endpoint=endpoint, success=False)

    height = extract_height(outcome.payload)
    if height is None:
        logger.debug("%s responded without a block number", endpoint.url)
        return ProbeResult(endpoint=endpoint, success=True)

    return ProbeResult(
        endpoint=endpoint,
        success=True,
        height=height,
        latency_ms=outcome.latency_ms,
    )


def extract_height(payload: object) -> int | None:
    """Return ``result.number`` from a JSON-RPC block response as an int.

    The number is a hex quantity such as ``"0x1a2b"``.  ``"0x0"`` is a
    valid height of zero.  Signs, underscores, surrounding whitespace and
    unprefixed digits are rejected; anything missing or malformed yields
    ``None``.
    """
    if not isinstance(payload, dict):
        return None
    result = payload.get("result")
    if not isinstance(result, dict):
        return None
    number = result.get("number")
    if isinstance(number, int) and not isinstance(number, bool):
        return number if number >= 0 else None
    if isinstance(number, str) and _HEX_QUANTITY.fullmatch(number):
        return int(number, 16)
    return None
