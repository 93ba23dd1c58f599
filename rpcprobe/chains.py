"""Chain registry lookup: fetch chains.json, find a chain, list its endpoints."""

import logging

import httpx

from rpcprobe.models import Endpoint

logger = logging.getLogger(__name__)


class ChainLookupError(Exception):
    """Raised when the chain registry cannot be fetched or decoded."""


def fetch_chains(url: str, timeout_ms: int = 10_000) -> list[dict]:
    """Download the chain registry.

    Args:
        url: Location of a ``chains.json`` style registry.
        timeout_ms: Request timeout in milliseconds; ``0`` disables it.

    Returns:
        The list of chain records.

    Raises:
        ChainLookupError: On network failure, a non-2xx status, or a body
            that is not a JSON list.
    """
    logger.debug("Fetching chain registry from %s", url)
    timeout = timeout_ms / 1000 if timeout_ms else None
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
        chains = response.json()
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
        raise ChainLookupError(f"Could not load chain registry from {url}: {exc}") from exc

    if not isinstance(chains, list):
        raise ChainLookupError(
            f"Expected a JSON list from {url}, got {type(chains).__name__}"
        )
    logger.debug("Loaded %d chain(s)", len(chains))
    return chains


def find_chain(chains: list[dict], id_or_name: str) -> dict | None:
    """Return the chain whose ``chainId`` or ``shortName`` equals *id_or_name*."""
    for chain in chains:
        if str(chain.get("chainId")) == id_or_name or chain.get("shortName") == id_or_name:
            return chain
    return None


def chain_endpoints(chain: dict, preferred_url: str | None = None) -> list[Endpoint]:
    """Build the ordered endpoint list for *chain*.

    ``rpc`` entries may be plain URL strings or objects with a ``url``
    key; anything else is dropped.  When *preferred_url* is among them it
    is moved to the front, keeping the order of the rest.

    Args:
        chain: A chain record from the registry.
        preferred_url: URL of a provider to list first, if present.

    Returns:
        Endpoints in probing order.
    """
    urls: list[str] = []
    for entry in chain.get("rpc") or []:
        url = entry.get("url") if isinstance(entry, dict) else entry
        if isinstance(url, str) and url:
            urls.append(url)
        else:
            logger.debug("Dropping malformed rpc entry %r", entry)

    if preferred_url is not None and preferred_url in urls:
        urls.remove(preferred_url)
        urls.insert(0, preferred_url)

    return [Endpoint.from_url(url) for url in urls]
