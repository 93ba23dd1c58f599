"""CLI entry point for the rpcprobe tool."""

import logging
import re
import sys
import time
from pathlib import Path

import click

from rpcprobe.aggregator import check_endpoints
from rpcprobe.chains import ChainLookupError, chain_endpoints, fetch_chains, find_chain
from rpcprobe.config import ConfigError, ProbeConfig, load_config
from rpcprobe.models import Endpoint
from rpcprobe.output import render

logger = logging.getLogger(__name__)

FORMATS = ("table", "json")

# "#" at line start or after whitespace opens a comment.
_COMMENT = re.compile(r"(?:^|\s)#")


class _UsageError(Exception):
    """Invalid input that should end the run with exit code 1."""


@click.command()
@click.argument("urls", nargs=-1)
@click.option(
    "--chain",
    default=None,
    help="Chain id or short name to look up in the chain registry.",
)
@click.option(
    "--file",
    "-i",
    "endpoints_file",
    default=None,
    type=click.Path(exists=False),
    help="File with one endpoint URL per line ('#' starts a comment).",
)
@click.option(
    "--timeout",
    "-t",
    "timeout_ms",
    default=None,
    type=click.IntRange(min=0),
    help="Per-probe timeout in milliseconds; 0 disables it (default: from config).",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    default="table",
    type=click.Choice(FORMATS, case_sensitive=False),
    show_default=True,
    help="Output format.",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    type=click.Path(exists=False),
    help="Path to YAML config file (default: ~/.rpcprobe/config.yaml).",
)
@click.option(
    "--watch",
    is_flag=True,
    help="Probe again every refetch_interval_ms until interrupted.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(
    urls: tuple[str, ...],
    chain: str | None,
    endpoints_file: str | None,
    timeout_ms: int | None,
    output_format: str,
    config_path: str | None,
    watch: bool,
    verbose: bool,
) -> None:
    """Check which blockchain RPC endpoints are alive and how fast they answer."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        cfg = load_config(config_path)
    except (ConfigError, FileNotFoundError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    logger.debug("Config loaded: %s", cfg)

    if timeout_ms is None:
        timeout_ms = cfg.timeout_ms

    try:
        endpoints = _collect_endpoints(urls, endpoints_file, chain, cfg)
    except (_UsageError, ChainLookupError, OSError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    title = f"{chain} — {len(endpoints)} endpoints" if chain else None

    try:
        while True:
            _run_once(endpoints, timeout_ms, output_format.lower(), title, cfg)
            if not watch:
                break
            time.sleep(cfg.refetch_interval_ms / 1000)
    except KeyboardInterrupt:
        logger.debug("Interrupted")


def _run_once(
    endpoints: list[Endpoint],
    timeout_ms: int,
    output_format: str,
    title: str | None,
    cfg: ProbeConfig,
) -> None:
    """Probe *endpoints* once and render the report.

    Args:
        endpoints: Endpoints to probe.
        timeout_ms: Per-probe timeout in milliseconds.
        output_format: Output format (``"table"`` or ``"json"``).
        title: Table title, if any.
        cfg: Loaded ``ProbeConfig`` instance.
    """
    report = check_endpoints(
        endpoints,
        timeout_ms,
        max_concurrency=cfg.max_concurrency,
        placeholder_markers=cfg.placeholder_markers,
    )
    render(report, output_format, title=title)


def _collect_endpoints(
    urls: tuple[str, ...],
    endpoints_file: str | None,
    chain: str | None,
    cfg: ProbeConfig,
) -> list[Endpoint]:
    """Gather endpoints from arguments, file, and chain lookup, in that order.

    Raises:
        _UsageError: If no endpoint source yields anything, or the chain
            is unknown.
        ChainLookupError: If the chain registry cannot be loaded.
        OSError: If *endpoints_file* cannot be read.
    """
    endpoints = [Endpoint.from_url(url) for url in urls]

    if endpoints_file is not None:
        endpoints.extend(_read_endpoints_file(Path(endpoints_file)))

    if chain is not None:
        chains = fetch_chains(cfg.chains_url)
        record = find_chain(chains, chain)
        if record is None:
            raise _UsageError(f"chain not found: {chain}")
        preferred = cfg.preferred_rpcs.get(record.get("chainId"))
        endpoints.extend(chain_endpoints(record, preferred))

    if not endpoints:
        raise _UsageError("no endpoints given (pass URLs, --file or --chain)")
    return endpoints


def _read_endpoints_file(path: Path) -> list[Endpoint]:
    """Parse one URL per line, skipping blanks and ``#`` comments."""
    endpoints = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = _COMMENT.split(line, maxsplit=1)[0].strip()
        if line:
            endpoints.append(Endpoint.from_url(line))
    logger.debug("Read %d endpoint(s) from %s", len(endpoints), path)
    return endpoints
