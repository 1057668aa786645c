"""CLI entry point for the yggcrawl tool."""

import logging
import sys

import click

from yggcrawl.address import AddressError
from yggcrawl.config import ConfigError, CrawlConfig, load_config
from yggcrawl.engine import CrawlEngine
from yggcrawl.output import FORMATS, make_sink
from yggcrawl.probes.node import NodeProbe
from yggcrawl.rpc import (
    RPCClient,
    RPCError,
    TransportError,
    make_transport,
    resolve_self_key,
)

logger = logging.getLogger(__name__)


@click.command()
@click.option(
    "--endpoint",
    "-e",
    default=None,
    help="Admin endpoint: unix:///path, tcp://host:port or a socket path "
    "(default: from config, unix:///var/run/yggdrasil.sock).",
)
@click.option(
    "--parallel",
    "-p",
    default=None,
    type=click.IntRange(min=1),
    help="Maximum number of nodes probed at once (default: from config, 32).",
)
@click.option(
    "--retries",
    "-r",
    default=None,
    type=click.IntRange(min=1),
    help="Attempts per RPC call on soft failures (default: from config, 3).",
)
@click.option(
    "--key",
    "-k",
    "seed_key",
    default=None,
    help="Public key to start from (default: the local node).",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    default="json",
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
    help="Path to YAML config file (default: ~/.yggcrawl/config.yaml).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(
    endpoint: str | None,
    parallel: int | None,
    retries: int | None,
    seed_key: str | None,
    output_format: str,
    config_path: str | None,
    verbose: bool,
) -> None:
    """Crawl the Yggdrasil overlay network and report its topology."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        cfg = load_config(config_path)
    except (ConfigError, FileNotFoundError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if endpoint is not None:
        cfg.endpoint = endpoint
    if parallel is not None:
        cfg.max_parallel = parallel
    if retries is not None:
        cfg.max_retry = retries

    logger.debug("Config loaded: %s", cfg)

    try:
        _run_crawl(cfg, seed_key, output_format.lower())
    except TransportError as exc:
        click.echo(f"Error: transport failure: {exc}", err=True)
        sys.exit(1)
    except AddressError as exc:
        click.echo(f"Error: invalid key: {exc}", err=True)
        sys.exit(1)
    except (RPCError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _run_crawl(cfg: CrawlConfig, seed_key: str | None, output_format: str) -> None:
    """Resolve the seed and run the full pipeline.

    Pipeline: seed → crawl → stream records → publish report.

    Args:
        cfg: Loaded ``CrawlConfig`` with CLI overrides applied.
        seed_key: Key to start from, or ``None`` for the local node.
        output_format: Output format (``"json"`` or ``"table"``).
    """
    transport = make_transport(
        cfg.endpoint,
        dial_timeout=cfg.dial_timeout,
        read_timeout=cfg.read_timeout,
    )
    client = RPCClient(transport, max_retry=cfg.max_retry)

    if seed_key is None:
        seed_key = resolve_self_key(client)

    with make_sink(output_format) as sink:
        engine = CrawlEngine(NodeProbe(client), sink, max_parallel=cfg.max_parallel)
        crawl_run = engine.run(seed_key)

    logger.info(
        "Published %d nodes from the crawl of %s started at %s",
        crawl_run.node_count,
        crawl_run.seed,
        crawl_run.timestamp.isoformat(timespec="seconds"),
    )
