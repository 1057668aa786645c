"""Result sinks: streaming JSON report, rich table formatter, dispatch."""

import json
import logging
import queue
import shutil
import sys
import tempfile
import threading
from abc import ABC, abstractmethod
from io import StringIO
from typing import IO

from rich.console import Console
from rich.table import Table

from yggcrawl.aggregator import CrawlSummary, aggregate
from yggcrawl.models import NodeRecord

logger = logging.getLogger(__name__)

FORMATS = ("json", "table")

# Top-level key of the JSON report.
REPORT_KEY = "yggnodes"

# Spool size kept in memory before the rendered report goes to disk.
_SPOOL_MAX_SIZE = 8 * 1024 * 1024

# How many entries to show in summary top-N tables.
_TOP_N = 10

_END = object()


class ResultSink(ABC):
    """Single-writer consumer of completed ``NodeRecord`` objects.

    Producers only ever call ``put()``.  One consumer thread renders the
    records into a spool in arrival order; ``close()`` copies the spool to
    the output exactly once.  ``abort()`` discards it, so a failed crawl
    never leaves a partial report behind.

    Use as a context manager: leaving the block normally closes the sink,
    leaving it with an exception aborts it.

    Args:
        file: Writable text file object (default: ``sys.stdout``).
    """

    def __init__(self, file: IO[str] | None = None):
        self.file = file
        self._queue: queue.Queue = queue.Queue()
        self._spool: IO[str] | None = None
        self._consumer: threading.Thread | None = None
        self._error: BaseException | None = None
        self._closed = False
        self.count = 0

    def __enter__(self) -> "ResultSink":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()

    def open(self) -> None:
        """Start the consumer thread."""
        if self._consumer is not None:
            raise RuntimeError("sink already opened")
        self._spool = tempfile.SpooledTemporaryFile(
            max_size=_SPOOL_MAX_SIZE, mode="w+", encoding="utf-8"
        )
        self._consumer = threading.Thread(
            target=self._consume, name="result-sink", daemon=True
        )
        self._consumer.start()

    def put(self, record: NodeRecord) -> None:
        """Hand a completed record to the consumer."""
        self._queue.put(record)

    def close(self) -> None:
        """Finish rendering and publish the report to the output.

        Only the first call has an effect.

        Raises:
            RuntimeError: If the sink was never opened.
        """
        if self._closed:
            return
        self._stop()
        if self._error is not None:
            self._spool.close()
            raise self._error

        out = self.file or sys.stdout
        self._spool.seek(0)
        shutil.copyfileobj(self._spool, out)
        out.flush()
        self._spool.close()
        logger.debug("Published report with %d records", self.count)

    def abort(self) -> None:
        """Stop the consumer and discard everything rendered so far."""
        if self._closed:
            return
        self._stop()
        logger.debug("Discarded report with %d records", self.count)
        self._spool.close()

    def _stop(self) -> None:
        if self._consumer is None:
            raise RuntimeError("sink was never opened")
        self._closed = True
        self._queue.put(_END)
        self._consumer.join()

    def _consume(self) -> None:
        try:
            self._begin(self._spool)
            for record in iter(self._queue.get, _END):
                self._write(self._spool, record)
                self.count += 1
            self._end(self._spool)
        except Exception as exc:
            logger.error("Result sink failed: %s", exc)
            self._error = exc

    def _begin(self, out: IO[str]) -> None:
        """Write the report header."""

    @abstractmethod
    def _write(self, out: IO[str], record: NodeRecord) -> None:
        """Render one record."""

    def _end(self, out: IO[str]) -> None:
        """Write the report trailer."""


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------


class JsonSink(ResultSink):
    """Streams ``{"yggnodes": {<key>: <record>, ...}}`` entry by entry.

    Entries are separated by commas; none precedes the first or follows
    the last, so the document is valid for any record count.
    """

    def _begin(self, out: IO[str]) -> None:
        out.write(f"{{{json.dumps(REPORT_KEY)}: {{")

    def _write(self, out: IO[str], record: NodeRecord) -> None:
        if self.count:
            out.write(",")
        out.write("\n")
        entry = json.dumps(record.to_dict(), default=str)
        out.write(f"{json.dumps(record.key)}: {entry}")

    def _end(self, out: IO[str]) -> None:
        out.write("\n}}\n")


# ---------------------------------------------------------------------------
# Table (rich) formatter
# ---------------------------------------------------------------------------


class TableSink(ResultSink):
    """Collects records and renders a ``rich`` node table plus summary.

    Args:
        file: Writable text file object (default: ``sys.stdout``).
        width: Explicit console width (default: auto-detect).
    """

    def __init__(self, file: IO[str] | None = None, width: int | None = None):
        super().__init__(file)
        self.width = width
        self._records: list[NodeRecord] = []

    def _write(self, out: IO[str], record: NodeRecord) -> None:
        self._records.append(record)

    def _end(self, out: IO[str]) -> None:
        records = sorted(self._records, key=lambda r: r.key)
        console = Console(file=out, highlight=False, width=self.width)

        table = Table(title=f"Yggdrasil overlay: {len(records)} nodes")
        table.add_column("Key")
        table.add_column("Address")
        table.add_column("Peers", justify="right")
        table.add_column("DHT", justify="right")
        table.add_column("Coords")
        for r in records:
            table.add_row(
                r.key[:16],
                r.address,
                _fmt_len(r.peers),
                _fmt_len(r.dht),
                _fmt(r.coords),
            )
        console.print(table)

        _print_summary(console, aggregate(records))


def _print_summary(console: Console, summary: CrawlSummary) -> None:
    """Print the summary line and top-N distribution tables."""
    console.print(
        f"  {summary.node_count} nodes, {summary.link_count} peer links, "
        f"{len(summary.unreachable)} unreachable"
    )

    for title, header, dist in (
        ("Top builds", "Build", summary.build_distribution),
        ("Top platforms", "Platform", summary.platform_distribution),
    ):
        if not dist:
            continue
        t = Table(title=title)
        t.add_column(header)
        t.add_column("Nodes", justify="right")
        for label, count in dist[:_TOP_N]:
            t.add_row(label, str(count))
        console.print(t)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fmt(value: object) -> str:
    """Format a field value for table display.

    ``None`` becomes ``"—"``, everything else is stringified.
    """
    if value is None:
        return "—"
    return str(value)


def _fmt_len(values: tuple[str, ...] | None) -> str:
    return _fmt(None if values is None else len(values))


def make_sink(
    fmt: str, *, file: IO[str] | None = None, width: int | None = None
) -> ResultSink:
    """Build the sink for output format *fmt*.

    Raises:
        ValueError: If *fmt* is not ``"json"`` or ``"table"``.
    """
    if fmt == "json":
        return JsonSink(file)
    if fmt == "table":
        return TableSink(file, width=width)
    raise ValueError(f"Unknown output format: {fmt!r}")


def render_to_string(
    records: list[NodeRecord], fmt: str, *, width: int = 200
) -> str:
    """Render records to a string instead of stdout (useful for testing).

    Args:
        records: Records to feed through the sink, in order.
        fmt: Output format (``"json"`` or ``"table"``).
        width: Console width for table rendering (default: 200).

    Returns:
        The rendered report.
    """
    buf = StringIO()
    with make_sink(fmt, file=buf, width=width) as sink:
        for record in records:
            sink.put(record)
    return buf.getvalue()
