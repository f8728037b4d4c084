"""
Report output: incremental per-category domain lists written while the
scan runs, and the final text/JSON/CSV reports written once it ends.
"""

import asyncio
import csv
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .models import OutcomeKind, ScanResult

logger = logging.getLogger(__name__)

BATCH_LINES = 200
FLUSH_INTERVAL_SEC = 2.0

FORMAT_EXTENSIONS = {"text": ".txt", "json": ".json", "csv": ".csv"}

REPORTED_KINDS = (OutcomeKind.DEAD, OutcomeKind.REDIRECT, OutcomeKind.INCONCLUSIVE)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class ResultWriter:
    """Buffered append-only writer of domain names, one file per outcome kind."""

    def __init__(self, paths: Dict[OutcomeKind, Path]):
        self.paths = {kind: Path(p) for kind, p in paths.items()}
        self._buffers: Dict[OutcomeKind, List[str]] = {k: [] for k in self.paths}
        self._locks: Dict[OutcomeKind, asyncio.Lock] = {k: asyncio.Lock() for k in self.paths}
        self._stop = asyncio.Event()
        self._flusher_task: Optional[asyncio.Task] = None

    def reset_files(self) -> None:
        for path in self.paths.values():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("", encoding="utf-8")

    async def start(self) -> None:
        self.reset_files()
        self._flusher_task = asyncio.create_task(self._flush_loop())

    async def stop(self) -> None:
        self._stop.set()
        if self._flusher_task:
            self._flusher_task.cancel()
            try:
                await self._flusher_task
            except asyncio.CancelledError:
                pass
            self._flusher_task = None
        await self.flush_all()

    async def add(self, result: ScanResult) -> None:
        if result.kind not in self._buffers:
            return
        buf = self._buffers[result.kind]
        buf.append(result.domain)
        if len(buf) >= BATCH_LINES:
            await self.flush_one(result.kind)

    async def _flush_loop(self) -> None:
        while not self._stop.is_set():
            await asyncio.sleep(FLUSH_INTERVAL_SEC)
            await self.flush_all()

    async def flush_one(self, kind: OutcomeKind) -> None:
        async with self._locks[kind]:
            lines = self._buffers[kind]
            if not lines:
                return
            with open(self.paths[kind], "a", encoding="utf-8") as f:
                f.write("\n".join(lines) + "\n")
            lines.clear()

    async def flush_all(self) -> None:
        for kind in self.paths:
            await self.flush_one(kind)


# =========================
# Final reports
# =========================

TEXT_HEADERS = {
    OutcomeKind.DEAD: [
        "# Dead/Non-Existent Domains",
        "# These domains don't resolve and should be removed from filter lists",
    ],
    OutcomeKind.REDIRECT: [
        "# Redirecting Domains",
        "# These domains redirect to different domains - review for updates",
    ],
    OutcomeKind.INCONCLUSIVE: [
        "# Inconclusive Domains",
        "# These domains could not be verified (blocked by browser/extension/ISP or TLS errors)",
    ],
}

TEXT_NOTES = {
    OutcomeKind.DEAD: [
        "# These domains returned errors:",
        "# - HTTP 404, 410, 5xx (not found/gone/server error)",
        "# - DNS failures (domain doesn't exist)",
        "# - Timeouts (unreachable)",
        "# - Network errors",
    ],
    OutcomeKind.REDIRECT: [
        "# Format: original_domain -> final_domain",
        "# Note: These domains still work, but redirect elsewhere",
        "# Action: Review if filter rules should be updated",
    ],
    OutcomeKind.INCONCLUSIVE: [
        "# Note: These domains may or may not be dead - verification was prevented",
        "# Action: Manual verification recommended, or test from a different network",
    ],
}


def _text_report(records: List[Dict[str, Any]], kind: OutcomeKind, include_timestamp: bool) -> str:
    lines = list(TEXT_HEADERS[kind])
    if include_timestamp:
        lines.append(f"# Generated: {now_iso()}")
    lines.append(f"# Total found: {len(records)}")
    lines.append("#")
    lines.extend(TEXT_NOTES[kind])
    lines.append("")
    for item in records:
        if kind is OutcomeKind.REDIRECT:
            lines.append(f"{item['domain']} -> {item['finalDomain']} # {item['finalUrl']}")
        else:
            lines.append(f"{item['domain']} # {item['reason']}")
    return "\n".join(lines) + "\n"


def _write_csv(path: Path, records: List[Dict[str, Any]], kind: OutcomeKind) -> None:
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        if kind is OutcomeKind.REDIRECT:
            writer.writerow(["domain", "final_domain", "final_url", "status_code"])
            for item in records:
                status = item["statusCode"] if item["statusCode"] is not None else "N/A"
                writer.writerow([item["domain"], item["finalDomain"], item["finalUrl"], status])
        else:
            writer.writerow(["domain", "status_code", "reason"])
            for item in records:
                status = item["statusCode"] if item["statusCode"] is not None else "N/A"
                writer.writerow([item["domain"], status, item["reason"] or ""])


def write_report(
    output_format: str,
    base_path: Path,
    results: Iterable[ScanResult],
    kind: OutcomeKind,
    include_timestamp: bool = True,
    statistics: Optional[Dict[str, Any]] = None,
) -> List[Path]:
    """Write the report for one outcome kind; return the files written."""
    records = [r.as_record() for r in results if r.kind is kind]
    base_path = Path(base_path)
    stem = base_path.with_suffix("") if base_path.suffix in FORMAT_EXTENSIONS.values() else base_path
    formats = ["text", "json", "csv"] if output_format == "all" else [output_format]
    written = []
    for fmt in formats:
        if fmt not in FORMAT_EXTENSIONS:
            raise ValueError(f"Unknown format: {fmt}")
        path = stem.with_suffix(FORMAT_EXTENSIONS[fmt])
        path.parent.mkdir(parents=True, exist_ok=True)
        if fmt == "text":
            path.write_text(_text_report(records, kind, include_timestamp), encoding="utf-8")
        elif fmt == "json":
            payload: Dict[str, Any] = {"type": kind.value, "count": len(records), "domains": records}
            if include_timestamp:
                payload["timestamp"] = now_iso()
            if statistics:
                payload["statistics"] = statistics
            path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        else:
            _write_csv(path, records, kind)
        logger.debug("Wrote %s report to %s", kind.value, path)
        written.append(path)
    return written


def summarize(results: Iterable[ScanResult], total: Optional[int] = None) -> Dict[str, Any]:
    results = list(results)
    counts = {kind: 0 for kind in OutcomeKind}
    for result in results:
        counts[result.kind] += 1
    total = len(results) if total is None else total
    reported = counts[OutcomeKind.DEAD] + counts[OutcomeKind.REDIRECT] + counts[OutcomeKind.INCONCLUSIVE]
    return {
        "totalChecked": total,
        "deadCount": counts[OutcomeKind.DEAD],
        "redirectCount": counts[OutcomeKind.REDIRECT],
        "inconclusiveCount": counts[OutcomeKind.INCONCLUSIVE],
        "activeCount": total - reported,
        "timestamp": now_iso(),
    }
