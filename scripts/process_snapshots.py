#!/usr/bin/env python3
"""Turn saved bdlaws act pages into corpus records.

Each input is an ``act-details-<id>.html`` snapshot (or a directory of
them). Every page runs through the DOM adapter and the text pipeline; one
JSON record per act is written to the JSONL output, followed by a run
manifest with corpus statistics.

Usage:
    python3 scripts/process_snapshots.py snapshots/ \
        --output corpus/acts.jsonl \
        --config quality_config.json -v
"""
from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from bdlaw.config import QualityConfig, clamp_extraction_delay, load_quality_config  # noqa: E402
from bdlaw.dom import read_snapshot  # noqa: E402
from bdlaw.io_utils import dumps, read_html_file, save_jsonl  # noqa: E402
from bdlaw.patterns import ACT_LINK_RE  # noqa: E402
from bdlaw.pipeline import ActInput, process_act  # noqa: E402
from bdlaw.run_manifest import (  # noqa: E402
    build_manifest,
    corpus_stats,
    generate_run_id,
    git_commit_hash,
    write_manifest,
)
from bdlaw.structure import ContentRawMutationError  # noqa: E402

log = logging.getLogger("process_snapshots")

SITE_URL = "http://bdlaws.minlaw.gov.bd"


def _collect_inputs(paths: list[Path]) -> list[Path]:
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(sorted(path.glob("*.html")))
        elif path.is_file():
            files.append(path)
        else:
            log.warning("skipping missing input %s", path)
    return files


def _act_id(path: Path) -> str | None:
    m = ACT_LINK_RE.search(path.name)
    return m.group(1) if m else None


def process_file(
    path: Path,
    config: QualityConfig,
    *,
    max_retries: Any = None,
    extraction_delay_ms: int = 0,
) -> dict[str, Any]:
    """Build the record for one saved page."""
    html = read_html_file(path)
    act_id = _act_id(path)
    snapshot = read_snapshot(html, max_retries=max_retries, source=path.name)
    act = ActInput.from_snapshot(
        snapshot,
        url=f"{SITE_URL}/act-details-{act_id}.html" if act_id else None,
        act_id=act_id,
        extraction_delay_ms=extraction_delay_ms,
    )
    return process_act(act, config).to_dict()


def main() -> None:
    run_id = generate_run_id()
    t0 = time.time()

    parser = argparse.ArgumentParser(description="Process saved bdlaws act pages into JSONL records.")
    parser.add_argument("inputs", nargs="+", type=Path, help="HTML snapshot files or directories")
    parser.add_argument("--output", type=Path, required=True, help="Output JSONL path")
    parser.add_argument("--config", type=Path, default=None, help="Quality configuration JSON")
    parser.add_argument(
        "--manifest-dir",
        type=Path,
        default=None,
        help="Directory for run manifests (default: output directory)",
    )
    parser.add_argument("--max-retries", default=None, help="Selector retry limit (1-10; junk -> 3)")
    parser.add_argument(
        "--extraction-delay-ms",
        default="0",
        help="Delay recorded for the capture (0-5000 ms; junk -> 0)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Process inputs and print stats without writing files",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    config = load_quality_config(args.config) if args.config else QualityConfig.default()
    delay_ms = clamp_extraction_delay(args.extraction_delay_ms)
    files = _collect_inputs(args.inputs)
    if not files:
        log.error("No HTML inputs found")
        sys.exit(1)
    log.info("Processing %d snapshot(s)", len(files))

    records: list[dict[str, Any]] = []
    errors = 0
    for i, path in enumerate(files, start=1):
        try:
            records.append(process_file(
                path, config, max_retries=args.max_retries, extraction_delay_ms=delay_ms,
            ))
        except ContentRawMutationError:
            raise
        except Exception as exc:
            errors += 1
            log.error("%s: %s", path.name, exc, exc_info=args.verbose)
            continue
        log.info("[%d/%d] %s", i, len(files), path.name)
    t_done = time.time()

    stats = corpus_stats(records)
    if args.dry_run:
        sys.stdout.buffer.write(dumps(stats, pretty=True) + b"\n")
        return

    output_path: Path = args.output.resolve()
    written = save_jsonl(records, output_path)
    log.info("Wrote %d record(s) to %s", written, output_path)

    manifest = build_manifest(
        run_id=run_id,
        output_path=output_path,
        input_source={"paths": [str(p) for p in args.inputs], "file_count": len(files)},
        timings_sec={"process": round(t_done - t0, 3), "total": round(time.time() - t0, 3)},
        errors_count=errors,
        stats=stats,
        config_source=config.source,
        git_commit=git_commit_hash(search_from=ROOT),
    )
    canonical, _ = write_manifest(args.manifest_dir or output_path.parent, manifest)
    log.info("Manifest: %s", canonical)


if __name__ == "__main__":
    main()
