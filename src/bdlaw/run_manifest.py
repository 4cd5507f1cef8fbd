"""Run-manifest utilities for corpus batch reproducibility and comparison."""
from __future__ import annotations

import subprocess
from collections import Counter
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Iterable
from uuid import uuid4

from bdlaw.io_utils import load_json, save_json
from bdlaw.patterns import LEXICAL_RELATION_TYPES

MANIFEST_VERSION = "1.0"
MANIFEST_FILENAME = "run_manifest.json"

COMPLETENESS_LEVELS: tuple[str, ...] = ("complete", "textual_partial", "uncertain")


def utc_now_iso() -> str:
    """Return current UTC timestamp in ISO-8601 format."""
    return datetime.now(UTC).isoformat()


def generate_run_id(prefix: str = "bdlaw_batch") -> str:
    """Generate a compact run id suitable for artifact naming."""
    ts = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    return f"{prefix}_{ts}_{uuid4().hex[:8]}"


def default_manifest_path(manifest_dir: Path) -> Path:
    return manifest_dir / MANIFEST_FILENAME


def versioned_manifest_path(manifest_dir: Path, run_id: str) -> Path:
    return manifest_dir / f"run_manifest_{run_id}.json"


def git_commit_hash(*, search_from: Path | None = None) -> str | None:
    """Best-effort current git commit hash for reproducibility metadata."""
    cwd = (search_from or Path.cwd())
    if cwd.is_file():
        cwd = cwd.parent
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return None
    if proc.returncode != 0:
        return None
    out = proc.stdout.strip()
    return out if out else None


# ---------------------------------------------------------------------------
# Corpus statistics
# ---------------------------------------------------------------------------


def completeness_distribution(records: Iterable[dict[str, Any]]) -> dict[str, int]:
    counts = {level: 0 for level in COMPLETENESS_LEVELS}
    for record in records:
        quality = record.get("data_quality") or {}
        level = quality.get("completeness", "uncertain")
        counts[level] = counts.get(level, 0) + 1
    return counts


def cross_reference_coverage(records: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Reference counts per lexical relation type, and how many acts cite anything."""
    by_type = {t: 0 for t in LEXICAL_RELATION_TYPES}
    negated = 0
    acts_with_refs = 0
    total = 0
    for record in records:
        refs = (record.get("lexical_references") or {}).get("references") or []
        if refs:
            acts_with_refs += 1
        for ref in refs:
            total += 1
            kind = ref.get("lexical_relation_type", "mention")
            by_type[kind] = by_type.get(kind, 0) + 1
            if ref.get("negation_present"):
                negated += 1
    return {
        "total_references": total,
        "acts_with_references": acts_with_refs,
        "by_lexical_relation_type": by_type,
        "negation_forced_mentions": negated,
    }


def corpus_stats(records: list[dict[str, Any]]) -> dict[str, Any]:
    """Summary statistics over a batch of act records."""
    failures = Counter(
        str(r.get("failure_reason")) for r in records if not r.get("extraction_success", True)
    )
    methods = Counter(str(r.get("extraction_method")) for r in records if r.get("extraction_method"))
    return {
        "record_count": len(records),
        "failure_count": sum(failures.values()),
        "failures_by_reason": dict(sorted(failures.items())),
        "extraction_methods": dict(sorted(methods.items())),
        "completeness_distribution": completeness_distribution(records),
        "cross_reference_coverage": cross_reference_coverage(records),
        "structure_null_count": sum(1 for r in records if r.get("structure") is None),
        "missing_schedule_count": sum(
            1 for r in records if (r.get("schedules") or {}).get("missing_schedule_flag")
        ),
    }


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


def build_manifest(
    *,
    run_id: str,
    output_path: Path,
    input_source: dict[str, Any],
    timings_sec: dict[str, float],
    errors_count: int,
    stats: dict[str, Any] | None = None,
    config_source: str | None = None,
    git_commit: str | None = None,
    notes: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build canonical manifest payload for a batch run."""
    return {
        "manifest_version": MANIFEST_VERSION,
        "created_at": utc_now_iso(),
        "run_id": run_id,
        "output_path": str(output_path),
        "config_source": config_source,
        "git_commit": git_commit,
        "input_source": input_source,
        "timings_sec": timings_sec,
        "errors_count": int(errors_count),
        "stats": stats or {},
        "notes": notes or {},
    }


def write_manifest(
    manifest_dir: Path,
    manifest: dict[str, Any],
) -> tuple[Path, Path]:
    """Write canonical + versioned manifest files into ``manifest_dir``."""
    canonical = default_manifest_path(manifest_dir)
    versioned = versioned_manifest_path(manifest_dir, str(manifest["run_id"]))
    save_json(manifest, canonical, pretty=True)
    save_json(manifest, versioned, pretty=True)
    return canonical, versioned


def load_manifest(path: Path) -> dict[str, Any]:
    """Load a manifest from JSON."""
    data = load_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"Invalid manifest payload in {path}")
    return data


def compare_manifests(
    current: dict[str, Any],
    previous: dict[str, Any],
) -> dict[str, Any]:
    """Compare two manifest payloads and produce deterministic deltas."""
    curr_stats = current.get("stats", {})
    prev_stats = previous.get("stats", {})
    curr_stats = curr_stats if isinstance(curr_stats, dict) else {}
    prev_stats = prev_stats if isinstance(prev_stats, dict) else {}

    curr_dist = curr_stats.get("completeness_distribution", {}) or {}
    prev_dist = prev_stats.get("completeness_distribution", {}) or {}
    keys = sorted(set(curr_dist) | set(prev_dist))
    completeness_delta = {
        key: int(curr_dist.get(key, 0) or 0) - int(prev_dist.get(key, 0) or 0) for key in keys
    }

    curr_errors = int(current.get("errors_count", 0) or 0)
    prev_errors = int(previous.get("errors_count", 0) or 0)
    curr_records = int(curr_stats.get("record_count", 0) or 0)
    prev_records = int(prev_stats.get("record_count", 0) or 0)

    return {
        "current_run_id": current.get("run_id"),
        "previous_run_id": previous.get("run_id"),
        "config_changed": current.get("config_source") != previous.get("config_source"),
        "record_count_delta": curr_records - prev_records,
        "completeness_delta": completeness_delta,
        "errors_count_delta": curr_errors - prev_errors,
    }
