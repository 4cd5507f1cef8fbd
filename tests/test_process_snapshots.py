from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from bdlaw.io_utils import load_json, load_jsonl

ROOT = Path(__file__).resolve().parents[1]
SCRIPT = ROOT / "scripts" / "process_snapshots.py"

PAGE = (
    "<html><head><title>মোটরযান আইন | bdlaws</title></head><body>"
    '<div class="boxed-layout">'
    '<div class="row lineremoves">'
    '<div class="col-sm-3 txt-head">প্রবর্তন ১৷</div>'
    '<div class="col-sm-9 txt-details">(১) এই আইন অবিলম্বে কার্যকর হইবে।</div>'
    "</div>"
    "</div>"
    "</body></html>"
)


def _run(tmp_path: Path, *extra: str) -> tuple[subprocess.CompletedProcess[str], Path]:
    page = tmp_path / "pages" / "act-details-12.html"
    page.parent.mkdir(parents=True, exist_ok=True)
    page.write_text(PAGE, encoding="utf-8")
    out = tmp_path / "out" / "acts.jsonl"
    cmd = [sys.executable, str(SCRIPT), str(page.parent), "--output", str(out), *extra]
    proc = subprocess.run(
        cmd,
        cwd=str(ROOT),
        capture_output=True,
        text=True,
        check=False,
    )
    return proc, out


def test_process_snapshots_writes_records_and_manifest(tmp_path: Path) -> None:
    proc, out = _run(tmp_path, "--extraction-delay-ms", "250")
    assert proc.returncode == 0, proc.stdout + proc.stderr
    (record,) = load_jsonl(out)
    assert record["identifiers"]["internal_id"] == "12"
    assert record["extraction_delay"]["extraction_delay_ms"] == 250
    manifest = load_json(out.parent / "run_manifest.json")
    assert manifest["stats"]["record_count"] == 1
    assert manifest["errors_count"] == 0


def test_non_numeric_delay_falls_back_to_zero(tmp_path: Path) -> None:
    proc, out = _run(tmp_path, "--extraction-delay-ms", "soon", "--max-retries", "many")
    assert proc.returncode == 0, proc.stdout + proc.stderr
    (record,) = load_jsonl(out)
    assert record["extraction_delay"]["extraction_delay_ms"] == 0
    assert record["retry"]["retry_count"] == 0


def test_delay_clamped_to_maximum(tmp_path: Path) -> None:
    proc, out = _run(tmp_path, "--extraction-delay-ms", "99999")
    assert proc.returncode == 0, proc.stdout + proc.stderr
    (record,) = load_jsonl(out)
    assert record["extraction_delay"]["extraction_delay_ms"] == 5000
