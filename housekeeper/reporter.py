import csv
import html
import json
from pathlib import Path

from .report import RunReport

CSV_FIELDS = ["source", "category", "outcome", "destination", "bytes", "reason", "duplicate_risk"]


def write_json(report: RunReport, path: Path) -> Path:
    path.write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
    return path


def write_csv(report: RunReport, path: Path) -> Path:
    """One row per file the run looked at."""
    data = report.to_dict()
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for row in data["entries"]:
            writer.writerow(row)
    return path


def _rows(items, keys):
    out = []
    for item in items:
        cells = "".join(f"<td>{html.escape(str(item[k]))}</td>" for k in keys)
        out.append(f"<tr>{cells}</tr>")
    return "\n".join(out)


def write_html(report: RunReport, path: Path) -> Path:
    data = report.to_dict()
    summary = "".join(
        f"<tr><th>{html.escape(k)}</th><td>{v}</td></tr>" for k, v in data["summary"].items()
    )
    header = "".join(f"<th>{k}</th>" for k in CSV_FIELDS)
    messages = "".join(
        f'<li class="{kind}">{html.escape(m)}</li>'
        for kind in ("errors", "warnings")
        for m in data[kind]
    )
    doc = f"""<!DOCTYPE html>
<html><head><meta charset="utf-8"><title>Housekeeper run {data['run_id']}</title>
<style>
body {{ font-family: sans-serif; }}
table {{ border-collapse: collapse; }}
td, th {{ border: 1px solid #ccc; padding: 2px 6px; text-align: left; }}
.errors {{ color: #b00; }} .warnings {{ color: #a60; }}
</style></head>
<body>
<h1>Run {data['run_id']}: {data['status']}</h1>
<p>Started {data['started_at']}, took {data['duration_seconds']}s.
Simulate only: {data['simulate']}. Timed out: {data['timed_out']}.</p>
<table>{summary}</table>
<h2>Files</h2>
<table><tr>{header}</tr>
{_rows(data['entries'], CSV_FIELDS)}
</table>
<h2>Folders</h2>
<table><tr><th>action</th><th>path</th><th>target</th><th>reason</th></tr>
{_rows(data['folders'], ['action', 'path', 'target', 'reason'])}
</table>
<h2>Messages</h2>
<ul>{messages}</ul>
</body></html>
"""
    path.write_text(doc, encoding="utf-8")
    return path


WRITERS = {"json": write_json, "csv": write_csv, "html": write_html}


def write_report(report: RunReport, path: Path, fmt: str = "json") -> Path:
    try:
        writer = WRITERS[fmt]
    except KeyError:
        raise ValueError(f"Unsupported report format: {fmt}") from None
    path.parent.mkdir(parents=True, exist_ok=True)
    return writer(report, path)
