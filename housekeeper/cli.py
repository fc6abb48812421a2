import argparse
import sys
from pathlib import Path
from typing import List, Optional

from rich.table import Table

from .config import RunConfig, config_from_mapping, load_config
from .errors import ConfigError
from .logger import console, err_console, setup_logging
from .models import Category, RunStatus
from .orchestrator import RunOrchestrator, exit_code
from .report import RunReport
from .reporter import write_report


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="housekeeper",
        description="Sort files into documents, photos and music folders, safely.",
    )
    p.add_argument("sources", nargs="*", type=Path, help="Folders to organize")
    p.add_argument("--config", "-c", type=Path, help="JSON config file")
    p.add_argument("--documents", type=Path, help="Destination for documents")
    p.add_argument("--photos", type=Path, help="Destination for photos")
    p.add_argument("--music", type=Path, help="Music library root")
    p.add_argument("--mode", choices=["flatten", "preserve"], help="Keep source subfolders or not")
    p.add_argument("--simulate", "--dry-run", action="store_true", default=None,
                   help="Print actions without touching any file")
    p.add_argument("--overwrite", action="store_true", default=None,
                   help="Replace files that already exist at the destination")
    p.add_argument("--timeout", type=float, help="Wall-clock budget in seconds")
    p.add_argument("--workers", type=int, help="Parallel file moves (1 = sequential)")
    p.add_argument("--no-music-pass", action="store_true", help="Skip album consolidation")
    p.add_argument("--keep-empty-dirs", action="store_true", help="Do not remove emptied folders")
    p.add_argument("--report", type=Path, help="Write the run report here")
    p.add_argument("--report-format", choices=["json", "csv", "html"], help="Report format")
    p.add_argument("--log-file", type=Path, help="Append log lines to this file")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def build_config(args: argparse.Namespace) -> RunConfig:
    cfg = load_config(args.config)
    overrides = {}
    if args.sources:
        overrides["sources"] = [str(s) for s in args.sources]
    dests = {}
    for name, value in (("document", args.documents), ("photo", args.photos), ("music", args.music)):
        if value:
            dests[name] = str(value)
    if dests:
        overrides["destinations"] = dests
    if args.mode:
        overrides["mode"] = args.mode
    if args.simulate:
        overrides["simulate"] = True
    if args.overwrite:
        overrides["allow_overwrite"] = True
    if args.timeout is not None:
        overrides["timeout_seconds"] = args.timeout
    if args.workers is not None:
        overrides["max_workers"] = args.workers
    if args.no_music_pass:
        overrides["music_pass"] = False
    if args.keep_empty_dirs:
        overrides["cleanup_empty_dirs"] = False
    if args.report:
        overrides["report_path"] = str(args.report)
    if args.report_format:
        overrides["report_format"] = args.report_format
    if args.log_file:
        overrides["log_file"] = str(args.log_file)
    return config_from_mapping(overrides, cfg)


def _human_bytes(n: int) -> str:
    size = float(n)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{size:.1f} TB"


def print_summary(report: RunReport) -> None:
    title = f"Run {report.run_id}" + (" (simulate only)" if report.simulate else "")
    table = Table(title=title)
    table.add_column("Category")
    for col in ("Processed", "Moved", "Simulated", "Skipped", "Failed", "Bytes"):
        table.add_column(col, justify="right")
    for category in Category:
        t = report.totals[category]
        if not t.processed:
            continue
        table.add_row(category.value, str(t.processed), str(t.moved), str(t.simulated),
                      str(t.skipped), f"[red]{t.failed}[/red]" if t.failed else "0",
                      _human_bytes(t.bytes_moved))
    console.print(table)

    s = report.summary()
    console.print(
        f"Albums moved: {s['folders_moved']}  Duplicates: {s['duplicates']}  "
        f"Empty folders removed: {s['empty_dirs_removed']}  "
        f"Non-music folders removed: {s['cruft_dirs_removed']}"
    )
    if report.duplicate_risk:
        console.print(f"[bold red]{len(report.duplicate_risk)} file(s) exist at both source and destination:")
        for p in report.duplicate_risk:
            console.print(f"  {p}")
    if report.timed_out:
        console.print("[yellow]Stopped early: time budget exceeded.")
    color = "green" if report.status is RunStatus.COMPLETED else "red"
    console.print(f"[{color}]Status: {report.status.value}[/{color}] in {report.duration_seconds:.2f}s")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        cfg = build_config(args)
    except ConfigError as e:
        err_console.print(f"[red]{e}")
        return 2

    setup_logging(cfg.log_file, verbose=args.verbose)
    report = RunOrchestrator(cfg).run()
    print_summary(report)

    if cfg.report_path:
        try:
            out = write_report(report, cfg.report_path, cfg.report_format)
            console.print(f"Report written to {out}")
        except OSError as e:
            err_console.print(f"[red]Could not write report {cfg.report_path}: {e}")
    return exit_code(report)


if __name__ == "__main__":
    sys.exit(main())
