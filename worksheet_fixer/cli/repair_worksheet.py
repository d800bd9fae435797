"""CLI to check and repair one or more worksheet (.lma) files."""
import argparse
import logging
import sys
import time
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from worksheet_fixer.config import RepairConfig
from worksheet_fixer.models.outcome import RepairOutcome
from worksheet_fixer.tools.repair import repair


console = Console()

LEVEL_MARKERS = {
    "info": r"[cyan]\[INFO][/cyan]",
    "success": r"[green]\[OK][/green]",
    "warning": r"[yellow]\[WARN][/yellow]",
    "error": r"[red]\[ERROR][/red]",
}


def output_name(source: Path, now_ms: int | None = None) -> str:
    """worksheet.lma -> worksheet_fix_<epoch ms>.lma"""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    stem = source.stem or "worksheet"
    suffix = source.suffix or ".lma"
    return f"{stem}_fix_{stamp}{suffix}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Check worksheet archives and write repaired copies"
    )
    parser.add_argument(
        "files",
        nargs="+",
        type=Path,
        help="Worksheet files to repair"
    )
    parser.add_argument(
        "-o", "--output-dir",
        type=Path,
        default=None,
        help="Directory for repaired files (default: WORKSHEET_FIXER_OUTPUT_DIR or ./output)"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only print the summary, not every check"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )
    return parser


def repair_file(path: Path, output_dir: Path, config: RepairConfig, quiet: bool = False) -> tuple[RepairOutcome, Path | None]:
    """Repair one file and write the artifact. Returns (outcome, written path)."""

    def on_progress(message: str, level: str) -> None:
        if not quiet or level == "error":
            console.print(f"  {LEVEL_MARKERS[level]} {escape(message)}", highlight=False)

    outcome = repair(path.read_bytes(), on_progress=on_progress, config=config)
    if outcome.artifact is None:
        return outcome, None

    output_dir.mkdir(parents=True, exist_ok=True)
    out_path = output_dir / output_name(path)
    out_path.write_bytes(outcome.artifact)
    return outcome, out_path


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)]
    )
    logger = logging.getLogger(__name__)

    try:
        config = RepairConfig.from_env()
    except ValueError as e:
        console.print(f"[red]Error: invalid configuration: {escape(str(e))}[/red]")
        return 2

    missing = [f for f in args.files if not f.is_file()]
    if missing:
        for f in missing:
            console.print(f"[red]Error: file not found: {escape(str(f))}[/red]")
        return 2

    output_dir = args.output_dir or Path(config.output_dir)
    logger.info(f"Writing repaired files to {output_dir}")

    results = []
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Repairing worksheets", total=len(args.files))
        for path in args.files:
            progress.update(task, description=f"Repairing {path.name}")
            console.print(f"\n[bold]{escape(str(path))}[/bold]")
            outcome, out_path = repair_file(path, output_dir, config, quiet=args.quiet)
            results.append((path, outcome, out_path))
            progress.advance(task)

    table = Table(title="Repair Summary")
    table.add_column("File", style="cyan")
    table.add_column("Result")
    table.add_column("Warnings", justify="right")
    table.add_column("Output")

    styles = {"success": "green", "warning": "yellow", "error": "red"}
    for path, outcome, out_path in results:
        style = styles[outcome.classification]
        table.add_row(
            escape(path.name),
            f"[{style}]{outcome.classification}[/{style}]",
            str(len(outcome.warnings)),
            escape(str(out_path) if out_path else (outcome.error or "-")),
        )
    console.print()
    console.print(table)

    for path, outcome, _ in results:
        if outcome.warnings:
            console.print(f"\n[bold]Warnings for {escape(path.name)}:[/bold]")
            for warning in outcome.warnings:
                console.print(f"  • {escape(warning)}", highlight=False)

    failed = sum(1 for _, outcome, _ in results if outcome.classification == "error")
    if failed:
        console.print(f"\n[red]✗ {failed} file(s) could not be repaired[/red]")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
