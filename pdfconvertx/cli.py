"""
Command-line interface for pdfconvertx.
"""

import os
import sys
from concurrent.futures import ThreadPoolExecutor

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from pdfconvertx import __version__
from pdfconvertx.backends import PypdfSourceParser
from pdfconvertx.converter import PdfToDocxConverter
from pdfconvertx.output import ConflictStrategy, OutputPathResolver
from pdfconvertx.progress import ProgressChannel
from pdfconvertx.types import QUALITY_LEVELS, ConversionOptions, IntermediateFormat, ProgressEvent, StepCompletedEvent
from pdfconvertx.utils import configure_logging, format_file_size, to_path

console = Console()

FORMAT_CHOICES = [fmt.value for fmt in IntermediateFormat]


def _conversion_options(fmt, quality, no_images, no_formatting, no_metadata, pages, timeout, no_cache):
    return ConversionOptions(
        preserve_formatting=not no_formatting,
        extract_images=not no_images,
        preserve_metadata=not no_metadata,
        intermediate_format=fmt,
        quality_level=quality,
        page_range=pages,
        timeout_ms=timeout * 1000,
        bypass_cache=no_cache,
    )


def _conversion_flags(command):
    flags = [
        click.option('--format', '-f', 'fmt', type=click.Choice(FORMAT_CHOICES), default='markup',
                     help='Intermediate representation used between extraction and DOCX generation'),
        click.option('--quality', '-q', type=click.Choice(QUALITY_LEVELS), default='medium',
                     help='Output quality level'),
        click.option('--no-images', is_flag=True, help='Do not extract or embed images'),
        click.option('--no-formatting', is_flag=True, help='Flatten headings and lists into plain paragraphs'),
        click.option('--no-metadata', is_flag=True, help='Do not copy PDF metadata into the DOCX'),
        click.option('--pages', type=str, default=None, help='Page range to convert, e.g. 2-5'),
        click.option('--timeout', type=int, default=300, help='Per-conversion timeout in seconds'),
        click.option('--no-cache', is_flag=True, help='Bypass the conversion cache'),
    ]
    for flag in reversed(flags):
        command = flag(command)
    return command


def _print_result(result):
    stats = result.statistics
    table = Table(title="Conversion Summary", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Input", str(result.input_path))
    table.add_row("Output", str(result.output_path))
    table.add_row("Pages", str(stats.page_count))
    table.add_row("Words", str(stats.word_count))
    table.add_row("Images", str(stats.image_count))
    table.add_row("Input size", format_file_size(stats.input_size))
    table.add_row("Output size", format_file_size(stats.output_size))
    table.add_row("Time", f"{result.processing_time_ms / 1000:.2f}s")
    if result.recovery_attempts:
        table.add_row("Recovery attempts", str(result.recovery_attempts))
    if result.from_cache:
        table.add_row("Cache", "hit")
    console.print(table)

    steps = Table(title="Pipeline Steps")
    steps.add_column("Step", style="cyan")
    steps.add_column("Time", justify="right")
    steps.add_column("Status")
    for record in result.steps:
        status = "[green]✓[/green]" if record.success else "[red]✗[/red]"
        steps.add_row(record.step, f"{record.duration_ms:.0f} ms", status)
    console.print(steps)

    for warning in result.warnings:
        console.print(f"[yellow]! {escape(warning)}[/yellow]")


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose):
    """
    pdfconvertx - Convert PDF documents to DOCX.
    """
    if verbose:
        configure_logging(verbose=True)


@cli.command(name="convert")
@click.argument('input_pdf', type=click.Path(exists=True))
@click.argument('output', required=False, type=click.Path())
@_conversion_flags
def convert(input_pdf, output, fmt, quality, no_images, no_formatting, no_metadata, pages, timeout, no_cache):
    """
    Convert a single PDF into a DOCX document.

    Examples:

        pdfconvertx convert report.pdf

        pdfconvertx convert report.pdf out/report.docx --format plain-text
    """
    try:
        options = _conversion_options(fmt, quality, no_images, no_formatting, no_metadata, pages, timeout, no_cache)
        destination = output or os.path.splitext(input_pdf)[0] + ".docx"
        converter = PdfToDocxConverter()
        channel = ProgressChannel()

        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console
        ) as progress:
            task = progress.add_task("Converting", total=100)
            with ThreadPoolExecutor(max_workers=1) as executor:
                future = executor.submit(converter.convert, input_pdf, destination, options, channel)
                for event in channel:
                    if isinstance(event, ProgressEvent):
                        progress.update(task, completed=event.percentage, description=event.message)
                    elif isinstance(event, StepCompletedEvent) and not event.record.success:
                        progress.update(task, description=f"Retrying after {event.record.step}")
                result = future.result()

        if not result.success:
            for error in result.errors:
                console.print(f"[bold red]✗ Error:[/bold red] {error.type.value}: {escape(error.message)}")
            sys.exit(1)

        console.print(f"\n[bold green]✓ Converted to {result.output_path}[/bold green]")
        _print_result(result)

    except ValueError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)


@cli.command(name="batch")
@click.argument('input_pdfs', nargs=-1, required=True, type=click.Path(exists=True))
@click.option(
    '--output-dir', '-o',
    default='./output',
    help='Output directory for DOCX files',
    type=click.Path()
)
@click.option(
    '--on-conflict',
    type=click.Choice([strategy.value for strategy in ConflictStrategy if strategy is not ConflictStrategy.PROMPT]),
    default=ConflictStrategy.OVERWRITE.value,
    help='What to do when an output file already exists'
)
@_conversion_flags
def batch(input_pdfs, output_dir, on_conflict, fmt, quality, no_images, no_formatting, no_metadata, pages,
          timeout, no_cache):
    """
    Convert several PDFs into a directory.

    Example:

        pdfconvertx batch a.pdf b.pdf c.pdf -o converted
    """
    try:
        options = _conversion_options(fmt, quality, no_images, no_formatting, no_metadata, pages, timeout, no_cache)
        converter = PdfToDocxConverter()
        resolver = OutputPathResolver(on_conflict)

        console.print(f"\n[bold cyan]Converting {len(input_pdfs)} files...[/bold cyan]")
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console
        ) as progress:
            task = progress.add_task("Converting files", total=len(input_pdfs))

            def update_progress(current, total):
                progress.update(task, completed=current)

            outcome = converter.batch_convert(
                input_pdfs, output_dir, options, resolver=resolver, progress_callback=update_progress
            )

        table = Table(title="Batch Results")
        table.add_column("File", style="cyan")
        table.add_column("Status")
        table.add_column("Output", style="green")
        for result in outcome.results:
            if result.skipped:
                status = "[yellow]skipped[/yellow]"
            elif result.success:
                status = "[green]ok[/green]"
            else:
                status = f"[red]{result.errors[-1].type.value if result.errors else 'failed'}[/red]"
            table.add_row(os.path.basename(str(result.input_path)), status, str(result.output_path))
        console.print(table)

        console.print(
            f"\n[bold]Total:[/bold] {outcome.total_files}  "
            f"[bold green]Succeeded:[/bold green] {outcome.successful_conversions}  "
            f"[bold red]Failed:[/bold red] {outcome.failed_conversions}"
        )
        if outcome.failed_conversions:
            sys.exit(1)

    except ValueError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)


@cli.command(name="info")
@click.argument('input_pdf', type=click.Path(exists=True))
def show_info(input_pdf):
    """
    Display information about a PDF file.

    Example:

        pdfconvertx info input.pdf
    """
    try:
        path = to_path(input_pdf)
        parser = PypdfSourceParser()
        parser.probe(path)
        parsed = parser.parse(path, extract_text=False)

        table = Table(title=f"PDF Information: {path.name}")
        table.add_column("Property", style="cyan", no_wrap=True)
        table.add_column("Value", style="green")

        table.add_row("File Path", str(path))
        table.add_row("File Size", format_file_size(path.stat().st_size))
        table.add_row("Number of Pages", str(parsed.page_count))
        for key in ("Title", "Author", "Subject", "Keywords", "Creator", "Producer"):
            if parsed.metadata.get(key):
                table.add_row(key, parsed.metadata[key])

        console.print()
        console.print(table)
        console.print()

    except Exception as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)


def main():
    cli()


if __name__ == '__main__':
    main()
