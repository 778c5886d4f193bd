"""
CLI interface for the video transcoder.

This module provides the command-line interface using Typer and Rich
for terminal output.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import ConfigManager, QualityTier, TranscoderSettings
from ..executor import ProcessOrchestrator
from ..inspector import VideoProber
from ..models import TaskOptions, ThumbnailOptions, TranscodingResult
from ..scheduler import TranscodingScheduler
from ..thumbnails import ThumbnailGenerator
from ..ui import ProgressDisplay, display_summary_table
from ..utils import (
    ConfigurationError,
    TranscoderError,
    format_duration,
    format_size,
    get_logger,
    setup_logger,
)

# Initialize Typer app
app = typer.Typer(
    name="video-transcoder",
    help="Queue and run FFmpeg transcodes with retries, validation and progress",
    add_completion=False,
)

# Console for rich output
console = Console()

# Logger
logger = get_logger(__name__)


def _load_settings(config_file: Optional[Path]) -> TranscoderSettings:
    try:
        return ConfigManager(config_file).config
    except ConfigurationError as e:
        console.print(f"[red]✗ Configuration error:[/red] {e}")
        sys.exit(2)


def _run(coro, verbose: bool) -> None:
    """Run a coroutine, mapping errors to exit codes."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠ Cancelled by user[/yellow]")
        sys.exit(130)
    except TranscoderError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        if verbose:
            console.print_exception()
        sys.exit(1)


@app.command()
def transcode(
    inputs: list[Path] = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Input video file(s)",
    ),
    output_dir: Path = typer.Option(
        Path("output"),
        "--output",
        "-o",
        help="Output directory",
    ),
    output_format: Optional[str] = typer.Option(
        None, "--format", "-f", help="Output container: mp4, webm, mov, mkv, avi"
    ),
    quality: Optional[QualityTier] = typer.Option(
        None, "--quality", "-q", help="Quality tier", case_sensitive=False
    ),
    video_codec: Optional[str] = typer.Option(None, "--video-codec", help="FFmpeg video encoder"),
    audio_codec: Optional[str] = typer.Option(None, "--audio-codec", help="FFmpeg audio encoder"),
    max_width: Optional[int] = typer.Option(None, "--max-width", help="Maximum output width"),
    max_height: Optional[int] = typer.Option(None, "--max-height", help="Maximum output height"),
    video_bitrate: Optional[str] = typer.Option(None, "--bitrate", help="Video bitrate cap"),
    max_frame_rate: Optional[float] = typer.Option(None, "--max-fps", help="Frame rate cap"),
    hwaccel: bool = typer.Option(False, "--hwaccel", help="Request hardware decoding"),
    priority: int = typer.Option(0, "--priority", "-p", help="Priority (higher runs first)"),
    retries: Optional[int] = typer.Option(None, "--retries", help="Retries per task"),
    force: bool = typer.Option(
        False, "--force", help="Transcode even when the input is already compatible"
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="Custom configuration file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[Path] = typer.Option(None, "--log", help="Log file path"),
) -> None:
    """
    Transcode one or more files into an output directory.

    Inputs are probed first; files that already play everywhere are copied
    instead of re-encoded unless --force is given.
    """
    setup_logger(
        level="DEBUG" if verbose else "INFO", log_file=log_file, verbose=verbose, console=console
    )

    settings = _load_settings(config_file)
    try:
        config = settings.defaults.to_transcoding_config(
            output_format=output_format,
            quality=quality,
            video_codec=video_codec,
            audio_codec=audio_codec,
            max_width=max_width,
            max_height=max_height,
            video_bitrate=video_bitrate,
            max_frame_rate=max_frame_rate,
            hardware_acceleration=hwaccel or None,
        )
    except PydanticValidationError as e:
        console.print(f"[red]✗ Invalid option:[/red] {e}")
        sys.exit(2)
    options = TaskOptions(priority=priority, max_retries=retries, force_transcode=force)

    async def run() -> list[TranscodingResult]:
        orchestrator = ProcessOrchestrator.from_settings(settings.execution)
        scheduler = TranscodingScheduler(orchestrator, settings=settings)
        display = ProgressDisplay(console=console)
        scheduler.add_listener(display)

        with display:
            try:
                task_ids = []
                for input_file in inputs:
                    output_path = output_dir / f"{input_file.stem}.{config.output_format}"
                    task_id = await scheduler.submit(input_file, output_path, config, options)
                    display.set_task_name(task_id, input_file.name)
                    task_ids.append(task_id)

                return [await scheduler.wait_for(task_id) for task_id in task_ids]
            finally:
                await scheduler.shutdown()

    results: list[TranscodingResult] = []

    async def main() -> None:
        results.extend(await run())

    _run(main(), verbose)
    _print_results(results)

    if any(not r.success for r in results):
        sys.exit(1)


def _print_results(results: list[TranscodingResult]) -> None:
    table = Table(title="Results", show_header=True)
    table.add_column("Output", style="cyan")
    table.add_column("Status")
    table.add_column("Size", justify="right")
    table.add_column("Saved", justify="right")
    table.add_column("Quality", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Retries", justify="right")

    for r in results:
        if r.skipped:
            status = "[green]copied[/green]"
        elif r.success:
            status = "[green]✓[/green]"
        else:
            status = f"[red]✗ {r.error or ''}[/red]"
        table.add_row(
            r.output_path.name,
            status,
            format_size(r.output_size) if r.success else "-",
            f"{r.compression_ratio:.1%}" if r.success else "-",
            str(r.quality_score) if r.quality_score is not None else "-",
            format_duration(r.processing_time),
            str(r.retry_count),
        )

    console.print()
    console.print(table)


@app.command()
def probe(
    input_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Media file"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    Show metadata and the transcoding verdict for a file.
    """
    setup_logger(level="DEBUG" if verbose else "WARNING", verbose=verbose, console=console)
    settings = _load_settings(config_file)
    prober = VideoProber(settings.execution.ffprobe_path)

    async def run() -> None:
        metadata = await prober.probe(input_file)

        rows = [
            ("Codec", f"{metadata.codec} ({metadata.profile or 'n/a'})"),
            ("Resolution", metadata.resolution),
            ("Frame rate", f"{metadata.fps} fps"),
            ("Duration", format_duration(metadata.duration)),
            ("Bitrate", f"{metadata.bitrate // 1000} kb/s"),
            ("Size", format_size(metadata.file_size)),
            ("Container", metadata.format_name or "-"),
            ("Audio streams", str(len(metadata.audio_streams))),
            ("Subtitle streams", str(len(metadata.subtitle_streams))),
            (
                "Needs transcoding",
                "[yellow]yes[/yellow]" if metadata.needs_transcoding else "[green]no[/green]",
            ),
        ]
        display_summary_table(input_file.name, rows, console)

    _run(run(), verbose)


@app.command()
def thumbnail(
    input_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Video file"),
    output_dir: Path = typer.Option(Path("thumbnails"), "--output", "-o", help="Output directory"),
    count: int = typer.Option(1, "--count", "-n", help="Number of frames"),
    time: Optional[float] = typer.Option(None, "--time", "-t", help="Seconds into the video"),
    preview: bool = typer.Option(False, "--preview", help="Evenly spaced preview frames"),
    gif: bool = typer.Option(False, "--gif", help="Also render an animated GIF preview"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    Extract thumbnails or preview frames from a video.
    """
    setup_logger(level="DEBUG" if verbose else "INFO", verbose=verbose, console=console)
    settings = _load_settings(config_file)
    thumbs = settings.thumbnails

    async def run() -> None:
        orchestrator = ProcessOrchestrator.from_settings(settings.execution)
        generator = ThumbnailGenerator(orchestrator, VideoProber(settings.execution.ffprobe_path))
        options = ThumbnailOptions(
            time=time if time is not None else thumbs.time,
            width=thumbs.width,
            height=thumbs.height,
            quality=thumbs.quality,
            format=thumbs.format,
            count=count,
        )

        try:
            if preview:
                result = await generator.generate_preview_images(
                    input_file, output_dir, count=max(count, 2), options=options
                )
            else:
                result = await generator.generate_thumbnail(input_file, output_dir, options)

            for path in result.paths:
                console.print(f"[green]✓[/green] {path}")

            if gif:
                gif_path = await generator.generate_animated_preview(
                    input_file, output_dir / f"{input_file.stem}.gif"
                )
                console.print(f"[green]✓[/green] {gif_path}")
        finally:
            await orchestrator.cleanup()

    _run(run(), verbose)


@app.command("init-config")
def init_config(
    path: Optional[Path] = typer.Option(None, "--path", help="Where to write the file"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """
    Write a configuration file with default settings.
    """
    try:
        written = ConfigManager().init_default_config(path, force=force)
    except TranscoderError as e:
        console.print(f"[red]✗ Error:[/red] {e}")
        sys.exit(1)

    console.print(f"[green]✓[/green] Created config file: {written}")


@app.command("version")
def version_command() -> None:
    """
    Display version information.
    """
    from .. import __version__

    console.print(
        Panel.fit(
            f"[bold cyan]Video Transcoder[/bold cyan]\n[dim]Version {__version__}[/dim]",
            border_style="cyan",
        )
    )


def main() -> None:
    """
    Main entry point for CLI.
    """
    app()


if __name__ == "__main__":
    main()
