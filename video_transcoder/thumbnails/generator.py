"""
Thumbnail and preview generation.

This module extracts still frames and animated GIF previews from a video. All
FFmpeg work goes through the shared process orchestrator, so thumbnails count
against the same process limit as transcodes.
"""

from pathlib import Path
from typing import Optional

from ..executor import ProcessOrchestrator
from ..inspector import VideoProber
from ..models import ThumbnailOptions, ThumbnailResult, VideoMetadata
from ..transcoder import FFmpegCommandBuilder
from ..utils import (
    EmptyOutputError,
    ensure_directory,
    format_size,
    generate_session_id,
    get_logger,
)

logger = get_logger(__name__)

DEFAULT_THUMBNAIL_TIME = 10.0
PREVIEW_EDGE_FRACTION = 0.1
SMALL_THUMBNAIL_BYTES = 1024


def calculate_thumbnail_size(
    video_width: int,
    video_height: int,
    target_width: int,
    target_height: int,
) -> tuple[int, int]:
    """
    Fit the source aspect ratio into a target box.

    Args:
        video_width: Source width
        video_height: Source height
        target_width: Box width
        target_height: Box height

    Returns:
        Tuple of (width, height), both even
    """
    if video_width <= 0 or video_height <= 0:
        width, height = target_width, target_height
    else:
        video_aspect = video_width / video_height
        target_aspect = target_width / target_height

        if video_aspect > target_aspect:
            width = target_width
            height = round(target_width / video_aspect)
        else:
            height = target_height
            width = round(target_height * video_aspect)

    width = max(2, width - width % 2)
    height = max(2, height - height % 2)
    return width, height


def _seconds(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".") or "0"


class ThumbnailGenerator:
    """
    Generates thumbnails, preview strips and animated previews.

    Frames are extracted one FFmpeg process at a time.
    """

    def __init__(
        self,
        orchestrator: ProcessOrchestrator,
        prober: Optional[VideoProber] = None,
    ):
        """
        Initialize thumbnail generator.

        Args:
            orchestrator: Shared process orchestrator
            prober: Prober used to read source dimensions and duration
        """
        self.orchestrator = orchestrator
        self.prober = prober or VideoProber()

    async def generate_thumbnail(
        self,
        video_path: Path,
        output_dir: Path,
        options: Optional[ThumbnailOptions] = None,
        metadata: Optional[VideoMetadata] = None,
    ) -> ThumbnailResult:
        """
        Extract one or more frames.

        A single frame is written as ``thumbnail.<format>``; several frames as
        ``thumbnail_1.<format>`` and so on, spaced by ``interval`` seconds
        (``duration / (count + 1)`` when unset).

        Args:
            video_path: Source video
            output_dir: Directory for images
            options: Frame extraction options
            metadata: Source metadata (probed if None)

        Returns:
            ThumbnailResult with the written paths

        Raises:
            EmptyOutputError: If FFmpeg produced an empty image
            ProcessExitError: If FFmpeg fails
        """
        video_path = Path(video_path)
        options = options or ThumbnailOptions()
        metadata = metadata or await self.prober.probe(video_path)
        output_dir = ensure_directory(Path(output_dir))

        duration = metadata.duration
        last_second = max(0.0, duration - 1)
        requested = options.time
        if requested is None:
            requested = min(DEFAULT_THUMBNAIL_TIME, duration / 2)
        start = max(0.0, min(requested, last_second))

        width, height = calculate_thumbnail_size(
            metadata.width, metadata.height, options.width, options.height
        )
        quality = max(1, min(31, options.quality))
        count = max(1, options.count)
        fmt = options.format.lower()

        logger.info(
            f"Generating {count} thumbnail(s) for {video_path.name} ({width}x{height})"
        )

        paths: list[Path] = []
        if count == 1:
            path = output_dir / f"thumbnail.{fmt}"
            await self._extract_frame(video_path, path, start, width, height, quality)
            paths.append(path)
        else:
            interval = options.interval if options.interval is not None else duration / (count + 1)
            for i in range(count):
                at = min(start + i * max(0.0, interval), last_second)
                path = output_dir / f"thumbnail_{i + 1}.{fmt}"
                await self._extract_frame(video_path, path, at, width, height, quality)
                paths.append(path)

        total_size = sum(p.stat().st_size for p in paths)
        logger.info(f"Generated {len(paths)} thumbnail(s) ({format_size(total_size)})")

        return ThumbnailResult(
            paths=paths,
            width=width,
            height=height,
            format=fmt,
            total_size=total_size,
        )

    async def generate_preview_images(
        self,
        video_path: Path,
        output_dir: Path,
        count: int = 6,
        options: Optional[ThumbnailOptions] = None,
    ) -> ThumbnailResult:
        """
        Extract evenly spaced frames, skipping the first and last 10%.

        Args:
            video_path: Source video
            output_dir: Directory for images
            count: Number of frames
            options: Size, quality and format (time, count and interval are
                replaced)
        """
        video_path = Path(video_path)
        metadata = await self.prober.probe(video_path)
        duration = metadata.duration

        start_offset = max(1.0, duration * PREVIEW_EDGE_FRACTION)
        end_offset = max(1.0, duration * PREVIEW_EDGE_FRACTION)
        available = max(0.0, duration - start_offset - end_offset)
        interval = available / (count - 1) if count > 1 else 0.0

        base = options or ThumbnailOptions()
        preview_options = ThumbnailOptions(
            time=start_offset,
            width=base.width,
            height=base.height,
            quality=base.quality,
            format=base.format,
            count=count,
            interval=interval,
        )

        return await self.generate_thumbnail(video_path, output_dir, preview_options, metadata)

    async def generate_animated_preview(
        self,
        video_path: Path,
        output_path: Path,
        start_time: float = 10.0,
        duration: float = 3.0,
        width: int = 320,
        fps: int = 10,
    ) -> Path:
        """
        Render a short animated GIF.

        Uses two passes: a palette is generated first into the orchestrator's
        temporary directory, then applied to the clip. The palette is removed
        afterwards.

        Returns:
            Path to the GIF

        Raises:
            EmptyOutputError: If the GIF is empty
            ProcessExitError: If FFmpeg fails
        """
        video_path = Path(video_path)
        output_path = Path(output_path)
        ensure_directory(output_path.parent)

        palette = self.orchestrator.get_temp_dir() / f"temp_palette_{generate_session_id('gif')}.png"
        filters = f"fps={fps},scale={width}:-1:flags=lanczos"
        clip = ["-ss", _seconds(start_time), "-t", _seconds(duration)]

        palette_args = (
            FFmpegCommandBuilder()
            .global_option("-y")
            .global_option("-hide_banner")
            .input(video_path, clip)
            .output_option("-vf", f"{filters},palettegen")
            .output(palette)
            .build()
        )

        gif_args = (
            FFmpegCommandBuilder()
            .global_option("-y")
            .global_option("-hide_banner")
            .input(video_path, clip)
            .input(palette)
            .output_option("-lavfi", f"{filters} [x]; [x][1:v] paletteuse")
            .output(output_path)
            .build()
        )

        logger.info(f"Generating animated preview: {output_path.name}")

        try:
            await self.orchestrator.execute(palette_args, session_id=generate_session_id())
            await self.orchestrator.execute(gif_args, session_id=generate_session_id())
        finally:
            try:
                palette.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove palette {palette}: {e}")

        self._check_output(output_path)
        return output_path

    async def _extract_frame(
        self,
        video_path: Path,
        output_path: Path,
        at: float,
        width: int,
        height: int,
        quality: int,
    ) -> None:
        args = (
            FFmpegCommandBuilder()
            .global_option("-y")
            .global_option("-hide_banner")
            .input(video_path, ["-ss", _seconds(at)])
            .output_option("-vframes", "1")
            .output_option("-vf", f"scale={width}:{height}")
            .output_option("-q:v", str(quality))
            .output(output_path)
            .build()
        )

        logger.debug(f"Extracting frame at {at:.2f}s -> {output_path.name}")
        await self.orchestrator.execute(args, session_id=generate_session_id())
        self._check_output(output_path)

    def _check_output(self, path: Path) -> None:
        """Delete and raise on empty images; warn on suspiciously small ones."""
        size = path.stat().st_size if path.exists() else 0

        if size == 0:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove empty output {path}: {e}")
            raise EmptyOutputError(f"Generated file is empty: {path}")

        if size < SMALL_THUMBNAIL_BYTES:
            logger.warning(f"Thumbnail is unusually small: {path.name} ({format_size(size)})")
