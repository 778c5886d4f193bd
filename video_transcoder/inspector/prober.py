"""
Media probing using FFprobe.

This module extracts the primary video stream, audio and subtitle stream
descriptors from a media file and decides whether the file needs to be
transcoded for broad player compatibility.
"""

import asyncio
import json
import shutil
from pathlib import Path
from typing import Optional

from ..models import AudioStreamInfo, SubtitleStreamInfo, VideoMetadata
from ..utils import (
    InsufficientSpaceError,
    InvalidInputError,
    ProbeError,
    ProbeParseError,
    format_size,
    get_logger,
    log_performance,
)

logger = get_logger(__name__)

# Codecs that play everywhere without re-encoding
SAFE_CODECS = frozenset({"h264", "avc", "avc1", "vp8", "vp9", "av1"})
H264_CODECS = frozenset({"h264", "avc", "avc1"})
HEVC_CODECS = frozenset({"hevc", "h265"})
SAFE_H264_PROFILES = frozenset({"baseline", "constrained baseline", "main"})

DEFAULT_FRAME_RATE = 30.0
DISK_SPACE_FACTOR = 1.5
DISK_SPACE_MARGIN = 1024**3


def parse_frame_rate(value: Optional[str]) -> float:
    """
    Parse an FFprobe frame rate string.

    Args:
        value: Rate as a fraction ("30000/1001") or a plain number ("25")

    Returns:
        Frames per second, 30.0 when unparsable or the denominator is zero
    """
    if not value:
        return DEFAULT_FRAME_RATE

    try:
        if "/" in value:
            num, den = value.split("/", 1)
            denominator = float(den)
            if denominator == 0:
                return DEFAULT_FRAME_RATE
            fps = float(num) / denominator
        else:
            fps = float(value)
    except ValueError:
        return DEFAULT_FRAME_RATE

    return round(fps, 2) if fps > 0 else DEFAULT_FRAME_RATE


def needs_transcoding(codec: str, profile: Optional[str] = None) -> bool:
    """
    Decide whether a video stream must be re-encoded.

    HEVC always needs transcoding. H.264 is kept only for the Baseline,
    Constrained Baseline and Main profiles. Anything outside the safe codec
    set needs transcoding.
    """
    codec = (codec or "").lower()

    if codec in HEVC_CODECS:
        return True

    if codec in H264_CODECS:
        return (profile or "").strip().lower() not in SAFE_H264_PROFILES

    return codec not in SAFE_CODECS


def _to_int(value, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _to_float(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class VideoProber:
    """
    Probes media files with FFprobe.

    Probing spawns its own subprocess and does not count against the
    orchestrator's process limit.
    """

    def __init__(self, ffprobe_path: str = "ffprobe"):
        """
        Initialize video prober.

        Args:
            ffprobe_path: Path to ffprobe executable (default: "ffprobe")
        """
        self._ffprobe_path = ffprobe_path

    @log_performance(logger)
    async def probe(self, path: Path) -> VideoMetadata:
        """
        Probe a media file.

        Args:
            path: Path to media file

        Returns:
            VideoMetadata snapshot including the transcoding verdict

        Raises:
            InvalidInputError: If the file is missing, not a file or empty
            ProbeParseError: If FFprobe output is unusable
            ProbeError: If FFprobe fails
        """
        path = Path(path)
        self.validate_input(path)

        logger.debug(f"Probing media file: {path.name}")
        data = await self._run_ffprobe(path)
        metadata = self.parse_probe_data(data, path)

        logger.info(
            f"Probed {path.name}: {metadata.codec} {metadata.resolution} "
            f"{metadata.fps}fps, needs transcoding: {metadata.needs_transcoding}"
        )
        return metadata

    @staticmethod
    def validate_input(path: Path) -> None:
        """
        Check that a source file exists, is a regular file and is not empty.

        Raises:
            InvalidInputError: If any check fails
        """
        if not path.exists():
            raise InvalidInputError(f"File not found: {path}")

        if not path.is_file():
            raise InvalidInputError(f"Not a file: {path}")

        try:
            size = path.stat().st_size
        except OSError as e:
            raise InvalidInputError(f"Cannot read file {path}: {e}") from e

        if size == 0:
            raise InvalidInputError(f"File is empty: {path}")

    async def _run_ffprobe(self, path: Path) -> dict:
        """
        Run ffprobe and return parsed JSON output.

        Raises:
            ProbeError: If ffprobe cannot be started or exits non-zero
            ProbeParseError: If the output is not valid JSON
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self._ffprobe_path,
                "-v",
                "quiet",
                "-print_format",
                "json",
                "-show_format",
                "-show_streams",
                str(path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProbeError(f"FFprobe execution failed: {e}") from e

        stdout, stderr = await process.communicate()

        if process.returncode != 0:
            error_msg = stderr.decode(errors="replace").strip() if stderr else "Unknown error"
            raise ProbeError(f"FFprobe failed with code {process.returncode}: {error_msg}")

        try:
            return json.loads(stdout.decode(errors="replace"))
        except json.JSONDecodeError as e:
            raise ProbeParseError(f"Failed to parse FFprobe output: {e}") from e

    def parse_probe_data(self, data: dict, path: Optional[Path] = None) -> VideoMetadata:
        """
        Build VideoMetadata from FFprobe JSON.

        Raises:
            ProbeParseError: If there is no video stream
        """
        if not isinstance(data, dict):
            raise ProbeParseError("FFprobe output is not a JSON object")

        streams = data.get("streams") or []
        format_data = data.get("format") or {}

        video = next((s for s in streams if s.get("codec_type") == "video"), None)
        if video is None:
            raise ProbeParseError(f"No video stream found in {path or 'input'}")

        audio_streams = [
            AudioStreamInfo(
                index=_to_int(s.get("index")),
                codec=s.get("codec_name", "unknown"),
                channels=_to_int(s.get("channels")),
                sample_rate=_to_int(s.get("sample_rate")),
                bitrate=_to_int(s.get("bit_rate")),
                language=(s.get("tags") or {}).get("language", "und"),
            )
            for s in streams
            if s.get("codec_type") == "audio"
        ]

        subtitle_streams = [
            SubtitleStreamInfo(
                index=_to_int(s.get("index")),
                codec=s.get("codec_name", "unknown"),
                language=(s.get("tags") or {}).get("language", "und"),
                title=(s.get("tags") or {}).get("title"),
            )
            for s in streams
            if s.get("codec_type") == "subtitle"
        ]

        codec = (video.get("codec_name") or "unknown").lower()
        profile = video.get("profile")

        bitrate = _to_int(format_data.get("bit_rate")) or _to_int(video.get("bit_rate"))
        file_size = _to_int(format_data.get("size"))
        if not file_size and path is not None:
            try:
                file_size = path.stat().st_size
            except OSError:
                file_size = 0

        duration = _to_float(format_data.get("duration")) or _to_float(video.get("duration"))

        return VideoMetadata(
            codec=codec,
            profile=profile,
            width=_to_int(video.get("width")),
            height=_to_int(video.get("height")),
            duration=duration,
            bitrate=bitrate,
            fps=parse_frame_rate(video.get("r_frame_rate")),
            file_size=file_size,
            format_name=format_data.get("format_name"),
            pix_fmt=video.get("pix_fmt"),
            needs_transcoding=needs_transcoding(codec, profile),
            audio_streams=audio_streams,
            subtitle_streams=subtitle_streams,
        )

    @staticmethod
    def parse_frame_rate(value: Optional[str]) -> float:
        """Parse an FFprobe frame rate string."""
        return parse_frame_rate(value)

    @staticmethod
    def needs_transcoding(metadata: VideoMetadata) -> bool:
        """Re-evaluate the transcoding verdict for probed metadata."""
        return needs_transcoding(metadata.codec, metadata.profile)

    @staticmethod
    def check_disk_space(output_dir: Path, input_size: int) -> None:
        """
        Verify there is room for the output.

        Requires 1.5x the input size plus 1 GiB free in ``output_dir`` (or its
        nearest existing parent). Failing to query the filesystem only logs a
        warning.

        Raises:
            InsufficientSpaceError: If free space is below the requirement
        """
        required = int(input_size * DISK_SPACE_FACTOR) + DISK_SPACE_MARGIN

        target = Path(output_dir)
        while not target.exists() and target != target.parent:
            target = target.parent

        try:
            available = shutil.disk_usage(target).free
        except OSError as e:
            logger.warning(f"Could not check disk space for {output_dir}: {e}")
            return

        if available < required:
            raise InsufficientSpaceError(
                f"Insufficient disk space in {output_dir}: need {format_size(required)}, "
                f"have {format_size(available)}",
                required=required,
                available=available,
            )

        logger.debug(f"Disk space OK: {format_size(available)} free, {format_size(required)} needed")

    async def is_available(self) -> bool:
        """Check that ffprobe can be executed."""
        try:
            process = await asyncio.create_subprocess_exec(
                self._ffprobe_path,
                "-version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            await process.communicate()
        except OSError:
            return False
        return process.returncode == 0
