"""
FFmpeg argument construction.

This module turns a transcoding task into the exact FFmpeg argument list:
output resolution fitting, codec quality flags and container flags. Nothing
here performs I/O.
"""

from pathlib import Path
from typing import Optional, Union

from ..config.models import QualityTier, TranscodingConfig
from ..models import TranscodingTask

# Quality tier -> (x264/x265 preset, CRF)
QUALITY_PRESETS: dict[QualityTier, tuple[str, int]] = {
    QualityTier.LOW: ("ultrafast", 28),
    QualityTier.MEDIUM: ("medium", 23),
    QualityTier.HIGH: ("slow", 18),
    QualityTier.ULTRA: ("veryslow", 15),
}

# VP8/VP9/AV1 use a 0-63 CRF scale
CONSTANT_QUALITY_CRF: dict[QualityTier, int] = {
    QualityTier.LOW: 40,
    QualityTier.MEDIUM: 32,
    QualityTier.HIGH: 24,
    QualityTier.ULTRA: 18,
}

NVENC_PRESETS: dict[QualityTier, str] = {
    QualityTier.LOW: "p1",
    QualityTier.MEDIUM: "p4",
    QualityTier.HIGH: "p6",
    QualityTier.ULTRA: "p7",
}

X26X_ENCODERS = frozenset({"libx264", "libx265"})
CONSTANT_QUALITY_ENCODERS = frozenset({"libvpx", "libvpx-vp9", "libaom-av1", "libsvtav1"})

FORMAT_FLAGS: dict[str, list[str]] = {
    "mp4": ["-movflags", "+faststart", "-pix_fmt", "yuv420p"],
    "webm": ["-deadline", "good", "-cpu-used", "2"],
    "mov": ["-pix_fmt", "yuv420p"],
    "mkv": ["-pix_fmt", "yuv420p"],
    "avi": [],
}

MUXERS: dict[str, str] = {
    "mp4": "mp4",
    "webm": "webm",
    "mov": "mov",
    "mkv": "matroska",
    "avi": "avi",
}


def calculate_output_resolution(
    width: int,
    height: int,
    max_width: Optional[int] = None,
    max_height: Optional[int] = None,
) -> tuple[int, int]:
    """
    Fit a resolution inside a bounding box.

    The result keeps the input aspect ratio, never exceeds either bound and
    has both dimensions rounded down to an even number. The input is never
    upscaled.

    Args:
        width: Source width
        height: Source height
        max_width: Maximum output width (None for unbounded)
        max_height: Maximum output height (None for unbounded)

    Returns:
        Tuple of (width, height), (0, 0) for a degenerate input
    """
    if width <= 0 or height <= 0:
        return 0, 0

    out_w, out_h = width, height
    bound_w = max_width if max_width else width
    bound_h = max_height if max_height else height

    if width > bound_w or height > bound_h:
        # Integer arithmetic avoids 1279.999 style truncation
        if bound_w * height <= bound_h * width:
            out_w = bound_w
            out_h = height * bound_w // width
        else:
            out_h = bound_h
            out_w = width * bound_h // height

    out_w = max(2, out_w - out_w % 2)
    out_h = max(2, out_h - out_h % 2)
    return out_w, out_h


class FFmpegCommandBuilder:
    """
    Builder for constructing FFmpeg argument lists.

    Provides a fluent interface. The executable itself is not included; the
    orchestrator prepends it.
    """

    def __init__(self):
        """Initialize command builder."""
        self._global_options: list[str] = []
        self._inputs: list[tuple[list[str], str]] = []
        self._output_options: list[str] = []
        self._outputs: list[str] = []

    def global_option(self, option: str, value: Optional[str] = None) -> "FFmpegCommandBuilder":
        """
        Add global FFmpeg option.

        Args:
            option: Option name (e.g., "-y", "-loglevel")
            value: Option value (if applicable)

        Returns:
            Self for chaining
        """
        self._global_options.append(option)
        if value is not None:
            self._global_options.append(value)
        return self

    def input(
        self,
        file: Union[Path, str],
        options: Optional[list[str]] = None,
    ) -> "FFmpegCommandBuilder":
        """
        Add input file with options placed right before it.

        Args:
            file: Input file path
            options: Input options (e.g., ["-ss", "10"])

        Returns:
            Self for chaining
        """
        self._inputs.append((list(options or []), str(file)))
        return self

    def output_option(self, option: str, value: Optional[str] = None) -> "FFmpegCommandBuilder":
        """Add a single output option."""
        self._output_options.append(option)
        if value is not None:
            self._output_options.append(str(value))
        return self

    def output_options(self, options: list[str]) -> "FFmpegCommandBuilder":
        """Add several output options verbatim."""
        self._output_options.extend(options)
        return self

    def output(self, file: Union[Path, str]) -> "FFmpegCommandBuilder":
        """
        Add output file.

        Returns:
            Self for chaining
        """
        self._outputs.append(str(file))
        return self

    def build(self) -> list[str]:
        """
        Build final argument list.

        Returns:
            FFmpeg arguments without the executable
        """
        command = self._global_options.copy()

        for options, input_file in self._inputs:
            command.extend(options)
            command.extend(["-i", input_file])

        command.extend(self._output_options)
        command.extend(self._outputs)

        return command


class TranscodeCommandBuilder:
    """Builds the FFmpeg arguments for a transcoding task."""

    def build(self, task: TranscodingTask) -> list[str]:
        """
        Build FFmpeg arguments for a task.

        Args:
            task: Task with config and (optionally) probed input metadata

        Returns:
            Argument list without the ffmpeg executable
        """
        config = task.config
        metadata = task.input_metadata
        video_codec = config.video_codec
        is_copy = video_codec == "copy"

        builder = FFmpegCommandBuilder().global_option("-y").global_option("-hide_banner")

        input_options = ["-hwaccel", "auto"] if config.hardware_acceleration else []
        builder.input(task.input_path, input_options)

        builder.output_option("-c:v", video_codec)
        builder.output_options(self.quality_flags(config))

        if not is_copy and metadata is not None:
            target = calculate_output_resolution(
                metadata.width, metadata.height, config.max_width, config.max_height
            )
            if target != (0, 0) and target != (metadata.width, metadata.height):
                builder.output_option("-vf", f"scale={target[0]}:{target[1]}")

        if config.video_bitrate and not is_copy:
            builder.output_option("-b:v", config.video_bitrate)

        if config.max_frame_rate and not is_copy:
            if metadata is None or metadata.fps > config.max_frame_rate:
                builder.output_option("-r", _format_number(config.max_frame_rate))

        builder.output_option("-c:a", config.audio_codec)
        if config.audio_bitrate and config.audio_codec != "copy":
            builder.output_option("-b:a", config.audio_bitrate)

        builder.output_options(list(config.extra_args))
        builder.output_options(self.format_flags(config.output_format, video_codec))
        builder.output_option("-f", MUXERS.get(config.output_format, config.output_format))
        builder.output(task.output_path)

        return builder.build()

    def quality_flags(self, config: TranscodingConfig) -> list[str]:
        """
        Select codec-appropriate quality flags.

        Args:
            config: Transcoding configuration

        Returns:
            Preset/CRF style flags, empty for stream copy or unknown encoders
        """
        codec = config.video_codec
        tier = QualityTier(config.quality)

        if codec in X26X_ENCODERS:
            preset, crf = QUALITY_PRESETS[tier]
            flags = ["-preset", preset, "-crf", str(crf)]
            if codec == "libx264":
                flags.extend(["-profile:v", "main", "-level", "4.0"])
            return flags

        if codec in CONSTANT_QUALITY_ENCODERS:
            flags = ["-crf", str(CONSTANT_QUALITY_CRF[tier])]
            if not config.video_bitrate:
                flags.extend(["-b:v", "0"])
            return flags

        if codec.endswith("_nvenc"):
            _, crf = QUALITY_PRESETS[tier]
            return ["-preset", NVENC_PRESETS[tier], "-cq", str(crf)]

        return []

    def format_flags(self, output_format: str, video_codec: str = "libx264") -> list[str]:
        """Container-specific flags."""
        flags = list(FORMAT_FLAGS.get(output_format, []))
        if video_codec == "copy" and "-pix_fmt" in flags:
            i = flags.index("-pix_fmt")
            del flags[i : i + 2]
        return flags


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
