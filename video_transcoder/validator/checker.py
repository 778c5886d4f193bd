"""
Output validation for transcoded files.

This module provides validation for a finished transcode:
- Output file existence and size
- Re-probing of the output
- Codec family verification
- Quality score and compression ratio metrics
"""

from pathlib import Path
from typing import Optional

from ..inspector import VideoProber
from ..models import VideoMetadata
from ..utils import (
    CodecMismatchError,
    EmptyOutputError,
    ProbeError,
    ValidationError,
    get_logger,
    log_performance,
)

logger = get_logger(__name__)

H264_FAMILY = frozenset({"h264", "avc", "avc1"})
HEVC_FAMILY = frozenset({"hevc", "h265"})
VP9_FAMILY = frozenset({"vp9"})
VP8_FAMILY = frozenset({"vp8"})
AV1_FAMILY = frozenset({"av1"})

ENCODER_FAMILIES: dict[str, frozenset[str]] = {
    "libx264": H264_FAMILY,
    "libx265": HEVC_FAMILY,
    "libvpx-vp9": VP9_FAMILY,
    "libvpx": VP8_FAMILY,
    "libaom-av1": AV1_FAMILY,
    "libsvtav1": AV1_FAMILY,
}

# Hardware encoders are named <codec>_<backend>
ENCODER_PREFIX_FAMILIES: dict[str, frozenset[str]] = {
    "h264_": H264_FAMILY,
    "hevc_": HEVC_FAMILY,
    "vp9_": VP9_FAMILY,
    "av1_": AV1_FAMILY,
}


def expected_codec_family(encoder: Optional[str]) -> Optional[frozenset[str]]:
    """
    Map an FFmpeg encoder name to the codec names FFprobe may report.

    Returns:
        Set of acceptable codec names, or None when no check applies
        (stream copy or an unknown encoder)
    """
    if not encoder or encoder == "copy":
        return None

    encoder = encoder.lower()
    if encoder in ENCODER_FAMILIES:
        return ENCODER_FAMILIES[encoder]

    for prefix, family in ENCODER_PREFIX_FAMILIES.items():
        if encoder.startswith(prefix):
            return family

    return None


def compute_quality_score(input_meta: VideoMetadata, output_meta: VideoMetadata) -> int:
    """
    Estimate how much quality survived the transcode.

    Starts at 100 and subtracts:
    - resolution shrinkage, up to 30 points
    - bitrate collapse: 40 below 30% of the input, 20 below 50%, 10 below 70%
    - frame rate reduction, up to 20 points
    - 10 points when the output is more than twice the input size

    Returns:
        Score clamped to [0, 100]
    """
    score = 100.0

    input_pixels = input_meta.width * input_meta.height
    output_pixels = output_meta.width * output_meta.height
    if input_pixels > 0 and output_pixels < input_pixels:
        score -= (1 - output_pixels / input_pixels) * 30

    if input_meta.bitrate > 0:
        bitrate_ratio = output_meta.bitrate / input_meta.bitrate
        if bitrate_ratio < 0.3:
            score -= 40
        elif bitrate_ratio < 0.5:
            score -= 20
        elif bitrate_ratio < 0.7:
            score -= 10

    if input_meta.fps > 0 and output_meta.fps < input_meta.fps:
        score -= (1 - output_meta.fps / input_meta.fps) * 20

    if input_meta.file_size > 0 and output_meta.file_size > input_meta.file_size * 2:
        score -= 10

    return int(max(0, min(100, round(score))))


def compute_compression_ratio(original_size: int, compressed_size: int) -> float:
    """
    Fraction of bytes saved: ``(original - compressed) / original``.

    Returns 0 when the original size is 0. Negative when the output grew.
    """
    if original_size == 0:
        return 0.0
    return (original_size - compressed_size) / original_size


class ResultValidator:
    """
    Validator for transcoding output.

    Any validation failure deletes the output file so a corrupt result is
    never left in place.
    """

    def __init__(self, prober: Optional[VideoProber] = None):
        """
        Initialize result validator.

        Args:
            prober: Prober used to re-probe outputs
        """
        self.prober = prober or VideoProber()
        self.logger = logger

    @log_performance(logger)
    async def validate(
        self, output_path: Path, expected_codec: Optional[str] = None
    ) -> VideoMetadata:
        """
        Validate a transcoded output file.

        Args:
            output_path: Output file to check
            expected_codec: Encoder that produced it (e.g. "libx264")

        Returns:
            Metadata of the output

        Raises:
            EmptyOutputError: If the output is missing or empty
            CodecMismatchError: If the output codec is not in the encoder's family
            ProbeError: If the output cannot be probed
        """
        output_path = Path(output_path)

        try:
            if not output_path.exists() or output_path.stat().st_size == 0:
                raise EmptyOutputError(f"Output file is missing or empty: {output_path}")

            metadata = await self.prober.probe(output_path)

            family = expected_codec_family(expected_codec)
            if family is not None and metadata.codec.lower() not in family:
                raise CodecMismatchError(
                    f"Output codec {metadata.codec} does not match {expected_codec}",
                    expected=expected_codec or "",
                    actual=metadata.codec,
                )

        except (ValidationError, ProbeError) as e:
            self.logger.error(f"Validation failed for {output_path.name}: {e}")
            self._discard(output_path)
            raise

        self.logger.info(f"Validated output {output_path.name}: {metadata.codec} {metadata.resolution}")
        return metadata

    def _discard(self, path: Path) -> None:
        """Delete an invalid output, logging failures."""
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            self.logger.warning(f"Failed to delete invalid output {path}: {e}")

    @staticmethod
    def compute_quality_score(input_meta: VideoMetadata, output_meta: VideoMetadata) -> int:
        """Estimate how much quality survived the transcode."""
        return compute_quality_score(input_meta, output_meta)

    @staticmethod
    def compute_compression_ratio(original_size: int, compressed_size: int) -> float:
        """Fraction of bytes saved."""
        return compute_compression_ratio(original_size, compressed_size)
