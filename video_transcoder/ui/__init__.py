"""UI components and progress display."""

from video_transcoder.ui.progress import ProgressDisplay, display_summary_table

__all__ = [
    "ProgressDisplay",
    "display_summary_table",
]
