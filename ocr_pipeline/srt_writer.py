"""
SRT Writer — Standard SubRip subtitle file generator.

Converts reconciled OCR results into properly formatted .srt files
with sequential indices, HH:MM:SS,mmm timestamps, and UTF-8 encoding.
"""

import logging
from pathlib import Path
from typing import List, TextIO

logger = logging.getLogger(__name__)


class SRTWriter:
    """
    Writes OCR results to a standard SRT (SubRip) file.

    SRT format:
        1
        00:00:01,200 --> 00:00:04,800
        Hello everyone, welcome to the show.

        2
        00:00:05,100 --> 00:00:06,300
        I'm not sure about that.
    """

    def write(self, entries: List, output_path: Path):
        """
        Write OCR results to an SRT file.

        Args:
            entries: List of OCRResult objects (sorted by counter).
            output_path: Path for the output .srt file.
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            self.write_stream(entries, f)

        logger.info(
            f"SRT written: {len(entries)} subtitles → {output_path}"
        )

    def write_stream(self, entries: List, stream: TextIO):
        """Write OCR results to an already opened text stream."""
        for i, entry in enumerate(entries):
            stream.write(f"{i + 1}\n")
            stream.write(
                f"{self.format_timestamp(entry.start_pts)} --> "
                f"{self.format_timestamp(entry.end_pts)}\n"
            )
            stream.write(f"{entry.display_text}\n")
            stream.write("\n")  # Blank line separator

    @staticmethod
    def format_timestamp(pts: int) -> str:
        """
        Convert a 90 kHz presentation timestamp to HH:MM:SS,mmm.

        Args:
            pts: Timestamp in 1/90 ms units (e.g., 11281500)

        Returns:
            Formatted timestamp string (e.g., "00:02:05,350")
        """
        ms = pts // 90
        hours = ms // 3600000
        minutes = ms % 3600000 // 60000
        secs = ms % 60000 // 1000
        millis = ms % 1000

        return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"

    def write_preview(self, entries: List, max_entries: int = 10) -> str:
        """
        Generate a text preview of the OCR results.

        Args:
            entries: List of OCRResult objects.
            max_entries: Maximum entries to include in preview.

        Returns:
            Formatted string preview.
        """
        lines = []
        shown = min(len(entries), max_entries)

        for entry in entries[:shown]:
            ts_start = self.format_timestamp(entry.start_pts)
            ts_end = self.format_timestamp(entry.end_pts)
            text = entry.display_text.replace("\n", " / ")
            text_preview = text[:80]
            if len(text) > 80:
                text_preview += "..."
            lines.append(f"  [{ts_start} → {ts_end}] {text_preview}")

        if len(entries) > shown:
            lines.append(f"  ... and {len(entries) - shown} more entries")

        return "\n".join(lines)
