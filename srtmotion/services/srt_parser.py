"""Import / export captions in SRT format."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from srtmotion.models.caption import Caption
from srtmotion.utils.time_utils import seconds_to_srt_time, srt_time_to_seconds

logger = logging.getLogger(__name__)

_BLOCK_SPLIT_RE = re.compile(r"\n\s*\n")
_INDEX_RE = re.compile(r"^\d+$")
_TIME_RE = re.compile(r"^\s*(\S+)\s*-->\s*(\S+)")
_TAG_RE = re.compile(r"<[^>]*>")


class IngestionError(ValueError):
    """A subtitle block that could not be turned into a caption."""

    def __init__(self, block_number: int, reason: str, block: str = ""):
        super().__init__(f"Block {block_number}: {reason}")
        self.block_number = block_number
        self.reason = reason
        self.block = block


@dataclass
class IngestResult:
    captions: list[Caption] = field(default_factory=list)
    errors: list[IngestionError] = field(default_factory=list)


def strip_markup(text: str) -> str:
    """Remove HTML-like tags (``<i>``, ``<font ...>``) from caption text."""
    return _TAG_RE.sub("", text)


def parse_srt(content: str) -> IngestResult:
    """Parse SRT text into captions.

    The index line is optional when the timing line leads the block.
    Malformed blocks are skipped and reported in ``errors``.
    """
    normalized = content.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")
    result = IngestResult()
    used_ids: set[str] = set()

    for number, block in enumerate(_BLOCK_SPLIT_RE.split(normalized.strip()), start=1):
        lines = block.strip().split("\n")
        if not lines or not lines[0].strip():
            continue
        try:
            caption = _parse_block(lines, number, len(result.captions) + 1, used_ids)
        except IngestionError as e:
            logger.warning("Skipping subtitle block: %s", e)
            result.errors.append(e)
            continue
        used_ids.add(caption.id)
        result.captions.append(caption)

    return result


def _parse_block(lines: list[str], number: int, ordinal: int, used_ids: set[str]) -> Caption:
    block = "\n".join(lines)
    first = lines[0].strip()
    index_label: str | None = None
    if _INDEX_RE.match(first):
        index_label = first
        time_idx = 1
    elif "-->" in first:
        time_idx = 0
    else:
        raise IngestionError(number, "missing index or timing line", block)

    if time_idx >= len(lines):
        raise IngestionError(number, "missing timing line", block)
    m = _TIME_RE.match(lines[time_idx])
    if not m:
        raise IngestionError(number, f"malformed timing line {lines[time_idx]!r}", block)
    try:
        start = srt_time_to_seconds(m.group(1))
        end = srt_time_to_seconds(m.group(2))
    except ValueError as e:
        raise IngestionError(number, str(e), block)
    if end <= start:
        raise IngestionError(number, "end time must be after start time", block)

    text = strip_markup("\n".join(lines[time_idx + 1:])).strip()
    if not text:
        raise IngestionError(number, "no caption text", block)

    if index_label is not None and index_label not in used_ids:
        caption_id = index_label
    else:
        caption_id = f"cue-{ordinal}"
        n = ordinal
        while caption_id in used_ids:
            n += 1
            caption_id = f"cue-{n}"
    return Caption(caption_id, start, end, text)


def import_srt(path: Path) -> IngestResult:
    """Read an SRT file (UTF-8, BOM tolerated) and parse it."""
    text = Path(path).read_text(encoding="utf-8-sig")
    result = parse_srt(text)
    logger.info(
        "Imported %d captions from %s (%d skipped)",
        len(result.captions), path, len(result.errors),
    )
    return result


def export_srt(captions: Iterable[Caption], output_path: Path) -> None:
    """Export captions to an SRT file, renumbered from 1."""
    lines: list[str] = []
    for i, cap in enumerate(captions, start=1):
        lines.append(str(i))
        lines.append(f"{seconds_to_srt_time(cap.start_time)} --> {seconds_to_srt_time(cap.end_time)}")
        lines.append(cap.text)
        lines.append("")

    Path(output_path).write_text("\n".join(lines), encoding="utf-8")
