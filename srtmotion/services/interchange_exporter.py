"""Export captions to editing-application interchange formats.

* Premiere Pro: FCP7 ``xmeml`` with one Text generator clip per caption
* DaVinci Resolve: Fusion Text+ ``.setting`` with keyframed StyledText
* ASS (Advanced SubStation Alpha) for players and burn-in tools

Times are quantised to whole frames, so a round trip through these
formats is exact to within one frame tick.
"""

from __future__ import annotations

import logging
import math
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterable
from xml.sax.saxutils import escape

from PySide6.QtGui import QColor

from srtmotion.models.caption import Caption
from srtmotion.models.settings import AnimationSettings
from srtmotion.services.animation_evaluator import DEFAULT_STAGE, StageSize

logger = logging.getLogger(__name__)

INTERCHANGE_FPS = 30
# Extra frames after the last caption (sequence / GlobalOut padding)
TAIL_FRAMES = 100


def _to_frame(seconds: float, fps: int) -> int:
    return int(round(seconds * fps))


def _frame_span(cap: Caption, fps: int) -> tuple[int, int]:
    """Start and end frame; a caption always covers at least one frame."""
    start = _to_frame(cap.start_time, fps)
    return start, max(_to_frame(cap.end_time, fps), start + 1)


def _xml_escape(text: str) -> str:
    return escape(text, {'"': "&quot;", "'": "&apos;"})


def _rate_xml(fps: int, indent: str) -> str:
    return (
        f"{indent}<rate>\n"
        f"{indent}    <timebase>{fps}</timebase>\n"
        f"{indent}    <ntsc>FALSE</ntsc>\n"
        f"{indent}</rate>"
    )


# ---------------------------------------------------------------- Premiere


def generate_premiere_xml(
    captions: Iterable[Caption],
    settings: AnimationSettings,
    name: str,
    fps: int = INTERCHANGE_FPS,
    stage_size: StageSize = DEFAULT_STAGE,
) -> str:
    """Build an FCP7 XML sequence with a Text generator clip per caption."""
    captions = list(captions)
    width, height = stage_size
    last_end = max((c.end_time for c in captions), default=0.0)
    duration_frames = math.ceil(last_end * fps) + TAIL_FRAMES
    color = QColor(settings.text_color)
    size = int(round(settings.font_size_px(width)))

    clips: list[str] = []
    for index, cap in enumerate(captions):
        start, end = _frame_span(cap, fps)
        length = end - start
        text = _xml_escape(cap.text)
        clips.append(f"""\
                    <clipitem id="clipitem-{index}">
                        <name>{text}</name>
                        <enabled>TRUE</enabled>
                        <duration>{length}</duration>
{_rate_xml(fps, ' ' * 24)}
                        <start>{start}</start>
                        <end>{end}</end>
                        <in>0</in>
                        <out>{length}</out>
                        <file id="file-{index}">
                            <name>{text}</name>
                            <pathurl>file://localhost/placeholder/{index}.txt</pathurl>
{_rate_xml(fps, ' ' * 28)}
                            <media>
                                <video>
                                    <samplecharacteristics>
                                        <width>{width}</width>
                                        <height>{height}</height>
                                    </samplecharacteristics>
                                </video>
                            </media>
                        </file>
                        <filter>
                            <effect>
                                <name>Text</name>
                                <effectid>Text</effectid>
                                <effectcategory>Text</effectcategory>
                                <effecttype>generator</effecttype>
                                <mediatype>video</mediatype>
                                <parameter>
                                    <name>Text</name>
                                    <value>{text}</value>
                                </parameter>
                                <parameter>
                                    <name>Font</name>
                                    <value>{_xml_escape(settings.font_family)}</value>
                                </parameter>
                                <parameter>
                                    <name>Size</name>
                                    <value>{size}</value>
                                </parameter>
                                <parameter>
                                    <name>Font Color</name>
                                    <value>
                                        <alpha>255</alpha>
                                        <red>{color.red()}</red>
                                        <green>{color.green()}</green>
                                        <blue>{color.blue()}</blue>
                                    </value>
                                </parameter>
                            </effect>
                        </filter>
                        <labels>
                            <label2>Violet</label2>
                        </labels>
                    </clipitem>""")

    return f"""\
<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE xmeml>
<xmeml version="4">
    <sequence>
        <name>{_xml_escape(name)}</name>
        <duration>{duration_frames}</duration>
{_rate_xml(fps, ' ' * 8)}
        <media>
            <video>
                <format>
                    <samplecharacteristics>
{_rate_xml(fps, ' ' * 24)}
                        <width>{width}</width>
                        <height>{height}</height>
                        <pixelaspectratio>square</pixelaspectratio>
                    </samplecharacteristics>
                </format>
                <track>
{chr(10).join(clips)}
                </track>
            </video>
        </media>
    </sequence>
</xmeml>
"""


def parse_premiere_xml(content: str) -> list[Caption]:
    """Read captions back from an xmeml document produced above."""
    # ElementTree은 DOCTYPE 선언을 무시하므로 그대로 파싱 가능
    root = ET.fromstring(content.encode("utf-8"))
    sequence = root.find("sequence")
    if sequence is None:
        raise ValueError("Not an xmeml sequence")
    fps = int(sequence.findtext("rate/timebase", str(INTERCHANGE_FPS)))

    captions: list[Caption] = []
    for clip in sequence.iter("clipitem"):
        start = int(clip.findtext("start", "0"))
        end = int(clip.findtext("end", "0"))
        text = clip.findtext("name", "")
        for param in clip.iter("parameter"):
            if param.findtext("name") == "Text":
                text = param.findtext("value", text)
                break
        captions.append(Caption(clip.get("id", f"clipitem-{len(captions)}"), start / fps, end / fps, text))
    return captions


# ---------------------------------------------------------------- Fusion


_FUSION_KEY_RE = re.compile(r'\[(\d+)\]\s*=\s*"((?:[^"\\]|\\.)*)"')
_FUSION_UNESCAPE_RE = re.compile(r"\\(.)")


def _escape_fusion(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _unescape_fusion(text: str) -> str:
    return _FUSION_UNESCAPE_RE.sub(lambda m: "\n" if m.group(1) == "n" else m.group(1), text)


def fusion_keyframes(captions: Iterable[Caption], fps: int = INTERCHANGE_FPS) -> dict[int, str]:
    """Frame → text keyframes.

    Text+ shows one string at a time: a caption's end frame falls back to the
    latest-started caption still covering it (or clears), and start frames
    always win.
    """
    ordered = sorted(captions, key=lambda c: c.start_time)
    spans = [(cap, *_frame_span(cap, fps)) for cap in ordered]
    keys: dict[int, str] = {}
    for cap, _, end in spans:
        covering = [c for c, s, e in spans if c is not cap and s <= end < e]
        keys.setdefault(end, covering[-1].text if covering else "")
    started: dict[int, Caption] = {}
    for cap, start, _ in spans:
        if start in started:
            # 같은 프레임에 시작하는 자막은 하나만 표시 가능
            logger.warning(
                "Fusion frame %d: caption %r replaces %r", start, cap.id, started[start].id
            )
        started[start] = cap
        keys[start] = cap.text
    return dict(sorted(keys.items()))


def generate_fusion_setting(
    captions: Iterable[Caption],
    settings: AnimationSettings,
    fps: int = INTERCHANGE_FPS,
    stage_size: StageSize = DEFAULT_STAGE,
) -> str:
    """Build a Fusion Text+ tool whose StyledText is keyframed per caption."""
    captions = list(captions)
    width, height = stage_size
    last_end = max((c.end_time for c in captions), default=0.0)
    color = QColor(settings.text_color)
    keyframes = "\n".join(
        f'\t\t\t\t\t\t[{frame}] = "{_escape_fusion(text)}",'
        for frame, text in fusion_keyframes(captions, fps).items()
    )
    size = settings.font_size_px(width) / height
    rgba = ", ".join(f"{v:.4f}" for v in (color.redF(), color.greenF(), color.blueF(), 1.0))

    return f"""\
{{
\tTools = ordered() {{
\t\tText1 = TextPlus {{
\t\t\tCtrlWZoom = false,
\t\t\tInputs = {{
\t\t\t\tGlobalIn = Input {{ Value = 0, }},
\t\t\t\tGlobalOut = Input {{ Value = {_to_frame(last_end, fps) + TAIL_FRAMES}, }},
\t\t\t\tWidth = Input {{ Value = {width}, }},
\t\t\t\tHeight = Input {{ Value = {height}, }},
\t\t\t\tUseFrameFormatSettings = Input {{ Value = 1, }},
\t\t\t\tCenter = Input {{ Value = {{ 0.5, 0.5 }}, }},
\t\t\t\tStyledText = Input {{
\t\t\t\t\tSource = "Text",
\t\t\t\t\tValue = StyledText {{
\t\t\t\t\t\tValue = "",
\t\t\t\t\t\tFont = {{ Value = "{_escape_fusion(settings.font_family)}", }},
\t\t\t\t\t\tStyle = {{ Value = "Regular", }},
\t\t\t\t\t\tSize = {{ Value = {size:.6f}, }},
\t\t\t\t\t\tColor = {{ Value = {{ {rgba} }}, }},
\t\t\t\t\t}},
\t\t\t\t\tKeyFrames = {{
{keyframes}
\t\t\t\t\t}}
\t\t\t\t}},
\t\t\t}},
\t\t\tViewInfo = OperatorInfo {{ Pos = {{ 0, 0 }} }},
\t\t}}
\t}}
}}
"""


def parse_fusion_setting(content: str, fps: int = INTERCHANGE_FPS) -> list[Caption]:
    """Read captions back from StyledText keyframes.

    A non-empty keyframe opens a caption that lasts until the next keyframe.
    """
    block_start = content.find("KeyFrames")
    if block_start == -1:
        raise ValueError("No StyledText keyframes found")
    keys = sorted(
        (int(m.group(1)), _unescape_fusion(m.group(2)))
        for m in _FUSION_KEY_RE.finditer(content, block_start)
    )
    captions: list[Caption] = []
    for i, (frame, text) in enumerate(keys):
        if not text:
            continue
        end_frame = keys[i + 1][0] if i + 1 < len(keys) else frame + fps
        end_frame = max(end_frame, frame + 1)
        captions.append(Caption(f"cue-{len(captions) + 1}", frame / fps, end_frame / fps, text))
    return captions


# ---------------------------------------------------------------- ASS


def _color_to_ass(hex_color: str, alpha: int = 0) -> str:
    """Convert a colour (#RRGGBB or any QColor name) to ASS (&HAABBGGRR)."""
    color = QColor(hex_color)
    if not color.isValid():
        return "&H00FFFFFF"
    # ASS is BGR
    return f"&H{alpha:02X}{color.blue():02X}{color.green():02X}{color.red():02X}"


def _seconds_to_ass_time(seconds: float) -> str:
    """Convert seconds to ASS time 'H:MM:SS.cs'."""
    cs = int(round(max(0.0, seconds) * 100))
    hours = cs // 360_000
    remainder = cs % 360_000
    minutes = remainder // 6000
    remainder = remainder % 6000
    return f"{hours}:{minutes:02d}:{remainder // 100:02d}.{remainder % 100:02d}"


# ASS numpad alignment, vertically centred like the stage
_ASS_ALIGNMENT = {"left": 4, "center": 5, "right": 6}


def generate_ass(
    captions: Iterable[Caption],
    settings: AnimationSettings,
    stage_size: StageSize = DEFAULT_STAGE,
) -> str:
    """Build an ASS script; placed captions get ``\\pos`` (and scale) overrides."""
    width, height = stage_size
    lines = [
        "[Script Info]",
        "ScriptType: v4.00+",
        f"PlayResX: {width}",
        f"PlayResY: {height}",
        "WrapStyle: 0",
        "",
        "[V4+ Styles]",
        "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding",
    ]
    primary = _color_to_ass(settings.text_color)
    size = int(round(settings.font_size_px(width)))
    alignment = _ASS_ALIGNMENT.get(settings.text_align, 5)
    lines.append(
        f"Style: Default,{settings.font_family},{size},{primary},&H000000FF,&H00000000,"
        f"&H00000000,-1,0,0,0,100,100,0,0,1,0,0,{alignment},0,0,0,1"
    )
    lines.append("")
    lines.append("[Events]")
    lines.append("Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text")

    for cap in captions:
        text = cap.text.replace("\n", "\\N")
        p = cap.placement
        if p is not None:
            x = width / 2 + width * p.x / 100
            y = height / 2 + height * p.y / 100
            tags = f"\\pos({x:.0f},{y:.0f})"
            if p.scale != 1.0:
                pct = p.scale * 100
                tags += f"\\fscx{pct:.0f}\\fscy{pct:.0f}"
            text = f"{{{tags}}}{text}"
        start = _seconds_to_ass_time(cap.start_time)
        end = _seconds_to_ass_time(cap.end_time)
        lines.append(f"Dialogue: 0,{start},{end},Default,,0,0,0,,{text}")

    return "\n".join(lines) + "\n"


def interchange_file_name(source_name: str, kind: str) -> str:
    """``clip.srt`` → ``clip_premiere.xml`` / ``clip_fusion.setting`` / ``clip.ass``."""
    stem = (Path(source_name).stem if source_name else "") or "captions"
    suffixes = {"premiere": "_premiere.xml", "fusion": "_fusion.setting", "ass": ".ass"}
    if kind not in suffixes:
        raise ValueError(f"Unknown interchange format: {kind!r}")
    return stem + suffixes[kind]
