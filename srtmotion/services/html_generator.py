"""Generate a self-contained HTML document that plays the caption animation.

Every visual value in the document comes from ``evaluate()``:

* envelope family: per-caption CSS ``@keyframes`` sampled from the evaluator
  on a looping timeline (``last end + 2 s``)
* preset / reveal families: a JSON timeline of evaluator samples replayed by
  a small ``requestAnimationFrame`` script

The document lays captions out on a fixed-size stage (the export stage size)
scaled to fit the window, so pixel offsets match the video export.
"""

from __future__ import annotations

import html
import json
import math
from pathlib import Path
from typing import Iterable, Sequence

from srtmotion.models.caption import Caption, Placement
from srtmotion.models.custom_font import CustomFont
from srtmotion.models.settings import AnimationFamily, AnimationSettings
from srtmotion.models.visual_state import VisualState
from srtmotion.services.animation_evaluator import (
    BOUNCE_DURATION,
    DEFAULT_STAGE,
    FADE_DURATION,
    StageSize,
    evaluate,
    split_units,
)
from srtmotion.services.placement_compositor import BASE_Z_INDEX, compose
from srtmotion.utils.config import DEFAULT_EXPORT_FPS, DOCUMENT_TRAILING_SEC, WEB_FONT_FAMILIES

# Looping length used when there is nothing to play
EMPTY_DOCUMENT_SEC = 10.0

# Envelope variants whose motion never settles between entry and exit
_CONTINUOUS = {"cinema", "neon", "glitch"}

_FONT_FORMATS = {
    "font/ttf": "truetype",
    "font/otf": "opentype",
    "font/woff": "woff",
    "font/woff2": "woff2",
}


def document_file_name(source_name: str) -> str:
    """``clip.srt`` → ``clip_animated.html``."""
    stem = Path(source_name).stem if source_name else ""
    return f"{stem or 'captions'}_animated.html"


def timeline_duration(captions: Sequence[Caption]) -> float:
    if not captions:
        return EMPTY_DOCUMENT_SEC
    return max(c.end_time for c in captions) + DOCUMENT_TRAILING_SEC


def _r(value: float) -> float:
    return round(value, 4)


def _local_transform(caption: Caption, state: VisualState) -> str:
    """CSS transform of the caption box around its anchor point."""
    scale = caption.effective_placement.scale
    local = compose(caption.with_placement(Placement(0.0, 0.0, scale)), state, (0, 0))
    return f"{local.as_css()} translate(-50%, -50%)"


def _anchor(caption: Caption, stage: StageSize) -> tuple[float, float]:
    p = caption.effective_placement
    width, height = stage
    return width / 2 + width * p.x / 100, height / 2 + height * p.y / 100


def _frames_in(caption: Caption, fps: int) -> range:
    first = math.ceil(round(caption.start_time * fps, 6))
    last = math.floor(round(caption.end_time * fps, 6))
    return range(first, last + 1)


# ---------------------------------------------------------------- envelope


def _envelope_sample_times(caption: Caption, animation_type: str, fps: int) -> list[float]:
    start, end = caption.start_time, caption.end_time
    times = {start, end}
    entry_end = start + max(FADE_DURATION, BOUNCE_DURATION)
    exit_start = end - FADE_DURATION
    for frame in _frames_in(caption, fps):
        t = frame / fps
        if animation_type in _CONTINUOUS or t <= entry_end or t >= exit_start:
            times.add(t)
    times.update(t for t in (entry_end, exit_start) if start < t < end)
    return sorted(times)


def _css_declarations(
    caption: Caption,
    state: VisualState,
    settings: AnimationSettings,
) -> str:
    parts = [f"opacity: {_r(state.opacity)}", f"transform: {_local_transform(caption, state)}"]
    parts.append(f"filter: blur({_r(state.blur)}px)")
    if state.glow > 0:
        parts.append(f"text-shadow: 0 0 {_r(state.glow)}px {settings.text_color}")
    return "; ".join(parts) + ";"


def _envelope_css(
    captions: Sequence[Caption],
    settings: AnimationSettings,
    total: float,
    stage: StageSize,
    fps: int,
) -> str:
    blocks: list[str] = []
    for index, cap in enumerate(captions):
        frames = ["0% { opacity: 0; }"]
        for t in _envelope_sample_times(cap, settings.animation_type, fps):
            state = evaluate(cap, settings, t, stage)
            pct = _r(t / total * 100)
            frames.append(f"{pct}% {{ {_css_declarations(cap, state, settings)} }}")
        frames.append("100% { opacity: 0; }")
        body = "\n            ".join(frames)
        blocks.append(
            f"@keyframes cap-{index} {{\n            {body}\n        }}\n"
            f"        #cap-{index} {{ animation: cap-{index} {_r(total)}s linear infinite; }}"
        )
    return "\n        ".join(blocks)


# ---------------------------------------------------------------- sampled


def _unit_key(state: VisualState) -> list[list[float]] | None:
    if not state.units:
        return None
    return [
        [_r(u.opacity), _r(u.translate_y), _r(u.scale), _r(u.rotate_x), _r(u.blur)]
        for u in state.units
    ]


def sample_caption(
    caption: Caption,
    settings: AnimationSettings,
    stage: StageSize = DEFAULT_STAGE,
    fps: int = DEFAULT_EXPORT_FPS,
) -> list[list]:
    """Evaluator samples on the frame grid, consecutive duplicates dropped.

    Each key is ``[frame, opacity, transform, blur, glow, units]``; the player
    holds a key until the next one.
    """
    keys: list[list] = []
    previous = None
    for frame in _frames_in(caption, fps):
        state = evaluate(caption, settings, frame / fps, stage)
        value = [
            _r(state.opacity),
            _local_transform(caption, state),
            _r(state.blur),
            _r(state.glow),
            _unit_key(state),
        ]
        if value != previous:
            keys.append([frame, *value])
            previous = value
    return keys


def build_timeline(
    captions: Sequence[Caption],
    settings: AnimationSettings,
    stage: StageSize = DEFAULT_STAGE,
    fps: int = DEFAULT_EXPORT_FPS,
) -> dict:
    return {
        "fps": fps,
        "duration": _r(timeline_duration(captions)),
        "color": settings.text_color,
        "captions": [
            {
                "start": cap.start_time,
                "end": cap.end_time,
                "keys": sample_caption(cap, settings, stage, fps),
            }
            for cap in captions
        ],
    }


# ---------------------------------------------------------------- markup


def _caption_markup(index: int, caption: Caption, settings: AnimationSettings, stage: StageSize) -> str:
    left, top = _anchor(caption, stage)
    style = f"left: {_r(left)}px; top: {_r(top)}px; z-index: {BASE_Z_INDEX + index};"
    if settings.family == AnimationFamily.REVEAL:
        mode = "words" if settings.animation_type == "word-stagger" else "chars"
        spans = []
        for j, unit in enumerate(split_units(caption.text, mode)):
            cls = "ws" if unit.isspace() else "u"
            spans.append(f'<span class="{cls}" data-u="{j}">{html.escape(unit)}</span>')
        content = "".join(spans)
    else:
        content = html.escape(caption.text)
    return f'<div class="caption" id="cap-{index}" style="{style}">{content}</div>'


def _font_face_css(custom_fonts: Iterable[CustomFont]) -> str:
    rules = []
    for font in custom_fonts:
        fmt = _FONT_FORMATS.get(font.mime_type, "truetype")
        rules.append(
            "@font-face {\n"
            f"            font-family: '{font.name}';\n"
            f"            src: url('{font.data}') format('{fmt}');\n"
            "            font-weight: normal;\n"
            "            font-style: normal;\n"
            "        }"
        )
    return "\n        ".join(rules)


_PLAYER_JS = """
        const TL = JSON.parse(document.getElementById('timeline').textContent);
        const els = TL.captions.map((_, i) => document.getElementById('cap-' + i));
        const units = els.map(el => Array.from(el.querySelectorAll('[data-u]')));

        function keyAt(keys, frame) {
            let lo = 0, hi = keys.length - 1, found = -1;
            while (lo <= hi) {
                const mid = (lo + hi) >> 1;
                if (keys[mid][0] <= frame) { found = mid; lo = mid + 1; } else { hi = mid - 1; }
            }
            return found < 0 ? null : keys[found];
        }

        function apply(i, key) {
            const el = els[i];
            el.style.visibility = 'visible';
            el.style.opacity = key[1];
            el.style.transform = key[2];
            el.style.filter = key[3] > 0 ? 'blur(' + key[3] + 'px)' : 'none';
            el.style.textShadow = key[4] > 0 ? '0 0 ' + key[4] + 'px ' + TL.color : '';
            if (key[5]) {
                units[i].forEach((span, j) => {
                    const u = key[5][j];
                    if (!u) return;
                    span.style.opacity = u[0];
                    span.style.transform = 'translateY(' + u[1] + 'px) scale(' + u[2] + ') rotateX(' + u[3] + 'deg)';
                    span.style.filter = u[4] > 0 ? 'blur(' + u[4] + 'px)' : 'none';
                });
            }
        }

        const t0 = performance.now();
        function update(now) {
            const t = ((now - t0) / 1000) % TL.duration;
            const frame = Math.floor(t * TL.fps + 1e-6);
            TL.captions.forEach((c, i) => {
                const key = (t >= c.start && t <= c.end) ? keyAt(c.keys, frame) : null;
                if (key) { apply(i, key); } else { els[i].style.visibility = 'hidden'; }
            });
            requestAnimationFrame(update);
        }
        requestAnimationFrame(update);
"""

_FIT_JS = """
        const stage = document.querySelector('.stage');
        function fit() {
            const s = Math.min(window.innerWidth / %(w)d, window.innerHeight / %(h)d);
            stage.style.transform = 'scale(' + s + ')';
        }
        window.addEventListener('resize', fit);
        fit();
"""


def generate_standalone_html(
    captions: Iterable[Caption],
    settings: AnimationSettings,
    custom_fonts: Iterable[CustomFont] = (),
    fps: int = DEFAULT_EXPORT_FPS,
    stage_size: StageSize = DEFAULT_STAGE,
) -> str:
    """Return a complete HTML page replaying the caption animation in a loop."""
    captions = list(captions)
    width, height = stage_size
    total = timeline_duration(captions)
    sampled = settings.family != AnimationFamily.ENVELOPE

    caption_html = "\n            ".join(
        _caption_markup(i, cap, settings, stage_size) for i, cap in enumerate(captions)
    )
    animation_css = "" if sampled else _envelope_css(captions, settings, total, stage_size, fps)
    scripts = _FIT_JS % {"w": width, "h": height}
    timeline_json = ""
    if sampled:
        data = json.dumps(build_timeline(captions, settings, stage_size, fps), separators=(",", ":"))
        # </script> 조기 종료 방지
        timeline_json = (
            '<script type="application/json" id="timeline">'
            + data.replace("</", "<\\/")
            + "</script>"
        )
        scripts += _PLAYER_JS

    shadow = ""
    if settings.animation_type != "neon":
        alpha = 0.5 if settings.is_transparent else 0.3
        shadow = f"text-shadow: 2px 2px 4px rgba(0,0,0,{alpha});"
    font_query = "&".join(f"family={family}" for family in WEB_FONT_FAMILIES)
    font_px = _r(settings.font_size_px(width))
    caption_opacity = "1; visibility: hidden" if sampled else "0"

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>SRT Animation</title>
    <link href="https://fonts.googleapis.com/css2?{font_query}&display=swap" rel="stylesheet">
    <style>
        {_font_face_css(custom_fonts)}

        body {{
            margin: 0;
            padding: 0;
            background-color: {settings.background_color};
            color: {settings.text_color};
            font-family: '{settings.font_family}', sans-serif;
            height: 100vh;
            width: 100vw;
            display: flex;
            justify-content: center;
            align-items: center;
            overflow: hidden;
        }}

        .stage {{
            position: relative;
            flex: none;
            width: {width}px;
            height: {height}px;
            transform-origin: center center;
        }}

        .caption {{
            position: absolute;
            transform-origin: 0 0;
            width: max-content;
            max-width: {int(width * 0.9)}px;
            text-align: {settings.text_align};
            font-size: {font_px}px;
            font-weight: bold;
            line-height: 1.4;
            white-space: pre-wrap;
            opacity: {caption_opacity};
            will-change: opacity, transform;
            perspective: 1000px;
            {shadow}
        }}

        .caption .u {{ display: inline-block; white-space: pre; transform-origin: center bottom; }}
        .caption .ws {{ white-space: pre-wrap; }}

        .progress-bar {{
            position: fixed;
            bottom: 0;
            left: 0;
            height: 4px;
            background: {settings.text_color};
            opacity: 0.3;
            width: 0%;
            animation: progress {_r(total)}s linear infinite;
        }}
        @keyframes progress {{
            from {{ width: 0%; }}
            to {{ width: 100%; }}
        }}

        {animation_css}
    </style>
</head>
<body>
    <div class="stage">
            {caption_html}
    </div>
    <div class="progress-bar"></div>
    {timeline_json}
    <script>
{scripts}
    </script>
</body>
</html>
"""
