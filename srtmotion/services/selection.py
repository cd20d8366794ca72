"""Caption selection rules and the placement clipboard.

All functions are pure: they take the current Selection (or captions) and
return new values.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from srtmotion.models.caption import Caption, Placement
from srtmotion.models.session import Selection


def click(
    selection: Selection,
    ordered_ids: Sequence[str],
    clicked_id: str,
    *,
    shift: bool = False,
    ctrl: bool = False,
) -> Selection:
    """Apply a click on *clicked_id*.

    - ctrl: toggle the clicked id
    - shift: select the list range between the last clicked id and this one
    - plain: select only the clicked id
    """
    if ctrl:
        ids = set(selection.ids)
        ids.symmetric_difference_update({clicked_id})
        return Selection(frozenset(ids), clicked_id)

    if shift and selection.last_clicked is not None:
        try:
            anchor = list(ordered_ids).index(selection.last_clicked)
            current = list(ordered_ids).index(clicked_id)
        except ValueError:
            return Selection(frozenset({clicked_id}), clicked_id)
        lo, hi = sorted((anchor, current))
        return Selection(frozenset(ordered_ids[lo:hi + 1]), clicked_id)

    return Selection(frozenset({clicked_id}), clicked_id)


def select_all(selection: Selection, ordered_ids: Sequence[str]) -> Selection:
    return replace(selection, ids=frozenset(ordered_ids))


def clear(selection: Selection) -> Selection:
    return replace(selection, ids=frozenset())


def ordered(selection: Selection, ordered_ids: Sequence[str]) -> list[str]:
    """Selected ids in caption-list order."""
    return [cid for cid in ordered_ids if cid in selection.ids]


def copy_placement(caption: Caption) -> Placement:
    """Copy a caption's placement for pasting onto others."""
    return caption.effective_placement


def paste_placement(
    captions: Sequence[Caption],
    selection: Selection,
    clipboard: Placement | None,
) -> list[Caption]:
    """New values for every selected caption with the clipboard placement."""
    if clipboard is None or not selection.ids:
        return []
    return [c.with_placement(clipboard) for c in captions if c.id in selection.ids]
