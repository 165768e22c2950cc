"""Interactive rectangle drawing for click-area questions.

``AreaEditor`` owns the editor-side state of one click-area question: the
committed area list, the drawn-area history used for undo and the single
in-progress drawing. Every change is reported through ``on_change`` with a
partial payload (any of ``image``, ``areas``, ``originalImage``) that callers
shallow-merge into the question.
"""
from __future__ import annotations

import enum
import logging
import math
import time
import uuid
from dataclasses import replace
from typing import Any, Callable, Iterable

from geometry import hit_test, normalize
from models import Area
from serialization import serialize_areas

log = logging.getLogger(__name__)

# Smallest committed rectangle, in image pixels per side.
MIN_DRAWN_SIZE = 5

ChangeCallback = Callable[[dict[str, Any]], None]


class DrawState(str, enum.Enum):
    IDLE = "idle"
    DRAWING = "drawing"


class DrawingStateError(RuntimeError):
    """Pointer event that is not valid in the current drawing state."""


class AreaTooSmall(ValueError):
    """Drawn rectangle below the minimum committed size."""


def _base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while True:
        value, rem = divmod(value, 36)
        out = digits[rem] + out
        if value == 0:
            return out


def new_area_id() -> str:
    return f"area_{uuid.uuid4().hex[:9]}_{_base36(int(time.time() * 1000))}"


def _snap(coords: tuple[float, float, float, float]) -> tuple[int, int, int, int]:
    rect = normalize(coords)
    return (
        math.floor(rect.left),
        math.floor(rect.top),
        math.ceil(rect.right),
        math.ceil(rect.bottom),
    )


class AreaEditor:
    def __init__(
        self,
        areas: Iterable[Area] = (),
        on_change: ChangeCallback | None = None,
        is_edit_mode: bool = True,
    ) -> None:
        self._areas: list[Area] = list(areas)
        self._history: list[Area] = list(self._areas)
        self._on_change = on_change
        self._is_edit_mode = is_edit_mode
        self._drawing_mode = False
        self._anchor: tuple[float, float] | None = None
        self._provisional: Area | None = None
        self._dirty = False

    @property
    def areas(self) -> list[Area]:
        return list(self._areas)

    @property
    def history(self) -> list[Area]:
        return list(self._history)

    @property
    def state(self) -> DrawState:
        return DrawState.DRAWING if self._provisional is not None else DrawState.IDLE

    @property
    def provisional(self) -> Area | None:
        return self._provisional

    @property
    def drawing_mode(self) -> bool:
        return self._drawing_mode

    @property
    def is_edit_mode(self) -> bool:
        return self._is_edit_mode

    @property
    def has_unsaved_changes(self) -> bool:
        return self._dirty or self._history != self._areas

    def set_edit_mode(self, enabled: bool) -> None:
        self._is_edit_mode = enabled
        if not enabled:
            self.set_drawing_mode(False)

    def set_drawing_mode(self, enabled: bool) -> None:
        if enabled and not self._is_edit_mode:
            raise DrawingStateError("Drawing requires edit mode")
        if self._drawing_mode != enabled:
            self._discard_provisional()
        self._drawing_mode = enabled

    # pointer events, image-space coordinates

    def pointer_down(self, x: float, y: float) -> Area:
        if not self._drawing_mode:
            raise DrawingStateError("Drawing mode is off")
        if self._provisional is not None:
            raise DrawingStateError("A drawing is already in progress")
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ValueError("Pointer position must be finite")
        self._anchor = (x, y)
        self._provisional = Area(id=new_area_id(), coords=(x, y, x, y), is_correct=True)
        return self._provisional

    def pointer_move(self, x: float, y: float) -> Area | None:
        if self._provisional is None or self._anchor is None:
            return None
        ax, ay = self._anchor
        self._provisional = replace(self._provisional, coords=(ax, ay, x, y))
        return self._provisional

    def pointer_up(self, x: float | None = None, y: float | None = None) -> Area:
        if x is not None and y is not None:
            self.pointer_move(x, y)
        return self.confirm()

    def confirm(self) -> Area:
        """Commit the in-progress rectangle and return the stored area."""
        if self._provisional is None:
            raise DrawingStateError("Nothing is being drawn")
        provisional = self._provisional
        self._discard_provisional()

        try:
            rect = normalize(provisional.coords)
        except ValueError as exc:
            raise DrawingStateError(f"Invalid drawing coordinates: {exc}") from exc
        if rect.width < MIN_DRAWN_SIZE or rect.height < MIN_DRAWN_SIZE:
            raise AreaTooSmall(
                "The selected area is too small. Please draw a larger area."
            )

        area = replace(provisional, coords=_snap(provisional.coords))
        self._areas.append(area)
        self._history.append(area)
        self._changed()
        log.debug("Committed area %s at %s", area.id, area.coords)
        return area

    def cancel(self) -> None:
        self._discard_provisional()

    def _discard_provisional(self) -> None:
        self._provisional = None
        self._anchor = None

    # edits on committed areas

    def undo(self) -> Area | None:
        """Remove the most recently drawn area still present."""
        while self._history:
            area = self._history.pop()
            if area in self._areas:
                self._areas.remove(area)
                self._changed()
                return area
        return None

    def remove_area(self, area_id: str) -> bool:
        if not self._is_edit_mode:
            return False
        remaining = [a for a in self._areas if a.id != area_id]
        if len(remaining) == len(self._areas):
            return False
        self._areas = remaining
        self._history = [a for a in self._history if a.id != area_id]
        self._changed()
        return True

    def click(self, x: float, y: float) -> str | None:
        """Click outside drawing mode: delete the topmost area under the point."""
        if self._drawing_mode or not self._is_edit_mode:
            return None
        area = hit_test(self._areas, x, y)
        if area is None:
            return None
        self.remove_area(area.id)
        return area.id

    def clear(self) -> None:
        if not self._areas:
            return
        self._areas = []
        self._history = []
        self._changed()

    def set_correct(self, area_id: str, is_correct: bool) -> Area:
        for index, area in enumerate(self._areas):
            if area.id == area_id:
                updated = replace(area, is_correct=is_correct)
                self._areas[index] = updated
                self._history = [updated if a.id == area_id else a for a in self._history]
                self._changed()
                return updated
        raise KeyError(area_id)

    def set_image(self, image: str, original_image: str | None = None) -> None:
        """New image for the question; drawing mode turns on for it."""
        payload: dict[str, Any] = {"image": image}
        if original_image is not None:
            payload["originalImage"] = original_image
        self._dirty = True
        self._emit(payload)
        if self._is_edit_mode:
            self.set_drawing_mode(True)

    def sync(self, areas: Iterable[Area]) -> None:
        """Adopt an externally loaded area list as the saved state."""
        self._discard_provisional()
        self._areas = list(areas)
        self._history = list(self._areas)
        self._dirty = False

    def mark_saved(self) -> None:
        self._history = list(self._areas)
        self._dirty = False

    def _changed(self) -> None:
        self._dirty = True
        self._emit({"areas": serialize_areas(self._areas)})

    def _emit(self, payload: dict[str, Any]) -> None:
        if self._on_change is not None:
            self._on_change(payload)
