from __future__ import annotations

from ..context import ClientContext
from ..schemas.events import ViewerOverlayToggled


class StoryViewer:
    """Full-screen story overlay. Other views pause their media while it is open."""

    def __init__(self, ctx: ClientContext) -> None:
        self.ctx = ctx
        self.is_open = False

    def open(self) -> None:
        if self.is_open:
            return
        self.is_open = True
        self.ctx.bus.publish(ViewerOverlayToggled(is_open=True))

    def close(self) -> None:
        if not self.is_open:
            return
        self.is_open = False
        self.ctx.bus.publish(ViewerOverlayToggled(is_open=False))

    def __enter__(self) -> StoryViewer:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["StoryViewer"]
