"""
Panel lifecycle state shared by the maneuver editor and the warp-to panel.

The host delivers explicit transitions instead of global show/hide and
pause/unpause callbacks:

    toggle_window    -- operator opens / closes the panel
    become_visible   -- host UI shown again
    become_hidden    -- host UI hidden (screenshots, cut-scenes)
    suspend / resume -- host simulation paused / unpaused

A panel is *active* while it is open, the UI is not hidden and the host is
not suspended. Any transition that can change the panel's contents sets
``layout_dirty`` so the presentation layer recomputes its layout.
"""

import logging

logger = logging.getLogger(__name__)


class PanelLifecycle:
    """Open / hidden / suspended flags with a layout-reset request."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.is_open: bool = False
        self.hidden: bool = False
        self.suspended: bool = False
        self.layout_dirty: bool = True

    @property
    def is_active(self) -> bool:
        """True when the panel should be drawn and accept input."""
        return self.is_open and not self.hidden and not self.suspended

    def toggle_window(self) -> bool:
        """Open or close the panel. Returns the new open state."""
        self.is_open = not self.is_open
        self.layout_dirty = True
        logger.debug("%s panel %s", self.name, "opened" if self.is_open else "closed")
        return self.is_open

    def become_visible(self) -> None:
        self.hidden = False

    def become_hidden(self) -> None:
        self.hidden = True

    def suspend(self) -> None:
        self.suspended = True

    def resume(self) -> None:
        self.suspended = False

    def request_layout(self) -> None:
        """Ask the presentation layer to size the panel from scratch."""
        self.layout_dirty = True

    def consume_layout_reset(self) -> bool:
        """Return and clear the pending layout-reset request."""
        dirty = self.layout_dirty
        self.layout_dirty = False
        return dirty
