"""Boundary between the engine and a renderer.

The engine pushes immutable RenderFrame snapshots to a Renderer; the
renderer reports user input back through an InteractionAdapter, which
turns it into selection changes and pins. Renderers never touch the
graph, the layout cache or the selection state directly.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from lineagescope.models.graph import Person, Position, Relationship, SelectionState

if TYPE_CHECKING:
    from lineagescope.session import LineageSession


class RenderFrame(BaseModel):
    """Everything a renderer needs to draw one frame."""

    nodes: list[Person] = Field(default_factory=list, description="Visible people in load order")
    edges: list[Relationship] = Field(default_factory=list, description="Visible relationships")
    positions: dict[str, Position] = Field(default_factory=dict)
    selection: SelectionState = Field(default_factory=SelectionState)
    layout_type: str | None = Field(default=None, description="Strategy behind the positions")

    model_config = {"frozen": True}


class Renderer(ABC):
    """Abstract base class for frame consumers (SVG, canvas, test recorders)."""

    @abstractmethod
    def render(self, frame: RenderFrame) -> None:
        """Draw a frame."""
        ...


class InteractionAdapter:
    """Translates renderer input events into session operations.

    Example:
        adapter = InteractionAdapter(session)
        adapter.node_clicked("abraham")       # select and highlight
        adapter.drag_moved("abraham", 10, 20)  # pin while dragging
        adapter.drag_ended("abraham")          # release the pin
    """

    def __init__(self, session: "LineageSession", sticky_pins: bool = False) -> None:
        self.session = session
        self.sticky_pins = sticky_pins
        self._dragging: str | None = None

    def node_clicked(self, node_id: str, additive: bool = False) -> None:
        self.session.selection.select([node_id], exclusive=not additive)
        self.session.render()

    def node_hovered(self, node_id: str | None) -> None:
        self.session.selection.highlight_connections(node_id)
        self.session.render()

    def background_clicked(self) -> None:
        self.session.selection.clear_selection()
        self.session.render()

    def drag_started(self, node_id: str) -> None:
        position = self.session.position_of(node_id)
        self._dragging = node_id
        if position is not None:
            self.session.pin(node_id, position.x, position.y)

    def drag_moved(self, node_id: str, x: float, y: float) -> None:
        self.session.pin(node_id, x, y)
        self.session.render()

    def drag_ended(self, node_id: str) -> None:
        """Finish a drag; the node keeps its pin only with ``sticky_pins``."""
        self._dragging = None
        if not self.sticky_pins:
            self.session.unpin(node_id)
        self.session.render()
