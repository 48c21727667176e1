"""Virtual scrolling over the filtered record sequence."""

from .virtual_viewport import VirtualViewport, ViewportState, RenderFrame, MeasureFn

__all__ = [
    "VirtualViewport",
    "ViewportState",
    "RenderFrame",
    "MeasureFn",
]
