"""Terminal rendering for the jarvis CLI."""

from jarvis.ui.renderer import Renderer
