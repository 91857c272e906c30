"""Visualization components for GramFrame."""

from .overlay import GramOverlayWidget, format_readout

__all__ = ['GramOverlayWidget', 'format_readout']
