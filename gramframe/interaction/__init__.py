"""Pointer gestures, mode handlers and the GramFrame session."""

from .gestures import DragKind, DragState, Gesture, GestureController, GestureKind
from .modes import MODE_HANDLERS, ModeContext, ModeResult
from .session import CommandResult, GramFrame

__all__ = [
    'DragKind', 'DragState', 'Gesture', 'GestureController', 'GestureKind',
    'MODE_HANDLERS', 'ModeContext', 'ModeResult',
    'CommandResult', 'GramFrame',
]
