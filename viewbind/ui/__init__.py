"""
viewbind UI layer for Tkinter.

Bindable views backed by Tkinter widgets, an application class and the
binding debug overlay.

Example:
    import viewbind
    from viewbind.ui import BindingApp, LabelNode, ActivityIndicatorNode

    class Download:
        def __init__(self):
            self.filename = 'report.pdf'
            self.running = True

    app = BindingApp("Downloads")

    LabelNode(app.screen, bind_key_path='filename').widget.pack()
    ActivityIndicatorNode(app.screen, bind_key_path='running').widget.pack()

    download = Download()
    app.bind_to_object(download)

    download.running = False
    app.refresh_bindings()   # the indicator stops

    app.run()
"""

# Application
from .app import BindingApp

# Debug overlay
from .overlay import BindingDebugOverlay, default_formatter

# Views
from .widgets import (
    ActivityIndicatorNode,
    FrameNode,
    LabelNode,
    PageControlNode,
    ScreenNode,
    WidgetNode,
)

__all__ = [
    # Application
    'BindingApp',
    # Debug
    'BindingDebugOverlay',
    'default_formatter',
    # Views
    'WidgetNode',
    'FrameNode',
    'ScreenNode',
    'LabelNode',
    'ActivityIndicatorNode',
    'PageControlNode',
]
