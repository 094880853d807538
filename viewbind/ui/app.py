"""
BindingApp: Main application class for bound Tkinter UIs.
"""

from __future__ import annotations

import tkinter as tk
from typing import Any, List, Optional

from ..core import Binder
from .overlay import BindingDebugOverlay
from .widgets import ScreenNode


class BindingApp:
    """
    Main application class with a root screen node.

    BindingApp wraps a Tkinter root window and provides:
    - A root ScreenNode to build bound views in
    - Bind / refresh / update model shortcuts for the whole window
    - The binding debug overlay

    Example:
        app = BindingApp("Contact")

        LabelNode(app.screen, bind_key_path='name').widget.pack()
        LabelNode(app.screen, bind_key_path='email').widget.pack()

        app.bind_to_object(contact)
        app.run()
    """

    def __init__(
        self,
        title: str = "viewbind",
        width: int = 400,
        height: int = 300,
        root: Optional[tk.Tk] = None,
        binder: Optional[Binder] = None,
    ):
        """
        Initialize the application.

        Args:
            title: Window title
            width: Initial window width
            height: Initial window height
            root: Optional existing Tk root (creates new one if None)
            binder: Binder to use (the default binder if None)
        """
        if root is not None:
            self.root = root
            self._owns_root = False
        else:
            self.root = tk.Tk()
            self._owns_root = True

        self.root.title(title)
        self.root.geometry(f"{width}x{height}")

        self.binder = binder or Binder.get_instance()
        self.screen = ScreenNode(master=self.root, name='screen')
        self.screen.widget.pack(fill=tk.BOTH, expand=True)

        self._overlay: Optional[BindingDebugOverlay] = None
        self._running = False

    def bind_to_object(self, obj: Any) -> None:
        """Bind the whole window to obj."""
        self.binder.bind_to_object(self.screen, obj)

    def refresh_bindings(self, forced: bool = False) -> None:
        """Refresh every value displayed in the window."""
        self.binder.refresh_bindings(self.screen, forced=forced)

    def update_model(self) -> List[Exception]:
        """Write the values of input views back to the model."""
        return self.binder.update_model(self.screen)

    def debug_bindings(self) -> BindingDebugOverlay:
        """Show (or reload) the binding debug overlay."""
        if self._overlay is not None and self._overlay.winfo_exists():
            self._overlay.reload()
        else:
            self._overlay = BindingDebugOverlay(self.root, self.binder)
        return self._overlay

    def run(self) -> None:
        """
        Start the application main loop.

        This blocks until the window is closed.
        """
        self._running = True
        try:
            self.root.mainloop()
        finally:
            self._running = False

    def quit(self) -> None:
        """Stop the application and close the window."""
        self._running = False
        self.root.quit()

    def destroy(self) -> None:
        """Destroy the application and drop its bindings."""
        self.binder.unbind(self.screen)
        if self._overlay is not None and self._overlay.winfo_exists():
            self._overlay.destroy()
        self._overlay = None
        self.screen.widget.destroy()

        if self._owns_root:
            self.root.destroy()
