"""
Debug overlay listing the bindings known to a Binder.

The overlay only reads Binder.list_active_bindings(); it never changes
binding state.
"""

from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Any, List, Optional, Tuple

from ..core import Binder
from ..kinds import NO_VALUE, BindingStatus


def default_formatter(value: Any) -> str:
    """Format a last applied value for display in the overlay."""
    if value is None or value is NO_VALUE:
        return ""
    if isinstance(value, float):
        # Format floats nicely
        if value == int(value):
            return str(int(value))
        return f"{value:.6g}"
    return str(value)


class BindingDebugOverlay(tk.Toplevel):
    """
    A window with one row per binding: node, key path, status, last value.

    Failed bindings are highlighted.

    Example:
        overlay = BindingDebugOverlay.show(binder, master=app.root)
    """

    COLUMNS = ('node', 'key_path', 'status', 'value')
    HEADINGS = ('View', 'Key path', 'Status', 'Last value')

    def __init__(self, master: tk.Misc, binder: Binder, **kwargs):
        super().__init__(master, **kwargs)
        self.binder = binder
        self.title("Bindings")

        self.tree = ttk.Treeview(self, columns=self.COLUMNS, show='headings')
        for column, heading in zip(self.COLUMNS, self.HEADINGS):
            self.tree.heading(column, text=heading)
        self.tree.tag_configure('failed', background='#ffcccc')
        self.tree.pack(fill=tk.BOTH, expand=True)

        buttons = tk.Frame(self)
        buttons.pack(fill=tk.X)
        tk.Button(buttons, text="Close", command=self.destroy).pack(side=tk.RIGHT)
        tk.Button(buttons, text="Reload", command=self.reload).pack(side=tk.RIGHT)

        self.reload()

    @classmethod
    def show(cls, binder: Binder, master: Optional[tk.Misc] = None) -> BindingDebugOverlay:
        """Open an overlay (creating a Tk root if no master is given)."""
        if master is None:
            master = tk.Tk()
            master.withdraw()
        return cls(master, binder)

    def reload(self) -> None:
        """Re-read the bindings from the binder."""
        self.tree.delete(*self.tree.get_children())
        for info in self.binder.list_active_bindings():
            tags = () if info.status is BindingStatus.OK else ('failed',)
            self.tree.insert(
                '',
                tk.END,
                values=(
                    repr(info.node),
                    info.key_path,
                    info.status.name,
                    default_formatter(info.last_value),
                ),
                tags=tags,
            )

    @property
    def rows(self) -> List[Tuple[str, ...]]:
        """The displayed rows, as tuples of strings."""
        return [
            tuple(str(v) for v in self.tree.item(item, 'values'))
            for item in self.tree.get_children()
        ]
