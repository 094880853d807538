"""
Bindable Tkinter views.

Each node owns a Tkinter widget, created in the widget of its parent node (or
in an explicit master widget for a root node).

- FrameNode: transparent container
- ScreenNode: container defining a scope boundary
- LabelNode: displays text (TEXT, does not bind its children)
- ActivityIndicatorNode: animates while the bound value is true (BOOLEAN)
- PageControlNode: displays and edits a page index (NUMBER)
"""

from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import TYPE_CHECKING, Any, FrozenSet, List, Optional, Type

from ..keypath import hidden_from_bindings
from ..kinds import BOOLEAN, NUMBER, TEXT, ValueKind
from ..node import ViewNode

if TYPE_CHECKING:
    from ..core import Binder


class WidgetNode(ViewNode):
    """
    Base class for nodes backed by a Tkinter widget.

    Example:
        screen = ScreenNode(master=root)
        label = LabelNode(screen, bind_key_path='title')
        label.widget.pack()
    """

    widget_class: Type[tk.Widget] = tk.Frame

    def __init__(
        self,
        parent: Optional[WidgetNode] = None,
        name: Optional[str] = None,
        *,
        master: Optional[tk.Misc] = None,
        bind_key_path: Optional[str] = None,
        bind_formatter: Optional[str] = None,
        bind_input_checked: bool = True,
        is_scope_boundary: Optional[bool] = None,
        bind_update_animated: bool = False,
        **widget_options,
    ):
        super().__init__(
            name,
            bind_key_path=bind_key_path,
            bind_formatter=bind_formatter,
            bind_input_checked=bind_input_checked,
            is_scope_boundary=is_scope_boundary,
            bind_update_animated=bind_update_animated,
        )
        if master is None:
            if parent is None:
                raise ValueError("A parent node or a master widget is required")
            master = parent.widget

        self.widget = self.create_widget(master, **widget_options)
        if parent is not None:
            parent.add_child(self)

    @hidden_from_bindings
    def create_widget(self, master: tk.Misc, **options) -> tk.Widget:
        return self.widget_class(master, **options)

    @hidden_from_bindings
    def destroy(self) -> None:
        """Detach the node (dropping its bindings) and destroy its widget."""
        self.remove_from_parent()
        self.widget.destroy()


class FrameNode(WidgetNode):
    """A frame grouping other nodes. Bindings propagate through it."""

    widget_class = tk.Frame


class ScreenNode(FrameNode):
    """A frame defining a local naming context (scope boundary)."""

    is_scope_boundary = True


class LabelNode(WidgetNode):
    """
    A label displaying the bound text.

    Example:
        LabelNode(screen, bind_key_path='total', bind_formatter='Currency.euros')
    """

    widget_class = tk.Label

    def accepted_value_kinds(self) -> FrozenSet[ValueKind]:
        return frozenset({TEXT})

    def binds_children_recursively(self) -> bool:
        return False

    def update_view(self, value: Any) -> None:
        self.widget.config(text="" if value is None else value)

    @property
    def text(self) -> str:
        return self.widget.cget('text')


class ActivityIndicatorNode(WidgetNode):
    """
    An indeterminate progress bar animating while the bound value is true.

    Displays the model value but never updates it.
    """

    widget_class = ttk.Progressbar

    def __init__(self, parent: Optional[WidgetNode] = None, name: Optional[str] = None,
                 *, interval: int = 20, **kwargs):
        self.interval = interval
        self._animating = False
        kwargs.setdefault('mode', 'indeterminate')
        super().__init__(parent, name, **kwargs)

    def accepted_value_kinds(self) -> FrozenSet[ValueKind]:
        return frozenset({BOOLEAN})

    def binds_children_recursively(self) -> bool:
        return False

    def update_view(self, value: Any) -> None:
        if value:
            if not self._animating:
                self.widget.start(self.interval)
            self._animating = True
        else:
            self.widget.stop()
            self._animating = False

    @property
    def is_animating(self) -> bool:
        return self._animating


class PageControlNode(WidgetNode):
    """
    A spinbox selecting a page index in [0, number_of_pages - 1].

    Displays the bound integer and, when the user changes the page, checks the
    new value (unless bind_input_checked is unset) and writes it to the model.
    """

    widget_class = tk.Spinbox

    def __init__(self, parent: Optional[WidgetNode] = None, name: Optional[str] = None,
                 *, number_of_pages: int = 1, binder: Optional[Binder] = None, **kwargs):
        self.number_of_pages = max(number_of_pages, 1)
        self.binder = binder
        self.last_errors: List[Exception] = []
        self._updating = False  # Prevent feedback loops
        super().__init__(parent, name, **kwargs)

    @hidden_from_bindings
    def create_widget(self, master: tk.Misc, **options) -> tk.Widget:
        self._page = tk.IntVar(master=master, value=0)
        options.setdefault('state', 'readonly')
        return tk.Spinbox(
            master,
            from_=0,
            to=self.number_of_pages - 1,
            increment=1,
            textvariable=self._page,
            command=self._on_page_change,
            **options,
        )

    def accepted_value_kinds(self) -> FrozenSet[ValueKind]:
        return frozenset({NUMBER})

    def binds_children_recursively(self) -> bool:
        return False

    def update_view(self, value: Any) -> None:
        page = 0 if value is None else int(value)
        page = min(max(page, 0), self.number_of_pages - 1)

        self._updating = True
        try:
            self._page.set(page)
        finally:
            self._updating = False

    def displayed_value(self) -> int:
        return self._page.get()

    @property
    def current_page(self) -> int:
        return self._page.get()

    @hidden_from_bindings
    def set_number_of_pages(self, number_of_pages: int) -> None:
        self.number_of_pages = max(number_of_pages, 1)
        self.widget.config(to=self.number_of_pages - 1)
        if self.current_page >= self.number_of_pages:
            self.update_view(self.number_of_pages - 1)

    @hidden_from_bindings
    def _on_page_change(self) -> None:
        """Called when the spinbox arrows are clicked."""
        if self._updating:
            return
        self.last_errors = self.update_model(binder=self.binder)
