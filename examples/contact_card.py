"""
Contact card example.

A screen showing a contact bound through key paths, with formatters resolved
on the screen itself and globally, a busy indicator and a page control
editing the model.

Run with: python examples/contact_card.py
"""

import logging
import tkinter as tk

import viewbind
from viewbind.ui import (
    ActivityIndicatorNode,
    BindingApp,
    FrameNode,
    LabelNode,
    PageControlNode,
)


class Contact:
    def __init__(self, name, email, phones, syncing=False):
        self.name = name
        self.email = email
        self.phones = phones
        self.syncing = syncing
        self.page = 0

    def validate_page(self, value):
        return 0 <= value < len(self.phones)


@viewbind.register_formatter_type
class Text:
    """Global formatters, usable as 'Text.<name>'."""

    @staticmethod
    def count(value):
        return f"{value} phone number(s)"


class ContactApp(BindingApp):
    """The application screen doubles as the formatter scope of its views."""

    def __init__(self):
        super().__init__("Contact card", width=320, height=200)
        # Formatters looked up along the scope chain end on the screen node
        self.screen.shout = lambda value: value.upper()

        header = FrameNode(self.screen, name='header')
        header.widget.pack(fill=tk.X, padx=8, pady=8)
        LabelNode(header, bind_key_path='name', bind_formatter='shout').widget.pack(anchor='w')
        LabelNode(header, bind_key_path='email').widget.pack(anchor='w')

        LabelNode(self.screen, bind_key_path='phones.@count', bind_formatter='Text.count').widget.pack()
        self.pages = PageControlNode(self.screen, bind_key_path='page', number_of_pages=2)
        self.pages.widget.pack()
        ActivityIndicatorNode(self.screen, bind_key_path='syncing').widget.pack(fill=tk.X, padx=8)

        tk.Button(self.root, text="Bindings...", command=self.debug_bindings).pack(side=tk.BOTTOM)


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)

    contact = Contact("Ann Smith", "ann@example.com", ["555-0100", "555-0101"], syncing=True)

    app = ContactApp()
    app.bind_to_object(contact)

    def stop_syncing():
        contact.syncing = False
        app.refresh_bindings()

    app.root.after(2000, stop_syncing)
    app.run()
