"""
Tests for edge cases: corrupted trees, vanished objects, odd attributes.
"""

import pytest
import viewbind
from viewbind import BindingStatus, ViewNode


class Label(ViewNode):
    def __init__(self, name=None, **kwargs):
        super().__init__(name, **kwargs)
        self.shown = []

    @property
    def text(self):
        return self.shown[-1] if self.shown else None

    def update_view(self, value):
        self.shown.append(value)


class Screen(ViewNode):
    is_scope_boundary = True


class Person:
    def __init__(self, first):
        self.first = first


class TestCorruptedTrees:
    """Invariant violations abort the traversal."""

    def setup_method(self):
        viewbind.reset()
        self.screen = Screen('screen')
        self.label = self.screen.add_child(Label('label', bind_key_path='first'))
        self.person = Person("Ann")

    def test_node_listed_twice(self):
        self.screen._children.append(self.label)
        with pytest.raises(viewbind.TreeCycleError):
            viewbind.bind_to_object(self.screen, self.person)

    def test_cycle_through_root(self):
        viewbind.bind_to_object(self.screen, self.person)
        self.label._children.append(self.screen)
        self.screen._parent = self.label
        with pytest.raises(viewbind.InvariantViolation):
            viewbind.refresh_bindings(self.label)

    def test_parent_link_mismatch(self):
        viewbind.bind_to_object(self.screen, self.person)
        orphan = Label('orphan', bind_key_path='first')
        self.screen._children.append(orphan)
        with pytest.raises(viewbind.TreeStructureError):
            viewbind.refresh_bindings(self.screen)

    def test_traversal_aborted_before_later_siblings(self):
        later = Label('later', bind_key_path='first')
        orphan = ViewNode('orphan')
        self.screen._children.append(orphan)
        self.screen.add_child(later)

        with pytest.raises(viewbind.TreeStructureError):
            viewbind.bind_to_object(self.screen, self.person)
        assert later.shown == []

    def test_invariant_violations_are_binding_errors(self):
        assert issubclass(viewbind.TreeCycleError, viewbind.ViewBindError)
        assert issubclass(viewbind.ScopeBoundaryUnreachable, viewbind.InvariantViolation)


class TestVanishedObjects:
    """Bound objects are not kept alive by the binder."""

    def setup_method(self):
        viewbind.reset()
        self.screen = Screen('screen')
        self.label = self.screen.add_child(Label('label', bind_key_path='first'))

    def test_refresh_after_object_collected(self):
        person = Person("Ann")
        viewbind.bind_to_object(self.screen, person)
        del person

        viewbind.refresh_bindings(self.screen)

        record = viewbind.get_binder().cache.get(self.label)
        assert record.status is BindingStatus.EVALUATION_FAILED
        assert "no longer available" in str(record.error)
        assert self.label.shown == ["Ann"]

    def test_forced_refresh_after_object_collected(self):
        person = Person("Ann")
        viewbind.bind_to_object(self.screen, person)
        del person

        viewbind.refresh_bindings(self.screen, forced=True)

        assert viewbind.get_binder().cache.failure(self.label).status is BindingStatus.PATH_NOT_FOUND

    def test_mapping_kept_alive(self):
        """Objects which cannot be weakly referenced are held strongly."""
        viewbind.bind_to_object(self.screen, {'first': 'Ann'})
        viewbind.refresh_bindings(self.screen, forced=True)
        assert self.label.shown == ["Ann", "Ann"]

    def test_unbind_forgets_nodes(self):
        person = Person("Ann")
        node = Label(bind_key_path='first')
        viewbind.bind_to_object(node, person)
        binder = viewbind.get_binder()

        binder.unbind(node)

        assert len(binder._bound_objects) == 0
        assert len(binder.cache) == 0


class TestOddAttributes:
    """Test unusual binding attribute values."""

    def setup_method(self):
        viewbind.reset()
        self.screen = Screen('screen')
        self.person = Person("Ann")

    def test_empty_key_path_is_no_binding(self):
        label = self.screen.add_child(Label(bind_key_path=''))
        viewbind.bind_to_object(self.screen, self.person)
        assert label.shown == []
        assert viewbind.list_active_bindings() == []

    def test_formatter_without_key_path(self):
        label = self.screen.add_child(Label(bind_formatter='missing'))
        viewbind.bind_to_object(self.screen, self.person)
        assert label.shown == []
        assert viewbind.list_active_bindings() == []

    def test_malformed_qualified_formatter(self):
        label = self.screen.add_child(Label(bind_key_path='first', bind_formatter='Formats.'))
        viewbind.bind_to_object(self.screen, self.person)
        assert viewbind.get_binder().cache.failure(label).status is BindingStatus.FORMATTER_NOT_FOUND

    def test_operator_key_path(self):
        self.person.friends = ["Bea", "Cid"]
        label = self.screen.add_child(Label(bind_key_path='friends.@count'))
        label.accepted_value_kinds = lambda: frozenset({viewbind.NUMBER})
        viewbind.bind_to_object(self.screen, self.person)
        assert label.text == 2

    def test_bound_object_is_a_node(self):
        """A node can be the bound object of another subtree."""
        source = Screen('source')
        source.title = "Inbox"
        label = self.screen.add_child(Label(bind_key_path='title'))
        viewbind.bind_to_object(self.screen, source)
        assert label.text == "Inbox"

    def test_tree_growing_during_update(self):
        class Spawner(Label):
            def update_view(self, value):
                super().update_view(value)
                self.parent.add_child(Label('spawned', bind_key_path='first'))

        spawner = self.screen.add_child(Spawner('spawner', bind_key_path='first'))
        viewbind.bind_to_object(self.screen, self.person)

        assert spawner.text == "Ann"
        assert len(self.screen.children) == 2

    def test_tree_mutators_not_reachable(self):
        label = self.screen.add_child(Label(bind_key_path='remove_from_parent'))
        viewbind.bind_to_object(self.screen, self.person)

        assert label.parent is self.screen
        assert label.shown == []
        assert viewbind.get_binder().cache.failure(label).status is BindingStatus.PATH_NOT_FOUND

    def test_teardown_not_reachable_as_formatter(self):
        label = self.screen.add_child(Label(bind_key_path='first', bind_formatter='unbind'))
        viewbind.bind_to_object(self.screen, self.person)

        assert viewbind.get_binder().bound_object_for(label) is self.person
        assert viewbind.get_binder().cache.failure(label).status is BindingStatus.FORMATTER_NOT_FOUND

    def test_name_key_path_reaches_screen(self):
        self.screen.name = "Inbox"
        label = self.screen.add_child(Label('title', bind_key_path='name'))
        viewbind.bind_to_object(self.screen, self.person)
        assert label.text == "Inbox"
