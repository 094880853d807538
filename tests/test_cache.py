"""
Tests for binding records, the binding cache and the debug listing.
"""

import gc

import viewbind
from viewbind import BindingCache, BindingRecord, BindingStatus, ViewNode
from viewbind.keypath import parse_key_path
from viewbind.resolvers import KeyPathEvaluator


class Label(ViewNode):
    def __init__(self, name=None, **kwargs):
        super().__init__(name, **kwargs)
        self.text = None

    def update_view(self, value):
        self.text = value


class Screen(ViewNode):
    is_scope_boundary = True


class Person:
    def __init__(self, first):
        self.first = first


def make_record(node, target, key_path='first'):
    return BindingRecord(
        node=node,
        evaluator=KeyPathEvaluator(parse_key_path(key_path), target),
        formatter=None,
        accepted_kinds=frozenset({viewbind.TEXT}),
    )


class TestBindingRecord:
    """Test binding record state."""

    def test_initial_state(self):
        record = make_record(Label(), Person("Ann"))
        assert record.key_path == 'first'
        assert record.last_value is viewbind.NO_VALUE
        assert record.status is BindingStatus.OK
        assert record.error is None

    def test_current_value_reads_target(self):
        person = Person("Ann")
        record = make_record(Label(), person)
        person.first = "Bea"
        assert record.current_value() == "Bea"

    def test_set_error_keeps_last_value(self):
        record = make_record(Label(), Person("Ann"))
        record.set_applied("Ann")

        error = viewbind.UnsupportedValueTypeError(42, {viewbind.TEXT})
        record.set_error(error)

        assert record.status is BindingStatus.UNSUPPORTED_VALUE_TYPE
        assert record.error is error
        assert record.last_value == "Ann"

    def test_set_error_with_explicit_status(self):
        record = make_record(Label(), Person("Ann"))
        record.set_error(viewbind.KeyPathError('first', 'boom'), BindingStatus.EVALUATION_FAILED)
        assert record.status is BindingStatus.EVALUATION_FAILED

    def test_set_applied_clears_error(self):
        record = make_record(Label(), Person("Ann"))
        record.set_error(viewbind.KeyPathError('first', 'boom'))
        record.set_applied("Ann")
        assert record.status is BindingStatus.OK
        assert record.error is None


class TestBindingCache:
    """Test cache storage and invalidation."""

    def setup_method(self):
        viewbind.reset()
        self.cache = BindingCache()
        self.person = Person("Ann")

    def test_put_get(self):
        node = Label()
        record = make_record(node, self.person)
        self.cache.put(node, record)
        assert self.cache.get(node) is record
        assert node in self.cache
        assert len(self.cache) == 1

    def test_keyed_by_identity(self):
        a, b = Label('same'), Label('same')
        self.cache.put(a, make_record(a, self.person))
        assert b not in self.cache

    def test_put_replaces(self):
        node = Label()
        self.cache.put(node, make_record(node, self.person))
        second = make_record(node, self.person)
        self.cache.put(node, second)
        assert self.cache.records() == [second]

    def test_invalidate(self):
        node = Label()
        self.cache.put(node, make_record(node, self.person))
        self.cache.invalidate(node)
        assert self.cache.get(node) is None

    def test_invalidate_subtree(self):
        parent = Label('parent')
        child = parent.add_child(Label('child'))
        other = Label('other')
        for node in (parent, child, other):
            self.cache.put(node, make_record(node, self.person))

        self.cache.invalidate_subtree(parent)

        assert parent not in self.cache
        assert child not in self.cache
        assert other in self.cache

    def test_failure_replaces_record(self):
        node = Label()
        self.cache.put(node, make_record(node, self.person))
        error = viewbind.KeyPathNotFoundError('first')

        self.cache.record_failure(node, error)

        assert node not in self.cache
        assert self.cache.failure(node) is error
        assert list(self.cache.failures()) == [(node, error)]

    def test_record_clears_failure(self):
        node = Label()
        self.cache.record_failure(node, viewbind.KeyPathNotFoundError('first'))
        self.cache.put(node, make_record(node, self.person))
        assert self.cache.failure(node) is None

    def test_clear(self):
        node = Label()
        self.cache.put(node, make_record(node, self.person))
        self.cache.record_failure(Label(), viewbind.KeyPathNotFoundError('x'))
        self.cache.clear()
        assert len(self.cache) == 0
        assert list(self.cache.failures()) == []

    def test_changing_binding_attributes_drops_record(self):
        node = Label(bind_key_path='first')
        self.cache.put(node, make_record(node, self.person))
        node.bind_to_key_path('last')
        assert node not in self.cache
        assert node.bind_key_path == 'last'


class TestDetach:
    """Test that detaching nodes drops their cached bindings."""

    def setup_method(self):
        viewbind.reset()
        self.screen = Screen('screen')
        self.panel = self.screen.add_child(ViewNode('panel'))
        self.label = self.panel.add_child(Label('label', bind_key_path='first'))
        self.missing = self.panel.add_child(Label('missing', bind_key_path='salary'))
        self.sibling = self.screen.add_child(Label('sibling', bind_key_path='first'))
        self.person = Person("Ann")
        viewbind.bind_to_object(self.screen, self.person)

    def test_detach_subtree(self):
        cache = viewbind.get_binder().cache
        self.screen.remove_child(self.panel)

        assert self.label not in cache
        assert cache.failure(self.missing) is None
        assert self.sibling in cache

    def test_detached_node_not_refreshed(self):
        self.screen.remove_child(self.panel)
        self.person.first = "Bea"
        viewbind.refresh_bindings(self.screen)
        assert self.label.text == "Ann"
        assert self.sibling.text == "Bea"

    def test_reparenting_drops_record(self):
        other = Screen('other')
        other.add_child(self.label)
        assert self.label not in viewbind.get_binder().cache

    def test_reattached_node_resolves_again(self):
        self.label.remove_from_parent()
        self.panel.add_child(self.label)
        self.person.first = "Bea"

        viewbind.refresh_bindings(self.screen)
        assert self.label.text == "Ann"

        viewbind.refresh_bindings(self.screen, forced=True)
        assert self.label.text == "Bea"

    def test_detach_notifies_every_binder(self):
        binder = viewbind.Binder()
        binder.bind_to_object(self.screen, self.person)
        self.screen.remove_child(self.panel)
        assert self.label not in binder.cache
        assert self.label not in viewbind.get_binder().cache


class TestCollectedNodes:
    """The cache does not keep view trees alive."""

    def setup_method(self):
        viewbind.reset()

    def test_discarded_tree_leaves_cache(self):
        binder = viewbind.get_binder()
        root = ViewNode('root')
        root.add_child(Label(bind_key_path='name'))
        binder.bind_to_object(root, {'name': 'Ann'})
        assert len(binder.cache) == 1

        del root
        gc.collect()

        assert len(binder.cache) == 0
        assert viewbind.list_active_bindings() == []

    def test_discarded_failures_leave_cache(self):
        binder = viewbind.get_binder()
        screen = Screen('screen')
        screen.add_child(Label(bind_key_path='salary'))
        binder.bind_to_object(screen, Person("Ann"))
        assert len(list(binder.cache.failures())) == 1

        del screen
        gc.collect()

        assert list(binder.cache.failures()) == []

    def test_failed_evaluation_does_not_pin_node(self):
        class Broken:
            @property
            def first(self):
                raise RuntimeError("boom")

        binder = viewbind.get_binder()
        screen = Screen('screen')
        screen.add_child(Label(bind_key_path='first'))
        broken = Broken()
        binder.bind_to_object(screen, broken)
        assert binder.cache.records()[0].status is BindingStatus.EVALUATION_FAILED

        del screen
        gc.collect()

        assert len(binder.cache) == 0

    def test_screen_formatter_method_does_not_pin_tree(self):
        class LoudScreen(Screen):
            def shout(self, value):
                return value.upper()

        binder = viewbind.get_binder()
        screen = LoudScreen('screen')
        label = screen.add_child(Label(bind_key_path='first', bind_formatter='shout'))
        binder.bind_to_object(screen, Person("Ann"))
        assert label.text == "ANN"

        del screen, label
        gc.collect()

        assert len(binder.cache) == 0

    def test_record_node_is_weak(self):
        node = Label()
        record = make_record(node, Person("Ann"))
        assert record.node is node

        del node
        gc.collect()

        assert record.node is None

class TestListActiveBindings:
    """Test the debug listing."""

    def setup_method(self):
        viewbind.reset()
        self.screen = Screen('screen')
        self.label = self.screen.add_child(Label('label', bind_key_path='first'))
        self.missing = self.screen.add_child(Label('missing', bind_key_path='salary'))
        self.plain = self.screen.add_child(Label('plain'))
        self.person = Person("Ann")

    def test_empty(self):
        assert viewbind.list_active_bindings() == []

    def test_lists_records_and_failures(self):
        viewbind.bind_to_object(self.screen, self.person)

        infos = viewbind.list_active_bindings()

        assert [(info.node, info.key_path, info.status) for info in infos] == [
            (self.label, 'first', BindingStatus.OK),
            (self.missing, 'salary', BindingStatus.PATH_NOT_FOUND),
        ]
        assert infos[0].last_value == "Ann"
        assert infos[0].error is None
        assert infos[1].last_value is viewbind.NO_VALUE
        assert isinstance(infos[1].error, viewbind.KeyPathNotFoundError)

    def test_listing_is_read_only(self):
        viewbind.bind_to_object(self.screen, self.person)
        first = viewbind.list_active_bindings()
        second = viewbind.list_active_bindings()
        assert first == second
        assert self.label.text == "Ann"

    def test_listing_reflects_failed_refresh(self):
        viewbind.bind_to_object(self.screen, self.person)
        self.person.first = 42
        viewbind.refresh_bindings(self.screen)

        info = viewbind.list_active_bindings()[0]
        assert info.status is BindingStatus.UNSUPPORTED_VALUE_TYPE
        assert info.last_value == "Ann"
