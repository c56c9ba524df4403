import logging
import threading
import unittest
from unittest.mock import Mock

import timeout_decorator
from hamcrest import assert_that, is_, empty, contains_exactly, contains_inanyorder

from midiconnect.errors import TransportError
from midiconnect.monitor import Monitor
from midiconnect.reconciler import ConnectionReconciler
from midiconnect.state import ConnectionState, EndpointState
from midiconnect.transport.base import Endpoint
from midiconnect.transport.base_test import FakeTransport, debug_timeout


class ConnectionReconcilerTest(unittest.TestCase):

    def setUp(self):
        self.transport = FakeTransport()
        self.state = ConnectionState()
        self.monitor = Mock(wraps=Monitor())
        self.sut = ConnectionReconciler(self.transport, self.state, self.monitor, own_unique_id=100)

    def test_connects_new_sources(self):
        self.transport.add_source(1, "a")
        self.transport.add_source(2, "b")
        connected, disappeared = self.sut.reconcile()
        assert_that(connected, contains_exactly(Endpoint(1, "a"), Endpoint(2, "b")))
        assert_that(disappeared, is_(empty()))
        assert_that(self.state.connected_ids(), contains_inanyorder(1, 2))
        assert_that(self.transport.connected[1], is_(self.state.get(1).handle))
        self.monitor.did_update_connections.assert_called_once_with(connected, [])
        assert_that(self.monitor.did_connect_to.call_count, is_(2))

    def test_second_pass_changes_nothing(self):
        self.transport.add_source(1)
        self.sut.reconcile()
        self.monitor.reset_mock()
        assert_that(self.sut.reconcile(), is_(([], [])))
        assert_that(self.monitor.did_update_connections.called, is_(False))
        assert_that(self.transport.connect_calls, is_([1]))

    def test_nothing_to_do_notifies_nothing(self):
        assert_that(self.sut.reconcile(), is_(([], [])))
        assert_that(self.monitor.did_update_connections.called, is_(False))

    def test_disconnects_sources_that_went_away(self):
        self.transport.add_source(1)
        self.transport.add_source(2)
        self.sut.reconcile()
        self.state.observe(2, group=1, channel=3)
        handle = self.state.get(2).handle
        self.sut.reconcile()
        assert_that((self.state.group(2), self.state.channel(2)), is_((1, 3)))
        assert_that(self.state.is_connected(2), is_(True))
        self.transport.remove_source(2)
        connected, disappeared = self.sut.reconcile()
        assert_that(connected, is_(empty()))
        assert_that(disappeared, is_([2]))
        assert_that(self.state.connected_ids(), is_([1]))
        assert_that(self.state.resolve(handle), is_(None))
        assert_that((self.state.group(2), self.state.channel(2)), is_((None, None)))
        self.monitor.did_disconnect_from.assert_called_once_with(2)
        self.monitor.did_update_connections.assert_called_with([], [2])

    def test_source_coming_back_gets_new_handle(self):
        self.transport.add_source(1)
        self.sut.reconcile()
        first = self.state.get(1).handle
        self.transport.remove_source(1)
        self.sut.reconcile()
        self.transport.add_source(1)
        self.sut.reconcile()
        assert_that(self.state.get(1).handle == first, is_(False))
        assert_that(self.state.resolve(first), is_(None))

    def test_own_endpoint_is_excluded(self):
        self.transport.add_source(100, "me")
        self.transport.add_source(1)
        connected, _ = self.sut.reconcile()
        assert_that([e.unique_id for e in connected], is_([1]))
        assert_that(self.transport.connect_calls, is_([1]))

    def test_veto(self):
        self.monitor.should_connect = Mock(side_effect=lambda uid: uid != 2)
        self.transport.add_source(1)
        self.transport.add_source(2)
        self.sut.reconcile()
        assert_that(self.state.connected_ids(), is_([1]))
        assert_that(self.transport.connect_calls, is_([1]))
        assert_that(self.state.get(2), is_(None))

    def test_connect_failure_leaves_source_unconnected(self):
        self.transport.refuse_connect.add(1)
        self.transport.add_source(1)
        assert_that(self.sut.reconcile(), is_(([], [])))
        assert_that(self.state.connected_ids(), is_(empty()))
        assert_that(self.state.get(1).handle, is_(None))
        assert_that(self.monitor.did_connect_to.called, is_(False))

    def test_connect_failure_is_retried_on_next_pass(self):
        self.transport.refuse_connect.add(1)
        self.transport.add_source(1)
        self.sut.reconcile()
        self.transport.refuse_connect.clear()
        connected, _ = self.sut.reconcile()
        assert_that([e.unique_id for e in connected], is_([1]))

    def test_disconnect_failure_leaves_source_connected(self):
        self.transport.add_source(1)
        self.sut.reconcile()
        self.state.observe(1, group=2, channel=5)
        handle = self.state.get(1).handle
        self.transport.refuse_disconnect.add(1)
        self.transport.remove_source(1)
        assert_that(self.sut.reconcile(), is_(([], [])))
        assert_that(self.state.connected_ids(), is_([1]))
        assert_that(self.state.get(1), is_(EndpointState(1, 2, 5, True, handle)))
        assert_that(self.state.resolve(handle), is_(1))

    def test_explicit_connect(self):
        self.transport.add_source(1)
        assert_that(self.sut.connect(1), is_(True))
        assert_that(self.sut.connect(1), is_(False))
        assert_that(self.state.connected_ids(), is_([1]))

    def test_explicit_connect_of_unlisted_source(self):
        assert_that(self.sut.connect(5), is_(False))
        assert_that(self.transport.connect_calls, is_(empty()))

    def test_explicit_connect_of_own_endpoint(self):
        self.transport.add_source(100)
        assert_that(self.sut.connect(100), is_(False))

    def test_explicit_connect_honours_veto(self):
        self.monitor.should_connect = Mock(return_value=False)
        self.transport.add_source(1)
        assert_that(self.sut.connect(1), is_(False))

    def test_disconnect_of_unknown_source_does_nothing(self):
        assert_that(self.sut.disconnect(42), is_(False))
        assert_that(self.transport.disconnect_calls, is_(empty()))
        assert_that(self.monitor.did_disconnect_from.called, is_(False))

    def test_explicit_disconnect(self):
        self.transport.add_source(1)
        self.sut.reconcile()
        assert_that(self.sut.disconnect(1), is_(True))
        assert_that(self.state.connected_ids(), is_(empty()))

    def test_disconnect_all(self):
        self.transport.add_source(1)
        self.transport.add_source(2)
        self.sut.reconcile()
        self.transport.refuse_disconnect.add(2)
        assert_that(self.sut.disconnect_all(), is_([1]))
        assert_that(self.state.connected_ids(), is_([2]))

    def test_default_monitor(self):
        sut = ConnectionReconciler(self.transport, self.state)
        self.transport.add_source(1)
        connected, _ = sut.reconcile()
        assert_that(len(connected), is_(1))


class ThreadedTransport(FakeTransport):
    """ Resolves the connection's handle on another thread, and waits for it, while connecting and disconnecting. """

    def __init__(self, state):
        super().__init__()
        self.state = state
        self.resolved = []

    def _resolve_on_other_thread(self, handle):
        thread = threading.Thread(target=lambda: self.resolved.append(self.state.resolve(handle)))
        thread.start()
        thread.join()

    def connect(self, unique_id, handle):
        self._resolve_on_other_thread(handle)
        super().connect(unique_id, handle)

    def disconnect(self, unique_id):
        self._resolve_on_other_thread(self.connected.get(unique_id))
        super().disconnect(unique_id)


class UnlistableTransport(FakeTransport):

    def list_sources(self):
        raise TransportError("sequencer unavailable")


class ConnectionReconcilerThreadingTest(unittest.TestCase):

    def setUp(self):
        self.state = ConnectionState()
        self.transport = ThreadedTransport(self.state)
        self.sut = ConnectionReconciler(self.transport, self.state)

    @timeout_decorator.timeout(debug_timeout(5))
    def test_state_is_not_locked_while_transport_connects(self):
        self.transport.add_source(1)
        self.sut.reconcile()
        assert_that(self.transport.resolved, is_([1]))
        assert_that(self.state.connected_ids(), is_([1]))

    @timeout_decorator.timeout(debug_timeout(5))
    def test_handle_is_invalid_while_transport_disconnects(self):
        self.transport.add_source(1)
        self.sut.reconcile()
        assert_that(self.sut.disconnect(1), is_(True))
        assert_that(self.transport.resolved, is_([1, None]))

    @timeout_decorator.timeout(debug_timeout(5))
    def test_disconnect_all_does_not_hold_state_lock(self):
        self.transport.add_source(1)
        self.transport.add_source(2)
        self.sut.reconcile()
        assert_that(self.sut.disconnect_all(), contains_inanyorder(1, 2))
        assert_that(self.state.connected_ids(), is_(empty()))


class ListingFailureTest(unittest.TestCase):

    def setUp(self):
        self.state = ConnectionState()
        self.monitor = Mock(wraps=Monitor())
        self.sut = ConnectionReconciler(UnlistableTransport(), self.state, self.monitor)

    def test_reconcile_logs_and_changes_nothing(self):
        with self.assertLogs('midiconnect.reconciler', logging.ERROR):
            assert_that(self.sut.reconcile(), is_(([], [])))
        assert_that(self.monitor.did_update_connections.called, is_(False))

    def test_connect_returns_false(self):
        assert_that(self.sut.connect(1), is_(False))
        assert_that(self.state.get(1), is_(None))

    def test_connected_sources_are_kept(self):
        self.state.allocate_handle(1)
        self.state.mark_connected(1)
        self.sut.reconcile()
        assert_that(self.state.connected_ids(), is_([1]))
