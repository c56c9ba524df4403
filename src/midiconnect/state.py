"""
The shared connection state: which endpoints are connected, the correlation handle each
connection delivers with, and the group and channel last seen from each endpoint.

All access goes through a single re-entrant lock, held only for the duration of each operation, or
of a group of reads taken together via transaction(). Decoders write telemetry through a view bound
to the handle of the delivery being decoded, so a delivery racing a disconnect cannot bring back
telemetry for an endpoint that was cleared.
"""
import copy
import logging
import threading

from midiconnect.support.mixins import ValueObject

logger = logging.getLogger(__name__)


class EndpointState(ValueObject):
    """ What is known about one source endpoint. """
    def __init__(self, unique_id, group=None, channel=None, connected=False, handle=None):
        self.unique_id = unique_id
        self.group = group
        self.channel = channel
        self.connected = connected
        self.handle = handle


class ConnectionState:
    """
    Maps endpoint unique ids to their EndpointState, and correlation handles to unique ids.
    Handles are drawn from a counter and are never reused, so a handle that has been released
    never resolves again.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._entries = {}
        self._handles = {}
        self._next_handle = 1

    def transaction(self):
        """ The state lock, as a context manager. Operations on this object may be called while it is held. """
        return self._lock

    def _entry(self, unique_id):
        entry = self._entries.get(unique_id)
        if entry is None:
            entry = EndpointState(unique_id)
            self._entries[unique_id] = entry
        return entry

    def get(self, unique_id):
        """ A copy of the state of the endpoint, or None if nothing is known about it. """
        with self._lock:
            entry = self._entries.get(unique_id)
            return copy.copy(entry) if entry is not None else None

    def endpoints(self):
        """ copies of all endpoint states """
        with self._lock:
            return [copy.copy(entry) for entry in self._entries.values()]

    def observe(self, unique_id, group=None, channel=None):
        """
        Records the group and/or channel seen in a message from an endpoint.
        Values given as None are left as they were.
        """
        with self._lock:
            self._observe(unique_id, group, channel)

    def _observe(self, unique_id, group, channel):
        entry = self._entry(unique_id)
        if group is not None:
            entry.group = group
        if channel is not None:
            entry.channel = channel

    def bound(self, handle):
        """ A view of this state that records telemetry only while the handle is live. """
        return BoundConnectionState(self, handle)

    def observe_with_handle(self, handle, unique_id, group=None, channel=None):
        with self._lock:
            if self._handles.get(handle) != unique_id:
                logger.debug("dropping telemetry for %s: handle %s is no longer live" % (unique_id, handle))
                return False
            self._observe(unique_id, group, channel)
            return True

    def allocate_handle(self, unique_id):
        """
        Allocates a fresh correlation handle for an endpoint that is about to be connected.
        Any handle the endpoint already held is released.
        """
        with self._lock:
            entry = self._entry(unique_id)
            if entry.handle is not None:
                self._handles.pop(entry.handle, None)
            handle = self._next_handle
            self._next_handle += 1
            self._handles[handle] = unique_id
            entry.handle = handle
            return handle

    def mark_connected(self, unique_id):
        with self._lock:
            entry = self._entries.get(unique_id)
            if entry is None or entry.handle is None:
                raise ValueError("endpoint %s has no handle" % unique_id)
            entry.connected = True

    def release_handle(self, unique_id):
        """ Invalidates the endpoint's handle and marks it not connected. Telemetry is kept. """
        with self._lock:
            entry = self._entries.get(unique_id)
            if entry is None:
                return None
            handle = entry.handle
            if handle is not None:
                self._handles.pop(handle, None)
            entry.handle = None
            entry.connected = False
            return handle

    def restore_handle(self, unique_id, handle):
        """ Makes a released handle live again and marks the endpoint connected, after a failed disconnect. """
        with self._lock:
            entry = self._entry(unique_id)
            if entry.handle is not None:
                self._handles.pop(entry.handle, None)
            self._handles[handle] = unique_id
            entry.handle = handle
            entry.connected = True

    def clear(self, unique_id):
        """ Releases the endpoint's handle and forgets its group and channel. """
        with self._lock:
            self.release_handle(unique_id)
            entry = self._entries.get(unique_id)
            if entry is not None:
                entry.group = None
                entry.channel = None

    def resolve(self, handle):
        """ The unique id of the endpoint owning the handle, or None when the handle has been released. """
        with self._lock:
            return self._handles.get(handle)

    def is_connected(self, unique_id):
        with self._lock:
            entry = self._entries.get(unique_id)
            return entry is not None and entry.connected

    def connected_ids(self):
        with self._lock:
            return [uid for uid, entry in self._entries.items() if entry.connected]

    def channel(self, unique_id):
        with self._lock:
            entry = self._entries.get(unique_id)
            return entry.channel if entry is not None else None

    def group(self, unique_id):
        with self._lock:
            entry = self._entries.get(unique_id)
            return entry.group if entry is not None else None

    def reset(self):
        """ Forgets everything. Handles issued before the reset never resolve again. """
        with self._lock:
            self._entries.clear()
            self._handles.clear()


class BoundConnectionState:
    """
    The telemetry interface of ConnectionState, restricted to one correlation handle.
    Observations are recorded only for the endpoint that currently owns the handle.
    """
    def __init__(self, state: ConnectionState, handle):
        self.state = state
        self.handle = handle

    def observe(self, unique_id, group=None, channel=None):
        return self.state.observe_with_handle(self.handle, unique_id, group, channel)
