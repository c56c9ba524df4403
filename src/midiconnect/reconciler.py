import logging
import threading

from midiconnect.errors import TransportError
from midiconnect.monitor import Monitor
from midiconnect.state import ConnectionState
from midiconnect.transport.base import Transport

logger = logging.getLogger(__name__)


class ConnectionReconciler:
    """
    Keeps the set of connected sources in line with the sources the transport reports.

    Sources that appear are connected, unless the monitor vetoes them. Connected sources that are no
    longer listed are disconnected. A transport failure is logged and the source is left as it was; it
    is tried again on the next pass.

    Passes are serialized by the reconciler's own lock. The state lock is only held to read and update
    the state, never while the transport is called, since a transport may wait for its delivery thread
    and that thread resolves handles through the state.

    :param transport: lists the sources and opens/closes the connections
    :param state: records the connected sources and their handles
    :param monitor: asked to approve each connection, and told about the changes
    :param own_unique_id: the id of the client's own endpoint, which is never connected
    """

    def __init__(self, transport: Transport, state: ConnectionState, monitor: Monitor=None, own_unique_id=None):
        self.transport = transport
        self.state = state
        self.monitor = monitor or Monitor()
        self.own_unique_id = own_unique_id
        self._lock = threading.RLock()

    def _snapshot(self):
        """ :return: the listed sources other than the client's own, or None when the transport cannot list them """
        try:
            sources = self.transport.list_sources()
        except TransportError as e:
            logger.error("unable to list sources: %s" % e)
            return None
        return [endpoint for endpoint in sources if endpoint.unique_id != self.own_unique_id]

    def reconcile(self):
        """
        Connects the listed sources that are not connected, and disconnects the connected ones that are no
        longer listed. The monitor's did_update_connections is called when anything changed.
        :return: a tuple of the Endpoints connected and the unique ids disconnected
        """
        with self._lock:
            snapshot = self._snapshot()
            if snapshot is None:
                return [], []
            listed = {endpoint.unique_id for endpoint in snapshot}
            with self.state.transaction():
                candidates = [endpoint for endpoint in snapshot if not self.state.is_connected(endpoint.unique_id)]
                gone = [unique_id for unique_id in self.state.connected_ids() if unique_id not in listed]
            connected = [endpoint for endpoint in candidates if self._connect(endpoint)]
            disappeared = [unique_id for unique_id in gone if self._disconnect(unique_id)]
        if connected or disappeared:
            self.monitor.did_update_connections(connected, disappeared)
        return connected, disappeared

    def _connect(self, endpoint):
        """
        connects an endpoint that is not already connected.
        The handle is live before the transport is asked to connect, so the first delivery resolves.
        :return: True if the endpoint was connected
        """
        unique_id = endpoint.unique_id
        if self.state.is_connected(unique_id):
            return False
        if not self.monitor.should_connect(unique_id):
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("connection to %s vetoed" % unique_id)
            return False
        handle = self.state.allocate_handle(unique_id)
        try:
            self.transport.connect(unique_id, handle)
        except TransportError as e:
            self.state.release_handle(unique_id)
            logger.error("unable to connect to %s (%s): %s" % (endpoint.display_name, unique_id, e))
            return False
        self.state.mark_connected(unique_id)
        logger.info("connected to %s (%s)" % (endpoint.display_name, unique_id))
        self.monitor.did_connect_to(unique_id)
        return True

    def _disconnect(self, unique_id):
        """
        disconnects a connected endpoint. The handle is invalidated before the transport is asked to
        disconnect, so deliveries still in flight are dropped. It is restored if the transport refuses.
        :return: True if the endpoint was disconnected
        """
        with self.state.transaction():
            if not self.state.is_connected(unique_id):
                return False
            handle = self.state.release_handle(unique_id)
        try:
            self.transport.disconnect(unique_id)
        except TransportError as e:
            self.state.restore_handle(unique_id, handle)
            logger.error("unable to disconnect from %s: %s" % (unique_id, e))
            return False
        self.state.clear(unique_id)
        logger.info("disconnected from %s" % unique_id)
        self.monitor.did_disconnect_from(unique_id)
        return True

    def connect(self, unique_id):
        """
        Connects a single source, if the transport lists it.
        :return: True if the source was connected by this call
        """
        with self._lock:
            for endpoint in self._snapshot() or []:
                if endpoint.unique_id == unique_id:
                    return self._connect(endpoint)
        logger.info("no source %s to connect to" % unique_id)
        return False

    def disconnect(self, unique_id):
        """
        Disconnects a single source. Disconnecting a source that is not connected does nothing.
        :return: True if the source was disconnected by this call
        """
        with self._lock:
            return self._disconnect(unique_id)

    def disconnect_all(self):
        """ :return: the unique ids that were disconnected """
        with self._lock:
            return [unique_id for unique_id in self.state.connected_ids() if self._disconnect(unique_id)]
