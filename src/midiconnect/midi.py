"""
The Midi facade: starts and stops a transport, keeps the connections reconciled and decodes the
traffic from the connected sources.

The module settings below can be changed in midi.cfg beside this module, or in ~/midi.cfg, and are
applied by configure().
"""
import logging
import sys

from midiconnect.config.config import configure_module
from midiconnect.errors import TransportError
from midiconnect.events import Receiver
from midiconnect.monitor import Monitor
from midiconnect.protocol.midi1 import Midi1Decoder
from midiconnect.protocol.ump import UmpDecoder
from midiconnect.reconciler import ConnectionReconciler
from midiconnect.state import ConnectionState
from midiconnect.support.events import QueuedEventSource
from midiconnect.support.mixins import ValueObject
from midiconnect.transport.base import Transport, Delivery

logger = logging.getLogger(__name__)

# the name the client registers with the transport
client_name = 'midiconnect'
# the unique id requested for the client's own endpoint
unique_id = 12345
# the default receiver filters
channel = -1
group = -1
# seconds between calls to update() in the polling loop
poll_interval = 1.0


def configure():
    """ loads the settings of this module from its configuration files. """
    configure_module(sys.modules[__name__])


class DeviceState(ValueObject):
    """ What is known about a source the transport lists. """
    def __init__(self, unique_id, display_name, connected, group=None, channel=None):
        self.unique_id = unique_id
        self.display_name = display_name
        self.connected = connected
        self.group = group
        self.channel = channel


class Midi(Delivery):
    """
    Connects to every source the transport offers (subject to the monitor's approval) and applies the
    decoded traffic to the receiver.

    The transport may report topology changes from its own thread. These are queued, and the connections are
    reconciled when the application calls update().

    :param transport: the platform MIDI service
    :param receiver: receives the decoded events, may be None
    :param monitor: told about the connection lifecycle
    :param client_name: the name to register with the transport
    :param unique_id: the id requested for the client's own endpoint
    """

    def __init__(self, transport: Transport, receiver: Receiver=None, monitor: Monitor=None,
                 client_name=None, unique_id=None):
        self.transport = transport
        self.receiver = receiver
        self.monitor = monitor or Monitor()
        self.client_name = client_name if client_name is not None else sys.modules[__name__].client_name
        self.requested_id = unique_id if unique_id is not None else sys.modules[__name__].unique_id
        self.unique_id = None
        self.state = ConnectionState()
        self.midi1 = Midi1Decoder(self.monitor)
        self.ump = UmpDecoder(self.monitor)
        self.reconciler = None
        self.events = QueuedEventSource()
        self.events.add(self._sources_changed)

    @property
    def is_running(self):
        return self.reconciler is not None

    def start(self):
        """
        Registers with the transport and connects to the available sources.
        Starting a running instance does nothing.
        """
        if self.is_running:
            return
        self.unique_id = self.transport.open(self.client_name, self.requested_id, self)
        logger.info("started %s with unique id %s" % (self.client_name, self.unique_id))
        self.monitor.did_create_input_port()
        self.transport.events.add(self.events.fire)
        self.reconciler = ConnectionReconciler(self.transport, self.state, self.monitor, self.unique_id)
        self.monitor.did_initialize(self.unique_id)
        self.reconciler.reconcile()

    def stop(self):
        """ Disconnects all sources and closes the transport. Stopping a stopped instance does nothing. """
        if not self.is_running:
            return
        self.monitor.will_uninitialize()
        self.transport.events.remove(self.events.fire)
        self.reconciler.disconnect_all()
        self.reconciler = None
        self.monitor.will_delete_input_port()
        self.transport.close()
        self.state.reset()
        self.unique_id = None
        logger.info("stopped %s" % self.client_name)
        self.monitor.did_uninitialize()

    def update(self):
        """
        Polls the transport, then handles any topology changes it reported since the last call.
        Call regularly from the application thread.
        :return: the number of topology notifications handled
        """
        if not self.is_running:
            return 0
        try:
            self.transport.update()
        except TransportError as e:
            logger.error("unable to poll the transport: %s" % e)
        return self.events.publish()

    def _sources_changed(self, event=None):
        if self.reconciler is None:
            return
        self.monitor.will_update_connections()
        self.reconciler.reconcile()

    def connect(self, unique_id):
        """ Connects a source, if it is listed by the transport. :return: True if connected by this call """
        return self.reconciler.connect(unique_id) if self.is_running else False

    def disconnect(self, unique_id):
        """ :return: True if the source was disconnected by this call """
        return self.reconciler.disconnect(unique_id) if self.is_running else False

    @property
    def devices(self):
        """ The sources the transport lists, with their connection state and the group/channel last seen. """
        if not self.is_running:
            return []
        try:
            endpoints = self.transport.list_sources()
        except TransportError as e:
            logger.warning("unable to list sources: %s" % e)
            return []
        result = []
        for endpoint in endpoints:
            if endpoint.unique_id == self.unique_id:
                continue
            state = self.state.get(endpoint.unique_id)
            if state is None:
                result.append(DeviceState(endpoint.unique_id, endpoint.display_name, False))
            else:
                result.append(DeviceState(endpoint.unique_id, endpoint.display_name, state.connected,
                                          state.group, state.channel))
        return result

    @property
    def active_connections(self):
        return set(self.state.connected_ids())

    @property
    def channels(self):
        """ the unique id of each source that has sent a channel message, mapped to the last channel seen """
        return {e.unique_id: e.channel for e in self.state.endpoints() if e.channel is not None}

    @property
    def groups(self):
        return {e.unique_id: e.group for e in self.state.endpoints() if e.group is not None}

    def _resolve(self, handle):
        source = self.state.resolve(handle)
        if source is None and logger.isEnabledFor(logging.DEBUG):
            logger.debug("dropping delivery for stale handle %s" % handle)
        return source

    def receive_bytes(self, handle, data, timestamp=None):
        """ Decodes MIDI 1.0 bytes delivered by the transport. """
        source = self._resolve(handle)
        if source is not None:
            self.midi1.decode(source, data, self.receiver, self.state.bound(handle), timestamp)

    def receive_words(self, handle, words, timestamp=None):
        """ Decodes Universal MIDI Packet words delivered by the transport. """
        source = self._resolve(handle)
        if source is not None:
            self.ump.decode(source, words, self.receiver, self.state.bound(handle), timestamp)
