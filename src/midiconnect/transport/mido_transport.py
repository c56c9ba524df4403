"""
A transport on mido input ports.

mido has no stable endpoint ids, so the id of an endpoint is derived from its port name. Each connected
source is an open input port whose callback delivers the bytes of every message received. mido does not
signal topology changes, so update() polls the port names and fires a SourcesChangedEvent when they change.
"""
import logging
import re
import time
import zlib

import mido

from midiconnect.errors import TransportError
from midiconnect.transport.base import Transport, Endpoint, SourcesChangedEvent

logger = logging.getLogger(__name__)

# errors from the backends when listing, opening or closing ports. rtmidi's errors derive from these.
backend_errors = (OSError, ValueError, RuntimeError)


def _dedupe(names):
    """Remove duplicate port names.

    >>> _dedupe(['a', 'b', 'a'])
    ['a', 'b']
    """
    return list(dict.fromkeys(names))


def _is_virtual_through(name):
    """Check if port is an ALSA virtual through port or an RtMidi client port.

    >>> _is_virtual_through('Midi Through Port-0'), _is_virtual_through('RtMidiIn Client')
    (True, True)
    >>> _is_virtual_through('KeyStep 37')
    False
    """
    patterns = [
        r'midi\s+through',
        r'rtmidi',
        r'through',
    ]
    return any(re.search(pattern, name, re.IGNORECASE) for pattern in patterns)


def endpoint_id(name):
    """The unique id of the endpoint with the given port name. Always a positive 31-bit value.

    >>> endpoint_id('KeyStep 37') == endpoint_id('KeyStep 37')
    True
    >>> 0 <= endpoint_id('KeyStep 37') < 2**31
    True
    """
    return zlib.crc32(name.encode('utf-8')) & 0x7FFFFFFF


class MidoTransport(Transport):
    """
    :param backend: the name of the mido backend module, e.g. 'mido.backends.rtmidi'. None uses mido's default.
    :param exclude_through: leave out the virtual through ports and the ports of other rtmidi clients
    :param clock: provides the timestamp for each delivery
    """

    def __init__(self, backend=None, exclude_through=True, clock=time.monotonic):
        super().__init__()
        self.backend = backend
        self.exclude_through = exclude_through
        self.clock = clock
        self.delivery = None
        self.ports = {}         # unique id -> open input port
        self.previous = {}      # unique id -> Endpoint, as of the last update()

    def _mido(self):
        return mido.Backend(self.backend) if self.backend else mido

    def _fetch_available(self):
        try:
            names = _dedupe(self._mido().get_input_names())
        except backend_errors as e:
            raise TransportError("unable to list input ports: %s" % e) from e
        if self.exclude_through:
            names = [name for name in names if not _is_virtual_through(name)]
        return {endpoint_id(name): Endpoint(endpoint_id(name), name) for name in names}

    def open(self, client_name, unique_id, delivery):
        if self.delivery is not None:
            raise TransportError("transport is already open")
        self.previous = self._fetch_available()
        self.delivery = delivery
        logger.info("opened mido transport for %s" % client_name)
        # no port is opened for the client: traffic addressed to it has no connection handle to deliver
        # with, so the requested id is kept and only excluded from the sources
        return unique_id

    def close(self):
        for unique_id in list(self.ports):
            try:
                self.disconnect(unique_id)
            except TransportError as e:
                logger.warning("error closing port for %s: %s" % (unique_id, e))
        self.ports.clear()
        self.delivery = None

    def list_sources(self):
        return list(self._fetch_available().values())

    def connect(self, unique_id, handle):
        if self.delivery is None:
            raise TransportError("transport is not open")
        endpoint = self._fetch_available().get(unique_id)
        if endpoint is None:
            raise TransportError("no source with id %s" % unique_id)
        try:
            port = self._mido().open_input(endpoint.display_name, callback=self._deliver_to(handle))
        except backend_errors as e:
            raise TransportError("unable to open %s: %s" % (endpoint.display_name, e)) from e
        self.ports[unique_id] = port
        logger.info("opened input port %s" % endpoint.display_name)

    def _deliver_to(self, handle):
        def deliver(message):
            delivery = self.delivery
            if delivery is not None:
                delivery.receive_bytes(handle, message.bytes(), self.clock())
        return deliver

    def disconnect(self, unique_id):
        port = self.ports.get(unique_id)
        if port is None:
            return
        try:
            port.close()
        except backend_errors as e:
            raise TransportError("unable to close %s: %s" % (unique_id, e)) from e
        del self.ports[unique_id]
        logger.info("closed input port for %s" % unique_id)

    def update(self):
        available = self._fetch_available()
        added = [endpoint for key, endpoint in available.items() if key not in self.previous]
        removed = [endpoint for key, endpoint in self.previous.items() if key not in available]
        self.previous = available
        if added or removed:
            logger.info("sources changed: %d added, %d removed" % (len(added), len(removed)))
            self.events.fire(SourcesChangedEvent(self, added, removed))
