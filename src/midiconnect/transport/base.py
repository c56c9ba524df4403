"""
The contract between the connection core and the platform MIDI service.

A transport lists the source endpoints currently available, opens and closes the connection to a
source, and delivers the traffic received from each connected source. Every connection is opened with a
correlation handle, which the transport passes back with each delivery so that the receiving side can
tell which endpoint the traffic came from.
"""
from abc import abstractmethod, ABCMeta

from midiconnect.support.events import EventSource
from midiconnect.support.mixins import ValueObject


class Endpoint(ValueObject):
    """ A source endpoint reported by a transport. """
    def __init__(self, unique_id, display_name):
        self.unique_id = unique_id
        self.display_name = display_name

    def __hash__(self):
        return hash((self.unique_id, self.display_name))


class SourcesChangedEvent(ValueObject):
    """
    Fired by a transport when the set of available sources changes.
    :param added: the Endpoints that appeared
    :param removed: the Endpoints that went away
    """
    def __init__(self, transport, added=(), removed=()):
        self.transport = transport
        self.added = list(added)
        self.removed = list(removed)


class Delivery(metaclass=ABCMeta):
    """ Receives the traffic from connected sources. Called on the transport's delivery thread. """

    @abstractmethod
    def receive_bytes(self, handle, data, timestamp=None):
        raise NotImplementedError

    @abstractmethod
    def receive_words(self, handle, words, timestamp=None):
        raise NotImplementedError


class Transport(metaclass=ABCMeta):
    """
    A platform MIDI service. Every operation other than close raises TransportError when the service
    fails or refuses the request. Topology changes are reported by firing a SourcesChangedEvent on the
    events source.
    """

    def __init__(self):
        self.events = EventSource()

    @abstractmethod
    def open(self, client_name, unique_id, delivery: Delivery):
        """
        Registers the client with the service.
        :param client_name: the name the client is known by
        :param unique_id: the id requested for the client's own endpoint
        :param delivery: receives the traffic from connected sources
        :return: the id of the client's own endpoint, which can differ from the one requested
        """
        raise NotImplementedError

    @abstractmethod
    def close(self):
        raise NotImplementedError

    @abstractmethod
    def list_sources(self):
        """ :return: a list of the Endpoints currently available """
        raise NotImplementedError

    @abstractmethod
    def connect(self, unique_id, handle):
        """ Starts delivering traffic from the source, tagged with the handle. """
        raise NotImplementedError

    @abstractmethod
    def disconnect(self, unique_id):
        raise NotImplementedError

    def update(self):
        """ Gives a polling transport the opportunity to look for topology changes. """
