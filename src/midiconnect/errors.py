class MidiConnectError(Exception):
    """ Base class for the errors raised by this package. """


class TransportError(MidiConnectError):
    """
    Raised by a transport when a connection to an endpoint cannot be opened or closed.
    The reconciler catches and logs these, leaving the endpoint's connection state as it was.
    """
