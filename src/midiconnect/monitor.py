class Monitor:
    """
    Observes the connection lifecycle and the traffic seen from each source.
    The methods do nothing by default. should_connect approves every endpoint.

    Monitor methods are called from the thread that causes the notification: the lifecycle and
    connection notifications from the thread calling into the Midi facade, did_see from the transport's
    delivery thread.
    """

    def should_connect(self, unique_id) -> bool:
        """ Determines if a newly discovered endpoint is connected. Return False to veto. """
        return True

    def did_initialize(self, unique_id):
        """ The facade started. unique_id is the id of the client's own endpoint. """

    def will_uninitialize(self):
        pass

    def did_uninitialize(self):
        pass

    def did_create_input_port(self):
        pass

    def will_delete_input_port(self):
        pass

    def will_update_connections(self):
        """ The transport reported a change in the available endpoints. """

    def did_update_connections(self, connected, disappeared):
        """
        A reconciliation changed the connection set.
        :param connected: the Endpoints connected in the pass
        :param disappeared: the unique ids disconnected in the pass
        """

    def did_connect_to(self, unique_id):
        pass

    def did_disconnect_from(self, unique_id):
        pass

    def did_see(self, unique_id, group, channel):
        """ A channel message was seen. group is None for MIDI 1.0 byte input. """
