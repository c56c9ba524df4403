"""

MIDI Connections

- Transport: the platform layer. Lists the source endpoints, opens and closes connections to them
  and delivers the raw buffers received from a connected source.
- Endpoint: a source of MIDI traffic, identified by a stable integer unique id.
- Correlation handle: an integer issued by the ConnectionState when a connection is made. The transport
  passes it back with every delivery, and the handle is resolved back to the unique id of the source.
  Handles are never reused, so a delivery that arrives after a disconnect is recognized and dropped.

- decoders - turn a delivered buffer into events.
    Midi1Decoder for MIDI 1.0 byte packets, UmpDecoder for MIDI 2.0 Universal MIDI Packet words.
- events - the decoded messages, NoteOnEvent, NoteOnV2Event, SongPositionPointerEvent etc. Each event
    is applied to a Receiver, which has a no-op method per event type.
- ConnectionState - keeps track of the endpoints that are connected, their correlation handles, and the
    last group/channel seen in traffic from each endpoint.
- ConnectionReconciler - compares the sources the transport lists against the connected set, connecting
    new sources and disconnecting those that went away. A Monitor is told about the changes and may veto
    a connection.
- Midi - ties it together. Starts and stops the transport, reconciles on start and whenever the
    transport signals a topology change, and routes deliveries to the decoders.


## Threading

Deliveries arrive on the transport's own thread (for mido/rtmidi this is the backend callback thread.)
Decoding is done right there on that thread - parsing does not touch shared state, apart from recording
the group/channel seen from the source.

All writes to the ConnectionState go through a single lock. The reconciler holds the lock for the whole
pass (snapshot, diff, connect/disconnect) so a pass is atomic with respect to telemetry written by the
decoders. Telemetry recorded while decoding a delivery is only written if the delivery's handle is still
live, so a late delivery can't bring back the state of a disconnected source.

Topology change notifications can also come from the transport thread. These are queued and the
reconciliation runs when the application calls Midi.update() from its own thread.

"""
