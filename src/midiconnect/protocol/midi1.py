"""
Decodes MIDI 1.0 byte packets into events.

A packet holds one or more complete messages. Each message is a status byte followed by a fixed number
of data bytes. Running status is not supported: every message must start with a status byte.
"""
import logging

from midiconnect.events import NoteOffEvent, NoteOnEvent, PolyphonicKeyPressureEvent, ControlChangeEvent, \
    ProgramChangeEvent, ChannelPressureEvent, PitchBendChangeEvent, TimeCodeQuarterFrameEvent, \
    SongPositionPointerEvent, SongSelectEvent, TuneRequestEvent, TimingClockEvent, StartCurrentSequenceEvent, \
    ContinueCurrentSequenceEvent, StopCurrentSequenceEvent, ActiveSensingEvent, SystemResetEvent, \
    ACCEPT_NONE, accepts
from midiconnect.monitor import Monitor
from midiconnect.protocol.words import midi1_word

logger = logging.getLogger(__name__)

MAX_PACKET_SIZE = 64


class Status:
    """The MIDI 1.0 status values. Channel messages are given without the channel nibble."""

    note_off = 0x80
    note_on = 0x90
    polyphonic_key_pressure = 0xA0
    control_change = 0xB0
    program_change = 0xC0
    channel_pressure = 0xD0
    pitch_bend_change = 0xE0
    system_exclusive = 0xF0
    time_code_quarter_frame = 0xF1
    song_position_pointer = 0xF2
    song_select = 0xF3
    tune_request = 0xF6
    timing_clock = 0xF8
    start_current_sequence = 0xFA
    continue_current_sequence = 0xFB
    stop_current_sequence = 0xFC
    active_sensing = 0xFE
    reset = 0xFF


# the number of data bytes following each status. System exclusive content is not decoded, so it
# claims the rest of the largest possible packet.
payload_sizes = {
    Status.note_off: 2,
    Status.note_on: 2,
    Status.polyphonic_key_pressure: 2,
    Status.control_change: 2,
    Status.program_change: 1,
    Status.channel_pressure: 1,
    Status.pitch_bend_change: 2,
    Status.system_exclusive: MAX_PACKET_SIZE - 1,
    Status.time_code_quarter_frame: 1,
    Status.song_position_pointer: 2,
    Status.song_select: 1,
    Status.tune_request: 0,
    Status.timing_clock: 0,
    Status.start_current_sequence: 0,
    Status.continue_current_sequence: 0,
    Status.stop_current_sequence: 0,
    Status.active_sensing: 0,
    Status.reset: 0,
}


def status_of(b):
    """ Classifies a status byte. Bytes from 0xF0 use the whole byte, others just the high nibble.

    >>> hex(status_of(0x91)), hex(status_of(0xF8))
    ('0x90', '0xf8')
    """
    return b if b >= 0xF0 else b & 0xF0


def has_channel(status):
    return status < Status.system_exclusive


class Midi1Decoder:
    """
    Decodes MIDI 1.0 byte packets. The decoder holds no state between packets and may be shared
    between sources.
    """

    def __init__(self, monitor: Monitor=None):
        self.monitor = monitor or Monitor()

    def decode(self, source, data, receiver, state, timestamp=None):
        """
        Decodes the messages in a packet and applies them to the receiver.
        :param source: the unique id of the endpoint that sent the packet
        :param data: the packet bytes. Not modified.
        :param receiver: the Receiver the events are applied to, or None to only record telemetry.
        :param state: records the channel of each channel message, via observe(source, channel=)
        :param timestamp: the delivery timestamp stored on each event
        :return: the number of events applied to the receiver
        """
        size = len(data)
        if size == 0 or size > MAX_PACKET_SIZE:
            logger.error("suspect packet size %d from %s" % (size, source))
            return 0
        debug = logger.isEnabledFor(logging.DEBUG)
        if debug:
            logger.debug("packet - %d bytes from %s" % (size, source))

        receiver_channel = receiver.channel if receiver is not None else ACCEPT_NONE
        applied = 0
        index = 0
        while index < size:
            status_byte = data[index]
            index += 1
            status = status_of(status_byte)
            needed = payload_sizes.get(status)
            if needed is None:
                # without a length the rest of the packet cannot be framed
                if debug:
                    logger.debug("unknown status 0x%02x from %s, ignoring rest of packet" % (status_byte, source))
                return applied

            accepted = True
            channel = None
            if has_channel(status):
                channel = status_byte & 0x0F
                state.observe(source, channel=channel)
                self.monitor.did_see(source, None, channel)
                accepted = accepts(receiver_channel, channel)

            if index + needed > size:
                if debug:
                    logger.debug("incomplete message 0x%02x from %s" % (status_byte, source))
                return applied

            if accepted and receiver is not None:
                event = self._event(status, channel, source, data, index, timestamp)
                if event is not None:
                    event.apply(receiver)
                    applied += 1
            index += needed
        return applied

    @staticmethod
    def _event(status, channel, source, data, index, timestamp):
        def byte0():
            return data[index]

        def byte1():
            return data[index + 1]

        if status == Status.note_off:
            return NoteOffEvent(source, byte0(), byte1(), channel, timestamp=timestamp)
        if status == Status.note_on:
            return NoteOnEvent(source, byte0(), byte1(), channel, timestamp=timestamp)
        if status == Status.polyphonic_key_pressure:
            return PolyphonicKeyPressureEvent(source, byte0(), byte1(), channel, timestamp=timestamp)
        if status == Status.control_change:
            return ControlChangeEvent(source, byte0(), byte1(), channel, timestamp=timestamp)
        if status == Status.program_change:
            return ProgramChangeEvent(source, byte0(), channel, timestamp=timestamp)
        if status == Status.channel_pressure:
            return ChannelPressureEvent(source, byte0(), channel, timestamp=timestamp)
        if status == Status.pitch_bend_change:
            return PitchBendChangeEvent(source, midi1_word(byte1(), byte0()), channel, timestamp=timestamp)
        if status == Status.time_code_quarter_frame:
            return TimeCodeQuarterFrameEvent(source, byte0(), timestamp=timestamp)
        if status == Status.song_position_pointer:
            return SongPositionPointerEvent(source, midi1_word(byte1(), byte0()), timestamp=timestamp)
        if status == Status.song_select:
            return SongSelectEvent(source, byte0(), timestamp=timestamp)
        return simple_events.get(status, _no_event)(source, timestamp=timestamp)


def _no_event(source, timestamp=None):
    return None


# the messages without data, system exclusive is never decoded
simple_events = {
    Status.tune_request: TuneRequestEvent,
    Status.timing_clock: TimingClockEvent,
    Status.start_current_sequence: StartCurrentSequenceEvent,
    Status.continue_current_sequence: ContinueCurrentSequenceEvent,
    Status.stop_current_sequence: StopCurrentSequenceEvent,
    Status.active_sensing: ActiveSensingEvent,
    Status.reset: SystemResetEvent,
}
