"""
Decodes Universal MIDI Packet (UMP) words into events.

Each message begins with a word whose high nibble gives the message type, and the type determines how
many 32-bit words the message takes. MIDI 1.0 channel voice messages carried in UMP decode to the same
events as MIDI 1.0 bytes, with the group added. MIDI 2.0 channel voice messages decode to the v2 events.
"""
import logging

from midiconnect.events import NoteOffEvent, NoteOnEvent, PolyphonicKeyPressureEvent, ControlChangeEvent, \
    ProgramChangeEvent, ChannelPressureEvent, PitchBendChangeEvent, NoteOffV2Event, NoteOnV2Event, \
    PolyphonicKeyPressureV2Event, ControlChangeV2Event, ProgramChangeV2Event, ChannelPressureV2Event, \
    PitchBendChangeV2Event, PerNotePitchBendChangeEvent, RegisteredPerNoteControllerChangeEvent, \
    AssignablePerNoteControllerChangeEvent, RegisteredControllerChangeEvent, AssignableControllerChangeEvent, \
    RelativeRegisteredControllerChangeEvent, RelativeAssignableControllerChangeEvent, PerNoteManagementEvent, \
    TimeCodeQuarterFrameEvent, SongPositionPointerEvent, SongSelectEvent, TuneRequestEvent, TimingClockEvent, \
    StartCurrentSequenceEvent, ContinueCurrentSequenceEvent, StopCurrentSequenceEvent, ActiveSensingEvent, \
    SystemResetEvent, ACCEPT_NONE, accepts
from midiconnect.monitor import Monitor
from midiconnect.protocol.words import b0, b1, b2, b3, s0, s1, high_nibble, low_nibble, bit, midi1_word, signed32

logger = logging.getLogger(__name__)


class MessageType:
    utility = 0
    system = 1
    midi1_channel_voice = 2
    data64 = 3
    midi2_channel_voice = 4
    data128 = 5


word_counts = {
    MessageType.utility: 1,
    MessageType.system: 1,
    MessageType.midi1_channel_voice: 1,
    MessageType.data64: 2,
    MessageType.midi2_channel_voice: 2,
    MessageType.data128: 4,
}

skipped_types = {
    MessageType.utility: "utility",
    MessageType.data64: "data64bit",
    MessageType.data128: "data128bit",
}


class ChannelVoice:
    """ The channel voice opcodes, bits 23-20 of the first word. """
    registered_per_note_controller_change = 0x0
    assignable_per_note_controller_change = 0x1
    registered_controller_change = 0x2
    assignable_controller_change = 0x3
    relative_registered_controller_change = 0x4
    relative_assignable_controller_change = 0x5
    per_note_pitch_bend_change = 0x6
    note_off = 0x8
    note_on = 0x9
    polyphonic_key_pressure = 0xA
    control_change = 0xB
    program_change = 0xC
    channel_pressure = 0xD
    pitch_bend_change = 0xE
    per_note_management = 0xF


def _system(word0, group, source, timestamp):
    status = b1(word0)
    factory = system_events.get(status)
    if factory is None:
        logger.error("invalid system message 0x%08x from %s" % (word0, source))
        return None
    return factory(word0, source, group, timestamp)


system_events = {
    0xF1: lambda w, src, g, ts: TimeCodeQuarterFrameEvent(src, b2(w), group=g, timestamp=ts),
    0xF2: lambda w, src, g, ts: SongPositionPointerEvent(src, midi1_word(b3(w), b2(w)), group=g, timestamp=ts),
    0xF3: lambda w, src, g, ts: SongSelectEvent(src, b2(w), group=g, timestamp=ts),
    0xF6: lambda w, src, g, ts: TuneRequestEvent(src, group=g, timestamp=ts),
    0xF8: lambda w, src, g, ts: TimingClockEvent(src, group=g, timestamp=ts),
    0xFA: lambda w, src, g, ts: StartCurrentSequenceEvent(src, group=g, timestamp=ts),
    0xFB: lambda w, src, g, ts: ContinueCurrentSequenceEvent(src, group=g, timestamp=ts),
    0xFC: lambda w, src, g, ts: StopCurrentSequenceEvent(src, group=g, timestamp=ts),
    0xFE: lambda w, src, g, ts: ActiveSensingEvent(src, group=g, timestamp=ts),
    0xFF: lambda w, src, g, ts: SystemResetEvent(src, group=g, timestamp=ts),
}


def _midi1_channel_voice(opcode, word0, source, group, channel, timestamp):
    data1, data2 = b2(word0), b3(word0)
    args = dict(channel=channel, group=group, timestamp=timestamp)
    if opcode == ChannelVoice.note_off:
        return NoteOffEvent(source, data1, data2, **args)
    if opcode == ChannelVoice.note_on:
        return NoteOnEvent(source, data1, data2, **args)
    if opcode == ChannelVoice.polyphonic_key_pressure:
        return PolyphonicKeyPressureEvent(source, data1, data2, **args)
    if opcode == ChannelVoice.control_change:
        return ControlChangeEvent(source, data1, data2, **args)
    if opcode == ChannelVoice.program_change:
        return ProgramChangeEvent(source, data1, **args)
    if opcode == ChannelVoice.channel_pressure:
        return ChannelPressureEvent(source, data1, **args)
    if opcode == ChannelVoice.pitch_bend_change:
        return PitchBendChangeEvent(source, midi1_word(data2, data1), **args)
    logger.error("invalid MIDI 1.0 channel voice message 0x%08x from %s" % (word0, source))
    return None


def _midi2_channel_voice(opcode, word0, word1, source, group, channel, timestamp):
    note = b2(word0)
    args = dict(channel=channel, group=group, timestamp=timestamp)
    if opcode == ChannelVoice.registered_per_note_controller_change:
        return RegisteredPerNoteControllerChangeEvent(source, note, b3(word0), word1, **args)
    if opcode == ChannelVoice.assignable_per_note_controller_change:
        return AssignablePerNoteControllerChangeEvent(source, note, b3(word0), word1, **args)
    if opcode == ChannelVoice.registered_controller_change:
        return RegisteredControllerChangeEvent(source, s1(word0), word1, **args)
    if opcode == ChannelVoice.assignable_controller_change:
        return AssignableControllerChangeEvent(source, s1(word0), word1, **args)
    if opcode == ChannelVoice.relative_registered_controller_change:
        return RelativeRegisteredControllerChangeEvent(source, s1(word0), signed32(word1), **args)
    if opcode == ChannelVoice.relative_assignable_controller_change:
        return RelativeAssignableControllerChangeEvent(source, s1(word0), signed32(word1), **args)
    if opcode == ChannelVoice.per_note_pitch_bend_change:
        return PerNotePitchBendChangeEvent(source, note, word1, **args)
    if opcode == ChannelVoice.note_off:
        return NoteOffV2Event(source, note, s0(word1), b3(word0), s1(word1), **args)
    if opcode == ChannelVoice.note_on:
        return NoteOnV2Event(source, note, s0(word1), b3(word0), s1(word1), **args)
    if opcode == ChannelVoice.polyphonic_key_pressure:
        return PolyphonicKeyPressureV2Event(source, note, word1, **args)
    if opcode == ChannelVoice.control_change:
        return ControlChangeV2Event(source, note, word1, **args)
    if opcode == ChannelVoice.program_change:
        if bit(b3(word0), 0):
            return ProgramChangeV2Event(source, b0(word1), s1(word1), **args)
        return ProgramChangeEvent(source, b0(word1), **args)
    if opcode == ChannelVoice.channel_pressure:
        return ChannelPressureV2Event(source, word1, **args)
    if opcode == ChannelVoice.pitch_bend_change:
        return PitchBendChangeV2Event(source, word1, **args)
    if opcode == ChannelVoice.per_note_management:
        flags = b3(word0)
        return PerNoteManagementEvent(source, note, bit(flags, 1), bit(flags, 0), **args)
    logger.error("invalid MIDI 2.0 channel voice message 0x%08x from %s" % (word0, source))
    return None


class UmpDecoder:
    """
    Decodes sequences of Universal MIDI Packet words. Like the MIDI 1.0 decoder, it holds no state
    between calls.
    """

    def __init__(self, monitor: Monitor=None):
        self.monitor = monitor or Monitor()

    def decode(self, source, words, receiver, state, timestamp=None):
        """
        Decodes the messages in a sequence of words and applies them to the receiver.
        Channel voice messages record their group and channel in the state and are filtered
        by the receiver's group and channel. System messages are never filtered.
        :return: the number of events applied to the receiver
        """
        receiver_channel = receiver.channel if receiver is not None else ACCEPT_NONE
        receiver_group = receiver.group if receiver is not None else ACCEPT_NONE
        debug = logger.isEnabledFor(logging.DEBUG)
        applied = 0
        index = 0
        count = len(words)
        while index < count:
            word0 = words[index]
            message_type = high_nibble(b0(word0))
            size = word_counts.get(message_type)
            if size is None:
                logger.error("invalid message type %d in word 0x%08x from %s" % (message_type, word0, source))
                return applied
            if index + size > count:
                if debug:
                    logger.debug("truncated message 0x%08x from %s, needs %d words" % (word0, source, size))
                return applied

            group = low_nibble(b0(word0))
            event = None
            if message_type in skipped_types:
                if debug:
                    logger.debug("skipping %s message from %s" % (skipped_types[message_type], source))
            elif message_type == MessageType.system:
                if receiver is not None:
                    event = _system(word0, group, source, timestamp)
            else:
                channel = low_nibble(b1(word0))
                state.observe(source, group=group, channel=channel)
                self.monitor.did_see(source, group, channel)
                if receiver is not None and accepts(receiver_group, group) and accepts(receiver_channel, channel):
                    opcode = high_nibble(b1(word0))
                    if message_type == MessageType.midi1_channel_voice:
                        event = _midi1_channel_voice(opcode, word0, source, group, channel, timestamp)
                    else:
                        event = _midi2_channel_voice(opcode, word0, words[index + 1], source, group, channel,
                                                     timestamp)
            if event is not None:
                event.apply(receiver)
                applied += 1
            index += size
        return applied
