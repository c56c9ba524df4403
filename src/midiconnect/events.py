"""
The events decoded from MIDI traffic.

Every event records the unique id of the endpoint that sent it, and the timestamp the buffer was
delivered with. Channel voice events also carry the channel and, when decoded from a Universal MIDI
Packet, the group. Events decoded from MIDI 1.0 bytes have no group (None).

Events are applied to a Receiver, a visitor with one method per event type. The v1 and v2 forms of a
message are separate event types, so a receiver can tell 7-bit values from the 16 and 32-bit ones.
"""
from abc import abstractmethod

from midiconnect.support.mixins import ValueObject

# channel and group filter values
ACCEPT_ALL = -1
ACCEPT_NONE = -2


def accepts(selector, value):
    """ Determines if a channel or group filter accepts the given value.

    >>> accepts(ACCEPT_ALL, 3), accepts(3, 3), accepts(2, 3), accepts(ACCEPT_NONE, 3)
    (True, True, False, False)
    """
    return selector == ACCEPT_ALL or selector == value


class MidiEvent(ValueObject):
    """
    The base event class for all decoded events.
    """
    def __init__(self, source, group=None, timestamp=None):
        self.source = source
        self.group = group
        self.timestamp = timestamp

    @abstractmethod
    def apply(self, visitor: 'Receiver'):
        raise NotImplementedError()


class ChannelEvent(MidiEvent):
    """
    An event addressed to a channel.
    """
    def __init__(self, source, channel, group=None, timestamp=None):
        super().__init__(source, group, timestamp)
        self.channel = channel


class NoteEvent(ChannelEvent):
    def __init__(self, source, note, velocity, channel, group=None, timestamp=None):
        super().__init__(source, channel, group, timestamp)
        self.note = note
        self.velocity = velocity


class NoteOffEvent(NoteEvent):
    """ Stop playing a note. (MIDI v1) """

    def apply(self, visitor: 'Receiver'):
        return visitor.note_off(self)


class NoteOnEvent(NoteEvent):
    """ Start playing a note. (MIDI v1) A velocity of 0 is not turned into a note off. """

    def apply(self, visitor: 'Receiver'):
        return visitor.note_on(self)


class NoteV2Event(NoteEvent):
    """
    A note event with a 16-bit velocity and an optional attribute.
    :param: attribute_type  the kind of attribute, 0 when there is none
    :param: attribute_data  the 16-bit attribute value
    """
    def __init__(self, source, note, velocity, attribute_type, attribute_data, channel, group=None,
                 timestamp=None):
        super().__init__(source, note, velocity, channel, group, timestamp)
        self.attribute_type = attribute_type
        self.attribute_data = attribute_data


class NoteOffV2Event(NoteV2Event):
    def apply(self, visitor: 'Receiver'):
        return visitor.note_off_v2(self)


class NoteOnV2Event(NoteV2Event):
    def apply(self, visitor: 'Receiver'):
        return visitor.note_on_v2(self)


class PolyphonicKeyPressureEvent(ChannelEvent):
    """ Updates the pressure of a playing note. The V2 form has a 32-bit pressure. """
    def __init__(self, source, note, pressure, channel, group=None, timestamp=None):
        super().__init__(source, channel, group, timestamp)
        self.note = note
        self.pressure = pressure

    def apply(self, visitor: 'Receiver'):
        return visitor.polyphonic_key_pressure(self)


class PolyphonicKeyPressureV2Event(PolyphonicKeyPressureEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.polyphonic_key_pressure_v2(self)


class ControlChangeEvent(ChannelEvent):
    def __init__(self, source, controller, value, channel, group=None, timestamp=None):
        super().__init__(source, channel, group, timestamp)
        self.controller = controller
        self.value = value

    def apply(self, visitor: 'Receiver'):
        return visitor.control_change(self)


class ControlChangeV2Event(ControlChangeEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.control_change_v2(self)


class ProgramChangeEvent(ChannelEvent):
    """
    Change of program (preset.) Also produced for a MIDI v2 program change that does not
    carry a valid bank.
    """
    def __init__(self, source, program, channel, group=None, timestamp=None):
        super().__init__(source, channel, group, timestamp)
        self.program = program

    def apply(self, visitor: 'Receiver'):
        return visitor.program_change(self)


class ProgramChangeV2Event(ProgramChangeEvent):
    """ Change of program and bank. (MIDI v2) """
    def __init__(self, source, program, bank, channel, group=None, timestamp=None):
        super().__init__(source, program, channel, group, timestamp)
        self.bank = bank

    def apply(self, visitor: 'Receiver'):
        return visitor.program_change_v2(self)


class ChannelPressureEvent(ChannelEvent):
    def __init__(self, source, pressure, channel, group=None, timestamp=None):
        super().__init__(source, channel, group, timestamp)
        self.pressure = pressure

    def apply(self, visitor: 'Receiver'):
        return visitor.channel_pressure(self)


class ChannelPressureV2Event(ChannelPressureEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.channel_pressure_v2(self)


class PitchBendChangeEvent(ChannelEvent):
    """ Channel-wide pitch bend. 14 bits for v1, 32 bits for v2. """
    def __init__(self, source, value, channel, group=None, timestamp=None):
        super().__init__(source, channel, group, timestamp)
        self.value = value

    def apply(self, visitor: 'Receiver'):
        return visitor.pitch_bend_change(self)


class PitchBendChangeV2Event(PitchBendChangeEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.pitch_bend_change_v2(self)


class PerNotePitchBendChangeEvent(ChannelEvent):
    def __init__(self, source, note, value, channel, group=None, timestamp=None):
        super().__init__(source, channel, group, timestamp)
        self.note = note
        self.value = value

    def apply(self, visitor: 'Receiver'):
        return visitor.per_note_pitch_bend_change(self)


class PerNoteControllerChangeEvent(ChannelEvent):
    def __init__(self, source, note, controller, value, channel, group=None, timestamp=None):
        super().__init__(source, channel, group, timestamp)
        self.note = note
        self.controller = controller
        self.value = value


class RegisteredPerNoteControllerChangeEvent(PerNoteControllerChangeEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.registered_per_note_controller_change(self)


class AssignablePerNoteControllerChangeEvent(PerNoteControllerChangeEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.assignable_per_note_controller_change(self)


class ControllerChangeEvent(ChannelEvent):
    """
    A registered (RPN) or assignable (NRPN) controller change. The controller is the 16-bit
    combination of bank and index. Relative changes carry a signed 32-bit delta.
    """
    def __init__(self, source, controller, value, channel, group=None, timestamp=None):
        super().__init__(source, channel, group, timestamp)
        self.controller = controller
        self.value = value


class RegisteredControllerChangeEvent(ControllerChangeEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.registered_controller_change(self)


class AssignableControllerChangeEvent(ControllerChangeEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.assignable_controller_change(self)


class RelativeRegisteredControllerChangeEvent(ControllerChangeEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.relative_registered_controller_change(self)


class RelativeAssignableControllerChangeEvent(ControllerChangeEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.relative_assignable_controller_change(self)


class PerNoteManagementEvent(ChannelEvent):
    def __init__(self, source, note, detach, reset, channel, group=None, timestamp=None):
        super().__init__(source, channel, group, timestamp)
        self.note = note
        self.detach = detach
        self.reset = reset

    def apply(self, visitor: 'Receiver'):
        return visitor.per_note_management(self)


class SystemEvent(MidiEvent):
    """ System common and real-time events. These are never filtered by channel or group. """


class SystemValueEvent(SystemEvent):
    def __init__(self, source, value, group=None, timestamp=None):
        super().__init__(source, group, timestamp)
        self.value = value


class TimeCodeQuarterFrameEvent(SystemValueEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.time_code_quarter_frame(self)


class SongPositionPointerEvent(SystemValueEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.song_position_pointer(self)


class SongSelectEvent(SystemValueEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.song_select(self)


class TuneRequestEvent(SystemEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.tune_request(self)


class TimingClockEvent(SystemEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.timing_clock(self)


class StartCurrentSequenceEvent(SystemEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.start_current_sequence(self)


class ContinueCurrentSequenceEvent(SystemEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.continue_current_sequence(self)


class StopCurrentSequenceEvent(SystemEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.stop_current_sequence(self)


class ActiveSensingEvent(SystemEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.active_sensing(self)


class SystemResetEvent(SystemEvent):
    def apply(self, visitor: 'Receiver'):
        return visitor.system_reset(self)


class Receiver:
    """
    Processes the decoded events. Every method has a default implementation that does nothing, so a
    receiver only overrides the events it is interested in.

    The channel and group attributes filter channel voice messages before they are decoded.
    ACCEPT_ALL (-1) receives from every channel (group), ACCEPT_NONE (-2) from none, otherwise
    only the given channel (group) 0-15 is received. The group is only used for Universal MIDI Packets.
    """
    channel = ACCEPT_ALL
    group = ACCEPT_ALL

    def receive(self, event: MidiEvent):
        """ applies the event to this receiver. """
        return event.apply(self)

    def note_off(self, event: NoteOffEvent):
        """ Stop playing a note. """

    def note_on(self, event: NoteOnEvent):
        """ Start playing a note. """

    def polyphonic_key_pressure(self, event: PolyphonicKeyPressureEvent):
        pass

    def control_change(self, event: ControlChangeEvent):
        pass

    def program_change(self, event: ProgramChangeEvent):
        """
        Change the program. Received for MIDI v1, and for MIDI v2 when the message has no valid bank.
        """

    def channel_pressure(self, event: ChannelPressureEvent):
        pass

    def pitch_bend_change(self, event: PitchBendChangeEvent):
        pass

    def note_off_v2(self, event: NoteOffV2Event):
        pass

    def note_on_v2(self, event: NoteOnV2Event):
        """
        Start playing a note. Unlike the v1 form, a velocity of 0 does not mean note off.
        """

    def polyphonic_key_pressure_v2(self, event: PolyphonicKeyPressureV2Event):
        pass

    def control_change_v2(self, event: ControlChangeV2Event):
        pass

    def program_change_v2(self, event: ProgramChangeV2Event):
        pass

    def channel_pressure_v2(self, event: ChannelPressureV2Event):
        pass

    def pitch_bend_change_v2(self, event: PitchBendChangeV2Event):
        pass

    def per_note_pitch_bend_change(self, event: PerNotePitchBendChangeEvent):
        pass

    def registered_per_note_controller_change(self, event: RegisteredPerNoteControllerChangeEvent):
        pass

    def assignable_per_note_controller_change(self, event: AssignablePerNoteControllerChangeEvent):
        pass

    def registered_controller_change(self, event: RegisteredControllerChangeEvent):
        pass

    def assignable_controller_change(self, event: AssignableControllerChangeEvent):
        pass

    def relative_registered_controller_change(self, event: RelativeRegisteredControllerChangeEvent):
        pass

    def relative_assignable_controller_change(self, event: RelativeAssignableControllerChangeEvent):
        pass

    def per_note_management(self, event: PerNoteManagementEvent):
        pass

    def time_code_quarter_frame(self, event: TimeCodeQuarterFrameEvent):
        pass

    def song_position_pointer(self, event: SongPositionPointerEvent):
        pass

    def song_select(self, event: SongSelectEvent):
        pass

    def tune_request(self, event: TuneRequestEvent):
        pass

    def timing_clock(self, event: TimingClockEvent):
        pass

    def start_current_sequence(self, event: StartCurrentSequenceEvent):
        pass

    def continue_current_sequence(self, event: ContinueCurrentSequenceEvent):
        pass

    def stop_current_sequence(self, event: StopCurrentSequenceEvent):
        pass

    def active_sensing(self, event: ActiveSensingEvent):
        pass

    def system_reset(self, event: SystemResetEvent):
        """ Resets the receiver. The default releases any playing notes. """
        self.all_notes_off()

    def all_notes_off(self):
        """ Release any notes that are playing. """


class EventForwarder(Receiver):
    """
    A receiver that passes every event to a single handler.

    >>> received = []
    >>> TimingClockEvent(1).apply(EventForwarder(received.append))
    >>> received
    [TimingClockEvent:{'group': None, 'source': '1', 'timestamp': None}]
    """
    def __init__(self, handler, channel=ACCEPT_ALL, group=ACCEPT_ALL):
        self.handler = handler
        self.channel = channel
        self.group = group

    def _forward(self, event):
        self.handler(event)

    note_off = note_on = polyphonic_key_pressure = control_change = program_change = _forward
    channel_pressure = pitch_bend_change = _forward
    note_off_v2 = note_on_v2 = polyphonic_key_pressure_v2 = control_change_v2 = program_change_v2 = _forward
    channel_pressure_v2 = pitch_bend_change_v2 = per_note_pitch_bend_change = _forward
    registered_per_note_controller_change = assignable_per_note_controller_change = _forward
    registered_controller_change = assignable_controller_change = _forward
    relative_registered_controller_change = relative_assignable_controller_change = _forward
    per_note_management = _forward
    time_code_quarter_frame = song_position_pointer = song_select = tune_request = timing_clock = _forward
    start_current_sequence = continue_current_sequence = stop_current_sequence = _forward
    active_sensing = system_reset = _forward
