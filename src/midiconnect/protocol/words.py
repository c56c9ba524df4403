"""
Bit field extraction for MIDI 1.0 bytes and Universal MIDI Packet words.
Byte 0 is the most significant byte of a 32-bit word, short 0 the most significant 16 bits.
"""


def b0(word):
    """
    >>> hex(b0(0x12345678))
    '0x12'
    """
    return (word >> 24) & 0xFF


def b1(word):
    """
    >>> hex(b1(0x12345678))
    '0x34'
    """
    return (word >> 16) & 0xFF


def b2(word):
    """
    >>> hex(b2(0x12345678))
    '0x56'
    """
    return (word >> 8) & 0xFF


def b3(word):
    """
    >>> hex(b3(0x12345678))
    '0x78'
    """
    return word & 0xFF


def s0(word):
    """The most significant short of a word.

    >>> hex(s0(0x12345678))
    '0x1234'
    """
    return (word >> 16) & 0xFFFF


def s1(word):
    """The least significant short of a word.

    >>> hex(s1(0x12345678))
    '0x5678'
    """
    return word & 0xFFFF


def high_nibble(b):
    """
    >>> high_nibble(0xA5)
    10
    """
    return (b >> 4) & 0x0F


def low_nibble(b):
    """
    >>> low_nibble(0xA5)
    5
    """
    return b & 0x0F


def bit(b, index):
    """Test a single bit of a byte, bit 0 being the least significant.

    >>> bit(0x32, 1), bit(0x32, 0)
    (True, False)
    """
    return (b & (1 << index)) != 0


def midi1_word(msb, lsb):
    """Combine two 7-bit values into the 14-bit value used by pitch bend and song position.

    >>> midi1_word(34, 12)
    4364
    >>> midi1_word(0x7F, 0x7F)
    16383
    """
    return (msb << 7) | lsb


def signed32(word):
    """Reinterpret an unsigned 32-bit word as a two's complement value.

    >>> signed32(0x00000007)
    7
    >>> signed32(0xFF123407)
    -15584249
    >>> signed32(0xFFFFFFFF)
    -1
    """
    word &= 0xFFFFFFFF
    return word - 0x100000000 if word & 0x80000000 else word
