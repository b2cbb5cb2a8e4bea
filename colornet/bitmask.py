import numpy as np

from colornet.exceptions import BitmaskIndexError

WORD_BITS = 64


def _popcount(words):
    # number of set bits over all words
    return int(np.unpackbits(words.view(np.uint8)).sum())


class PatientBitmask:
    """
    Fixed capacity bit vector over sample indices

    Attributes:
    -----------
    capacity - number of samples the mask can hold, never changes after construction
    words - numpy uint64 array of ceil(capacity / 64) words
    """

    def __init__(self, capacity):
        """
        :param capacity: number of samples (bits) in the mask
        """
        if capacity < 0:
            raise ValueError("Bitmask capacity can not be negative, got {0}".format(capacity))
        self.capacity = capacity
        self.words = np.zeros(-(-capacity // WORD_BITS), dtype=np.uint64)
        self._size = 0

    @classmethod
    def copy_of(cls, other):
        """
        Deep copy of another mask, bits and population count
        :param other: PatientBitmask to copy
        :return: new PatientBitmask
        """
        mask = cls.__new__(cls)
        mask.capacity = other.capacity
        mask.words = other.words.copy()
        mask._size = other._size
        return mask

    @classmethod
    def from_positions(cls, capacity, positions):
        mask = cls(capacity)
        for pos in positions:
            mask.set_bit(pos, True)
        return mask

    def copy(self):
        return PatientBitmask.copy_of(self)

    def _locate(self, pos):
        if pos < 0 or pos >= self.capacity:
            raise BitmaskIndexError(
                "Bit position {0} is out of range for a bitmask of capacity {1}".format(pos, self.capacity))
        return pos // WORD_BITS, np.uint64(1) << np.uint64(pos % WORD_BITS)

    def set_bit(self, pos, value):
        idx, bit = self._locate(pos)
        old = bool(self.words[idx] & bit)
        if old != bool(value):
            self.words[idx] ^= bit
            self._size += 1 if value else -1

    def get_bit(self, pos):
        idx, bit = self._locate(pos)
        return bool(self.words[idx] & bit)

    def get_size(self):
        return self._size

    def __len__(self):
        return self._size

    def get_position_of_first_set_bit(self):
        if self._size == 0:
            raise BitmaskIndexError("Cannot return position of first set bit because bitmask is empty")
        idx = int(np.flatnonzero(self.words)[0])
        word = int(self.words[idx])
        return idx * WORD_BITS + (word & -word).bit_length() - 1

    def positions(self):
        """
        :return: list of set bit positions in ascending order
        """
        bits = np.unpackbits(self.words.astype("<u8").view(np.uint8), bitorder="little")
        return [int(p) for p in np.flatnonzero(bits[:self.capacity])]

    def _check_capacity(self, other):
        if other.capacity != self.capacity:
            raise ValueError("Bitmask capacities differ: {0} and {1}".format(self.capacity, other.capacity))

    def merge_bitmask(self, other):
        """
        In place intersection with another mask of the same capacity
        :param other: PatientBitmask
        """
        self._check_capacity(other)
        np.bitwise_and(self.words, other.words, out=self.words)
        self._size = _popcount(self.words)

    def unite_bitmask(self, other):
        """
        In place union with another mask of the same capacity
        """
        self._check_capacity(other)
        np.bitwise_or(self.words, other.words, out=self.words)
        self._size = _popcount(self.words)

    def subtract_bitmask(self, other):
        """
        In place difference: clears every bit set in other
        """
        self._check_capacity(other)
        np.bitwise_and(self.words, np.invert(other.words), out=self.words)
        self._size = _popcount(self.words)

    def fill(self):
        """
        Sets every bit below capacity
        """
        self.words[:] = np.uint64(0xFFFFFFFFFFFFFFFF)
        tail = self.capacity % WORD_BITS
        if tail and len(self.words):
            self.words[-1] = (np.uint64(1) << np.uint64(tail)) - np.uint64(1)
        self._size = self.capacity

    def __eq__(self, other):
        if not isinstance(other, PatientBitmask):
            return NotImplemented
        return self.capacity == other.capacity and np.array_equal(self.words, other.words)

    def __repr__(self):
        return "PatientBitmask(capacity={0}, size={1}, positions={2})".format(
            self.capacity, self._size, self.positions())
