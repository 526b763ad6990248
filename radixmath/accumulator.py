#
# Right shifts of non-negative integers by radix digits, tracking what was discarded
#

from math import log2


__all__ = ('ShiftAccumulator', 'digit_length')


def digit_length(value, radix):
    '''Return the number of radix digits in value, which must be non-negative.  Zero has one
    digit.'''
    if value == 0:
        return 1
    if radix & (radix - 1) == 0:
        bits_per_digit = radix.bit_length() - 1
        return (value.bit_length() + bits_per_digit - 1) // bits_per_digit
    # Start from an underestimate; the float error is far smaller than the slack
    count = max(0, int((value.bit_length() - 1) / log2(radix)) - 1)
    power = radix ** count
    while power <= value:
        power *= radix
        count += 1
    return count


class ShiftAccumulator:
    '''Shifts a magnitude right by whole radix digits.  Records the last digit discarded and
    whether any digit discarded before it was non-zero, the two quantities every rounding
    decision needs.

    An accumulator can be seeded with the discarded-digit state of an earlier step, so a
    composed operation rounds as if all the discarded digits had been shifted out here.
    '''

    __slots__ = ('radix', 'shifted_int', 'last_discarded', 'older_discarded',
                 'discarded_count', '_digit_length')

    def __init__(self, radix, value, last_discarded=0, older_discarded=0):
        if value < 0:
            raise ValueError('value cannot be negative')
        self.radix = radix
        self.shifted_int = value
        self.last_discarded = last_discarded
        self.older_discarded = 1 if older_discarded else 0
        self.discarded_count = 0
        self._digit_length = None

    @property
    def digit_length(self):
        '''The number of digits in the shifted value.'''
        if self._digit_length is None:
            self._digit_length = digit_length(self.shifted_int, self.radix)
        return self._digit_length

    def is_exact(self):
        '''Return True if every discarded digit was zero.'''
        return not (self.last_discarded or self.older_discarded)

    def shift_right(self, digits):
        '''Discard the given number of low digits.  Does nothing if digits is not positive.'''
        if digits <= 0:
            return
        value = self.shifted_int
        length = self.digit_length
        self.discarded_count += digits
        self._digit_length = max(1, length - digits)
        # Everything beyond the value's own digits is a leading zero
        digits = min(digits, length + 1)
        if self.radix == 2:
            older = value & ((1 << (digits - 1)) - 1)
            value >>= digits - 1
            last = value & 1
            value >>= 1
        else:
            value, older = divmod(value, self.radix ** (digits - 1))
            value, last = divmod(value, self.radix)
        if older or self.last_discarded:
            self.older_discarded = 1
        self.last_discarded = last
        self.shifted_int = value

    def shift_to_digits(self, digits):
        '''Shift right until at most the given number of digits remain.'''
        if self.digit_length > digits:
            self.shift_right(self.digit_length - digits)

    def __repr__(self):
        return (f'<ShiftAccumulator radix={self.radix} shifted_int={self.shifted_int} '
                f'last_discarded={self.last_discarded} '
                f'older_discarded={self.older_discarded} '
                f'discarded_count={self.discarded_count}>')
