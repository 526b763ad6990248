#
# Number values and the helpers through which RadixMath sees them
#

from collections import namedtuple
from enum import IntEnum, IntFlag
from math import gcd

from .accumulator import ShiftAccumulator
from .errors import FiniteOnlyError


__all__ = ('NumberFlags', 'ArithmeticSupport', 'RadixNumber', 'NumericHelper',
           'RadixNumberHelper', 'DecimalHelper', 'BinaryHelper')


# Sign and kind of a number value.  The mantissa of a NaN is its diagnostic payload.
class NumberFlags(IntFlag):
    NEGATIVE      = 0x01
    INFINITY      = 0x02
    QUIET_NAN     = 0x04
    SIGNALING_NAN = 0x08
    SPECIAL       = INFINITY | QUIET_NAN | SIGNALING_NAN
    NAN           = QUIET_NAN | SIGNALING_NAN


class ArithmeticSupport(IntEnum):
    EXTENDED_FLOAT = 0   # Infinities and NaNs are values
    FINITE_ONLY = 1      # Conditions producing infinities or NaNs raise FiniteOnlyError


class RadixNumber(namedtuple('RadixNumber', 'mantissa exponent flags')):
    '''A number (-1)^sign * mantissa * radix^exponent, or an infinity or NaN.  The sign is
    the NEGATIVE bit of flags; the mantissa is never negative.  The radix is a property of
    the helper, not of the value.'''

    def __new__(cls, mantissa, exponent=0, flags=0):
        if mantissa < 0:
            raise ValueError('mantissa cannot be negative')
        return super().__new__(cls, mantissa, exponent, NumberFlags(flags))

    @classmethod
    def from_int(cls, value):
        return cls(abs(value), 0, NumberFlags.NEGATIVE if value < 0 else 0)

    @property
    def sign(self):
        return bool(self.flags & NumberFlags.NEGATIVE)

    def is_finite(self):
        return not self.flags & NumberFlags.SPECIAL

    def is_infinite(self):
        return bool(self.flags & NumberFlags.INFINITY)

    def is_nan(self):
        return bool(self.flags & NumberFlags.NAN)

    def is_signaling(self):
        return bool(self.flags & NumberFlags.SIGNALING_NAN)

    def is_zero(self):
        return self.is_finite() and self.mantissa == 0

    def __repr__(self):
        sign = '-' if self.sign else ''
        if self.flags & NumberFlags.INFINITY:
            return f'RadixNumber({sign}Infinity)'
        if self.flags & NumberFlags.NAN:
            kind = 'sNaN' if self.flags & NumberFlags.SIGNALING_NAN else 'NaN'
            payload = self.mantissa or ''
            return f'RadixNumber({sign}{kind}{payload})'
        return f'RadixNumber({sign}{self.mantissa}E{self.exponent})'


class NumericHelper:
    '''The interface through which RadixMath reads and builds numbers.  Subclasses adapt a
    concrete number type; RadixMath never looks inside a number any other way.'''

    def radix(self):
        raise NotImplementedError

    def arithmetic_support(self):
        raise NotImplementedError

    def sign(self, value):
        '''Return -1, 0 or 1.  Infinities are never 0; a NaN's sign is that of its flag.'''
        raise NotImplementedError

    def flags(self, value):
        raise NotImplementedError

    def mantissa(self, value):
        raise NotImplementedError

    def exponent(self, value):
        raise NotImplementedError

    def create_with_flags(self, mantissa, exponent, flags):
        '''Return a number with the given magnitude, exponent and NumberFlags.  Nothing is
        normalized.'''
        raise NotImplementedError

    def value_of(self, value):
        '''Return the number for a Python int at exponent zero.'''
        return self.create_with_flags(abs(value), 0, NumberFlags.NEGATIVE if value < 0 else 0)

    def multiply_by_radix_power(self, mantissa, count):
        '''Return mantissa * radix^count.  A non-positive count returns mantissa.'''
        if count <= 0 or not mantissa:
            return mantissa
        return mantissa * self.radix() ** count

    def create_shift_accumulator(self, mantissa):
        return ShiftAccumulator(self.radix(), mantissa)

    def create_shift_accumulator_with_digits(self, mantissa, last_discarded, older_discarded):
        return ShiftAccumulator(self.radix(), mantissa, last_discarded, older_discarded)

    def has_terminating_radix_expansion(self, numerator, denominator):
        '''Return True if numerator / denominator has a finite expansion in the radix.'''
        if not numerator:
            return True
        denominator //= gcd(numerator, denominator)
        radix = self.radix()
        while denominator != 1:
            divisor = gcd(denominator, radix)
            if divisor == 1:
                return False
            denominator //= divisor
        return True


class RadixNumberHelper(NumericHelper):
    '''The helper for RadixNumber values in a given radix.'''

    def __init__(self, radix, support=ArithmeticSupport.EXTENDED_FLOAT):
        if radix < 2:
            raise ValueError('radix must be at least 2')
        self._radix = radix
        self._support = ArithmeticSupport(support)

    def radix(self):
        return self._radix

    def arithmetic_support(self):
        return self._support

    def sign(self, value):
        if value.flags & NumberFlags.SPECIAL == 0 and value.mantissa == 0:
            return 0
        return -1 if value.flags & NumberFlags.NEGATIVE else 1

    def flags(self, value):
        return value.flags

    def mantissa(self, value):
        return value.mantissa

    def exponent(self, value):
        return value.exponent

    def create_with_flags(self, mantissa, exponent, flags):
        if flags & NumberFlags.SPECIAL and self._support == ArithmeticSupport.FINITE_ONLY:
            raise FiniteOnlyError('infinities and NaNs are not supported')
        return RadixNumber(abs(mantissa), exponent, flags)

    def __repr__(self):
        return f'RadixNumberHelper(radix={self._radix}, support={self._support.name})'


DecimalHelper = RadixNumberHelper(10)
BinaryHelper = RadixNumberHelper(2)
