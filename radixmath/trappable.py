#
# Trap dispatch: turns trapped status flags into exceptions
#

import logging

from .context import Flags, get_context
from .errors import TrapError


__all__ = ('TrappableRadixMath', )


logger = logging.getLogger(__name__)

# Conditions that stand alone are reported before the informational ones that usually
# accompany them.
TRAP_PRIORITY = (Flags.INVALID, Flags.DIV_BY_ZERO, Flags.OVERFLOW, Flags.UNDERFLOW,
                 Flags.SUBNORMAL, Flags.INEXACT, Flags.ROUNDED, Flags.CLAMPED)


class TrappableRadixMath:
    '''Wraps an engine with RadixMath's interface and raises a TrapError subclass when an
    operation raises a status flag enabled in the context's traps.

    Operations called without a context use the current thread's context.  The operation
    runs against a copy of the context with blank flags; its flags are then merged into the
    caller's context whether or not a trap fires, so the exception's context shows every
    condition the operation raised.
    '''

    def __init__(self, math):
        self.math = math

    def get_helper(self):
        return self.math.get_helper()

    def __repr__(self):
        return f'TrappableRadixMath({self.math!r})'

    def _invoke(self, operation, context, *args):
        context = context or get_context()
        if context.traps:
            trappable_context = context.with_blank_flags()
        else:
            trappable_context = context
        result = operation(*args, trappable_context)
        return self._trigger_traps(result, trappable_context, context)

    @staticmethod
    def _trigger_traps(result, trappable_context, context):
        flags = trappable_context.flags
        if not flags:
            return result
        if trappable_context is not context:
            context.add_flags(flags)
        traps = context.traps & flags
        if not traps:
            return result
        for flag in TRAP_PRIORITY:
            if traps & flag:
                logger.debug('trapped %s; result %r', flag.name, result)
                raise TrapError.for_flag(flag, context, result)
        return result

    #
    # Arithmetic
    #

    def add(self, lhs, rhs, context=None):
        return self._invoke(self.math.add, context, lhs, rhs)

    def subtract(self, lhs, rhs, context=None):
        return self._invoke(self.math.subtract, context, lhs, rhs)

    def multiply(self, lhs, rhs, context=None):
        return self._invoke(self.math.multiply, context, lhs, rhs)

    def multiply_and_add(self, lhs, rhs, addend, context=None):
        return self._invoke(self.math.multiply_and_add, context, lhs, rhs, addend)

    def divide(self, lhs, rhs, context=None):
        return self._invoke(self.math.divide, context, lhs, rhs)

    def divide_to_exponent(self, lhs, rhs, exponent, context=None):
        return self._invoke(self.math.divide_to_exponent, context, lhs, rhs, exponent)

    def divide_to_integer_natural_scale(self, lhs, rhs, context=None):
        return self._invoke(self.math.divide_to_integer_natural_scale, context, lhs, rhs)

    def divide_to_integer_zero_scale(self, lhs, rhs, context=None):
        return self._invoke(self.math.divide_to_integer_zero_scale, context, lhs, rhs)

    def remainder(self, lhs, rhs, context=None):
        return self._invoke(self.math.remainder, context, lhs, rhs)

    def remainder_near(self, lhs, rhs, context=None):
        return self._invoke(self.math.remainder_near, context, lhs, rhs)

    def abs(self, value, context=None):
        return self._invoke(self.math.abs, context, value)

    def negate(self, value, context=None):
        return self._invoke(self.math.negate, context, value)

    def plus(self, value, context=None):
        return self._invoke(self.math.plus, context, value)

    #
    # Rounding and scaling
    #

    def round_to_precision(self, value, context=None):
        return self._invoke(self.math.round_to_precision, context, value)

    def round_to_binary_precision(self, value, context=None):
        return self._invoke(self.math.round_to_binary_precision, context, value)

    def quantize(self, value, other, context=None):
        return self._invoke(self.math.quantize, context, value, other)

    def round_to_exponent_exact(self, value, exponent, context=None):
        return self._invoke(self.math.round_to_exponent_exact, context, value, exponent)

    def round_to_exponent_simple(self, value, exponent, context=None):
        return self._invoke(self.math.round_to_exponent_simple, context, value, exponent)

    def round_to_exponent_no_rounded_flag(self, value, exponent, context=None):
        return self._invoke(self.math.round_to_exponent_no_rounded_flag, context, value,
                            exponent)

    def reduce(self, value, context=None):
        return self._invoke(self.math.reduce, context, value)

    #
    # Transcendental functions
    #

    def power(self, value, power, context=None):
        return self._invoke(self.math.power, context, value, power)

    def ln(self, value, context=None):
        return self._invoke(self.math.ln, context, value)

    def log10(self, value, context=None):
        return self._invoke(self.math.log10, context, value)

    def exp(self, value, context=None):
        return self._invoke(self.math.exp, context, value)

    def square_root(self, value, context=None):
        return self._invoke(self.math.square_root, context, value)

    def pi(self, context=None):
        return self._invoke(self.math.pi, context)

    #
    # Neighbours, comparisons, minimum and maximum
    #

    def next_minus(self, value, context=None):
        return self._invoke(self.math.next_minus, context, value)

    def next_plus(self, value, context=None):
        return self._invoke(self.math.next_plus, context, value)

    def next_toward(self, value, other, context=None):
        return self._invoke(self.math.next_toward, context, value, other)

    def min(self, lhs, rhs, context=None):
        return self._invoke(self.math.min, context, lhs, rhs)

    def max(self, lhs, rhs, context=None):
        return self._invoke(self.math.max, context, lhs, rhs)

    def min_magnitude(self, lhs, rhs, context=None):
        return self._invoke(self.math.min_magnitude, context, lhs, rhs)

    def max_magnitude(self, lhs, rhs, context=None):
        return self._invoke(self.math.max_magnitude, context, lhs, rhs)

    def compare_to_with_context(self, lhs, rhs, treat_quiet_nans_as_signaling, context=None):
        return self._invoke(self.math.compare_to_with_context, context, lhs, rhs,
                            treat_quiet_nans_as_signaling)

    def compare_to(self, lhs, rhs):
        '''Comparison raises no flags so nothing can trap.'''
        return self.math.compare_to(lhs, rhs)
