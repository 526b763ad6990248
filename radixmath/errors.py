#
# Exceptions raised by radixmath operations
#

from .context import Flags


__all__ = ('RadixMathError', 'FiniteOnlyError', 'FiniteOnlyDivisionByZero',
           'TrapError', 'InvalidOperation', 'DivisionByZero', 'Overflow', 'Underflow',
           'Subnormal', 'Inexact', 'Rounded', 'Clamped')


class RadixMathError(ArithmeticError):
    '''All exceptions raised by this package subclass from this.'''


class FiniteOnlyError(RadixMathError):
    '''Raised when an operation on a number type that supports only finite values would
    produce an infinity or a NaN.'''


class FiniteOnlyDivisionByZero(FiniteOnlyError, ZeroDivisionError):
    '''Raised when a number type that supports only finite values is divided by zero.'''


#
# Traps
#

class TrapError(RadixMathError):
    '''Raised by TrappableRadixMath when an operation raises a status flag that is enabled in
    the context's traps.

    TrapError expects three arguments:

         def __init__(self, flag, context, result):

    flag is the status flag that caused the trap, context the caller's context (with the
    operation's flags merged in) and result the value the operation would have returned
    had the flag not been trapped.
    '''

    @property
    def flag(self):
        return self.args[0]

    @property
    def context(self):
        return self.args[1]

    @property
    def result(self):
        return self.args[2]

    @classmethod
    def for_flag(cls, flag, context, result):
        '''Return an exception of the appropriate subclass for flag.'''
        exc_class = trap_classes.get(flag, cls)
        return exc_class(flag, context, result)


class InvalidOperation(TrapError):
    '''The operation has no usefully definable result.  The result is a quiet NaN.'''


class DivisionByZero(TrapError, ZeroDivisionError):
    '''A finite non-zero number was divided by zero.  The result is a signed infinity.'''


class Overflow(TrapError):
    '''The rounded result's adjusted exponent exceeds emax.'''


class Underflow(TrapError):
    '''The result is subnormal and inexact.'''


class Subnormal(TrapError):
    '''The result's adjusted exponent is below emin.'''


class Inexact(TrapError):
    '''The rounded result differs from the infinitely precise result.'''


class Rounded(TrapError):
    '''Digits were discarded from the result, possibly all of them zero.'''


class Clamped(TrapError):
    '''The result's exponent was altered to fit the context's exponent range.'''


trap_classes = {
    Flags.INVALID: InvalidOperation,
    Flags.DIV_BY_ZERO: DivisionByZero,
    Flags.OVERFLOW: Overflow,
    Flags.UNDERFLOW: Underflow,
    Flags.SUBNORMAL: Subnormal,
    Flags.INEXACT: Inexact,
    Flags.ROUNDED: Rounded,
    Flags.CLAMPED: Clamped,
}
