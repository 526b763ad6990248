#
# Precision contexts: rounding, precision, exponent range and status flags for radixmath
# operations.
#

import threading
from enum import IntFlag

import attr


__all__ = ('PrecisionContext', 'DefaultContext', 'get_context', 'set_context', 'local_context',
           'Flags', 'ALL_ROUNDINGS',
           'ROUND_CEILING', 'ROUND_FLOOR', 'ROUND_DOWN', 'ROUND_UP',
           'ROUND_HALF_EVEN', 'ROUND_HALF_UP', 'ROUND_HALF_DOWN',
           'ROUND_05UP', 'ROUND_UNNECESSARY',
           'UNLIMITED', 'BASIC', 'DECIMAL32', 'DECIMAL64', 'DECIMAL128',
           'BINARY16', 'BINARY32', 'BINARY64', 'BINARY128')


# Rounding modes
ROUND_CEILING     = 'ROUND_CEILING'       # Towards +infinity
ROUND_FLOOR       = 'ROUND_FLOOR'         # Towards -infinity
ROUND_DOWN        = 'ROUND_DOWN'          # Towards zero
ROUND_UP          = 'ROUND_UP'            # Away from zero
ROUND_HALF_EVEN   = 'ROUND_HALF_EVEN'     # To nearest with ties towards even
ROUND_HALF_DOWN   = 'ROUND_HALF_DOWN'     # To nearest with ties towards zero
ROUND_HALF_UP     = 'ROUND_HALF_UP'       # To nearest with ties away from zero
ROUND_05UP        = 'ROUND_05UP'          # Away from zero if last digit is 0 or radix/2
ROUND_UNNECESSARY = 'ROUND_UNNECESSARY'   # Any rounding is an invalid operation

ALL_ROUNDINGS = (ROUND_CEILING, ROUND_FLOOR, ROUND_DOWN, ROUND_UP,
                 ROUND_HALF_EVEN, ROUND_HALF_DOWN, ROUND_HALF_UP,
                 ROUND_05UP, ROUND_UNNECESSARY)


# Operation status flags.
class Flags(IntFlag):
    INEXACT     = 0x01
    ROUNDED     = 0x02
    SUBNORMAL   = 0x04
    UNDERFLOW   = 0x08
    OVERFLOW    = 0x10
    CLAMPED     = 0x20
    INVALID     = 0x40
    DIV_BY_ZERO = 0x80


def _check_precision(instance, attribute, value):
    if value < 0:
        raise ValueError(f'{attribute.name} cannot be negative')


def _check_rounding(instance, attribute, value):
    if value not in ALL_ROUNDINGS:
        raise ValueError(f'unknown rounding mode {value!r}')


def _check_emax(instance, attribute, value):
    if instance.has_exponent_range and instance.emin > value:
        raise ValueError('emin cannot exceed emax')


@attr.s(slots=True, kw_only=True, repr=False)
class PrecisionContext:
    '''The execution context for operations.  Carries the precision, rounding mode, exponent
    range, status flags and traps.

    A precision of zero means unlimited precision.  The exponent range bounds the adjusted
    exponent (exponent + digit count - 1) of normal numbers.  Contexts are configuration
    and are changed only by deriving modified copies with the with_ methods; the one
    exception is flags, which operations update in place to report status to the caller.
    '''

    precision = attr.ib(default=0, validator=[attr.validators.instance_of(int),
                                              _check_precision])
    rounding = attr.ib(default=ROUND_HALF_UP, validator=_check_rounding)
    has_exponent_range = attr.ib(default=False)
    emin = attr.ib(default=0, validator=attr.validators.instance_of(int))
    emax = attr.ib(default=0, validator=[attr.validators.instance_of(int), _check_emax])
    # If set, the exponent of a finite result is never more than emax + 1 - precision;
    # larger exponents are lowered and the mantissa padded with zeroes.
    clamp_normal_exponents = attr.ib(default=False)
    traps = attr.ib(default=0, converter=Flags)
    # If has_flags is False operations do not report status
    has_flags = attr.ib(default=False)
    flags = attr.ib(default=0, converter=Flags, eq=False)

    @classmethod
    def for_precision(cls, precision):
        '''A context with the given precision, ROUND_HALF_UP and an unlimited exponent
        range.'''
        return cls(precision=precision)

    @classmethod
    def for_rounding(cls, rounding):
        '''A context with unlimited precision and exponent range and the given rounding.'''
        return cls(rounding=rounding)

    @classmethod
    def for_precision_and_rounding(cls, precision, rounding):
        return cls(precision=precision, rounding=rounding)

    def with_precision(self, precision):
        return attr.evolve(self, precision=precision)

    def with_rounding(self, rounding):
        return attr.evolve(self, rounding=rounding)

    def with_exponent_range(self, emin, emax):
        return attr.evolve(self, has_exponent_range=True, emin=emin, emax=emax)

    def with_unlimited_exponents(self):
        return attr.evolve(self, has_exponent_range=False)

    def with_exponent_clamp(self, clamp_normal_exponents):
        return attr.evolve(self, clamp_normal_exponents=clamp_normal_exponents)

    def with_traps(self, traps):
        return attr.evolve(self, traps=traps)

    def with_blank_flags(self):
        '''Return a copy that tracks status flags, with none of them set.'''
        return attr.evolve(self, has_flags=True, flags=0)

    def with_no_flags(self):
        '''Return a copy that does not track status flags.'''
        return attr.evolve(self, has_flags=False, flags=0)

    def copy(self):
        return attr.evolve(self)

    def add_flags(self, flags):
        '''Raise the given status flags if this context tracks them.'''
        if self.has_flags:
            self.flags |= flags

    def exponent_within_range(self, exponent):
        '''Return True if a number with the given exponent and a full-precision mantissa
        has an adjusted exponent within the context's range.'''
        if not self.has_exponent_range:
            return True
        if self.precision == 0:
            # With unlimited precision a long enough mantissa brings any small exponent
            # above emin
            return exponent <= self.emax
        return exponent + self.precision - 1 >= self.emin and exponent <= self.emax

    def round_to_nearest(self):
        '''Return True if the rounding mode rounds to nearest (ignoring ties).'''
        return self.rounding in {ROUND_HALF_EVEN, ROUND_HALF_DOWN, ROUND_HALF_UP}

    def __repr__(self):
        if self.has_exponent_range:
            exponents = f'emin={self.emin} emax={self.emax}'
        else:
            exponents = 'exponents=unlimited'
        return (f'<PrecisionContext precision={self.precision} rounding={self.rounding} '
                f'{exponents} flags={self.flags!r} traps={self.traps!r}>')


#
# Predefined contexts.  Precisions of the binary contexts are in bits.
#

UNLIMITED = PrecisionContext()
BASIC = PrecisionContext(precision=9, has_exponent_range=True,
                         emin=-999999999, emax=999999999)
DECIMAL32 = PrecisionContext(precision=7, rounding=ROUND_HALF_EVEN, has_exponent_range=True,
                             emin=-95, emax=96, clamp_normal_exponents=True)
DECIMAL64 = PrecisionContext(precision=16, rounding=ROUND_HALF_EVEN, has_exponent_range=True,
                             emin=-383, emax=384, clamp_normal_exponents=True)
DECIMAL128 = PrecisionContext(precision=34, rounding=ROUND_HALF_EVEN, has_exponent_range=True,
                              emin=-6143, emax=6144, clamp_normal_exponents=True)
BINARY16 = PrecisionContext(precision=11, rounding=ROUND_HALF_EVEN, has_exponent_range=True,
                            emin=-14, emax=15, clamp_normal_exponents=True)
BINARY32 = PrecisionContext(precision=24, rounding=ROUND_HALF_EVEN, has_exponent_range=True,
                            emin=-126, emax=127, clamp_normal_exponents=True)
BINARY64 = PrecisionContext(precision=53, rounding=ROUND_HALF_EVEN, has_exponent_range=True,
                            emin=-1022, emax=1023, clamp_normal_exponents=True)
BINARY128 = PrecisionContext(precision=113, rounding=ROUND_HALF_EVEN, has_exponent_range=True,
                             emin=-16382, emax=16383, clamp_normal_exponents=True)


#
# The current context
#

DefaultContext = PrecisionContext(precision=28, rounding=ROUND_HALF_EVEN,
                                  has_exponent_range=True, emin=-999999, emax=999999,
                                  has_flags=True,
                                  traps=Flags.INVALID | Flags.DIV_BY_ZERO | Flags.OVERFLOW)
tls = threading.local()


def get_context():
    try:
        return tls.context
    except AttributeError:
        tls.context = DefaultContext.copy()
        return tls.context


def set_context(context):
    '''Sets the current thread's context to context (not a copy of it).'''
    tls.context = context


class LocalContext:
    '''A context manager that will set the current context for the active thread to a copy of
    context on entry to the with-statement and restore the previous context on exit.  If
    no context is specified a copy of the current context is taken instead.
    '''

    def __init__(self, context=None):
        self.saved_context = None
        self.context_to_set = context

    def __enter__(self):
        self.saved_context = get_context()
        context = (self.context_to_set or self.saved_context).copy()
        set_context(context)
        return context

    def __exit__(self, etype, value, traceback):
        set_context(self.saved_context)


local_context = LocalContext
