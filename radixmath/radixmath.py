#
# A generic arbitrary-precision arithmetic engine for numbers of any radix
#

import logging
from math import isqrt

from .context import (
    PrecisionContext, Flags, UNLIMITED,
    ROUND_CEILING, ROUND_FLOOR, ROUND_DOWN, ROUND_UP, ROUND_HALF_EVEN, ROUND_HALF_UP,
    ROUND_HALF_DOWN, ROUND_05UP, ROUND_UNNECESSARY,
)
from .convergence import Convergence
from .errors import FiniteOnlyError, FiniteOnlyDivisionByZero
from .helper import NumberFlags, ArithmeticSupport


__all__ = ('RadixMath', 'round_up')


logger = logging.getLogger(__name__)

NEGATIVE = NumberFlags.NEGATIVE
INFINITY = NumberFlags.INFINITY
QUIET_NAN = NumberFlags.QUIET_NAN
SIGNALING_NAN = NumberFlags.SIGNALING_NAN
SPECIAL = NumberFlags.SPECIAL
NAN = NumberFlags.NAN

# How DivideInternal treats the exponent of the quotient
MODE_REGULAR = 0          # The ideal exponent, rounded to the context's precision
MODE_FIXED_SCALE = 1      # Exactly the desired exponent


def round_up(rounding, radix, last, older, negative, retained):
    '''Return True if a magnitude must be incremented by one unit in its last place.

    last is the most significant discarded digit, older is non-zero if any less significant
    discarded digit was non-zero, and retained is the magnitude being rounded.
    '''
    half = radix // 2
    if rounding == ROUND_HALF_EVEN:
        if last >= half:
            return last > half or bool(older) or bool(retained & 1)
        return False
    if rounding == ROUND_HALF_UP:
        return last >= half
    if rounding == ROUND_HALF_DOWN:
        return last > half or (last == half and bool(older))
    inexact = bool(last or older)
    if rounding == ROUND_CEILING:
        return inexact and not negative
    if rounding == ROUND_FLOOR:
        return inexact and negative
    if rounding == ROUND_UP:
        return inexact
    if rounding == ROUND_05UP:
        return inexact and (radix == 2 or retained % radix in (0, half))
    return False


def add_flags(context, flags):
    if context is not None:
        context.add_flags(flags)


def transfer_flags(dst, src):
    '''Merge the flags of src into dst.  If src raised Invalid or DivideByZero only those
    are merged.'''
    if dst is None or src is None:
        return
    hard = src.flags & (Flags.INVALID | Flags.DIV_BY_ZERO)
    dst.add_flags(hard or src.flags)


def rounds_to_largest_finite(rounding, negative):
    '''Return True if an overflowing result rounds to the largest finite magnitude rather
    than to an infinity.'''
    return (rounding in (ROUND_DOWN, ROUND_05UP)
            or (rounding == ROUND_CEILING and negative)
            or (rounding == ROUND_FLOOR and not negative))


class RadixMath:
    '''Arithmetic on the numbers of a NumericHelper, following the General Decimal Arithmetic
    rules for rounding, exponent ranges, special values and status flags.

    Every operation takes an optional PrecisionContext last.  Without one results are
    exact; operations that cannot be exact (ln, exp, pi, ...) signal an invalid operation.
    Status is reported by raising flags on the context, never by raising exceptions,
    except that a helper supporting only finite numbers raises FiniteOnlyError where the
    result would be an infinity or a NaN.
    '''

    def __init__(self, helper):
        # Rounding sees only the first discarded digit and whether any later one is
        # non-zero, which places the half-way point only in an even radix
        if helper.radix() % 2:
            raise ValueError(f'RadixMath needs an even radix, not {helper.radix()}')
        self.helper = helper
        self.radix = helper.radix()
        self.support = helper.arithmetic_support()

    def get_helper(self):
        return self.helper

    def __repr__(self):
        return f'RadixMath({self.helper!r})'

    #
    # Small utilities
    #

    def _digit_count(self, mantissa):
        return self.helper.create_shift_accumulator(mantissa).digit_length

    def _create(self, mantissa, exponent, flags):
        return self.helper.create_with_flags(mantissa, exponent, flags)

    def _is_finite(self, value):
        return not self.helper.flags(value) & SPECIAL

    def _is_negative(self, value):
        return bool(self.helper.flags(value) & NEGATIVE)

    def _ensure_sign(self, value, negative):
        if value is None:
            return value
        flags = self.helper.flags(value)
        if bool(flags & NEGATIVE) == negative:
            return value
        flags = (flags & ~NEGATIVE) | (NEGATIVE if negative else 0)
        return self._create(self.helper.mantissa(value), self.helper.exponent(value), flags)

    def _negate_raw(self, value):
        if value is None:
            return value
        helper = self.helper
        return self._create(helper.mantissa(value), helper.exponent(value),
                            helper.flags(value) ^ NEGATIVE)

    def _abs_raw(self, value):
        return self._ensure_sign(value, False)

    def _value_of(self, value, context):
        if (context is None or not context.has_exponent_range
                or context.exponent_within_range(0)):
            return self.helper.value_of(value)
        return self.round_to_precision(self.helper.value_of(value), context)

    def _rescale(self, mantissa, lhs_exponent, rhs_exponent):
        if mantissa == 0:
            return 0
        return self.helper.multiply_by_radix_power(mantissa, abs(lhs_exponent - rhs_exponent))

    def _largest_finite(self, context, negative):
        '''The largest finite magnitude of context, with the given sign.'''
        precision = context.precision
        mantissa = self.helper.multiply_by_radix_power(1, precision) - 1
        return self._create(mantissa, context.emax + 1 - precision,
                            NEGATIVE if negative else 0)

    #
    # Special values and signals
    #

    def _return_quiet_nan(self, value, context):
        '''Return value, a NaN, as a quiet NaN whose payload fits the precision.'''
        mantissa = self.helper.mantissa(value)
        changed = False
        if mantissa and context is not None and context.precision:
            limit = self.helper.multiply_by_radix_power(1, context.precision)
            if mantissa >= limit:
                mantissa %= limit
                changed = True
        flags = self.helper.flags(value)
        if not changed and flags & QUIET_NAN:
            return value
        return self._create(mantissa, 0, (flags & NEGATIVE) | QUIET_NAN)

    def _signaling_nan_invalid(self, value, context):
        add_flags(context, Flags.INVALID)
        return self._return_quiet_nan(value, context)

    def _signal_invalid(self, context, reason='Invalid operation'):
        if self.support == ArithmeticSupport.FINITE_ONLY:
            raise FiniteOnlyError(reason)
        add_flags(context, Flags.INVALID)
        return self._create(0, 0, QUIET_NAN)

    def _signal_divide_by_zero(self, context, negative):
        if self.support == ArithmeticSupport.FINITE_ONLY:
            raise FiniteOnlyDivisionByZero('Division by zero')
        add_flags(context, Flags.DIV_BY_ZERO)
        return self._create(0, 0, INFINITY | (NEGATIVE if negative else 0))

    def _overflow(self, context, negative, precision, max_mantissa=None, flags=0):
        '''Raise Overflow and return the overflowed result: the largest finite magnitude for
        directed roundings towards zero, otherwise an infinity.  precision is in digits,
        zero if unlimited.'''
        flags |= Flags.OVERFLOW | Flags.INEXACT | Flags.ROUNDED
        if (context is not None and precision and context.has_exponent_range
                and rounds_to_largest_finite(context.rounding, negative)):
            if max_mantissa is None:
                max_mantissa = self.helper.multiply_by_radix_power(1, precision) - 1
            add_flags(context, flags)
            return self._create(max_mantissa, context.emax + 1 - precision,
                                NEGATIVE if negative else 0)
        if self.support == ArithmeticSupport.FINITE_ONLY:
            raise FiniteOnlyError('Overflow')
        add_flags(context, flags)
        return self._create(0, 0, INFINITY | (NEGATIVE if negative else 0))

    def _handle_nan(self, lhs, rhs, context):
        '''Return the NaN result of a two-operand operation, or None if neither operand is
        a NaN.'''
        lhs_flags = self.helper.flags(lhs)
        rhs_flags = self.helper.flags(rhs)
        if lhs_flags & SIGNALING_NAN:
            return self._signaling_nan_invalid(lhs, context)
        if rhs_flags & SIGNALING_NAN:
            return self._signaling_nan_invalid(rhs, context)
        if lhs_flags & QUIET_NAN:
            return self._return_quiet_nan(lhs, context)
        if rhs_flags & QUIET_NAN:
            return self._return_quiet_nan(rhs, context)
        return None

    def _single_nan(self, value, context):
        flags = self.helper.flags(value)
        if flags & SIGNALING_NAN:
            return self._signaling_nan_invalid(value, context)
        if flags & QUIET_NAN:
            return self._return_quiet_nan(value, context)
        return None

    #
    # Rounding
    #

    def round_to_precision(self, value, context=None):
        '''Round value to the context's precision and exponent range.  Negative zero is
        preserved.'''
        return self._round_to_precision_internal(value, 0, 0, None, False, False, context)

    def round_to_binary_precision(self, value, context=None):
        '''As round_to_precision, but the context's precision counts bits: the largest
        retained mantissa is 2**precision - 1 whatever the radix.'''
        return self._round_to_precision_internal(value, 0, 0, None, True, False, context)

    def plus(self, value, context=None):
        '''Round value to the context.  A negative zero becomes positive unless rounding
        towards -infinity.'''
        return self._round_to_precision_internal(value, 0, 0, None, False, True, context)

    def _round_to_precision_internal(self, value, last, older, shift, binary_prec,
                                     adjust_negative_zero, context):
        '''The rounding engine.  value is rounded as if its mantissa had first been shifted
        right by shift digits and was followed by discarded digits described by last and
        older.'''
        if context is None:
            context = UNLIMITED.with_rounding(ROUND_HALF_EVEN)
        if (context.precision == 0 and not context.has_exponent_range
                and not (last or older) and not shift):
            return value

        helper = self.helper
        radix = self.radix
        value_flags = helper.flags(value)
        if value_flags & SPECIAL:
            if value_flags & SIGNALING_NAN:
                context.add_flags(Flags.INVALID)
                return self._return_quiet_nan(value, context)
            if value_flags & QUIET_NAN:
                return self._return_quiet_nan(value, context)
            return value

        precision = context.precision
        if radix == 2 or precision == 0:
            binary_prec = False
        unlimited = precision == 0
        rounding = context.rounding
        emin = emax = None
        if context.has_exponent_range:
            emin, emax = context.emin, context.emax

        accum = None
        if not binary_prec and precision > 0 and not shift:
            # Fast path when no digits need discarding
            mantissa = helper.mantissa(value)
            if (adjust_negative_zero and value_flags & NEGATIVE and mantissa == 0
                    and rounding != ROUND_FLOOR):
                value = self._ensure_sign(value, False)
                value_flags = helper.flags(value)
            accum = helper.create_shift_accumulator_with_digits(mantissa, last, older)
            if accum.digit_length <= precision:
                if last or older:
                    if rounding == ROUND_UNNECESSARY:
                        return self._signal_invalid(context, 'Rounding was required')
                    context.add_flags(Flags.INEXACT | Flags.ROUNDED)
                exponent = helper.exponent(value)
                result = value
                if round_up(rounding, radix, last, older, value_flags & NEGATIVE, mantissa):
                    mantissa += 1
                    if (accum.digit_length < precision
                            or mantissa < helper.multiply_by_radix_power(1, precision)):
                        result = self._create(mantissa, exponent, value_flags)
                    else:
                        result = None
                if result is not None:
                    if emin is None:
                        return result
                    if exponent + precision - 1 <= emax and exponent >= emin:
                        return result

        if (adjust_negative_zero and value_flags & NEGATIVE and helper.mantissa(value) == 0
                and rounding != ROUND_FLOOR):
            value = self._ensure_sign(value, False)
            value_flags = helper.flags(value)

        negative = bool(value_flags & NEGATIVE)
        mantissa = helper.mantissa(value)
        # Kept in case the result is subnormal and must be rounded again
        old_mantissa = mantissa
        mantissa_was_zero = old_mantissa == 0 and not (last or older)
        max_mantissa = None
        exponent = helper.exponent(value)
        flags = Flags(0)
        if accum is None:
            accum = helper.create_shift_accumulator_with_digits(mantissa, last, older)
        if binary_prec:
            max_mantissa = (1 << precision) - 1
            precision = self._digit_count(max_mantissa)
        if shift:
            accum.shift_right(shift)
        if not unlimited:
            accum.shift_to_digits(precision)
        else:
            precision = accum.digit_length
        if binary_prec:
            while accum.shifted_int > max_mantissa:
                accum.shift_right(1)

        discarded = accum.discarded_count
        exponent += discarded
        adj_exponent = exponent + accum.digit_length - 1
        if binary_prec and emax is not None and adj_exponent == emax:
            # Whether this overflows depends on the mantissa
            scaled = helper.multiply_by_radix_power(accum.shifted_int,
                                                    precision - accum.digit_length)
            if scaled > max_mantissa:
                adj_exponent += 1
        new_adj_exponent = adj_exponent
        early_rounded = 0
        if context.has_flags and emin is not None and not unlimited and adj_exponent < emin:
            # Whether the result stays subnormal once rounded
            early_rounded = accum.shifted_int
            if round_up(rounding, radix, accum.last_discarded, accum.older_discarded,
                        negative, early_rounded):
                early_rounded += 1
                if early_rounded % 2 == 0:
                    new_digits = self._digit_count(early_rounded)
                    if binary_prec or new_digits > precision:
                        new_digits = precision
                    new_adj_exponent = exponent + new_digits - 1

        if emax is not None and adj_exponent > emax:
            if mantissa_was_zero:
                context.add_flags(flags | Flags.CLAMPED)
                if context.clamp_normal_exponents:
                    clamp_exponent = emax + 1 - precision
                    if emax > clamp_exponent:
                        context.add_flags(Flags.CLAMPED)
                        emax = clamp_exponent
                return self._create(old_mantissa, emax, value_flags)
            if rounding == ROUND_UNNECESSARY:
                return self._signal_invalid(context, 'Rounding was required')
            return self._overflow(context, negative, 0 if unlimited else precision,
                                  max_mantissa, flags)

        if emin is not None and adj_exponent < emin:
            etiny = emin - precision + 1
            if early_rounded and new_adj_exponent < emin:
                flags |= Flags.SUBNORMAL
            if exponent < etiny:
                accum = helper.create_shift_accumulator_with_digits(old_mantissa, last, older)
                accum.shift_right(etiny - helper.exponent(value))
                new_mantissa = accum.shifted_int
                inexact = not accum.is_exact()
                if inexact and rounding == ROUND_UNNECESSARY:
                    return self._signal_invalid(context, 'Rounding was required')
                if accum.discarded_count or inexact:
                    if not mantissa_was_zero:
                        flags |= Flags.ROUNDED
                    if inexact:
                        flags |= Flags.INEXACT | Flags.ROUNDED
                    if round_up(rounding, radix, accum.last_discarded, accum.older_discarded,
                                negative, new_mantissa):
                        new_mantissa += 1
                if new_mantissa == 0:
                    flags |= Flags.CLAMPED
                if flags & (Flags.SUBNORMAL | Flags.INEXACT) == Flags.SUBNORMAL | Flags.INEXACT:
                    flags |= Flags.UNDERFLOW | Flags.ROUNDED
                context.add_flags(flags)
                if context.clamp_normal_exponents:
                    clamp_exponent = emax + 1 - precision
                    if etiny > clamp_exponent:
                        if new_mantissa:
                            new_mantissa = helper.multiply_by_radix_power(
                                new_mantissa, etiny - clamp_exponent)
                        context.add_flags(Flags.CLAMPED)
                        etiny = clamp_exponent
                return self._create(new_mantissa, etiny, NEGATIVE if negative else 0)

        recheck_overflow = False
        if accum.discarded_count or not accum.is_exact():
            if mantissa:
                flags |= Flags.ROUNDED
            mantissa = accum.shifted_int
            if not accum.is_exact():
                flags |= Flags.INEXACT | Flags.ROUNDED
                if rounding == ROUND_UNNECESSARY:
                    return self._signal_invalid(context, 'Rounding was required')
            if round_up(rounding, radix, accum.last_discarded, accum.older_discarded,
                        negative, mantissa):
                old_digits = accum.digit_length
                mantissa += 1
                if binary_prec:
                    recheck_overflow = True
                # The increment can carry into a new digit
                if (not unlimited and mantissa % 2 == 0
                        and (binary_prec or old_digits >= precision)):
                    accum = helper.create_shift_accumulator(mantissa)
                    new_digits = accum.digit_length
                    if binary_prec or new_digits > precision:
                        accum.shift_right(new_digits - precision)
                        if binary_prec:
                            while accum.shifted_int > max_mantissa:
                                accum.shift_right(1)
                        if accum.discarded_count:
                            exponent += accum.discarded_count
                            mantissa = accum.shifted_int
                            if not binary_prec:
                                recheck_overflow = True

        if recheck_overflow and emax is not None:
            digits = self._digit_count(mantissa)
            adj_exponent = exponent + digits - 1
            if binary_prec and adj_exponent == emax:
                if helper.multiply_by_radix_power(mantissa, precision - digits) > max_mantissa:
                    adj_exponent += 1
            if adj_exponent > emax:
                return self._overflow(context, negative, 0 if unlimited else precision,
                                      max_mantissa, flags)

        if flags & (Flags.SUBNORMAL | Flags.INEXACT) == Flags.SUBNORMAL | Flags.INEXACT:
            flags |= Flags.UNDERFLOW
        context.add_flags(flags)
        if context.clamp_normal_exponents and emax is not None:
            clamp_exponent = emax + 1 - precision
            if exponent > clamp_exponent:
                if mantissa:
                    mantissa = helper.multiply_by_radix_power(mantissa,
                                                              exponent - clamp_exponent)
                context.add_flags(Flags.CLAMPED)
                exponent = clamp_exponent
        return self._create(mantissa, exponent, NEGATIVE if negative else 0)

    def _reduce_to_precision_and_ideal_exponent(self, value, context, precision, ideal_exponent):
        '''Round value to context, then strip trailing zeroes while the digit count exceeds
        precision and the exponent is below ideal_exponent (either limit may be None).'''
        result = self.round_to_precision(value, context)
        if result is None or self.helper.flags(result) & SPECIAL:
            return result
        helper = self.helper
        mantissa = helper.mantissa(result)
        exponent = helper.exponent(result)
        if mantissa == 0:
            exponent = 0
        else:
            digits = None if precision is None else self._digit_count(mantissa)
            while mantissa:
                if precision is not None and digits == precision:
                    break
                if ideal_exponent is not None and exponent == ideal_exponent:
                    break
                quotient, remainder = divmod(mantissa, self.radix)
                if remainder:
                    break
                mantissa = quotient
                exponent += 1
                if digits is not None:
                    digits -= 1
        flags = helper.flags(value)
        result = self._create(mantissa, exponent, flags)
        if context is not None and context.clamp_normal_exponents:
            scratch = context.with_blank_flags()
            result = self.round_to_precision(result, scratch)
            context.add_flags(scratch.flags & ~Flags.CLAMPED)
        return self._ensure_sign(result, bool(flags & NEGATIVE))

    def reduce(self, value, context=None):
        '''Round value to context and remove its trailing zeroes.'''
        return self._reduce_to_precision_and_ideal_exponent(value, context, None, None)

    def quantize(self, value, other, context=None):
        '''Return value rounded to the exponent of other.'''
        helper = self.helper
        value_flags = helper.flags(value)
        other_flags = helper.flags(other)
        if (value_flags | other_flags) & SPECIAL:
            result = self._handle_nan(value, other, context)
            if result is not None:
                return result
            if value_flags & other_flags & INFINITY:
                return self.round_to_precision(value, context)
            if (value_flags | other_flags) & INFINITY:
                return self._signal_invalid(context)

        other_exponent = helper.exponent(other)
        if context is not None and not context.exponent_within_range(other_exponent):
            return self._signal_invalid(
                context, f'Exponent not within exponent range: {other_exponent}')
        scratch = (PrecisionContext.for_rounding(ROUND_HALF_EVEN) if context is None
                   else context.copy()).with_blank_flags()
        mantissa = helper.mantissa(value)
        exponent = helper.exponent(value)
        negative_flag = value_flags & NEGATIVE
        if exponent == other_exponent:
            result = self.round_to_precision(value, scratch)
        elif mantissa == 0:
            result = self._create(0, other_exponent, negative_flag)
            result = self.round_to_precision(result, scratch)
        elif exponent > other_exponent:
            radix_power = exponent - other_exponent
            if scratch.precision > 0 and radix_power > scratch.precision + 10:
                return self._signal_invalid(context, 'Result too high for current precision')
            mantissa = helper.multiply_by_radix_power(mantissa, radix_power)
            result = self._create(mantissa, other_exponent, negative_flag)
            result = self.round_to_precision(result, scratch)
        else:
            result = self._round_to_precision_internal(
                value, 0, 0, other_exponent - exponent, False, False, scratch)
        if scratch.flags & Flags.OVERFLOW:
            return self._signal_invalid(context)
        if result is None or helper.exponent(result) != other_exponent:
            return self._signal_invalid(context)
        result = self._ensure_sign(result, bool(negative_flag))
        add_flags(context, scratch.flags & ~Flags.UNDERFLOW)
        return result

    def round_to_exponent_exact(self, value, exponent, context=None):
        '''Round value to the given exponent; Inexact and Rounded are raised as usual.  An
        exponent above value's is left alone apart from rounding to context.'''
        if self.helper.exponent(value) >= exponent:
            return self.round_to_precision(value, context)
        scratch = None if context is None else context.with_precision(0).with_blank_flags()
        result = self.quantize(value, self._create(1, exponent, 0), scratch)
        if scratch is not None:
            add_flags(context, scratch.flags)
        return result

    def round_to_exponent_simple(self, value, exponent, context=None):
        helper = self.helper
        value_flags = helper.flags(value)
        if value_flags & SPECIAL:
            result = self._handle_nan(value, value, context)
            if result is not None:
                return result
            if value_flags & INFINITY:
                return value
        if helper.exponent(value) >= exponent:
            return self.round_to_precision(value, context)
        if context is not None and not context.exponent_within_range(exponent):
            return self._signal_invalid(context,
                                        f'Exponent not within exponent range: {exponent}')
        accum = helper.create_shift_accumulator(helper.mantissa(value))
        accum.shift_right(exponent - helper.exponent(value))
        value = self._create(accum.shifted_int, exponent, value_flags)
        return self._round_to_precision_internal(value, accum.last_discarded,
                                                 accum.older_discarded, None, False, False,
                                                 context)

    def round_to_exponent_no_rounded_flag(self, value, exponent, context=None):
        '''As round_to_exponent_exact but never raises Inexact or Rounded.'''
        scratch = None if context is None else context.with_blank_flags()
        result = self.round_to_exponent_exact(value, exponent, scratch)
        if scratch is not None:
            add_flags(context, scratch.flags & ~(Flags.INEXACT | Flags.ROUNDED))
        return result

    #
    # Sign operations
    #

    def abs(self, value, context=None):
        result = self._single_nan(value, context)
        if result is not None:
            return result
        return self.round_to_precision(self._abs_raw(value), context)

    def negate(self, value, context=None):
        '''Return -value rounded to context.  Negating a zero gives a positive zero, except
        that a negative zero stays negative when rounding towards -infinity.'''
        result = self._single_nan(value, context)
        if result is not None:
            return result
        helper = self.helper
        flags = helper.flags(value)
        mantissa = helper.mantissa(value)
        if not flags & INFINITY and mantissa == 0:
            keep_negative = (flags & NEGATIVE and context is not None
                             and context.rounding == ROUND_FLOOR)
            flags = (flags | NEGATIVE) if keep_negative else (flags & ~NEGATIVE)
        else:
            flags ^= NEGATIVE
        return self.round_to_precision(self._create(mantissa, helper.exponent(value), flags),
                                       context)

    #
    # Addition
    #

    def add(self, lhs, rhs, context=None):
        '''Return lhs + rhs.'''
        helper = self.helper
        lhs_flags = helper.flags(lhs)
        rhs_flags = helper.flags(rhs)
        if (lhs_flags | rhs_flags) & SPECIAL:
            result = self._handle_nan(lhs, rhs, context)
            if result is not None:
                return result
            if lhs_flags & INFINITY:
                if rhs_flags & INFINITY and (lhs_flags ^ rhs_flags) & NEGATIVE:
                    return self._signal_invalid(context)
                return lhs
            if rhs_flags & INFINITY:
                return rhs

        lhs_exponent = helper.exponent(lhs)
        rhs_exponent = helper.exponent(rhs)
        lhs_mantissa = helper.mantissa(lhs)
        rhs_mantissa = helper.mantissa(rhs)
        if lhs_exponent == rhs_exponent:
            result = self._add_core(lhs_mantissa, rhs_mantissa, lhs_exponent, lhs_flags,
                                    rhs_flags, context)
        else:
            if (context is not None and context.precision > 0
                    and abs(lhs_exponent - rhs_exponent) > context.precision):
                # Avoid building huge mantissas when one operand cannot reach the other's
                # rounding position
                if lhs_exponent > rhs_exponent:
                    result = self._add_negligible(lhs, rhs, context)
                else:
                    result = self._add_negligible(rhs, lhs, context)
                if result is not None:
                    return result
            if lhs_exponent > rhs_exponent:
                lhs_mantissa = self._rescale(lhs_mantissa, lhs_exponent, rhs_exponent)
                exponent = rhs_exponent
            else:
                rhs_mantissa = self._rescale(rhs_mantissa, lhs_exponent, rhs_exponent)
                exponent = lhs_exponent
            result = self._add_core(lhs_mantissa, rhs_mantissa, exponent, lhs_flags,
                                    rhs_flags, context)
        if context is not None:
            result = self.round_to_precision(result, context)
        return result

    def _add_negligible(self, big, small, context):
        '''Return big + small rounded to context when small lies wholly below the rounding
        position of big, or None if it might not.  big has the greater exponent.'''
        helper = self.helper
        big_mantissa = helper.mantissa(big)
        if big_mantissa == 0:
            return None
        precision = context.precision
        big_exponent = helper.exponent(big)
        small_mantissa = helper.mantissa(small)
        small_digits = self._digit_count(small_mantissa)
        if big_exponent - helper.exponent(small) <= precision + small_digits + 4:
            return None

        # small only decides the rounding direction
        same_sign = helper.sign(big) == helper.sign(small)
        small_is_zero = small_mantissa == 0
        subtracts = not small_is_zero and not same_sign
        big_flags = helper.flags(big)
        big_digits = self._digit_count(big_mantissa)
        shift = big_digits - precision
        if big_digits < precision:
            padding = precision - big_digits
            if subtracts:
                padding += 2
            big_mantissa = helper.multiply_by_radix_power(big_mantissa, padding)
            if subtracts:
                big_mantissa -= 1
            big = self._create(big_mantissa, big_exponent - padding, big_flags)
            if small_is_zero:
                context.add_flags(Flags.ROUNDED)
            return self._round_to_precision_internal(
                big, 0 if small_is_zero or same_sign else 1,
                0 if small_is_zero and not same_sign else 1, shift, False, False, context)
        if subtracts:
            big_mantissa = helper.multiply_by_radix_power(big_mantissa, 2) - 1
            big = self._create(big_mantissa, big_exponent - 2, big_flags)
            return self._round_to_precision_internal(big, 0, 0, shift, False, False, context)
        if not same_sign:
            context.add_flags(Flags.ROUNDED)
        return self._round_to_precision_internal(big, 0, 1 if same_sign else 0, shift,
                                                 False, False, context)

    def _add_core(self, lhs_mantissa, rhs_mantissa, exponent, lhs_flags, rhs_flags, context):
        lhs_negative = bool(lhs_flags & NEGATIVE)
        rhs_negative = bool(rhs_flags & NEGATIVE)
        if lhs_negative != rhs_negative:
            mantissa = lhs_mantissa - rhs_mantissa
            negative = lhs_negative ^ (rhs_negative if mantissa == 0 else mantissa < 0)
            mantissa = abs(mantissa)
        else:
            mantissa = lhs_mantissa + rhs_mantissa
            negative = lhs_negative
        if mantissa == 0 and negative:
            # An exact zero sum is positive except when adding negative zeroes, or when
            # rounding towards -infinity
            if not ((lhs_negative and rhs_negative)
                    or (lhs_negative != rhs_negative and context is not None
                        and context.rounding == ROUND_FLOOR)):
                negative = False
        return self._create(mantissa, exponent, NEGATIVE if negative else 0)

    def subtract(self, lhs, rhs, context=None):
        '''Return lhs - rhs.  A NaN subtrahend keeps its sign.'''
        if not self.helper.flags(rhs) & NAN:
            rhs = self._negate_raw(rhs)
        return self.add(lhs, rhs, context)

    #
    # Multiplication
    #

    def multiply(self, lhs, rhs, context=None):
        '''Return lhs * rhs.'''
        helper = self.helper
        lhs_flags = helper.flags(lhs)
        rhs_flags = helper.flags(rhs)
        sign_flag = (lhs_flags ^ rhs_flags) & NEGATIVE
        if (lhs_flags | rhs_flags) & SPECIAL:
            result = self._handle_nan(lhs, rhs, context)
            if result is not None:
                return result
            # infinity * zero is invalid
            if lhs_flags & INFINITY:
                if not rhs_flags & SPECIAL and helper.mantissa(rhs) == 0:
                    return self._signal_invalid(context)
                return self._ensure_sign(lhs, bool(sign_flag))
            if rhs_flags & INFINITY:
                if not lhs_flags & SPECIAL and helper.mantissa(lhs) == 0:
                    return self._signal_invalid(context)
                return self._ensure_sign(rhs, bool(sign_flag))
        result = self._create(helper.mantissa(lhs) * helper.mantissa(rhs),
                              helper.exponent(lhs) + helper.exponent(rhs), sign_flag)
        if context is not None:
            result = self.round_to_precision(result, context)
        return result

    def multiply_and_add(self, lhs, rhs, addend, context=None):
        '''Return lhs * rhs + addend with a single rounding.'''
        result = self._multiply_add_handle_special(lhs, rhs, addend, context)
        if result is not None:
            return result
        scratch = UNLIMITED.with_blank_flags()
        result = self.add(self.multiply(lhs, rhs, scratch), addend, context)
        add_flags(context, scratch.flags)
        return result

    def _multiply_add_handle_special(self, lhs, rhs, addend, context):
        helper = self.helper
        lhs_flags = helper.flags(lhs)
        rhs_flags = helper.flags(rhs)
        addend_flags = helper.flags(addend)
        for value, flags in ((lhs, lhs_flags), (rhs, rhs_flags), (addend, addend_flags)):
            if flags & SIGNALING_NAN:
                return self._signaling_nan_invalid(value, context)
        if lhs_flags & QUIET_NAN:
            return self._return_quiet_nan(lhs, context)
        if rhs_flags & QUIET_NAN:
            return self._return_quiet_nan(rhs, context)
        if lhs_flags & INFINITY and not rhs_flags & SPECIAL and helper.mantissa(rhs) == 0:
            return self._signal_invalid(context)
        if rhs_flags & INFINITY and not lhs_flags & SPECIAL and helper.mantissa(lhs) == 0:
            return self._signal_invalid(context)
        if addend_flags & QUIET_NAN:
            return self._return_quiet_nan(addend, context)
        return None

    #
    # Division
    #

    def divide(self, lhs, rhs, context=None):
        '''Return lhs / rhs.  Without a context, or with unlimited precision, a quotient
        without a terminating expansion in the radix is an invalid operation.'''
        return self._divide_internal(lhs, rhs, context, MODE_REGULAR, 0)

    def divide_to_exponent(self, lhs, rhs, exponent, context=None):
        '''Return lhs / rhs rounded to the given exponent.'''
        if context is not None and not context.exponent_within_range(exponent):
            return self._signal_invalid(context,
                                        f'Exponent not within exponent range: {exponent}')
        if context is None:
            scratch = PrecisionContext.for_rounding(ROUND_HALF_EVEN)
        else:
            scratch = context.with_unlimited_exponents().with_precision(0)
        result = self._divide_internal(lhs, rhs, scratch, MODE_FIXED_SCALE, exponent)
        if context is not None:
            add_flags(context, scratch.flags)
        return result

    def divide_to_integer_natural_scale(self, lhs, rhs, context=None):
        '''Return the integer part of lhs / rhs, with an exponent as close as possible to
        the exponent of lhs less that of rhs.'''
        helper = self.helper
        desired_scale = helper.exponent(lhs) - helper.exponent(rhs)
        scratch = self._integer_division_context(context)
        result = self._divide_internal(lhs, rhs, scratch, MODE_FIXED_SCALE, 0)
        failed = scratch.flags & (Flags.INVALID | Flags.DIV_BY_ZERO)
        if failed:
            add_flags(context, failed)
            return result
        result_flags = helper.flags(result)
        if result_flags & SPECIAL:
            return result
        negative = bool((helper.flags(lhs) ^ helper.flags(rhs)) & NEGATIVE)
        mantissa = helper.mantissa(result)
        if mantissa == 0:
            result = self._create(0, desired_scale, result_flags)
        elif desired_scale < 0:
            mantissa = helper.multiply_by_radix_power(mantissa, -desired_scale)
            result = self._create(mantissa, desired_scale, result_flags)
        elif desired_scale > 0:
            exponent = helper.exponent(result)
            while exponent != desired_scale:
                quotient, remainder = divmod(mantissa, self.radix)
                if remainder:
                    break
                mantissa = quotient
                exponent += 1
            result = self._create(mantissa, exponent, result_flags)
        if context is not None:
            result = self.round_to_precision(result, context)
        return self._ensure_sign(result, negative)

    def divide_to_integer_zero_scale(self, lhs, rhs, context=None):
        '''Return the integer part of lhs / rhs with exponent zero.  If it needs more digits
        than the context's precision the operation is invalid.'''
        scratch = self._integer_division_context(context)
        result = self._divide_internal(lhs, rhs, scratch, MODE_FIXED_SCALE, 0)
        failed = scratch.flags & (Flags.INVALID | Flags.DIV_BY_ZERO)
        if failed:
            add_flags(context, failed)
            return result
        if context is not None:
            scratch = context.with_blank_flags().with_unlimited_exponents()
            result = self.round_to_precision(result, scratch)
            if scratch.flags & Flags.ROUNDED:
                return self._signal_invalid(context)
        return result

    @staticmethod
    def _integer_division_context(context):
        precision = 0 if context is None else context.precision
        return PrecisionContext.for_precision_and_rounding(precision,
                                                           ROUND_DOWN).with_blank_flags()

    def remainder(self, lhs, rhs, context=None):
        '''Return lhs - rhs * n, where n is the integer part of lhs / rhs.  The result has
        the sign of lhs.'''
        scratch = None if context is None else context.with_blank_flags()
        result = self._remainder_handle_special(lhs, rhs, scratch)
        if result is not None:
            transfer_flags(context, scratch)
            return result
        result = self.divide_to_integer_zero_scale(lhs, rhs, scratch)
        if scratch is not None and scratch.flags & Flags.INVALID:
            return self._signal_invalid(context)
        result = self.add(lhs, self._negate_raw(self.multiply(result, rhs, None)), scratch)
        result = self._ensure_sign(result, self._is_negative(lhs))
        transfer_flags(context, scratch)
        return result

    def remainder_near(self, lhs, rhs, context=None):
        '''Return lhs - rhs * n, where n is lhs / rhs rounded to the nearest integer, ties
        to even.'''
        if context is None:
            scratch = PrecisionContext.for_rounding(ROUND_HALF_EVEN).with_blank_flags()
        else:
            scratch = context.with_rounding(ROUND_HALF_EVEN).with_blank_flags()
        result = self._remainder_handle_special(lhs, rhs, scratch)
        if result is not None:
            transfer_flags(context, scratch)
            return result
        result = self._divide_internal(lhs, rhs, scratch, MODE_FIXED_SCALE, 0)
        if scratch.flags & Flags.INVALID:
            return self._signal_invalid(context)
        scratch = scratch.with_blank_flags()
        result = self.round_to_precision(result, scratch)
        if scratch.flags & (Flags.ROUNDED | Flags.INVALID):
            return self._signal_invalid(context)
        scratch = (UNLIMITED if context is None else context).with_blank_flags()
        result = self.add(lhs, self._negate_raw(self.multiply(result, rhs, None)), scratch)
        if scratch.flags & Flags.INVALID:
            return self._signal_invalid(context)
        if self.helper.flags(result) == 0 and self.helper.mantissa(result) == 0:
            result = self._ensure_sign(result, self._is_negative(lhs))
        transfer_flags(context, scratch)
        return result

    def _remainder_handle_special(self, lhs, rhs, context):
        helper = self.helper
        lhs_flags = helper.flags(lhs)
        rhs_flags = helper.flags(rhs)
        if (lhs_flags | rhs_flags) & SPECIAL:
            result = self._handle_nan(lhs, rhs, context)
            if result is not None:
                return result
            if lhs_flags & INFINITY:
                return self._signal_invalid(context)
            if rhs_flags & INFINITY:
                return self.round_to_precision(lhs, context)
        if helper.mantissa(rhs) == 0:
            return self._signal_invalid(context)
        return None

    def _division_handle_special(self, lhs, rhs, context):
        helper = self.helper
        lhs_flags = helper.flags(lhs)
        rhs_flags = helper.flags(rhs)
        if not (lhs_flags | rhs_flags) & SPECIAL:
            return None
        result = self._handle_nan(lhs, rhs, context)
        if result is not None:
            return result
        sign_flag = (lhs_flags ^ rhs_flags) & NEGATIVE
        if lhs_flags & INFINITY and rhs_flags & INFINITY:
            return self._signal_invalid(context)
        if lhs_flags & INFINITY:
            return self._ensure_sign(lhs, bool(sign_flag))
        # Dividing by infinity gives the smallest possible zero
        if context is not None and context.has_exponent_range and context.precision > 0:
            context.add_flags(Flags.CLAMPED)
            return self._create(0, context.emin - context.precision + 1, sign_flag)
        return self.round_to_precision(self._create(0, 0, sign_flag), context)

    def _round_to_scale_status(self, remainder, divisor, rounding):
        '''Return (last, older) describing remainder / divisor as discarded digits, or None
        if rounding is ROUND_UNNECESSARY and the remainder is not zero.'''
        if remainder == 0:
            return 0, 0
        if rounding in (ROUND_HALF_DOWN, ROUND_HALF_UP, ROUND_HALF_EVEN):
            half = divisor >> 1
            if remainder == half and divisor & 1 == 0:
                return self.radix // 2, 0
            if remainder > half:
                return self.radix // 2, 1
            return 0, 1
        if rounding == ROUND_UNNECESSARY:
            return None
        return 1, 1

    def _round_to_scale(self, mantissa, remainder, divisor, exponent, shift, negative, context):
        '''Round the quotient mantissa, with remainder / divisor left over, to the fixed
        exponent after discarding shift further digits.'''
        rounding = ROUND_HALF_EVEN if context is None else context.rounding
        status = self._round_to_scale_status(remainder, divisor, rounding)
        if status is None:
            return self._signal_invalid(context, 'Rounding was required')
        last, older = status
        flags = Flags(0)
        new_mantissa = mantissa
        if shift == 0:
            if last or older:
                flags |= Flags.INEXACT | Flags.ROUNDED
                if round_up(rounding, self.radix, last, older, negative, new_mantissa):
                    new_mantissa += 1
        else:
            accum = self.helper.create_shift_accumulator_with_digits(mantissa, last, older)
            accum.shift_right(shift)
            new_mantissa = accum.shifted_int
            if accum.discarded_count or not accum.is_exact():
                if mantissa:
                    flags |= Flags.ROUNDED
                if not accum.is_exact():
                    flags |= Flags.INEXACT | Flags.ROUNDED
                    if rounding == ROUND_UNNECESSARY:
                        return self._signal_invalid(context, 'Rounding was required')
                if round_up(rounding, self.radix, accum.last_discarded,
                            accum.older_discarded, negative, new_mantissa):
                    new_mantissa += 1
        add_flags(context, flags)
        return self._create(new_mantissa, exponent, NEGATIVE if negative else 0)

    def _divide_internal(self, lhs, rhs, context, mode, desired_exponent):
        result = self._division_handle_special(lhs, rhs, context)
        if result is not None:
            return result
        helper = self.helper
        radix = self.radix
        lhs_flags = helper.flags(lhs)
        rhs_flags = helper.flags(rhs)
        negative = bool((lhs_flags ^ rhs_flags) & NEGATIVE)
        sign_flag = NEGATIVE if negative else 0
        if helper.sign(rhs) == 0:
            if helper.sign(lhs) == 0:
                return self._signal_invalid(context)
            return self._signal_divide_by_zero(context, negative)

        natural_exponent = helper.exponent(lhs) - helper.exponent(rhs)
        if helper.sign(lhs) == 0:
            if mode == MODE_FIXED_SCALE:
                return self._create(0, desired_exponent, sign_flag)
            return self.round_to_precision(self._create(0, natural_exponent, sign_flag),
                                           context)

        dividend = helper.mantissa(lhs)
        divisor = helper.mantissa(rhs)
        if mode == MODE_FIXED_SCALE:
            if context is not None and desired_exponent > natural_exponent:
                context.add_flags(Flags.ROUNDED)
            if natural_exponent <= desired_exponent:
                quotient, remainder = divmod(dividend, divisor)
                return self._round_to_scale(quotient, remainder, divisor, desired_exponent,
                                            desired_exponent - natural_exponent, negative,
                                            context)
            if (context is not None and context.precision
                    and natural_exponent - 8 > context.precision):
                return self._signal_invalid(context, "Result can't fit the precision")
            dividend = helper.multiply_by_radix_power(dividend,
                                                      natural_exponent - desired_exponent)
            quotient, remainder = divmod(dividend, divisor)
            return self._round_to_scale(quotient, remainder, divisor, desired_exponent, 0,
                                        negative, context)

        quotient, remainder = divmod(dividend, divisor)
        if remainder == 0:
            return self.round_to_precision(self._create(quotient, natural_exponent, sign_flag),
                                           context)

        if context is not None and context.precision:
            # Enough quotient digits for the precision, plus one to round with
            precision = context.precision
            shift = precision
            dividend_digits = self._digit_count(dividend)
            divisor_digits = self._digit_count(divisor)
            if dividend_digits <= divisor_digits:
                shift += divisor_digits - dividend_digits + 1
            elif dividend_digits - divisor_digits <= precision:
                shift -= dividend_digits - divisor_digits - 1
            else:
                shift = 0
            quotient, remainder = divmod(helper.multiply_by_radix_power(dividend, shift),
                                         divisor)
            status = self._round_to_scale_status(remainder, divisor, context.rounding)
            if status is None:
                return self._signal_invalid(context, 'Rounding was required')
            scratch = context.with_blank_flags()
            result = self._create(quotient, natural_exponent - shift, sign_flag)
            result = self._round_to_precision_internal(result, status[0], status[1], None,
                                                       False, False, scratch)
            if scratch.flags & Flags.INEXACT:
                context.add_flags(scratch.flags)
                return result
            # Exact after all; give the quotient its ideal exponent
            context.add_flags(scratch.flags & ~Flags.ROUNDED)
            return self._reduce_to_precision_and_ideal_exponent(
                result, context, None if remainder == 0 else precision, natural_exponent)

        # Unlimited precision: the quotient must terminate
        if not helper.has_terminating_radix_expansion(dividend, divisor):
            return self._signal_invalid(context, 'Result would have a nonterminating expansion')
        adjust = 0
        dividend_digits = self._digit_count(dividend)
        divisor_digits = self._digit_count(divisor)
        if dividend < divisor:
            diff = max(divisor_digits - dividend_digits, 1)
            dividend = helper.multiply_by_radix_power(dividend, diff)
            adjust += diff
            if dividend < divisor:
                dividend *= radix
                adjust += 1
        elif dividend > divisor:
            diff = dividend_digits - divisor_digits
            divisor = helper.multiply_by_radix_power(divisor, diff)
            adjust -= diff
            if dividend < divisor:
                divisor //= radix
                adjust += 1
        quotient = 0
        while True:
            count, dividend = divmod(dividend, divisor)
            quotient += count
            if dividend == 0 and adjust >= 0:
                break
            adjust += 1
            quotient *= radix
            dividend *= radix
        result = self._create(quotient, natural_exponent - adjust, sign_flag)
        return self.round_to_precision(result, context)

    #
    # Transcendental functions
    #

    def _unbounded_invalid(self, context):
        '''Operations that cannot be exact need a context with a precision.'''
        if context is None:
            return self._signal_invalid(context, 'context is None')
        if context.precision == 0:
            return self._signal_invalid(context, 'context has unlimited precision')
        return None

    def _working_context(self, context, extra_digits):
        return context.with_precision(context.precision + extra_digits).with_rounding(
            ROUND_05UP)

    def pi(self, context=None):
        '''Return pi rounded to context, by the Gauss-Legendre iteration.'''
        result = self._unbounded_invalid(context)
        if result is not None:
            return result
        helper = self.helper
        working = self._working_context(context, 10)
        a = helper.value_of(1)
        two = helper.value_of(2)
        four = helper.value_of(4)
        b = self.divide(a, self.square_root(two, working), working)
        half = self._create(self.radix // 2, -1, 0)
        t = self.divide(a, four, working)
        power_of_two = 1
        convergence = Convergence(self.compare_to)
        guess = None
        while True:
            last_guess = guess
            a_plus_b = self.add(a, b, None)
            new_a = self.multiply(a_plus_b, half, None)
            a_minus_new_a = self.add(a, self._negate_raw(new_a), None)
            if a != b:
                b = self.square_root(self.multiply(a, b, working), working)
            a = new_a
            guess = self.multiply(a_plus_b, a_plus_b, None)
            guess = self.divide(guess, self.multiply(t, four, None), working)
            if last_guess is not None and convergence.converged(last_guess, guess):
                break
            term = self.multiply(a_minus_new_a, a_minus_new_a, None)
            term = self.multiply(term, self._create(power_of_two, 0, 0), None)
            t = self.add(t, self._negate_raw(term), working)
            power_of_two <<= 1
        logger.debug('pi converged after %d iterations', convergence.iterations)
        return self.round_to_precision(guess, context)

    def _ln_series(self, value, context):
        '''ln(value) by the series -z - z**2/2 - z**3/3 ..., where z = 1 - value; converges
        for 0 < value < 2.'''
        helper = self.helper
        working = self._working_context(context, 6)
        z = self.add(self._negate_raw(value), helper.value_of(1), None)
        z_power = self.multiply(z, z, working)
        guess = self._negate_raw(z)
        denominator = 2
        convergence = Convergence(self.compare_to)
        while True:
            term = self.divide(z_power, self._create(denominator, 0, 0), working)
            new_guess = self.add(guess, self._negate_raw(term), working)
            done = convergence.converged(guess, new_guess)
            guess = new_guess
            if done:
                break
            z_power = self.multiply(z_power, z, working)
            denominator += 1
        logger.debug('ln series converged after %d iterations', convergence.iterations)
        return self.round_to_precision(guess, context)

    def _exp_series(self, value, context):
        '''exp(value) by its Taylor series.'''
        helper = self.helper
        working = self._working_context(context, 6)
        n = 2
        factorial = 1
        guess = self.add(helper.value_of(1), value, None)
        power = value
        convergence = Convergence(self.compare_to)
        while True:
            power = self.multiply(power, value, working)
            factorial *= n
            term = self.divide(power, self._create(factorial, 0, 0), working)
            new_guess = self.add(guess, term, working)
            done = convergence.converged(guess, new_guess)
            guess = new_guess
            if done:
                break
            n += 1
        logger.debug('exp series converged after %d iterations', convergence.iterations)
        return self.round_to_precision(guess, context)

    def _power_integral(self, value, power, context):
        '''Return value ** power for an integer power.'''
        helper = self.helper
        one = helper.value_of(1)
        if power == 0:
            return self.round_to_precision(one, context)
        if power == 1:
            return self.round_to_precision(value, context)
        if power == 2:
            return self.multiply(value, value, context)
        if power == 3:
            return self.multiply(value, self.multiply(value, value, None), context)

        if context is None or context.precision == 0:
            # Exact: only positive powers get here
            result = one
            while power:
                if power & 1:
                    result = self.multiply(result, value, None)
                power >>= 1
                if power:
                    value = self.multiply(value, value, None)
            return self.round_to_precision(result, context)

        negative = self._is_negative(value) and power & 1
        extra_digits = self._digit_count(abs(power)) + 6
        working = self._working_context(context, extra_digits).with_blank_flags()
        if power < 0:
            # Use the reciprocal for negative powers
            value = self.divide(one, value, working)
            power = -power
        result = one
        while power:
            if power & 1:
                result = self.multiply(result, value, working)
                if working.flags & Flags.OVERFLOW:
                    return self._overflow(context, negative, context.precision)
            power >>= 1
            if power:
                working.flags = Flags(0)
                value = self.multiply(value, value, working)
                if working.flags & Flags.OVERFLOW:
                    return self._overflow(context, negative, context.precision)
        return self.round_to_precision(result, context)

    def _extend_precision(self, value, context):
        '''Pad value with zeroes to the full precision of context, as an inexact result.'''
        if context is None or context.precision == 0:
            return self.round_to_precision(value, context)
        mantissa = self.helper.mantissa(value)
        exponent = self.helper.exponent(value)
        digits = self._digit_count(mantissa)
        if digits < context.precision:
            mantissa = self.helper.multiply_by_radix_power(mantissa, context.precision - digits)
            exponent -= context.precision - digits
        context.add_flags(Flags.ROUNDED | Flags.INEXACT)
        return self.round_to_precision(self._create(mantissa, exponent, 0), context)

    def _is_within_exponent_range_for_pow(self, value, context):
        if context is None or not context.has_exponent_range:
            return True
        helper = self.helper
        adjusted = helper.exponent(value) + self._digit_count(helper.mantissa(value)) - 1
        if adjusted < 0:
            adjusted = -(-adjusted // 2)
        return context.emin <= adjusted <= context.emax

    def power(self, value, power, context=None):
        '''Return value ** power.  Non-integral and negative powers need a context with a
        precision.'''
        result = self._handle_nan(value, power, context)
        if result is not None:
            return result
        helper = self.helper
        value_sign = helper.sign(value)
        power_sign = helper.sign(power)
        value_flags = helper.flags(value)
        power_flags = helper.flags(power)
        one = helper.value_of(1)
        zero = self._create(0, 0, 0)
        if value_sign == 0 and power_sign == 0:
            return self._signal_invalid(context)
        if value_sign < 0 and power_flags & INFINITY:
            return self._signal_invalid(context)
        if value_sign > 0 and not value_flags & INFINITY and power_flags & INFINITY:
            cmp = self.compare_to(value, one)
            if cmp < 0:
                if power_sign < 0:
                    return self._create(0, 0, INFINITY)
                return self.round_to_precision(zero, context)
            if cmp == 0:
                return self._extend_precision(one, context)
            if power_sign > 0:
                return power
            return self.round_to_precision(zero, context)

        power_exponent = helper.exponent(power)
        power_int = None
        if power_exponent >= 0:
            is_integral = True
            # Multiples of an even radix are even
            is_odd = power_exponent == 0 and bool(helper.mantissa(power) & 1)
        else:
            power_int = self.quantize(power, zero, PrecisionContext.for_rounding(ROUND_DOWN))
            is_integral = self.compare_to(power_int, power) == 0
            is_odd = bool(helper.mantissa(power_int) & 1)

        result_negative = (bool(value_flags & NEGATIVE) and not power_flags & INFINITY
                           and is_integral and is_odd)
        result_flag = NEGATIVE if result_negative else 0
        if value_sign == 0:
            if power_sign < 0:
                return self._create(0, 0, INFINITY | result_flag)
            return self.round_to_precision(self._create(0, 0, result_flag), context)
        if (not is_integral or power_sign < 0) and (context is None or context.precision == 0):
            return self._signal_invalid(
                context, 'context has unlimited precision, and the power is not a '
                'non-negative integer')
        if value_sign < 0 and not is_integral:
            return self._signal_invalid(context)
        if value_flags & INFINITY:
            if power_sign > 0:
                result = self._create(0, 0, result_flag | INFINITY)
            elif power_sign < 0:
                result = self._create(0, 0, result_flag)
            else:
                result = one
            return self.round_to_precision(result, context)
        if power_sign == 0:
            return self.round_to_precision(one, context)

        if is_integral:
            if self.compare_to(value, one) == 0:
                if not self._is_within_exponent_range_for_pow(power, context):
                    return self._signal_invalid(context)
                return one
            if power_int is None:
                integer = helper.multiply_by_radix_power(helper.mantissa(power),
                                                         power_exponent)
            else:
                integer = helper.mantissa(power_int)
            if power_sign < 0:
                integer = -integer
            return self._power_integral(value, integer, context)

        if self.compare_to(value, one) == 0 and power_sign > 0:
            if not self._is_within_exponent_range_for_pow(power, context):
                return self._signal_invalid(context)
            return self._extend_precision(one, context)

        # value ** power == exp(ln(value) * power)
        working = self._working_context(context, 10).with_blank_flags()
        result = self.ln(value, working)
        result = self.multiply(result, power, None)
        working = context.with_blank_flags()
        result = self.exp(result, working)
        if working.flags & (Flags.CLAMPED | Flags.OVERFLOW):
            if not self._is_within_exponent_range_for_pow(value, context):
                return self._signal_invalid(context)
            if not self._is_within_exponent_range_for_pow(power, context):
                return self._signal_invalid(context)
        context.add_flags(working.flags)
        return result

    def log10(self, value, context):
        '''Return the base-10 logarithm of value.'''
        result = self._unbounded_invalid(context)
        if result is not None:
            return result
        result = self._single_nan(value, context)
        if result is not None:
            return result
        helper = self.helper
        flags = helper.flags(value)
        sign = helper.sign(value)
        if sign < 0:
            return self._signal_invalid(context)
        if flags & INFINITY:
            return value
        scratch = context.with_blank_flags()
        one = helper.value_of(1)
        if sign == 0:
            result = self.round_to_precision(self._create(0, 0, NEGATIVE | INFINITY), scratch)
        elif self.compare_to(value, one) == 0:
            result = self.round_to_precision(self._create(0, 0, 0), scratch)
        else:
            exponent = helper.exponent(value)
            mantissa = helper.mantissa(value)
            if self.radix == 10:
                # Powers of ten have exact logarithms
                while mantissa % 10 == 0:
                    mantissa //= 10
                    exponent += 1
            if self.radix == 10 and mantissa == 1:
                result = self.round_to_precision(
                    self._create(abs(exponent), 0, NEGATIVE if exponent < 0 else 0), scratch)
            else:
                working = self._working_context(context, 10).with_blank_flags()
                ten = self._create(10, 0, 0)
                result = self.divide(self.ln(value, working), self.ln(ten, working), context)
        context.add_flags(scratch.flags)
        return result

    def ln(self, value, context):
        '''Return the natural logarithm of value.'''
        result = self._unbounded_invalid(context)
        if result is not None:
            return result
        result = self._single_nan(value, context)
        if result is not None:
            return result
        helper = self.helper
        flags = helper.flags(value)
        sign = helper.sign(value)
        if sign < 0:
            return self._signal_invalid(context)
        if flags & INFINITY:
            return value
        if sign == 0:
            return self._create(0, 0, NEGATIVE | INFINITY)

        scratch = context.with_blank_flags()
        one = helper.value_of(1)
        cmp = self.compare_to(value, one)
        if cmp == 0:
            result = self.round_to_precision(self._create(0, 0, 0), scratch)
            context.add_flags(scratch.flags)
            return result

        extra_digits = self._digit_count(helper.mantissa(value)) + 6
        working = self._working_context(context, extra_digits).with_blank_flags()
        if cmp < 0:
            quarter = self.divide(one, helper.value_of(4), scratch)
            if self.compare_to(value, quarter) <= 0:
                # Take square roots until the value is at least one half, then scale the
                # logarithm back up
                half = self.multiply(quarter, helper.value_of(2), None)
                roots = 0
                while self.compare_to(value, half) < 0:
                    value = self.square_root(value, working.with_unlimited_exponents())
                    roots += 1
                result = self._ln_series(value, working)
                result = self.multiply(result, self._create(1 << roots, 0, 0), scratch)
            else:
                result = self._ln_series(value, scratch)
        else:
            # ln(value) == -ln(1 / value)
            two = helper.value_of(2)
            roots = 0
            while self.compare_to(value, two) >= 0:
                value = self.square_root(value, working.with_unlimited_exponents())
                roots += 1
            result = self.divide(one, value, working)
            result = self._negate_raw(self._ln_series(result, working))
            if roots:
                result = self.multiply(result, self._create(1 << roots, 0, 0), scratch)
            else:
                result = self.round_to_precision(result, scratch)
        scratch.add_flags(Flags.INEXACT | Flags.ROUNDED)
        context.add_flags(scratch.flags)
        return result

    def exp(self, value, context):
        '''Return e ** value.'''
        result = self._unbounded_invalid(context)
        if result is not None:
            return result
        result = self._single_nan(value, context)
        if result is not None:
            return result
        helper = self.helper
        flags = helper.flags(value)
        scratch = context.with_blank_flags()
        if flags & INFINITY:
            if flags & NEGATIVE:
                result = self.round_to_precision(self._create(0, 0, 0), scratch)
                context.add_flags(scratch.flags)
                return result
            return value

        sign = helper.sign(value)
        one = helper.value_of(1)
        # Intermediate results round ROUND_05UP and are rounded again to context.  A value
        # within the working error of a tie at the context's precision can round the wrong
        # way.
        working = self._working_context(context, 10).with_blank_flags()
        if sign == 0:
            result = self.round_to_precision(one, scratch)
        elif sign < 0:
            # exp(-x) == 1 / exp(x)
            positive = self._negate_raw(value)
            result = self.exp(positive, working)
            if working.flags & Flags.OVERFLOW or not self._is_finite(result):
                working = working.with_unlimited_exponents().with_blank_flags()
                result = self.exp(positive, working)
            result = self.divide(one, result, scratch)
            context.add_flags(Flags.INEXACT | Flags.ROUNDED)
        elif self.compare_to(value, one) < 0:
            result = self._exp_series(value, scratch)
            context.add_flags(Flags.INEXACT | Flags.ROUNDED)
        else:
            # exp(n + f) == exp(1 + f / n) ** n, with n the integer part of value
            integer_part = self.quantize(value, one, PrecisionContext.for_rounding(ROUND_DOWN))
            fraction = self.add(value, self._negate_raw(integer_part), None)
            fraction = self.add(one, self.divide(fraction, integer_part, working), None)
            working.flags = Flags(0)
            result = self._exp_series(fraction, working)
            if working.flags & Flags.UNDERFLOW:
                context.add_flags(working.flags)
            context.add_flags(Flags.INEXACT | Flags.ROUNDED)
            result = self._power_integral(result, helper.mantissa(integer_part), working)
            if working.flags & Flags.OVERFLOW:
                context.add_flags(working.flags)
            result = self.round_to_precision(result, scratch)
        context.add_flags(scratch.flags)
        return result

    def square_root(self, value, context):
        '''Return the square root of value.  An exact root has the exponent closest to half
        the exponent of value.'''
        result = self._unbounded_invalid(context)
        if result is not None:
            return result
        result = self._square_root_handle_special(value, context)
        if result is not None:
            return result
        helper = self.helper
        scratch = context.with_blank_flags()
        exponent = helper.exponent(value)
        ideal_exponent = exponent // 2
        if helper.sign(value) == 0:
            result = self.round_to_precision(
                self._create(0, ideal_exponent, helper.flags(value)), scratch)
            context.add_flags(scratch.flags)
            return result

        mantissa = helper.mantissa(value)
        digits = self._digit_count(mantissa)
        target_precision = context.precision
        precision = target_precision * 2 + 2
        rounded = False
        if digits < precision:
            # Pad to twice the precision, leaving an even exponent
            diff = precision - digits
            if (diff & 1) != (exponent & 1):
                diff += 1
            exponent -= diff
            mantissa = helper.multiply_by_radix_power(mantissa, diff)
        elif exponent & 1:
            mantissa *= self.radix
            exponent -= 1
        root = isqrt(mantissa)
        inexact = root * root != mantissa
        if inexact:
            rounded = True
        result = self._create(root, exponent // 2, 0)
        result = self._round_to_precision_internal(result, 0, 1 if inexact else 0, None, False,
                                                   False, scratch)
        if not scratch.flags & Flags.UNDERFLOW:
            if helper.exponent(result) <= ideal_exponent or not self._is_finite(result):
                result = self._reduce_to_precision_and_ideal_exponent(
                    result, scratch if context.has_exponent_range else None,
                    target_precision if inexact else None, ideal_exponent)
        if (context.has_flags and context.clamp_normal_exponents
                and helper.exponent(result) != ideal_exponent
                and not scratch.flags & Flags.INEXACT):
            context.add_flags(Flags.CLAMPED)
        if scratch.flags & Flags.OVERFLOW:
            rounded = True
        if rounded or helper.exponent(result) > ideal_exponent:
            scratch.flags |= Flags.ROUNDED
        else:
            scratch.flags &= ~Flags.ROUNDED
        if inexact:
            scratch.flags |= Flags.ROUNDED | Flags.INEXACT
        context.add_flags(scratch.flags)
        return result

    def _square_root_handle_special(self, value, context):
        flags = self.helper.flags(value)
        if flags & SPECIAL:
            result = self._single_nan(value, context)
            if result is not None:
                return result
            if flags & NEGATIVE:
                return self._signal_invalid(context)
            return value
        if self.helper.sign(value) < 0:
            return self._signal_invalid(context)
        return None

    #
    # Next representable numbers
    #

    def _next_context_invalid(self, context):
        result = self._unbounded_invalid(context)
        if result is None and not context.has_exponent_range:
            result = self._signal_invalid(context, 'context has no exponent range')
        return result

    def _quantum_exponent(self, value, context, below_range):
        '''The exponent of a quantum small enough to nudge value to its neighbour.'''
        min_exponent = context.emin - context.precision + 1
        exponent = self.helper.exponent(value)
        if exponent < min_exponent or (below_range and exponent == min_exponent):
            return exponent - 2
        return min_exponent

    def next_minus(self, value, context):
        '''Return the largest representable number less than value.'''
        result = self._next_context_invalid(context)
        if result is not None:
            return result
        result = self._single_nan(value, context)
        if result is not None:
            return result
        flags = self.helper.flags(value)
        if flags & INFINITY:
            if flags & NEGATIVE:
                return value
            return self._largest_finite(context, False)
        quantum = self._create(1, self._quantum_exponent(value, context, True), NEGATIVE)
        return self.add(value, quantum, context.with_rounding(ROUND_FLOOR))

    def next_plus(self, value, context):
        '''Return the smallest representable number greater than value.'''
        result = self._next_context_invalid(context)
        if result is not None:
            return result
        result = self._single_nan(value, context)
        if result is not None:
            return result
        flags = self.helper.flags(value)
        if flags & INFINITY:
            if flags & NEGATIVE:
                return self._largest_finite(context, True)
            return value
        quantum = self._create(1, self._quantum_exponent(value, context, True), 0)
        return self.add(value, quantum, context.with_rounding(ROUND_CEILING))

    def next_toward(self, value, other, context):
        '''Return the representable number next to value in the direction of other.
        Only Overflow and Underflow, with their companions, are raised.'''
        result = self._next_context_invalid(context)
        if result is not None:
            return result
        helper = self.helper
        value_flags = helper.flags(value)
        other_flags = helper.flags(other)
        if (value_flags | other_flags) & SPECIAL:
            result = self._handle_nan(value, other, context)
            if result is not None:
                return result
        cmp = self.compare_to(value, other)
        if cmp == 0:
            return self.round_to_precision(
                self._ensure_sign(value, bool(other_flags & NEGATIVE)), context.with_no_flags())
        if value_flags & INFINITY:
            kind = INFINITY | NEGATIVE
            if value_flags & kind == other_flags & kind:
                return value
            return self._largest_finite(context, bool(value_flags & NEGATIVE))
        # Aim below the exponent range so underflow is flagged
        exponent = self._quantum_exponent(value, context, False)
        if exponent == context.emin - context.precision + 1:
            exponent -= 2
        quantum = self._create(1, exponent, NEGATIVE if cmp > 0 else 0)
        scratch = context.with_rounding(ROUND_FLOOR if cmp > 0 else ROUND_CEILING)
        scratch = scratch.with_blank_flags()
        result = self.add(value, quantum, scratch)
        if not scratch.flags & (Flags.OVERFLOW | Flags.UNDERFLOW):
            scratch.flags = Flags(0)
        if scratch.flags & Flags.UNDERFLOW:
            smallest_normal = helper.multiply_by_radix_power(1, context.precision - 1)
            if helper.mantissa(result) >= smallest_normal or context.precision == 1:
                scratch.flags = Flags(0)
        context.add_flags(scratch.flags)
        return result

    #
    # Comparisons
    #

    @staticmethod
    def _compare_infinities(lhs_flags, rhs_flags):
        '''Return the ordering of two values at least one of which is infinite, or None if
        neither is.'''
        kind = INFINITY | NEGATIVE
        if lhs_flags & INFINITY:
            if lhs_flags & kind == rhs_flags & kind:
                return 0
            return -1 if lhs_flags & NEGATIVE else 1
        if rhs_flags & INFINITY:
            if lhs_flags & kind == rhs_flags & kind:
                return 0
            return 1 if rhs_flags & NEGATIVE else -1
        return None

    def compare_to(self, lhs, rhs):
        '''Return -1, 0 or 1 as lhs is less than, equal to or greater than rhs.  NaNs are
        equal to each other and greater than everything else; None is less than
        everything.'''
        if rhs is None:
            return 1
        helper = self.helper
        lhs_flags = helper.flags(lhs)
        rhs_flags = helper.flags(rhs)
        if lhs_flags & NAN:
            return 0 if rhs_flags & NAN else 1
        if rhs_flags & NAN:
            return -1
        cmp = self._compare_infinities(lhs_flags, rhs_flags)
        if cmp is not None:
            return cmp

        lhs_sign = helper.sign(lhs)
        rhs_sign = helper.sign(rhs)
        if lhs_sign != rhs_sign:
            return -1 if lhs_sign < rhs_sign else 1
        if lhs_sign == 0:
            return 0
        lhs_mantissa = helper.mantissa(lhs)
        rhs_mantissa = helper.mantissa(rhs)
        lhs_exponent = helper.exponent(lhs)
        rhs_exponent = helper.exponent(rhs)
        if lhs_exponent != rhs_exponent:
            # Different adjusted exponents decide it without scaling either mantissa
            lhs_adjusted = lhs_exponent + self._digit_count(lhs_mantissa)
            rhs_adjusted = rhs_exponent + self._digit_count(rhs_mantissa)
            if lhs_adjusted != rhs_adjusted:
                cmp = 1 if lhs_adjusted > rhs_adjusted else -1
                return -cmp if lhs_sign < 0 else cmp
            if lhs_exponent > rhs_exponent:
                lhs_mantissa = self._rescale(lhs_mantissa, lhs_exponent, rhs_exponent)
            else:
                rhs_mantissa = self._rescale(rhs_mantissa, lhs_exponent, rhs_exponent)
        cmp = (lhs_mantissa > rhs_mantissa) - (lhs_mantissa < rhs_mantissa)
        return -cmp if lhs_sign < 0 else cmp

    def compare_to_with_context(self, lhs, rhs, treat_quiet_nans_as_signaling, context=None):
        '''Compare lhs and rhs, returning -1, 0 or 1 as a number, or a NaN if either
        operand is one.'''
        if rhs is None:
            return self._signal_invalid(context)
        helper = self.helper
        lhs_flags = helper.flags(lhs)
        rhs_flags = helper.flags(rhs)
        if (lhs_flags | rhs_flags) & SPECIAL:
            if lhs_flags & SIGNALING_NAN:
                return self._signaling_nan_invalid(lhs, context)
            if rhs_flags & SIGNALING_NAN:
                return self._signaling_nan_invalid(rhs, context)
            if treat_quiet_nans_as_signaling:
                if lhs_flags & QUIET_NAN:
                    return self._signaling_nan_invalid(lhs, context)
                if rhs_flags & QUIET_NAN:
                    return self._signaling_nan_invalid(rhs, context)
            else:
                if lhs_flags & QUIET_NAN:
                    return self._return_quiet_nan(lhs, context)
                if rhs_flags & QUIET_NAN:
                    return self._return_quiet_nan(rhs, context)
        return self._value_of(self.compare_to(lhs, rhs), None)

    #
    # Minimum and maximum
    #

    def _min_max_handle_special(self, lhs, rhs, context, is_min, compare_abs):
        '''Special values for min and max.  A quiet NaN loses to a number.'''
        helper = self.helper
        lhs_flags = helper.flags(lhs)
        rhs_flags = helper.flags(rhs)
        if not (lhs_flags | rhs_flags) & SPECIAL:
            return None
        if lhs_flags & SIGNALING_NAN:
            return self._signaling_nan_invalid(lhs, context)
        if rhs_flags & SIGNALING_NAN:
            return self._signaling_nan_invalid(rhs, context)
        if lhs_flags & QUIET_NAN:
            if rhs_flags & QUIET_NAN:
                return self._return_quiet_nan(lhs, context)
            return self.round_to_precision(rhs, context)
        if rhs_flags & QUIET_NAN:
            return self.round_to_precision(lhs, context)
        if lhs_flags & INFINITY:
            if compare_abs and not rhs_flags & INFINITY:
                return self.round_to_precision(rhs, context) if is_min else lhs
            if bool(lhs_flags & NEGATIVE) == is_min:
                return lhs
            return self.round_to_precision(rhs, context)
        if rhs_flags & INFINITY:
            if compare_abs:
                return self.round_to_precision(lhs, context) if is_min else rhs
            if bool(rhs_flags & NEGATIVE) == is_min:
                return rhs
            return self.round_to_precision(lhs, context)
        return None

    @staticmethod
    def _check_operands(lhs, rhs):
        if lhs is None:
            raise TypeError('lhs cannot be None')
        if rhs is None:
            raise TypeError('rhs cannot be None')

    def max(self, lhs, rhs, context=None):
        '''Return the greater of lhs and rhs.  Of equal values the positive, then the one
        with the greater exponent (the lesser if negative) is chosen.'''
        self._check_operands(lhs, rhs)
        result = self._min_max_handle_special(lhs, rhs, context, False, False)
        if result is not None:
            return result
        cmp = self.compare_to(lhs, rhs)
        if cmp != 0:
            return self.round_to_precision(rhs if cmp < 0 else lhs, context)
        helper = self.helper
        lhs_negative = self._is_negative(lhs)
        if lhs_negative != self._is_negative(rhs):
            return self.round_to_precision(rhs if lhs_negative else lhs, context)
        lhs_greater = helper.exponent(lhs) > helper.exponent(rhs)
        if lhs_greater != lhs_negative:
            return self.round_to_precision(lhs, context)
        return self.round_to_precision(rhs, context)

    def min(self, lhs, rhs, context=None):
        '''Return the lesser of lhs and rhs.  Of equal values the negative, then the one
        with the lesser exponent (the greater if negative) is chosen.'''
        self._check_operands(lhs, rhs)
        result = self._min_max_handle_special(lhs, rhs, context, True, False)
        if result is not None:
            return result
        cmp = self.compare_to(lhs, rhs)
        if cmp != 0:
            return self.round_to_precision(rhs if cmp > 0 else lhs, context)
        helper = self.helper
        lhs_negative = self._is_negative(lhs)
        if lhs_negative != self._is_negative(rhs):
            return self.round_to_precision(lhs if lhs_negative else rhs, context)
        lhs_greater = helper.exponent(lhs) > helper.exponent(rhs)
        if lhs_greater != lhs_negative:
            return self.round_to_precision(rhs, context)
        return self.round_to_precision(lhs, context)

    def max_magnitude(self, lhs, rhs, context=None):
        self._check_operands(lhs, rhs)
        result = self._min_max_handle_special(lhs, rhs, context, False, True)
        if result is not None:
            return result
        cmp = self.compare_to(self._abs_raw(lhs), self._abs_raw(rhs))
        if cmp == 0:
            return self.max(lhs, rhs, context)
        return self.round_to_precision(lhs if cmp > 0 else rhs, context)

    def min_magnitude(self, lhs, rhs, context=None):
        self._check_operands(lhs, rhs)
        result = self._min_max_handle_special(lhs, rhs, context, True, True)
        if result is not None:
            return result
        cmp = self.compare_to(self._abs_raw(lhs), self._abs_raw(rhs))
        if cmp == 0:
            return self.min(lhs, rhs, context)
        return self.round_to_precision(lhs if cmp < 0 else rhs, context)
