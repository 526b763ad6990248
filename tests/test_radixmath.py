import logging

import pytest

from radixmath import *


NEGATIVE = NumberFlags.NEGATIVE
INFINITY = NumberFlags.INFINITY
QUIET_NAN = NumberFlags.QUIET_NAN
SIGNALING_NAN = NumberFlags.SIGNALING_NAN
ROUNDING_FLAGS = Flags.INEXACT | Flags.ROUNDED

math = RadixMath(DecimalHelper)
binary_math = RadixMath(BinaryHelper)
finite_math = RadixMath(RadixNumberHelper(10, ArithmeticSupport.FINITE_ONLY))


def dec(text):
    '''Read a decimal RadixNumber from text such as -1.25E3, Inf, NaN7 or sNaN.'''
    flags = 0
    if text[0] in '+-':
        if text[0] == '-':
            flags |= NEGATIVE
        text = text[1:]
    if text == 'Inf':
        return RadixNumber(0, 0, flags | INFINITY)
    if text.startswith('sNaN'):
        return RadixNumber(int(text[4:] or 0), 0, flags | SIGNALING_NAN)
    if text.startswith('NaN'):
        return RadixNumber(int(text[3:] or 0), 0, flags | QUIET_NAN)
    digits, _, exponent = text.upper().partition('E')
    whole, _, fraction = digits.partition('.')
    return RadixNumber(int(whole + fraction), int(exponent or 0) - len(fraction), flags)


def make_context(precision=0, rounding=ROUND_HALF_UP, emin=None, emax=None, clamp=False):
    context = PrecisionContext.for_precision_and_rounding(precision, rounding)
    if emin is not None:
        context = context.with_exponent_range(emin, emax)
    return context.with_exponent_clamp(clamp).with_blank_flags()


@pytest.fixture
def context():
    with local_context(make_context(9)) as context:
        yield context


class TestRoundUp:

    @pytest.mark.parametrize('rounding, last, older, negative, retained, result', (
        (ROUND_HALF_EVEN, 5, 0, False, 12, False),
        (ROUND_HALF_EVEN, 5, 0, False, 13, True),
        (ROUND_HALF_EVEN, 5, 1, False, 12, True),
        (ROUND_HALF_EVEN, 6, 0, False, 12, True),
        (ROUND_HALF_UP, 5, 0, False, 12, True),
        (ROUND_HALF_UP, 4, 1, False, 12, False),
        (ROUND_HALF_DOWN, 5, 0, False, 13, False),
        (ROUND_HALF_DOWN, 5, 1, False, 12, True),
        (ROUND_CEILING, 0, 1, False, 12, True),
        (ROUND_CEILING, 9, 1, True, 12, False),
        (ROUND_FLOOR, 0, 1, True, 12, True),
        (ROUND_FLOOR, 9, 1, False, 12, False),
        (ROUND_DOWN, 9, 1, False, 12, False),
        (ROUND_UP, 0, 1, True, 12, True),
        (ROUND_UP, 0, 0, True, 12, False),
        (ROUND_05UP, 3, 0, False, 10, True),
        (ROUND_05UP, 3, 0, False, 15, True),
        (ROUND_05UP, 3, 0, False, 11, False),
        (ROUND_UNNECESSARY, 9, 1, False, 12, False),
    ))
    def test_decimal(self, rounding, last, older, negative, retained, result):
        assert round_up(rounding, 10, last, older, negative, retained) is result

    def test_05up_binary(self):
        assert round_up(ROUND_05UP, 2, 1, 0, False, 1)
        assert not round_up(ROUND_05UP, 2, 0, 0, False, 1)


class TestRounding:

    @pytest.mark.parametrize('rounding, positive, negative', (
        (ROUND_HALF_EVEN, '12E1', '-12E1'),
        (ROUND_HALF_UP, '13E1', '-13E1'),
        (ROUND_HALF_DOWN, '12E1', '-12E1'),
        (ROUND_CEILING, '13E1', '-12E1'),
        (ROUND_FLOOR, '12E1', '-13E1'),
        (ROUND_DOWN, '12E1', '-12E1'),
        (ROUND_UP, '13E1', '-13E1'),
        (ROUND_05UP, '12E1', '-12E1'),
    ))
    def test_roundings(self, rounding, positive, negative):
        context = make_context(2, rounding)
        assert math.round_to_precision(dec('125'), context) == dec(positive)
        assert context.flags == ROUNDING_FLAGS
        assert math.round_to_precision(dec('-125'), context) == dec(negative)

    def test_carry(self):
        context = make_context(2)
        assert math.round_to_precision(dec('995'), context) == dec('10E2')
        assert context.flags == ROUNDING_FLAGS

    def test_unnecessary(self):
        context = make_context(2, ROUND_UNNECESSARY)
        assert math.round_to_precision(dec('120'), context) == dec('12E1')
        assert context.flags == Flags.ROUNDED
        result = math.round_to_precision(dec('125'), context)
        assert result.is_nan() and not result.is_signaling()
        assert context.flags & Flags.INVALID

    def test_exact(self):
        context = make_context(5)
        value = dec('1.2345')
        assert math.round_to_precision(value, context) is value
        assert context.flags == 0

    def test_no_context(self):
        value = dec('123456789123456789')
        assert math.round_to_precision(value) is value

    def test_negative_zero(self):
        context = make_context(5)
        assert math.round_to_precision(dec('-0'), context).sign
        assert not math.plus(dec('-0'), context).sign
        assert math.plus(dec('-0'), make_context(5, ROUND_FLOOR)).sign

    def test_signaling_nan(self):
        context = make_context(5)
        assert math.round_to_precision(dec('sNaN3'), context) == dec('NaN3')
        assert context.flags == Flags.INVALID

    def test_nan_payload_truncated(self):
        context = make_context(3)
        assert math.plus(dec('NaN12345'), context) == dec('NaN345')

    def test_binary_precision(self):
        context = make_context(8)
        assert math.round_to_binary_precision(dec('300'), context) == dec('30E1')
        assert context.flags == Flags.ROUNDED
        assert math.round_to_binary_precision(dec('256'), context) == dec('26E1')
        assert context.flags == ROUNDING_FLAGS

    def test_binary_radix(self):
        context = make_context(3, ROUND_HALF_EVEN)
        # 0b1011 rounds to 0b110 at three bits
        assert binary_math.round_to_precision(RadixNumber(0b1011, 0), context) == RadixNumber(
            0b110, 1)
        assert context.flags == ROUNDING_FLAGS

    def test_hexadecimal_radix(self):
        hex_math = RadixMath(RadixNumberHelper(16))
        context = make_context(1, ROUND_HALF_EVEN)
        # A tie goes to the even digit: 0x18 to 0x20, 0x28 to 0x20
        assert hex_math.round_to_precision(RadixNumber(0x18, 0), context) == RadixNumber(2, 1)
        assert hex_math.round_to_precision(RadixNumber(0x28, 0), context) == RadixNumber(2, 1)
        assert hex_math.round_to_precision(RadixNumber(0x29, 0), context) == RadixNumber(3, 1)

    def test_odd_radix_rejected(self):
        with pytest.raises(ValueError):
            RadixMath(RadixNumberHelper(3))


class TestExponentRange:

    def test_overflow_to_infinity(self):
        context = make_context(3, ROUND_CEILING, -10, 2)
        assert math.add(dec('999'), dec('1'), context) == dec('Inf')
        assert context.flags == Flags.OVERFLOW | Flags.INEXACT | Flags.ROUNDED

    @pytest.mark.parametrize('rounding, value, result', (
        (ROUND_DOWN, '1000', '999'),
        (ROUND_FLOOR, '1000', '999'),
        (ROUND_CEILING, '-1000', '-999'),
        (ROUND_05UP, '-1000', '-999'),
        (ROUND_FLOOR, '-1000', '-Inf'),
        (ROUND_HALF_EVEN, '1000', 'Inf'),
    ))
    def test_overflow_directed(self, rounding, value, result):
        context = make_context(3, rounding, -10, 2)
        assert math.round_to_precision(dec(value), context) == dec(result)
        assert context.flags == Flags.OVERFLOW | Flags.INEXACT | Flags.ROUNDED

    def test_overflow_finite_only(self):
        context = make_context(3, ROUND_HALF_EVEN, -10, 2)
        with pytest.raises(FiniteOnlyError):
            finite_math.round_to_precision(dec('1000'), context)

    def test_zero_exponent_clamped(self):
        context = make_context(3, ROUND_HALF_EVEN, -10, 2)
        assert math.round_to_precision(dec('0E5'), context) == dec('0E2')
        assert context.flags == Flags.CLAMPED

    def test_subnormal_exact(self):
        context = make_context(3, ROUND_HALF_EVEN, -10, 10)
        assert math.round_to_precision(dec('1E-11'), context) == dec('1E-11')
        assert context.flags == Flags.SUBNORMAL

    def test_subnormal_rounded(self):
        context = make_context(3, ROUND_HALF_EVEN, -10, 10)
        assert math.round_to_precision(dec('123E-13'), context) == dec('12E-12')
        assert context.flags == (Flags.SUBNORMAL | Flags.UNDERFLOW | Flags.INEXACT
                                 | Flags.ROUNDED)

    def test_underflow_to_zero(self):
        context = make_context(3, ROUND_HALF_EVEN, -10, 10)
        assert math.round_to_precision(dec('1E-20'), context) == dec('0E-12')
        assert context.flags == (Flags.SUBNORMAL | Flags.UNDERFLOW | Flags.INEXACT
                                 | Flags.ROUNDED | Flags.CLAMPED)

    def test_clamp_normal_exponents(self):
        context = DECIMAL32.with_blank_flags()
        assert math.round_to_precision(dec('1E96'), context) == dec('1000000E90')
        assert context.flags == Flags.CLAMPED


class TestAdd:

    @pytest.mark.parametrize('lhs, rhs, result', (
        ('1.2', '3', '4.2'),
        ('1E3', '-1', '999'),
        ('-5', '-7', '-12'),
        ('2.50', '2.5', '5.00'),
    ))
    def test_exact(self, lhs, rhs, result):
        assert math.add(dec(lhs), dec(rhs)) == dec(result)

    def test_zero_signs(self):
        assert not math.add(dec('-0'), dec('0')).sign
        assert math.add(dec('-0'), dec('-0')).sign
        assert not math.add(dec('1'), dec('-1')).sign
        assert math.add(dec('1'), dec('-1'), make_context(5, ROUND_FLOOR)).sign

    def test_negligible_operand(self):
        context = make_context(5)
        assert math.add(dec('1'), dec('1E-20'), context) == dec('1.0000')
        assert context.flags == ROUNDING_FLAGS
        context = make_context(5, ROUND_DOWN)
        assert math.add(dec('1'), dec('-1E-20'), context) == dec('0.99999')
        assert context.flags == ROUNDING_FLAGS

    def test_infinities(self, context):
        assert math.add(dec('Inf'), dec('5'), context) == dec('Inf')
        assert math.add(dec('5'), dec('-Inf'), context) == dec('-Inf')
        assert context.flags == 0
        assert math.add(dec('Inf'), dec('-Inf'), context).is_nan()
        assert context.flags == Flags.INVALID

    def test_nan_order(self, context):
        assert math.add(dec('NaN1'), dec('sNaN2'), context) == dec('NaN2')
        assert context.flags == Flags.INVALID
        context.flags = 0
        quiet = dec('NaN1')
        assert math.add(quiet, dec('NaN2'), context) is quiet
        assert math.add(dec('1'), dec('-NaN3'), context) == dec('-NaN3')
        assert context.flags == 0

    def test_subtract(self, context):
        assert math.subtract(dec('5'), dec('3'), context) == dec('2')
        assert math.subtract(dec('5'), dec('-3'), context) == dec('8')
        assert math.subtract(dec('1'), dec('-NaN'), context) == dec('-NaN')

    def test_subtract_infinities(self, context):
        assert math.subtract(dec('1E-3'), dec('Inf'), context) == dec('-Inf')
        assert math.subtract(dec('-Inf'), dec('5'), context) == dec('-Inf')
        assert math.subtract(dec('Inf'), dec('-Inf'), context) == dec('Inf')
        assert context.flags == 0
        bounded = make_context(5, ROUND_05UP, -10, 13)
        assert math.subtract(dec('7E19'), dec('-Inf'), bounded) == dec('Inf')
        assert bounded.flags == 0

    @pytest.mark.parametrize('lhs, rhs', (('Inf', 'Inf'), ('-Inf', '-Inf')))
    def test_subtract_infinities_invalid(self, lhs, rhs, context):
        assert math.subtract(dec(lhs), dec(rhs), context).is_nan()
        assert context.flags == Flags.INVALID


class TestMultiply:

    def test_exact(self):
        assert math.multiply(dec('1.5'), dec('-2.5')) == dec('-3.75')

    def test_rounded(self):
        context = make_context(3)
        assert math.multiply(dec('1.11'), dec('1.11'), context) == dec('1.23')
        assert context.flags == ROUNDING_FLAGS

    def test_infinity_times_zero(self, context):
        assert math.multiply(dec('Inf'), dec('0'), context).is_nan()
        assert context.flags == Flags.INVALID

    def test_infinity_sign(self):
        assert math.multiply(dec('-Inf'), dec('-2')) == dec('Inf')

    def test_multiply_and_add(self, context):
        assert math.multiply_and_add(dec('2'), dec('3'), dec('4'), context) == dec('10')
        assert context.flags == 0
        assert math.multiply_and_add(dec('Inf'), dec('0'), dec('NaN'), context).is_nan()
        assert context.flags == Flags.INVALID

    def test_multiply_and_add_single_rounding(self):
        context = make_context(3, ROUND_DOWN)
        # 1.01 * 1.01 is 1.0201; adding -1 first would lose nothing either way
        assert math.multiply_and_add(dec('1.01'), dec('1.01'), dec('-1'),
                                     context) == dec('0.0201')
        assert context.flags == 0


class TestDivide:

    def test_exact_quarter(self):
        context = make_context(2)
        assert math.divide(dec('1'), dec('4'), context) == dec('25E-2')
        assert context.flags == 0

    def test_third(self):
        context = make_context(5)
        assert math.divide(dec('1'), dec('3'), context) == dec('33333E-5')
        assert context.flags == ROUNDING_FLAGS

    def test_ideal_exponent(self):
        context = make_context(9)
        assert math.divide(dec('100'), dec('4'), context) == dec('25')
        assert math.divide(dec('1.20'), dec('2'), context) == dec('0.60')

    def test_unlimited(self):
        assert math.divide(dec('1'), dec('8')) == dec('0.125')
        context = UNLIMITED.with_blank_flags()
        assert math.divide(dec('1'), dec('3'), context).is_nan()
        assert context.flags == Flags.INVALID

    def test_by_zero(self, context):
        assert math.divide(dec('-1'), dec('0'), context) == dec('-Inf')
        assert context.flags == Flags.DIV_BY_ZERO
        context.flags = 0
        assert math.divide(dec('0'), dec('0'), context).is_nan()
        assert context.flags == Flags.INVALID

    def test_by_zero_finite_only(self):
        with pytest.raises(FiniteOnlyDivisionByZero):
            finite_math.divide(dec('1'), dec('0'), make_context(5))

    def test_infinities(self):
        context = make_context(3, ROUND_HALF_EVEN, -10, 10)
        assert math.divide(dec('Inf'), dec('-2'), context) == dec('-Inf')
        assert math.divide(dec('2'), dec('Inf'), context) == dec('0E-12')
        assert context.flags == Flags.CLAMPED
        assert math.divide(dec('Inf'), dec('Inf'), context).is_nan()

    @pytest.mark.parametrize('lhs, rhs, exponent, result', (
        ('1', '3', -2, '0.33'),
        ('2', '3', -2, '0.67'),
        ('1', '2', 0, '1'),
        ('7', '2', 1, '0E1'),
    ))
    def test_divide_to_exponent(self, lhs, rhs, exponent, result):
        context = make_context(9)
        assert math.divide_to_exponent(dec(lhs), dec(rhs), exponent, context) == dec(result)

    def test_divide_to_exponent_half_even_default(self):
        assert math.divide_to_exponent(dec('1'), dec('2'), 0) == dec('0')

    def test_divide_to_integer(self):
        assert math.divide_to_integer_natural_scale(dec('7'), dec('2')) == dec('3')
        assert math.divide_to_integer_zero_scale(dec('-7'), dec('2')) == dec('-3')
        assert math.divide_to_integer_natural_scale(dec('1E3'), dec('1')) == dec('1E3')

    def test_divide_to_integer_too_long(self):
        context = make_context(3)
        assert math.divide_to_integer_zero_scale(dec('100000'), dec('3'), context).is_nan()
        assert context.flags & Flags.INVALID

    @pytest.mark.parametrize('lhs, rhs, result', (
        ('10', '3', '1'),
        ('-10', '3', '-1'),
        ('10', '-3', '1'),
        ('1', '0.3', '0.1'),
    ))
    def test_remainder(self, lhs, rhs, result, context):
        assert math.remainder(dec(lhs), dec(rhs), context) == dec(result)
        assert context.flags == 0

    def test_remainder_invalid(self, context):
        assert math.remainder(dec('10'), dec('0'), context).is_nan()
        assert context.flags == Flags.INVALID

    @pytest.mark.parametrize('lhs, rhs, result', (
        ('10', '6', '-2'),
        ('10', '3', '1'),
        ('10', '4', '2'),
        ('11', '4', '-1'),
    ))
    def test_remainder_near(self, lhs, rhs, result, context):
        assert math.remainder_near(dec(lhs), dec(rhs), context) == dec(result)


class TestSign:

    def test_abs(self, context):
        assert math.abs(dec('-5'), context) == dec('5')
        assert math.abs(dec('-Inf'), context) == dec('Inf')
        assert math.abs(dec('sNaN'), context).is_nan()
        assert context.flags == Flags.INVALID

    def test_negate(self):
        context = make_context(5)
        assert math.negate(dec('5'), context) == dec('-5')
        assert math.negate(dec('-Inf'), context) == dec('Inf')
        assert not math.negate(dec('0'), context).sign
        assert not math.negate(dec('-0'), context).sign
        assert math.negate(dec('-0'), make_context(5, ROUND_FLOOR)).sign
        assert not math.negate(dec('0'), make_context(5, ROUND_FLOOR)).sign


class TestScaling:

    def test_quantize(self):
        context = make_context(9, ROUND_HALF_EVEN)
        assert math.quantize(dec('1.2345'), dec('0.01'), context) == dec('1.23')
        assert context.flags == ROUNDING_FLAGS
        context = make_context(9)
        assert math.quantize(dec('1'), dec('0.001'), context) == dec('1.000')
        assert context.flags == 0

    def test_quantize_too_long(self):
        context = make_context(3)
        assert math.quantize(dec('12345'), dec('1'), context).is_nan()
        assert context.flags == Flags.INVALID

    def test_quantize_infinities(self, context):
        assert math.quantize(dec('Inf'), dec('-Inf'), context) == dec('Inf')
        assert math.quantize(dec('Inf'), dec('1'), context).is_nan()
        assert context.flags == Flags.INVALID

    def test_reduce(self):
        assert math.reduce(dec('1200')) == dec('12E2')
        assert math.reduce(dec('1.500')) == dec('1.5')
        assert math.reduce(dec('-0E5')) == dec('-0')

    def test_round_to_exponent(self):
        context = make_context(9)
        assert math.round_to_exponent_exact(dec('1.25'), -1, context) == dec('1.3')
        assert context.flags == ROUNDING_FLAGS
        context = make_context(9)
        assert math.round_to_exponent_no_rounded_flag(dec('1.25'), -1, context) == dec('1.3')
        assert context.flags == 0
        context = make_context(9, ROUND_DOWN)
        assert math.round_to_exponent_simple(dec('1.29'), -1, context) == dec('1.2')
        assert context.flags == ROUNDING_FLAGS

    def test_round_to_exponent_larger(self):
        value = dec('1.25')
        assert math.round_to_exponent_simple(value, -5) == value


class TestTranscendental:

    def test_pi(self):
        assert math.pi(make_context(10)) == dec('3.141592654')

    def test_pi_needs_precision(self):
        assert math.pi().is_nan()
        context = make_context()
        assert math.pi(context).is_nan()
        assert context.flags == Flags.INVALID

    def test_pi_logged(self, caplog):
        caplog.set_level(logging.DEBUG, logger='radixmath.radixmath')
        math.pi(make_context(5))
        assert any('pi converged' in record.getMessage() for record in caplog.records)

    def test_unlimited_precision(self):
        context = UNLIMITED.with_blank_flags()
        assert math.pi(context).is_nan()
        assert math.exp(dec('1'), context).is_nan()
        assert context.flags == Flags.INVALID

    def test_exp(self):
        context = make_context(10)
        assert math.exp(dec('1'), context) == dec('2.718281828')
        assert context.flags & ROUNDING_FLAGS == ROUNDING_FLAGS
        assert math.exp(dec('0'), make_context(10)) == dec('1')
        assert math.exp(dec('-Inf'), make_context(10)) == dec('0')

    def test_ln(self):
        context = make_context(10)
        assert math.ln(dec('2'), context) == dec('0.6931471806')
        assert context.flags & ROUNDING_FLAGS == ROUNDING_FLAGS
        assert math.ln(dec('1'), make_context(10)) == dec('0')
        assert math.ln(dec('0'), make_context(10)) == dec('-Inf')
        context = make_context(10)
        assert math.ln(dec('-1'), context).is_nan()
        assert context.flags == Flags.INVALID

    def test_log10(self):
        context = make_context(5)
        assert math.log10(dec('1000'), context) == dec('3')
        assert math.log10(dec('0.01'), context) == dec('-2')
        assert context.flags == 0

    def test_power_integral(self):
        context = make_context(9)
        assert math.power(dec('2'), dec('10'), context) == dec('1024')
        assert math.power(dec('2'), dec('-2'), context) == dec('0.25')
        assert math.power(dec('-2'), dec('3'), context) == dec('-8')
        assert math.power(dec('3'), dec('40')) == RadixNumber(3**40, 0)

    def test_power_invalid(self, context):
        assert math.power(dec('0'), dec('0'), context).is_nan()
        assert math.power(dec('-2'), dec('0.5'), context).is_nan()
        assert context.flags == Flags.INVALID

    def test_power_special(self):
        context = make_context(9)
        assert math.power(dec('0'), dec('-1'), context) == dec('Inf')
        assert math.power(dec('-0'), dec('-1'), context) == dec('-Inf')
        assert math.power(dec('Inf'), dec('-1'), context) == dec('0')

    def test_square_root(self):
        context = make_context(5)
        assert math.square_root(dec('4'), context) == dec('2')
        assert context.flags == 0
        assert math.square_root(dec('1E2'), context) == dec('1E1')
        assert math.square_root(dec('2'), context) == dec('1.4142')
        assert context.flags == ROUNDING_FLAGS

    def test_square_root_special(self):
        context = make_context(5)
        assert math.square_root(dec('-0'), context) == dec('-0')
        assert math.square_root(dec('Inf'), context) == dec('Inf')
        assert context.flags == 0
        assert math.square_root(dec('-1'), context).is_nan()
        assert context.flags == Flags.INVALID

    def test_square_root_finite_only(self):
        with pytest.raises(FiniteOnlyError):
            finite_math.square_root(dec('-1'), make_context(5))


class TestNext:

    @pytest.fixture
    def bounded(self):
        return make_context(3, ROUND_HALF_EVEN, -10, 10)

    def test_next_plus(self, bounded):
        assert math.next_plus(dec('1'), bounded) == dec('1.01')
        assert math.next_plus(dec('0'), bounded) == dec('1E-12')
        assert math.next_plus(dec('-Inf'), bounded) == dec('-999E8')
        assert math.next_plus(dec('Inf'), bounded) == dec('Inf')

    def test_next_minus(self, bounded):
        assert math.next_minus(dec('1'), bounded) == dec('0.999')
        assert math.next_minus(dec('Inf'), bounded) == dec('999E8')

    def test_next_toward(self, bounded):
        assert math.next_toward(dec('1'), dec('2'), bounded) == dec('1.01')
        assert math.next_toward(dec('1'), dec('0'), bounded) == dec('0.999')
        assert bounded.flags == 0

    def test_needs_exponent_range(self):
        context = make_context(3)
        assert math.next_plus(dec('1'), context).is_nan()
        assert context.flags == Flags.INVALID


class TestCompare:

    @pytest.mark.parametrize('lhs, rhs, result', (
        ('1', '2', -1),
        ('-2', '-1', -1),
        ('1E1', '10', 0),
        ('1E3', '99E1', 1),
        ('0E5', '-0E-3', 0),
        ('-Inf', '1', -1),
        ('Inf', 'Inf', 0),
        ('NaN', 'Inf', 1),
        ('Inf', 'NaN', -1),
        ('NaN', 'sNaN', 0),
        ('0.001', '-1E10', 1),
    ))
    def test_compare_to(self, lhs, rhs, result):
        assert math.compare_to(dec(lhs), dec(rhs)) == result

    def test_compare_to_none(self):
        assert math.compare_to(dec('1'), None) == 1

    def test_compare_to_with_context(self, context):
        assert math.compare_to_with_context(dec('1'), dec('2'), False, context) == dec('-1')
        assert math.compare_to_with_context(dec('2'), dec('2'), False, context) == dec('0')
        assert math.compare_to_with_context(dec('NaN'), dec('2'), False, context).is_nan()
        assert context.flags == 0
        assert math.compare_to_with_context(dec('NaN'), dec('2'), True, context).is_nan()
        assert context.flags == Flags.INVALID


class TestMinMax:

    def test_max(self, context):
        assert math.max(dec('1'), dec('2'), context) == dec('2')
        assert math.max(dec('1'), dec('1.0'), context) == dec('1')
        assert math.max(dec('-0'), dec('0'), context) == dec('0')
        assert math.max(dec('Inf'), dec('5'), context) == dec('Inf')
        assert math.max(dec('NaN'), dec('5'), context) == dec('5')
        assert context.flags == 0

    def test_min(self, context):
        assert math.min(dec('1'), dec('2'), context) == dec('1')
        assert math.min(dec('1'), dec('1.0'), context) == dec('1.0')
        assert math.min(dec('-0'), dec('0'), context) == dec('-0')
        assert math.min(dec('Inf'), dec('5'), context) == dec('5')
        assert math.min(dec('sNaN'), dec('5'), context).is_nan()
        assert context.flags == Flags.INVALID

    def test_magnitude(self, context):
        assert math.max_magnitude(dec('-3'), dec('2'), context) == dec('-3')
        assert math.min_magnitude(dec('-3'), dec('2'), context) == dec('2')
        assert math.max_magnitude(dec('-2'), dec('2'), context) == dec('2')

    @pytest.mark.parametrize('name', ('min', 'max', 'min_magnitude', 'max_magnitude'))
    def test_none(self, name):
        with pytest.raises(TypeError):
            getattr(math, name)(None, dec('1'))
        with pytest.raises(TypeError):
            getattr(math, name)(dec('1'), None)
