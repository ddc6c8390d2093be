import pytest

from quotaforth.atoms import (Boolean, Number, String, Quotation, VariableRef, StackUnderflow, TypeMismatch,
    InvalidArgument, DivisionByZero)
from quotaforth.execution import Runtime
from quotaforth.intrinsics import PRIMITIVES, truncated_divmod


def test_addition(run):
    assert run('1 2 +') == [Number(3)]


@pytest.mark.parametrize('source, expected', [
    ('7 2 -', 5),
    ('6 7 *', 42),
    ('7 2 /', 3),
    ('-7 2 /', -3),
    ('7 -2 /', -3),
    ('7 2 mod', 1),
    ('-7 2 mod', -1),
    ('7 -2 mod', 1),
])
def test_arithmetic_truncates_toward_zero(run, source, expected):
    assert run(source) == [Number(expected)]


def test_truncated_divmod():
    assert truncated_divmod(-9, 4) == (-2, -1)
    assert truncated_divmod(9, 3) == (3, 0)


@pytest.mark.parametrize('source', ['1 0 /', '1 0 mod'])
def test_division_by_zero(run, source):
    with pytest.raises(DivisionByZero):
        run(source)


@pytest.mark.parametrize('source, expected', [
    ('1 2 <', True),
    ('2 1 <', False),
    ('1 2 >', False),
    ('2 2 <=', True),
    ('3 2 >=', True),
    ('1 2 >=', False),
])
def test_comparison(run, source, expected):
    assert run(source) == [Boolean(expected)]


@pytest.mark.parametrize('source, expected', [
    ('"abc" "abc" ==', True),
    ('"abc" "abd" ==', False),
    ('4 4 ==', True),
    ('true false ==', False),
    ('1 2 <>', True),
    ('"x" "x" <>', False),
])
def test_equality(run, source, expected):
    assert run(source) == [Boolean(expected)]


@pytest.mark.parametrize('source', ['1 true ==', '"1" 1 <>', '[ ] [ ] ==', '1 "a" <'])
def test_mismatched_operands(run, source):
    with pytest.raises(TypeMismatch):
        run(source)


def test_booleans(run, interpreter):
    assert run('true false and') == [Boolean(False)]
    interpreter.execute('cls')
    assert run('true false or') == [Boolean(True)]
    interpreter.execute('cls')
    assert run('true not') == [Boolean(False)]
    interpreter.execute('cls')
    assert run('true true xor') == [Boolean(False)]


def test_boolean_words_reject_numbers(run):
    with pytest.raises(TypeMismatch):
        run('1 not')


def test_failed_type_check_leaves_stack_untouched(run, interpreter):
    with pytest.raises(TypeMismatch):
        run('"a" 1 +')
    assert interpreter.stack == [String('a'), Number(1)]


@pytest.mark.parametrize('source, expected', [
    ('1 2 drop', [1]),
    ('1 2 swap', [2, 1]),
    ('1 2 3 4 2swap', [3, 4, 1, 2]),
    ('1 2 3 rot', [2, 3, 1]),
    ('1 2 3 -rot', [3, 1, 2]),
    ('1 2 3 0 pick', [1, 2, 3, 3]),
    ('1 2 3 2 pick', [1, 2, 3, 1]),
    ('1 2 3 cls', []),
    ('5 dup', [5, 5]),
    ('1 2 over', [1, 2, 1]),
    ('1 2 nip', [2]),
    ('1 2 tuck', [2, 1, 2]),
    ('1 2 2dup', [1, 2, 1, 2]),
    ('1 2 2drop', []),
    ('5 neg', [-5]),
])
def test_stack_words(run, source, expected):
    assert run(source) == [Number(n) for n in expected]


def test_pick_needs_non_negative_index(run):
    with pytest.raises(InvalidArgument):
        run('1 -1 pick')


def test_pick_beyond_stack(run, interpreter):
    with pytest.raises(StackUnderflow):
        run('1 5 pick')
    assert interpreter.stack == [Number(1), Number(5)]


@pytest.mark.parametrize('word', ['drop', 'swap', '2swap', 'rot', '-rot', 'pick', '+', 'mod', '<', '==',
                                  'not', 'and', 'if', '!', '@', '.', 'call', 'dup'])
def test_stack_underflow(run, word):
    with pytest.raises(StackUnderflow):
        run(word)


def test_underflow_with_partial_operands(run):
    with pytest.raises(StackUnderflow):
        run('1 2 3 2swap')


def test_depth(run):
    assert run('7 7 7 depth') == [Number(7)] * 3 + [Number(3)]


def test_call_runs_quotation(run):
    assert run('2 [ 3 * ] call') == [Number(6)]


def test_quotations_are_pushed(run):
    assert run('[ 1 "a" ]') == [Quotation([Number(1), String('a')])]


def test_print_drops_value(run, output):
    assert run('42 .') == []
    assert '= 42' in output()


def test_stack_printed_top_first(run, output):
    assert run('10 20 stack') == [Number(10), Number(20)]
    text = output()
    assert 'size: 2' in text
    assert text.index('20') < text.index('10')


def test_words_listing(run, output):
    run(': square dup * ; words')
    text = output()
    assert ': square dup * ;' in text
    assert 'primitive<Drop>' in text


def test_vars_listing(run, output):
    run(':variable x 3 x ! vars')
    assert 'x = 3' in output()


def test_primitive_table_is_read_only():
    with pytest.raises(TypeError):
        PRIMITIVES['dup'] = PRIMITIVES['drop']
    assert all(intrinsic.word_id < 0 for intrinsic in PRIMITIVES.values())
    assert len({intrinsic.word_id for intrinsic in PRIMITIVES.values()}) == len(PRIMITIVES)


def test_runtime_dispatch():
    runtime = Runtime()
    runtime.dispatch(Number(2))
    runtime.dispatch(Number(5))
    runtime.dispatch(runtime.dictionary.reference('*'))
    assert runtime.stack == [Number(10)]
    assert runtime.frames == []


def test_variable_reference_is_pushed():
    runtime = Runtime()
    runtime.dictionary.declare_variable('v')
    runtime.dispatch(VariableRef('v'))
    assert runtime.stack == [VariableRef('v')]
