''' All intrinsic implementations '''

from types import MappingProxyType
from typing import Mapping, Tuple, TYPE_CHECKING
from colorama import Fore as fg
from quotaforth.atoms import (Intrinsic, Value, Boolean, Number, String, VariableRef, Quotation,
    UndefinedVariable, InvalidArgument, DivisionByZero, SessionEnd)
if TYPE_CHECKING: from quotaforth.execution import Runtime

def truncated_divmod(bottom: int, top: int) -> Tuple[int, int]:
    ''' Quotient rounded toward zero, remainder with the sign of the dividend. '''
    if top == 0: raise DivisionByZero(f'division of {bottom} by zero')
    quotient = abs(bottom) // abs(top)
    if (bottom < 0) != (top < 0): quotient = -quotient
    return quotient, bottom - top * quotient

# Stack

class PrintStack(Intrinsic):
    def __init__(self): super().__init__('stack', -1, 'print stack, top first')
    def execute(self, runtime: 'Runtime') -> None:
        print(fg.LIGHTBLACK_EX + f'STACK (size: {len(runtime.stack)})' + fg.RESET)
        for i, value in enumerate(reversed(runtime.stack)):
            print(f'{fg.LIGHTBLACK_EX}  {i} :{fg.RESET}\t{value}')

class Clear(Intrinsic):
    def __init__(self): super().__init__('cls', -2, 'a1 .. an --')
    def execute(self, runtime: 'Runtime') -> None:
        runtime.stack.clear()

class PrintWords(Intrinsic):
    def __init__(self): super().__init__('words', -3, 'print dictionary')
    def execute(self, runtime: 'Runtime') -> None:
        dictionary = runtime.dictionary
        print(fg.LIGHTBLACK_EX + f'WORDS (compiled: {dictionary.next_id - 1})' + fg.RESET)
        for entry in dictionary.words():
            print(f'  : {fg.YELLOW}{entry.name}{fg.RESET} {entry.describe()} ;')

class EvaluateIf(Intrinsic):
    def __init__(self): super().__init__('if', -4, 'c [a] [b] -- a if c, b otherwise')
    def execute(self, runtime: 'Runtime') -> None:
        false_branch, true_branch, condition = runtime.pop_args([Quotation, Quotation, Boolean])
        branch = true_branch if condition.value else false_branch # type: ignore
        runtime.enter(branch.content) # type: ignore

class Drop(Intrinsic):
    def __init__(self): super().__init__('drop', -5, 'a --')
    def execute(self, runtime: 'Runtime') -> None:
        runtime.pop(Value)

class Swap(Intrinsic):
    def __init__(self): super().__init__('swap', -6, 'a b -- b a')
    def execute(self, runtime: 'Runtime') -> None:
        runtime.require(2)
        stack = runtime.stack
        stack[-1], stack[-2] = stack[-2], stack[-1]

class TwoSwap(Intrinsic):
    def __init__(self): super().__init__('2swap', -7, 'a b c d -- c d a b')
    def execute(self, runtime: 'Runtime') -> None:
        runtime.require(4)
        stack = runtime.stack
        stack[-4:] = stack[-2:] + stack[-4:-2]

def check_defined(runtime: 'Runtime') -> None:
    ''' Checks the variable referenced on top of the stack still exists, before anything is popped. '''
    variable = runtime.peek()
    runtime.check_type(variable, VariableRef)
    if variable.name not in runtime.dictionary.variables: # type: ignore
        raise UndefinedVariable(f'variable {variable} not defined')

class Store(Intrinsic):
    def __init__(self): super().__init__('!', -8, 'a var --  , set variable var to value a')
    def execute(self, runtime: 'Runtime') -> None:
        runtime.require(2)
        check_defined(runtime)
        variable, value = runtime.pop2(VariableRef, Value)
        runtime.dictionary.variables[variable.name] = value

class Fetch(Intrinsic):
    def __init__(self): super().__init__('@', -9, 'var -- a  , value of variable var')
    def execute(self, runtime: 'Runtime') -> None:
        check_defined(runtime)
        variable = runtime.pop(VariableRef)
        runtime.push(runtime.dictionary.variables[variable.name])

class Rotate(Intrinsic):
    def __init__(self): super().__init__('rot', -10, 'a b c -- b c a')
    def execute(self, runtime: 'Runtime') -> None:
        runtime.require(3)
        runtime.push(runtime.stack.pop(-3))

class RotateBack(Intrinsic):
    def __init__(self): super().__init__('-rot', -11, 'a b c -- c a b')
    def execute(self, runtime: 'Runtime') -> None:
        runtime.require(3)
        runtime.stack.insert(-2, runtime.stack.pop())

class Pick(Intrinsic):
    def __init__(self): super().__init__('pick', -12, 'an .. a0 n -- an .. a0 an')
    def execute(self, runtime: 'Runtime') -> None:
        index = runtime.peek(0)
        runtime.check_type(index, Number)
        n = index.value # type: ignore
        if n < 0: raise InvalidArgument(f'pick expects a non-negative index, got {n}')
        value = runtime.peek(n + 1)
        runtime.stack.pop()
        runtime.push(value)

# Arithmetic

class Add(Intrinsic):
    def __init__(self): super().__init__('+', -13, 'a b -- a+b')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop2(Number, Number)
        runtime.push(Number(bottom.value + top.value))

class Substract(Intrinsic):
    def __init__(self): super().__init__('-', -14, 'a b -- a-b')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop2(Number, Number)
        runtime.push(Number(bottom.value - top.value))

class Multiply(Intrinsic):
    def __init__(self): super().__init__('*', -15, 'a b -- a*b')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop2(Number, Number)
        runtime.push(Number(bottom.value * top.value))

class Divide(Intrinsic):
    def __init__(self): super().__init__('/', -16, 'a b -- a/b, rounded toward zero')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop2(Number, Number)
        runtime.push(Number(truncated_divmod(bottom.value, top.value)[0]))

class Modulo(Intrinsic):
    def __init__(self): super().__init__('mod', -17, 'a b -- remainder of a/b')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop2(Number, Number)
        runtime.push(Number(truncated_divmod(bottom.value, top.value)[1]))

# Comparison

class LowerThan(Intrinsic):
    def __init__(self): super().__init__('<', -18, 'a b -- a<b')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop2(Number, Number)
        runtime.push(Boolean(bottom.value < top.value))

class GreaterThan(Intrinsic):
    def __init__(self): super().__init__('>', -19, 'a b -- a>b')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop2(Number, Number)
        runtime.push(Boolean(bottom.value > top.value))

class LowerOrEqual(Intrinsic):
    def __init__(self): super().__init__('<=', -20, 'a b -- a<=b')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop2(Number, Number)
        runtime.push(Boolean(bottom.value <= top.value))

class GreaterOrEqual(Intrinsic):
    def __init__(self): super().__init__('>=', -21, 'a b -- a>=b')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop2(Number, Number)
        runtime.push(Boolean(bottom.value >= top.value))

COMPARABLE = (Boolean, Number, String)

class Equals(Intrinsic):
    def __init__(self): super().__init__('==', -22, 'a b -- a=b')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop_args([COMPARABLE, COMPARABLE], True)
        runtime.push(Boolean(bottom == top))

class NotEquals(Intrinsic):
    def __init__(self): super().__init__('<>', -23, 'a b -- a<>b')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop_args([COMPARABLE, COMPARABLE], True)
        runtime.push(Boolean(bottom != top))

# Logic

class Not(Intrinsic):
    def __init__(self): super().__init__('not', -24, 'a -- not a')
    def execute(self, runtime: 'Runtime') -> None:
        runtime.push(Boolean(not runtime.pop(Boolean).value))

class And(Intrinsic):
    def __init__(self): super().__init__('and', -25, 'a b -- a and b')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop2(Boolean, Boolean)
        runtime.push(Boolean(bottom.value and top.value))

class Or(Intrinsic):
    def __init__(self): super().__init__('or', -26, 'a b -- a or b')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop2(Boolean, Boolean)
        runtime.push(Boolean(bottom.value or top.value))

class Xor(Intrinsic):
    def __init__(self): super().__init__('xor', -27, 'a b -- a xor b')
    def execute(self, runtime: 'Runtime') -> None:
        top, bottom = runtime.pop2(Boolean, Boolean)
        runtime.push(Boolean(bottom.value != top.value))

# Miscellaneous

class Print(Intrinsic):
    def __init__(self): super().__init__('.', -28, 'a --  , print a')
    def execute(self, runtime: 'Runtime') -> None:
        print(f'  = {runtime.pop(Value)}')

class Call(Intrinsic):
    def __init__(self): super().__init__('call', -29, '[a] -- eval of a')
    def execute(self, runtime: 'Runtime') -> None:
        runtime.enter(runtime.pop(Quotation).content)

class Depth(Intrinsic):
    def __init__(self): super().__init__('depth', -30, 'a1 .. an -- a1 .. an n')
    def execute(self, runtime: 'Runtime') -> None:
        runtime.push(Number(len(runtime.stack)))

class PrintVariables(Intrinsic):
    def __init__(self): super().__init__('vars', -31, 'print variables')
    def execute(self, runtime: 'Runtime') -> None:
        print(fg.LIGHTBLACK_EX+'VARIABLES'+fg.RESET)
        for name, value in sorted(runtime.dictionary.variables.items()):
            print(f'  {VariableRef(name)} = {value}')

class Bye(Intrinsic):
    def __init__(self): super().__init__('bye', -32, 'ends the session')
    def execute(self, runtime: 'Runtime') -> None: raise SessionEnd()

def build_primitives() -> Mapping[str, Intrinsic]:
    ''' Name to intrinsic table. Built once, read only. '''
    table = { intrinsic.name: intrinsic for intrinsic in sorted((cls() for cls in Intrinsic.classes), key=lambda i: -i.word_id) }
    if len({ i.word_id for i in table.values() }) != len(table): raise ValueError('duplicate intrinsic id')
    return MappingProxyType(table)

PRIMITIVES = build_primitives()
