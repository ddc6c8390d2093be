''' Base classes for values, intrinsics and errors '''

from typing import Set, Iterable, Optional, Tuple, Type, TYPE_CHECKING
from colorama import Fore as fg
if TYPE_CHECKING: from quotaforth.execution import Runtime

class Error(Exception):
    '''
    Abstract. Applicative error. Rendered in red.
    Carries the failing component, a human readable explanation and the name of the source being processed.
    '''
    component = 'Interpreter'
    def __init__(self, msg: str, source: Optional[str] = None) -> None:
        super().__init__(msg)
        self.explanation = msg
        self.source = source
    def __str__(self) -> str:
        where = f' {fg.LIGHTBLACK_EX}({self.source}){fg.RESET}' if self.source else ''
        return f'{fg.LIGHTRED_EX}ERROR:{fg.RESET} {self.explanation}{where}'
    @property
    def kind(self) -> str: return type(self).__name__
    def report(self) -> str:
        ''' Multi-line report, as written to stderr by the command line. '''
        return '\n'.join([
            f'{fg.LIGHTRED_EX}ERROR:{fg.RESET} {self.kind}',
            f'\t source: {self.source or "<unknown>"}',
            f'\t component: {self.component}',
            f'\t explanation: {self.explanation}' ])

class ParsingError(Error):
    ''' Raised by the tokenizer. '''
    component = 'Tokenizer'

class MalformedMarker(ParsingError):
    ''' A ':' marker not followed by whitespace and a name, nor by a directive keyword. '''

class UnterminatedStringLiteral(ParsingError):
    ''' End of input reached inside a string literal. '''

class CompilationError(Error):
    ''' Raised while turning tokens into values and definitions. '''

class UnterminatedDefinition(CompilationError): ...
class UnterminatedQuotation(CompilationError): ...
class UnexpectedToken(CompilationError): ...
class UnresolvedToken(CompilationError): ...
class MalformedDirective(CompilationError): ...

class ReservedWord(CompilationError):
    ''' Attempt to redefine an intrinsic, or to shadow a word with a variable. '''

class ExecutionError(Error):
    ''' Raised during execution. '''

class StackUnderflow(ExecutionError): ...
class TypeMismatch(ExecutionError): ...
class UndefinedVariable(ExecutionError): ...
class UnresolvedDeferredWord(ExecutionError): ...
class InvalidArgument(ExecutionError): ...
class DivisionByZero(ExecutionError): ...
class CallDepthExceeded(ExecutionError): ...

class FileAccessFailure(Error):
    ''' Source file cannot be read. '''
    component = 'FileReader'

class SessionEnd(Exception):
    ''' Raised to end the interactive session. Not an error. '''

class Value:
    ''' Abstract. Element of the operand stack, of a word body or of a quotation. '''
    def execute(self, runtime: 'Runtime') -> None:
        runtime.push(self)
    def __repr__(self) -> str:
        return f'{type(self).__name__}({getattr(self, "value", "")!r})'

class Uninitialized(Value):
    ''' Content of a variable never stored to. '''
    def __eq__(self, other: object) -> bool: return isinstance(other, Uninitialized)
    def __hash__(self) -> int: return hash(Uninitialized)
    def __str__(self) -> str:
        return f'{fg.LIGHTBLACK_EX}nil{fg.RESET}'

class Literal(Value):
    ''' Abstract. Boolean, integer or string literal value. '''
    def __init__(self, value) -> None:
        self.value = value
    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.value == other.value # type: ignore
    def __hash__(self) -> int: return hash((type(self), self.value))

class Boolean(Literal):
    def __init__(self, value: bool) -> None:
        super().__init__(bool(value))
    def __str__(self) -> str:
        return f'{fg.CYAN}{"true" if self.value else "false"}{fg.RESET}'

class Number(Literal):
    ''' Signed integer. '''
    def __init__(self, value: int) -> None:
        super().__init__(value)
    def __str__(self) -> str:
        return f'{fg.CYAN}{self.value}{fg.RESET}'

class String(Literal):
    ''' Raw text, as written between quotes. '''
    def __init__(self, value: str) -> None:
        super().__init__(value)
    def __str__(self) -> str:
        return f'{fg.GREEN}"{self.value}"{fg.RESET}'

class VariableRef(Literal):
    ''' Name of a variable, consumed by ! and @ '''
    def __init__(self, name: str) -> None:
        super().__init__(name)
    @property
    def name(self) -> str: return self.value
    def __str__(self) -> str:
        return f'{fg.MAGENTA}{self.value}{fg.RESET}'

class WordRef(Value):
    ''' Reference to a dictionary word, bound to the definition layer current when it was parsed. '''
    def __init__(self, word_id: int, name: str, layer: int = 0) -> None:
        self.word_id = word_id
        self.name = name
        self.layer = layer
    def __eq__(self, other: object) -> bool:
        return isinstance(other, WordRef) and (self.word_id, self.layer) == (other.word_id, other.layer)
    def __hash__(self) -> int: return hash((WordRef, self.word_id, self.layer))
    def __repr__(self) -> str: return f'WordRef({self.word_id}, {self.name!r}, {self.layer})'
    def __str__(self) -> str:
        return f'{fg.YELLOW}{self.name}{fg.RESET}'
    def execute(self, runtime: 'Runtime') -> None:
        runtime.invoke(self)

class Quotation(Value):
    ''' Unnamed sequence of values, captured once when parsed. '''
    def __init__(self, content: Iterable[Value]) -> None:
        self.content: Tuple[Value, ...] = tuple(content)
    def __eq__(self, other: object) -> bool:
        return isinstance(other, Quotation) and self.content == other.content
    def __hash__(self) -> int: return hash((Quotation, self.content))
    def __repr__(self) -> str: return f'Quotation({list(self.content)!r})'
    def __str__(self) -> str:
        return '[ ' + ''.join( f'{value} ' for value in self.content ) + ']'

class Intrinsic:
    ''' Primitive word, implemented by the runtime. Identified by a fixed negative id. '''
    classes : Set[Type['Intrinsic']] = set()
    def __init_subclass__(cls) -> None: Intrinsic.classes.add(cls)
    def __init__(self, name: str, word_id: int, comment: Optional[str] = None) -> None:
        if word_id >= 0: raise ValueError(f'intrinsic {name} must have a negative id')
        self.name = name
        self.word_id = word_id
        self.comment = comment
    def execute(self, runtime: 'Runtime') -> None:
        raise ExecutionError(f'intrinsic {self.name} is not implemented')
    def __str__(self) -> str:
        return f'{fg.LIGHTBLACK_EX}primitive<{type(self).__name__}>{fg.RESET}'
