''' Parsing engine : character sources, tokenizer and loader '''

import os
import re
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Dict, Set, Iterator, List, Optional, Tuple, Type, TYPE_CHECKING
from colorama import Fore as fg
from quotaforth.atoms import (Value, Boolean, Number, String, VariableRef, Quotation,
    MalformedMarker, UnterminatedStringLiteral, UnterminatedDefinition, UnterminatedQuotation,
    UnexpectedToken, UnresolvedToken, MalformedDirective, ReservedWord, FileAccessFailure, Error)
if TYPE_CHECKING: from quotaforth.execution import Runtime

log = logging.getLogger(__name__)

class CharacterSource:
    ''' In-memory text buffer, read one character at a time with one step pushback. '''

    def __init__(self, text: str, name: str = '<input>') -> None:
        self.text = text
        self.name = name
        self.index = 0

    @classmethod
    def from_file(cls, path: str) -> 'CharacterSource':
        try:
            with open(path, 'r', encoding='utf-8') as file: text = file.read()
        except OSError as error:
            raise FileAccessFailure(f'cannot read {path} ({error.strerror})', path) from error
        except UnicodeDecodeError as error:
            raise FileAccessFailure(f'cannot decode {path} as utf-8', path) from error
        return cls(text, path)

    def at_end(self) -> bool:
        return self.index >= len(self.text)

    def peek(self, offset: int = 0) -> Optional[str]:
        ''' Character at current position + offset, None beyond either end of the buffer. '''
        i = self.index + offset
        return self.text[i] if 0 <= i < len(self.text) else None

    def consume(self) -> Optional[str]:
        c = self.peek()
        if c is not None: self.index += 1
        return c

    def pushback(self) -> bool:
        if self.index == 0: return False
        self.index -= 1
        return True

class TokenKind(Enum):
    DIRECTIVE = 'directive'                          # :variable, :defer, :include
    WORD_DEFINITION_HEADER = 'definition'            # name following ': '
    DEFINITION_TERMINATOR = 'terminator'             # ;
    WORD_OR_DATA = 'word'
    STRING_LITERAL = 'string'
    QUOTATION_OPEN = 'open'                          # [
    QUOTATION_CLOSE = 'close'                        # ]

@dataclass(frozen=True)
class Token:
    ''' Output of the Tokenizer. Not a proper language element. '''
    kind: TokenKind
    text: str
    def __str__(self) -> str:
        return f'{fg.MAGENTA}<{self.text}>{fg.RESET}'

class TokenStream:
    ''' Materialized sequence of tokens, read by position. Can be reset for another pass. '''

    def __init__(self, tokens: List[Token], name: str) -> None:
        self.tokens: Tuple[Token, ...] = tuple(tokens)
        self.name = name
        self.position = 0

    def __len__(self) -> int: return len(self.tokens)
    def __iter__(self) -> Iterator[Token]: return iter(self.tokens)

    def has_next(self) -> bool:
        return self.position < len(self.tokens)

    def next(self) -> Optional[Token]:
        if not self.has_next(): return None
        token = self.tokens[self.position] ; self.position += 1
        return token

    def reset(self) -> None:
        self.position = 0

class Tokenizer:
    '''
    Lexical tokenizer. Turns a character source into a TokenStream.

    Recognized at token boundaries, in this order:
    # comment to end of line, "raw string", ( comment ), whitespace,
    ': name' definition header, ':keyword' directive, [ and ] quotation delimiters,
    and finally any run of non whitespace characters (';' alone being the definition terminator).
    '''
    MARKER = ':'
    TERMINATOR = ';'

    def __init__(self, source: CharacterSource) -> None:
        self.source = source

    @staticmethod
    def is_boundary(c: Optional[str]) -> bool:
        return c is None or c.isspace()

    def is_marker(self, char: str) -> bool:
        ''' Current character is char, with whitespace or a buffer boundary on both sides. '''
        src = self.source
        return src.peek() == char and Tokenizer.is_boundary(src.peek(-1)) and Tokenizer.is_boundary(src.peek(1))

    def read_word(self) -> str:
        src = self.source ; start = src.index
        while not Tokenizer.is_boundary(src.peek()): src.consume()
        return src.text[start:src.index]

    def read_string(self) -> str:
        src = self.source ; src.consume() # opening quote
        start = src.index
        while True:
            c = src.consume()
            if c is None: raise UnterminatedStringLiteral('string literal was not closed', src.name)
            if c == '"' and Tokenizer.is_boundary(src.peek()): return src.text[start:src.index - 1]

    def read_marker(self) -> Token:
        src = self.source ; after = src.peek(1)
        if after is not None and after.isspace():
            src.consume()
            while not src.at_end() and src.peek().isspace(): src.consume() # type: ignore
            name = self.read_word()
            if not name: raise MalformedMarker(f"missing word name after '{Tokenizer.MARKER}'", src.name)
            return Token(TokenKind.WORD_DEFINITION_HEADER, name)
        if after is not None and after.isalnum():
            return Token(TokenKind.DIRECTIVE, self.read_word())
        raise MalformedMarker(f"'{Tokenizer.MARKER}' must be followed by whitespace and a word name, or by a directive", src.name)

    def skip_line(self) -> None:
        src = self.source
        while not src.at_end():
            if src.consume() == '\n': break

    def skip_comment(self) -> None:
        src = self.source ; src.consume()
        while not src.at_end():
            if self.is_marker(')'): src.consume() ; break
            src.consume()

    def tokenize(self) -> TokenStream:
        tokens: List[Token] = []
        src = self.source
        while not src.at_end():
            c = src.peek()
            assert c is not None
            if c == '#': self.skip_line()
            elif c == '"': tokens.append(Token(TokenKind.STRING_LITERAL, self.read_string()))
            elif c == '(' and self.is_marker('('): self.skip_comment()
            elif c.isspace(): src.consume()
            elif c == Tokenizer.MARKER: tokens.append(self.read_marker())
            elif c == '[' and self.is_marker('['): src.consume() ; tokens.append(Token(TokenKind.QUOTATION_OPEN, c))
            elif c == ']' and self.is_marker(']'): src.consume() ; tokens.append(Token(TokenKind.QUOTATION_CLOSE, c))
            else:
                word = self.read_word()
                kind = TokenKind.DEFINITION_TERMINATOR if word == Tokenizer.TERMINATOR else TokenKind.WORD_OR_DATA
                tokens.append(Token(kind, word))
        return TokenStream(tokens, src.name)

class Directive:
    '''
    Abstract. A directive is a ':keyword argument' pair controlling compilation.
    Implementation is provided in sub classes.
    '''
    classes : Set[Type['Directive']] = set()
    def __init_subclass__(cls) -> None: Directive.classes.add(cls)
    accepts: Tuple[TokenKind, ...] = (TokenKind.WORD_OR_DATA,)
    def __init__(self, keyword: str, argument: str, comment: Optional[str] = None) -> None:
        self.keyword = keyword ; self.argument = argument ; self.comment = comment
    def apply(self, _parser: 'Parser', _argument: str) -> None:
        ... # to overload
    def register(self, parser: 'Parser') -> None:
        parser.register(self.keyword, self)
    def __str__(self) -> str:
        return f'{fg.MAGENTA}{self.keyword}{fg.RESET} {self.argument}'

class Parser:
    '''
    Gramatical parser and loader.
    Reads a TokenStream, compiles word definitions into the dictionary,
    applies directives and dispatches every other top level value to the runtime.
    '''
    NUMBER = re.compile(r'-?[0-9]+')
    BOOLEANS = { 'true': True, 'false': False }

    def __init__(self, runtime: 'Runtime') -> None:
        self.runtime = runtime
        self.directives: Dict[str, Directive] = {}
        self.loading: List[str] = []

    def register(self, keyword: str, directive: Directive) -> None:
        self.directives[keyword] = directive

    @staticmethod
    def parse(input_str: str, name: str = '<input>') -> TokenStream:
        return Tokenizer(CharacterSource(input_str, name)).tokenize()

    def execute(self, input_str: str, name: str = '<input>') -> None:
        self.load(self.parse(input_str, name))

    def load_file(self, path: str) -> None:
        key = os.path.abspath(path)
        if key in self.loading: raise FileAccessFailure(f'circular include of {path}', self.runtime.source)
        stream = Tokenizer(CharacterSource.from_file(path)).tokenize()
        self.loading.append(key)
        try: self.load(stream)
        finally: self.loading.pop()

    def locate(self, path: str) -> str:
        ''' Resolves an included path against the directory of the file including it. '''
        current = self.runtime.source
        if not os.path.isabs(path) and current is not None and os.path.isfile(current):
            candidate = os.path.join(os.path.dirname(current), path)
            if os.path.isfile(candidate): return candidate
        return path

    def load(self, stream: TokenStream) -> None:
        runtime = self.runtime
        previous = runtime.source ; runtime.source = stream.name
        log.debug('loading %s (%d tokens)', stream.name, len(stream))
        try:
            while True:
                token = stream.next()
                if token is None: break
                if token.kind is TokenKind.WORD_DEFINITION_HEADER: self.parse_definition(stream, token.text)
                elif token.kind is TokenKind.DIRECTIVE: self.parse_directive(stream, token)
                else: runtime.dispatch(self.parse_value(stream, token))
        except Error as error:
            if error.source is None: error.source = stream.name
            raise
        finally:
            runtime.source = previous

    def parse_directive(self, stream: TokenStream, token: Token) -> None:
        directive = self.directives.get(token.text)
        if directive is None: raise UnresolvedToken(f"'{token.text}' is not a known directive")
        argument = stream.next()
        if argument is None or argument.kind not in directive.accepts:
            raise MalformedDirective(f'directive {token.text} expects {directive.argument}')
        log.debug('directive %s %s', token.text, argument.text)
        directive.apply(self, argument.text)

    def parse_definition(self, stream: TokenStream, name: str) -> None:
        self.check_valid_word(name)
        body: List[Value] = []
        while True:
            token = stream.next()
            if token is None:
                raise UnterminatedDefinition(f"word definition terminator ('{Tokenizer.TERMINATOR}') expected at end of word '{name}'")
            if token.kind is TokenKind.DEFINITION_TERMINATOR: break
            if token.kind in (TokenKind.WORD_DEFINITION_HEADER, TokenKind.DIRECTIVE):
                raise UnexpectedToken(f"'{token.text}' is not allowed inside the definition of '{name}'")
            body.append(self.parse_value(stream, token))
        self.runtime.dictionary.define(name, body)

    def parse_quotation(self, stream: TokenStream) -> Quotation:
        content: List[Value] = []
        while True:
            token = stream.next()
            if token is None or token.kind is TokenKind.DEFINITION_TERMINATOR:
                raise UnterminatedQuotation("unexpected end of quotation without closing marker ']'")
            if token.kind is TokenKind.QUOTATION_CLOSE: return Quotation(content)
            content.append(self.parse_value(stream, token))

    def parse_value(self, stream: TokenStream, token: Token) -> Value:
        if token.kind is TokenKind.STRING_LITERAL: return String(token.text)
        if token.kind is TokenKind.QUOTATION_OPEN: return self.parse_quotation(stream)
        if token.kind is not TokenKind.WORD_OR_DATA:
            raise UnexpectedToken(f"unexpected '{token.text}' ({token.kind.value})")
        return self.resolve(token.text)

    def resolve(self, text: str) -> Value:
        if text in Parser.BOOLEANS: return Boolean(Parser.BOOLEANS[text])
        if Parser.NUMBER.fullmatch(text): return Number(int(text))
        dictionary = self.runtime.dictionary
        ref = dictionary.reference(text)
        if ref is not None: return ref
        if text in dictionary.variables: return VariableRef(text)
        raise UnresolvedToken(f"'{text}' is not a defined word or valid data type")

    @staticmethod
    def check_valid_word(word: str) -> None:
        if word in Parser.BOOLEANS or Parser.NUMBER.fullmatch(word):
            raise ReservedWord(f"word name '{word}' is a literal")
