''' All directive implementations '''

import logging
from quotaforth.parsing import Directive, Parser, TokenKind

log = logging.getLogger(__name__)

class VariableDirective(Directive):
    ''' :variable NAME  declares a variable, initially uninitialized. '''
    def __init__(self) -> None: super().__init__(':variable', 'a variable name', 'declares a variable')
    def apply(self, parser: Parser, argument: str) -> None:
        parser.check_valid_word(argument)
        parser.runtime.dictionary.declare_variable(argument)

class DeferDirective(Directive):
    ''' :defer NAME  reserves a word, to be defined later. Allows forward and mutually recursive references. '''
    def __init__(self) -> None: super().__init__(':defer', 'a word name', 'reserves a word')
    def apply(self, parser: Parser, argument: str) -> None:
        parser.check_valid_word(argument)
        parser.runtime.dictionary.defer(argument)

class IncludeDirective(Directive):
    ''' :include "path"  loads another source file before going on. '''
    accepts = (TokenKind.STRING_LITERAL, TokenKind.WORD_OR_DATA)
    def __init__(self) -> None: super().__init__(':include', 'a file path', 'loads a source file')
    def apply(self, parser: Parser, argument: str) -> None:
        path = parser.locate(argument)
        log.debug('including %s', path)
        parser.load_file(path)
