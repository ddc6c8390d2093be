''' Interactive session and command line '''

import os
import sys
import logging
import argparse
from typing import List, Optional
import colorama
from colorama import Fore as fg

from quotaforth.atoms import Error, ExecutionError, SessionEnd, Value
from quotaforth.parsing import Parser, Directive, Tokenizer, CharacterSource
from quotaforth.execution import Runtime
import quotaforth.patterns  # ignore 'Unused import' warning, registers the directives

log = logging.getLogger(__name__)

class Interpreter:
    ''' The interpreter program : a runtime, its loader, and the prelude words. '''

    INIT_FILENAME = 'init.qf'

    PRELUDE = [
        ': dup ( a -- a a ) 0 pick ;',
        ': over ( a b -- a b a ) 1 pick ;',
        ': nip ( a b -- b ) swap drop ;',
        ': tuck ( a b -- b a b ) swap 1 pick ;',
        ': 2dup ( a b -- a b a b ) 1 pick 1 pick ;',
        ': 2drop ( a b -- ) drop drop ;',
        ': neg ( a -- -a ) 0 swap - ;',
    ]

    def __init__(self, prelude: bool = True, max_depth: int = Runtime.DEFAULT_MAX_DEPTH) -> None:
        self.prompt = fg.LIGHTWHITE_EX + '>> ' + fg.RESET
        self.showstack = True
        self.runtime = Runtime(max_depth)
        self.parser = Parser(self.runtime)
        for directive in Directive.classes: directive().register(self.parser)
        if prelude:
            for instruction in Interpreter.PRELUDE: self.execute(instruction, '<prelude>')

    @property
    def stack(self) -> List[Value]: return self.runtime.stack

    def execute(self, expression: str, name: str = '<input>') -> None:
        self.parser.execute(expression, name)

    def load_file(self, path: str) -> None:
        log.debug('loading file %s', path)
        self.parser.load_file(path)

    def load_init(self, path: Optional[str] = None) -> bool:
        ''' Loads the init file when present. An explicitly named one must exist. '''
        if path is None:
            path = Interpreter.INIT_FILENAME
            if not os.path.isfile(path): return False
        self.load_file(path)
        return True

    def loop(self) -> None:
        while True:
            if self.showstack: print() ; self.execute('stack')
            try:
                self.execute(input(self.prompt), '<repl>')
            except (SessionEnd, EOFError):
                break
            except Error as error:
                print(error)
            except KeyboardInterrupt:
                print(ExecutionError('execution interupted by user'))
        print('\nSee you soon !\n')

def positive_int(text: str) -> int:
    value = int(text)
    if value < 1: raise argparse.ArgumentTypeError(f'expected a positive integer, got {value}')
    return value

def dump_tokens(path: str) -> None:
    stream = Tokenizer(CharacterSource.from_file(path)).tokenize()
    for token in stream:
        print(f'{fg.LIGHTBLACK_EX}token {token.kind.value:<10}{fg.RESET} {token.text}')

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog='quotaforth', description='A concatenative, stack based language with quotations.')
    parser.add_argument('file', nargs='?', help='source file to run; starts the interactive loop when omitted')
    parser.add_argument('--init', metavar='PATH', help=f'init file loaded first (default: {Interpreter.INIT_FILENAME} when present)')
    parser.add_argument('--no-init', action='store_true', help='do not load any init file')
    parser.add_argument('--no-prelude', action='store_true', help='do not define the prelude words (dup, over, ...)')
    parser.add_argument('--tokens', action='store_true', help='print the tokens of the file before running it')
    parser.add_argument('--max-depth', type=positive_int, default=Runtime.DEFAULT_MAX_DEPTH, help='maximum nesting of word calls')
    parser.add_argument('--no-color', action='store_true', help='disable colored output')
    parser.add_argument('-d', '--debug', action='store_true', help='log definitions, directives and loaded files')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING, format='%(levelname)s %(name)s: %(message)s')
    colorama.init(strip=True if args.no_color else None)
    try:
        interpreter = Interpreter(prelude=not args.no_prelude, max_depth=args.max_depth)
        current = args.init or Interpreter.INIT_FILENAME
        try:
            if not args.no_init: interpreter.load_init(args.init)
            if args.file is None:
                print(f'Welcome to {fg.LIGHTWHITE_EX}quotaforth{fg.RESET}. Type {fg.YELLOW}words{fg.RESET} for available words, {fg.YELLOW}bye{fg.RESET} to leave.')
                interpreter.loop()
                return 0
            current = args.file
            if args.tokens: dump_tokens(args.file)
            interpreter.load_file(args.file)
        except SessionEnd:
            pass
        except Error as error:
            print(f"Error encountered while processing '{current}'", file=sys.stderr)
            print(error.report(), file=sys.stderr)
            return 1
        interpreter.execute('stack')
        interpreter.execute('words')
        return 0
    finally:
        colorama.deinit()
