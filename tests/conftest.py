"""
Shared fixtures.

- interpreter: a fresh Interpreter, prelude words included
- run(): executes source text and returns the operand stack
- output(): captured stdout since the last call, without color codes
"""

import re
import pytest

from quotaforth.interpreter import Interpreter

ANSI = re.compile(r'\x1b\[[0-9;]*m')


@pytest.fixture
def interpreter():
    return Interpreter()


@pytest.fixture
def run(interpreter):
    def evaluate(text, name='<test>'):
        interpreter.execute(text, name)
        return interpreter.stack
    return evaluate


@pytest.fixture
def output(capsys):
    def read():
        captured = capsys.readouterr()
        return ANSI.sub('', captured.out)
    return read
