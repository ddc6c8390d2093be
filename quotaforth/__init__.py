''' quotaforth : concatenative stack language with quotations '''

from quotaforth.atoms import Error
from quotaforth.interpreter import Interpreter, main

__version__ = '0.1.0'
