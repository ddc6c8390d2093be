''' Execution engine '''

import logging
from typing import Dict, List, Iterable, Mapping, Optional, Sequence, Tuple, TypeVar, Union, Type, cast
from quotaforth.atoms import (Value, WordRef, Intrinsic, Uninitialized, StackUnderflow,
    TypeMismatch, UnresolvedDeferredWord, CallDepthExceeded, ReservedWord, UnresolvedToken)
from quotaforth.intrinsics import PRIMITIVES

log = logging.getLogger(__name__)

Body = Tuple[Value, ...]

class Entry:
    '''
    A dictionary word : its id, its name and its stacked definition layers.
    A layer set to None is pending, reserved by :defer and not yet defined.
    Intrinsics have no layer.
    '''
    def __init__(self, word_id: int, name: str, intrinsic: Optional[Intrinsic] = None) -> None:
        self.word_id = word_id
        self.name = name
        self.intrinsic = intrinsic
        self.layers: List[Optional[Body]] = []
    @property
    def pending(self) -> bool:
        return len(self.layers) > 0 and self.layers[-1] is None
    @property
    def current(self) -> int:
        return max(len(self.layers) - 1, 0)
    def body(self, layer: int) -> Optional[Body]:
        return self.layers[layer] if 0 <= layer < len(self.layers) else None
    def describe(self) -> str:
        if self.intrinsic is not None:
            comment = f'( {self.intrinsic.comment} ) ' if self.intrinsic.comment else ''
            return f'{comment}{self.intrinsic}'
        body = self.layers[-1] if self.layers else None
        if body is None: return 'deferred'
        return ' '.join(f'{value}' for value in body)

class Dictionary:
    '''
    Word names, ids and definitions, plus the variable store.
    Intrinsics keep their fixed negative ids, user words are numbered from 1 in order of appearance.
    '''

    def __init__(self, intrinsics: Mapping[str, Intrinsic]) -> None:
        self.ids: Dict[str, int] = {}
        self.entries: Dict[int, Entry] = {}
        self.variables: Dict[str, Value] = {}
        self.next_id = 1
        for name, intrinsic in intrinsics.items():
            self.ids[name] = intrinsic.word_id
            self.entries[intrinsic.word_id] = Entry(intrinsic.word_id, name, intrinsic)

    def __contains__(self, name: str) -> bool: return name in self.ids

    def lookup(self, name: str) -> Optional[Entry]:
        word_id = self.ids.get(name)
        return self.entries[word_id] if word_id is not None else None

    def reference(self, name: str) -> Optional[WordRef]:
        entry = self.lookup(name)
        if entry is None: return None
        return WordRef(entry.word_id, name, entry.current)

    def allocate(self, name: str) -> Entry:
        entry = Entry(self.next_id, name) ; self.next_id += 1
        self.ids[name] = entry.word_id
        self.entries[entry.word_id] = entry
        return entry

    def user_word(self, name: str) -> Entry:
        entry = self.lookup(name)
        if entry is None: return self.allocate(name)
        if entry.intrinsic is not None: raise ReservedWord(f"cannot redefine intrinsic '{name}'")
        return entry

    def define(self, name: str, body: Iterable[Value]) -> Entry:
        entry = self.user_word(name)
        if entry.pending: entry.layers[-1] = tuple(body)
        else: entry.layers.append(tuple(body))
        self.variables.pop(name, None)
        log.debug('defined %s (id %d, layer %d)', name, entry.word_id, entry.current)
        return entry

    def defer(self, name: str) -> Entry:
        entry = self.user_word(name)
        if not entry.pending: entry.layers.append(None)
        self.variables.pop(name, None)
        return entry

    def declare_variable(self, name: str) -> None:
        if name in self.ids: raise ReservedWord(f"'{name}' is already a word, cannot be used as a variable")
        self.variables.setdefault(name, Uninitialized())

    @property
    def deferred(self) -> List[str]:
        return [entry.name for entry in self.entries.values() if entry.pending]

    def words(self) -> Iterable[Entry]:
        for name in sorted(self.ids): yield self.entries[self.ids[name]]

class Frame:
    ''' A body or quotation being executed, and the position of the next value to dispatch. '''
    def __init__(self, values: Sequence[Value]) -> None:
        self.values = values
        self.cursor = 0

TValue1 = TypeVar('TValue1', bound = Value)
TValue2 = TypeVar('TValue2', bound = Value)
ValueTypeSpec = Union[Type[Value], Tuple[Type[Value],...]]

class Runtime:
    '''
    Runtime environement for execution.
    Holds the dictionary, the operand stack and the frames being executed.
    '''
    DEFAULT_MAX_DEPTH = 10000

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.dictionary = Dictionary(PRIMITIVES)
        self.stack: List[Value] = []
        self.frames: List[Frame] = []
        self.source: Optional[str] = None
        if max_depth < 1: raise ValueError(f'max_depth must be positive, got {max_depth}')
        self.max_depth = max_depth

    @staticmethod
    def check_type(value: Value, value_type: ValueTypeSpec) -> None:
        if isinstance(value, value_type): return
        if isinstance(value_type, type):
            raise TypeMismatch(f'expected {value_type.__name__.lower()}, got {value!r}')
        raise TypeMismatch(f'expected one of {" , ".join(t.__name__.lower() for t in value_type)}, got {value!r}')

    def require(self, n: int) -> None:
        if len(self.stack) < n:
            if n > 1: raise StackUnderflow(f'{n} arguments needed, stack holds {len(self.stack)}')
            raise StackUnderflow('one argument needed (empty stack)')

    def pop_args(self, types: List[ValueTypeSpec], matching: bool = False) -> List[Value]:
        ''' Pops len(types) values, top first, once all of them are checked. '''
        n = len(types)
        self.require(n)
        for i, t in enumerate(types): Runtime.check_type(self.peek(i), t)
        if matching and len({ type(arg) for arg in self.stack[-n:] }) != 1:
            raise TypeMismatch('unexpected mismatch of types on stack : ' + ' <> '.join(f'{v!r}' for v in reversed(self.stack[-n:])))
        return [self.stack.pop() for _ in range(n)]

    def pop(self, type1: Type[TValue1]) -> TValue1:
        return cast(TValue1, self.pop_args([type1])[0])

    def pop2(self, type1: Type[TValue1], type2: Type[TValue2], matching: bool = False) -> Tuple[TValue1, TValue2]:
        return cast(Tuple[TValue1,TValue2], tuple(self.pop_args([type1, type2], matching)))

    def peek(self, i: int = 0) -> Value:
        self.require(i + 1)
        return self.stack[-(i+1)]

    def push(self, value: Value) -> None:
        self.stack.append(value)

    def enter(self, values: Sequence[Value]) -> None:
        ''' Schedules values to be dispatched next, in a new frame. '''
        if len(values) == 0: return
        if len(self.frames) >= self.max_depth:
            raise CallDepthExceeded(f'call depth limit ({self.max_depth}) exceeded')
        self.frames.append(Frame(values))

    def run(self, values: Sequence[Value]) -> None:
        '''
        Dispatches values, along with every body and quotation they enter, until all are done.
        A frame is dropped as soon as its last value is fetched, so calls in tail position do not nest.
        '''
        base = len(self.frames)
        self.enter(values)
        try:
            while len(self.frames) > base:
                frame = self.frames[-1]
                value = frame.values[frame.cursor] ; frame.cursor += 1
                if frame.cursor >= len(frame.values): self.frames.pop()
                value.execute(self)
        finally:
            del self.frames[base:]

    def dispatch(self, value: Value) -> None:
        self.run((value,))

    def invoke(self, ref: WordRef) -> None:
        entry = self.dictionary.entries.get(ref.word_id)
        if entry is None: raise UnresolvedToken(f"unknown word '{ref.name}'")
        if entry.intrinsic is not None:
            entry.intrinsic.execute(self)
            return
        body = entry.body(ref.layer)
        if body is None: raise UnresolvedDeferredWord(f"deferred word '{ref.name}' was never defined")
        self.enter(body)
