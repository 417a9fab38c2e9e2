"""
Runtime support for generated binding modules

Generated modules import this as ``from dl_bindgen import runtime as _rt``.
It owns the load-once library singletons and the wrappers used by the
marshaling code (handles, mutable references, buffers).
"""

import ctypes
import threading
from typing import Optional, Sequence, Union

from . import dylib
from .errors import LinkError, LibraryNotFound, MissingSymbol

__all__ = [
    'LinkError', 'LibraryNotFound', 'MissingSymbol',
    'CallFailed', 'ThreadAffinityError', 'UseAfterFree',
    'Library', 'load_library',
    'Handle', 'Ref', 'Buffer',
    'assert_live', 'text_arg', 'slice_arg', 'narrow',
]

# Safe scalar token -> (minimum, maximum)
_INT_RANGES = {
    'i8': (-2**7, 2**7 - 1), 'u8': (0, 2**8 - 1),
    'i16': (-2**15, 2**15 - 1), 'u16': (0, 2**16 - 1),
    'i32': (-2**31, 2**31 - 1), 'u32': (0, 2**32 - 1),
    'i64': (-2**63, 2**63 - 1), 'u64': (0, 2**64 - 1),
    'isize': (-2**(8 * ctypes.sizeof(ctypes.c_ssize_t) - 1), 2**(8 * ctypes.sizeof(ctypes.c_ssize_t) - 1) - 1),
    'usize': (0, 2**(8 * ctypes.sizeof(ctypes.c_size_t)) - 1),
}


class CallFailed(Exception):
    """A fallible function's success test did not hold"""

    def __init__(self, symbol: str, code):
        super().__init__(f'{symbol} failed with {code!r}')
        self.symbol = symbol
        self.code = code


class ThreadAffinityError(AssertionError):
    """A module was constructed on a thread other than the one that opened
    the library"""


class UseAfterFree(AssertionError):
    """A handle was used after a call consumed it"""


class Library:
    """An opened shared library"""

    def __init__(self, name: str, handle):
        self.name = name
        self._handle = handle

    def resolve(self, symbol: str, restype, argtypes: list):
        """Resolve symbol and give it its foreign signature"""
        func = dylib.resolve(self._handle, symbol)
        func.restype = restype
        func.argtypes = argtypes
        return func


class _LoadOnce:
    """One-shot open of one library, pinned to the opening thread"""

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()
        self._done = False
        self._owner: Optional[int] = None
        self._library: Optional[Library] = None

    def get(self) -> Library:
        with self._lock:
            if not self._done:
                self._owner = threading.get_ident()
                try:
                    self._library = Library(self.name, dylib.open_library(self.name))
                except LibraryNotFound:
                    self._library = None
                self._done = True

        if threading.get_ident() != self._owner:
            raise ThreadAffinityError(
                f'"{self.name}" was opened on thread {self._owner}; '
                f'modules must be constructed on that thread')
        if self._library is None:
            raise LibraryNotFound(self.name)
        return self._library


_loaders: dict[str, _LoadOnce] = {}
_loaders_lock = threading.Lock()


def load_library(name: str) -> Library:
    """Open name once per process; later calls reuse the first result"""
    with _loaders_lock:
        loader = _loaders.get(name)
        if loader is None:
            loader = _loaders[name] = _LoadOnce(name)
    return loader.get()


class Handle:
    """Opaque address owned by the library"""

    __slots__ = ('address',)

    def __init__(self, address: Optional[int] = None):
        self.address = address

    @property
    def is_null(self) -> bool:
        return not self.address

    def __repr__(self):
        if self.is_null:
            return f'{type(self).__name__}(NULL)'
        return f'{type(self).__name__}(0x{self.address:x})'


def assert_live(handle: Handle, symbol: str):
    """Fail hard when a consumed (null-marked) handle is passed again"""
    if handle.is_null:
        raise UseAfterFree(f'{symbol}: {type(handle).__name__} used after free')


class Ref:
    """Mutable box for scalar in/out parameters"""

    __slots__ = ('value',)

    def __init__(self, value=0):
        self.value = value

    def __repr__(self):
        return f'Ref({self.value!r})'


class Buffer:
    """Fixed-capacity array filled by the library

    The logical length is set by the wrapper after the call and is not
    checked against the capacity; reserve enough room before calling.
    """

    def __init__(self, ctype, capacity: int = 0):
        self.ctype = ctype
        self.length = 0
        self._array = (ctype * capacity)()

    @property
    def capacity(self) -> int:
        return len(self._array)

    @property
    def base(self):
        """Pointer to the first element"""
        return self._array

    def reserve(self, additional: int):
        """Make room for at least additional elements past the length"""
        needed = self.length + additional
        if needed > self.capacity:
            grown = (self.ctype * needed)()
            ctypes.memmove(grown, self._array, ctypes.sizeof(self.ctype) * self.length)
            self._array = grown

    def set_length(self, length: int):
        if length < 0:
            raise ValueError(f'negative buffer length {length}')
        self.length = length

    def __len__(self):
        return self.length

    def __getitem__(self, index):
        return self._array[:self.length][index]

    def __iter__(self):
        return iter(self._array[:self.length])


def text_arg(text: Union[str, bytes]) -> bytes:
    """NUL-terminated text for a const char* parameter"""
    if isinstance(text, str):
        text = text.encode('utf-8')
    if not isinstance(text, (bytes, bytearray)):
        raise TypeError(f'expected str or bytes, got {type(text).__name__}')
    if b'\0' in text:
        raise ValueError('text contains an embedded NUL byte')
    return bytes(text)


def slice_arg(ctype, items: Sequence):
    """Contiguous ctypes array for a (pointer, count) pair

    ctypes arrays of the right element type are passed through without a
    copy; bytes-like objects are copied for one-byte elements.
    """
    if isinstance(items, ctypes.Array) and items._type_ is ctype:
        return items
    if isinstance(items, (bytes, bytearray, memoryview)) and ctypes.sizeof(ctype) == 1:
        data = bytes(items)
        return (ctype * len(data)).from_buffer_copy(data)
    return (ctype * len(items))(*items)


def narrow(token: str, value):
    """Convert a raw value to its safe width; OverflowError when it does not fit"""
    bounds = _INT_RANGES.get(token)
    if bounds is None:
        return value
    lo, hi = bounds
    if not lo <= value <= hi:
        raise OverflowError(f'{value} does not fit in {token}')
    return value
