"""
Dynamic library platform shim

    open_library(name) -> handle, or raises LibraryNotFound
    resolve(handle, symbol) -> foreign function, or raises MissingSymbol

Platforms without a dynamic loader get a fallback where both always fail.
"""

import ctypes
import os

from .errors import LibraryNotFound, MissingSymbol

if os.name == 'posix':

    def open_library(name: str) -> ctypes.CDLL:
        """Open with symbols bound immediately (RTLD_NOW)"""
        try:
            return ctypes.CDLL(name, mode=os.RTLD_NOW | os.RTLD_LOCAL)
        except OSError as e:
            raise LibraryNotFound(name) from e

elif os.name == 'nt':

    def open_library(name: str) -> ctypes.CDLL:
        """Open through the default DLL search order"""
        try:
            return ctypes.CDLL(name)
        except OSError as e:
            raise LibraryNotFound(name) from e

else:

    def open_library(name: str):
        """No dynamic loader on this platform"""
        raise LibraryNotFound(name)


def resolve(handle, symbol: str):
    """Look up symbol; each call returns a new foreign function object"""
    if handle is None:
        raise MissingSymbol(symbol)
    try:
        return handle[symbol]
    except AttributeError:
        raise MissingSymbol(symbol) from None
