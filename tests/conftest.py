"""
Pytest configuration and fixtures for dl_bindgen tests.

Provides reusable fixtures for:
- Building spec models from plain dictionaries
- Interpreting a single prototype with its pattern instructions
- Replacing the dynamic loader with an in-process fake
"""

import importlib.util
import os
import sys
from pathlib import Path

import pytest

SCRIPTS_DIR = Path(__file__).parent.parent / 'scripts'
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))

from dl_bindgen import runtime
from dl_bindgen.func import FuncInterpreter
from dl_bindgen.ir import SpecModel
from dl_bindgen.types import TypeMapper


@pytest.fixture
def data_dir():
    """Path to test data files."""
    return Path(__file__).parent / 'data'


@pytest.fixture
def make_spec():
    """
    Fixture that returns a function building a SpecModel from a dict.

    Usage:
        spec = make_spec(func=[{"proto": "...", "mod": ["M"], "pat": [...]}])
    """
    def _make(**sections) -> SpecModel:
        return SpecModel.from_dict(sections)
    return _make


@pytest.fixture
def interpret(make_spec):
    """
    Fixture that interprets one prototype.

    Usage:
        fn = interpret("int32_t foo_new(uint32_t* out)", ["NEW out"])
        assert fn.returns.kind == "single"
    """
    def _interpret(proto: str, pat: list, **sections):
        spec = make_spec(func=[{'proto': proto, 'mod': ['M'], 'pat': pat}], **sections)
        return FuncInterpreter(TypeMapper(spec)).interpret(spec.funcs[0])
    return _interpret


class FakeFunction:
    """Stands in for a ctypes foreign function."""

    def __init__(self, symbol, impl):
        self.symbol = symbol
        self.impl = impl
        self.restype = None
        self.argtypes = None
        self.calls = []

    def __call__(self, *args):
        self.calls.append(args)
        return self.impl(*args)


class FakeLibrary:
    """Maps symbol names to Python implementations."""

    def __init__(self, name, symbols):
        self.name = name
        self.symbols = symbols
        self.resolved = {}

    def __getitem__(self, symbol):
        if symbol not in self.symbols:
            raise AttributeError(symbol)
        func = FakeFunction(symbol, self.symbols[symbol])
        self.resolved[symbol] = func
        return func


@pytest.fixture
def fake_loader(monkeypatch):
    """
    Fixture that replaces dlopen with a fake library.

    Usage:
        lib = fake_loader({"foo_open": lambda path, out: 0})
    Opening any other name than the one passed as `name` fails.
    """
    monkeypatch.setattr(runtime, '_loaders', {})
    opened = []

    def _install(symbols: dict, name: str = 'libfake.so'):
        library = FakeLibrary(name, symbols)

        def open_library(requested):
            opened.append(requested)
            if requested != name:
                raise runtime.LibraryNotFound(requested)
            return library

        monkeypatch.setattr(runtime.dylib, 'open_library', open_library)
        library.opened = opened
        return library
    return _install


@pytest.fixture
def load_generated(tmp_path):
    """
    Fixture that imports generated source text as a module.

    Usage:
        mod = load_generated(source)
        files = mod.Files()
    """
    counter = [0]

    def _load(source: str):
        counter[0] += 1
        name = f'generated_{counter[0]}'
        path = tmp_path / f'{name}.py'
        path.write_text(source, encoding='utf-8')
        spec = importlib.util.spec_from_file_location(name, os.fspath(path))
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module
    return _load
