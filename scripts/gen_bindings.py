#!/usr/bin/env python3
"""
gen_bindings.py - safe binding generator entry point

Generates a ctypes binding module from a JSON binding spec.

Usage:
    python scripts/gen_bindings.py ffi/libname.json out/libname.py [--stubs out/libname.pyi]
"""

import os
import sys

# Add scripts directory to path
script_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, script_dir)

from dl_bindgen.cli import main


if __name__ == '__main__':
    sys.exit(main())
