"""
Code generation utilities

Provides helpers for generating Python code.
"""

import keyword


class CodeGen:
    """Code generation helper with indentation support"""

    def __init__(self):
        self._lines: list[str] = []
        self._indent: int = 0
        self._indent_str: str = '    '  # 4 spaces

    def line(self, text: str = ''):
        """Add a line with current indentation"""
        if text:
            self._lines.append(self._indent_str * self._indent + text)
        else:
            self._lines.append('')

    def indent(self):
        """Increase indentation"""
        self._indent += 1

    def dedent(self):
        """Decrease indentation"""
        if self._indent > 0:
            self._indent -= 1

    def block(self, header: str):
        """Context manager for an indented suite"""
        return _BlockContext(self, header)

    def docstring(self, text: str):
        """Add a docstring, one source line per text line"""
        doc_lines = text.strip().splitlines() or ['']
        if len(doc_lines) == 1:
            self.line(f'"""{doc_lines[0]}"""')
            return
        self.line(f'"""{doc_lines[0]}')
        for doc_line in doc_lines[1:]:
            self.line(doc_line.rstrip())
        self.line('"""')

    def output(self) -> str:
        """Get generated code as string"""
        return '\n'.join(self._lines) + '\n'


class _BlockContext:
    """Context manager for indented code blocks"""

    def __init__(self, gen: CodeGen, header: str):
        self._gen = gen
        self._header = header

    def __enter__(self):
        self._gen.line(self._header)
        self._gen.indent()
        return self

    def __exit__(self, *args):
        self._gen.dedent()


def as_pascal_case(name: str, prefix: str = '') -> str:
    """Convert C name to PascalCase, removing prefix

    Examples:
        foo_open_file -> FooOpenFile
        foo_point_t -> FooPoint
    """
    parts = name.lower().split('_')
    start = 1 if prefix and parts and parts[0] + '_' == prefix else 0
    result = ''
    for part in parts[start:]:
        if part:
            result += part.capitalize()
    return result


def normalize_type_name(name: str) -> str:
    """Normalize a C type name to a class name

    Examples:
        foo_point_t -> FooPoint
        FooWindow -> FooWindow
        window -> Window
    """
    if name.endswith('_t'):
        name = name[:-2]
    if '_' in name:
        return as_pascal_case(name)
    return name[:1].upper() + name[1:]


def as_method_name(symbol: str) -> str:
    """Lowercased symbol, made safe as a Python identifier"""
    return safe_ident(symbol.lower())


def safe_ident(name: str) -> str:
    """Append '_' to names that clash with Python keywords or 'self'"""
    if keyword.iskeyword(name) or name == 'self':
        return name + '_'
    return name
