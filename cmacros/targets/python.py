# pylint: disable=cyclic-import
# Cyclic import is intentional - targets register themselves when loaded
"""Python target.

Emits annotated module-level constants::

    MAX_RETRIES: int = 5
    TIMEOUT_MS: int = (MAX_RETRIES * 1000)
    VERSION: str = '1.0'

All C integer types map to ``int``, floating types to ``float``, and char
and string literals to ``str``. C integer division becomes ``//``, and char
constants used in arithmetic go through ``ord()``.
"""

import keyword

from cmacros.ir import (
    CHAR_TYPE,
    STRING_TYPE,
    CType,
    Operator,
)
from cmacros.targets import (
    register_target,
)
from cmacros.targets.base import (
    Target,
)


class PythonTarget(Target):
    """Python module constants with type annotations."""

    name = "python"
    description = "Python annotated module constants"
    comment_prefix = "#"
    reserved = frozenset(keyword.kwlist)

    def type_name(self, ctype: CType) -> str:
        if ctype in (STRING_TYPE, CHAR_TYPE):
            return "str"
        if ctype.is_floating:
            return "float"
        return "int"

    def declaration(self, name: str, ctype: CType, initializer: str) -> str:
        return f"{name}: {self.type_name(ctype)} = {initializer}"

    def render_char(self, value: str) -> str:
        return repr(value)

    def render_string(self, value: str) -> str:
        return repr(value)

    def render_reference(self, name: str, ctype: CType, result_type: CType) -> str:
        if ctype == CHAR_TYPE and result_type != CHAR_TYPE:
            return f"ord({name})"
        return name

    def render_operator(self, op: Operator, result_type: CType) -> str:
        if op.op == "/" and not result_type.is_floating:
            return "//"
        return op.op


register_target("python", PythonTarget)
