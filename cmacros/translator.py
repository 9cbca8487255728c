"""Translation of extracted macros into target-language declarations.

:func:`translate` is a thin driver: it classifies every macro once, builds a
:class:`~cmacros.ir.SymbolTable` for the run and asks a
:class:`~cmacros.ir.TranslationPolicy` for the outcome of each macro, in
input order.

:class:`DefaultPolicy` is the reference policy:

* literals become typed constants (type inferred from suffix and value)
* expressions become constants whose initializer re-renders the tokens,
  provided every identifier resolves to another translatable macro (before
  or after it in the file) or a ``<limits.h>`` constant
* function-like macros and opaque bodies are skipped

Example
-------
::

    from cmacros.extractor import extract_macros
    from cmacros.translator import DefaultPolicy, translate

    macros, _ = extract_macros(code)
    for macro, outcome in translate(macros, DefaultPolicy(target="python")):
        print(macro.name, outcome)
"""

import fnmatch
from typing import (
    Iterable,
    Optional,
    Union,
)

from cmacros.classifier import (
    MacroClassifier,
)
from cmacros.ir import (
    CHAR_TYPE,
    INT_TYPE,
    STRING_TYPE,
    Char,
    CType,
    Emit,
    Expr,
    Float,
    Integer,
    MacroDef,
    Number,
    Opaque,
    Skip,
    SkipKind,
    Str,
    SymbolTable,
    TranslationOutcome,
    TranslationPolicy,
    ValueKind,
    common_type,
)
from cmacros.targets import (
    get_target,
)
from cmacros.targets.base import (
    Target,
)


class DefaultPolicy:
    """Reference translation policy.

    Types are resolved at most once per macro and symbol table: the policy
    keeps the resolved types of the table it last saw, so translating a
    whole run costs time linear in the number of references.

    :param target: Target language name or :class:`~cmacros.targets.base.Target`
        instance. None selects the default target (Rust).
    :param exclude: fnmatch patterns of macro names never to translate, such
        as ``"_*"`` for reserved names or ``"*_H"`` for include guards.
    """

    def __init__(self, target: Union[str, Target, None] = None, exclude: Iterable[str] = ()) -> None:
        self.target = target if isinstance(target, Target) else get_target(target)
        self.exclude = tuple(exclude)
        self._resolver: Optional[_TypeResolver] = None

    def is_excluded(self, name: str) -> bool:
        return any(fnmatch.fnmatchcase(name, pattern) for pattern in self.exclude)

    def decide(self, macro: MacroDef, value: ValueKind, symbols: SymbolTable) -> TranslationOutcome:
        if self.is_excluded(macro.name):
            return Skip(f"{macro.name} matches an exclude pattern", SkipKind.EXCLUDED)

        ctype = self.resolve_type(macro, value, symbols)
        if isinstance(ctype, Skip):
            return ctype

        name = self.target.identifier(macro.name)
        initializer = self.render(value, ctype, symbols)
        return Emit(self.target.declaration(name, ctype, initializer), name=name)

    def resolver(self, symbols: SymbolTable) -> "_TypeResolver":
        """The type resolver shared by every macro of ``symbols``."""
        if self._resolver is None or self._resolver.symbols is not symbols:
            self._resolver = _TypeResolver(self, symbols)
        return self._resolver

    def resolve_type(self, macro: MacroDef, value: ValueKind, symbols: SymbolTable) -> Union[CType, Skip]:
        """Determine the C type of a macro's value, or why it has none.

        References are followed through the symbol table. A macro that is not
        the table's definition of its name is resolved as if it replaced that
        definition.
        """
        if symbols.get(macro.name) != (macro, value):
            table = SymbolTable.build([*(symbols[name] for name in symbols), (macro, value)])
            return _TypeResolver(self, table).resolve(macro.name)
        return self.resolver(symbols).resolve(macro.name)

    def direct_type(self, macro: MacroDef, value: ValueKind) -> Union[CType, Skip, None]:
        """Type of a value that references nothing; None for expressions."""
        if macro.is_variadic:
            return Skip("variadic function-like macro", SkipKind.UNTRANSLATABLE_SHAPE)
        if macro.is_function_like:
            return Skip("function-like macro", SkipKind.UNTRANSLATABLE_SHAPE)
        if isinstance(value, Opaque):
            if not value.text:
                return Skip("empty body", SkipKind.UNTRANSLATABLE_SHAPE)
            return Skip(f"untranslatable body: {value.text}", SkipKind.UNTRANSLATABLE_SHAPE)
        if isinstance(value, (Integer, Float)):
            return value.c_type
        if isinstance(value, Char):
            return CHAR_TYPE
        if isinstance(value, Str):
            return STRING_TYPE
        return None

    def join_types(self, value: Expr, references: dict[str, CType]) -> Union[CType, Skip]:
        """Type of an expression whose identifiers have the given types."""
        # A bare alias keeps the referenced type, including char and string
        if len(value.tokens) == 1 and value.identifiers:
            return references[value.identifiers[0]]

        operand_types = list(references.values())
        operand_types += [token.literal.c_type for token in value.tokens if isinstance(token, Number)]
        if STRING_TYPE in operand_types:
            return Skip("string constant used in arithmetic", SkipKind.UNTRANSLATABLE_SHAPE)

        result = INT_TYPE
        for operand_type in operand_types:
            result = common_type(result, operand_type)
        return result

    def render(self, value: ValueKind, ctype: CType, symbols: SymbolTable) -> str:
        """Render the initializer of a translatable value."""
        target = self.target
        if isinstance(value, Integer):
            return target.render_integer(value, ctype)
        if isinstance(value, Float):
            return target.render_float(value)
        if isinstance(value, Char):
            return target.render_char(value.value)
        if isinstance(value, Str):
            return target.render_string(value.value)
        if not isinstance(value, Expr):
            raise ValueError(f"Cannot render untranslatable value: {value!r}")

        def reference(name: str) -> str:
            if name in symbols:
                ref_type = self.resolver(symbols).resolve(name)
                if isinstance(ref_type, Skip):
                    raise ValueError(f"Reference to untranslatable macro {name!r}: {ref_type.reason}")
                return target.render_reference(target.identifier(name), ref_type, ctype)
            limit, limit_type = target.builtins[name]
            return target.render_limit(name, limit, limit_type, ctype)

        return target.render_expression(value.tokens, ctype, reference)


class _TypeResolver:
    """Types of the macros of one symbol table, each resolved once.

    References are followed with an explicit stack and every macro is
    visited a single time, however long its chain of references. A
    name is *visiting* while it has a frame on the stack and *done* once its
    result is stored in :attr:`types`.
    """

    def __init__(self, policy: "DefaultPolicy", symbols: SymbolTable) -> None:
        self.policy = policy
        self.symbols = symbols
        self.types: dict[str, Union[CType, Skip]] = {}

    def resolve(self, name: str) -> Union[CType, Skip]:
        if name in self.types:
            return self.types[name]

        frames: list[_Frame] = []
        visiting: dict[str, int] = {}

        def push(ident: str) -> None:
            macro, value = self.symbols[ident]
            direct = self.policy.direct_type(macro, value)
            if direct is not None:
                self.types[ident] = direct
                return
            visiting[ident] = len(frames)
            frames.append(_Frame(ident, value))

        push(name)
        while frames:
            frame = frames[-1]
            result: Union[CType, Skip, None] = None
            if frame.name not in self.types:
                result = self._advance(frame, frames, visiting)
                if result is None:
                    # the next pending identifier needs resolving first
                    push(frame.value.identifiers[frame.position])
                    continue
            if frame.name not in self.types:
                self.types[frame.name] = result
            del visiting[frame.name]
            frames.pop()
        return self.types[name]

    def _advance(
        self,
        frame: "_Frame",
        frames: list["_Frame"],
        visiting: dict[str, int],
    ) -> Union[CType, Skip, None]:
        """Consume the resolved identifiers of ``frame``.

        :returns: The frame's result, or None when the identifier at
            ``frame.position`` is an unresolved macro.
        """
        identifiers = frame.value.identifiers
        while frame.position < len(identifiers):
            ident = identifiers[frame.position]
            if ident in visiting:
                cycle = [f.name for f in frames[visiting[ident] :]]
                self._mark_cycle(cycle)
                return self.types[frame.name]
            if ident not in self.types and ident in self.symbols and not self.policy.is_excluded(ident):
                return None

            ref_type = self._reference_type(ident)
            if isinstance(ref_type, Skip):
                return ref_type
            frame.types[ident] = ref_type
            frame.position += 1
        return self.policy.join_types(frame.value, frame.types)

    def _reference_type(self, ident: str) -> Union[CType, Skip]:
        """Type of an identifier that needs no further resolving."""
        if ident not in self.symbols:
            builtins = self.policy.target.builtins
            if ident in builtins:
                return builtins[ident][1]
            return Skip(f"unresolved identifier {ident!r}", SkipKind.UNRESOLVED_REFERENCE)
        if self.policy.is_excluded(ident):
            return Skip(f"unresolved identifier {ident!r} (excluded)", SkipKind.UNRESOLVED_REFERENCE)

        ref_type = self.types[ident]
        # cycles and unresolved names keep the reason given where they occur
        if isinstance(ref_type, Skip) and ref_type.kind is SkipKind.UNTRANSLATABLE_SHAPE:
            return Skip(f"unresolved identifier {ident!r} ({ref_type.reason})", SkipKind.UNRESOLVED_REFERENCE)
        return ref_type

    def _mark_cycle(self, cycle: list[str]) -> None:
        """Skip every member of a cycle, describing it from that member."""
        for index, name in enumerate(cycle):
            path = cycle[index:] + cycle[:index] + [name]
            self.types[name] = Skip(f"circular reference: {' -> '.join(path)}", SkipKind.CIRCULAR_REFERENCE)


class _Frame:
    """An expression macro whose identifiers are being resolved."""

    __slots__ = ("name", "value", "position", "types")

    def __init__(self, name: str, value: Expr) -> None:
        self.name = name
        self.value = value
        self.position = 0
        self.types: dict[str, CType] = {}


def translate(
    macros: Iterable[MacroDef],
    policy: Optional[TranslationPolicy] = None,
) -> list[tuple[MacroDef, TranslationOutcome]]:
    """Translate macros with a policy.

    Every macro is classified exactly once; the policy receives the macro,
    its value kind and the symbol table of the whole run.

    :param macros: Macros in file order, as returned by
        :func:`~cmacros.extractor.extract_macros`.
    :param policy: Translation policy; defaults to :class:`DefaultPolicy`.
    :returns: ``(macro, outcome)`` pairs in input order.
    """
    if policy is None:
        policy = DefaultPolicy()

    classifier = MacroClassifier()
    classified = [(macro, classifier.classify(macro.body)) for macro in macros]
    symbols = SymbolTable.build(classified)
    return [(macro, policy.decide(macro, value, symbols)) for macro, value in classified]
