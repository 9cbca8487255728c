"""Source emission for translated macros.

Collects the declarations produced by a translation run into the text of a
target-language source file.

Example
-------
::

    from cmacros.extractor import extract_macros
    from cmacros.translator import translate
    from cmacros.writer import write_source

    macros, _ = extract_macros(code)
    rust_src = write_source(translate(macros))

    with open("constants.rs", "w") as f:
        f.write(rust_src)
"""

from typing import (
    Iterable,
    Optional,
    Union,
)

from cmacros.ir import (
    Emit,
    MacroDef,
    Skip,
    TranslationOutcome,
)
from cmacros.targets import (
    get_target,
)
from cmacros.targets.base import (
    Target,
)


class SourceWriter:
    """Writes translation results as target-language source.

    :param results: ``(macro, outcome)`` pairs from
        :func:`~cmacros.translator.translate`.
    :param target: Target used for comments and the preamble.
    :param include_skipped: Add a comment line for every skipped macro.
    :param source_name: Header name mentioned in the preamble, if any.
    """

    def __init__(
        self,
        results: Iterable[tuple[MacroDef, TranslationOutcome]],
        target: Union[str, Target, None] = None,
        include_skipped: bool = False,
        source_name: Optional[str] = None,
    ) -> None:
        self.results = list(results)
        self.target = target if isinstance(target, Target) else get_target(target)
        self.include_skipped = include_skipped
        self.source_name = source_name

    def write(self) -> str:
        lines: list[str] = []
        for macro, outcome in self.results:
            if isinstance(outcome, Emit):
                lines.append(outcome.text)
            elif self.include_skipped:
                lines.append(self.target.comment(f"{macro.name}: skipped ({outcome.reason})"))

        if not lines:
            return ""
        return "\n".join(self.target.preamble(self.source_name) + lines) + "\n"


def write_source(
    results: Iterable[tuple[MacroDef, TranslationOutcome]],
    target: Union[str, Target, None] = None,
    include_skipped: bool = False,
    source_name: Optional[str] = None,
) -> str:
    """Convert translation results to source text.

    Convenience function that creates a :class:`SourceWriter` and calls
    :meth:`~SourceWriter.write`. One declaration per line, in input order.

    :returns: Source text ending with a newline, or ``""`` if nothing was
        emitted.
    """
    return SourceWriter(results, target, include_skipped, source_name).write()


def describe_skips(results: Iterable[tuple[MacroDef, TranslationOutcome]]) -> list[str]:
    """Human-readable messages for the skipped macros of a run."""
    return [
        f"line {macro.source_line}: {macro.name} skipped: {outcome.reason}"
        for macro, outcome in results
        if isinstance(outcome, Skip)
    ]
