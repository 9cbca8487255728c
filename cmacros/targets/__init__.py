"""Target languages for translated macros.

This package contains the output languages that translated constants can be
written in. Each target module registers itself when imported.

Available Targets
-----------------
rust
    ``pub const NAME: TYPE = VALUE;`` items. Default target.

python
    ``NAME: TYPE = VALUE`` annotated module constants.

Example
-------
::

    from cmacros.targets import get_target, list_targets

    # Get the default target
    target = get_target()

    # Get a specific target
    target = get_target("python")

    # List available targets
    for name in list_targets():
        print(name)
"""

from __future__ import (
    annotations,
)

from typing import (
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from cmacros.targets.base import (
        Target,
    )

# Registry of available targets, populated lazily by importing target modules
_TARGET_REGISTRY: dict[str, type[Target]] = {}
_DEFAULT_TARGET: str | None = None
_TARGETS_LOADED: bool = False


def register_target(name: str, target_class: type[Target], is_default: bool = False) -> None:
    """Register a target language.

    Called by target modules during import to add themselves to the registry.
    The first registered target becomes the default unless ``is_default`` is
    explicitly set on a later registration.

    :param name: Unique name for the target (e.g., ``"rust"``).
    :param target_class: Subclass of :class:`~cmacros.targets.base.Target`.
    :param is_default: If True, this becomes the default target for :func:`get_target`.
    """
    global _DEFAULT_TARGET  # pylint: disable=global-statement
    _TARGET_REGISTRY[name] = target_class
    if is_default or _DEFAULT_TARGET is None:
        _DEFAULT_TARGET = name


def list_targets() -> list[str]:
    """List names of all registered targets.

    :returns: List of target names that can be passed to :func:`get_target`.
    """
    _ensure_targets_loaded()
    return list(_TARGET_REGISTRY.keys())


def is_target_available(name: str) -> bool:
    """Check if a target is registered.

    :param name: Target name to check.
    """
    _ensure_targets_loaded()
    return name in _TARGET_REGISTRY


def get_target_info() -> list[dict[str, str | bool]]:
    """Get information about all registered targets.

    :returns: List of dicts with name, default, and description.
    """
    _ensure_targets_loaded()
    return [
        {
            "name": name,
            "default": name == _DEFAULT_TARGET,
            "description": target_class.description,
        }
        for name, target_class in sorted(_TARGET_REGISTRY.items())
    ]


def get_target(name: str | None = None) -> Target:
    """Get a target language instance.

    :param name: Target name (e.g., ``"rust"``, ``"python"``), or None for
        the default target.
    :returns: New instance of the requested target.
    :raises ValueError: If the requested target is not registered.

    Example
    -------
    ::

        from cmacros.targets import get_target

        rust = get_target("rust")
        print(rust.declaration("SIZE", CType("int"), "100"))
    """
    _ensure_targets_loaded()

    if name is None:
        if _DEFAULT_TARGET is None:
            raise ValueError("No targets available")
        name = _DEFAULT_TARGET

    if name not in _TARGET_REGISTRY:
        available = ", ".join(_TARGET_REGISTRY.keys()) or "(none)"
        raise ValueError(f"Unknown target: {name!r}. Available: {available}")

    return _TARGET_REGISTRY[name]()


def get_default_target() -> str:
    """Get the name of the default target.

    :raises ValueError: If no targets are available.
    """
    _ensure_targets_loaded()

    if _DEFAULT_TARGET is None:
        raise ValueError("No targets available")
    return _DEFAULT_TARGET


def _ensure_targets_loaded() -> None:
    """Lazily load target modules to populate the registry."""
    global _TARGETS_LOADED  # pylint: disable=global-statement

    if _TARGETS_LOADED:
        return

    _TARGETS_LOADED = True

    # pylint: disable=import-outside-toplevel
    from cmacros.targets import (  # noqa: F401
        python,
        rust,
    )
