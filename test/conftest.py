"""Shared pytest fixtures for cmacros tests."""

import pytest

from cmacros.classifier import MacroClassifier
from cmacros.targets import get_target, is_target_available

SAMPLE_HEADER = """\
#ifndef SAMPLE_H
#define SAMPLE_H

/* Retry policy */
#define MAX_RETRIES 5
#define TIMEOUT_MS (MAX_RETRIES * 1000)
#define VERSION "1.0"   // release string
#define SEPARATOR ':'
#define MASK 0xFFu
#define SCALE 2.5f
#define MAX(a, b) ((a) > (b) ? (a) : (b))
#define FLAGS (1 << 4) | \\
              (1 << 2)
#define CALL foo(1)

#endif
"""


@pytest.fixture(
    params=[
        pytest.param("rust", marks=pytest.mark.rust),
        pytest.param("python", marks=pytest.mark.python),
    ]
)
def target(request: pytest.FixtureRequest):
    """Parameterized fixture providing each registered target.

    Each parameter is marked with its target name, so you can filter:
        pytest -m "not python"
    """
    name: str = request.param

    if not is_target_available(name):
        pytest.fail(f"{name} target not available")

    return get_target(name)


@pytest.fixture
def rust():
    """The Rust target."""
    return get_target("rust")


@pytest.fixture
def python():
    """The Python target."""
    return get_target("python")


@pytest.fixture(scope="session")
def classifier():
    """A classifier shared by a test session; building the lexer is slow."""
    return MacroClassifier()


@pytest.fixture
def sample_header() -> str:
    """A small header exercising every kind of macro."""
    return SAMPLE_HEADER


@pytest.fixture
def header_file(tmp_path):
    """Write the sample header to a temporary file and return its path."""
    path = tmp_path / "sample.h"
    path.write_text(SAMPLE_HEADER, encoding="utf-8")
    return str(path)
