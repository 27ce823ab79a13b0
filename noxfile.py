"""Nox sessions for the matchmaking bot: tests with coverage, and lint."""

import nox

nox.options.sessions = ["tests", "lint"]
PYTHON = "3.11"


@nox.session(python=PYTHON)
def tests(session):
    """Run the test suite with coverage over both packages."""
    session.install("-e", ".[dev]")
    session.run(
        "pytest",
        "--cov=hockey_bot",
        "--cov=bots",
        "--cov-report=term-missing",
        "--cov-fail-under=80",
        *session.posargs,
    )


@nox.session(python=PYTHON)
def lint(session):
    """Check lint rules and formatting with ruff."""
    session.install("ruff>=0.1.0")
    session.run("ruff", "check", ".")
    session.run("ruff", "format", "--check", ".")
