import nox

PYTHONS = ["3.10", "3.11", "3.12"]

# Code scanned by the linters and vulture
LOCATIONS = ["src", "tests", "noxfile.py"]


@nox.session(python=PYTHONS)
def tests(session: nox.Session) -> None:
    """Run the relmap test suite (SQLite end-to-end tests included) with coverage."""
    session.install("-e", ".[test]")
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHONS[-1])
def autoformat(session: nox.Session) -> None:
    """Apply ruff fixes and formatting in place."""
    session.install("ruff")
    session.run("ruff", "check", "--fix", *LOCATIONS)
    session.run("ruff", "format", *LOCATIONS)


@nox.session(python=PYTHONS[-1])
def lint(session: nox.Session) -> None:
    """Check lint rules and formatting without modifying files."""
    session.install("ruff")
    session.run("ruff", "check", *LOCATIONS)
    session.run("ruff", "format", "--check", *LOCATIONS)


@nox.session(python=PYTHONS)
def type_check(session: nox.Session) -> None:
    """Type-check the relmap package with mypy (pydantic plugin enabled)."""
    session.install("-e", ".[dev]")
    session.run("mypy")


@nox.session(python=PYTHONS[-1])
def arch_check(session: nox.Session) -> None:
    """Verify the query/schema layer boundaries with pytest-archon."""
    session.install("-e", ".[test]")
    session.run("pytest", "--no-cov", "tests/architecture", *session.posargs)


@nox.session(python=PYTHONS[-1])
def dead_code(session: nox.Session) -> None:
    """Report unused code with vulture."""
    session.install("vulture")
    session.run("vulture", "src", "--min-confidence", "80")
