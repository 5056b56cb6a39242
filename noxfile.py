import nox

PYTHONS = ["3.11", "3.12", "3.13"]


@nox.session(python=PYTHONS)
def tests(session):
    session.install(".[dev]")
    session.run("pytest", "tests", *session.posargs)


@nox.session(python=PYTHONS[-1])
def unit(session):
    """Run everything except the tests that open local sockets."""
    session.install(".[dev]")
    session.run("pytest", "tests", "--ignore=tests/b_integration", *session.posargs)
