import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13", "3.14"]


def _install(session: nox.Session) -> None:
    """Install the project with its test extras into the nox virtualenv."""
    session.run(
        "poetry",
        "install",
        "--with",
        "test",
        "--extras",
        "test",
        external=True,
    )


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run full test suite across Python versions."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS)
def tests_domain(session: nox.Session) -> None:
    """Run domain-layer tests only (no infrastructure required)."""
    _install(session)
    session.run("pytest", "tests/ordering/domain/")


@nox.session(python=PYTHON_VERSIONS[0])
def tests_checkout(session: nox.Session) -> None:
    """Run the command, API and scenario tests that drive checkout end to end."""
    _install(session)
    session.run(
        "pytest",
        "tests/ordering/application/",
        "tests/ordering/integration/",
        "tests/ordering/bdd/",
    )


@nox.session(python=PYTHON_VERSIONS[0])
def tests_postgres(session: nox.Session) -> None:
    """Run the suite against PostgreSQL (needs DATABASE_URL or a local server)."""
    session.run("poetry", "install", "--with", "test", "--all-extras", external=True)
    session.run("pytest", "--env", "staging")
