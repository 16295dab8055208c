"""Pytest configuration and fixtures for ccprof tests.

CRITICAL: Protects the real ~/.claude and ~/.claude-profiles from test
modifications.
"""

import os

import pytest


@pytest.fixture(scope="session", autouse=True)
def protect_real_home(tmp_path_factory):
    """Point CCPROF_HOME at a throwaway directory for the whole session.

    CRITICAL PROTECTION: Tests should NEVER touch the user's live Claude
    configuration or profile storage. Every path ccprof computes derives
    from CCPROF_HOME, so setting it here covers code that calls
    Paths.default() directly (the CLI does).
    """
    previous = os.environ.get("CCPROF_HOME")
    session_home = tmp_path_factory.mktemp("ccprof-home")
    os.environ["CCPROF_HOME"] = str(session_home)

    yield session_home

    if previous is None:
        del os.environ["CCPROF_HOME"]
    else:
        os.environ["CCPROF_HOME"] = previous
