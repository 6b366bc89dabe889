"""Shared pytest fixtures for the Tourmate booking tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_module_state():
    """Reset module-level caches between tests.

    The OIDC JWKS cache and the view cache both live at module level; a value
    left behind by one test would otherwise answer the next test's request.
    """
    import tourmate.api.auth as auth_module
    from tourmate.infra.view_cache import view_cache

    auth_module._jwks_cache = None
    auth_module._jwks_cache_time = 0
    view_cache.clear()
    yield
    auth_module._jwks_cache = None
    auth_module._jwks_cache_time = 0
    view_cache.clear()
