"""Tests for the session auth guard."""

import pytest
from litestar.exceptions import NotAuthorizedException

from scenes.auth.guards import auth_guard, is_authenticated


class TestIsAuthenticated:
    def test_user_in_session(self, mock_connection_factory):
        assert is_authenticated(mock_connection_factory({"user_id": "7"})) is True

    def test_empty_session(self, mock_connection_factory):
        assert is_authenticated(mock_connection_factory({})) is False

    def test_no_session(self, mock_connection_factory):
        assert is_authenticated(mock_connection_factory()) is False


class TestAuthGuard:
    async def test_allows_logged_in_user(self, mock_connection_factory):
        await auth_guard(mock_connection_factory({"user_id": "7"}), None)

    async def test_rejects_anonymous(self, mock_connection_factory):
        with pytest.raises(NotAuthorizedException):
            await auth_guard(mock_connection_factory({}), None)
