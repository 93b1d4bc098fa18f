"""Shared fixtures for inbox service tests."""

from unittest.mock import MagicMock, patch

import pytest


# ── Supabase fluent-API mock ────────────────────────────────────────


def _chain_mock() -> MagicMock:
    """Return a MagicMock where every method returns self (chainable)."""
    m = MagicMock()
    for method in (
        "select",
        "eq",
        "neq",
        "in_",
        "order",
        "limit",
        "update",
        "insert",
        "delete",
    ):
        getattr(m, method).return_value = m
    m.execute.return_value = MagicMock(data=[])
    return m


@pytest.fixture
def mock_supabase():
    """Supabase client mock with one chainable mock per table.

    Usage in tests:
        mock_supabase.table("support_tickets") returns a chainable mock.
        Set `.execute.side_effect` to a list of results, one per
        query issued against that table.
    """
    sb = MagicMock()
    _tables: dict[str, MagicMock] = {}

    def _table(name: str) -> MagicMock:
        if name not in _tables:
            _tables[name] = _chain_mock()
        return _tables[name]

    sb.table.side_effect = _table
    sb._tables = _tables  # expose for assertions

    with patch("support_chat.services.inbox_service.get_supabase", return_value=sb):
        yield sb
