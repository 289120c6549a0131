"""Shared fixtures: a fluent mock of the Supabase query builder."""

from __future__ import annotations

import os
import sys
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


class _TableMock:
    """Fluent mock for supabase.table(name).select(...).eq(...).execute().

    `data` may be a list (normal queries) or a dict/None (maybe_single()).
    `error` is raised from execute() when given.
    """

    def __init__(self, data=None, count: int | None = None, error: Exception | None = None,
                 no_response: bool = False):
        self._data = data
        self._count = count
        self._error = error
        self._no_response = no_response
        self.calls: list[tuple] = []

    def _chain(self, name, *a, **kw):
        self.calls.append((name, a, kw))
        return self

    def select(self, *a, **kw):      return self._chain("select", *a, **kw)
    def eq(self, *a, **kw):          return self._chain("eq", *a, **kw)
    def order(self, *a, **kw):       return self._chain("order", *a, **kw)
    def limit(self, *a, **kw):       return self._chain("limit", *a, **kw)
    def maybe_single(self, *a, **kw): return self._chain("maybe_single", *a, **kw)

    def execute(self):
        if self._error is not None:
            raise self._error
        if self._no_response:
            return None
        r = MagicMock()
        r.data = self._data
        r.count = self._count if self._count is not None else (
            len(self._data) if isinstance(self._data, list) else None
        )
        return r


def _mk_supabase(tables: dict[str, _TableMock]) -> MagicMock:
    """Build a mock Supabase client backed by {table_name: _TableMock}."""
    sb = MagicMock()

    def _table(name: str):
        return tables.get(name, _TableMock([]))

    sb.table = MagicMock(side_effect=_table)
    return sb


@pytest.fixture
def table():
    return _TableMock


@pytest.fixture
def mk_supabase():
    return _mk_supabase


@pytest.fixture
def openai_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-0123456789abcdef")
    return "sk-test-0123456789abcdef"


@pytest.fixture
def no_openai_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
