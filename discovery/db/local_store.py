"""
In-memory stand-in for the hosted database, used when Supabase credentials
are absent (local development, demos, tests).

Tables are pandas DataFrames.  Queries go through the same fluent builder
calls the feed code issues against a Supabase client, so callers never branch
on which backend they were given.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import pandas as pd

STATS_COLUMNS = ["total_reviews", "average_rating", "percentiles"]

_TABLE_FILES = {
    "businesses": "businesses.csv",
    "business_stats": "business_stats.csv",
    "reviews": "reviews.csv",
}

Predicate = Callable[[pd.DataFrame], pd.Series]


class LocalAPIError(Exception):
    """Mirrors the ``code``/``message`` shape of PostgREST API errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass
class LocalResponse:
    data: list[dict[str, Any]]


def _column(df: pd.DataFrame, name: str) -> pd.Series:
    if name in df.columns:
        return df[name]
    return pd.Series([None] * len(df), index=df.index, dtype=object)


def _comparable(df: pd.DataFrame, name: str, value: Any) -> tuple[pd.Series, Any]:
    series = _column(df, name)
    if name.endswith("_at"):
        target = pd.Timestamp(value)
        target = target.tz_localize("UTC") if target.tzinfo is None else target.tz_convert("UTC")
        return pd.to_datetime(series, utc=True, errors="coerce", format="ISO8601"), target
    return series, value


def _like_to_regex(pattern: str) -> str:
    parts = []
    for ch in pattern:
        if ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return "".join(parts)


def _records(df: pd.DataFrame) -> list[dict[str, Any]]:
    clean = df.astype(object).where(pd.notna(df), None)
    return clean.to_dict(orient="records")


def _parse_percentiles(value: Any) -> dict | None:
    if isinstance(value, dict):
        return value
    if value is None or (isinstance(value, float) and pd.isna(value)) or value == "":
        return None
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


class LocalQuery:
    """Chainable query over one table of a :class:`LocalStore`."""

    def __init__(self, store: LocalStore, table: str) -> None:
        self._store = store
        self._table = table
        self._columns = "*"
        self._predicates: list[Predicate] = []
        self._orders: list[tuple[str, bool]] = []
        self._limit: int | None = None

    def select(self, columns: str = "*") -> LocalQuery:
        self._columns = columns
        return self

    def eq(self, column: str, value: Any) -> LocalQuery:
        self._predicates.append(lambda df: _column(df, column) == value)
        return self

    def in_(self, column: str, values: list[Any]) -> LocalQuery:
        allowed = list(values)
        self._predicates.append(lambda df: _column(df, column).isin(allowed))
        return self

    def ilike(self, column: str, pattern: str) -> LocalQuery:
        regex = _like_to_regex(pattern)
        self._predicates.append(
            lambda df: _column(df, column).fillna("").astype(str).str.fullmatch(regex, case=False)
        )
        return self

    def gte(self, column: str, value: Any) -> LocalQuery:
        def _pred(df: pd.DataFrame) -> pd.Series:
            series, target = _comparable(df, column, value)
            return series >= target

        self._predicates.append(_pred)
        return self

    def gt(self, column: str, value: Any) -> LocalQuery:
        def _pred(df: pd.DataFrame) -> pd.Series:
            series, target = _comparable(df, column, value)
            return series > target

        self._predicates.append(_pred)
        return self

    def lt(self, column: str, value: Any) -> LocalQuery:
        def _pred(df: pd.DataFrame) -> pd.Series:
            series, target = _comparable(df, column, value)
            return series < target

        self._predicates.append(_pred)
        return self

    def text_search(self, column: str, query: str, options: dict | None = None) -> LocalQuery:
        # Local tables carry no tsvector column; match every term against the
        # searchable text fields instead.
        terms = [t.lower() for t in query.split() if t.strip()]

        def _pred(df: pd.DataFrame) -> pd.Series:
            haystack = (
                _column(df, "name").fillna("").astype(str) + " "
                + _column(df, "description").fillna("").astype(str) + " "
                + _column(df, "category").fillna("").astype(str)
            ).str.lower()
            mask = pd.Series(True, index=df.index)
            for term in terms:
                mask = mask & haystack.str.contains(term, regex=False)
            return mask

        self._predicates.append(_pred)
        return self

    def order(self, column: str, *, desc: bool = False) -> LocalQuery:
        self._orders.append((column, desc))
        return self

    def limit(self, size: int) -> LocalQuery:
        self._limit = size
        return self

    def execute(self) -> LocalResponse:
        df = self._store.frame(self._table)

        mask = pd.Series(True, index=df.index)
        for predicate in self._predicates:
            mask = mask & predicate(df).fillna(False).astype(bool)
        df = df.loc[mask]

        if self._orders:
            by = [col for col, _ in self._orders if col in df.columns]
            ascending = [not desc for col, desc in self._orders if col in df.columns]
            if by:
                df = df.sort_values(by=by, ascending=ascending, kind="mergesort", na_position="last")

        if self._limit is not None:
            df = df.head(self._limit)

        if self._table == "businesses" and "business_stats" in self._columns:
            return LocalResponse(data=self._store.nest_stats(df))
        return LocalResponse(data=_records(df))


class LocalRpc:
    def __init__(self, store: LocalStore, name: str, params: dict[str, Any]) -> None:
        self._store = store
        self._name = name
        self._params = params

    def execute(self) -> LocalResponse:
        handler = self._store.rpc_handlers.get(self._name)
        if handler is None:
            raise LocalAPIError(f"function public.{self._name} does not exist", code="42883")
        return LocalResponse(data=handler(self._store, self._params))


def _special_list(sort_by: list[str]) -> Callable[[LocalStore, dict[str, Any]], list[dict[str, Any]]]:
    def _handler(store: LocalStore, params: dict[str, Any]) -> list[dict[str, Any]]:
        df = store.frame("businesses")
        df = df.loc[_column(df, "status") == "active"]
        category = params.get("p_category")
        if category:
            df = df.loc[_column(df, "category") == category]
        by = [col for col in sort_by if col in df.columns]
        if by:
            df = df.sort_values(by=by, ascending=False, kind="mergesort", na_position="last")
        return _records(df.head(int(params.get("p_limit") or 20)))

    return _handler


class LocalStore:
    """DataFrame-backed tables with a Supabase-shaped query surface."""

    rpc_handlers: dict[str, Callable[[LocalStore, dict[str, Any]], list[dict[str, Any]]]] = {
        "get_trending_businesses": _special_list(["total_reviews", "average_rating"]),
        "get_top_rated_businesses": _special_list(["average_rating", "total_reviews"]),
        "get_new_businesses": _special_list(["created_at"]),
    }

    def __init__(
        self,
        businesses: pd.DataFrame | None = None,
        business_stats: pd.DataFrame | None = None,
        reviews: pd.DataFrame | None = None,
    ) -> None:
        self._tables: dict[str, pd.DataFrame] = {
            "businesses": businesses if businesses is not None else pd.DataFrame(columns=["id"]),
            "business_stats": business_stats
            if business_stats is not None
            else pd.DataFrame(columns=["business_id", *STATS_COLUMNS]),
            "reviews": reviews
            if reviews is not None
            else pd.DataFrame(columns=["business_id", "user_id", "created_at"]),
        }
        stats = self._tables["business_stats"]
        if "percentiles" in stats.columns:
            stats["percentiles"] = stats["percentiles"].apply(_parse_percentiles)

    @classmethod
    def from_records(
        cls,
        businesses: list[dict[str, Any]] | None = None,
        business_stats: list[dict[str, Any]] | None = None,
        reviews: list[dict[str, Any]] | None = None,
    ) -> LocalStore:
        return cls(
            businesses=pd.DataFrame(businesses) if businesses else None,
            business_stats=pd.DataFrame(business_stats) if business_stats else None,
            reviews=pd.DataFrame(reviews) if reviews else None,
        )

    @classmethod
    def from_dir(cls, data_dir: Path) -> LocalStore:
        frames: dict[str, pd.DataFrame | None] = {}
        for table, filename in _TABLE_FILES.items():
            path = data_dir / filename
            frames[table] = pd.read_csv(path, dtype={"id": str, "business_id": str}) if path.exists() else None
        return cls(**frames)

    def table(self, name: str) -> LocalQuery:
        if name not in self._tables:
            raise LocalAPIError(f'relation "public.{name}" does not exist', code="42P01")
        return LocalQuery(self, name)

    def rpc(self, name: str, params: dict[str, Any] | None = None) -> LocalRpc:
        return LocalRpc(self, name, params or {})

    def frame(self, name: str) -> pd.DataFrame:
        """Return the table, with stats columns merged in for ``businesses``."""
        df = self._tables[name]
        if name != "businesses":
            return df
        stats = self._tables["business_stats"]
        if df.empty or stats.empty:
            merged = df.copy()
            for col in STATS_COLUMNS:
                if col not in merged.columns:
                    merged[col] = None
            return merged
        merged = df.merge(
            stats[["business_id", *[c for c in STATS_COLUMNS if c in stats.columns]]],
            how="left",
            left_on="id",
            right_on="business_id",
        ).drop(columns=["business_id"])
        merged.index = df.index
        return merged

    def nest_stats(self, df: pd.DataFrame) -> list[dict[str, Any]]:
        """Shape rows the way a ``business_stats (...)`` embedded select returns them."""
        rows = []
        for record in _records(df):
            stats = {col: record.pop(col, None) for col in STATS_COLUMNS}
            has_stats = any(v is not None for v in stats.values())
            record["business_stats"] = [stats] if has_stats else []
            rows.append(record)
        return rows
