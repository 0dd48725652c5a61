"""
Record store abstraction over the hosted content database.

Three implementations share one interface: an in-memory store for tests
and local runs, a SQLAlchemy store for a direct database connection, and
a REST store that talks to the hosted store's HTTP interface.
"""

from __future__ import annotations

import copy
import uuid
from typing import Any, Dict, Mapping, Optional, Protocol

import requests
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Integer,
    String,
    Text,
    create_engine,
    delete as sql_delete,
    select as sql_select,
    update as sql_update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from photosite.records import utc_now_iso

BLOG_POSTS = "blog_posts"
LIBRARY_IMAGES = "images"
PAGE_CONTENT = "page_content"
LANDING_PAGE_IMAGES = "landing_page_images"
HOME_PAGE_IMAGES = "home_page_images"
SITE_SETTINGS = "site_settings"

COLLECTIONS = (
    BLOG_POSTS,
    LIBRARY_IMAGES,
    PAGE_CONTENT,
    LANDING_PAGE_IMAGES,
    HOME_PAGE_IMAGES,
    SITE_SETTINGS,
)

UNIQUE_COLUMNS: Dict[str, str] = {
    BLOG_POSTS: "slug",
    PAGE_CONTENT: "page_id",
    SITE_SETTINGS: "setting_key",
}

# Columns stamped with the current time when a row is inserted.
INSERT_TIMESTAMPS: Dict[str, tuple[str, ...]] = {
    BLOG_POSTS: ("created_at", "updated_at"),
    LIBRARY_IMAGES: ("uploaded_at",),
    PAGE_CONTENT: ("updated_at",),
    LANDING_PAGE_IMAGES: ("created_at", "updated_at"),
    HOME_PAGE_IMAGES: ("created_at", "updated_at"),
    SITE_SETTINGS: ("updated_at",),
}

# Column defaults the SQL rows declare; the in-memory store applies the same.
INSERT_DEFAULTS: Dict[str, Dict[str, Any]] = {
    BLOG_POSTS: {"excerpt": "", "content": "", "category": "", "tags": [], "published": False},
    LIBRARY_IMAGES: {"size": 0},
    PAGE_CONTENT: {"content": {}, "images": []},
    LANDING_PAGE_IMAGES: {
        "file_size": 0,
        "display_order": 0,
        "section": "hero",
        "is_active": True,
    },
    HOME_PAGE_IMAGES: {
        "file_size": 0,
        "display_order": 0,
        "category": "gallery",
        "is_active": True,
    },
    SITE_SETTINGS: {"setting_type": "text"},
}

Filters = Mapping[str, Any]


class StoreError(Exception):
    """Raised when the record store rejects or fails a request."""


class RecordStore(Protocol):
    """Operations the content service needs from the record store."""

    def select(
        self,
        collection: str,
        *,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        ...

    def select_one(self, collection: str, filters: Filters) -> Optional[dict]:
        ...

    def insert(self, collection: str, row: dict) -> dict:
        ...

    def update(self, collection: str, filters: Filters, values: dict) -> list[dict]:
        ...

    def delete(self, collection: str, filters: Filters) -> int:
        ...

    def upsert(self, collection: str, row: dict, *, on: str) -> dict:
        ...


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise StoreError(f"Unknown collection: {collection}")


def _prepare_insert(collection: str, row: dict) -> dict:
    prepared = dict(row)
    prepared.setdefault("id", uuid.uuid4().hex)
    now = utc_now_iso()
    for column in INSERT_TIMESTAMPS.get(collection, ()):
        prepared.setdefault(column, now)
    return prepared


def _apply_defaults(collection: str, row: dict) -> dict:
    for column, default in INSERT_DEFAULTS.get(collection, {}).items():
        if row.get(column) is None:
            row[column] = copy.deepcopy(default)
    return row


def _is_multi(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _matches(row: dict, filters: Optional[Filters]) -> bool:
    for column, expected in (filters or {}).items():
        actual = row.get(column)
        if _is_multi(expected):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


def _sort_rows(rows: list[dict], order_by: Optional[str], descending: bool) -> list[dict]:
    if not order_by:
        return rows
    present = [row for row in rows if row.get(order_by) is not None]
    missing = [row for row in rows if row.get(order_by) is None]
    present.sort(key=lambda row: row[order_by], reverse=descending)
    return present + missing


class InMemoryRecordStore:
    """Simple in-memory record store for development and tests."""

    def __init__(self):
        self.tables: Dict[str, Dict[str, dict]] = {name: {} for name in COLLECTIONS}

    def reset(self) -> None:
        """Clear all stored rows (useful in tests)."""
        for table in self.tables.values():
            table.clear()

    def _table(self, collection: str) -> Dict[str, dict]:
        _check_collection(collection)
        return self.tables[collection]

    def _check_unique(self, collection: str, row: dict, *, ignore_id: str | None = None) -> None:
        column = UNIQUE_COLUMNS.get(collection)
        if not column or column not in row:
            return
        for existing in self.tables[collection].values():
            if existing["id"] != ignore_id and existing.get(column) == row[column]:
                raise StoreError(
                    f'duplicate key value violates unique constraint "{collection}_{column}_key"'
                )

    def select(
        self,
        collection: str,
        *,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        rows = [
            copy.deepcopy(row)
            for row in self._table(collection).values()
            if _matches(row, filters)
        ]
        return _sort_rows(rows, order_by, descending)

    def select_one(self, collection: str, filters: Filters) -> Optional[dict]:
        rows = self.select(collection, filters=filters)
        return rows[0] if rows else None

    def insert(self, collection: str, row: dict) -> dict:
        table = self._table(collection)
        prepared = _apply_defaults(collection, _prepare_insert(collection, row))
        if prepared["id"] in table:
            raise StoreError(f"duplicate id {prepared['id']} in {collection}")
        self._check_unique(collection, prepared)
        table[prepared["id"]] = copy.deepcopy(prepared)
        return prepared

    def update(self, collection: str, filters: Filters, values: dict) -> list[dict]:
        table = self._table(collection)
        updated: list[dict] = []
        for row_id, row in table.items():
            if not _matches(row, filters):
                continue
            candidate = {**row, **values, "id": row_id}
            self._check_unique(collection, candidate, ignore_id=row_id)
            table[row_id] = copy.deepcopy(candidate)
            updated.append(candidate)
        return updated

    def delete(self, collection: str, filters: Filters) -> int:
        table = self._table(collection)
        doomed = [row_id for row_id, row in table.items() if _matches(row, filters)]
        for row_id in doomed:
            del table[row_id]
        return len(doomed)

    def upsert(self, collection: str, row: dict, *, on: str) -> dict:
        table = self._table(collection)
        if on not in row:
            raise StoreError(f"upsert on {collection} requires a value for {on}")
        for row_id, existing in table.items():
            if existing.get(on) == row[on]:
                values = {k: v for k, v in row.items() if k != "id"}
                merged = {**existing, **values}
                table[row_id] = copy.deepcopy(merged)
                return merged
        return self.insert(collection, row)


Base = declarative_base()


class BlogPostRow(Base):
    __tablename__ = BLOG_POSTS

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)
    excerpt = Column(Text, nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    category = Column(String, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    featured_image = Column(String, nullable=True)
    author = Column(String, nullable=True)
    published = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class LibraryImageRow(Base):
    __tablename__ = LIBRARY_IMAGES

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    url = Column(Text, nullable=False)
    size = Column(Integer, nullable=False, default=0)
    uploaded_at = Column(String, nullable=False)


class PageContentRow(Base):
    __tablename__ = PAGE_CONTENT

    id = Column(String, primary_key=True)
    page_id = Column(String, nullable=False, unique=True)
    title = Column(String, nullable=True)
    subtitle = Column(String, nullable=True)
    content = Column(JSON, nullable=False, default=dict)
    images = Column(JSON, nullable=False, default=list)
    updated_at = Column(String, nullable=False)


class LandingPageImageRow(Base):
    __tablename__ = LANDING_PAGE_IMAGES

    id = Column(String, primary_key=True)
    image_url = Column(Text, nullable=False)
    image_name = Column(String, nullable=False)
    alt_text = Column(String, nullable=True)
    file_size = Column(Integer, nullable=False, default=0)
    display_order = Column(Integer, nullable=False, default=0)
    section = Column(String, nullable=False, default="hero", index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class HomePageImageRow(Base):
    __tablename__ = HOME_PAGE_IMAGES

    id = Column(String, primary_key=True)
    image_url = Column(Text, nullable=False)
    image_name = Column(String, nullable=False)
    alt_text = Column(String, nullable=True)
    file_size = Column(Integer, nullable=False, default=0)
    display_order = Column(Integer, nullable=False, default=0)
    category = Column(String, nullable=False, default="gallery", index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class SiteSettingRow(Base):
    __tablename__ = SITE_SETTINGS

    id = Column(String, primary_key=True)
    setting_key = Column(String, nullable=False, unique=True)
    setting_value = Column(Text, nullable=False)
    setting_type = Column(String, nullable=False, default="text")
    updated_at = Column(String, nullable=False)


ROW_MODELS = {
    BLOG_POSTS: BlogPostRow,
    LIBRARY_IMAGES: LibraryImageRow,
    PAGE_CONTENT: PageContentRow,
    LANDING_PAGE_IMAGES: LandingPageImageRow,
    HOME_PAGE_IMAGES: HomePageImageRow,
    SITE_SETTINGS: SiteSettingRow,
}


class SqlRecordStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlRecordStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _model(self, collection: str):
        _check_collection(collection)
        return ROW_MODELS[collection]

    def _column(self, model, name: str):
        column = model.__table__.columns.get(name)
        if column is None:
            raise StoreError(f"Unknown column {name} on {model.__tablename__}")
        return column

    def _conditions(self, model, filters: Optional[Filters]) -> list:
        conditions = []
        for name, value in (filters or {}).items():
            column = self._column(model, name)
            if _is_multi(value):
                conditions.append(column.in_(list(value)))
            elif value is None:
                conditions.append(column.is_(None))
            else:
                conditions.append(column == value)
        return conditions

    def _values(self, model, values: dict) -> dict:
        for name in values:
            self._column(model, name)
        return dict(values)

    @staticmethod
    def _to_dict(row) -> dict:
        return {column.name: getattr(row, column.name) for column in row.__table__.columns}

    def select(
        self,
        collection: str,
        *,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        model = self._model(collection)
        stmt = sql_select(model).where(*self._conditions(model, filters))
        if order_by:
            column = self._column(model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        try:
            with self.Session() as session:
                rows = session.execute(stmt).scalars().all()
                return [self._to_dict(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def select_one(self, collection: str, filters: Filters) -> Optional[dict]:
        model = self._model(collection)
        stmt = sql_select(model).where(*self._conditions(model, filters)).limit(1)
        try:
            with self.Session() as session:
                row = session.execute(stmt).scalars().first()
                return self._to_dict(row) if row else None
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def insert(self, collection: str, row: dict) -> dict:
        model = self._model(collection)
        prepared = self._values(model, _prepare_insert(collection, row))
        try:
            with self.Session() as session:
                record = model(**prepared)
                session.add(record)
                session.commit()
                session.refresh(record)
                return self._to_dict(record)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def update(self, collection: str, filters: Filters, values: dict) -> list[dict]:
        model = self._model(collection)
        values = {k: v for k, v in self._values(model, values).items() if k != "id"}
        conditions = self._conditions(model, filters)
        try:
            with self.Session() as session:
                ids = session.execute(
                    sql_select(model.id).where(*conditions)
                ).scalars().all()
                if not ids:
                    return []
                if values:
                    session.execute(
                        sql_update(model).where(model.id.in_(ids)).values(**values)
                    )
                session.commit()
                rows = session.execute(
                    sql_select(model).where(model.id.in_(ids))
                ).scalars().all()
                return [self._to_dict(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def delete(self, collection: str, filters: Filters) -> int:
        model = self._model(collection)
        try:
            with self.Session() as session:
                result = session.execute(
                    sql_delete(model).where(*self._conditions(model, filters))
                )
                session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def _dialect_insert(self):
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise StoreError(f"upsert is not supported on {dialect}")
        return insert

    def upsert(self, collection: str, row: dict, *, on: str) -> dict:
        model = self._model(collection)
        if on not in row:
            raise StoreError(f"upsert on {collection} requires a value for {on}")
        prepared = self._values(model, _prepare_insert(collection, row))
        insert = self._dialect_insert()
        stmt = insert(model.__table__).values(**prepared)
        preserved = {"id", on, "created_at"}
        stmt = stmt.on_conflict_do_update(
            index_elements=[on],
            set_={
                name: stmt.excluded[name] for name in prepared if name not in preserved
            },
        )
        try:
            with self.Session() as session:
                session.execute(stmt)
                session.commit()
                record = session.execute(
                    sql_select(model).where(self._column(model, on) == row[on])
                ).scalars().one()
                return self._to_dict(record)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc


def _format_filter_value(value: Any) -> str:
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    if _is_multi(value):
        quoted = ",".join(f'"{item}"' for item in value)
        return f"in.({quoted})"
    return f"eq.{value}"


class RestRecordStore:
    """
    Client for the hosted store's REST interface (PostgREST conventions).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        if not base_url or not api_key:
            raise ValueError("STORE_URL and STORE_API_KEY are required for RestRecordStore")
        self.base_url = f"{base_url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    def _params(self, filters: Optional[Filters]) -> dict:
        return {name: _format_filter_value(value) for name, value in (filters or {}).items()}

    def _request(
        self,
        method: str,
        collection: str,
        *,
        params: dict | None = None,
        json_body: Any = None,
        prefer: str | None = None,
    ) -> list[dict]:
        _check_collection(collection)
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = self.session.request(
                method,
                f"{self.base_url}/{collection}",
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise StoreError(f"{method} {collection} failed: {exc}") from exc
        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = (body.get("message") if isinstance(body, dict) else None) or response.text
            raise StoreError(f"{method} {collection} returned {response.status_code}: {message}")
        if not response.content:
            return []
        payload = response.json()
        return payload if isinstance(payload, list) else [payload]

    def select(
        self,
        collection: str,
        *,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        params = {"select": "*", **self._params(filters)}
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        return self._request("GET", collection, params=params)

    def select_one(self, collection: str, filters: Filters) -> Optional[dict]:
        params = {"select": "*", "limit": "1", **self._params(filters)}
        rows = self._request("GET", collection, params=params)
        return rows[0] if rows else None

    def insert(self, collection: str, row: dict) -> dict:
        rows = self._request(
            "POST", collection, json_body=[row], prefer="return=representation"
        )
        if not rows:
            raise StoreError(f"insert into {collection} returned no row")
        return rows[0]

    def update(self, collection: str, filters: Filters, values: dict) -> list[dict]:
        return self._request(
            "PATCH",
            collection,
            params=self._params(filters),
            json_body=values,
            prefer="return=representation",
        )

    def delete(self, collection: str, filters: Filters) -> int:
        rows = self._request(
            "DELETE",
            collection,
            params=self._params(filters),
            prefer="return=representation",
        )
        return len(rows)

    def upsert(self, collection: str, row: dict, *, on: str) -> dict:
        rows = self._request(
            "POST",
            collection,
            params={"on_conflict": on},
            json_body=[row],
            prefer="resolution=merge-duplicates,return=representation",
        )
        if not rows:
            raise StoreError(f"upsert into {collection} returned no row")
        return rows[0]
