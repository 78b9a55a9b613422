"""
Entity store: the persistence handle the workflow controllers work through.

A store wraps one SQLAlchemy session. The application opens one per request
and closes it at teardown; nothing else in the workflow layer touches the
session directly.
"""

import logging

from flask import abort
from sqlalchemy import delete, func, select

from validation import MAX_ID

logger = logging.getLogger(__name__)


class StoreClosedError(RuntimeError):
    """Raised when a closed store is used."""


class EntityStore:
    def __init__(self, session=None):
        self._session = session
        self._closed = session is None

    def open(self, session=None):
        if session is not None:
            self._session = session
        if self._session is None:
            raise StoreClosedError("No session to open the entity store with.")
        self._closed = False
        return self

    def close(self):
        """
        Roll back anything left uncommitted and release the session.
        """
        if self._closed:
            return
        try:
            self._session.rollback()
        finally:
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self):
        if self._closed:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def session(self):
        if self._closed:
            raise StoreClosedError("Entity store is closed.")
        return self._session

    # --- Reads ---

    def all(self, model, order_by=()):
        stmt = select(model).order_by(*order_by)
        return self.select(stmt)

    def find(self, model, *criteria, order_by=()):
        stmt = select(model).where(*criteria).order_by(*order_by)
        return self.select(stmt)

    def select(self, stmt):
        return list(self.session.scalars(stmt).unique().all())

    def get(self, model, entity_id):
        """
        Fetch by primary key; ids the column cannot hold resolve to None.
        """
        if not isinstance(entity_id, int) or not 1 <= entity_id <= MAX_ID:
            return None
        return self.session.get(model, entity_id)

    def get_or_404(self, model, entity_id, message=None):
        """
        Fetch by primary key or abort with 404 (werkzeug NotFound).
        """
        entity = self.get(model, entity_id)
        if entity is None:
            abort(404, description=message)
        return entity

    def get_many(self, model, ids):
        if not ids:
            return []
        return self.find(model, model.id.in_(ids))

    def count(self, model, *criteria) -> int:
        stmt = select(func.count()).select_from(model).where(*criteria)
        return self.session.scalar(stmt)

    # --- Writes ---

    def add(self, entity):
        self.session.add(entity)
        self.session.commit()
        logger.info("Created %r", entity)
        return entity

    def save(self, entity):
        self.session.commit()
        logger.info("Updated %r", entity)
        return entity

    def delete_unreferenced(self, entity, dependencies=(), owned_links=()):
        """
        Delete `entity` only if no declared dependency still references it.

        The existence checks are part of the DELETE statement itself, so a
        dependent created after the caller's own check cannot slip through.
        Association rows owned by the entity (`owned_links`: columns of link
        tables holding its id) go in the same transaction.

        Returns:
            True when the row was removed, False when it is still referenced.
        """
        session = self.session
        table = type(entity).__table__
        entity_id = entity.id

        stmt = delete(table).where(table.c.id == entity_id)
        for dependency in dependencies:
            stmt = stmt.where(dependency.unreferenced(table))

        try:
            for column in owned_links:
                session.execute(delete(column.table).where(column == entity_id))
            removed = session.execute(stmt).rowcount == 1
            if not removed:
                session.rollback()
                logger.warning("Delete of %r blocked by dependents", entity)
                return False
            session.commit()
        except Exception:
            session.rollback()
            raise

        if entity in session:
            session.expunge(entity)
        logger.info("Deleted %s id=%s", table.name, entity_id)
        return True
