"""
Referential integrity guard.

Every entity type declares which other entities point at it. Before a delete
the guard looks those dependents up; the caller only removes the target when
nothing references it anymore.
"""

from typing import NamedTuple, Optional

from sqlalchemy import Column, exists, select

from data_models import Author, Book, BookInstance, Genre, book_genres


class Dependency(NamedTuple):
    """
    A (dependent type, foreign key) relationship.

    `link` is the column holding the target's id. For many-to-many links it
    lives on an association table and `through` is the column of that table
    pointing back at the dependent.
    """
    dependent: type
    link: Column
    through: Optional[Column] = None

    @property
    def label(self) -> str:
        return self.dependent.__tablename__

    def dependents_of(self, target_id):
        """
        SELECT for the dependent entities referencing `target_id`.
        """
        stmt = select(self.dependent)
        if self.through is None:
            return stmt.where(self.link == target_id)
        linked = select(self.through).where(self.link == target_id)
        return stmt.where(self.dependent.id.in_(linked))

    def unreferenced(self, target_table):
        """
        NOT EXISTS criterion over the target table's id column.
        """
        return ~exists().where(self.link == target_table.c.id).correlate(target_table)


DEPENDENCIES = {
    Author: (Dependency(Book, Book.author_id),),
    Genre: (Dependency(Book, book_genres.c.genre_id, through=book_genres.c.book_id),),
    Book: (Dependency(BookInstance, BookInstance.book_id),),
    BookInstance: (),
}


def dependencies_for(model) -> tuple:
    return DEPENDENCIES.get(model, ())


def find_dependents(store, model, target_id) -> dict:
    """
    Look up every entity still referencing `model` with id `target_id`.

    An unknown id is not an error: it simply has no dependents, so callers
    must check that the target exists themselves.

    Returns:
        dict mapping dependent table name to the list of dependents; only
        non-empty groups are included, so an empty dict means unreferenced.
    """
    blocking = {}
    for dependency in dependencies_for(model):
        rows = store.select(dependency.dependents_of(target_id))
        if rows:
            blocking[dependency.label] = rows
    return blocking
