import pytest

from app import create_app
from config import TestingConfig
from data_models import Author, Book, BookInstance, Genre, db
from store import EntityStore


@pytest.fixture
def app(tmp_path):
    # Each test gets its own database file
    db_file = tmp_path / "catalog_test.sqlite"
    app = create_app(TestingConfig, SQLALCHEMY_DATABASE_URI=f"sqlite:///{db_file}")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    with app.test_request_context():
        with EntityStore(db.session) as entity_store:
            yield entity_store


@pytest.fixture
def make_author(store):
    def factory(first_name="Jane", family_name="Austen", **fields):
        return store.add(Author(first_name=first_name, family_name=family_name, **fields))
    return factory


@pytest.fixture
def make_genre(store):
    def factory(name="Romance"):
        return store.add(Genre(name=name))
    return factory


@pytest.fixture
def make_book(store, make_author):
    def factory(title="Emma", author=None, genres=(), **fields):
        author = author or make_author()
        fields.setdefault("summary", "A novel about youthful hubris.")
        fields.setdefault("isbn", "0141439580")
        book = Book(title=title, author_id=author.id, **fields)
        book.genres = list(genres)
        return store.add(book)
    return factory


@pytest.fixture
def make_copy(store, make_book):
    def factory(book=None, imprint="Penguin Classics, 2003", status="Available", **fields):
        book = book or make_book()
        return store.add(BookInstance(book_id=book.id, imprint=imprint, status=status, **fields))
    return factory
