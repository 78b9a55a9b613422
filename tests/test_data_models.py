from datetime import date

from data_models import Author, Book, BookInstance, Genre


def test_author_name():
    assert Author(first_name="Jane", family_name="Austen").name == "Austen, Jane"
    assert Author(first_name="Jane", family_name="").name == ""


def test_author_lifespan():
    assert Author(first_name="A", family_name="B").lifespan == ""
    assert Author(date_of_birth=date(1775, 12, 16)).lifespan == "1775-12-16 - "
    assert Author(date_of_death=date(1817, 7, 18)).lifespan == " - 1817-07-18"
    author = Author(date_of_birth=date(1775, 12, 16), date_of_death=date(1817, 7, 18))
    assert author.lifespan == "1775-12-16 - 1817-07-18"


def test_urls():
    assert Author(id=3).url == "/catalog/author/3"
    assert Genre(id=4).url == "/catalog/genre/4"
    assert Book(id=5).url == "/catalog/book/5"
    assert BookInstance(id=6).url == "/catalog/bookinstance/6"


def test_due_back_formatted():
    assert BookInstance(due_back=date(2026, 11, 1)).due_back_formatted == "Nov 01, 2026"
    assert BookInstance().due_back_formatted == ""


def test_string_forms():
    assert str(Book(title="Emma")) == "Emma"
    assert str(Genre(name="Romance")) == "Romance"
    assert str(BookInstance(imprint="Penguin", status="Loaned")) == "Penguin (Loaned)"
