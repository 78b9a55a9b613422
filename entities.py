"""
Entity kinds: what the generic workflow controller needs to know about each
catalog entity (form fields, how a record is built from them, which other
entities it references and which reference it).
"""

from data_models import Author, Book, BookInstance, BOOK_STATUSES, Genre, book_genres
from integrity import dependencies_for
from validation import (
    Field,
    alphanumeric,
    default,
    escape,
    integer,
    iso_date,
    length,
    not_empty,
    one_of,
    trim,
    validate,
)


class EntityKind:
    """
    Base capability set; subclasses fill in the class attributes and
    override the hooks that differ.
    """

    name = None
    plural = None
    label = None
    model = None
    order_by = ()
    columns = ()
    create_fields = ()
    update_fields = None
    owned_links = ()

    @property
    def dependencies(self):
        return dependencies_for(self.model)

    @property
    def not_found_message(self):
        return f"{self.label} not found"

    def fields_for(self, creating: bool):
        if creating or self.update_fields is None:
            return self.create_fields
        return self.update_fields

    def validate(self, store, form, creating=True):
        """
        Run the field rules, then check that referenced entities exist.
        """
        result = validate(form, self.fields_for(creating))
        self.check_references(store, result)
        return result

    def check_references(self, store, result):
        pass

    def to_record(self, values: dict) -> dict:
        return {column: values.get(column) for column in self.columns}

    def build(self, values, entity_id=None):
        """
        Transient entity from sanitized values; never added to the session.
        """
        candidate = self.model(**self.to_record(values))
        candidate.id = entity_id
        return candidate

    def apply(self, store, entity, values):
        """
        Replace the mutable fields of `entity` wholesale.
        """
        for column, value in self.to_record(values).items():
            setattr(entity, column, value)
        self.link(store, entity, values)
        return entity

    def link(self, store, entity, values):
        pass

    def form_context(self, store) -> dict:
        return {}

    def selection(self, entity=None, values=None) -> dict:
        return {}

    def detail_title(self, entity) -> str:
        return f"{self.label} Detail"

    def detail_context(self, store, entity) -> dict:
        return {}


def _exists(store, model, value):
    return isinstance(value, int) and store.get(model, value) is not None


class AuthorKind(EntityKind):
    name = "author"
    plural = "authors"
    label = "Author"
    model = Author
    order_by = (Author.family_name, Author.first_name)
    columns = ("first_name", "family_name", "date_of_birth", "date_of_death")

    create_fields = (
        Field("first_name", [
            trim,
            length(1, message="First name must be specified."),
            escape,
            alphanumeric("First name has non-alphanumeric characters."),
        ]),
        Field("family_name", [
            trim,
            length(1, message="Family name must be specified."),
            escape,
            alphanumeric("Family name has non-alphanumeric characters."),
        ]),
        Field("date_of_birth", [iso_date()], message="Invalid date of birth", optional=True),
        Field("date_of_death", [iso_date()], message="Invalid date of death", optional=True),
    )
    update_fields = (
        Field("first_name", [trim, not_empty(), escape], message="First name can not be empty"),
        Field("family_name", [trim, not_empty(), escape], message="Family name can not be empty"),
        Field("date_of_birth", [iso_date()], message="Date of birth is an invalid date.", optional=True),
        Field("date_of_death", [iso_date()], message="Date of death is an invalid date.", optional=True),
    )

    def detail_context(self, store, entity):
        books = store.find(Book, Book.author_id == entity.id, order_by=(Book.title,))
        return {"author_books": books}


class GenreKind(EntityKind):
    name = "genre"
    plural = "genres"
    label = "Genre"
    model = Genre
    order_by = (Genre.name,)
    columns = ("name",)

    create_fields = (
        Field("name", [
            trim,
            length(3, 100, message="Genre name must contain 3 to 100 characters."),
            escape,
        ]),
    )

    def detail_context(self, store, entity):
        books = store.find(Book, Book.genres.any(Genre.id == entity.id), order_by=(Book.title,))
        return {"genre_books": books}


class BookKind(EntityKind):
    name = "book"
    plural = "books"
    label = "Book"
    model = Book
    order_by = (Book.title,)
    columns = ("title", "summary", "isbn", "author_id")
    owned_links = (book_genres.c.book_id,)

    create_fields = (
        Field("title", [trim, not_empty(), escape], message="Title must not be empty."),
        Field("author", [trim, not_empty(), integer("Author must be a valid id.")], message="Author must not be empty."),
        Field("summary", [trim, not_empty(), escape], message="Summary must not be empty."),
        Field("isbn", [trim, not_empty(), escape], message="ISBN must not be empty."),
        Field("genre", [trim, integer()], message="Invalid genre.", many=True),
    )

    def to_record(self, values):
        return {
            "title": values.get("title"),
            "summary": values.get("summary"),
            "isbn": values.get("isbn"),
            "author_id": values.get("author"),
        }

    def check_references(self, store, result):
        author = result.values.get("author")
        if isinstance(author, int) and not _exists(store, Author, author):
            result.add_error("author", "Author must reference an existing author.")
        genre_ids = [g for g in result.values.get("genre") or [] if isinstance(g, int)]
        found = {genre.id for genre in store.get_many(Genre, genre_ids)}
        for genre_id in genre_ids:
            if genre_id not in found:
                result.add_error("genre", f"Genre {genre_id} does not exist.")

    def link(self, store, entity, values):
        genre_ids = [g for g in values.get("genre") or [] if isinstance(g, int)]
        entity.genres = store.get_many(Genre, genre_ids)

    def form_context(self, store):
        return {
            "authors": store.all(Author, order_by=AuthorKind.order_by),
            "genres": store.all(Genre, order_by=GenreKind.order_by),
        }

    def selection(self, entity=None, values=None):
        if values is not None:
            genre_ids = [g for g in values.get("genre") or [] if isinstance(g, int)]
        elif entity is not None:
            genre_ids = [genre.id for genre in entity.genres]
        else:
            genre_ids = []
        return {"selected_genres": genre_ids}

    def detail_title(self, entity):
        return entity.title

    def detail_context(self, store, entity):
        copies = store.find(BookInstance, BookInstance.book_id == entity.id, order_by=(BookInstance.id,))
        return {"book_instances": copies}


class BookInstanceKind(EntityKind):
    name = "bookinstance"
    plural = "bookinstances"
    label = "Book Instance"
    model = BookInstance
    order_by = (BookInstance.id,)
    columns = ("book_id", "imprint", "status", "due_back")

    create_fields = (
        Field("book", [trim, not_empty(), integer("Book must be a valid id.")], message="Book must be specified"),
        Field("imprint", [trim, length(3, message="Imprint must be specified"), escape]),
        Field("status", [trim, default("Maintenance"), one_of(BOOK_STATUSES, "Invalid status")]),
        Field("due_back", [iso_date()], message="Invalid date", optional=True),
    )

    def to_record(self, values):
        return {
            "book_id": values.get("book"),
            "imprint": values.get("imprint"),
            "status": values.get("status"),
            "due_back": values.get("due_back"),
        }

    def check_references(self, store, result):
        book = result.values.get("book")
        if isinstance(book, int) and not _exists(store, Book, book):
            result.add_error("book", "Book must reference an existing book.")

    def form_context(self, store):
        return {"book_list": store.all(Book, order_by=BookKind.order_by), "statuses": BOOK_STATUSES}

    def selection(self, entity=None, values=None):
        if values is not None:
            return {"selected_book": values.get("book")}
        return {"selected_book": entity.book_id if entity is not None else None}

    @property
    def not_found_message(self):
        return "Book copy not found"

    def detail_title(self, entity):
        return f"Copy: {entity.book.title}"


KINDS = {kind.name: kind for kind in (AuthorKind(), GenreKind(), BookKind(), BookInstanceKind())}
