from sqlalchemy.exc import OperationalError

import app as catalog_app
from store import EntityStore


def create_author(client, first_name="Jane", family_name="Austen"):
    return client.post("/catalog/author/create", data={"first_name": first_name, "family_name": family_name})


def test_root_redirects_to_catalog(client):
    response = client.get("/")

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/catalog/")


def test_catalog_home_shows_counts(client, make_copy):
    make_copy()

    response = client.get("/catalog/")

    assert response.status_code == 200
    assert b"<strong>Books:</strong> 1" in response.data
    assert b"<strong>Copies available:</strong> 1" in response.data


def test_create_author_redirects_to_detail(client):
    response = create_author(client)

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/catalog/author/1")

    detail = client.get("/catalog/author/1")
    assert detail.status_code == 200
    assert b"Austen, Jane" in detail.data
    assert b"was added successfully." in detail.data


def test_invalid_author_form_is_rerendered_with_errors(client):
    response = create_author(client, first_name="Jane!", family_name="")

    assert response.status_code == 200
    assert b"First name has non-alphanumeric characters." in response.data
    assert b"Family name must be specified." in response.data
    assert b'value="Jane!"' in response.data
    assert client.get("/catalog/author/1").status_code == 404


def test_missing_entity_is_404(client):
    response = client.get("/catalog/book/42")

    assert response.status_code == 404
    assert b"Book not found" in response.data


def test_non_integer_id_is_404(client):
    assert client.get("/catalog/author/abc").status_code == 404


def test_delete_page_of_missing_author_redirects_to_list(client):
    response = client.get("/catalog/author/42/delete")

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/catalog/authors")


def test_blocked_author_delete_shows_books(client, make_author, make_book):
    author = make_author()
    make_book(title="Emma", author=author)

    response = client.post(f"/catalog/author/{author.id}/delete")

    assert response.status_code == 200
    assert b"Delete the following before attempting to delete this entry." in response.data
    assert b"Emma" in response.data
    assert client.get(f"/catalog/author/{author.id}").status_code == 200


def test_unreferenced_author_delete_redirects_to_list(client):
    create_author(client)

    response = client.post("/catalog/author/1/delete", follow_redirects=True)

    assert response.status_code == 200
    assert b"There are no authors." in response.data
    assert client.get("/catalog/author/1").status_code == 404


def test_book_forms_and_pages_render(client, make_author, make_genre):
    author = make_author()
    genre = make_genre("Romance")

    form = client.get("/catalog/book/create")
    assert form.status_code == 200
    assert b"Austen, Jane" in form.data
    assert b"Romance" in form.data

    created = client.post("/catalog/book/create", data={
        "title": "Emma",
        "summary": "A novel.",
        "isbn": "0141439580",
        "author": str(author.id),
        "genre": [str(genre.id)],
    })
    assert created.status_code == 302
    location = created.headers["Location"]

    assert b"Romance" in client.get(location).data
    assert b"checked" in client.get(f"{location}/update").data
    assert b"Emma" in client.get("/catalog/books").data
    assert b"Do you really want to delete this book?" in client.get(f"{location}/delete").data


def test_copy_pages_render(client, make_copy):
    copy = make_copy(status="Loaned")

    assert b"Penguin Classics, 2003" in client.get("/catalog/bookinstances").data
    assert b"Loaned" in client.get(f"/catalog/bookinstance/{copy.id}").data
    assert client.get(f"/catalog/bookinstance/{copy.id}/update").status_code == 200
    assert client.get("/catalog/bookinstance/create").status_code == 200


def test_genre_pages_render(client):
    created = client.post("/catalog/genre/create", data={"name": "Science Fiction"})
    location = created.headers["Location"]

    assert b"Science Fiction" in client.get(location).data
    assert b"Science Fiction" in client.get("/catalog/genres").data

    too_short = client.post("/catalog/genre/create", data={"name": "SF"})
    assert b"Genre name must contain 3 to 100 characters." in too_short.data


def test_store_failure_renders_generic_error(client, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(EntityStore, "all", broken)

    response = client.get("/catalog/authors")

    assert response.status_code == 500
    assert b"Something went wrong on our side." in response.data
    assert b"database is locked" not in response.data


def test_book_summary_lookup(client, monkeypatch):
    calls = []

    def fake_fetch(isbn, base_url, timeout):
        calls.append((isbn, base_url))
        return "A comedy of manners."

    monkeypatch.setattr(catalog_app, "fetch_summary_by_isbn", fake_fetch)

    response = client.get("/catalog/book/summary?isbn=0-14-143958-0")

    assert response.status_code == 200
    assert response.get_json() == {"isbn": "0141439580", "summary": "A comedy of manners."}
    assert calls == [("0141439580", "https://openlibrary.org")]


def test_book_summary_lookup_not_found(client, monkeypatch):
    monkeypatch.setattr(catalog_app, "fetch_summary_by_isbn", lambda isbn, **kwargs: None)

    response = client.get("/catalog/book/summary?isbn=123")

    assert response.status_code == 404
    assert response.get_json()["error"] == "No summary found for this ISBN."


def test_oversized_author_id_rerenders_book_form(client):
    response = client.post("/catalog/book/create", data={
        "title": "Emma",
        "summary": "A novel.",
        "isbn": "0141439580",
        "author": "99999999999999999999999",
    })

    assert response.status_code == 200
    assert b"Author must be a valid id." in response.data


def test_oversized_route_id_is_404(client):
    assert client.get("/catalog/author/99999999999999999999999").status_code == 404
    assert client.post("/catalog/book/99999999999999999999999/delete").status_code == 404
