"""
Lending Catalog - a library catalog built with Flask and SQLAlchemy.

Features:
- Authors, books, genres and book copies with create / update / delete forms
- Validation that reports every problem with a submitted form at once
- Deletes refused while other entries still reference the target
- Catalog home page with collection counts
- Book summary lookup from Open Library by ISBN
"""

import logging
import os

from flask import Flask, flash, g, jsonify, redirect, render_template, request, url_for
from sqlalchemy.exc import SQLAlchemyError

from config import Config
from controllers import Redirect, WorkflowController, catalog_summary
from data_models import db
from entities import KINDS
from openlibrary import fetch_summary_by_isbn, normalize_isbn
from store import EntityStore

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(app):
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])


def respond(outcome):
    """
    Turn a workflow outcome into a response.

    A Redirect flashes its message (if any) and redirects; anything else is
    rendered with the view's template.
    """
    if isinstance(outcome, Redirect):
        if outcome.message:
            flash(outcome.message, "success")
        return redirect(url_for(outcome.endpoint, **(outcome.values or {})))
    return render_template(f"{outcome.view}.html", **outcome.context)


def _catalog_views(kind):
    """
    Build the (rule, endpoint, view, methods) entries for one entity kind.
    """
    def controller():
        return WorkflowController(kind, g.store)

    def list_view():
        return respond(controller().list())

    def detail_view(entity_id):
        return respond(controller().detail(entity_id))

    def create_view():
        if request.method == "POST":
            return respond(controller().create(request.form))
        return respond(controller().create_form())

    def update_view(entity_id):
        if request.method == "POST":
            return respond(controller().update(entity_id, request.form))
        return respond(controller().update_form(entity_id))

    def delete_view(entity_id):
        if request.method == "POST":
            return respond(controller().delete(entity_id))
        return respond(controller().delete_form(entity_id))

    base = f"/catalog/{kind.name}"
    return [
        (f"/catalog/{kind.plural}", "list", list_view, ["GET"]),
        (f"{base}/create", "create", create_view, ["GET", "POST"]),
        (f"{base}/<int:entity_id>", "detail", detail_view, ["GET"]),
        (f"{base}/<int:entity_id>/update", "update", update_view, ["GET", "POST"]),
        (f"{base}/<int:entity_id>/delete", "delete", delete_view, ["GET", "POST"]),
    ]


def register_catalog_routes(app):
    for kind in KINDS.values():
        for rule, operation, view, methods in _catalog_views(kind):
            endpoint = f"{kind.name}_{operation}"
            app.add_url_rule(rule, endpoint, view, methods=methods)


def _ensure_sqlite_dir(uri: str):
    prefix = "sqlite:///"
    if uri.startswith(prefix) and len(uri) > len(prefix):
        os.makedirs(os.path.dirname(os.path.abspath(uri[len(prefix):])), exist_ok=True)


def create_app(config_object=Config, **overrides):
    """
    Application factory.

    Args:
        config_object: config class (see config.py).
        overrides: individual config keys that win over config_object.
    """
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.config.update(overrides)

    configure_logging(app)
    _ensure_sqlite_dir(app.config["SQLALCHEMY_DATABASE_URI"])
    db.init_app(app)

    with app.app_context():
        db.create_all()

    @app.before_request
    def open_store():
        g.store = EntityStore(db.session)

    @app.teardown_request
    def close_store(exc):
        store = g.pop("store", None)
        if store is not None:
            store.close()

    @app.after_request
    def log_request(response):
        app.logger.info("%s %s %s", request.method, request.path, response.status_code)
        return response

    @app.route("/")
    def home():
        return redirect(url_for("catalog_home"))

    @app.route("/catalog/")
    def catalog_home():
        """
        Catalog home page: counts of books, copies, authors and genres.
        """
        return respond(catalog_summary(g.store))

    @app.route("/catalog/book/summary")
    def book_summary():
        """
        Look up a book summary on Open Library for the ?isbn= given.
        """
        isbn = normalize_isbn(request.args.get("isbn", ""))
        summary = fetch_summary_by_isbn(
            isbn,
            base_url=app.config["OPENLIBRARY_BASE_URL"],
            timeout=app.config["OPENLIBRARY_TIMEOUT"],
        )
        if not summary:
            return jsonify({"isbn": isbn, "error": "No summary found for this ISBN."}), 404
        return jsonify({"isbn": isbn, "summary": summary})

    register_catalog_routes(app)

    @app.errorhandler(404)
    def not_found(error):
        return render_template("error.html", title="Not Found", message=error.description, status=404), 404

    @app.errorhandler(SQLAlchemyError)
    def store_failure(error):
        db.session.rollback()
        app.logger.exception("Database failure while handling %s %s", request.method, request.path)
        return render_template(
            "error.html",
            title="Server Error",
            message="Something went wrong on our side. Please try again later.",
            status=500,
        ), 500

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
