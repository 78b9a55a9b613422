"""
Generic catalog workflow controller.

One controller drives the list / detail / create / update / delete cycle for
any entity kind. Operations return a Render (a view name plus the data to
show) or a Redirect (a logical route); a Redirect always ends the request.
"""

import logging
from typing import NamedTuple, Optional

from data_models import Author, Book, BookInstance, Genre
from integrity import find_dependents

logger = logging.getLogger(__name__)


class Render(NamedTuple):
    view: str
    context: dict


class Redirect(NamedTuple):
    endpoint: str
    values: Optional[dict] = None
    message: Optional[str] = None


class WorkflowController:
    def __init__(self, kind, store):
        self.kind = kind
        self.store = store

    # --- Read ---

    def list(self):
        kind = self.kind
        entities = self.store.all(kind.model, order_by=kind.order_by)
        return Render(f"{kind.name}_list", {
            "title": f"{kind.label} List",
            f"{kind.name}_list": entities,
        })

    def detail(self, entity_id):
        kind = self.kind
        entity = self._get_or_404(entity_id)
        context = {"title": kind.detail_title(entity), kind.name: entity}
        context.update(kind.detail_context(self.store, entity))
        return Render(f"{kind.name}_detail", context)

    # --- Create ---

    def create_form(self):
        return self._form(f"Create {self.kind.label}", selection=self.kind.selection())

    def create(self, form):
        """
        Validate a submitted form and persist the new entity.

        Invalid input is echoed back in the form along with every error;
        nothing is written in that case.
        """
        kind = self.kind
        result = kind.validate(self.store, form, creating=True)
        candidate = kind.build(result.values)

        if not result.ok:
            logger.debug("Rejected %s create: %s", kind.name, result.errors)
            return self._form(
                f"Create {kind.label}",
                entity=candidate,
                errors=result.errors,
                selection=kind.selection(values=result.values),
            )

        kind.link(self.store, candidate, result.values)
        entity = self.store.add(candidate)
        return Redirect(
            f"{kind.name}_detail",
            {"entity_id": entity.id},
            f"{kind.label} '{entity}' was added successfully.",
        )

    # --- Update ---

    def update_form(self, entity_id):
        kind = self.kind
        entity = self._get_or_404(entity_id)
        return self._form(
            f"Update {kind.label}",
            entity=entity,
            selection=kind.selection(entity=entity),
        )

    def update(self, entity_id, form):
        """
        Validate a submitted form and replace the stored entity's fields.
        """
        kind = self.kind
        entity = self._get_or_404(entity_id)
        result = kind.validate(self.store, form, creating=False)

        if not result.ok:
            logger.debug("Rejected %s %s update: %s", kind.name, entity_id, result.errors)
            return self._form(
                f"Update {kind.label}",
                entity=kind.build(result.values, entity_id=entity_id),
                errors=result.errors,
                selection=kind.selection(values=result.values),
            )

        kind.apply(self.store, entity, result.values)
        self.store.save(entity)
        return Redirect(
            f"{kind.name}_detail",
            {"entity_id": entity_id},
            f"{kind.label} '{entity}' was updated successfully.",
        )

    # --- Delete ---

    def delete_form(self, entity_id):
        kind = self.kind
        entity = self.store.get(kind.model, entity_id)
        if entity is None:
            return Redirect(f"{kind.name}_list")
        return self._confirm_delete(entity)

    def delete(self, entity_id):
        """
        Remove the entity unless other entities still reference it.

        A referenced entity is not an error: the confirmation view is shown
        again with the blocking dependents.
        """
        kind = self.kind
        entity = self._get_or_404(entity_id)
        if find_dependents(self.store, kind.model, entity_id):
            logger.warning("Delete of %s %s blocked by dependents", kind.name, entity_id)
            return self._confirm_delete(entity)

        description = str(entity)
        if not self.store.delete_unreferenced(entity, kind.dependencies, kind.owned_links):
            return self._confirm_delete(entity)

        return Redirect(
            f"{kind.name}_list",
            {},
            f"{kind.label} '{description}' was deleted successfully.",
        )

    # --- Helpers ---

    def _get_or_404(self, entity_id):
        return self.store.get_or_404(self.kind.model, entity_id, self.kind.not_found_message)

    def _confirm_delete(self, entity):
        kind = self.kind
        dependents = find_dependents(self.store, kind.model, entity.id)
        return Render(f"{kind.name}_delete", {
            "title": f"Delete {kind.label}",
            kind.name: entity,
            "dependents": dependents,
        })

    def _form(self, title, entity=None, errors=(), selection=None):
        kind = self.kind
        context = {"title": title, kind.name: entity, "errors": list(errors)}
        context.update(kind.form_context(self.store))
        context.update(selection or {})
        return Render(f"{kind.name}_form", context)


def catalog_summary(store):
    """
    Counts shown on the catalog home page.
    """
    return Render("index", {
        "title": "Local Library Home",
        "book_count": store.count(Book),
        "book_instance_count": store.count(BookInstance),
        "book_instance_available_count": store.count(BookInstance, BookInstance.status == "Available"),
        "author_count": store.count(Author),
        "genre_count": store.count(Genre),
    })
