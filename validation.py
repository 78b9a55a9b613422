"""
Form validation pipeline.

Each submitted field runs through an ordered chain of rules. A rule is a
callable taking the current value and returning the (possibly transformed)
value, or raising ValueError when the value is not acceptable. Failures do
not stop the chain: the message is recorded, the value is left as it was,
and the remaining rules and fields still run so one re-render can show
every problem at once.
"""

import re
from datetime import date
from typing import NamedTuple

from markupsafe import escape as _html_escape

# Largest id a 64-bit signed INTEGER column can hold.
MAX_ID = 2 ** 63 - 1


class FieldError(NamedTuple):
    field: str
    message: str


class ValidationResult:
    """
    Sanitized values plus the ordered list of field errors.

    The values are always populated, even when validation fails, so a form
    can be re-rendered pre-filled with what the user submitted.
    """

    def __init__(self, values: dict, errors: list):
        self.values = values
        self.errors = errors

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, field: str, message: str) -> None:
        self.errors.append(FieldError(field, message))

    def errors_for(self, field: str) -> list:
        return [e.message for e in self.errors if e.field == field]

    def __repr__(self):
        return f"ValidationResult(values={self.values!r}, errors={self.errors!r})"


class Field:
    """
    Rule chain for one form field.

    Args:
        name: form key.
        rules: ordered rule callables.
        message: fallback message for rules that carry none.
        optional: skip the chain (value becomes None) when the raw value is falsy.
        many: the field is multi-valued; the chain runs on every item.
    """

    def __init__(self, name, rules, message=None, optional=False, many=False):
        self.name = name
        self.rules = list(rules)
        self.message = message
        self.optional = optional
        self.many = many

    def run(self, raw, errors):
        if self.many:
            items = raw if isinstance(raw, (list, tuple)) else ([raw] if raw else [])
            return [self._run_chain(item, errors) for item in items]
        return self._run_chain(raw, errors)

    def _run_chain(self, value, errors):
        if self.optional and not value:
            return None
        for rule in self.rules:
            try:
                value = rule(value)
            except ValueError as exc:
                message = str(exc) or self.message or f"Invalid value for {self.name}."
                errors.append(FieldError(self.name, message))
        return value


def validate(form, fields) -> ValidationResult:
    """
    Run every field's rule chain over a submitted form.

    Args:
        form: a werkzeug MultiDict (request.form) or a plain dict.
        fields: iterable of Field.

    Returns:
        ValidationResult with sanitized values keyed by field name.
    """
    values = {}
    errors = []
    for field in fields:
        values[field.name] = field.run(_raw_value(form, field), errors)
    return ValidationResult(values, errors)


def _raw_value(form, field):
    if field.many:
        if hasattr(form, "getlist"):
            return form.getlist(field.name)
        value = form.get(field.name)
        if value is None:
            return []
        return list(value) if isinstance(value, (list, tuple)) else [value]
    value = form.get(field.name, "")
    return "" if value is None else value


# --- Rules ---

def trim(value):
    return value.strip() if isinstance(value, str) else value


def escape(value):
    """
    Escape HTML-significant characters (& < > " ').
    """
    if not isinstance(value, str):
        return value
    return str(_html_escape(value))


def not_empty(message=None):
    def rule(value):
        if value is None or (isinstance(value, str) and not value):
            raise ValueError(message or "")
        return value
    return rule


def length(minimum=None, maximum=None, message=None):
    def rule(value):
        size = len(value or "")
        if minimum is not None and size < minimum:
            raise ValueError(message or f"Must be at least {minimum} characters.")
        if maximum is not None and size > maximum:
            raise ValueError(message or f"Must be at most {maximum} characters.")
        return value
    return rule


_ALNUM = re.compile(r"^[A-Za-z0-9]+$")
_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)


def alphanumeric(message=None):
    def rule(value):
        if not isinstance(value, str) or not _ALNUM.match(value):
            raise ValueError(message or "")
        return value
    return rule


def parse_date(date_str: str):
    """
    Parse an HTML <input type="date"> value ('YYYY-MM-DD') into a datetime.date.

    Month and day must be zero-padded; anything else raises ValueError.

    Returns:
         datetime.date or None.
    """
    date_str = (date_str or "").strip()
    if not date_str:
        return None
    if not _ISO_DATE.fullmatch(date_str):
        raise ValueError(f"Not a YYYY-MM-DD date: {date_str!r}")
    return date.fromisoformat(date_str)


def iso_date(message=None):
    """
    Accept an ISO-8601 calendar date and coerce it to datetime.date.
    """
    def rule(value):
        if not isinstance(value, str):
            raise ValueError(message or "")
        try:
            parsed = parse_date(value)
        except ValueError:
            raise ValueError(message or "") from None
        if parsed is None:
            raise ValueError(message or "")
        return parsed
    return rule


def integer(message=None):
    """
    Coerce to an id in 1..MAX_ID. Empty values pass through untouched so a
    preceding not_empty() rule reports them once.
    """
    def rule(value):
        if value is None or value == "":
            return value
        try:
            number = value if isinstance(value, int) else int(str(value).strip())
        except (TypeError, ValueError):
            raise ValueError(message or "") from None
        if not 1 <= number <= MAX_ID:
            raise ValueError(message or "")
        return number
    return rule


def one_of(choices, message=None):
    def rule(value):
        if value not in choices:
            raise ValueError(message or f"Must be one of: {', '.join(choices)}.")
        return value
    return rule


def default(fallback):
    def rule(value):
        return fallback if not value else value
    return rule
