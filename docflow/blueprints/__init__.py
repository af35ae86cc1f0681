"""
DocFlow — Engineering Document Workflow
HTTP blueprints.  Shared listing helper below.
"""

from flask import request

from docflow.core.exceptions import ValidationError

DEFAULT_PAGE_SIZE = 200
MAX_PAGE_SIZE = 1000


def _int_arg(name: str, default: int, minimum: int) -> int:
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", details={name: "invalid"}) from None
    if value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}", details={name: "out of range"})
    return value


def paginate_query(query, default_limit=DEFAULT_PAGE_SIZE, max_limit=MAX_PAGE_SIZE):
    """Slice a listing query by the ``limit`` / ``offset`` query params.

    ``limit`` is clamped to ``max_limit``; non-integer or negative values
    raise ValidationError (422 through the blueprint error handlers).

    Returns:
        (items, page) where page is {"total", "limit", "offset"}.
    """
    limit = min(_int_arg("limit", default_limit, 1), max_limit)
    offset = _int_arg("offset", 0, 0)
    total = query.order_by(None).count()
    items = query.limit(limit).offset(offset).all()
    return items, {"total": total, "limit": limit, "offset": offset}
