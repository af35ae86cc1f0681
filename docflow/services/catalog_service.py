"""
Catalog service — the system configuration of allowed discipline, nature
and issuer values.

Catalog membership is advisory for document metadata (free text is
accepted); the catalogs drive the pick-lists offered to clients.
"""

import logging

from docflow.core.exceptions import PermissionDeniedError, ValidationError
from docflow.models import db
from docflow.models.auth import UserRole
from docflow.models.catalog import DEFAULT_CATALOGS, VALID_CATALOGS, CatalogEntry

logger = logging.getLogger(__name__)


def get_catalogs() -> dict[str, list[str]]:
    """Return ``{"discipline": [...], "nature": [...], "issuer": [...]}``."""
    result = {name: [] for name in sorted(VALID_CATALOGS)}
    entries = CatalogEntry.query.order_by(CatalogEntry.catalog, CatalogEntry.position).all()
    for entry in entries:
        result[entry.catalog].append(entry.value)
    return result


def replace_catalog(catalog: str, values, actor) -> list[str]:
    """Replace every value of one catalog (admin only).

    Values are trimmed and de-duplicated; order is preserved.
    """
    if not actor.has_role(UserRole.ADMIN):
        raise PermissionDeniedError("edit catalogs", "requires admin")
    if catalog not in VALID_CATALOGS:
        raise ValidationError(
            f"Unknown catalog '{catalog}'", details={"catalog": sorted(VALID_CATALOGS)},
        )
    if not isinstance(values, list):
        raise ValidationError("Catalog values must be a list", details={catalog: "invalid"})

    cleaned = []
    for value in values:
        text = str(value or "").strip()
        if text and text not in cleaned:
            cleaned.append(text)

    CatalogEntry.query.filter_by(catalog=catalog).delete()
    for position, value in enumerate(cleaned):
        db.session.add(CatalogEntry(catalog=catalog, value=value, position=position))
    db.session.commit()
    logger.info("Catalog %s replaced (%d values)", catalog, len(cleaned), extra={"actor_id": actor.id})
    return cleaned


def seed_default_catalogs() -> int:
    """Insert the default catalogs where a catalog is still empty.

    Returns the number of entries added.  Caller commits.
    """
    added = 0
    for catalog, values in DEFAULT_CATALOGS.items():
        if CatalogEntry.query.filter_by(catalog=catalog).first():
            continue
        for position, value in enumerate(values):
            db.session.add(CatalogEntry(catalog=catalog, value=value, position=position))
            added += 1
    return added
