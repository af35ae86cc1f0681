"""
System configuration catalogs — allowed discipline / nature / issuer values.

Catalogs are referenced by documents (stored as plain strings), never
embedded: editing a catalog does not rewrite existing documents.
"""

from docflow.models import db

VALID_CATALOGS = frozenset({"discipline", "nature", "issuer"})

DEFAULT_CATALOGS = {
    "discipline": [
        "Electrical - EL",
        "Civil - CV",
        "Electromechanical - EM",
        "General - GE",
        "Management - MG",
    ],
    "nature": sorted([
        "Meeting Minutes - AT",
        "Backup - BK",
        "Configuration - CO",
        "Data Book - DB",
        "Construction / Survey Diagram - DCT",
        "Interconnection Diagram - DI",
        "Functional / Logic Diagram - DFL",
        "Technical Specification - ET",
        "Selectivity Study - ES",
        "Cable List - LC",
        "Bill of Materials - LM",
        "Checklist - LV",
        "Installation and Maintenance Manual - MI",
        "Operation Manual - MO",
        "Training Manual - MT",
        "Descriptive Memorandum - MD",
        "Inspection and Test Plan - PIT",
        "Quality Plan - PQ",
        "Training Plan - PL",
        "Test Procedure - PT",
        "Adequacy Report - RAD",
        "Analysis Report - RA",
        "Test Report - RT",
    ]),
    "issuer": [
        "Internal Engineering",
        "Supplier A",
        "Consortium",
        "Client",
    ],
}

# Discipline / nature stamped on generated transmittals
TRANSMITTAL_DISCIPLINE = "Management - MG"
TRANSMITTAL_NATURE = "Transmittal - GRD"


class CatalogEntry(db.Model):
    """One allowed value of a configuration catalog."""

    __tablename__ = "catalog_entries"

    id = db.Column(db.Integer, primary_key=True)
    catalog = db.Column(
        db.String(20), nullable=False, index=True,
        comment="discipline | nature | issuer",
    )
    value = db.Column(db.String(200), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.UniqueConstraint("catalog", "value", name="uq_catalog_value"),
    )

    def to_dict(self):
        return {"catalog": self.catalog, "value": self.value, "position": self.position}

    def __repr__(self):
        return f"<CatalogEntry {self.catalog}: {self.value}>"
