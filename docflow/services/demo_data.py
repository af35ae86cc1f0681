"""
Demo data — two projects, one user per role, default catalogs and a handful
of documents driven through the real lifecycle so their histories are
genuine (including the auto-generated transmittals).

Idempotent: does nothing when the demo admin already exists.
"""

import logging
from datetime import date, timedelta

from docflow.models import db
from docflow.models.auth import User, UserRole
from docflow.models.project import Project
from docflow.services.catalog_service import seed_default_catalogs
from docflow.services.code_generator import generate_transmittal_code
from docflow.services.document_lifecycle import (
    UploadedFile,
    apply_transition,
    create_document,
    reissue_document,
)
from docflow.services.transmittal import generate_transmittal

logger = logging.getLogger(__name__)

DEMO_PROJECTS = [
    {
        "code": "XINGU-500",
        "name": "Xingu 500kV Substation",
        "wbs": "WBS-XINGU-001",
        "site": "Xingu Substation",
        "direct_client": "Transmission Energy Co.",
        "final_client": "National Grid Operator",
    },
    {
        "code": "LT-NORTH",
        "name": "North Transmission Line",
        "wbs": "WBS-LT-002",
        "site": "North Line Lot A",
        "direct_client": "North Consortium",
        "final_client": "Electricity Regulator",
    },
]

# (email, name, roles, project index or None)
DEMO_USERS = [
    ("admin@docflow.local", "Super Admin", [UserRole.ADMIN], None),
    ("alice@docflow.local", "Alice Silva (Leader)", [UserRole.TECH_LEADER], 0),
    ("bob@docflow.local", "Bob Santos", [UserRole.DESIGNER], 0),
    ("carol@client.local", "Carol Client", [UserRole.CLIENT], 0),
    ("dave@docflow.local", "Dave Manager", [UserRole.READER], 1),
]


def _send_to_client(doc, leader, designer, comment):
    """Walk a draft to client analysis and register its transmittal."""
    apply_transition(doc, "in_review", "none", "Ready for design review.", leader)
    apply_transition(doc, "evaluation_lt", "none", "Drawings complete.", designer,
                     UploadedFile(f"{doc.code}.pdf"))
    result = apply_transition(doc, "analysis_client", "approved", comment, leader,
                              f"{doc.code}.pdf")
    transmittal = generate_transmittal(
        [doc], leader, doc.project_id, code=generate_transmittal_code(doc.project_id),
        now=result.version.created_at,
    )
    db.session.add(transmittal)
    db.session.flush()
    return transmittal


def seed_demo_data() -> dict:
    """Create the demo dataset and commit.  Returns counts per entity."""
    if User.query.filter_by(email=DEMO_USERS[0][0]).first():
        logger.info("Demo data already present — skipping")
        return {"projects": 0, "users": 0, "documents": 0, "catalog_entries": 0}

    projects = [Project(**data) for data in DEMO_PROJECTS]
    db.session.add_all(projects)
    db.session.flush()

    users = {}
    for email, name, roles, project_idx in DEMO_USERS:
        user = User(
            email=email,
            name=name,
            roles=[r.value for r in roles],
            project_id=projects[project_idx].id if project_idx is not None else None,
        )
        db.session.add(user)
        users[roles[0]] = user
    db.session.flush()

    catalog_entries = seed_default_catalogs()

    leader = users[UserRole.TECH_LEADER]
    designer = users[UserRole.DESIGNER]
    client = users[UserRole.CLIENT]
    xingu, north = projects
    today = date.today()

    # Single-line diagram: with the client, covered by a transmittal
    diagram = create_document(xingu.id, {
        "code": "GE-VE-EL-001",
        "title": "Single-Line Diagram Substation A",
        "type": "technical",
        "discipline": "Electrical - EL",
        "nature": "Functional / Logic Diagram - DFL",
        "issuer": "Internal Engineering",
        "ge_code": "GE-001-X",
        "forecast_date": today + timedelta(days=5),
    }, designer)
    db.session.add(diagram)
    db.session.flush()
    documents = [diagram, _send_to_client(diagram, leader, designer, "Issued for client approval.")]

    # Transformer foundation: rejected by the client, reissued as 0B
    foundation = create_document(xingu.id, {
        "code": "GE-VE-CV-015",
        "title": "Transformer T1 Concrete Foundation",
        "type": "technical",
        "discipline": "Civil - CV",
        "nature": "Construction / Survey Diagram - DCT",
        "issuer": "Internal Engineering",
        "forecast_date": today - timedelta(days=2),
    }, designer)
    db.session.add(foundation)
    db.session.flush()
    documents.append(_send_to_client(foundation, leader, designer, "Issued for client approval."))
    apply_transition(foundation, "moderation_lt", "rejected", "Reinforce the footing rebar.", client)
    apply_transition(foundation, "in_review", "none", "Address client comments.", leader)
    reissue_document(foundation, designer, "Rebar reinforced as requested.")
    apply_transition(foundation, "evaluation_lt", "none", "Adjustments done as requested.", designer)
    documents.append(foundation)

    # Mechanical arrangement: approved for construction
    arrangement = create_document(xingu.id, {
        "code": "GE-VE-MC-099",
        "title": "General Mechanical Arrangement",
        "type": "managerial",
        "discipline": "Electromechanical - EM",
        "nature": "Construction / Survey Diagram - DCT",
        "issuer": "Supplier A",
    }, leader)
    db.session.add(arrangement)
    db.session.flush()
    documents.append(_send_to_client(arrangement, leader, designer, "Issued for construction approval."))
    apply_transition(arrangement, "execution", "approved", "Approved for execution.", client)
    documents.append(arrangement)

    # Route survey on the second project: still a draft
    route = create_document(north.id, {
        "code": "LT-NORTH-001",
        "title": "Basic Line Route",
        "type": "technical",
        "discipline": "Civil - CV",
        "nature": "Construction / Survey Diagram - DCT",
        "issuer": "Internal Engineering",
    }, users[UserRole.ADMIN])
    db.session.add(route)
    documents.append(route)

    db.session.commit()
    counts = {
        "projects": len(projects),
        "users": len(users),
        "documents": len(documents),
        "catalog_entries": catalog_entries,
    }
    logger.info("Demo data seeded: %s", counts)
    return counts
