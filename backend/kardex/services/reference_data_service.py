# Overview: Service-layer operations for reference data; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Location, Uom


# (name, abbreviation)
DEFAULT_UOMS = (
    ("Pieza", "pz"),
    ("Kilogramo", "kg"),
    ("Litro", "lt"),
    ("Caja", "cja"),
    ("Paquete", "paq"),
    ("Licencia Digital", "key"),
)

# (name, type, is_virtual)
DEFAULT_LOCATIONS = (
    ("Almacén General", "warehouse", False),
    ("Tienda Principal", "store", False),
    ("Exhibición", "display", False),
    ("Mermas/Desperdicio", "waste", False),
    ("Bóveda Digital", "digital", True),
)


def seed_reference_data() -> dict:
    """
    Create the default units of measure and locations.

    Idempotent: rows are matched by abbreviation (uoms) and name (locations),
    so re-running never duplicates or edits existing data.
    """
    created_uoms = 0
    for name, abbreviation in DEFAULT_UOMS:
        if db.session.query(Uom).filter_by(abbreviation=abbreviation).first() is None:
            db.session.add(Uom(name=name, abbreviation=abbreviation))
            created_uoms += 1

    created_locations = 0
    for name, location_type, is_virtual in DEFAULT_LOCATIONS:
        if db.session.query(Location).filter_by(name=name).first() is None:
            db.session.add(Location(name=name, type=location_type, is_virtual=is_virtual))
            created_locations += 1

    db.session.commit()
    return {"uoms": created_uoms, "locations": created_locations}
