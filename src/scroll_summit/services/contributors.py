"""CRUD-style helpers for the contributor registry."""
from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scroll_summit.models.contributor import Contributor
from scroll_summit.services.state_store import normalize_region

__all__ = [
    "get_contributor",
    "find_or_create_contributor",
    "register_contributor",
]

logger = logging.getLogger(__name__)


def get_contributor(db: Session, contributor_id: str) -> Contributor | None:
    """Return a single contributor by primary key."""
    return db.get(Contributor, contributor_id)


def find_or_create_contributor(db: Session, contributor_key: str, region: str) -> Contributor:
    """Return the contributor for `contributor_key`, registering it on first contact.

    An existing contributor keeps the region it was registered with.
    """
    contributor = (
        db.query(Contributor).filter(Contributor.contributor_key == contributor_key).first()
    )
    if contributor is not None:
        return contributor

    contributor = Contributor(contributor_key=contributor_key, region_code=normalize_region(region))
    db.add(contributor)
    try:
        db.commit()
    except IntegrityError:
        # Another connection registered the same key first.
        db.rollback()
        existing = (
            db.query(Contributor).filter(Contributor.contributor_key == contributor_key).one()
        )
        return existing

    db.refresh(contributor)
    logger.info("New contributor registered: %s (%s)", contributor.id, contributor.region_code)
    return contributor


def register_contributor(
    session_factory: Callable[[], Session], contributor_key: str, region: str
) -> tuple[str, str]:
    """Register or look up a contributor in a short-lived session.

    Returns:
        The contributor id and the region it is registered with.
    """
    with session_factory() as db:
        contributor = find_or_create_contributor(db, contributor_key, region)
        return contributor.id, contributor.region_code
