"""Destination cities offered at checkout, each mapped to a shipping zone."""
import logging
import re

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.errors import Conflict, NotFound, ValidationFailed
from app.models import City
from app.schemas.city import CityCreate, CityUpdate

logger = logging.getLogger(__name__)

DUPLICATE_VALUE = "A city with this value already exists"

_WS_RE = re.compile(r"\s+")


def normalize_city_value(s: str) -> str:
    """'  Cox s  Bazar ' -> 'cox-s-bazar'. Applying it twice changes nothing."""
    return _WS_RE.sub("-", s.strip().lower())


def list_cities(db: Session) -> list[City]:
    return list(db.exec(select(City).order_by(City.sort_order, City.id)).all())


def get_city(db: Session, city_id: int) -> City:
    city = db.get(City, city_id)
    if not city:
        raise NotFound("City not found")
    return city


def _value_taken(db: Session, value: str, exclude_id: int | None = None) -> bool:
    stmt = select(City).where(City.value == value)
    if exclude_id is not None:
        stmt = stmt.where(City.id != exclude_id)
    return db.exec(stmt).first() is not None


def _commit_or_conflict(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(DUPLICATE_VALUE)


def create_city(db: Session, data: CityCreate) -> City:
    name = data.name.strip()
    value = normalize_city_value(data.value or name)
    if not name or not value:
        raise ValidationFailed("City name is required")
    if _value_taken(db, value):
        raise Conflict(DUPLICATE_VALUE)
    sort_order = data.sort_order
    if sort_order is None:
        current_max = db.exec(select(func.max(City.sort_order))).one()
        sort_order = (current_max if current_max is not None else -1) + 1
    city = City(name=name, value=value, shipping_zone=data.shipping_zone, sort_order=sort_order)
    db.add(city)
    _commit_or_conflict(db)
    db.refresh(city)
    logger.info("City created: %s (%s)", city.value, city.shipping_zone)
    return city


def update_city(db: Session, city_id: int, data: CityUpdate) -> City:
    city = get_city(db, city_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "value" in changes:
        changes["value"] = normalize_city_value(changes["value"])
        if not changes["value"]:
            raise ValidationFailed("City value is required")
        if _value_taken(db, changes["value"], exclude_id=city_id):
            raise Conflict(DUPLICATE_VALUE)
    if "name" in changes:
        changes["name"] = changes["name"].strip()
    for field, value in changes.items():
        setattr(city, field, value)
    db.add(city)
    _commit_or_conflict(db)
    db.refresh(city)
    return city


def delete_city(db: Session, city_id: int) -> None:
    city = get_city(db, city_id)
    db.delete(city)
    db.commit()
    logger.info("City deleted: %s", city.value)
