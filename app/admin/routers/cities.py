"""Checkout cities and their shipping zones."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.admin.deps import require_admin
from app.api.deps import ok
from app.core.database import get_db
from app.schemas.city import CityCreate, CityResponse, CityUpdate
from app.services import cities as city_service

router = APIRouter(dependencies=[Depends(require_admin)])


def _dump(c) -> dict:
    return CityResponse.model_validate(c).model_dump()


@router.get("")
def cities_list(db: Session = Depends(get_db)):
    return ok([_dump(c) for c in city_service.list_cities(db)])


@router.post("", status_code=201)
def city_create(body: CityCreate, db: Session = Depends(get_db)):
    return ok(_dump(city_service.create_city(db, body)))


@router.patch("/{city_id}")
def city_update(city_id: int, body: CityUpdate, db: Session = Depends(get_db)):
    return ok(_dump(city_service.update_city(db, city_id, body)))


@router.delete("/{city_id}")
def city_delete(city_id: int, db: Session = Depends(get_db)):
    city_service.delete_city(db, city_id)
    return ok()
