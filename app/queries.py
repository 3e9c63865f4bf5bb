"""
Query gateway between the web layer and the store.

Every operation runs one statement on the session the gateway was built
with. A missing row is a normal result (None or an empty list); a failed
statement raises StoreError chained to the driver error.
"""
import logging
from contextlib import contextmanager
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import models_sqlalchemy as models
import models_pydantic as schemas
from config import settings
from errors import DuplicateEmailError, StoreError, UnknownOwnerError

logger = logging.getLogger(__name__)


def _average_rating():
    return func.avg(models.PropertyReview.rating).label("average_rating")


def property_search_clauses(options: schemas.PropertySearch, minor_units: Optional[int] = None) -> Tuple[list, list]:
    """
    Build the WHERE and HAVING clauses for a property search.

    Each option that is set contributes one predicate and the caller
    AND-combines them. Price bounds are scaled from dollars to the cents
    stored in cost_per_night. The rating bound applies to the per-property
    average, so it lands in HAVING.
    """
    if minor_units is None:
        minor_units = settings.PRICE_MINOR_UNITS
    where = []
    having = []
    if options.city:
        where.append(models.Property.city.contains(options.city, autoescape=True))
    if options.owner_id is not None:
        where.append(models.Property.owner_id == options.owner_id)
    if options.minimum_price_per_night is not None:
        where.append(models.Property.cost_per_night >= int(round(options.minimum_price_per_night * minor_units)))
    if options.maximum_price_per_night is not None:
        where.append(models.Property.cost_per_night <= int(round(options.maximum_price_per_night * minor_units)))
    if options.minimum_rating is not None:
        having.append(func.avg(models.PropertyReview.rating) >= options.minimum_rating)
    return where, having


def _property_response(prop, average_rating=None) -> schemas.PropertyResponse:
    return schemas.PropertyResponse(
        id=prop.id,
        owner_id=prop.owner_id,
        title=prop.title,
        description=prop.description,
        thumbnail_photo_url=prop.thumbnail_photo_url,
        cover_photo_url=prop.cover_photo_url,
        cost_per_night=prop.cost_per_night,
        parking_spaces=prop.parking_spaces,
        number_of_bathrooms=prop.number_of_bathrooms,
        number_of_bedrooms=prop.number_of_bedrooms,
        country=prop.country,
        street=prop.street,
        city=prop.city,
        province=prop.province,
        post_code=prop.post_code,
        active=prop.active,
        # postgres returns Decimal for avg()
        average_rating=float(average_rating) if average_rating is not None else None,
    )


def _resolve_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.DEFAULT_RESULT_LIMIT
    if not 1 <= limit <= schemas.MAX_RESULT_LIMIT:
        raise ValueError(f"limit must be between 1 and {schemas.MAX_RESULT_LIMIT}, got {limit}")
    return limit


class QueryGateway:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _store_call(self, operation: str):
        try:
            yield
        except SQLAlchemyError as exc:
            logger.exception("%s failed", operation)
            self.db.rollback()
            raise StoreError(operation, str(getattr(exc, "orig", None) or exc)) from exc

    # ---------- Users ----------

    def get_user_by_email(self, email: str) -> Optional[schemas.UserRecord]:
        logger.debug("get_user_by_email email=%s", email)
        with self._store_call("get_user_by_email"):
            user = self.db.query(models.User).filter(models.User.email == email).first()
        if user is None:
            return None
        return schemas.UserRecord(id=user.id, name=user.name, email=user.email, password=user.password)

    def get_user_by_id(self, user_id: int) -> Optional[schemas.UserName]:
        logger.debug("get_user_by_id id=%s", user_id)
        with self._store_call("get_user_by_id"):
            row = self.db.query(models.User.name).filter(models.User.id == user_id).first()
        if row is None:
            return None
        return schemas.UserName(name=row.name)

    def add_user(self, user: schemas.UserCreate) -> schemas.UserResponse:
        with self._store_call("add_user"):
            existing = self.db.query(models.User.id).filter(models.User.email == user.email).first()
            if existing:
                raise DuplicateEmailError(user.email)
            db_user = models.User(name=user.name, email=user.email, password=user.password)
            self.db.add(db_user)
            try:
                self.db.commit()
            except IntegrityError as exc:
                # lost a race with a concurrent insert of the same email
                self.db.rollback()
                raise DuplicateEmailError(user.email) from exc
            self.db.refresh(db_user)
        logger.info("Created user id=%s", db_user.id)
        return schemas.UserResponse(id=db_user.id, name=db_user.name, email=db_user.email)

    # ---------- Reservations ----------

    def get_reservations_for_guest(self, guest_id: int, limit: Optional[int] = None) -> List[schemas.GuestReservation]:
        limit = _resolve_limit(limit)
        logger.debug("get_reservations_for_guest guest_id=%s limit=%s", guest_id, limit)
        with self._store_call("get_reservations_for_guest"):
            rows = (
                self.db.query(models.Reservation, models.Property, _average_rating())
                .join(models.Property, models.Reservation.property_id == models.Property.id)
                .outerjoin(models.PropertyReview, models.PropertyReview.property_id == models.Property.id)
                .filter(models.Reservation.guest_id == guest_id)
                .group_by(models.Reservation.id, models.Property.id)
                .order_by(models.Reservation.start_date, models.Reservation.id)
                .limit(limit)
                .all()
            )
        return [
            schemas.GuestReservation(
                id=r.id,
                guest_id=r.guest_id,
                property_id=r.property_id,
                start_date=r.start_date,
                end_date=r.end_date,
                property=_property_response(prop, avg),
            )
            for r, prop, avg in rows
        ]

    # ---------- Properties ----------

    def search_properties(self, options: Optional[schemas.PropertySearch] = None, limit: Optional[int] = None) -> List[schemas.PropertyResponse]:
        limit = _resolve_limit(limit)
        options = options or schemas.PropertySearch()
        where, having = property_search_clauses(options)
        logger.debug("search_properties options=%s limit=%s", options.model_dump(exclude_none=True), limit)
        with self._store_call("search_properties"):
            query = (
                self.db.query(models.Property, _average_rating())
                .outerjoin(models.PropertyReview, models.PropertyReview.property_id == models.Property.id)
                .filter(*where)
                .group_by(models.Property.id)
            )
            if having:
                query = query.having(*having)
            rows = query.order_by(models.Property.cost_per_night, models.Property.id).limit(limit).all()
        return [_property_response(prop, avg) for prop, avg in rows]

    def add_property(self, prop: schemas.PropertyCreate) -> schemas.PropertyResponse:
        with self._store_call("add_property"):
            if self.db.get(models.User, prop.owner_id) is None:
                raise UnknownOwnerError(prop.owner_id)
            db_property = models.Property(**prop.model_dump())
            self.db.add(db_property)
            self.db.commit()
            self.db.refresh(db_property)
        logger.info("Created property id=%s owner_id=%s", db_property.id, db_property.owner_id)
        return _property_response(db_property)
