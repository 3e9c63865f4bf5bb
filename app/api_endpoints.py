import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Depends, Path, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

import models_pydantic as schemas
from config import settings
from database import configure_logging, get_db, init_db
from errors import DuplicateEmailError, StoreError, UnknownOwnerError
from queries import QueryGateway

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Or specify your frontend URL
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": "Store unavailable"})


def get_gateway(db: Session = Depends(get_db)) -> QueryGateway:
    return QueryGateway(db)

# ---------- User Endpoints ----------
@app.post("/users/", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(user: schemas.UserCreate, gateway: QueryGateway = Depends(get_gateway)):
    try:
        return gateway.add_user(user)
    except DuplicateEmailError:
        raise HTTPException(status_code=400, detail="Email already registered")

@app.get("/users/", response_model=schemas.UserResponse)
def get_user_by_email(email: str, gateway: QueryGateway = Depends(get_gateway)):
    user = gateway.get_user_by_email(email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return schemas.UserResponse(id=user.id, name=user.name, email=user.email)

@app.get("/users/{user_id}", response_model=schemas.UserName)
def get_user(user_id: int = Path(..., ge=1, le=schemas.MAX_ID), gateway: QueryGateway = Depends(get_gateway)):
    user = gateway.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user

# ---------- Reservation Endpoints ----------
@app.get("/users/{guest_id}/reservations", response_model=List[schemas.GuestReservation])
def list_guest_reservations(
    guest_id: int = Path(..., ge=1, le=schemas.MAX_ID),
    limit: int = Query(settings.DEFAULT_RESULT_LIMIT, ge=1, le=schemas.MAX_RESULT_LIMIT),
    gateway: QueryGateway = Depends(get_gateway),
):
    return gateway.get_reservations_for_guest(guest_id, limit=limit)

# ---------- Property Endpoints ----------
@app.get("/properties/", response_model=List[schemas.PropertyResponse])
def search_properties(
    city: Optional[str] = None,
    owner_id: Optional[int] = None,
    minimum_price_per_night: Optional[float] = None,
    maximum_price_per_night: Optional[float] = None,
    minimum_rating: Optional[float] = None,
    limit: int = Query(settings.DEFAULT_RESULT_LIMIT, ge=1, le=schemas.MAX_RESULT_LIMIT),
    gateway: QueryGateway = Depends(get_gateway),
):
    try:
        options = schemas.PropertySearch(
            city=city or None,
            owner_id=owner_id,
            minimum_price_per_night=minimum_price_per_night,
            maximum_price_per_night=maximum_price_per_night,
            minimum_rating=minimum_rating,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False, include_input=False),
        )
    return gateway.search_properties(options, limit=limit)

@app.post("/properties/", response_model=schemas.PropertyResponse, status_code=status.HTTP_201_CREATED)
def create_property(property: schemas.PropertyCreate, gateway: QueryGateway = Depends(get_gateway)):
    try:
        return gateway.add_property(property)
    except UnknownOwnerError:
        raise HTTPException(status_code=400, detail="Owner does not exist")
