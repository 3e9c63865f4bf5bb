from typing import Optional, List
from datetime import date
from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

# ids and cents are stored in 32-bit integer columns
MAX_ID = 2**31 - 1
MAX_PRICE_PER_NIGHT = 1_000_000  # dollars
MAX_RESULT_LIMIT = 1000

class UserBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr

class UserCreate(UserBase):
    password: str = Field(..., min_length=1, max_length=255)

class UserResponse(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: int

class UserRecord(UserResponse):
    """Full users row, password included. Not returned over HTTP."""
    password: str

class UserName(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str

class PropertyBase(BaseModel):
    owner_id: int = Field(..., ge=1, le=MAX_ID)
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    thumbnail_photo_url: Optional[str] = Field(None, max_length=255)
    cover_photo_url: Optional[str] = Field(None, max_length=255)
    cost_per_night: int = Field(..., ge=0, le=MAX_ID)  # cents
    parking_spaces: int = Field(0, ge=0, le=MAX_ID)
    number_of_bathrooms: int = Field(0, ge=0, le=MAX_ID)
    number_of_bedrooms: int = Field(0, ge=0, le=MAX_ID)
    country: str = Field(..., min_length=1, max_length=255)
    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=255)
    province: str = Field(..., min_length=1, max_length=255)
    post_code: str = Field(..., min_length=1, max_length=255)
    active: bool = True

class PropertyCreate(PropertyBase):
    pass

class PropertyResponse(PropertyBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    average_rating: Optional[float] = None

class PropertySearch(BaseModel):
    """
    Options for a property search. Every option that is set narrows the
    result; unset options are ignored. Prices are in dollars.
    """
    city: Optional[str] = Field(None, min_length=1)
    owner_id: Optional[int] = Field(None, ge=1, le=MAX_ID)
    minimum_price_per_night: Optional[float] = Field(None, ge=0, le=MAX_PRICE_PER_NIGHT, allow_inf_nan=False)
    maximum_price_per_night: Optional[float] = Field(None, ge=0, le=MAX_PRICE_PER_NIGHT, allow_inf_nan=False)
    minimum_rating: Optional[float] = Field(None, ge=0, le=5, allow_inf_nan=False)

    @model_validator(mode="after")
    def check_price_range(self):
        low, high = self.minimum_price_per_night, self.maximum_price_per_night
        if low is not None and high is not None and low > high:
            raise ValueError("minimum_price_per_night must not exceed maximum_price_per_night")
        return self

class ReservationBase(BaseModel):
    guest_id: int
    property_id: int
    start_date: date
    end_date: date

class GuestReservation(ReservationBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    property: PropertyResponse

class FixtureCounts(BaseModel):
    users: int = 0
    properties: int = 0
