"""
Recuerdos Backend — Memory Request/Response Schemas
====================================================

What:  Pydantic models defining the API contract for memories ("recuerdos").
How:   Python code uses English attribute names (`owner_id`, `title`, ...);
       JSON uses the wire names (`userId`, `titulo`, ...). The aliases below
       are the only place where the two namings meet.
Who:   Route handlers (request bodies, response models), the service layer,
       every Record Store adapter and the client library.

Naming variants accepted on input:
    ┌──────────────┬─────────────────────┬────────────────────────────────────┐
    │ attribute    │ wire (serialized)   │ also accepted                      │
    ├──────────────┼─────────────────────┼────────────────────────────────────┤
    │ owner_id     │ userId              │ user_id                            │
    │ title        │ titulo              │                                    │
    │ description  │ descripcion         │                                    │
    │ location     │ ubicacion           │                                    │
    │ date         │ fecha               │                                    │
    │ image_url    │ imagen              │                                    │
    │ latitude     │ latitud             │                                    │
    │ longitude    │ longitud            │                                    │
    │ created_at   │ fechaCreacion       │ fecha_creacion, createdAt          │
    │ updated_at   │ fechaActualizacion  │ fecha_actualizacion, updatedAt     │
    └──────────────┴─────────────────────┴────────────────────────────────────┘
"""

import datetime as dt
from typing import Any, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from recuerdos import dates

MemoryId = Union[int, str]

# Finite degrees only: NaN/Infinity cannot be written back as JSON
LATITUDE_RANGE = {"ge": -90, "le": 90, "allow_inf_nan": False}
LONGITUDE_RANGE = {"ge": -180, "le": 180, "allow_inf_nan": False}

# Column widths of the `recuerdos` table
MAX_OWNER_LENGTH = 255
MAX_TITLE_LENGTH = 255
MAX_LOCATION_LENGTH = 500
MAX_IMAGE_URL_LENGTH = 2048


def _wire(name: str, *variants: str, **kwargs: Any) -> Any:
    """Field serialized as `name` and accepted as `name`, any variant, or the attribute name."""
    return Field(
        validation_alias=AliasChoices(name, *variants),
        serialization_alias=name,
        **kwargs,
    )


# ══════════════════════════════════════════════════════════════════════════
# Domain Model — one memory as stored and as returned by the API
# ══════════════════════════════════════════════════════════════════════════


class Memory(BaseModel):
    """
    A diary entry owned by one user.

    Invariants checked on construction:
        - `date` is a calendar date (parsed with recuerdos.dates, never via a timestamp)
        - latitude and longitude are both set or both absent

    `created_at`/`updated_at` are always set by local stores; a remote service
    is allowed to omit them.
    """

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: MemoryId = Field(description="Store-assigned identifier (opaque)")
    owner_id: str = _wire("userId", "user_id", description="Owner of the memory")
    title: str = _wire("titulo", description="Title")
    description: Optional[str] = _wire("descripcion", default=None)
    location: str = _wire("ubicacion", description="Free-text place name")
    date: dt.date = _wire("fecha", description="Calendar date (YYYY-MM-DD)")
    image_url: Optional[str] = _wire("imagen", default=None, description="URL of a pre-uploaded photo")
    latitude: Optional[float] = _wire("latitud", default=None, **LATITUDE_RANGE)
    longitude: Optional[float] = _wire("longitud", default=None, **LONGITUDE_RANGE)
    created_at: Optional[dt.datetime] = _wire(
        "fechaCreacion", "fecha_creacion", "createdAt", default=None
    )
    updated_at: Optional[dt.datetime] = _wire(
        "fechaActualizacion", "fecha_actualizacion", "updatedAt", default=None
    )

    @field_validator("date", mode="before")
    @classmethod
    def parse_calendar_date(cls, v: Any) -> Any:
        if isinstance(v, (str, dt.date)):
            return dates.parse_local_date(v)
        return v

    @model_validator(mode="after")
    def check_coordinates_pair(self) -> "Memory":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitud and longitud must be provided together")
        return self

    def to_wire(self) -> dict:
        """JSON-ready dict using wire names."""
        return self.model_dump(mode="json", by_alias=True)


# ══════════════════════════════════════════════════════════════════════════
# Request Models — what clients send
# ══════════════════════════════════════════════════════════════════════════


class MemoryFields(BaseModel):
    """
    Shared, deliberately permissive body for create and update.

    Every field is optional at the schema level: required-field and format
    rules are enforced by MemoryService so that a missing `titulo` produces a
    400 ValidationError naming the field instead of a generic schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    owner_id: Optional[str] = _wire("userId", "user_id", default=None, max_length=MAX_OWNER_LENGTH)
    title: Optional[str] = _wire("titulo", default=None, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = _wire("descripcion", default=None)
    location: Optional[str] = _wire("ubicacion", default=None, max_length=MAX_LOCATION_LENGTH)
    date: Optional[str] = _wire("fecha", default=None)
    image_url: Optional[str] = _wire("imagen", default=None, max_length=MAX_IMAGE_URL_LENGTH)
    latitude: Optional[float] = _wire("latitud", default=None, **LATITUDE_RANGE)
    longitude: Optional[float] = _wire("longitud", default=None, **LONGITUDE_RANGE)

    @field_validator("date", mode="before")
    @classmethod
    def stringify_date(cls, v: Any) -> Any:
        if isinstance(v, dt.datetime):
            raise ValueError("fecha must be a calendar date, not a timestamp")
        if isinstance(v, dt.date):
            return dates.to_date_string(v)
        return v

    def provided(self) -> dict:
        """Fields explicitly present in the request, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class MemoryCreate(MemoryFields):
    """Body of POST /api/recuerdos."""


class MemoryUpdate(MemoryFields):
    """
    Body of PUT /api/recuerdos/{id}.

    Only fields present in the body are changed. Sending `latitud` and
    `longitud` as null clears the coordinates; omitting them keeps them.
    """


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class MemoryListResponse(BaseModel):
    """Returned by GET /api/recuerdos. An owner with no memories gets `[]` and 0."""

    recuerdos: List[Memory] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)


class DeleteResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "recuerdo with ID '7' was not found",
            "request_id": "a1b2c3d4"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str
    store: str = Field(description="Configured store backend")
    store_status: str = Field(alias="storeStatus", description="available or unavailable")
    uptime_seconds: float

    model_config = ConfigDict(populate_by_name=True)
