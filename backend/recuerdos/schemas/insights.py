"""
Recuerdos Backend — Statistics and Calendar Schemas
====================================================

What:  Response models for the aggregate views (profile stats, calendars).
Who:   Returned by routes/insights.py; parsed back by the client library.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from recuerdos.schemas.memory import MemoryId


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LocationCount(_Wire):
    location: str = Field(alias="ubicacion")
    count: int = Field(alias="cantidad")


class MonthCount(_Wire):
    month: str = Field(alias="mes", description="YYYY-MM")
    count: int = Field(alias="cantidad")


class StatsResponse(_Wire):
    """
    What:  Summary counters for the profile page.

    favorite_locations holds the five most frequent places, most frequent first.
    by_month is chronological and only contains months that have memories.
    """

    total: int = Field(default=0, alias="totalRecuerdos")
    this_year: int = Field(default=0, alias="recuerdosEsteAnio")
    this_month: int = Field(default=0, alias="recuerdosEsteMes")
    favorite_locations: List[LocationCount] = Field(default_factory=list, alias="ubicacionesFavoritas")
    by_month: List[MonthCount] = Field(default_factory=list, alias="recuerdosPorMes")


class CalendarMemory(_Wire):
    id: MemoryId
    title: str = Field(alias="titulo")
    location: str = Field(alias="ubicacion")


class CalendarDay(_Wire):
    day: int = Field(alias="dia", ge=1, le=31)
    memories: List[CalendarMemory] = Field(default_factory=list, alias="recuerdos")


class MonthlyCalendarResponse(_Wire):
    """Days of one month that have memories, in ascending order."""

    year: int
    month: int = Field(ge=1, le=12)
    days: List[CalendarDay] = Field(default_factory=list, alias="dias")


class FirstMemory(_Wire):
    id: MemoryId
    title: str = Field(alias="titulo")
    date: str = Field(alias="fecha")


class CalendarMonthSummary(_Wire):
    month: int = Field(alias="mes", ge=1, le=12)
    month_name: str = Field(alias="nombreMes")
    total: int = Field(default=0, alias="totalRecuerdos")
    first_memory: Optional[FirstMemory] = Field(default=None, alias="primerRecuerdo")


class YearlyCalendarResponse(_Wire):
    """Always twelve entries, January first."""

    year: int
    months: List[CalendarMonthSummary] = Field(default_factory=list, alias="meses")
