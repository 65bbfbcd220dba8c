"""
Unit and yield transform models.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mealguard.domain.shared.value_objects import Confidence


class UnitKind(str, Enum):
    """Dimension of a quantity unit."""

    WEIGHT = "weight"
    VOLUME = "volume"
    COUNT = "count"


class QuantityUnit(str, Enum):
    """Canonical quantity units."""

    G = "g"
    KG = "kg"
    OZ = "oz"
    LB = "lb"
    ML = "ml"
    L = "l"
    TSP = "tsp"
    TBSP = "tbsp"
    CUP = "cup"
    FL_OZ = "fl_oz"
    PIECE = "piece"
    SLICE = "slice"
    CLOVE = "clove"
    EGG = "egg"
    WHOLE = "whole"
    CAN = "can"
    FILLET = "fillet"
    BREAST = "breast"
    THIGH = "thigh"
    RASHER = "rasher"
    STRIP = "strip"
    SERVING = "serving"
    HEAD = "head"
    BUNCH = "bunch"
    STALK = "stalk"
    SPRIG = "sprig"
    LEAF = "leaf"
    JAR = "jar"
    PACKET = "packet"
    SACHET = "sachet"

    @property
    def kind(self) -> UnitKind:
        if self in _WEIGHT_UNITS:
            return UnitKind.WEIGHT
        if self in _VOLUME_UNITS:
            return UnitKind.VOLUME
        return UnitKind.COUNT


_WEIGHT_UNITS = frozenset({QuantityUnit.G, QuantityUnit.KG, QuantityUnit.OZ, QuantityUnit.LB})
_VOLUME_UNITS = frozenset(
    {
        QuantityUnit.ML,
        QuantityUnit.L,
        QuantityUnit.TSP,
        QuantityUnit.TBSP,
        QuantityUnit.CUP,
        QuantityUnit.FL_OZ,
    }
)


class ConversionMethod(str, Enum):
    """How a quantity was turned into grams."""

    DIRECT = "direct"
    DENSITY = "density"
    COUNT = "count"


class GramConversion(BaseModel):
    """Result of normalising a quantity to grams.

    Example:
        >>> conv = GramConversion(grams=240.0, method=ConversionMethod.DENSITY)
        >>> assert not conv.heuristic
    """

    model_config = ConfigDict(frozen=True)

    grams: float = Field(..., ge=0, description="Weight in grams")
    method: ConversionMethod
    heuristic: bool = Field(default=False, description="True when a default weight was guessed")
    warning: Optional[str] = None


class YieldEntry(BaseModel):
    """Cooked-weight / as-sold-weight ratio for one ingredient family.

    ``typical`` must sit inside ``[min_factor, max_factor]``.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    typical: float = Field(..., gt=0)
    min_factor: float = Field(..., gt=0)
    max_factor: float = Field(..., gt=0)
    confidence: Confidence = Confidence.HIGH

    @model_validator(mode="after")
    def check_band(self) -> YieldEntry:
        if not (self.min_factor <= self.typical <= self.max_factor):
            raise ValueError(
                f"Yield band for {self.name!r} must satisfy min <= typical <= max"
            )
        return self


class YieldResolution(BaseModel):
    """As-sold weight derived from an expressed weight.

    ``grams_as_sold_min``/``grams_as_sold_max`` bound the estimate using the
    yield band (min as-sold comes from the max yield factor).
    """

    model_config = ConfigDict(frozen=True)

    grams_as_sold: float = Field(..., ge=0)
    grams_as_sold_min: float = Field(..., ge=0)
    grams_as_sold_max: float = Field(..., ge=0)
    yield_factor: float = Field(default=1.0, gt=0)
    confidence: Confidence
    yield_key: Optional[str] = None
    error: Optional[str] = None
