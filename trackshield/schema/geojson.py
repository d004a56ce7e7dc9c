from datetime import datetime
from typing import Literal, Self

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.aliases import AliasChoices

# NOTE: Lon, Lat[, Ele] to match common GeoJSON tooling
Coordinates = tuple[float, float] | tuple[float, float, float]


class LineStringGeometry(BaseModel):
    type: Literal["LineString"] = "LineString"
    coordinates: list[Coordinates]

    @field_validator("coordinates", mode="after")
    @classmethod
    def check_length(cls, value: list) -> list:
        if len(value) < 2:
            raise ValueError("A LineString needs at least two coordinates")
        return value


class LineProperties(BaseModel):
    activity_id: str | None = Field(
        default=None,
        serialization_alias="activityId",
        validation_alias=AliasChoices("activityId", "activity_id"),
    )
    coord_times: list[datetime | None] | None = Field(
        default=None,
        serialization_alias="coordTimes",
        validation_alias=AliasChoices("coordTimes", "coord_times"),
    )
    epsilon: float | None = Field(
        default=None, description="Douglas-Peucker tolerance in degrees"
    )
    original_point_count: int | None = Field(
        default=None,
        serialization_alias="originalPointCount",
        validation_alias=AliasChoices("originalPointCount", "original_point_count"),
    )


class LineFeature(BaseModel):
    type: Literal["Feature"] = "Feature"
    geometry: LineStringGeometry | None = None
    properties: LineProperties = Field(default_factory=LineProperties)

    @model_validator(mode="after")
    def validate_array_length(self) -> Self:
        times = self.properties.coord_times
        if (
            self.geometry is not None
            and times is not None
            and len(self.geometry.coordinates) != len(times)
        ):
            raise ValueError(
                "Length of coordinates does not match length of coord_times"
            )
        return self

    def to_json(self) -> str:
        # by_alias=True is required to trigger serialization_alias
        return self.model_dump_json(by_alias=True, exclude_none=True)


class PointGeometry(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float]


class HeatmapProperties(BaseModel):
    intensity: int


class HeatmapFeature(BaseModel):
    type: Literal["Feature"] = "Feature"
    geometry: PointGeometry
    properties: HeatmapProperties


class HeatmapFeatureCollection(BaseModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: list[HeatmapFeature] = Field(default_factory=list)
    max_intensity: int = Field(
        default=1,
        ge=1,
        serialization_alias="maxIntensity",
        validation_alias=AliasChoices("maxIntensity", "max_intensity"),
    )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
