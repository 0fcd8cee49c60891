"""Pydantic models for backend payloads, forms and chart responses."""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SeriesPoint(BaseModel):
    timestamp: int = Field(..., description="Unix timestamp in milliseconds")
    value: Optional[float] = Field(None, description="Numeric value (NaN represented as null)")


class SeriesPayload(BaseModel):
    name: str
    unit: str = ""
    color: Optional[str] = None
    dashed: bool = False
    data: List[SeriesPoint] = Field(default_factory=list)


class SeriesResponse(BaseModel):
    series: List[SeriesPayload]
    meta: dict = Field(default_factory=dict)


class CategorySeries(BaseModel):
    name: str
    color: Optional[str] = None
    values: List[Optional[float]] = Field(default_factory=list)


class CategoryChart(BaseModel):
    categories: List[float] = Field(default_factory=list)
    series: List[CategorySeries] = Field(default_factory=list)


class ChartPoint(BaseModel):
    """Long-format point: one value of one series at one date."""

    date: str
    value: Optional[float]
    series: str
    unit: str = "W"


# --- backend payloads -----------------------------------------------------


class _Payload(BaseModel):
    model_config = ConfigDict(extra="allow", protected_namespaces=())


class Plant(_Payload):
    id: int
    name: str
    latitude: float
    longitude: float
    capacity: float
    model_count: int = 0


class Model(_Payload):
    id: int
    name: str
    type: str = ""
    version: Optional[float] = None
    features: List[str] = Field(default_factory=list)
    plant_name: str = ""
    is_active: bool = False
    file_type: str = ""


class OverviewPoint(_Payload):
    date: str
    value: float
    type: str
    plant: str
    measurement_unit: str = "W"


class MapForecast(_Payload):
    id: int
    name: str
    prediction_time: str
    power_output: float


class PlantMapItem(_Payload):
    id: int
    name: str
    coordinates: Tuple[float, float]
    forecasts: List[MapForecast] = Field(default_factory=list)


class ForecastPoint(_Payload):
    prediction_time: str
    power_output: Optional[float] = None


class ReadingPoint(_Payload):
    timestamp: str
    power_w: Optional[float] = None


class HorizonData(_Payload):
    metric_type: str
    horizon: Any = None
    value: Any = None


class CycleData(_Payload):
    time_of_forecast: str
    metric_type: str
    value: Any = None


class RoleInfo(_Payload):
    id: str
    name: str


class UserResponse(_Payload):
    id: str
    email: str = ""
    name: str = ""
    picture: str = ""
    lastLogin: Optional[str] = None
    roles: List[RoleInfo] = Field(default_factory=list)


class RoleResponse(_Payload):
    id: str
    name: str
    description: str = ""
    permissions: List[str] = Field(default_factory=list)


class PermissionEntry(BaseModel):
    permissionName: str
    description: str

    @field_validator("permissionName", "description")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("This field is required")
        return value


class UploadResult(_Payload):
    success: bool = False
    message: str = ""
    validation_errors: List[str] = Field(default_factory=list)


class PlaygroundFeatures(_Payload):
    model_id: int
    model_name: str = ""
    features: List[str] = Field(default_factory=list)
    plant_id: Optional[int] = None
    plant_name: str = ""


class PlaygroundPrediction(_Payload):
    timestamp: str
    prediction: float


class PlaygroundMetric(_Payload):
    metric_type: str
    value: float


class PlaygroundResponse(UploadResult):
    model_id: Optional[int] = None
    predictions: List[PlaygroundPrediction] = Field(default_factory=list)
    metrics: List[PlaygroundMetric] = Field(default_factory=list)
    input_rows: int = 0


# --- forms ----------------------------------------------------------------


class PlantForm(BaseModel):
    name: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    capacity: float = Field(..., ge=0)

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("This field is required")
        return value


class ModelCreateForm(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_name: str = Field(..., min_length=1)
    model_type: str = Field(..., min_length=1)
    version: float
    plant_id: int
    parameters: List[str] = Field(..., min_length=1)


class ModelUpdateForm(BaseModel):
    features: List[str] = Field(..., min_length=1)
    is_active: bool = False


class CreateUserForm(BaseModel):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    connection: str = Field(..., min_length=1)
    roleIds: List[str] = Field(default_factory=list)


class RoleForm(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    permissions: List[str] = Field(default_factory=list)


class PermissionsForm(BaseModel):
    permissions: List[PermissionEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_names(self) -> "PermissionsForm":
        seen = set()
        for entry in self.permissions:
            if entry.permissionName in seen:
                raise ValueError(f"Duplicate permission name: {entry.permissionName}")
            seen.add(entry.permissionName)
        return self
