"""Backend data assembly for the console pages.

Every function takes the routed data provider built for the current request
and returns typed payloads ready for templates or JSON endpoints.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from dateutil import parser

from app.api_client import HttpError, as_list
from app.providers import Filter, ListParams, ListResult, Pagination, RoutedDataProvider

from . import charts, dates
from .schemas import (
    CategoryChart,
    ChartPoint,
    CycleData,
    ForecastPoint,
    HorizonData,
    Model,
    ModelCreateForm,
    ModelUpdateForm,
    OverviewPoint,
    PermissionsForm,
    Plant,
    PlantForm,
    PlantMapItem,
    PlaygroundFeatures,
    PlaygroundResponse,
    ReadingPoint,
    RoleForm,
    RoleResponse,
    SeriesResponse,
    UploadResult,
    UserResponse,
)

LOGGER = logging.getLogger(__name__)

PLANT_RESOURCE = "power_plant"
READINGS_SERIES = "Readings"
MAX_UPLOAD_BYTES = 100 * 1024 * 1024

# (filename, content, content type)
Upload = Tuple[str, bytes, str]


def _list_params(page: int, page_size: int, filters: Iterable[Filter] = ()) -> ListParams:
    return ListParams(pagination=Pagination(current=max(page, 1), page_size=page_size), filters=list(filters))


def ensure_csv(filename: str, size: int, limit: Optional[int] = None) -> None:
    """Reject anything that is not a ``.csv`` file (and, optionally, too large)."""
    if not filename or not filename.lower().endswith(".csv"):
        raise ValueError("Only CSV files are accepted")
    if limit is not None and size >= limit:
        raise ValueError(f"File must be smaller than {limit // (1024 * 1024)}MB")


# --- dashboard ------------------------------------------------------------


@dataclass
class DashboardData:
    chart: Optional[SeriesResponse] = None
    chart_error: Optional[HttpError] = None
    map_items: List[PlantMapItem] = field(default_factory=list)
    map_error: Optional[HttpError] = None

    @property
    def has_errors(self) -> bool:
        return self.chart_error is not None or self.map_error is not None


def load_dashboard(provider: RoutedDataProvider) -> DashboardData:
    """Load the overview chart and plant map independently of each other."""
    result = DashboardData()
    try:
        rows = as_list(provider.custom("dashboard/production_data"))
        result.chart = charts.overview_chart([OverviewPoint(**row) for row in rows])
    except HttpError as exc:
        LOGGER.warning("Failed to load chart data: %s", exc.message)
        result.chart_error = exc
    try:
        rows = as_list(provider.custom("power_plant/overview"))
        result.map_items = [PlantMapItem(**row) for row in rows]
    except HttpError as exc:
        LOGGER.warning("Failed to load map data: %s", exc.message)
        result.map_error = exc
    return result


# --- plants ---------------------------------------------------------------


def list_plants(provider: RoutedDataProvider, page: int = 1, page_size: int = 10, q: Optional[str] = None) -> ListResult:
    filters = [Filter(field="q", value=q, operator="contains")] if q else []
    return provider.get_list(PLANT_RESOURCE, _list_params(page, page_size, filters))


def get_plant(provider: RoutedDataProvider, plant_id: Any) -> Plant:
    return Plant(**provider.get_one(PLANT_RESOURCE, plant_id))


def create_plant(provider: RoutedDataProvider, form: PlantForm) -> Dict[str, Any]:
    return provider.create(PLANT_RESOURCE, form.model_dump())


def update_plant(provider: RoutedDataProvider, plant_id: Any, form: PlantForm) -> Dict[str, Any]:
    return provider.update(PLANT_RESOURCE, plant_id, form.model_dump())


def delete_plant(provider: RoutedDataProvider, plant_id: Any) -> Dict[str, Any]:
    return provider.delete_one(PLANT_RESOURCE, plant_id)


def plant_models(provider: RoutedDataProvider, plant_id: Any) -> List[Model]:
    return [Model(**row) for row in as_list(provider.custom(f"power_plant/{plant_id}/models"))]


def upload_readings(provider: RoutedDataProvider, plant_id: Any, upload: Upload) -> UploadResult:
    filename, content, content_type = upload
    ensure_csv(filename, len(content))
    response = provider.client.post(
        f"reading/{plant_id}",
        files={"file": (filename, content, content_type or "text/csv")},
    )
    return UploadResult(**(response or {}))


# --- forecasts and readings -------------------------------------------------


def fetch_readings(
    provider: RoutedDataProvider,
    plant_id: Any,
    start: str,
    end: str,
    label: str = READINGS_SERIES,
) -> List[ChartPoint]:
    rows = as_list(provider.custom(f"reading/{plant_id}", query={"start_date": start, "end_date": end}))
    return [
        ChartPoint(date=point.timestamp, value=point.power_w, series=label)
        for point in (ReadingPoint(**row) for row in rows)
    ]


def guarded_readings(
    provider: RoutedDataProvider,
    plant_id: Any,
    start: str,
    end: str,
    label: str = READINGS_SERIES,
) -> Tuple[List[ChartPoint], Optional[HttpError]]:
    """Readings for a chart overlay; a backend failure leaves the forecasts intact."""
    try:
        return fetch_readings(provider, plant_id, start, end, label), None
    except HttpError as exc:
        LOGGER.warning("Failed to fetch readings for plant %s: %s", plant_id, exc.message)
        return [], exc


def fetch_model_forecast(provider: RoutedDataProvider, model: Model, start: str, end: str) -> List[ChartPoint]:
    """Forecast of one model; a failing model contributes no points."""
    try:
        rows = as_list(provider.custom(f"forecast/{model.id}", query={"start_date": start, "end_date": end}))
    except HttpError as exc:
        LOGGER.warning("Failed to fetch forecast for model %s: %s", model.name, exc.message)
        return []
    return [
        ChartPoint(date=point.prediction_time, value=point.power_output, series=model.name)
        for point in (ForecastPoint(**row) for row in rows)
    ]


@dataclass
class PlantForecasts:
    start: str
    end: str
    models: List[Model]
    points: List[ChartPoint]
    readings: List[ChartPoint] = field(default_factory=list)
    readings_error: Optional[HttpError] = None

    @property
    def all_points(self) -> List[ChartPoint]:
        return [*self.points, *self.readings]


def plant_forecasts(
    provider: RoutedDataProvider,
    plant_id: Any,
    start: Optional[str] = None,
    end: Optional[str] = None,
    *,
    include_readings: bool = False,
    readings_label: str = READINGS_SERIES,
    model_ids: Sequence[int] = (),
    now: Optional[datetime] = None,
) -> PlantForecasts:
    """Forecasts of the plant models over ``start``-``end`` (default: next 72 hours).

    A non-empty ``model_ids`` restricts the fetch to those models; readings are
    unaffected by the selection.
    """
    window_start, window_end = dates.parse_range(start, end, now)
    models = plant_models(provider, plant_id)
    if model_ids:
        selected = set(model_ids)
        models = [model for model in models if model.id in selected]
    points: List[ChartPoint] = []
    for model in models:
        points.extend(fetch_model_forecast(provider, model, window_start, window_end))
    result = PlantForecasts(start=window_start, end=window_end, models=models, points=points)
    if include_readings:
        result.readings, result.readings_error = guarded_readings(
            provider, plant_id, window_start, window_end, readings_label
        )
    return result


def readings_meta(result: Any) -> Dict[str, Any]:
    """``readingsError`` chart metadata when the readings overlay failed."""
    if result.readings_error is None:
        return {}
    return {"readingsError": result.readings_error.message}


def forecast_chart(result: PlantForecasts, readings_label: str = READINGS_SERIES) -> SeriesResponse:
    return charts.build_series(
        result.all_points,
        colors={readings_label: charts.READINGS_COLOR},
        meta={"from": result.start, "to": result.end, **readings_meta(result)},
    )


# --- time of forecast ---------------------------------------------------------


def filter_tofs(tofs: Sequence[str], day_start: Optional[str], day_end: Optional[str]) -> List[str]:
    """Keep TOFs strictly inside ``[day_start 00:00, day_end 23:59:59.999]``."""
    if not day_start or not day_end:
        return list(tofs)
    lower = dates.to_utc(parser.isoparse(day_start).replace(hour=0, minute=0, second=0, microsecond=0))
    upper = dates.to_utc(parser.isoparse(day_end).replace(hour=23, minute=59, second=59, microsecond=999000))
    return [tof for tof in tofs if lower < dates.to_utc(tof) < upper]


def model_tofs(
    provider: RoutedDataProvider,
    model_id: Any,
    day_start: Optional[str] = None,
    day_end: Optional[str] = None,
) -> List[str]:
    """Times of forecast for a model, newest first."""
    tofs = [str(item) for item in as_list(provider.custom(f"forecast/{model_id}/timestamps"))]
    tofs.sort(key=lambda value: dates.to_utc(value), reverse=True)
    return filter_tofs(tofs, day_start, day_end)


def tof_series_name(model_name: str, tof: str) -> str:
    return f"{model_name} ({dates.tof_label(tof)})"


def tof_forecast(provider: RoutedDataProvider, model: Model, tof: str) -> List[ChartPoint]:
    rows = as_list(provider.custom(f"forecast/time_of_forecast/{model.id}", query={"tof": tof}))
    name = tof_series_name(model.name, tof)
    return [
        ChartPoint(date=point.prediction_time, value=point.power_output, series=name)
        for point in (ForecastPoint(**row) for row in rows)
    ]


@dataclass(frozen=True)
class Combination:
    model_id: int
    tof: str

    @property
    def key(self) -> str:
        return f"{self.model_id}-{self.tof}"

    @classmethod
    def parse(cls, raw: str) -> "Combination":
        model_id, _, tof = raw.partition("|")
        if not tof:
            raise ValueError(f"Invalid forecast combination: {raw!r}")
        return cls(model_id=int(model_id), tof=tof)

    def encode(self) -> str:
        return f"{self.model_id}|{self.tof}"


def unique_combinations(raw: Iterable[str]) -> List[Combination]:
    seen: Dict[str, Combination] = {}
    for item in raw:
        combo = Combination.parse(item)
        seen.setdefault(combo.key, combo)
    return list(seen.values())


def readings_window(points: Sequence[ChartPoint]) -> Optional[Tuple[str, str]]:
    """Earliest and latest date covered by ``points`` in API format."""
    moments = [dates.to_utc(point.date) for point in points]
    if not moments:
        return None
    return dates.api_timestamp(min(moments)), dates.api_timestamp(max(moments))


@dataclass
class TofComparison:
    combinations: List[Combination]
    points: List[ChartPoint]
    readings: List[ChartPoint] = field(default_factory=list)
    readings_error: Optional[HttpError] = None

    @property
    def all_points(self) -> List[ChartPoint]:
        return [*self.points, *self.readings]


def compare_tofs(
    provider: RoutedDataProvider,
    plant_id: Any,
    raw_combinations: Iterable[str],
    *,
    include_readings: bool = False,
    readings_label: str = READINGS_SERIES,
) -> TofComparison:
    """Overlay committed model/TOF forecasts, optionally with readings spanning them."""
    combos = unique_combinations(raw_combinations)
    models = {model.id: model for model in plant_models(provider, plant_id)}
    points: List[ChartPoint] = []
    kept: List[Combination] = []
    for combo in combos:
        model = models.get(combo.model_id)
        if model is None:
            LOGGER.warning("Model %s does not belong to plant %s", combo.model_id, plant_id)
            continue
        kept.append(combo)
        points.extend(tof_forecast(provider, model, combo.tof))
    result = TofComparison(combinations=kept, points=points)
    window = readings_window(points)
    if include_readings and window:
        result.readings, result.readings_error = guarded_readings(
            provider, plant_id, window[0], window[1], readings_label
        )
    return result


# --- models -----------------------------------------------------------------


def list_models(
    provider: RoutedDataProvider,
    page: int = 1,
    page_size: int = 10,
    q: Optional[str] = None,
) -> ListResult:
    filters = [Filter(field="q", value=q)] if q else []
    return provider.get_list("models", _list_params(page, page_size, filters))


def get_model(provider: RoutedDataProvider, model_id: Any) -> Model:
    return Model(**provider.get_one("models", model_id))


def weather_params(provider: RoutedDataProvider) -> List[Tuple[str, str]]:
    """Feature choices as ``(value, label)`` pairs."""
    choices: List[Tuple[str, str]] = []
    for item in as_list(provider.custom("models/weather_params")):
        if isinstance(item, dict):
            value = str(item.get("value", item.get("label", "")))
            choices.append((value, str(item.get("label", value))))
        else:
            choices.append((str(item), str(item)))
    return choices


def create_model(provider: RoutedDataProvider, form: ModelCreateForm, upload: Upload) -> Dict[str, Any]:
    filename, content, content_type = upload
    if not filename or not content:
        raise ValueError("A model file is required")
    variables = {
        "file": (filename, content, content_type or "application/octet-stream"),
        **form.model_dump(),
    }
    return provider.create("models", variables)


def update_model(provider: RoutedDataProvider, model_id: Any, form: ModelUpdateForm) -> Dict[str, Any]:
    return provider.update("models", model_id, form.model_dump())


def delete_model(provider: RoutedDataProvider, model_id: Any) -> Dict[str, Any]:
    return provider.delete_one("models", model_id)


def horizon_metrics(provider: RoutedDataProvider, model_id: Any) -> CategoryChart:
    rows = as_list(provider.custom(f"metric/horizon/{model_id}"))
    return charts.horizon_chart(HorizonData(**row) for row in rows)


def cycle_metrics(
    provider: RoutedDataProvider,
    model_id: Any,
    start_day: Optional[str] = None,
    end_day: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SeriesResponse:
    if not start_day or not end_day:
        start_day, end_day = default_cycle_days(now)
    rows = as_list(
        provider.custom(f"metric/cycle/{model_id}", query={"start_date": start_day, "end_date": end_day})
    )
    points = charts.cycle_points(CycleData(**row) for row in rows)
    return charts.build_series(points, meta={"from": start_day, "to": end_day})


def playground_features(provider: RoutedDataProvider, model_id: Any) -> PlaygroundFeatures:
    return PlaygroundFeatures(**(provider.custom(f"playground/model/{model_id}/features") or {}))


def run_playground(provider: RoutedDataProvider, model_id: Any, upload: Upload) -> PlaygroundResponse:
    filename, content, content_type = upload
    ensure_csv(filename, len(content), limit=MAX_UPLOAD_BYTES)
    response = provider.client.post(
        f"playground/predict/{model_id}",
        files={"file": (filename, content, content_type or "text/csv")},
    )
    return PlaygroundResponse(**(response or {}))


# --- users, roles, permissions ---------------------------------------------


def list_users(provider: RoutedDataProvider, page: int = 1, page_size: int = 10) -> Tuple[List[UserResponse], int]:
    result = provider.get_list("users", _list_params(page, page_size))
    users = [UserResponse(**row) for row in result.data]
    for user in users:
        user.lastLogin = dates.format_last_login(user.lastLogin)
    return users, result.total


def get_user(provider: RoutedDataProvider, user_id: str) -> UserResponse:
    return UserResponse(**provider.get_one("users", user_id))


def create_user(provider: RoutedDataProvider, email: str, connection: str, role_ids: Sequence[str]) -> str:
    """Create an account and return the password-setup ticket URL."""
    created = provider.create("users", {"email": email, "connection": connection, "roleIds": list(role_ids)})
    return str(created.get("ticketUrl", ""))


def update_user_roles(provider: RoutedDataProvider, user_id: str, role_ids: Sequence[str]) -> Dict[str, Any]:
    return provider.update("users", user_id, {"roleIds": list(role_ids)})


def delete_user(provider: RoutedDataProvider, user_id: str) -> Dict[str, Any]:
    return provider.delete_one("users", user_id)


def list_roles(provider: RoutedDataProvider, page: int = 1, page_size: int = 10) -> Tuple[List[RoleResponse], int]:
    result = provider.get_list("roles", _list_params(page, page_size))
    return [RoleResponse(**row) for row in result.data], result.total


def all_roles(provider: RoutedDataProvider) -> List[RoleResponse]:
    roles, _ = list_roles(provider, page=1, page_size=100)
    return roles


def get_role(provider: RoutedDataProvider, role_id: str) -> RoleResponse:
    return RoleResponse(**provider.get_one("roles", role_id))


def create_role(provider: RoutedDataProvider, form: RoleForm) -> RoleResponse:
    return RoleResponse(**provider.create("roles", form.model_dump()))


def update_role(provider: RoutedDataProvider, role_id: str, form: RoleForm) -> RoleResponse:
    return RoleResponse(**provider.update("roles", role_id, form.model_dump()))


def delete_role(provider: RoutedDataProvider, role_id: str) -> Dict[str, Any]:
    return provider.delete_one("roles", role_id)


def list_permissions(provider: RoutedDataProvider) -> List[Dict[str, Any]]:
    params = ListParams(pagination=Pagination(mode="off"))
    return provider.get_list("permissions", params).data


def save_permissions(provider: RoutedDataProvider, form: PermissionsForm) -> Dict[str, Any]:
    return provider.update("permissions", "permissions", form.model_dump())


# --- search -------------------------------------------------------------------


def search(provider: RoutedDataProvider, q: str, limit: int = 5) -> Dict[str, List[Dict[str, Any]]]:
    """Plants and models matching ``q``; a failing resource yields no hits."""
    hits: Dict[str, List[Dict[str, Any]]] = {"plants": [], "models": []}
    if not q.strip():
        return hits
    try:
        hits["plants"] = list_plants(provider, 1, limit, q=q).data
    except HttpError as exc:
        LOGGER.warning("Plant search failed: %s", exc.message)
    try:
        hits["models"] = list_models(provider, 1, limit, q=q).data
    except HttpError as exc:
        LOGGER.warning("Model search failed: %s", exc.message)
    return hits


def default_cycle_days(now: Optional[datetime] = None) -> Tuple[str, str]:
    start, end = dates.current_week_range(now)
    return dates.iso_day(start), dates.iso_day(end)

