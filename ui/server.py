"""FastAPI application serving the solar forecast admin console."""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import urlencode

import requests
from fastapi import APIRouter, Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from uvicorn import Config, Server

from app import settings
from app.access_control import can
from app.api_client import HttpError
from app.auth import AuthProvider
from app.providers import RoutedDataProvider, create_data_provider

from . import STATIC_DIR, TEMPLATES_DIR, charts, data_access, dates
from .i18n import SUPPORTED, resolve_lang, translator
from .schemas import (
    ChartPoint,
    CreateUserForm,
    ModelCreateForm,
    ModelUpdateForm,
    PermissionEntry,
    PermissionsForm,
    PlantForm,
    RoleForm,
)

LOGGER = logging.getLogger(__name__)

PAGE_SIZE = 10

jinja_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html", "xml"]),
)
jinja_env.filters["last_login"] = dates.format_last_login
jinja_env.filters["display_date"] = dates.display
jinja_env.filters["tof_label"] = dates.tof_label

router = APIRouter()


class LoginRequired(Exception):
    """Raised by the request context when no access token is available."""


@dataclass
class ConsoleState:
    config: settings.ConsoleConfig
    auth: AuthProvider
    session: requests.Session


@lru_cache(maxsize=1)
def get_console_state() -> ConsoleState:
    config = settings.load_console_config()
    session = requests.Session()
    return ConsoleState(config=config, auth=AuthProvider(config.auth, session=session), session=session)


@dataclass
class ConsoleContext:
    request: Request
    provider: RoutedDataProvider
    lang: str
    t: Callable[..., str]
    permissions: List[str] = field(default_factory=list)
    identity: Optional[Dict[str, Any]] = None

    def can(self, resource: str, action: str) -> bool:
        return can(resource, action, self.permissions)

    def require(self, resource: str, action: str) -> None:
        if not self.can(resource, action):
            raise HTTPException(status_code=403, detail=self.t("errors.forbidden", "You are not allowed to do this"))


def _build_context(request: Request, state: ConsoleState, *, public: bool = False) -> ConsoleContext:
    token = request.cookies.get(settings.TOKEN_COOKIE)
    lang = resolve_lang(
        request.query_params.get("lang") or request.cookies.get(settings.LANG_COOKIE),
        state.config.ui.default_lang,
    )
    if not public:
        check = state.auth.check(request.url.path, token)
        if not check.authenticated:
            raise LoginRequired()
    provider = create_data_provider(
        state.config.api.url,
        state.auth,
        request_token=token,
        session=state.session,
        timeout=state.config.api.timeout_s,
        anonymous=public,
    )
    ctx = ConsoleContext(request=request, provider=provider, lang=lang, t=translator(lang))
    if not public:
        ctx.permissions = state.auth.get_permissions(token)
        ctx.identity = state.auth.get_identity(token)
    return ctx


def console_context(request: Request, state: ConsoleState = Depends(get_console_state)) -> ConsoleContext:
    return _build_context(request, state)


def public_context(request: Request, state: ConsoleState = Depends(get_console_state)) -> ConsoleContext:
    return _build_context(request, state, public=True)


def render_template(name: str, ctx: Optional[ConsoleContext] = None, status_code: int = 200, **context) -> HTMLResponse:
    template = jinja_env.get_template(name)
    if ctx is not None:
        context.setdefault("request", ctx.request)
        context.update(t=ctx.t, lang=ctx.lang, languages=SUPPORTED, can=ctx.can, identity=ctx.identity)
    return HTMLResponse(template.render(**context), status_code=status_code)


def redirect(url: str, **params: Any) -> RedirectResponse:
    query = {key: value for key, value in params.items() if value not in (None, "")}
    target = f"{url}?{urlencode(query)}" if query else url
    return RedirectResponse(url=target, status_code=303)


def form_errors(exc: ValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
        message = error.get("msg", "Invalid value")
        errors.setdefault(location, message.removeprefix("Value error, "))
    return errors


def page_count(total: int, page_size: int = PAGE_SIZE) -> int:
    return max(1, -(-total // page_size))


async def read_upload(upload: Optional[UploadFile]) -> data_access.Upload:
    if upload is None or not upload.filename:
        return ("", b"", "")
    content = await upload.read()
    return (upload.filename, content, upload.content_type or "")


# --- auth ---------------------------------------------------------------------


@router.get("/", include_in_schema=False)
def root_redirect() -> RedirectResponse:
    return RedirectResponse(url="/dashboard")


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request, ctx: ConsoleContext = Depends(public_context)) -> HTMLResponse:
    return render_template("login.html", ctx, error=None)


@router.post("/login")
def login_submit(
    request: Request,
    token: str = Form(""),
    ctx: ConsoleContext = Depends(public_context),
    state: ConsoleState = Depends(get_console_state),
) -> Response:
    token = token.strip()
    if not token:
        return render_template("login.html", ctx, status_code=400, error=ctx.t("login.tokenRequired", "A token is required"))
    response = RedirectResponse(url="/dashboard", status_code=303)
    response.set_cookie(
        settings.TOKEN_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        secure=state.config.ui.secure_cookies,
    )
    LOGGER.info("Operator signed in")
    return response


@router.get("/logout")
def logout() -> RedirectResponse:
    response = RedirectResponse(url="/login", status_code=303)
    response.delete_cookie(settings.TOKEN_COOKIE)
    return response


@router.get("/lang/{lang}")
def switch_language(lang: str, request: Request) -> RedirectResponse:
    target = request.headers.get("referer") or "/dashboard"
    response = RedirectResponse(url=target, status_code=303)
    response.set_cookie(settings.LANG_COOKIE, resolve_lang(lang), samesite="lax")
    return response


# --- dashboard and search -----------------------------------------------------


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    data = data_access.load_dashboard(ctx.provider)
    return render_template(
        "dashboard.html",
        ctx,
        chart=data.chart.model_dump() if data.chart else None,
        chart_error=data.chart_error,
        map_items=[item.model_dump() for item in data.map_items],
        map_error=data.map_error,
    )


@router.get("/search", response_class=HTMLResponse)
def search(q: str = Query(""), ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    hits = data_access.search(ctx.provider, q)
    return render_template("search.html", ctx, q=q, hits=hits)


# --- plants -------------------------------------------------------------------


@router.get("/plants", response_class=HTMLResponse)
def plants_list(
    page: int = Query(1, ge=1),
    q: Optional[str] = Query(None),
    ctx: ConsoleContext = Depends(console_context),
) -> HTMLResponse:
    result = data_access.list_plants(ctx.provider, page, PAGE_SIZE, q=q)
    return render_template(
        "plants/list.html",
        ctx,
        plants=result.data,
        total=result.total,
        page=page,
        pages=page_count(result.total),
        q=q or "",
    )


@router.get("/plants/create", response_class=HTMLResponse)
def plants_create_form(ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    return render_template("plants/form.html", ctx, plant={}, errors={}, action="/plants/create")


@router.post("/plants/create")
def plants_create(
    name: str = Form(""),
    latitude: str = Form(""),
    longitude: str = Form(""),
    capacity: str = Form(""),
    ctx: ConsoleContext = Depends(console_context),
) -> Response:
    raw = {"name": name, "latitude": latitude, "longitude": longitude, "capacity": capacity}
    try:
        form = PlantForm(**raw)
    except ValidationError as exc:
        return render_template("plants/form.html", ctx, status_code=422, plant=raw, errors=form_errors(exc), action="/plants/create")
    created = data_access.create_plant(ctx.provider, form)
    LOGGER.info("Created plant %s", form.name)
    if created.get("id") is not None:
        return redirect(f"/plants/show/{created['id']}")
    return redirect("/plants")


@router.get("/plants/{plant_id}/edit", response_class=HTMLResponse)
def plants_edit_form(plant_id: int, ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    plant = data_access.get_plant(ctx.provider, plant_id)
    return render_template("plants/form.html", ctx, plant=plant.model_dump(), errors={}, action=f"/plants/{plant_id}/edit")


@router.post("/plants/{plant_id}/edit")
def plants_edit(
    plant_id: int,
    name: str = Form(""),
    latitude: str = Form(""),
    longitude: str = Form(""),
    capacity: str = Form(""),
    ctx: ConsoleContext = Depends(console_context),
) -> Response:
    raw = {"id": plant_id, "name": name, "latitude": latitude, "longitude": longitude, "capacity": capacity}
    try:
        form = PlantForm(**raw)
    except ValidationError as exc:
        return render_template(
            "plants/form.html",
            ctx,
            status_code=422,
            plant=raw,
            errors=form_errors(exc),
            action=f"/plants/{plant_id}/edit",
        )
    data_access.update_plant(ctx.provider, plant_id, form)
    return redirect(f"/plants/show/{plant_id}")


@router.post("/plants/{plant_id}/delete")
def plants_delete(plant_id: int, ctx: ConsoleContext = Depends(console_context)) -> RedirectResponse:
    data_access.delete_plant(ctx.provider, plant_id)
    LOGGER.info("Deleted plant %s", plant_id)
    return redirect("/plants")


@router.get("/plants/show/{plant_id}", response_class=HTMLResponse)
def plants_show(
    plant_id: int,
    tab: str = Query("forecasts"),
    model_id: Optional[int] = Query(None),
    day_start: Optional[str] = Query(None),
    day_end: Optional[str] = Query(None),
    combo: List[str] = Query([]),
    ctx: ConsoleContext = Depends(console_context),
) -> HTMLResponse:
    plant = data_access.get_plant(ctx.provider, plant_id)
    models = data_access.plant_models(ctx.provider, plant_id)
    tofs: List[str] = []
    if tab == "tof" and model_id is not None:
        tofs = data_access.model_tofs(ctx.provider, model_id, day_start, day_end)
    combinations = data_access.unique_combinations(combo)
    return render_template(
        "plants/show.html",
        ctx,
        plant=plant.model_dump(),
        models=[model.model_dump() for model in models],
        tab=tab,
        model_id=model_id,
        day_start=day_start or "",
        day_end=day_end or "",
        tofs=tofs,
        combinations=combinations,
        upload_result=None,
        upload_error=None,
    )


@router.post("/plants/{plant_id}/readings", response_class=HTMLResponse)
async def plants_upload_readings(
    plant_id: int,
    file: Optional[UploadFile] = File(None),
    ctx: ConsoleContext = Depends(console_context),
) -> HTMLResponse:
    upload = await read_upload(file)
    return await run_in_threadpool(_upload_readings_page, ctx, plant_id, upload)


def _upload_readings_page(ctx: ConsoleContext, plant_id: int, upload: data_access.Upload) -> HTMLResponse:
    result = None
    error = None
    try:
        result = data_access.upload_readings(ctx.provider, plant_id, upload)
    except ValueError as exc:
        error = ctx.t("plants.uploadReadings.fileTypeError", str(exc))
    plant = data_access.get_plant(ctx.provider, plant_id)
    models = data_access.plant_models(ctx.provider, plant_id)
    return render_template(
        "plants/show.html",
        ctx,
        status_code=400 if error else 200,
        plant=plant.model_dump(),
        models=[model.model_dump() for model in models],
        tab="readings",
        model_id=None,
        day_start="",
        day_end="",
        tofs=[],
        combinations=[],
        upload_result=result,
        upload_error=error,
    )


# --- public forecast page -----------------------------------------------------


@router.get("/forecast/{plant_id}", response_class=HTMLResponse)
def public_forecast(plant_id: int, ctx: ConsoleContext = Depends(public_context)) -> HTMLResponse:
    result = data_access.plant_forecasts(ctx.provider, plant_id)
    chart = data_access.forecast_chart(result)
    return render_template("forecast_public.html", ctx, plant_id=plant_id, chart=chart.model_dump())


# --- models -------------------------------------------------------------------


@router.get("/models", response_class=HTMLResponse)
def models_list(
    page: int = Query(1, ge=1),
    q: Optional[str] = Query(None),
    ctx: ConsoleContext = Depends(console_context),
) -> HTMLResponse:
    result = data_access.list_models(ctx.provider, page, PAGE_SIZE, q=q)
    return render_template(
        "models/list.html",
        ctx,
        models=result.data,
        total=result.total,
        page=page,
        pages=page_count(result.total),
        q=q or "",
    )


def _model_create_page(ctx: ConsoleContext, values: Dict[str, Any], errors: Dict[str, str], status_code: int = 200) -> HTMLResponse:
    plants = data_access.list_plants(ctx.provider, 1, 100).data
    return render_template(
        "models/create.html",
        ctx,
        status_code=status_code,
        values=values,
        errors=errors,
        plants=plants,
        params=data_access.weather_params(ctx.provider),
    )


@router.get("/models/create", response_class=HTMLResponse)
def models_create_form(ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    return _model_create_page(ctx, {"parameters": []}, {})


@router.post("/models/create")
async def models_create(
    model_name: str = Form(""),
    model_type: str = Form(""),
    version: str = Form(""),
    plant_id: str = Form(""),
    parameters: List[str] = Form([]),
    file: Optional[UploadFile] = File(None),
    ctx: ConsoleContext = Depends(console_context),
) -> Response:
    raw = {
        "model_name": model_name,
        "model_type": model_type,
        "version": version,
        "plant_id": plant_id,
        "parameters": parameters,
    }
    upload = await read_upload(file)
    return await run_in_threadpool(_create_model, ctx, raw, upload)


def _create_model(ctx: ConsoleContext, raw: Dict[str, Any], upload: data_access.Upload) -> Response:
    try:
        form = ModelCreateForm(**raw)
    except ValidationError as exc:
        return _model_create_page(ctx, raw, form_errors(exc), status_code=422)
    try:
        created = data_access.create_model(ctx.provider, form, upload)
    except ValueError as exc:
        return _model_create_page(ctx, raw, {"file": str(exc)}, status_code=422)
    if created.get("id") is not None:
        return redirect(f"/models/show/{created['id']}")
    return redirect("/models")


@router.get("/models/edit/{model_id}", response_class=HTMLResponse)
def models_edit_form(model_id: int, ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    model = data_access.get_model(ctx.provider, model_id)
    return render_template(
        "models/edit.html",
        ctx,
        model=model.model_dump(),
        params=data_access.weather_params(ctx.provider),
        errors={},
    )


@router.post("/models/edit/{model_id}")
def models_edit(
    model_id: int,
    features: List[str] = Form([]),
    is_active: bool = Form(False),
    ctx: ConsoleContext = Depends(console_context),
) -> Response:
    try:
        form = ModelUpdateForm(features=features, is_active=is_active)
    except ValidationError as exc:
        model = data_access.get_model(ctx.provider, model_id).model_dump()
        model.update(features=features, is_active=is_active)
        return render_template(
            "models/edit.html",
            ctx,
            status_code=422,
            model=model,
            params=data_access.weather_params(ctx.provider),
            errors=form_errors(exc),
        )
    data_access.update_model(ctx.provider, model_id, form)
    return redirect(f"/models/show/{model_id}")


@router.post("/models/{model_id}/delete")
def models_delete(model_id: int, ctx: ConsoleContext = Depends(console_context)) -> RedirectResponse:
    data_access.delete_model(ctx.provider, model_id)
    return redirect("/models")


@router.get("/models/show/{model_id}", response_class=HTMLResponse)
def models_show(
    model_id: int,
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    ctx: ConsoleContext = Depends(console_context),
) -> HTMLResponse:
    model = data_access.get_model(ctx.provider, model_id)
    default_start, default_end = data_access.default_cycle_days()
    return render_template(
        "models/show.html",
        ctx,
        model=model.model_dump(),
        start_date=start_date or default_start,
        end_date=end_date or default_end,
    )


@router.get("/models/playground/{model_id}", response_class=HTMLResponse)
def models_playground(model_id: int, ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    model = data_access.get_model(ctx.provider, model_id)
    features = None
    features_error = None
    try:
        features = data_access.playground_features(ctx.provider, model_id)
    except (HttpError, ValidationError) as exc:
        LOGGER.warning("Failed to load playground features for model %s: %s", model_id, exc)
        features_error = ctx.t("models.playground.failedToLoadFeatures", "Failed to load model features")
    return render_template(
        "models/playground.html",
        ctx,
        model=model.model_dump(),
        features=features,
        features_error=features_error,
        result=None,
        errors=[],
    )


@router.post("/models/playground/{model_id}", response_class=HTMLResponse)
async def models_playground_run(
    model_id: int,
    file: Optional[UploadFile] = File(None),
    ctx: ConsoleContext = Depends(console_context),
) -> HTMLResponse:
    upload = await read_upload(file)
    return await run_in_threadpool(_playground_run_page, ctx, model_id, upload)


def _playground_run_page(ctx: ConsoleContext, model_id: int, upload: data_access.Upload) -> HTMLResponse:
    model = data_access.get_model(ctx.provider, model_id)
    features = data_access.playground_features(ctx.provider, model_id)
    try:
        result = data_access.run_playground(ctx.provider, model_id, upload)
    except ValueError as exc:
        return render_template(
            "models/playground.html",
            ctx,
            status_code=400,
            model=model.model_dump(),
            features=features,
            features_error=None,
            result=None,
            errors=[str(exc)],
        )
    chart = charts.build_series(
        [
            ChartPoint(date=p.timestamp, value=p.prediction, series=ctx.t("models.playground.prediction", "Prediction"))
            for p in result.predictions
        ]
    )
    return render_template(
        "models/playground.html",
        ctx,
        model=model.model_dump(),
        features=features,
        features_error=None,
        result=result,
        chart=chart.model_dump(),
        errors=result.validation_errors,
    )


# --- users --------------------------------------------------------------------


@router.get("/users", response_class=HTMLResponse)
def users_list(page: int = Query(1, ge=1), ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    ctx.require("users", "list")
    users, total = data_access.list_users(ctx.provider, page, PAGE_SIZE)
    roles = data_access.all_roles(ctx.provider) if ctx.can("users", "create") else []
    return render_template(
        "users/list.html",
        ctx,
        users=users,
        roles=roles,
        total=total,
        page=page,
        pages=page_count(total),
        ticket_url=None,
        errors={},
    )


@router.post("/users/create", response_class=HTMLResponse)
def users_create(
    email: str = Form(""),
    connection: str = Form(""),
    roleIds: List[str] = Form([]),
    ctx: ConsoleContext = Depends(console_context),
) -> HTMLResponse:
    ctx.require("users", "create")
    errors: Dict[str, str] = {}
    ticket_url = None
    try:
        form = CreateUserForm(email=email, connection=connection, roleIds=roleIds)
    except ValidationError as exc:
        errors = form_errors(exc)
    else:
        ticket_url = data_access.create_user(ctx.provider, form.email, form.connection, form.roleIds)
        LOGGER.info("Created user %s", form.email)
    users, total = data_access.list_users(ctx.provider, 1, PAGE_SIZE)
    return render_template(
        "users/list.html",
        ctx,
        status_code=422 if errors else 200,
        users=users,
        roles=data_access.all_roles(ctx.provider),
        total=total,
        page=1,
        pages=page_count(total),
        ticket_url=ticket_url,
        errors=errors,
    )


@router.get("/users/edit/{user_id}", response_class=HTMLResponse)
def users_edit_form(user_id: str, ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    ctx.require("users", "edit")
    user = data_access.get_user(ctx.provider, user_id)
    return render_template(
        "users/edit.html",
        ctx,
        user=user,
        roles=data_access.all_roles(ctx.provider),
        selected=[role.id for role in user.roles],
    )


@router.post("/users/edit/{user_id}")
def users_edit(
    user_id: str,
    roleIds: List[str] = Form([]),
    ctx: ConsoleContext = Depends(console_context),
) -> RedirectResponse:
    ctx.require("users", "edit")
    data_access.update_user_roles(ctx.provider, user_id, roleIds)
    return redirect("/users")


@router.post("/users/{user_id}/delete")
def users_delete(user_id: str, ctx: ConsoleContext = Depends(console_context)) -> RedirectResponse:
    ctx.require("users", "delete")
    data_access.delete_user(ctx.provider, user_id)
    LOGGER.info("Deleted user %s", user_id)
    return redirect("/users")


# --- roles --------------------------------------------------------------------


@router.get("/roles", response_class=HTMLResponse)
def roles_list(page: int = Query(1, ge=1), ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    ctx.require("roles", "list")
    roles, total = data_access.list_roles(ctx.provider, page, PAGE_SIZE)
    return render_template("roles/list.html", ctx, roles=roles, total=total, page=page, pages=page_count(total))


def _permission_names(ctx: ConsoleContext) -> List[str]:
    return [str(item.get("permissionName")) for item in data_access.list_permissions(ctx.provider)]


@router.get("/roles/create", response_class=HTMLResponse)
def roles_create_form(ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    ctx.require("roles", "create")
    return render_template("roles/form.html", ctx, role={}, errors={}, action="/roles/create", permissions=None)


@router.post("/roles/create")
def roles_create(
    name: str = Form(""),
    description: str = Form(""),
    ctx: ConsoleContext = Depends(console_context),
) -> Response:
    ctx.require("roles", "create")
    raw = {"name": name, "description": description}
    try:
        form = RoleForm(**raw)
    except ValidationError as exc:
        return render_template("roles/form.html", ctx, status_code=422, role=raw, errors=form_errors(exc), action="/roles/create", permissions=None)
    role = data_access.create_role(ctx.provider, form)
    return redirect(f"/roles/show/{role.id}")


@router.get("/roles/edit/{role_id}", response_class=HTMLResponse)
def roles_edit_form(role_id: str, ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    ctx.require("roles", "edit")
    role = data_access.get_role(ctx.provider, role_id)
    return render_template(
        "roles/form.html",
        ctx,
        role=role.model_dump(),
        errors={},
        action=f"/roles/edit/{role_id}",
        permissions=_permission_names(ctx),
    )


@router.post("/roles/edit/{role_id}")
def roles_edit(
    role_id: str,
    name: str = Form(""),
    description: str = Form(""),
    permissions: List[str] = Form([]),
    ctx: ConsoleContext = Depends(console_context),
) -> Response:
    ctx.require("roles", "edit")
    raw = {"id": role_id, "name": name, "description": description, "permissions": permissions}
    try:
        form = RoleForm(**raw)
    except ValidationError as exc:
        return render_template(
            "roles/form.html",
            ctx,
            status_code=422,
            role=raw,
            errors=form_errors(exc),
            action=f"/roles/edit/{role_id}",
            permissions=_permission_names(ctx),
        )
    data_access.update_role(ctx.provider, role_id, form)
    return redirect(f"/roles/show/{role_id}")


@router.get("/roles/show/{role_id}", response_class=HTMLResponse)
def roles_show(role_id: str, ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    ctx.require("roles", "show")
    role = data_access.get_role(ctx.provider, role_id)
    return render_template("roles/show.html", ctx, role=role)


@router.post("/roles/{role_id}/delete")
def roles_delete(role_id: str, ctx: ConsoleContext = Depends(console_context)) -> RedirectResponse:
    ctx.require("roles", "delete")
    data_access.delete_role(ctx.provider, role_id)
    return redirect("/roles")


# --- permissions --------------------------------------------------------------


@router.get("/permissions", response_class=HTMLResponse)
def permissions_manager(saved: bool = Query(False), ctx: ConsoleContext = Depends(console_context)) -> HTMLResponse:
    ctx.require("permissions", "list")
    permissions = data_access.list_permissions(ctx.provider)
    return render_template("permissions/manager.html", ctx, permissions=permissions, errors={}, saved=saved)


@router.post("/permissions")
def permissions_save(
    permissionName: List[str] = Form([]),
    description: List[str] = Form([]),
    ctx: ConsoleContext = Depends(console_context),
) -> Response:
    ctx.require("permissions", "update")
    raw = [
        {"permissionName": name, "description": text}
        for name, text in zip(permissionName, description)
    ]
    try:
        form = PermissionsForm(permissions=[PermissionEntry(**entry) for entry in raw])
    except ValidationError as exc:
        return render_template("permissions/manager.html", ctx, status_code=422, permissions=raw, errors=form_errors(exc), saved=False)
    data_access.save_permissions(ctx.provider, form)
    return redirect("/permissions", saved="1")


# --- JSON endpoints -----------------------------------------------------------


def _plant_forecasts(
    ctx: ConsoleContext,
    plant_id: int,
    start: Optional[str],
    end: Optional[str],
    readings: bool,
    model_ids: Sequence[int] = (),
):
    label = ctx.t("plants.readingsCapitalized", data_access.READINGS_SERIES)
    try:
        result = data_access.plant_forecasts(
            ctx.provider,
            plant_id,
            start,
            end,
            include_readings=readings,
            readings_label=label,
            model_ids=model_ids,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=ctx.t("chart.endDateMustBeAfterStart", str(exc))) from exc
    return result, label


@router.get("/api/plants/{plant_id}/forecasts", response_class=JSONResponse)
def api_plant_forecasts(
    plant_id: int,
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    readings: bool = Query(False),
    model: List[int] = Query([]),
    ctx: ConsoleContext = Depends(public_context),
) -> JSONResponse:
    result, label = _plant_forecasts(ctx, plant_id, start, end, readings, model)
    return JSONResponse(data_access.forecast_chart(result, label).model_dump())


@router.get("/api/plants/{plant_id}/forecasts/table", response_class=JSONResponse)
def api_plant_forecasts_table(
    plant_id: int,
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    readings: bool = Query(False),
    model: List[int] = Query([]),
    ctx: ConsoleContext = Depends(console_context),
) -> JSONResponse:
    result, _ = _plant_forecasts(ctx, plant_id, start, end, readings, model)
    columns, rows = charts.pivot_table(result.all_points)
    return JSONResponse({"columns": columns, "rows": rows, **data_access.readings_meta(result)})


@router.get("/api/plants/{plant_id}/forecasts.csv")
def api_plant_forecasts_csv(
    plant_id: int,
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    readings: bool = Query(False),
    model: List[int] = Query([]),
    ctx: ConsoleContext = Depends(console_context),
) -> PlainTextResponse:
    result, _ = _plant_forecasts(ctx, plant_id, start, end, readings, model)
    return _csv_response(charts.to_csv(result.all_points), "forecast_data.csv")


def _csv_response(body: str, filename: str) -> PlainTextResponse:
    return PlainTextResponse(
        body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/api/models/{model_id}/tofs", response_class=JSONResponse)
def api_model_tofs(
    model_id: int,
    day_start: Optional[str] = Query(None),
    day_end: Optional[str] = Query(None),
    ctx: ConsoleContext = Depends(console_context),
) -> JSONResponse:
    tofs = data_access.model_tofs(ctx.provider, model_id, day_start, day_end)
    return JSONResponse({"tofs": [{"value": tof, "label": dates.tof_label(tof)} for tof in tofs]})


def _tof_comparison(ctx: ConsoleContext, plant_id: int, combo: List[str], readings: bool):
    label = ctx.t("plants.readingsCapitalized", data_access.READINGS_SERIES)
    try:
        return data_access.compare_tofs(ctx.provider, plant_id, combo, include_readings=readings, readings_label=label), label
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/api/plants/{plant_id}/tof", response_class=JSONResponse)
def api_tof_comparison(
    plant_id: int,
    combo: List[str] = Query([]),
    readings: bool = Query(False),
    ctx: ConsoleContext = Depends(console_context),
) -> JSONResponse:
    result, label = _tof_comparison(ctx, plant_id, combo, readings)
    chart = charts.build_series(
        result.all_points,
        colors={label: charts.READINGS_COLOR},
        meta=data_access.readings_meta(result),
    )
    return JSONResponse(chart.model_dump())


@router.get("/api/plants/{plant_id}/tof.csv")
def api_tof_comparison_csv(
    plant_id: int,
    combo: List[str] = Query([]),
    readings: bool = Query(False),
    ctx: ConsoleContext = Depends(console_context),
) -> PlainTextResponse:
    result, _ = _tof_comparison(ctx, plant_id, combo, readings)
    stamp = dates.now_utc().strftime("%Y-%m-%d_%H-%M")
    return _csv_response(charts.to_csv(result.all_points), f"tof_forecasts_{stamp}.csv")


@router.get("/api/models/{model_id}/horizon", response_class=JSONResponse)
def api_model_horizon(model_id: int, ctx: ConsoleContext = Depends(console_context)) -> JSONResponse:
    return JSONResponse(data_access.horizon_metrics(ctx.provider, model_id).model_dump())


@router.get("/api/models/{model_id}/cycle", response_class=JSONResponse)
def api_model_cycle(
    model_id: int,
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    ctx: ConsoleContext = Depends(console_context),
) -> JSONResponse:
    return JSONResponse(data_access.cycle_metrics(ctx.provider, model_id, start_date, end_date).model_dump())


# --- application --------------------------------------------------------------


app = FastAPI(title="Solar Forecast Console")
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="ui-static")
app.include_router(router)


def error_page(request: Request, status_code: int, message: str, errors: Any = None) -> HTMLResponse:
    lang = resolve_lang(request.cookies.get(settings.LANG_COOKIE))
    template = jinja_env.get_template("error.html")
    html = template.render(
        request=request,
        t=translator(lang),
        lang=lang,
        languages=SUPPORTED,
        can=lambda *_: False,
        identity=None,
        status_code=status_code,
        message=message,
        errors=errors,
    )
    return HTMLResponse(html, status_code=status_code)


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired) -> Response:
    if request.url.path.startswith("/api/"):
        return JSONResponse({"message": "User not authenticated", "statusCode": 401}, status_code=401)
    return RedirectResponse(url="/login", status_code=303)


@app.exception_handler(HttpError)
async def backend_error_handler(request: Request, exc: HttpError) -> Response:
    LOGGER.warning("Backend error on %s: %s (%s)", request.url.path, exc.message, exc.status_code)
    if request.url.path.startswith("/api/"):
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)
    if exc.status_code == 401:
        response = RedirectResponse(url="/login", status_code=303)
        response.delete_cookie(settings.TOKEN_COOKIE)
        return response
    return error_page(request, exc.status_code, exc.message, exc.errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    if request.url.path.startswith("/api/"):
        return JSONResponse({"message": str(exc.detail), "statusCode": exc.status_code}, status_code=exc.status_code)
    return error_page(request, exc.status_code, str(exc.detail))


def start_ui(host: str, port: int, open_browser: bool = True) -> None:
    """Start the FastAPI console via uvicorn."""

    config = Config(app=app, host=host, port=port, log_level="info")
    server = Server(config=config)

    if open_browser:
        url = f"http://{host}:{port}/dashboard"

        def _open() -> None:
            webbrowser.open(url)

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        loop.call_later(1.0, _open)
        loop.run_until_complete(server.serve())
        return

    asyncio.run(server.serve())
