from __future__ import annotations

from typing import List

import typer
from pydantic import ValidationError

from ui import data_access
from ui.schemas import CreateUserForm

from ..common import build_provider, console, handle_errors, print_table
from ..i18n import t

users_app = typer.Typer(help="User administration")
roles_app = typer.Typer(help="Role administration")
permissions_app = typer.Typer(help="Permission administration")


@users_app.command("list")
@handle_errors
def list_users(
    page: int = typer.Option(1, min=1),
    size: int = typer.Option(20, min=1, max=100),
) -> None:
    provider = build_provider()
    users, total = data_access.list_users(provider, page, size)
    print_table(
        t("users.title", total=total),
        ["ID", t("fields.name"), t("fields.email"), t("fields.roles"), t("fields.last_login")],
        ([u.id, u.name, u.email, ", ".join(r.name for r in u.roles), u.lastLogin] for u in users),
    )


@users_app.command("create")
@handle_errors
def create_user(
    email: str = typer.Option(..., "--email"),
    connection: str = typer.Option("Username-Password-Authentication", "--connection"),
    role: List[str] = typer.Option([], "--role", help="Role id, repeatable"),
) -> None:
    try:
        form = CreateUserForm(email=email, connection=connection, roleIds=role)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc
    provider = build_provider()
    ticket_url = data_access.create_user(provider, form.email, form.connection, form.roleIds)
    console().print(t("users.created", email=form.email))
    if ticket_url:
        console().print(t("users.ticket", url=ticket_url))


@users_app.command("delete")
@handle_errors
def delete_user(
    user_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    if not yes and not typer.confirm(t("prompts.confirm_delete", item=user_id)):
        raise typer.Abort()
    provider = build_provider()
    data_access.delete_user(provider, user_id)
    console().print(t("users.deleted", id=user_id))


@roles_app.command("list")
@handle_errors
def list_roles(
    page: int = typer.Option(1, min=1),
    size: int = typer.Option(20, min=1, max=100),
) -> None:
    provider = build_provider()
    roles, total = data_access.list_roles(provider, page, size)
    print_table(
        t("roles.title", total=total),
        ["ID", t("fields.name"), t("fields.description")],
        ([r.id, r.name, r.description] for r in roles),
    )


@permissions_app.command("list")
@handle_errors
def list_permissions() -> None:
    provider = build_provider()
    permissions = data_access.list_permissions(provider)
    print_table(
        t("permissions.title", total=len(permissions)),
        [t("fields.permission"), t("fields.description")],
        ([p.get("permissionName"), p.get("description")] for p in permissions),
    )
