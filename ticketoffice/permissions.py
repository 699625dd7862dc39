"""Role-based access policy shared by the route gate and the backoffice navigation."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Sequence

from pydantic import BaseModel, Field


class Role(str, Enum):
    ADMIN = "admin"
    SELLER = "seller"
    USER = "user"


BACKOFFICE_ROLES = frozenset({Role.ADMIN, Role.SELLER})


class NavItem(BaseModel):
    key: str
    label: str
    href: str | None = None
    roles: frozenset[Role]
    children: list[NavItem] = Field(default_factory=list)


_BOTH = frozenset({Role.ADMIN, Role.SELLER})
_ADMIN = frozenset({Role.ADMIN})

NAV_ITEMS: list[NavItem] = [
    NavItem(key="dashboard", label="Panel", href="/admin/dashboard", roles=_ADMIN),
    NavItem(key="profile", label="Mi perfil", href="/admin/profile", roles=_BOTH),
    NavItem(
        key="events",
        label="Eventos",
        roles=_BOTH,
        children=[
            NavItem(key="events_all", label="Todos los eventos", href="/admin/events", roles=_BOTH),
            NavItem(key="events_new", label="Nuevo evento", href="/admin/events/new", roles=_BOTH),
        ],
    ),
    NavItem(key="validate", label="Validar Entradas", href="/admin/validate", roles=_BOTH),
    NavItem(key="reports", label="Reportes", href="/admin/reports", roles=_BOTH),
    NavItem(key="users", label="Vendedores", href="/admin/users", roles=_ADMIN),
    NavItem(key="settings", label="Configuración", href="/admin/settings", roles=_ADMIN),
]

PUBLIC_PREFIXES = (
    "/",
    "/events",
    "/checkout",
    "/congrats",
    "/tickets",
    "/contact",
    "/sellers/apply",
    "/validate",
    "/auth",
)

PASSTHROUGH_PREFIXES = ("/_next", "/api", "/static", "/health")

_ROLE_PERMISSIONS: dict[Role, tuple[str, ...]] = {
    Role.ADMIN: (
        "dashboard.read_global",
        "events.read_all",
        "events.create_any",
        "events.update_any",
        "events.delete_any",
        "sales.read_all",
        "validate.read_all",
        "users.read",
        "users.invite",
        "settings.read",
        "coupons.create_any",
    ),
    Role.SELLER: (
        "dashboard.read_self",
        "events.read_self",
        "events.create_self",
        "events.update_self",
        "events.delete_self",
        "sales.read_self",
        "validate.read_self",
        "coupons.create_self",
    ),
    Role.USER: (),
}

ALL_PERMISSIONS: tuple[str, ...] = tuple(
    dict.fromkeys(p for perms in _ROLE_PERMISSIONS.values() for p in perms)
)


def coerce_role(role: Role | str | None) -> Role | None:
    """Read a role from a cookie or claim; unknown values count as anonymous."""
    if role is None or isinstance(role, Role):
        return role
    try:
        return Role(role.strip().lower())
    except ValueError:
        return None


def map_server_roles(server_roles: Iterable[str] | None) -> Role:
    """Collapse the API's role list (``["ADMIN"]``, ...) into one app role."""
    roles = {r.upper() for r in server_roles or ()}
    if roles & {"ADMIN", "SUPER_ADMIN"}:
        return Role.ADMIN
    if roles & {"SELLER", "ORGANIZER"}:
        return Role.SELLER
    return Role.USER


def permissions_for_role(role: Role | str | None) -> list[str]:
    r = coerce_role(role)
    return list(_ROLE_PERMISSIONS[r]) if r else []


def can(permissions: Sequence[str], perm: str) -> bool:
    return perm in permissions


def can_any(permissions: Sequence[str], wanted: Iterable[str]) -> bool:
    return any(p in permissions for p in wanted)


def _flatten(items: Iterable[NavItem]) -> list[NavItem]:
    out: list[NavItem] = []
    for item in items:
        out.append(item)
        out.extend(_flatten(item.children))
    return out


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def _is_asset(path: str) -> bool:
    return "." in path.rsplit("/", 1)[-1]


def _backoffice_roles(path: str) -> frozenset[Role]:
    best: NavItem | None = None
    for item in _flatten(NAV_ITEMS):
        if item.href and _under(path, item.href):
            if best is None or len(item.href) > len(best.href or ""):
                best = item
    return best.roles if best else BACKOFFICE_ROLES


def can_access(role: Role | str | None, path: str) -> bool:
    """Decide whether *role* may open *path*.

    Backoffice (``/admin``) rules come from :data:`NAV_ITEMS`, so the gate and
    the sidebar never disagree. ``/organizer`` is admin only. Public prefixes
    are open to everyone and anything else needs an admin.
    """
    r = coerce_role(role)
    path = "/" + path.lstrip("/")

    if any(_under(path, p) for p in PASSTHROUGH_PREFIXES) or _is_asset(path):
        return True

    if _under(path, "/admin"):
        return r in _backoffice_roles(path)
    if _under(path, "/organizer"):
        return r is Role.ADMIN

    if path == "/" or any(_under(path, p) for p in PUBLIC_PREFIXES if p != "/"):
        return True
    return r is Role.ADMIN


def visible_nav(role: Role | str | None) -> list[NavItem]:
    """The navigation tree trimmed to what *role* may open."""
    r = coerce_role(role)

    def keep(items: Iterable[NavItem]) -> list[NavItem]:
        out: list[NavItem] = []
        for item in items:
            if r not in item.roles:
                continue
            if item.href and not can_access(r, item.href):
                continue
            out.append(item.model_copy(update={"children": keep(item.children)}))
        return out

    return keep(NAV_ITEMS)
