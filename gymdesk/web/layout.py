"""Role-based layout selection: which shell wraps a page and what it shows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from gymdesk.types import LayoutVariant, Role


@dataclass(frozen=True, slots=True)
class NavItem:
    name: str
    href: str


ADMIN_NAVIGATION: Final = (
    NavItem("Dashboard", "/dashboard"),
    NavItem("Members", "/members"),
    NavItem("Subscription Plans", "/subscription-plans"),
    NavItem("Classes", "/classes"),
    NavItem("Check-ins", "/checkins"),
    NavItem("Payments", "/payments"),
    NavItem("Reports", "/reports"),
    NavItem("Settings", "/settings"),
)

TRAINER_NAVIGATION: Final = (
    NavItem("Dashboard", "/trainer-dashboard"),
    NavItem("My Schedule", "/trainer/schedule"),
    NavItem("Class Members", "/trainer/class-members"),
    NavItem("Check-ins", "/trainer/checkins"),
)

MEMBER_NAVIGATION: Final = (
    NavItem("Dashboard", "/member-dashboard"),
    NavItem("Book Classes", "/member/book-classes"),
    NavItem("My Schedule", "/member/schedule"),
    NavItem("Activity History", "/member/history"),
    NavItem("My QR Code", "/member/qr-code"),
    NavItem("Billing", "/member/billing"),
    NavItem("Profile", "/member/profile"),
)

_SINGLE_ROLE_SHELLS: Final = {
    Role.ADMIN: LayoutVariant.ADMIN_SHELL,
    Role.TRAINER: LayoutVariant.TRAINER_SHELL,
    Role.MEMBER: LayoutVariant.MEMBER_SHELL,
}

_NAVIGATION: Final = {
    LayoutVariant.ADMIN_SHELL: ADMIN_NAVIGATION,
    LayoutVariant.TRAINER_SHELL: TRAINER_NAVIGATION,
    LayoutVariant.MEMBER_SHELL: MEMBER_NAVIGATION,
}

# Admins may open every shell; trainers and members only their own.
ALLOWED_ROLES: Final = {
    LayoutVariant.ADMIN_SHELL: frozenset({Role.ADMIN}),
    LayoutVariant.TRAINER_SHELL: frozenset({Role.TRAINER, Role.ADMIN}),
    LayoutVariant.MEMBER_SHELL: frozenset({Role.MEMBER, Role.ADMIN}),
    LayoutVariant.MULTI_ROLE_SHELL: frozenset(Role),
}

ROLE_HOME: Final = {
    Role.ADMIN: "/gym-management",
    Role.TRAINER: "/trainer-dashboard",
    Role.MEMBER: "/member-dashboard",
}


def select_layout(role: Role) -> LayoutVariant:
    """Shell for a page owned by a single role."""
    return _SINGLE_ROLE_SHELLS[role]


def effective_view(shell: LayoutVariant, role: Role) -> LayoutVariant:
    """The concrete shell actually shown.

    A multi-role shell resolves to the viewer's own shell; single-role
    shells are shown as they are.
    """
    if shell == LayoutVariant.MULTI_ROLE_SHELL:
        return select_layout(role)
    return shell


def navigation_for(shell: LayoutVariant, role: Role) -> tuple[NavItem, ...]:
    return _NAVIGATION[effective_view(shell, role)]


def shell_redirect(shell: LayoutVariant, role: Role) -> str | None:
    """Home path to send ``role`` to when the shell does not admit it, else None."""
    if role in ALLOWED_ROLES[shell]:
        return None
    return ROLE_HOME[role]
