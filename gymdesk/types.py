"""Enums and type aliases for GymDesk."""

from enum import StrEnum


class Role(StrEnum):
    ADMIN = "admin"
    TRAINER = "trainer"
    MEMBER = "member"


class Confirmation(StrEnum):
    CONFIRMED = "confirmed"
    UNCONFIRMED = "unconfirmed"


class SubscriptionTier(StrEnum):
    SOLO = "solo"
    MULTI = "multi"


class SubscriptionStatus(StrEnum):
    ACTIVE = "active"
    TRIAL = "trial"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class RouteClass(StrEnum):
    PROTECTED = "protected"
    AUTH_ONLY = "auth_only"
    PUBLIC = "public"


class AccessDecision(StrEnum):
    ALLOW = "allow"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_HOME = "redirect_home"


class LayoutVariant(StrEnum):
    ADMIN_SHELL = "admin_shell"
    TRAINER_SHELL = "trainer_shell"
    MEMBER_SHELL = "member_shell"
    MULTI_ROLE_SHELL = "multi_role_shell"


class LoadStatus(StrEnum):
    LOADED = "loaded"
    FAILED = "failed"


class DirectoryBackend(StrEnum):
    DATABASE = "database"
    SUPABASE = "supabase"
