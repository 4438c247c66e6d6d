"""Navigation guard and route table."""

from .guard import (
    NOT_FOUND_VIEW,
    ROUTES,
    SIGN_IN_PATH,
    Decision,
    Loading,
    Redirect,
    Render,
    RouteSpec,
    decide,
    home_for_role,
    match,
    navigate,
    resolve,
)

__all__ = [
    "NOT_FOUND_VIEW",
    "ROUTES",
    "SIGN_IN_PATH",
    "Decision",
    "Loading",
    "Redirect",
    "Render",
    "RouteSpec",
    "decide",
    "home_for_role",
    "match",
    "navigate",
    "resolve",
]
