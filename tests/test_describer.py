"""Tests for rule-based symbol descriptions."""

from __future__ import annotations

import pytest

from codemap.describer import DescriptionRule, SymbolContext, describe, format_name
from codemap.models import SymbolKind


@pytest.mark.parametrize(
    ("name", "params", "expected"),
    [
        ("getUser", (), "Retrieves user"),
        ("setupRoutes", (), "Sets up routes"),
        ("handle", ("event",), "Handles event"),
        ("create", ("req", "res", "order"), "Creates order"),
        ("useAuth", (), "Hook for auth"),
        ("use", (), "Hook for state management"),
        ("update_profile", (), "Updates profile"),
    ],
)
def test_naming_rule(name: str, params: tuple, expected: str) -> None:
    assert describe(SymbolContext(name, SymbolKind.FUNCTION, params)) == expected


def test_verb_must_end_at_word_boundary() -> None:
    # "settings" starts with "set" but is not a setter.
    assert describe(SymbolContext("settings", SymbolKind.FUNCTION)) == "Settings function"


def test_jsdoc_tags_are_skipped() -> None:
    lines = [
        "/**",
        " * @param id the id",
        " * Loads the user profile.",
        " */",
        "function loadProfile(id) {",
        "}",
    ]
    ctx = SymbolContext("loadProfile", SymbolKind.FUNCTION, ("id",), lines, 4, "js")
    assert describe(ctx) == "Loads the user profile."


def test_todo_comments_are_ignored() -> None:
    lines = ["// TODO: remove", "// Computes the total.", "function total() {", "}"]
    ctx = SymbolContext("total", SymbolKind.FUNCTION, (), lines, 2, "js")
    assert describe(ctx) == "Computes the total."


def test_python_docstring_is_used() -> None:
    lines = ["def find(x):", '    """Find stuff."""', "    return x"]
    ctx = SymbolContext("find", SymbolKind.FUNCTION, ("x",), lines, 0, "py")
    assert describe(ctx) == "Find stuff."


def test_body_rule_detects_api_calls() -> None:
    lines = [
        "function syncProfile(data) {",
        "  return axios.post('/api/profile', data);",
        "}",
    ]
    ctx = SymbolContext("syncProfile", SymbolKind.FUNCTION, ("data",), lines, 0, "js")
    assert describe(ctx) == "Makes POST API call for sync profile"


def test_body_rule_detects_express_middleware() -> None:
    lines = [
        "function authenticate(req, res, next) {",
        "  if (!req.user) return res.status(401).end();",
        "  next();",
        "}",
    ]
    ctx = SymbolContext("authenticate", SymbolKind.FUNCTION, ("req", "res", "next"), lines, 0, "js")
    assert describe(ctx) == "Express middleware for authenticate"


def test_component_and_class_roles() -> None:
    assert describe(SymbolContext("UserCard", SymbolKind.COMPONENT)) == "React component for user card"
    assert describe(SymbolContext("DateHelper", SymbolKind.CLASS)) == "Utility class for date"
    assert describe(SymbolContext("SessionManager", SymbolKind.CLASS)) == "Manager class for session"


def test_fallback_includes_kind_and_parameters() -> None:
    ctx = SymbolContext("totalPrice", SymbolKind.FUNCTION, ("items",))
    assert describe(ctx) == "Total price function (items)"


def test_first_matching_rule_wins() -> None:
    rules = (
        DescriptionRule("never", lambda ctx: False, lambda ctx: "unused"),
        DescriptionRule("empty", lambda ctx: True, lambda ctx: None),
        DescriptionRule("fixed", lambda ctx: True, lambda ctx: "fixed"),
    )
    assert describe(SymbolContext("x", SymbolKind.VARIABLE), rules) == "fixed"
    assert describe(SymbolContext("user_id", SymbolKind.VARIABLE), ()) == "User id"


def test_format_name_splits_acronyms() -> None:
    assert format_name("HTTPServerConfig") == "Http server config"
    assert format_name("snake_case-name") == "Snake case name"
