import json

import pytest

from relogin import Outcome, RequestContext, ResponseClassifier, WhitelistEntry, WhitelistFilter


@pytest.fixture
def classifier():
    whitelist = WhitelistFilter([WhitelistEntry("post", "/auth/logout")])
    return ResponseClassifier(whitelist, frozenset({401, 403}))


def _body(payload):
    return json.dumps(payload).encode()


def test_whitelist_method_is_case_insensitive():
    wl = WhitelistFilter([WhitelistEntry("post", "/auth/logout")])
    assert wl.is_exempt("POST", "/auth/logout")
    assert wl.is_exempt("post", "/auth/logout")
    assert not wl.is_exempt("GET", "/auth/logout")


def test_whitelist_url_is_exact():
    wl = WhitelistFilter([WhitelistEntry("POST", "/auth/logout")])
    assert not wl.is_exempt("POST", "/auth/logout/")
    assert not wl.is_exempt("POST", "/auth/log")
    assert not wl.is_exempt("POST", "/auth/logout?all=1")


def test_whitelist_relative_entry_matches_absolute_url():
    wl = WhitelistFilter(
        [WhitelistEntry("POST", "/auth/logout"), WhitelistEntry("GET", "/ping?deep=1")]
    )
    assert wl.is_exempt("POST", "https://api.test/auth/logout")
    assert wl.is_exempt("GET", "https://api.test/ping?deep=1")
    assert not wl.is_exempt("GET", "https://api.test/ping")


def test_whitelist_absolute_entry():
    wl = WhitelistFilter([WhitelistEntry("GET", "https://api.test/me")])
    assert wl.is_exempt("GET", "https://api.test/me")
    assert not wl.is_exempt("GET", "/me")


def test_empty_whitelist():
    assert not WhitelistFilter([]).is_exempt("GET", "/")


def test_auth_failure_on_intercept_code(classifier):
    ctx = RequestContext("GET", "/api/x")
    outcome = classifier.classify(ctx, "application/json", _body({"code": 401}))
    assert outcome is Outcome.AUTH_FAILURE
    outcome = classifier.classify(ctx, "application/json", _body({"code": 403}))
    assert outcome is Outcome.AUTH_FAILURE


@pytest.mark.parametrize("code", ["401", 401.0, " 401 "])
def test_code_is_coerced_to_number(classifier, code):
    ctx = RequestContext("GET", "/api/x")
    outcome = classifier.classify(ctx, "application/json", _body({"code": code}))
    assert outcome is Outcome.AUTH_FAILURE


@pytest.mark.parametrize(
    "payload",
    [{"code": 200}, {"code": "abc"}, {"code": None}, {"msg": "no code"}, [401], {"code": [401]}],
)
def test_other_bodies_pass_through(classifier, payload):
    ctx = RequestContext("GET", "/api/x")
    assert classifier.classify(ctx, "application/json", _body(payload)) is Outcome.PASS_THROUGH


def test_content_type_parameters_are_ignored(classifier):
    ctx = RequestContext("GET", "/api/x")
    outcome = classifier.classify(ctx, "Application/JSON; charset=utf-8", _body({"code": 401}))
    assert outcome is Outcome.AUTH_FAILURE


def test_non_json_content_type_passes_through(classifier):
    ctx = RequestContext("GET", "/api/x")
    assert classifier.classify(ctx, "text/plain", _body({"code": 401})) is Outcome.PASS_THROUGH
    assert classifier.classify(ctx, None, _body({"code": 401})) is Outcome.PASS_THROUGH


def test_parse_errors_pass_through(classifier):
    ctx = RequestContext("GET", "/api/x")
    assert classifier.classify(ctx, "application/json", b"{oops") is Outcome.PASS_THROUGH
    assert classifier.classify(ctx, "application/json", b"\x80abc") is Outcome.PASS_THROUGH
    assert classifier.classify(ctx, "application/json", b"") is Outcome.PASS_THROUGH


def test_whitelist_wins_over_auth_failure(classifier):
    ctx = RequestContext("POST", "/auth/logout")
    outcome = classifier.classify(ctx, "application/json", _body({"code": 401}))
    assert outcome is Outcome.BYPASS


def test_null_code_counts_as_zero():
    classifier = ResponseClassifier(WhitelistFilter([]), frozenset({0}))
    ctx = RequestContext("GET", "/api/x")
    outcome = classifier.classify(ctx, "application/json", _body({"code": None}))
    assert outcome is Outcome.AUTH_FAILURE
    # no code at all is never a match
    outcome = classifier.classify(ctx, "application/json", _body({"msg": "ok"}))
    assert outcome is Outcome.PASS_THROUGH
