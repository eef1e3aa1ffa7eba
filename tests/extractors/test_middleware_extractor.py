"""Tests for the middleware stack extractor."""

from __future__ import annotations

from types import SimpleNamespace

from codeindex.extractors.middleware import STACK_IDENTIFIER, MiddlewareExtractor, middleware_name
from tests._fixtures.repo_builder import RepoBuilder
from tests._fixtures.runtime import ExplodingRuntime, FakeRuntime


class RequestTimer:
    pass


class UndescribableEntry:
    name = "Broken"

    @property
    def args(self):
        raise RuntimeError("args unavailable")


def test_stack_unit(repo_builder: RepoBuilder) -> None:
    stack = [
        "ActionDispatch::HostAuthorization",
        SimpleNamespace(name="Rack::Runtime", args=[]),
        SimpleNamespace(name=None, klass=RequestTimer, args=["threshold", 250]),
    ]
    runtime = FakeRuntime(middleware=stack)

    units = MiddlewareExtractor(repo_builder.context(runtime=runtime)).extract_all()

    assert len(units) == 1
    unit = units[0]
    assert unit.identifier == STACK_IDENTIFIER
    assert unit.file_path is None
    assert unit.namespace is None
    assert unit.dependencies == ()
    assert unit.metadata["middleware_count"] == 3
    assert unit.metadata["middleware_list"] == [
        "ActionDispatch::HostAuthorization",
        "Rack::Runtime",
        "RequestTimer",
    ]
    assert unit.metadata["middleware_details"][2] == {
        "position": 2,
        "name": "RequestTimer",
        "args": ["threshold", "250"],
    }
    assert unit.source_code.splitlines() == [
        "# Rack Middleware Stack",
        "# 3 middleware(s)",
        "#",
        "# [0] ActionDispatch::HostAuthorization",
        "# [1] Rack::Runtime",
        "# [2] RequestTimer (threshold, 250)",
    ]


def test_undescribable_entries_keep_positions(repo_builder: RepoBuilder) -> None:
    stack = ["Rack::Sendfile", UndescribableEntry(), "Rack::ETag"]

    unit = MiddlewareExtractor(repo_builder.context()).extract_one(stack)

    assert unit is not None
    assert [(d["position"], d["name"]) for d in unit.metadata["middleware_details"]] == [
        (0, "Rack::Sendfile"),
        (2, "Rack::ETag"),
    ]


def test_no_stack_yields_nothing(repo_builder: RepoBuilder) -> None:
    assert MiddlewareExtractor(repo_builder.context()).extract_all() == []
    assert MiddlewareExtractor(repo_builder.context(runtime=FakeRuntime())).extract_all() == []
    assert MiddlewareExtractor(repo_builder.context(runtime=FakeRuntime(middleware=[]))).extract_all() == []
    assert MiddlewareExtractor(repo_builder.context(runtime=ExplodingRuntime())).extract_all() == []


def test_middleware_name_fallbacks() -> None:
    assert middleware_name("Rack::Lock") == "Rack::Lock"
    assert middleware_name(SimpleNamespace(name="Named", klass="Ignored")) == "Named"
    assert middleware_name(SimpleNamespace(name="", klass="Rack::Head")) == "Rack::Head"
    assert middleware_name(SimpleNamespace(klass=RequestTimer)) == "RequestTimer"
    assert middleware_name(42) == "42"
