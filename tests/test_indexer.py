"""Tests for codeindex.indexer."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import List, Optional

import pytest

import codeindex.extractors as extractors_module
from codeindex.config import CodeIndexConfig
from codeindex.extractors import Extractor
from codeindex.indexer import CodeIndexer
from codeindex.models import CodeUnit
from codeindex.runtime import ModelDescriptor, RouteEntry
from tests._fixtures.repo_builder import RepoBuilder
from tests._fixtures.runtime import BrokenModel, FakeRuntime

TRACKABLE = """
module Trackable
  extend ActiveSupport::Concern

  included do
    has_many :events
  end
end
"""

ORDER_POLICY = """
class OrderPolicy < ApplicationPolicy
  def refund?
    record.paid? && Customer.active.exists?(user.id)
  end
end
"""


class CrashingExtractor(Extractor):
    kind = "crashing"

    def extract_all(self) -> List[CodeUnit]:
        raise RuntimeError("boom")

    def extract_one(self, target: object) -> Optional[CodeUnit]:
        return None


def _build_app(repo_builder: RepoBuilder) -> Path:
    repo_builder.write(
        {
            "app/models/concerns/trackable.rb": TRACKABLE,
            "app/policies/order_policy.rb": ORDER_POLICY,
            "config/locales/en.yml": "en:\n  hello: Hello\n",
        }
    )
    return repo_builder.path()


def test_units_follow_registration_order(repo_builder: RepoBuilder) -> None:
    root = _build_app(repo_builder)

    result = CodeIndexer().run(root)

    assert [unit.type for unit in result.units] == ["concern", "i18n", "policy"]
    assert result.failures == {}
    assert result.counts() == {"concern": 1, "i18n": 1, "policy": 1}
    assert [unit.identifier for unit in result.by_kind("policy")] == ["OrderPolicy"]


def test_runtime_model_names_feed_entity_matching(repo_builder: RepoBuilder) -> None:
    root = _build_app(repo_builder)
    runtime = FakeRuntime(
        models=[ModelDescriptor(name="Customer"), ModelDescriptor(name="Order")],
        routes=[RouteEntry(verb="GET", path="/orders", defaults={"controller": "orders", "action": "index"})],
    )

    result = CodeIndexer(runtime=runtime).run(root)

    policy = result.by_kind("policy")[0]
    assert policy.metadata["evaluated_models"] == ["Order", "Customer"]
    assert [unit.identifier for unit in result.by_kind("model")] == ["Customer", "Order"]
    assert [unit.identifier for unit in result.by_kind("route")] == ["GET /orders"]


def test_unreadable_runtime_model_does_not_abort_run(repo_builder: RepoBuilder) -> None:
    root = _build_app(repo_builder)
    runtime = FakeRuntime(models=[BrokenModel(), ModelDescriptor(name="Order")])

    result = CodeIndexer(runtime=runtime).run(root)

    assert result.failures == {}
    assert [unit.identifier for unit in result.by_kind("model")] == ["Order"]
    assert result.by_kind("policy")[0].metadata["evaluated_models"] == ["Order"]


def test_kind_filter(repo_builder: RepoBuilder) -> None:
    root = _build_app(repo_builder)

    result = CodeIndexer().run(root, kinds=["i18n"])

    assert [unit.type for unit in result.units] == ["i18n"]


def test_config_enabled_list_is_honoured(repo_builder: RepoBuilder) -> None:
    root = _build_app(repo_builder)
    (root / ".codeindex.yml").write_text("extractors:\n  enabled: [concern]\n", encoding="utf-8")

    result = CodeIndexer().run(root)

    assert [unit.type for unit in result.units] == ["concern"]


def test_exclude_paths_skip_files(repo_builder: RepoBuilder) -> None:
    root = _build_app(repo_builder)
    config = CodeIndexConfig(root=root, exclude_paths=["app/policies/"])

    result = CodeIndexer(config=config).run(root)

    assert result.by_kind("policy") == []


def test_snapshot_from_config(repo_builder: RepoBuilder) -> None:
    root = _build_app(repo_builder)
    repo_builder.write(
        {
            ".codeindex.yml": "runtime:\n  snapshot: tmp/runtime.yml\n",
            "tmp/runtime.yml": "middleware:\n  - Rack::Runtime\n  - name: Rack::Attack\n",
        }
    )

    result = CodeIndexer().run(root)

    stack = result.by_kind("middleware")
    assert len(stack) == 1
    assert stack[0].metadata["middleware_list"] == ["Rack::Runtime", "Rack::Attack"]


def test_crashing_extractor_is_isolated(repo_builder: RepoBuilder, monkeypatch: pytest.MonkeyPatch) -> None:
    root = _build_app(repo_builder)
    entry_point = SimpleNamespace(name="crashing", load=lambda: CrashingExtractor)
    monkeypatch.setattr(extractors_module, "_iter_entry_points", lambda: [entry_point])

    result = CodeIndexer(max_workers=2).run(root)

    assert result.failures == {"crashing": "boom"}
    assert [unit.type for unit in result.units] == ["concern", "i18n", "policy"]


def test_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        CodeIndexer().run(tmp_path / "missing")


def test_file_root_raises(tmp_path: Path) -> None:
    target = tmp_path / "Gemfile"
    target.write_text("source 'https://rubygems.org'\n", encoding="utf-8")

    with pytest.raises(NotADirectoryError):
        CodeIndexer().run(target)


def test_result_to_dict(repo_builder: RepoBuilder) -> None:
    root = _build_app(repo_builder)

    payload = CodeIndexer().run(root, kinds=["i18n"]).to_dict()

    assert payload["root"] == str(root.resolve())
    assert payload["counts"] == {"i18n": 1}
    assert payload["units"][0]["identifier"] == "en.yml"
