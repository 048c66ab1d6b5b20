"""Shared pytest fixtures for the Node Builder test suite.

Provides reusable fixtures for:
- Temporary project directories
- The bundled catalog and an engine over it
- A factory for small throwaway template trees (custom catalogs)
- Hand-built descriptors for renderer/resolver tests
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from nodebuilder.scaffolder import (
    CompositionEngine,
    Dependency,
    ParameterSpec,
    TemplateDescriptor,
    VariantCatalog,
    default_catalog,
)
from nodebuilder.scaffolder.templates import scan_placeholders


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep NB_* variables from the calling shell out of every test."""
    for key in [k for k in os.environ if k.startswith("NB_")]:
        monkeypatch.delenv(key)


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Temporary directory for generated projects (auto-cleanup)."""
    project_dir = tmp_path / "test-project"
    project_dir.mkdir()
    yield project_dir


# ---------------------------------------------------------------------------
# Bundled catalog
# ---------------------------------------------------------------------------

@pytest.fixture
def catalog() -> VariantCatalog:
    """The catalog of templates shipped with the package."""
    return default_catalog()


@pytest.fixture
def engine(catalog: VariantCatalog) -> CompositionEngine:
    return CompositionEngine(catalog)


@pytest.fixture
def demo_params() -> dict[str, str]:
    return {"projectName": "demo", "port": "5000"}


# ---------------------------------------------------------------------------
# Custom template trees
# ---------------------------------------------------------------------------

@pytest.fixture
def template_tree(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing ``catalog.yaml`` plus template files under *tmp_path*.

    Usage::

        root = template_tree(
            {"categories": {"app": {"output": "app.txt", "default": "plain"}}},
            {"app/plain.txt.j2": "Hello {{ name }}\\n"},
        )
        catalog = VariantCatalog.from_directory(root)
    """
    counter = {"n": 0}

    def _build(
        manifest: dict[str, Any] | None,
        templates: dict[str, str],
        *,
        raw_manifest: str | None = None,
    ) -> Path:
        counter["n"] += 1
        root = tmp_path / f"templates-{counter['n']}"
        root.mkdir()
        if raw_manifest is not None:
            (root / "catalog.yaml").write_text(raw_manifest, encoding="utf-8")
        elif manifest is not None:
            (root / "catalog.yaml").write_text(
                yaml.safe_dump(manifest, sort_keys=False), encoding="utf-8"
            )
        for relative, content in templates.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return root

    return _build


@pytest.fixture
def shared_port_tree(template_tree: Callable[..., Path]) -> Path:
    """Two categories whose templates both use ``port`` with different defaults."""
    manifest = {
        "categories": {
            "api": {
                "output": "api.txt",
                "default": "one",
                "variants": {"one": {"parameters": {"port": {"default": "3000"}}}},
            },
            "worker": {
                "output": "worker.txt",
                "default": "two",
                "variants": {"two": {"parameters": {"port": {"default": "4000"}}}},
            },
        }
    }
    return template_tree(
        manifest,
        {
            "api/one.txt.j2": "api listens on {{ port }}\n",
            "worker/two.txt.j2": "worker reports to {{ port }}\n",
        },
    )


# ---------------------------------------------------------------------------
# Hand-built descriptors
# ---------------------------------------------------------------------------

@pytest.fixture
def make_descriptor() -> Callable[..., TemplateDescriptor]:
    """Factory for a ``TemplateDescriptor`` whose parameters follow its source."""
    def _make(
        source: str,
        *,
        category: str = "server",
        variant_id: str = "express",
        specs: dict[str, dict[str, Any]] | None = None,
        dependencies: list[Dependency] | None = None,
    ) -> TemplateDescriptor:
        specs = specs or {}
        parameters = tuple(
            ParameterSpec(name=name, **specs.get(name, {}))
            for name in scan_placeholders(source)
        )
        return TemplateDescriptor(
            category=category,
            variant_id=variant_id,
            source=source,
            parameters=parameters,
            dependencies=tuple(dependencies or ()),
        )

    return _make
