"""Integration tests for compose-then-write against the bundled catalog.

These tests run the real catalog, resolver, renderer and writer end-to-end
and verify the generated project tree and dependency manifest.

No external services or package managers are required.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from nodebuilder.config import Config
from nodebuilder.scaffolder import (
    CompositionEngine,
    DependencyConflictError,
    ParameterConflictError,
    VariantCatalog,
    compose,
    install_commands,
    write_composition,
    write_package_json,
)


# ---------------------------------------------------------------------------
# sqlite + express
# ---------------------------------------------------------------------------


class TestSqliteExpress:
    @pytest.mark.integration
    def test_rendered_files(self, engine):
        result = engine.compose(
            {"db": "sqlite", "server": "express"},
            {"projectName": "demo", "port": "5000"},
        )
        files = result.file_map()

        db = files["src/config/db.ts"]
        assert "{{" not in db
        assert "drizzle-orm/better-sqlite3" in db
        assert "new Database('sqlite.db')" in db

        server = files["src/main.ts"]
        assert "|| 5000" in server
        assert "Hello from demo" in server

        assert list(files) == [
            "src/config/db.ts",
            "src/main.ts",
            ".env",
            ".gitignore",
            "README.md",
        ]

    @pytest.mark.integration
    def test_dependency_union(self, engine):
        result = engine.compose(
            {"db": "sqlite", "server": "express"},
            {"projectName": "demo", "port": "5000"},
        )
        assert result.dependencies == {
            "better-sqlite3": "^11.1.2",
            "drizzle-orm": "^0.33.0",
            "express": "^4.19.2",
        }
        assert set(result.dev_dependencies) == {
            "@types/better-sqlite3",
            "@types/express",
            "@types/node",
            "prettier",
            "ts-node",
            "typescript",
        }

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_write_project(self, engine, tmp_path: Path):
        config = Config(project_name="demo", output_dir=tmp_path, defaults={"port": "5000"})
        result = engine.compose(
            {"db": "sqlite", "server": "express", "lint": "eslint"},
            {},
            config.global_defaults(),
        )

        written = await write_composition(result, config.project_root)

        root = tmp_path / "demo"
        assert len(written) == len(result.files)
        for rendered in result.files:
            assert (root / rendered.path).read_text(encoding="utf-8") == rendered.content
        for directory in result.directories:
            assert (root / directory).is_dir()

        eslint = json.loads((root / ".eslintrc.json").read_text(encoding="utf-8"))
        assert eslint["parser"] == "@typescript-eslint/parser"
        assert (root / ".env").read_text(encoding="utf-8") == "# Environment for demo\nPORT=5000\n"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_write_package_json(self, engine, tmp_path: Path):
        config = Config(project_name="demo", output_dir=tmp_path)
        result = engine.compose(
            {"db": "sqlite", "server": "express"}, {}, config.global_defaults()
        )

        await write_composition(result, config.project_root)
        await write_package_json(result, config.project_root, config.resolved_project_name)

        manifest = json.loads((tmp_path / "demo" / "package.json").read_text(encoding="utf-8"))
        assert manifest["name"] == "demo"
        assert manifest["scripts"]["dev"] == "ts-node src/main.ts"
        assert manifest["dependencies"] == {
            "better-sqlite3": "^11.1.2",
            "drizzle-orm": "^0.33.0",
            "express": "^4.19.2",
        }
        assert manifest["devDependencies"]["@types/express"] == "^4.17.21"
        assert manifest["devDependencies"]["typescript"] == "latest"

    @pytest.mark.integration
    def test_install_plan(self, engine):
        result = engine.compose({"db": "sqlite"}, {"projectName": "demo"})
        runtime, dev = install_commands(result, "npm")
        assert runtime == [
            "npm",
            "install",
            "better-sqlite3@^11.1.2",
            "drizzle-orm@^0.33.0",
            "express@^4.19.2",
        ]
        assert dev[:3] == ["npm", "install", "--save-dev"]
        assert "typescript@latest" in dev


# ---------------------------------------------------------------------------
# Whole-catalog properties
# ---------------------------------------------------------------------------


class TestCatalogWide:
    @pytest.mark.integration
    @pytest.mark.parametrize("db", ["mysql", "postgresql", "sqlite"])
    @pytest.mark.parametrize("server", ["express", "fastify"])
    def test_every_combination_composes(self, engine, db: str, server: str):
        result = engine.compose(
            {"db": db, "server": server, "lint": "eslint"}, {"projectName": "demo"}
        )
        assert result.selections["db"] == db
        assert result.selections["server"] == server
        assert len({f.path for f in result.files}) == len(result.files) == 6
        assert all("{{" not in f.content for f in result.files)

    @pytest.mark.integration
    def test_shared_engine_is_stateless(self, engine):
        first = engine.compose({"db": "mysql"}, {"projectName": "first"})
        engine.compose({"db": "postgresql", "server": "fastify"}, {"projectName": "second"})
        again = engine.compose({"db": "mysql"}, {"projectName": "first"})
        assert first == again

    @pytest.mark.integration
    def test_fresh_catalog_matches_cached(self, catalog):
        fresh = VariantCatalog.from_directory()
        assert fresh.list_categories() == catalog.list_categories()
        for category in catalog.list_categories():
            assert fresh.list_variants(category) == catalog.list_variants(category)


# ---------------------------------------------------------------------------
# Custom catalogs
# ---------------------------------------------------------------------------


class TestCustomCatalog:
    @pytest.mark.integration
    def test_parameter_conflict_aborts_composition(self, shared_port_tree: Path):
        engine = CompositionEngine(VariantCatalog.from_directory(shared_port_tree))
        with pytest.raises(ParameterConflictError, match="port"):
            engine.compose({})

    @pytest.mark.integration
    def test_overlapping_dependency_ranges(self, template_tree):
        manifest = {
            "base_dependencies": [{"name": "lib", "version": ">=1.0.0 <1.5.0"}],
            "categories": {
                "app": {
                    "output": "app.txt",
                    "default": "main",
                    "variants": {
                        "main": {"dependencies": [{"name": "lib", "version": "^1.2.0"}]}
                    },
                }
            },
        }
        root = template_tree(manifest, {"app/main.txt.j2": "app\n"})
        result = compose({}, catalog=VariantCatalog.from_directory(root))
        assert result.dependencies == {"lib": ">=1.2.0 <1.5.0"}

    @pytest.mark.integration
    def test_base_dependency_conflict(self, template_tree):
        manifest = {
            "base_dependencies": [{"name": "lib", "version": "^1.0.0"}],
            "categories": {
                "app": {
                    "output": "app.txt",
                    "default": "main",
                    "variants": {
                        "main": {"dependencies": [{"name": "lib", "version": "^2.0.0"}]}
                    },
                }
            },
        }
        root = template_tree(manifest, {"app/main.txt.j2": "app\n"})
        with pytest.raises(DependencyConflictError) as exc_info:
            compose({}, catalog=VariantCatalog.from_directory(root))
        assert exc_info.value.first == ("^1.0.0", "base")
        assert exc_info.value.second == ("^2.0.0", "app")
