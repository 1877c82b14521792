# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from demandas.app import create_app
from demandas.config import Settings
from demandas.db import make_engine
from demandas.migrations import run_migrations
from demandas.store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    static_dir = tmp_path / "static"
    static_dir.mkdir()
    (static_dir / "index.html").write_text("<h1>Demandas</h1>", encoding="utf-8")
    return Settings(
        host="127.0.0.1",
        port=0,
        db_path=tmp_path / "demandas.db",
        static_dir=static_dir,
        log_level="DEBUG",
        max_content_mb=1,
    )


@pytest.fixture()
def engine(settings: Settings):
    eng = make_engine(settings.db_path)
    run_migrations(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def store(engine) -> TaskStore:
    return TaskStore(engine)


@pytest.fixture()
def app(settings: Settings, store: TaskStore):
    app = create_app(settings, store=store)
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app):
    return app.test_client()
