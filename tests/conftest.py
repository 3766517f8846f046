"""Shared fixtures for the postman_load test suite."""

import json
import os
import sys
from pathlib import Path

import pytest

os.environ.setdefault("MPLBACKEND", "Agg")

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from postman_load.config import RunConfiguration  # noqa: E402
from postman_load.runner import ExecutionEntry, RunSummary  # noqa: E402

COLLECTION = {
    "info": {"name": "Sample API"},
    "variable": [{"key": "baseUrl", "value": "http://localhost:8080"}],
    "item": [
        {
            "name": "List",
            "request": {"method": "GET", "url": {"raw": "{{baseUrl}}/items"}},
        },
        {
            "name": "Users",
            "item": [
                {
                    "name": "Create",
                    "request": {
                        "method": "POST",
                        "url": "{{baseUrl}}/items",
                        "header": [
                            {"key": "Content-Type", "value": "application/json"},
                            {"key": "X-Debug", "value": "1", "disabled": True},
                        ],
                        "body": {"mode": "raw", "raw": "{{requestBody1}}"},
                    },
                }
            ],
        },
    ],
}


@pytest.fixture
def collection_file(tmp_path: Path) -> Path:
    path = tmp_path / "collection.json"
    path.write_text(json.dumps(COLLECTION), encoding="utf-8")
    return path


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    path = tmp_path / "data.json"
    path.write_text(
        json.dumps([{"name": "Create", "bodies": [{"id": 1}, '{"id": 2}']}]),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def make_config():
    def factory(**overrides) -> RunConfiguration:
        values = {
            "file": "collection.json",
            "user_count": 1,
            "interval_ms": 200,
            "total_duration_ms": 700,
        }
        values.update(overrides)
        return RunConfiguration(**values)

    return factory


class FakeRunner:
    """Collection runner stand-in returning canned executions."""

    def __init__(self, executions=None, error=None):
        self.executions = executions or [ExecutionEntry("List", 200, 10)]
        self.error = error
        self.calls = []

    def run(self, collection, environment=None):
        self.calls.append((collection, list(environment or [])))
        if self.error is not None:
            raise self.error
        return RunSummary(executions=list(self.executions))


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()
