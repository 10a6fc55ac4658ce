"""Pytest configuration."""

import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: mark test as requiring a live database (skipped in CI by default)"
    )


os.environ.setdefault("DATABASE_URL", "postgresql://localhost:5432/opening_trainer?user=postgres&password=postgres")


class MemoryStorage:
    """dict-backed get_item/set_item adapter."""

    def __init__(self):
        self.data = {}

    def get_item(self, key):
        return self.data.get(key)

    def set_item(self, key, value):
        self.data[key] = str(value)

    def remove_item(self, key):
        self.data.pop(key, None)


@pytest.fixture
def storage():
    return MemoryStorage()
