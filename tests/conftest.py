"""
Pytest configuration and fixtures

The app is built on an in-memory option store and a fixed clock,
so nothing touches bmi_options.json on disk.
"""
import os
import sys
from datetime import datetime

import pytest

# Add the parent directory to the path so the top-level modules import
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from main import create_app
from options import MemoryOptionStore

FIXED_NOW = datetime(2024, 3, 9, 14, 30, 5)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def store():
    return MemoryOptionStore()


@pytest.fixture
def app(store, clock):
    app = create_app(store=store, clock=clock, config={"TESTING": True, "BMI_SITE_TITLE": "Test Site"})
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
