# tests/conftest.py
import sys
from pathlib import Path

# ---------------------------------------------------------
# Ensure project root is on PYTHONPATH BEFORE app imports
# ---------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# ---------------------------------------------------------
# Now safe to import app + dependencies
# ---------------------------------------------------------
import pytest

from services.mock_backend import InMemoryFinancialBackend
from tests.helpers import FakeClock, ScriptedClassifier, build_processor


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend(clock):
    return InMemoryFinancialBackend(clock=clock)


@pytest.fixture
def classifier():
    return ScriptedClassifier()


@pytest.fixture
def processor(backend, classifier, clock):
    return build_processor(backend, classifier, clock)
