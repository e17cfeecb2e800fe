import os
import sys
import tempfile
from pathlib import Path

import pytest

# The service is run from its own directory (``uvicorn main:app``).
SERVICE_DIR = Path(__file__).resolve().parent.parent
if str(SERVICE_DIR) not in sys.path:
    sys.path.insert(0, str(SERVICE_DIR))

os.environ.setdefault(
    "SANDBOX_DATABASE_URL", f"sqlite:///{Path(tempfile.mkdtemp()) / 'sandbox-test.db'}"
)


@pytest.fixture
def sandbox(monkeypatch):
    import main

    monkeypatch.setattr(main, "API_KEY", "test-key")
    monkeypatch.setattr(main, "IPN_SECRET", "ipn-secret")
    return main


@pytest.fixture
def api(sandbox):
    from fastapi.testclient import TestClient

    return TestClient(sandbox.app)
