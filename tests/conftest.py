import os
import pathlib
import sys

import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import zkaccess`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from zkaccess.config import get_config_manager  # noqa: E402
from zkaccess.keys import OwnerIdentity  # noqa: E402
from zkaccess.witness import NonceWitness, SecretState  # noqa: E402


def fixed_witness(fill: int) -> NonceWitness:
    """Witness with a deterministic nonce (32 copies of ``fill``)."""
    return NonceWitness(SecretState(bytes([fill]) * 32))


@pytest.fixture(autouse=True)
def _reset_config(monkeypatch):
    """Every test starts from default configuration with no ZKACCESS_* overrides."""
    for name in list(os.environ):
        if name.startswith("ZKACCESS_"):
            monkeypatch.delenv(name, raising=False)
    get_config_manager().reset()
    yield
    get_config_manager().reset()


@pytest.fixture
def allow_injection(monkeypatch):
    """Enable the test-only witness override."""
    monkeypatch.setenv("ZKACCESS_ALLOW_WITNESS_INJECTION", "true")


@pytest.fixture
def owner():
    return OwnerIdentity.from_label("OWNER", witness=fixed_witness(1))


@pytest.fixture
def new_owner():
    return OwnerIdentity.from_label("NEW_OWNER", witness=fixed_witness(2))


@pytest.fixture
def unauthorized():
    return OwnerIdentity.from_label("UNAUTHORIZED", witness=fixed_witness(3))


@pytest.fixture
def make_witness():
    return fixed_witness
