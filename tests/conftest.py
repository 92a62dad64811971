"""
Pytest configuration and fixtures for the test suite.
"""
import pytest
import os
import socket
import sys

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from toons_library.config import EsiConfig
from toons_library.credential_store import CredentialRecord, CredentialStore


@pytest.fixture
def esi_config(tmp_path):
    """Config pointing at the real SSO/ESI hosts (mocked with respx in tests)."""
    return EsiConfig(
        client_id="test-client-id",
        client_secret="test-secret",
        toons_file=tmp_path / "toons.json",
    )


@pytest.fixture
def sample_records():
    return [
        CredentialRecord(name="January", character_id=9001, refresh_token="rt-january", scopes="esi-skills.read_skills.v1"),
        CredentialRecord(name="Farmer One", character_id=9002, refresh_token="rt-farmer-one", scopes="esi-skills.read_skills.v1"),
        CredentialRecord(name="Farmer Two", character_id=9003, refresh_token="rt-farmer-two", scopes="esi-skills.read_skills.v1"),
    ]


@pytest.fixture
def populated_store(tmp_path, sample_records):
    store = CredentialStore(tmp_path / "toons.json")
    for record in sample_records:
        store.upsert(record)
    store.save()
    return store


@pytest.fixture
def free_port():
    """A localhost port that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
