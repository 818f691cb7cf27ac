"""
Pytest configuration for the zkLogin circuit tests.

Shared fixtures: RSA test keys and the test-sized configuration.
"""

import sys
from pathlib import Path

import pytest

# Add the repository root to the path so absolute imports work
# (tests/ is inside the repository root)
root_dir = Path(__file__).parent.parent
if str(root_dir) not in sys.path:
    sys.path.insert(0, str(root_dir))

from constraints.zklogin import ZkLoginConfig  # noqa: E402
from tests.jwt_helpers import generate_key  # noqa: E402


@pytest.fixture(scope="session")
def rsa_key_1024():
    return generate_key(1024)


@pytest.fixture(scope="session")
def rsa_key_2048():
    return generate_key(2048)


@pytest.fixture(scope="session")
def small_config() -> ZkLoginConfig:
    return ZkLoginConfig.small()
