# Make `import webproxy` work when the tests run from a plain checkout.
import os
import sys

import pytest

SERVICE_ROOT = os.path.dirname(__file__)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from webproxy.proxy.config import ProxyConfig  # noqa: E402
from webproxy.proxy.models import Addressing  # noqa: E402
from webproxy.utils_tests.mock_origin import MockOrigin  # noqa: E402


@pytest.fixture
def mock_origin():
    """Origin server double that records outbound requests."""
    return MockOrigin()


@pytest.fixture
def query_config():
    return ProxyConfig(addressing=Addressing.QUERY)


@pytest.fixture
def path_config():
    return ProxyConfig(addressing=Addressing.PATH)
