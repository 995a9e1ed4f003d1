# Make `import gitproxy` work when tests run from a plain checkout.
import os
import sys

import pytest

SERVICE_ROOT = os.path.dirname(__file__)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from gitproxy.utils_tests.fakes import FlushingSink, RecordingSink  # noqa: E402


@pytest.fixture
def sink():
    """A client sink without flush support."""
    return RecordingSink()


@pytest.fixture
def flushing_sink():
    return FlushingSink()
