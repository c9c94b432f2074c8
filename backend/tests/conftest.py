import threading

import pytest


@pytest.fixture
def cancel_event() -> threading.Event:
    return threading.Event()
