import pytest

from reactive_membrane import _tracking, reactive


@pytest.fixture(autouse=True)
def _reset_render_state():
    yield
    _tracking._pending.clear()
    _tracking._batch_depth = 0
    _tracking.set_scheduler(None)
    _tracking.set_bridge(None)
    reactive.set_dev_warnings(True)
