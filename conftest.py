import os
from pathlib import Path

import pytest

# backend.app builds a default app at import time; keep its save slot out of ./data
TEST_DATA_DIR = Path("data-tests")
os.environ.setdefault("DATA_DIR", str(TEST_DATA_DIR))

from infinite_adventure.pipeline.orchestrator import GameSession  # noqa: E402
from infinite_adventure.retry import RetryPolicy  # noqa: E402
from infinite_adventure.storage import SaveStore  # noqa: E402
from stubs import StubModel  # noqa: E402


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Same attempt budget as production, without the waiting."""
    return RetryPolicy(max_attempts=4, base_delay=0, max_jitter=0)


@pytest.fixture
def store(tmp_path) -> SaveStore:
    return SaveStore(tmp_path / "saves")


@pytest.fixture
def model() -> StubModel:
    return StubModel()


@pytest.fixture
async def session(model, store, fast_policy):
    """A fresh GameSession; outstanding illustration tasks are drained on teardown."""
    game = GameSession(model=model, store=store, policy=fast_policy)
    yield game
    for gate in model.image_gates:
        gate.set()
    await game.wait_for_images()
