from typing import Any, Dict, List

import pytest

from tests.helpers import SAMPLE_CONTAINERS


@pytest.fixture
def sample_containers() -> List[Dict[str, Any]]:
    return [dict(c) for c in SAMPLE_CONTAINERS]
