from pathlib import Path
from typing import Dict

import pytest

from bamconsensus.config import ConsensusConfig
from bamconsensus.toy_data import make_toy_data


@pytest.fixture
def toy(tmp_path: Path) -> Dict[str, str]:
    return make_toy_data(outdir=tmp_path / "toy")


@pytest.fixture
def toy_config(toy: Dict[str, str]) -> ConsensusConfig:
    return ConsensusConfig(bam_path=toy["bam"], bai_path=toy["bai"], bed_path=toy["bed"])
