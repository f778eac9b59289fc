import pytest

from repeat_extender.config import ExtenderConfig
from repeat_extender.fakes import DEMO_GENOME
from repeat_extender.utils.genome_store import GenomeStore


@pytest.fixture
def permissive_config(tmp_path):
    return ExtenderConfig(
        step_size=4, min_seqs=1, max_n=2, min_score=0, min_len=1, window=0,
        auto=True, temp_prefix=str(tmp_path / 'temp'),
    )


@pytest.fixture
def demo_genome():
    return GenomeStore(DEMO_GENOME)
