import random
from dataclasses import replace

import pytest

from repeat_extender.config import ExtenderConfig
from repeat_extender.flank_extractor import extract, is_right_candidate, left_flank, right_flank
from repeat_extender.search_engines import make_hit
from repeat_extender.utils.genome_store import GenomeStore
from repeat_extender.utils.sequence_utils import reverse_complement


def random_genome(size=300, seed=11):
    rng = random.Random(seed)
    return GenomeStore({'chr1': ''.join(rng.choices('ACGT', k=size))})


def config_for(**kwargs):
    params = dict(step_size=4, window=0, min_score=0, min_len=1, min_seqs=1, max_seqs=500)
    params.update(kwargs)
    return ExtenderConfig(**params)


# subject_start < step, query_start > window -> 左侧候选
LEFT_ONLY = dict(query_start=5, query_end=58, subject_start=2, subject_end=60)
# subject_start >= step -> 只能是右侧候选
RIGHT_ONLY = dict(query_start=1, query_end=20, subject_start=100, subject_end=150)


def hit(score=300, reverse=False, **coords):
    return make_hit('repeat', coords['query_start'], coords['query_end'], 'chr1',
                    coords['subject_start'], coords['subject_end'], score, reverse=reverse)


def test_left_extraction_geometry():
    genome = random_genome()
    h = hit(**LEFT_ONLY)
    flanks = extract([h], 50, genome, config_for(min_len=10))

    # 起点 2 - 5 - 1 = -2，截到序列起点；长度 58 + 4
    expected = genome.substr('chr1', -2, 62)
    assert flanks.left == [expected]
    assert expected == genome.sequence('chr1')[:60]
    assert flanks.right == []


def test_right_extraction_geometry():
    genome = random_genome()
    h = hit(**RIGHT_ONLY)
    flanks = extract([h], 50, genome, config_for())

    # 起点 150 + (50 - 20) - 1 = 179，长度 50 + 4
    assert flanks.right == [genome.sequence('chr1')[179:233]]
    assert flanks.left == []


def test_right_requires_room_on_subject():
    h = hit(**RIGHT_ONLY)
    assert not is_right_candidate(h, 153, config_for())
    assert is_right_candidate(h, 154, config_for())

    flanks = extract([h], 50, random_genome(size=152), config_for())
    assert flanks.right == []


def test_window_blocks_candidates():
    genome = random_genome()
    flanks = extract([hit(**LEFT_ONLY), hit(**RIGHT_ONLY)], 50, genome, config_for(window=40))
    assert flanks.left == []
    assert flanks.right == []


def test_low_score_never_contributes():
    genome = random_genome()
    hits = [hit(score=199, **LEFT_ONLY), hit(score=10, **RIGHT_ONLY)]
    flanks = extract(hits, 50, genome, config_for(min_score=200))
    assert flanks.left == [] and flanks.right == []


def test_short_hit_never_contributes():
    genome = random_genome()
    # RIGHT_ONLY的subject长度为50
    flanks = extract([hit(**RIGHT_ONLY)], 50, genome, config_for(min_len=51))
    assert flanks.right == []

    flanks = extract([hit(**RIGHT_ONLY)], 50, genome, config_for(min_len=50))
    assert len(flanks.right) == 1


def test_reverse_strand_is_reverse_complement():
    genome = random_genome()
    for coords, side in ((LEFT_ONLY, 'left'), (RIGHT_ONLY, 'right')):
        forward = extract([hit(**coords)], 50, genome, config_for())
        reverse = extract([hit(reverse=True, **coords)], 50, genome, config_for())
        assert getattr(reverse, side) == [reverse_complement(s) for s in getattr(forward, side)]


@pytest.mark.parametrize('orientation', ['C', '-', 'R'])
def test_reverse_orientation_codes(orientation):
    genome = random_genome()
    h = replace(hit(**RIGHT_ONLY), orientation=orientation)
    assert right_flank(h, genome, 4) == reverse_complement(right_flank(hit(**RIGHT_ONLY), genome, 4))
    assert left_flank(h, genome, 4) == reverse_complement(left_flank(hit(**RIGHT_ONLY), genome, 4))


def test_cap_on_one_side_keeps_filling_the_other():
    genome = random_genome()
    hits = [hit(**LEFT_ONLY) for _ in range(3)] + [hit(**RIGHT_ONLY) for _ in range(3)]
    flanks = extract(hits, 50, genome, config_for(max_seqs=2, min_seqs=1))
    assert len(flanks.left) == 2
    assert len(flanks.right) == 2


def test_hit_can_feed_both_sides():
    genome = random_genome()
    both = dict(query_start=5, query_end=20, subject_start=1, subject_end=60)
    flanks = extract([hit(**both)], 50, genome, config_for())
    assert len(flanks.left) == 1
    assert len(flanks.right) == 1


def test_disabled_sides():
    genome = random_genome()
    both = dict(query_start=5, query_end=20, subject_start=1, subject_end=60)

    flanks = extract([hit(**both)], 50, genome, config_for(no5p=True))
    assert flanks.left == [] and len(flanks.right) == 1

    flanks = extract([hit(**both)], 50, genome, config_for(no3p=True))
    assert len(flanks.left) == 1 and flanks.right == []


def test_unknown_subject_is_skipped():
    genome = random_genome()
    h = make_hit('repeat', 1, 20, 'chrUn', 100, 150, 300)
    flanks = extract([h], 50, genome, config_for())
    assert flanks.left == [] and flanks.right == []


def test_summary_statistics():
    genome = random_genome()
    flanks = extract([hit(**RIGHT_ONLY)], 50, genome, config_for())
    stats = flanks.summary()
    assert stats['right']['count'] == 1
    assert stats['right']['mean_length'] == 54.0
    assert stats['left'] == {'count': 0, 'mean_length': 0.0, 'median_length': 0.0}
