"""
Hit过滤与侧翼序列提取
对每条hit按分值/长度过滤，再分别判断能否作为5'(左)或3'(右)侧翼的候选
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

import numpy as np

from repeat_extender.config import ExtenderConfig
from repeat_extender.search_engines import HitRecord
from repeat_extender.utils.genome_store import GenomeStore
from repeat_extender.utils.sequence_utils import reverse_complement

logger = logging.getLogger(__name__)


@dataclass
class CandidateFlanks:
    """一次迭代中左右两侧的候选序列"""
    left: List[str] = field(default_factory=list)
    right: List[str] = field(default_factory=list)

    def summary(self) -> dict:
        stats = {}
        for side, seqs in (('left', self.left), ('right', self.right)):
            lengths = [len(s) for s in seqs]
            stats[side] = {
                'count': len(seqs),
                'mean_length': float(np.mean(lengths)) if lengths else 0.0,
                'median_length': float(np.median(lengths)) if lengths else 0.0,
            }
        return stats


def passes_filters(hit: HitRecord, config: ExtenderConfig) -> bool:
    if hit.score < config.min_score:
        return False
    if hit.hit_length < config.min_len:
        return False
    return True


def is_left_candidate(hit: HitRecord, config: ExtenderConfig) -> bool:
    return hit.query_start > config.window and hit.subject_start < config.step_size


def is_right_candidate(hit: HitRecord, subject_length: int, config: ExtenderConfig) -> bool:
    return (hit.query_end < (hit.hit_length - config.window)
            and (hit.subject_end + config.step_size) <= subject_length)


def left_flank(hit: HitRecord, genome: GenomeStore, step_size: int) -> str:
    offset = hit.subject_start - hit.query_start - 1
    seq = genome.substr(hit.subject_name, offset, hit.hit_length + step_size)
    return reverse_complement(seq) if hit.is_reverse else seq


def right_flank(hit: HitRecord, genome: GenomeStore, step_size: int) -> str:
    offset = hit.subject_end + (hit.hit_length - hit.query_end) - 1
    seq = genome.substr(hit.subject_name, offset, hit.hit_length + step_size)
    return reverse_complement(seq) if hit.is_reverse else seq


def extract(hits: Iterable[HitRecord], consensus_length: int, genome: GenomeStore,
            config: ExtenderConfig) -> CandidateFlanks:
    """
    从hits中收集左右两侧的候选侧翼序列

    Args:
        hits: 搜索引擎返回的hits（按原顺序遍历一次）
        consensus_length: 当前共识序列长度
        genome: 基因组
        config: 配置

    Returns:
        CandidateFlanks，每侧最多config.max_seqs条
    """
    flanks = CandidateFlanks()
    rejected = 0

    for hit in hits:
        if not passes_filters(hit, config):
            rejected += 1
            continue
        if hit.subject_name not in genome:
            logger.warning(f"Hit on unknown sequence {hit.subject_name}, skipped")
            continue
        if hit.query_end > consensus_length:
            logger.debug(f"Hit query end {hit.query_end} beyond consensus length {consensus_length}")

        subject_length = genome.length(hit.subject_name)
        on_left = on_right = False

        if config.extend_left and len(flanks.left) < config.max_seqs:
            if is_left_candidate(hit, config):
                seq = left_flank(hit, genome, config.step_size)
                if seq:
                    flanks.left.append(seq)
                    on_left = True

        if config.extend_right and len(flanks.right) < config.max_seqs:
            if is_right_candidate(hit, subject_length, config):
                seq = right_flank(hit, genome, config.step_size)
                if seq:
                    flanks.right.append(seq)
                    on_right = True

        # TODO: confirm whether a single hit should ever feed both sides
        if on_left and on_right:
            logger.debug(f"Hit {hit.subject_name}:{hit.subject_start}-{hit.subject_end} "
                         f"used on both sides")

    logger.debug(f"{rejected} hits rejected by score/length filters")
    logger.info(f"{len(flanks.left)} in left side, {len(flanks.right)} in right side")
    return flanks
