import logging
from typing import Sequence

from repeat_extender.config import ExtenderConfig
from repeat_extender.utils.sequence_utils import count_ambiguous

logger = logging.getLogger(__name__)


def has_support(candidates: Sequence[str], config: ExtenderConfig) -> bool:
    """候选序列数是否达到min_seqs"""
    return len(candidates) >= config.min_seqs


def accept(fragment: str, config: ExtenderConfig) -> str:
    """N碱基数达到max_n时丢弃本次延伸"""
    n_count = count_ambiguous(fragment)
    if fragment and n_count >= config.max_n:
        logger.info(f"Extension {fragment} rejected: {n_count} N bases (max {config.max_n})")
        return ''
    return fragment


def splice(left: str, consensus: str, right: str) -> str:
    return f"{left}{consensus}{right}"
