"""
迭代延伸控制

每次迭代：
1. 用当前共识序列搜索基因组
2. 过滤hits，提取左右侧翼候选序列
3. 候选数足够的一侧构建共识，取出新延伸的碱基
4. N过多的延伸被丢弃，其余拼接到共识序列两端
长度不再变化即收敛，返回上一轮的共识序列
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from repeat_extender.acceptance import accept, has_support, splice
from repeat_extender.config import ExtenderConfig
from repeat_extender.consensus_builder import (
    LEFT, RIGHT, ConsensusBuilder, ConsensusResult, extension_fragment, pad_consensus
)
from repeat_extender.decision import Action, AutoDecisionProvider, DecisionProvider, IterationState
from repeat_extender.exceptions import SearchEngineError
from repeat_extender.flank_extractor import extract
from repeat_extender.search_engines import SearchEngine
from repeat_extender.utils.genome_store import GenomeStore
from repeat_extender.utils.sequence_utils import write_records

logger = logging.getLogger(__name__)

# 修改后需要重建搜索引擎的参数
ENGINE_FIELDS = ('engine', 'matrix', 'matrix_dir', 'rmblast_exe', 'makeblastdb_exe',
                 'wublast_exe', 'xdformat_exe')


@dataclass
class ExtensionResult:
    """单次延伸的结果"""
    consensus: str
    left: str = ''
    right: str = ''
    hit_count: int = 0
    flank_stats: dict = field(default_factory=dict)
    left_result: Optional[ConsensusResult] = None
    right_result: Optional[ConsensusResult] = None

    def alignment_blocks(self) -> Tuple[str, str]:
        left_block = self.left_result.edge_blocks()[0] if self.left_result else ''
        right_block = self.right_result.edge_blocks()[1] if self.right_result else ''
        return left_block, right_block


class ExtensionStep:
    """一次延伸：搜索 -> 提取侧翼 -> 构建共识 -> 接受/丢弃"""

    def __init__(self, config: ExtenderConfig, engine: SearchEngine, genome: GenomeStore,
                 genome_file: str, builder: ConsensusBuilder):
        self.config = config
        self.engine = engine
        self.genome = genome
        self.genome_file = genome_file
        self.builder = builder

    @property
    def query_file(self) -> str:
        return f"{self.config.temp_prefix}.fa"

    def reconfigure(self, config: ExtenderConfig, engine: Optional[SearchEngine] = None):
        self.config = config
        self.builder.configure(config)
        if engine is not None:
            self.engine = engine

    def run(self, consensus: str) -> ExtensionResult:
        write_records([('repeat', consensus)], self.query_file)
        self.engine.set_query(self.query_file)
        self.engine.set_subject(self.genome_file)

        status, hits = self.engine.search()
        if status:
            raise SearchEngineError(status)
        logger.info(f"Found {len(hits)} candidate hits")

        flanks = extract(hits, len(consensus), self.genome, self.config)
        stats = flanks.summary()
        for side in (LEFT, RIGHT):
            if stats[side]['count']:
                logger.info(f"{side} flank lengths: mean {stats[side]['mean_length']:.1f}, "
                            f"median {stats[side]['median_length']:.1f}")
        result = ExtensionResult(consensus=consensus, hit_count=len(hits), flank_stats=stats)

        if self.config.extend_left and has_support(flanks.left, self.config):
            result.left_result, result.left = self._extend_side(consensus, flanks.left, LEFT)
        if self.config.extend_right and has_support(flanks.right, self.config):
            result.right_result, result.right = self._extend_side(consensus, flanks.right, RIGHT)

        logger.info(f"extensions: left={result.left}, right={result.right}")
        result.consensus = splice(result.left, consensus, result.right)
        return result

    def _extend_side(self, consensus: str, candidates: List[str], side: str):
        padded = pad_consensus(consensus, self.config.step_size, side)
        built = self.builder.build_consensus(padded, candidates)
        fragment = extension_fragment(built.consensus, self.config.step_size, side)
        return built, accept(fragment, self.config)


class IterationController:
    """
    反复执行延伸直到收敛
    非自动模式下每次成功延伸后交由decisions决定停止/继续/修改参数
    """

    def __init__(self, config: ExtenderConfig, step: ExtensionStep,
                 decisions: Optional[DecisionProvider] = None,
                 engine_factory: Optional[Callable[[ExtenderConfig], SearchEngine]] = None):
        self.config = config
        self.step = step
        self.decisions = decisions or AutoDecisionProvider()
        self.engine_factory = engine_factory
        self.iteration = 0
        self.history: List[ExtensionResult] = []

    def extend(self, consensus: str) -> str:
        while True:
            logger.info(f"extending repeat, iter: {self.iteration}")
            result = self.step.run(consensus)
            if len(result.consensus) == len(consensus):
                logger.info(f"No further extension after {self.iteration} iterations, "
                            f"final length {len(consensus)}")
                return consensus

            consensus = result.consensus
            self.history.append(result)
            self.iteration += 1
            logger.info(f"Iteration {self.iteration}: consensus length {len(consensus)}")

            if self.config.auto:
                continue

            decision = self.decisions.decide(
                IterationState(self.iteration, consensus, result, self.config))
            if decision.action == Action.STOP:
                logger.info(f"Stopped by user at iteration {self.iteration}")
                return consensus
            if decision.action == Action.MODIFY and decision.config is not None:
                self._adopt(decision.config)

    def _adopt(self, new_config: ExtenderConfig):
        """修改参数的唯一入口"""
        new_config.validate()
        engine = None
        changed = [name for name in ENGINE_FIELDS
                   if getattr(new_config, name) != getattr(self.config, name)]
        if changed:
            if self.engine_factory is None:
                logger.warning(f"Cannot rebuild search engine, ignoring changes to {', '.join(changed)}")
            else:
                engine = self.engine_factory(new_config)
        self.config = new_config
        self.step.reconfigure(new_config, engine)


def extend(consensus: str, config: ExtenderConfig, step: ExtensionStep,
           decisions: Optional[DecisionProvider] = None,
           engine_factory: Optional[Callable[[ExtenderConfig], SearchEngine]] = None) -> str:
    return IterationController(config, step, decisions, engine_factory).extend(consensus)
