"""
侧翼共识构建：cross_match比对 + Linup生成多序列比对共识

输入文件（前缀由temp_prefix决定，每次迭代覆盖）：
    <temp>.rep.fa     参考序列rep0（带N占位的共识序列）
    <temp>.repseq.fa  候选侧翼序列rep1..repN
输出：
    <temp>.cm_out     cross_match比对结果
    <temp>.ali        Linup比对报告，以'consensus'开头的行组成共识
"""

import re
import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple

from repeat_extender.config import ExtenderConfig
from repeat_extender.exceptions import ExternalToolError, FileAccessError
from repeat_extender.utils.sequence_utils import AMBIGUOUS_BASE, write_records

logger = logging.getLogger(__name__)

LEFT = 'left'
RIGHT = 'right'

CONSENSUS_MARKER = 'consensus'
GAP_CHARS = '-'

_LEADING_FIELDS = re.compile(r'^consensus\s+\d+\s+')
_TRAILING_POS = re.compile(r'\s+\d+$')


@dataclass
class ConsensusResult:
    consensus: str
    report: str = ''

    def blocks(self) -> List[str]:
        """比对报告按空行切分的块"""
        return [b for b in re.split(r'\n\s*\n', self.report) if b.strip()]

    def edge_blocks(self) -> Tuple[str, str]:
        blocks = self.blocks()
        if not blocks:
            return '', ''
        return blocks[0], blocks[-1]


def pad_consensus(consensus: str, step_size: int, side: str) -> str:
    """在延伸一侧加上step_size个N作为占位"""
    placeholder = AMBIGUOUS_BASE * step_size
    if side == LEFT:
        return placeholder + consensus
    if side == RIGHT:
        return consensus + placeholder
    raise ValueError(f"unknown side: {side}")


def extension_fragment(consensus: str, step_size: int, side: str) -> str:
    """从共识行中取出新延伸的部分（去掉gap后左侧取前缀，右侧取后缀）"""
    consensus = consensus.replace(GAP_CHARS, '')
    if side == LEFT:
        return consensus[:step_size]
    if side == RIGHT:
        return consensus[-step_size:] if step_size > 0 else ''
    raise ValueError(f"unknown side: {side}")


def parse_alignment_report(report: str) -> str:
    """拼接Linup报告中所有consensus行，去掉坐标列和gap"""
    pieces = []
    for line in report.splitlines():
        line = line.rstrip('\n')
        if not line.startswith(CONSENSUS_MARKER):
            continue
        line = _LEADING_FIELDS.sub('', line)
        line = _TRAILING_POS.sub('', line)
        pieces.append(line.replace(GAP_CHARS, ''))
    return ''.join(pieces)


class ConsensusBuilder(ABC):
    """多序列比对共识工具的接口"""

    def configure(self, config: ExtenderConfig):
        pass

    @abstractmethod
    def build_consensus(self, padded_consensus: str, candidates: Sequence[str]) -> ConsensusResult:
        ...


class CrossMatchLinupBuilder(ConsensusBuilder):
    """cross_match + Linup"""

    def __init__(self, config: ExtenderConfig):
        self.config = config

    def configure(self, config: ExtenderConfig):
        self.config = config

    @property
    def ref_file(self) -> str:
        return f"{self.config.temp_prefix}.rep.fa"

    @property
    def seqs_file(self) -> str:
        return f"{self.config.temp_prefix}.repseq.fa"

    @property
    def cm_out_file(self) -> str:
        return f"{self.config.temp_prefix}.cm_out"

    @property
    def ali_file(self) -> str:
        return f"{self.config.temp_prefix}.ali"

    @property
    def linup_matrix(self) -> str:
        return str(Path(self.config.matrix_dir) / 'linup' / 'nt' / 'linupmatrix')

    def build_consensus(self, padded_consensus: str, candidates: Sequence[str]) -> ConsensusResult:
        write_records([('rep0', padded_consensus)], self.ref_file)
        write_records([(f"rep{i}", seq) for i, seq in enumerate(candidates, 1)], self.seqs_file)

        cm_cmd = [self.config.cross_match_exe, self.seqs_file, self.ref_file]
        cm_cmd.extend(self.config.cross_match_params())
        cm_cmd.append('-alignments')
        self._run_to_file(cm_cmd, self.cm_out_file)

        linup_cmd = [self.config.linup_exe, self.cm_out_file, self.linup_matrix]
        self._run_to_file(linup_cmd, self.ali_file)

        try:
            with open(self.ali_file, 'r') as f:
                report = f.read()
        except OSError as e:
            raise FileAccessError(self.ali_file, e.strerror)

        consensus = parse_alignment_report(report)
        logger.debug(f"Consensus from {len(candidates)} sequences: {len(consensus)} bp")
        return ConsensusResult(consensus=consensus, report=report)

    def _run_to_file(self, cmd: List[str], output_file: str):
        logger.debug(f"Running {' '.join(cmd)} > {output_file}")
        try:
            out = open(output_file, 'w')
        except OSError as e:
            raise FileAccessError(output_file, e.strerror)
        with out:
            try:
                result = subprocess.run(cmd, stdout=out, stderr=subprocess.PIPE, text=True)
            except OSError as e:
                raise ExternalToolError(cmd[0], stderr=str(e))
        if result.returncode != 0:
            raise ExternalToolError(cmd[0], result.returncode, result.stderr)
