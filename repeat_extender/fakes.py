"""测试用的假搜索引擎、假共识构建器和小型基因组"""

from collections import Counter
from typing import Dict, List

from repeat_extender.consensus_builder import ConsensusBuilder, ConsensusResult
from repeat_extender.search_engines import SearchEngine, make_hit
from repeat_extender.utils.sequence_utils import AMBIGUOUS_BASE


class FakeSearchEngine(SearchEngine):
    """按query文件中的序列返回预设的hits"""

    name = 'fake'

    def __init__(self, hits_by_query: Dict[str, list] = None, status=None):
        super().__init__('fake-blast')
        self.hits_by_query = hits_by_query or {}
        self.status = status
        self.queries: List[str] = []

    def index_command(self, genome_file):
        return ['true']

    def search_command(self):
        return ['true']

    def parse_output(self, output):
        return []

    def search(self):
        with open(self.query) as f:
            seq = ''.join(line.strip() for line in f if not line.startswith('>'))
        self.queries.append(seq)
        if self.status:
            return self.status, []
        return None, list(self.hits_by_query.get(seq, []))


class FakeConsensusBuilder(ConsensusBuilder):
    """
    在每条候选序列中定位未加N的共识序列，取出占位位置上的碱基后逐列投票
    """

    def __init__(self, step_size: int, override: str = None):
        self.step_size = step_size
        self.override = override
        self.calls = []

    def build_consensus(self, padded_consensus, candidates):
        self.calls.append((padded_consensus, list(candidates)))
        if self.override is not None:
            return ConsensusResult(self.override, report=f"consensus 1 {self.override} 1\n")

        step = self.step_size
        placeholder = AMBIGUOUS_BASE * step
        if padded_consensus.startswith(placeholder):
            core, left = padded_consensus[step:], True
        else:
            core, left = padded_consensus[:-step], False

        columns = [Counter() for _ in range(step)]
        for seq in candidates:
            idx = seq.find(core)
            if idx < 0:
                continue
            if left:
                flank = seq[max(0, idx - step):idx].rjust(step, AMBIGUOUS_BASE)
            else:
                end = idx + len(core)
                flank = seq[end:end + step].ljust(step, AMBIGUOUS_BASE)
            for i, base in enumerate(flank):
                columns[i][base] += 1

        ext = ''.join(c.most_common(1)[0][0] if c else AMBIGUOUS_BASE for c in columns)
        consensus = ext + core if left else core + ext
        report = (f"rep0 1 {padded_consensus}\nconsensus 1 {consensus} {len(consensus)}\n"
                  f"\nlast block {'left' if left else 'right'}\n")
        return ConsensusResult(consensus, report=report)


# 左侧hit覆盖chr1全长，右侧hit的提取窗口落在chr2的ACGTACGTGGGG上
DEMO_GENOME = {
    'chr1': 'TTTTACGTACGTGGGG',
    'chr2': 'CCCCCCCCCC' + 'ACGTACGTGGGG' + 'CC',
}


def demo_hits():
    left_hit = make_hit('repeat', 1, 8, 'chr1', 2, 14, 500)
    right_hit = make_hit('repeat', 1, 8, 'chr2', 1, 10, 500)
    return [left_hit, right_hit]
