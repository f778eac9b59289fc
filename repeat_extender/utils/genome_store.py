"""
基因组序列存储：一次性读入内存，之后只读
序列名取FASTA header中第一个空白字符之前的部分
"""

import logging
from typing import Dict, Iterator
import psutil
from Bio import SeqIO

from repeat_extender.exceptions import FileAccessError

logger = logging.getLogger(__name__)


class GenomeStore:
    """内存中的基因组：name -> sequence / length"""

    def __init__(self, sequences: Dict[str, str]):
        self._seqs = dict(sequences)
        self._lengths = {name: len(seq) for name, seq in self._seqs.items()}

    @classmethod
    def from_fasta(cls, genome_file: str) -> 'GenomeStore':
        logger.info(f"Loading genome from {genome_file}")
        sequences = {}
        try:
            with open(genome_file, 'r') as f:
                for record in SeqIO.parse(f, 'fasta'):
                    if record.id in sequences:
                        logger.warning(f"Duplicate sequence name {record.id}, concatenating")
                        sequences[record.id] += str(record.seq)
                    else:
                        sequences[record.id] = str(record.seq)
        except OSError as e:
            raise FileAccessError(genome_file, e.strerror)

        store = cls(sequences)
        rss_gb = psutil.Process().memory_info().rss / (1024**3)
        logger.info(f"Loaded {len(store)} sequences, {store.total_length:,} bp "
                    f"(process memory: {rss_gb:.2f}GB)")
        return store

    def __contains__(self, name: str) -> bool:
        return name in self._seqs

    def __len__(self) -> int:
        return len(self._seqs)

    def __iter__(self) -> Iterator[str]:
        return iter(self._seqs)

    @property
    def total_length(self) -> int:
        return sum(self._lengths.values())

    def length(self, name: str) -> int:
        return self._lengths[name]

    def sequence(self, name: str) -> str:
        return self._seqs[name]

    def substr(self, name: str, offset: int, length: int) -> str:
        """
        取子序列，窗口超出序列边界的部分被截掉

        Args:
            name: 序列名
            offset: 0-based起始位置（可以为负）
            length: 窗口长度
        """
        seq = self._seqs[name]
        start = max(0, offset)
        end = min(len(seq), offset + length)
        if end <= start:
            return ''
        return seq[start:end]
