import logging
from typing import List, Tuple
from Bio import SeqIO
from Bio.Seq import Seq

from repeat_extender.exceptions import FileAccessError

logger = logging.getLogger(__name__)

AMBIGUOUS_BASE = 'N'
FASTA_LINE_WIDTH = 80


def reverse_complement(seq: str) -> str:
    """获取序列的反向互补"""
    return str(Seq(seq).reverse_complement())


def count_ambiguous(seq: str) -> int:
    """统计序列中的N碱基数量"""
    return seq.upper().count(AMBIGUOUS_BASE)


def read_consensus(fasta_file: str) -> Tuple[str, str]:
    """
    读取共识序列文件

    Returns:
        (header, sequence)，header不含'>'
    """
    logger.debug(f"reading file {fasta_file}")
    try:
        with open(fasta_file, 'r') as f:
            records = list(SeqIO.parse(f, 'fasta'))
    except OSError as e:
        raise FileAccessError(fasta_file, e.strerror)

    if not records:
        raise FileAccessError(fasta_file, "no FASTA records found")
    if len(records) > 1:
        logger.warning(f"{fasta_file} holds {len(records)} records, only {records[0].id} is extended")

    record = records[0]
    return record.description, str(record.seq)


def write_fasta(header: str, sequence: str, fasta_file: str, width: int = FASTA_LINE_WIDTH):
    """写出单条FASTA记录，序列按固定宽度折行"""
    logger.debug(f"writing file {fasta_file}")
    lines = [f">{header}"]
    lines.extend(sequence[i:i + width] for i in range(0, len(sequence), width))
    try:
        with open(fasta_file, 'w') as f:
            f.write('\n'.join(lines) + '\n')
    except OSError as e:
        raise FileAccessError(fasta_file, e.strerror)


def write_records(records: List[Tuple[str, str]], fasta_file: str):
    """写出多条序列（单行序列，供外部工具读取）"""
    try:
        with open(fasta_file, 'w') as f:
            for seq_id, sequence in records:
                f.write(f">{seq_id}\n{sequence}\n")
    except OSError as e:
        raise FileAccessError(fasta_file, e.strerror)
