"""
搜索引擎封装：RMBlast和WU-BLAST
统一接口 set_matrix / set_query / set_subject / search() -> (status, hits)
status为None表示成功，否则为引擎返回的错误信息
"""

import os
import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from repeat_extender.config import ExtenderConfig
from repeat_extender.exceptions import ConfigurationError, ExternalToolError

logger = logging.getLogger(__name__)

REVERSE_ORIENTATIONS = ('C', '-', 'R')


@dataclass(frozen=True)
class HitRecord:
    """一条共识序列(query)到基因组(subject)的比对"""
    query_name: str
    query_start: int
    query_end: int
    subject_name: str
    subject_start: int
    subject_end: int
    orientation: str
    score: float

    @property
    def is_reverse(self) -> bool:
        return self.orientation in REVERSE_ORIENTATIONS

    @property
    def hit_length(self) -> int:
        return self.subject_end - self.subject_start


def make_hit(query_name, query_start, query_end, subject_name,
             subject_start, subject_end, score, reverse=False) -> HitRecord:
    """构建HitRecord，坐标统一为start <= end，负链标记为'C'"""
    query_start, query_end = int(query_start), int(query_end)
    subject_start, subject_end = int(subject_start), int(subject_end)
    # 只有一侧坐标反向时为负链
    reverse = reverse or ((query_start > query_end) != (subject_start > subject_end))
    query_start, query_end = sorted((query_start, query_end))
    subject_start, subject_end = sorted((subject_start, subject_end))
    return HitRecord(
        query_name=query_name,
        query_start=query_start,
        query_end=query_end,
        subject_name=subject_name,
        subject_start=subject_start,
        subject_end=subject_end,
        orientation='C' if reverse else '+',
        score=float(score),
    )


class SearchEngine(ABC):
    """比对引擎基类"""

    name = None
    index_suffixes = ()

    def __init__(self, path_to_engine: str):
        self.path_to_engine = path_to_engine
        self.matrix = None
        self.query = None
        self.subject = None

    def set_matrix(self, matrix: str):
        self.matrix = matrix

    def set_query(self, query: str):
        self.query = query

    def set_subject(self, subject: str):
        self.subject = subject

    def has_index(self, genome_file: str) -> bool:
        return all(os.path.exists(f"{genome_file}{suffix}") for suffix in self.index_suffixes)

    def ensure_index(self, genome_file: str):
        """索引不存在时生成"""
        if self.has_index(genome_file):
            return
        logger.info(f"missing indexes for {genome_file}, generating them")
        cmd = self.index_command(genome_file)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise ExternalToolError(cmd[0], stderr=str(e))
        if result.returncode != 0:
            raise ExternalToolError(cmd[0], result.returncode, result.stderr)

    def search(self) -> Tuple[Optional[str], List[HitRecord]]:
        if not self.query or not self.subject:
            return "query and subject must be set before searching", []

        cmd = self.search_command()
        logger.debug(f"Running {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            return f"cannot run {cmd[0]}: {e}", []

        if result.returncode != 0:
            status = result.stderr.strip() or f"{cmd[0]} exited with code {result.returncode}"
            return status, []

        hits = self.parse_output(result.stdout)
        return None, hits

    @abstractmethod
    def index_command(self, genome_file: str) -> List[str]:
        ...

    @abstractmethod
    def search_command(self) -> List[str]:
        ...

    @abstractmethod
    def parse_output(self, output: str) -> List[HitRecord]:
        ...


class RMBlastSearchEngine(SearchEngine):
    """NCBI rmblastn，表格输出(-outfmt 6)"""

    name = 'rmblast'
    matrix_subdir = ('ncbi', 'nt')
    index_suffixes = ('.nhr', '.nin', '.nsq')
    outfmt = '6 qseqid qstart qend sseqid sstart send score'

    def __init__(self, path_to_engine: str, makeblastdb: str = 'makeblastdb',
                 gap_init: int = 20, gap_ext: int = 5):
        super().__init__(path_to_engine)
        self.makeblastdb = makeblastdb
        self.gap_init = gap_init
        self.gap_ext = gap_ext

    def index_command(self, genome_file: str) -> List[str]:
        return [self.makeblastdb, '-in', genome_file, '-dbtype', 'nucl']

    def search_command(self) -> List[str]:
        cmd = [
            self.path_to_engine,
            '-query', self.query,
            '-db', self.subject,
            '-outfmt', self.outfmt,
            '-gapopen', str(self.gap_init),
            '-gapextend', str(self.gap_ext),
            '-dust', 'no',
        ]
        if self.matrix:
            cmd.extend(['-matrix', self.matrix])
        return cmd

    def parse_output(self, output: str) -> List[HitRecord]:
        hits = []
        for line in output.splitlines():
            if not line or line.startswith('#'):
                continue
            fields = line.split('\t')
            if len(fields) < 7:
                logger.warning(f"Skipping malformed rmblast line: {line}")
                continue
            qname, qstart, qend, sname, sstart, send, score = fields[:7]
            hits.append(make_hit(qname, qstart, qend, sname, sstart, send, score))
        return hits


class WUBlastSearchEngine(SearchEngine):
    """WU-BLAST blastn，表格输出(-mformat 2)"""

    name = 'wublast'
    matrix_subdir = ('wublast', 'nt')
    index_suffixes = ('.xnd', '.xns', '.xnt')

    def __init__(self, path_to_engine: str, xdformat: str = 'xdformat',
                 gap_init: int = 20, gap_ext: int = 5):
        super().__init__(path_to_engine)
        self.xdformat = xdformat
        self.gap_init = gap_init
        self.gap_ext = gap_ext

    def index_command(self, genome_file: str) -> List[str]:
        return [self.xdformat, '-n', genome_file]

    def search_command(self) -> List[str]:
        cmd = [
            self.path_to_engine, self.subject, self.query,
            '-mformat', '2',
            f'Q={self.gap_init}', f'R={self.gap_ext}',
            '-warnings',
        ]
        if self.matrix:
            cmd.extend(['-matrix', self.matrix])
        return cmd

    def parse_output(self, output: str) -> List[HitRecord]:
        # mformat 2: qid sid E N Sprime S alignlen nident npos nmism pcident pcpos
        #            qgaps qgaplen sgaps sgaplen qframe qstart qend sframe sstart send
        hits = []
        for line in output.splitlines():
            if not line or line.startswith('#'):
                continue
            fields = line.split()
            if len(fields) < 22:
                logger.warning(f"Skipping malformed wublast line: {line}")
                continue
            reverse = fields[19].startswith('-')
            hits.append(make_hit(fields[0], fields[17], fields[18], fields[1],
                                 fields[20], fields[21], fields[5], reverse=reverse))
        return hits


def create_search_engine(config: ExtenderConfig) -> SearchEngine:
    """根据配置选择搜索引擎"""
    if config.engine == 'rmblast':
        engine = RMBlastSearchEngine(config.rmblast_exe, makeblastdb=config.makeblastdb_exe)
    elif config.engine == 'wublast':
        engine = WUBlastSearchEngine(config.wublast_exe, xdformat=config.xdformat_exe)
    else:
        raise ConfigurationError(f"search engine not supported: {config.engine}")

    matrix_path = Path(config.matrix_dir).joinpath(*engine.matrix_subdir, config.matrix)
    engine.set_matrix(str(matrix_path))
    logger.info(f"Using {engine.name} search engine ({engine.path_to_engine}), matrix {matrix_path}")
    return engine
