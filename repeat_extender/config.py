from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import List
import json
import logging

from repeat_extender.exceptions import ConfigurationError, FileAccessError

logger = logging.getLogger(__name__)

# cross_match参数预设：分歧度 -> (矩阵文件, gap_init, gap_ext)
DIVERGENCE_PRESETS = {
    14: ('14p41g.matrix', -33, -6),
    18: ('18p41g.matrix', -30, -6),
    20: ('20p41g.matrix', -28, -6),
    25: ('25p41g.matrix', -25, -5),
}

SUPPORTED_ENGINES = ('wublast', 'rmblast')

# 交互模式下允许修改的参数（外部工具路径除外）
EDITABLE_FIELDS = (
    'step_size', 'engine', 'matrix', 'min_score', 'max_seqs', 'min_seqs',
    'min_len', 'divergence', 'max_n', 'window', 'cm_minscore', 'cm_minmatch',
    'temp_prefix', 'no5p', 'no3p',
)

_TRUE_VALUES = {'1', 'y', 'yes', 't', 'true', 'on'}
_FALSE_VALUES = {'0', 'n', 'no', 'f', 'false', 'off'}


@dataclass
class ExtenderConfig:
    """延伸流程配置参数"""

    # 延伸参数
    step_size: int = 8
    window: int = 100
    max_n: int = 2

    # 比对引擎
    engine: str = 'wublast'
    matrix: str = '14p35g.matrix.4.4'

    # hit过滤
    min_score: int = 200
    min_len: int = 100
    max_seqs: int = 500
    min_seqs: int = 3

    # cross_match参数
    divergence: int = 14
    cm_minscore: int = 200
    cm_minmatch: int = 7

    # 运行模式
    temp_prefix: str = 'temp'
    auto: bool = False
    no5p: bool = False
    no3p: bool = False

    # 外部工具路径
    rmblast_exe: str = 'rmblastn'
    makeblastdb_exe: str = 'makeblastdb'
    wublast_exe: str = '/usr/local/wublast/blastn'
    xdformat_exe: str = '/usr/local/wublast/xdformat'
    cross_match_exe: str = 'cross_match'
    linup_exe: str = 'Linup'
    matrix_dir: str = 'Matrices'

    @property
    def extend_left(self) -> bool:
        return not self.no5p

    @property
    def extend_right(self) -> bool:
        return not self.no3p

    def validate(self):
        """检查配置是否合法，不合法时抛出ConfigurationError"""
        if self.engine not in SUPPORTED_ENGINES:
            raise ConfigurationError(f"search engine not supported: {self.engine}")
        if self.divergence not in DIVERGENCE_PRESETS:
            allowed = ','.join(str(d) for d in sorted(DIVERGENCE_PRESETS))
            raise ConfigurationError(
                f"Wrong divergence value {self.divergence}, use [{allowed}]")
        if self.step_size <= 0:
            raise ConfigurationError(f"step size must be positive, got {self.step_size}")
        if self.min_seqs < 1:
            raise ConfigurationError(f"minseqs must be at least 1, got {self.min_seqs}")
        if self.max_seqs < self.min_seqs:
            raise ConfigurationError(
                f"numseqs ({self.max_seqs}) is smaller than minseqs ({self.min_seqs})")
        for name in ('window', 'max_n', 'min_len'):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} cannot be negative")
        return self

    def cross_match_params(self) -> List[str]:
        """根据分歧度生成cross_match参数"""
        if self.divergence not in DIVERGENCE_PRESETS:
            raise ConfigurationError(
                f"Wrong divergence value {self.divergence}, use [14,18,20,25]")
        matrix_file, gap_init, gap_ext = DIVERGENCE_PRESETS[self.divergence]
        params = [
            '-M', str(Path(self.matrix_dir) / 'crossmatch' / matrix_file),
            '-gap_init', str(gap_init),
            '-gap_ext', str(gap_ext),
            '-minscore', str(self.cm_minscore),
            '-minmatch', str(self.cm_minmatch),
        ]
        logger.debug(f"div={self.divergence}, cm_param={' '.join(params)}")
        return params

    def editable_fields(self) -> List[str]:
        return list(EDITABLE_FIELDS)

    def update(self, name: str, raw_value):
        """按字段类型转换并更新单个参数（交互修改的唯一入口）"""
        field_types = {f.name: f.type for f in fields(self)}
        if name not in field_types:
            raise ConfigurationError(f"unknown parameter: {name}")

        target = field_types[name]
        if isinstance(raw_value, str):
            raw_value = raw_value.strip()
            if target is bool:
                lowered = raw_value.lower()
                if lowered in _TRUE_VALUES:
                    value = True
                elif lowered in _FALSE_VALUES:
                    value = False
                else:
                    raise ConfigurationError(f"{name} expects yes/no, got '{raw_value}'")
            elif target is int:
                try:
                    value = int(raw_value)
                except ValueError:
                    raise ConfigurationError(f"{name} expects an integer, got '{raw_value}'")
            else:
                value = raw_value
        else:
            value = raw_value

        old_value = getattr(self, name)
        setattr(self, name, value)
        if old_value != value:
            logger.info(f"Parameter {name} changed: {old_value} -> {value}")

    def copy(self) -> 'ExtenderConfig':
        return ExtenderConfig(**asdict(self))

    def save(self, filepath: str):
        """保存配置到文件"""
        try:
            with open(filepath, 'w') as f:
                json.dump(asdict(self), f, indent=2)
        except OSError as e:
            raise FileAccessError(filepath, e.strerror)

    @classmethod
    def load(cls, filepath: str):
        """从文件加载配置"""
        try:
            with open(filepath, 'r') as f:
                data = json.load(f)
        except OSError as e:
            raise FileAccessError(filepath, e.strerror)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"invalid configuration file {filepath}: {e}")

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(
                f"unknown parameters in {filepath}: {', '.join(sorted(unknown))}")
        return cls(**data)
