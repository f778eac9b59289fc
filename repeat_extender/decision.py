"""
迭代之间的人工决策：停止 / 继续 / 修改参数
自动模式下始终继续；交互模式从标准输入读取选择
"""

import sys
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, TextIO, TYPE_CHECKING

from repeat_extender.config import ExtenderConfig
from repeat_extender.exceptions import ConfigurationError

if TYPE_CHECKING:
    from repeat_extender.controller import ExtensionResult

logger = logging.getLogger(__name__)


class Action(Enum):
    STOP = 'stop'
    CONTINUE = 'continue'
    MODIFY = 'modify'


@dataclass
class Decision:
    action: Action
    config: Optional[ExtenderConfig] = None

    @classmethod
    def stop(cls):
        return cls(Action.STOP)

    @classmethod
    def proceed(cls):
        return cls(Action.CONTINUE)

    @classmethod
    def modify(cls, config: ExtenderConfig):
        return cls(Action.MODIFY, config)


@dataclass
class IterationState:
    iteration: int
    consensus: str
    result: 'ExtensionResult'
    config: ExtenderConfig


class DecisionProvider(ABC):

    @abstractmethod
    def decide(self, state: IterationState) -> Decision:
        ...


class AutoDecisionProvider(DecisionProvider):
    """非交互模式"""

    def decide(self, state: IterationState) -> Decision:
        return Decision.proceed()


class ConsolePrompt(DecisionProvider):
    """
    交互模式：显示延伸一侧的比对块，然后询问 Stop|Continue|Modify
    选择Modify时逐个询问可修改的参数，直接回车保留原值
    """

    def __init__(self, stdin: TextIO = None, stdout: TextIO = None):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout

    def _print(self, text: str = '', end: str = '\n'):
        self.stdout.write(text + end)
        self.stdout.flush()

    def _readline(self) -> Optional[str]:
        line = self.stdin.readline()
        if line == '':
            return None
        return line.rstrip('\r\n')

    def decide(self, state: IterationState) -> Decision:
        self._print(f"ITER #{state.iteration}")
        left_block, right_block = state.result.alignment_blocks()

        if state.config.extend_left:
            self._print(f"LEFT BLOCK:\n{left_block}")
            self._print("PRESS ANY KEY TO CONTINUE")
            if self._readline() is None:
                return Decision.stop()
        if state.config.extend_right:
            self._print(f"RIGHT BLOCK:\n{right_block}")
            self._print("PRESS ANY KEY TO CONTINUE")
            if self._readline() is None:
                return Decision.stop()

        self._print("SELECT: Stop|Continue|Modify")
        answer = self._readline()
        if answer is None:
            logger.info("End of input, stopping")
            return Decision.stop()

        answer = answer.strip().lower()
        if answer.startswith('s'):
            return Decision.stop()
        if answer.startswith('c'):
            return Decision.proceed()
        new_config = self._edit(state.config)
        if new_config is None:
            logger.info("End of input while editing parameters, stopping")
            return Decision.stop()
        return Decision.modify(new_config)

    def _edit(self, config: ExtenderConfig) -> Optional[ExtenderConfig]:
        """逐个询问参数，输入结束时返回None"""
        new_config = config.copy()
        self._print("Changing parameters:")
        for name in new_config.editable_fields():
            self._print(f"   {name} [{getattr(new_config, name)}] : ", end='')
            answer = self._readline()
            if answer is None:
                self._print()
                return None
            if not answer.strip():
                continue
            try:
                new_config.update(name, answer)
            except ConfigurationError as e:
                self._print(f"   invalid value, keeping {getattr(new_config, name)}: {e}")
        return new_config
