"""
重复序列延伸流程的异常类型
所有致命错误都继承自ExtenderError，由命令行入口统一捕获并退出
"""


class ExtenderError(Exception):
    """Base exception for the extender"""


class ConfigurationError(ExtenderError):
    """Unsupported engine, divergence level or invalid option value"""


class FileAccessError(ExtenderError):
    """A required file could not be opened or written"""

    def __init__(self, path, reason=None):
        self.path = str(path)
        self.reason = reason
        message = f"cannot access {self.path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class SearchEngineError(ExtenderError):
    """The search engine reported a non-empty status"""

    def __init__(self, status):
        self.status = status
        super().__init__(f"Search returned an error: {status}")


class ExternalToolError(ExtenderError):
    """cross_match, Linup or an index builder exited abnormally"""

    def __init__(self, tool, returncode=None, stderr=None):
        self.tool = tool
        self.returncode = returncode
        self.stderr = (stderr or '').strip()
        message = f"{tool} failed"
        if returncode is not None:
            message += f" (exit code {returncode})"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)
