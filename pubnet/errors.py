"""异常类型

所有异常继承 ValueError，调用方可以只捕获 ValueError。
"""


class PubnetError(ValueError):
    """pubnet 基础异常"""


class DatasetError(PubnetError):
    """数据集无法读取或结构不合法"""


class ConfigError(PubnetError):
    """YAML 配置错误"""


class ControlInputError(PubnetError):
    """控件输入无法解析 (力参数 / 节点大小选项)"""
