"""模型基类 -- 持久化格式统一使用 camelCase 字段名"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """序列化输出 camelCase，输入同时接受 camelCase 与 snake_case"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
