"""
配置管理模块
从环境变量(可选 .env 文件)加载企业微信应用配置
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


DEFAULT_API_BASE_URL = "https://qyapi.weixin.qq.com/cgi-bin"


@dataclass
class WecomConfig:
    """企业微信应用配置"""
    corp_id: str  # 企业ID
    corp_secret: str  # 应用凭证密钥
    agent_id: Optional[int] = None  # 默认发送应用ID
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = 30  # 请求超时时间（秒）
    token_refresh_margin: float = 300  # 提前刷新 token 的时间（秒）
    token_refresh_backoff: float = 10  # 两次刷新 token 的最小间隔（秒）

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "WecomConfig":
        """从环境变量加载配置，指定 env_file 时先加载该 .env 文件"""
        if env_file:
            load_dotenv(env_file)

        corp_id = os.getenv("WECOM_CORP_ID")
        corp_secret = os.getenv("WECOM_CORP_SECRET")

        if not corp_id or not corp_secret:
            raise ValueError(
                "Missing required environment variables: "
                "WECOM_CORP_ID, WECOM_CORP_SECRET"
            )

        agent_id = os.getenv("WECOM_AGENT_ID")
        fields = cls.__dataclass_fields__

        return cls(
            corp_id=corp_id,
            corp_secret=corp_secret,
            agent_id=int(agent_id) if agent_id else None,
            api_base_url=os.getenv("WECOM_API_BASE_URL", fields['api_base_url'].default),
            request_timeout=float(os.getenv("WECOM_REQUEST_TIMEOUT", str(fields['request_timeout'].default))),
            token_refresh_margin=float(os.getenv("WECOM_TOKEN_REFRESH_MARGIN", str(fields['token_refresh_margin'].default))),
            token_refresh_backoff=float(os.getenv("WECOM_TOKEN_REFRESH_BACKOFF", str(fields['token_refresh_backoff'].default))),
        )

    def validate(self) -> None:
        """验证配置有效性"""
        if not self.corp_id:
            raise ValueError("corp_id must not be empty")
        if not self.corp_secret:
            raise ValueError("corp_secret must not be empty")
        if self.agent_id is not None and self.agent_id <= 0:
            raise ValueError(f"Invalid agent_id: {self.agent_id}")
        if self.request_timeout <= 0:
            raise ValueError(f"Invalid request_timeout: {self.request_timeout}")
        if self.token_refresh_margin < 0 or self.token_refresh_backoff < 0:
            raise ValueError("token refresh margin/backoff must not be negative")
