"""
wecom-agent - 企业微信应用消息发送客户端

使用方式:
    from wecom_agent import WecomAgent, MessageBuilder, Text

    msg = MessageBuilder().to_users(["robin", "tom"]).from_agent(42).build(Text(content="Hello"))
    agent = WecomAgent("your_corpid", "your_secret")
    response = agent.send(msg)
"""

__version__ = "0.1.0"

from .config import WecomConfig
from .client import WecomAgent
from .token import AccessToken, AccessTokenManager
from .message import (
    Article,
    File,
    Image,
    Markdown,
    Message,
    MessageBuilder,
    MessageContent,
    MessageType,
    News,
    Text,
    TextCard,
    Video,
    Voice,
)
from .response import AccessTokenResponse, MsgSendResponse
from .errors import (
    AuthError,
    SendError,
    TokenRefreshTooFrequentError,
    TransportError,
    ValidationError,
    VendorError,
    WecomError,
)

__all__ = [
    "WecomConfig",
    "WecomAgent",
    "AccessToken",
    "AccessTokenManager",
    "Article",
    "File",
    "Image",
    "Markdown",
    "Message",
    "MessageBuilder",
    "MessageContent",
    "MessageType",
    "News",
    "Text",
    "TextCard",
    "Video",
    "Voice",
    "AccessTokenResponse",
    "MsgSendResponse",
    "AuthError",
    "SendError",
    "TokenRefreshTooFrequentError",
    "TransportError",
    "ValidationError",
    "VendorError",
    "WecomError",
]
