"""
应用消息模型

- MessageContent 子类: 各种消息内容(文本/Markdown/图片/语音/视频/文件/文本卡片/图文)，
  每种内容知道自己在请求体中的 msgtype 和字段
- MessageBuilder: 链式设置收件人、应用ID和发送选项，build() 时统一校验
- Message: 不可变的待发送消息，to_payload() 生成企业微信接口请求体

使用方式:
    from wecom_agent.message import MessageBuilder, Text

    msg = (
        MessageBuilder()
        .to_users(["robin", "tom"])
        .from_agent(42)
        .build(Text(content="Hello"))
    )
"""

from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from wecom_agent.errors import ValidationError


RECIPIENT_DELIMITER = "|"

# 重复消息检查间隔上限(4小时)
MAX_DUPLICATE_CHECK_INTERVAL = 14400


class MessageType(str, Enum):
    """消息类型枚举(值即请求体中的 msgtype)"""
    TEXT = "text"
    IMAGE = "image"
    VOICE = "voice"
    VIDEO = "video"
    FILE = "file"
    TEXTCARD = "textcard"
    NEWS = "news"
    MARKDOWN = "markdown"


class MessageContent(BaseModel):
    """消息内容基类"""
    model_config = ConfigDict(frozen=True)

    msg_type: ClassVar[MessageType]

    def fragment(self) -> Dict[str, Any]:
        """返回挂在 msgtype 键下的内容"""
        return self.model_dump(mode="json", exclude_none=True)


class Text(MessageContent):
    """
    文本消息

    {"msgtype": "text", "text": {"content": "..."}}
    """
    msg_type: ClassVar[MessageType] = MessageType.TEXT

    content: str = Field(..., min_length=1, description="消息内容，最长2048字节")


class Markdown(MessageContent):
    """Markdown 消息"""
    msg_type: ClassVar[MessageType] = MessageType.MARKDOWN

    content: str = Field(..., min_length=1, description="Markdown内容，最长2048字节")


class Image(MessageContent):
    """图片消息"""
    msg_type: ClassVar[MessageType] = MessageType.IMAGE

    media_id: str = Field(..., min_length=1, description="图片媒体文件id")


class Voice(MessageContent):
    """语音消息"""
    msg_type: ClassVar[MessageType] = MessageType.VOICE

    media_id: str = Field(..., min_length=1, description="语音文件id")


class Video(MessageContent):
    """视频消息"""
    msg_type: ClassVar[MessageType] = MessageType.VIDEO

    media_id: str = Field(..., min_length=1, description="视频媒体文件id")
    title: Optional[str] = Field(None, description="视频标题")
    description: Optional[str] = Field(None, description="视频描述")


class File(MessageContent):
    """文件消息"""
    msg_type: ClassVar[MessageType] = MessageType.FILE

    media_id: str = Field(..., min_length=1, description="文件id")


class TextCard(MessageContent):
    """文本卡片消息"""
    msg_type: ClassVar[MessageType] = MessageType.TEXTCARD

    title: str = Field(..., min_length=1, description="标题")
    description: str = Field(..., min_length=1, description="描述，支持部分html标签")
    url: str = Field(..., min_length=1, description="点击后跳转的链接")
    btntxt: Optional[str] = Field(None, description="按钮文字，默认为“详情”")


class Article(BaseModel):
    """图文消息中的单篇图文"""
    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1, description="标题")
    description: Optional[str] = Field(None, description="描述")
    url: Optional[str] = Field(None, description="点击后跳转的链接")
    picurl: Optional[str] = Field(None, description="图文消息的图片链接")
    appid: Optional[str] = Field(None, description="小程序appid")
    pagepath: Optional[str] = Field(None, description="小程序页面路径")


class News(MessageContent):
    """图文消息，支持1到8条图文"""
    msg_type: ClassVar[MessageType] = MessageType.NEWS

    articles: Tuple[Article, ...] = Field(..., min_length=1, max_length=8)


def _check_fields(
    users: Sequence[str],
    parties: Sequence[str],
    tags: Sequence[str],
    agent_id: Any,
    payload: Any,
    flags: Sequence[Tuple[str, Any]],
    duplicate_check_interval: Any,
) -> None:
    """校验消息字段，不合法时抛出 ValidationError"""
    if not (users or parties or tags):
        raise ValidationError("收件人不可为空")

    for recipient in list(users) + list(parties) + list(tags):
        if not recipient.strip():
            raise ValidationError("收件人ID不可为空字符串")
        if RECIPIENT_DELIMITER in recipient:
            raise ValidationError(f"收件人ID不可包含分隔符 '{RECIPIENT_DELIMITER}': {recipient}")

    if agent_id is None:
        raise ValidationError("AgentID不可为空")
    if isinstance(agent_id, bool) or not isinstance(agent_id, int) or agent_id <= 0:
        raise ValidationError(f"AgentID必须是正整数: {agent_id!r}")

    if payload is None:
        raise ValidationError("消息内容不可为空")
    if not isinstance(payload, MessageContent):
        raise ValidationError(f"不支持的消息内容类型: {type(payload).__name__}")

    for name, flag in flags:
        if isinstance(flag, bool) or flag not in (0, 1):
            raise ValidationError(f"{name} 只能为 0 或 1: {flag!r}")

    if (
        isinstance(duplicate_check_interval, bool)
        or not isinstance(duplicate_check_interval, int)
        or not 0 < duplicate_check_interval <= MAX_DUPLICATE_CHECK_INTERVAL
    ):
        raise ValidationError(
            f"duplicate_check_interval 必须在 1 到 {MAX_DUPLICATE_CHECK_INTERVAL} 秒之间: "
            f"{duplicate_check_interval!r}"
        )


class Message(BaseModel):
    """
    已构建的应用消息(不可变)

    通常通过 MessageBuilder.build() 创建。直接构造时同样会校验收件人、应用ID和发送选项。
    """
    model_config = ConfigDict(frozen=True)

    from_agent: int = Field(..., strict=True)
    to_users: Tuple[str, ...] = ()
    to_parties: Tuple[str, ...] = ()
    to_tags: Tuple[str, ...] = ()
    payload: MessageContent
    safe: int = Field(0, strict=True)
    enable_id_trans: int = Field(0, strict=True)
    enable_duplicate_check: int = Field(0, strict=True)
    duplicate_check_interval: int = Field(1800, strict=True)

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except PydanticValidationError as e:
            raise ValidationError(f"消息不合法: {e}") from e

    @model_validator(mode="after")
    def validate_invariants(self) -> "Message":
        self.check()
        return self

    def check(self) -> None:
        """
        校验消息不变量

        model_copy(update=...) 等方式会绕过构造校验，发送前再次调用。

        Raises:
            ValidationError: 收件人为空、应用ID不合法或发送选项不合法
        """
        _check_fields(
            users=self.to_users,
            parties=self.to_parties,
            tags=self.to_tags,
            agent_id=self.from_agent,
            payload=self.payload,
            flags=(
                ("safe", self.safe),
                ("enable_id_trans", self.enable_id_trans),
                ("enable_duplicate_check", self.enable_duplicate_check),
            ),
            duplicate_check_interval=self.duplicate_check_interval,
        )

    @property
    def msg_type(self) -> MessageType:
        return self.payload.msg_type

    def to_payload(self) -> Dict[str, Any]:
        """生成企业微信 message/send 请求体"""
        body: Dict[str, Any] = {
            "touser": RECIPIENT_DELIMITER.join(self.to_users),
            "toparty": RECIPIENT_DELIMITER.join(self.to_parties),
            "totag": RECIPIENT_DELIMITER.join(self.to_tags),
            "msgtype": self.payload.msg_type.value,
            "agentid": self.from_agent,
            "safe": self.safe,
            "enable_id_trans": self.enable_id_trans,
            "enable_duplicate_check": self.enable_duplicate_check,
            "duplicate_check_interval": self.duplicate_check_interval,
        }
        body[self.payload.msg_type.value] = self.payload.fragment()
        return body


def _as_id_list(ids: Union[str, int, Iterable[Union[str, int]]]) -> List[str]:
    if isinstance(ids, (str, int)):
        ids = [ids]
    return [str(i) for i in ids]


class MessageBuilder:
    """
    消息构建器

    所有 to_*/from_*/with_* 方法只记录设置并返回 self，校验统一在 build() 中进行。
    """

    def __init__(self):
        self._users: List[str] = []
        self._parties: List[str] = []
        self._tags: List[str] = []
        self._agent_id: Optional[int] = None
        self._safe = 0
        self._enable_id_trans = 0
        self._enable_duplicate_check = 0
        self._duplicate_check_interval = 1800

    def to_users(self, users: Union[str, Iterable[str]]) -> "MessageBuilder":
        """成员ID列表，特殊值 "@all" 表示应用可见范围内全部成员"""
        self._users = _as_id_list(users)
        return self

    def to_parties(self, parties: Union[str, int, Iterable[Union[str, int]]]) -> "MessageBuilder":
        """部门ID列表"""
        self._parties = _as_id_list(parties)
        return self

    def to_tags(self, tags: Union[str, int, Iterable[Union[str, int]]]) -> "MessageBuilder":
        """标签ID列表"""
        self._tags = _as_id_list(tags)
        return self

    def from_agent(self, agent_id: int) -> "MessageBuilder":
        self._agent_id = agent_id
        return self

    def with_safe(self, safe: int) -> "MessageBuilder":
        """是否保密消息，0=可分享，1=不可分享且带水印"""
        self._safe = safe
        return self

    def with_enable_id_trans(self, enable_id_trans: int) -> "MessageBuilder":
        self._enable_id_trans = enable_id_trans
        return self

    def with_enable_duplicate_check(self, enable_duplicate_check: int) -> "MessageBuilder":
        self._enable_duplicate_check = enable_duplicate_check
        return self

    def with_duplicate_check_interval(self, duplicate_check_interval: int) -> "MessageBuilder":
        """重复消息检查的时间间隔(秒)，最大不超过4小时"""
        self._duplicate_check_interval = duplicate_check_interval
        return self

    def build(self, payload: MessageContent) -> Message:
        """
        校验并构建消息

        Args:
            payload: 消息内容(Text/Markdown/Image/...)

        Returns:
            Message: 不可变消息

        Raises:
            ValidationError: 收件人为空、应用ID未设置或内容不合法
        """
        _check_fields(
            users=self._users,
            parties=self._parties,
            tags=self._tags,
            agent_id=self._agent_id,
            payload=payload,
            flags=(
                ("safe", self._safe),
                ("enable_id_trans", self._enable_id_trans),
                ("enable_duplicate_check", self._enable_duplicate_check),
            ),
            duplicate_check_interval=self._duplicate_check_interval,
        )

        return Message(
            from_agent=self._agent_id,
            to_users=tuple(self._users),
            to_parties=tuple(self._parties),
            to_tags=tuple(self._tags),
            payload=payload,
            safe=self._safe,
            enable_id_trans=self._enable_id_trans,
            enable_duplicate_check=self._enable_duplicate_check,
            duplicate_check_interval=self._duplicate_check_interval,
        )
