"""
企业微信应用消息客户端

封装企业微信 API 调用,负责:
1. Access Token 管理(创建时立即获取，发送前检查有效期)
2. 应用消息发送
3. 响应解析与错误映射
"""

import logging
from typing import Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from wecom_agent.config import DEFAULT_API_BASE_URL, WecomConfig
from wecom_agent.errors import AuthError, TransportError, ValidationError, VendorError
from wecom_agent.message import Message, MessageBuilder
from wecom_agent.response import TOKEN_INVALID_ERRCODES, MsgSendResponse
from wecom_agent.token import AccessTokenManager

logger = logging.getLogger(__name__)


class WecomAgent:
    """
    企业微信应用(agent)客户端

    同一个实例可以被多个线程同时调用 send()，access_token 的刷新由
    AccessTokenManager 串行化。
    """

    def __init__(
        self,
        corp_id: str,
        secret: str,
        api_base_url: str = DEFAULT_API_BASE_URL,
        request_timeout: float = 30,
        refresh_margin: float = 300,
        refresh_backoff: float = 10,
        default_agent_id: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        初始化客户端并立即获取 access_token

        Args:
            corp_id: 企业ID
            secret: 应用Secret
            api_base_url: API基础URL
            request_timeout: 请求超时时间(秒)
            refresh_margin: 提前刷新 token 的时间(秒)
            refresh_backoff: 两次刷新 token 的最小间隔(秒)
            default_agent_id: new_message() 预填的应用ID
            session: 复用的 HTTP 会话(不传则新建)

        Raises:
            AuthError: 凭据被拒绝或网络不可达
        """
        self.corp_id = corp_id
        self.api_base_url = api_base_url
        self.request_timeout = request_timeout
        self.default_agent_id = default_agent_id
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()

        self.token_manager = AccessTokenManager(
            corp_id,
            secret,
            self.session,
            api_base_url=api_base_url,
            request_timeout=request_timeout,
            refresh_margin=refresh_margin,
            refresh_backoff=refresh_backoff,
        )
        try:
            self.token_manager.get_token()
        except AuthError:
            if self._owns_session:
                self.session.close()
            raise
        logger.info(f"WeCom agent client initialized for corp {corp_id}")

    @classmethod
    def from_config(cls, config: WecomConfig, session: Optional[requests.Session] = None) -> "WecomAgent":
        """根据 WecomConfig 创建客户端"""
        config.validate()
        return cls(
            config.corp_id,
            config.corp_secret,
            api_base_url=config.api_base_url,
            request_timeout=config.request_timeout,
            refresh_margin=config.token_refresh_margin,
            refresh_backoff=config.token_refresh_backoff,
            default_agent_id=config.agent_id,
            session=session,
        )

    def new_message(self) -> MessageBuilder:
        """返回一个预填了默认应用ID的消息构建器"""
        builder = MessageBuilder()
        if self.default_agent_id is not None:
            builder.from_agent(self.default_agent_id)
        return builder

    def _post_message(self, access_token: str, body: dict, timeout: Optional[float]) -> MsgSendResponse:
        """发送一次 message/send 请求并解析响应"""
        url = f"{self.api_base_url}/message/send"

        try:
            response = self.session.post(
                url,
                params={"access_token": access_token},
                json=body,
                timeout=timeout if timeout is not None else self.request_timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Failed to send message: {e}")
            raise TransportError(f"Failed to send message: {e}") from e

        try:
            return MsgSendResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Unparseable message/send response (HTTP {response.status_code}): {e}")
            raise TransportError(
                f"Unparseable message/send response (HTTP {response.status_code})"
            ) from e

    def send(self, message: Message, timeout: Optional[float] = None) -> MsgSendResponse:
        """
        发送应用消息

        Args:
            message: MessageBuilder.build() 构建的消息
            timeout: 本次调用的请求超时时间(秒)，不传则使用客户端配置

        Returns:
            MsgSendResponse: 发送结果(可能包含 invaliduser 等部分失败信息)

        Raises:
            ValidationError: message 不是 Message 或字段不合法(收件人为空、应用ID不合法等)
            AuthError: access_token 获取失败
            VendorError: 企业微信返回非零 errcode
            TransportError: 网络或协议层失败
        """
        if not isinstance(message, Message):
            raise ValidationError(f"Expected a built Message, got {type(message).__name__}")
        message.check()

        body = message.to_payload()
        access_token = self.token_manager.get_token(timeout)

        logger.info(f"Sending message: type={message.msg_type.value}, to={body['touser'][:20] or 'N/A'}")
        response = self._post_message(access_token, body, timeout)

        # 企业微信服务器主动弃用了当前 token
        if response.errcode in TOKEN_INVALID_ERRCODES:
            logger.warning(f"Access token rejected (errcode={response.errcode}), refreshing...")
            access_token = self.token_manager.refresh(stale_token=access_token, timeout=timeout)
            logger.debug("Resending message with refreshed token")
            response = self._post_message(access_token, body, timeout)

        if response.is_error:
            logger.error(f"WeCom API error: {response.errcode} - {response.errmsg}")
            raise VendorError(response.errcode, response.errmsg, response)

        if response.invaliduser or response.invalidparty or response.invalidtag:
            logger.warning(
                f"Message {response.msgid} partially delivered: "
                f"invaliduser={response.invaliduser}, invalidparty={response.invalidparty}, "
                f"invalidtag={response.invalidtag}"
            )

        logger.info(f"Message sent successfully, msgid: {response.msgid}")
        return response

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "WecomAgent":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
