"""
异常定义

所有异常都继承自 WecomError，调用方可以按层级捕获:
- ValidationError: 消息构造不合法(本地检查，不会发起网络请求)
- AuthError: access_token 获取/刷新失败
- SendError: 消息发送失败(VendorError / TransportError)
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from wecom_agent.response import MsgSendResponse


class WecomError(Exception):
    """企业微信客户端异常基类"""
    pass


class ValidationError(WecomError, ValueError):
    """消息构造校验失败"""
    pass


class AuthError(WecomError):
    """access_token 获取失败(凭据被拒绝或网络不可达)"""

    def __init__(self, errcode: int, errmsg: str):
        self.errcode = errcode
        self.errmsg = errmsg
        super().__init__(f"WeCom auth error {errcode}: {errmsg}")


class TokenRefreshTooFrequentError(AuthError):
    """距上次刷新过近，拒绝再次刷新 access_token"""

    ERRCODE = -9

    def __init__(self, seconds_since_last_update: float):
        self.seconds_since_last_update = seconds_since_last_update
        super().__init__(
            self.ERRCODE,
            f"Access token refreshed too frequently, last update {seconds_since_last_update:.1f}s ago",
        )


class SendError(WecomError):
    """消息发送失败基类"""
    pass


class VendorError(SendError):
    """企业微信服务端返回了非零 errcode"""

    def __init__(self, errcode: int, errmsg: str, response: Optional["MsgSendResponse"] = None):
        self.errcode = errcode
        self.errmsg = errmsg
        self.response = response
        super().__init__(f"WeCom API error {errcode}: {errmsg}")


class TransportError(SendError):
    """网络或协议层失败(超时、连接失败、无法解析的响应)"""
    pass
