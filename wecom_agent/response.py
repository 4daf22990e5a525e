"""
企业微信接口响应模型
"""

from typing import List, Optional
from pydantic import BaseModel, Field


# access_token 被服务端判定为无效/过期时的错误码
TOKEN_INVALID_ERRCODES = (40014, 42001)


def _split_ids(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item for item in value.split("|") if item]


class AccessTokenResponse(BaseModel):
    """
    获取 access_token 的返回结果

    示例:
        {"errcode": 0, "errmsg": "ok", "access_token": "accesstoken000001", "expires_in": 7200}
    """
    errcode: int = Field(0, description="错误码，0 表示成功")
    errmsg: str = Field("", description="错误信息")
    access_token: Optional[str] = Field(None, description="获取到的凭证")
    expires_in: Optional[int] = Field(None, description="凭证有效时间(秒)")


class MsgSendResponse(BaseModel):
    """应用消息发送结果"""
    errcode: int = Field(..., description="错误码，0 表示成功")
    errmsg: str = Field("", description="错误信息")
    invaliduser: Optional[str] = Field(None, description="不合法的userid，'|' 分隔")
    invalidparty: Optional[str] = Field(None, description="不合法的partyid，'|' 分隔")
    invalidtag: Optional[str] = Field(None, description="不合法的标签id，'|' 分隔")
    unlicenseduser: Optional[str] = Field(None, description="没有基础接口许可的userid，'|' 分隔")
    msgid: Optional[str] = Field(None, description="消息id，可用于撤回")
    response_code: Optional[str] = Field(None, description="仅模板卡片消息返回")

    @property
    def is_error(self) -> bool:
        return self.errcode != 0

    @property
    def invalid_users(self) -> List[str]:
        return _split_ids(self.invaliduser)

    @property
    def invalid_parties(self) -> List[str]:
        return _split_ids(self.invalidparty)

    @property
    def invalid_tags(self) -> List[str]:
        return _split_ids(self.invalidtag)

    @property
    def unlicensed_users(self) -> List[str]:
        return _split_ids(self.unlicenseduser)
