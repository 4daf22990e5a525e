"""
测试公共 fixture

HTTP 请求通过注入 MagicMock 会话模拟，不会访问企业微信服务器。
"""

import os
import sys
from unittest.mock import MagicMock

import pytest
import requests

# 添加项目根目录到 path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def make_response(data=None, status_code=200, json_error=None):
    """构造一个模拟的 requests.Response"""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = data
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return response


def token_response(access_token="token-1", expires_in=7200):
    return make_response({
        "errcode": 0,
        "errmsg": "ok",
        "access_token": access_token,
        "expires_in": expires_in,
    })


def send_response(errcode=0, errmsg="ok", **extra):
    data = {"errcode": errcode, "errmsg": errmsg}
    data.update(extra)
    return make_response(data)


@pytest.fixture
def session():
    """模拟的 HTTP 会话，默认 gettoken 成功、message/send 成功"""
    mock_session = MagicMock(spec=requests.Session)
    mock_session.get.return_value = token_response()
    mock_session.post.return_value = send_response(msgid="msg-1")
    return mock_session
