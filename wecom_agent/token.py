"""
Access Token 管理模块
负责 token 的获取、缓存和自动刷新

token 只保存在内存中。所有读写都经过同一把锁，刷新在持锁期间完成，
并发调用方在拿到锁后会重新检查有效性，因此同一次过期只会触发一次刷新。
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from wecom_agent.config import DEFAULT_API_BASE_URL
from wecom_agent.errors import AuthError, TokenRefreshTooFrequentError
from wecom_agent.response import AccessTokenResponse


logger = logging.getLogger(__name__)


@dataclass
class AccessToken:
    """企业微信鉴权凭据"""
    value: Optional[str] = None
    fetched_at: float = 0.0  # Unix timestamp
    expires_in: float = 7200

    @property
    def expires_at(self) -> float:
        return self.fetched_at + self.expires_in

    def update(self, value: str, fetched_at: float, expires_in: float) -> None:
        self.value = value
        self.fetched_at = fetched_at
        self.expires_in = expires_in

    def expired(self, now: float) -> bool:
        return now >= self.expires_at

    def expires_within(self, seconds: float, now: float) -> bool:
        """凭据将在 seconds 秒内过期(已过期也返回 True)"""
        return now >= self.expires_at - seconds

    def clear(self) -> None:
        self.value = None
        self.expires_in = 0


class AccessTokenManager:
    """Access Token 管理器"""

    def __init__(
        self,
        corp_id: str,
        corp_secret: str,
        session: requests.Session,
        api_base_url: str = DEFAULT_API_BASE_URL,
        request_timeout: float = 30,
        refresh_margin: float = 300,
        refresh_backoff: float = 10,
    ):
        self.corp_id = corp_id
        self.corp_secret = corp_secret
        self.session = session
        self.api_base_url = api_base_url
        self.request_timeout = request_timeout
        self.refresh_margin = refresh_margin
        self.refresh_backoff = refresh_backoff

        self._token = AccessToken()
        self._lock = threading.Lock()

    def _margin(self) -> float:
        """提前刷新的时间，不超过 token 有效期的一半"""
        return min(self.refresh_margin, self._token.expires_in / 2)

    def _is_token_valid(self, now: float) -> bool:
        """检查缓存的 token 是否有效(提前 refresh_margin 秒视为过期)"""
        return (
            self._token.value is not None
            and not self._token.expired(now)
            and not self._token.expires_within(self._margin(), now)
        )

    def _in_backoff(self, now: float) -> bool:
        return now - self._token.fetched_at < self.refresh_backoff

    def _fetch_new_token(self, timeout: Optional[float] = None) -> str:
        """从企业微信 API 获取新的 access token，调用方必须持有锁"""
        # 企业微信对高频的 gettoken 调用有风控，限制刷新频率
        now = time.time()
        if self._in_backoff(now):
            seconds_since_last_update = now - self._token.fetched_at
            logger.error(f"Access token refresh refused, last update {seconds_since_last_update:.1f}s ago")
            raise TokenRefreshTooFrequentError(seconds_since_last_update)

        url = f"{self.api_base_url}/gettoken"
        params = {
            "corpid": self.corp_id,
            "corpsecret": self.corp_secret,
        }

        logger.info("Fetching new access token from WeCom API")

        try:
            response = self.session.get(
                url,
                params=params,
                timeout=timeout if timeout is not None else self.request_timeout,
            )
            response.raise_for_status()
            data = AccessTokenResponse.model_validate(response.json())
        except requests.RequestException as e:
            logger.error(f"Failed to fetch access token: {e}")
            raise AuthError(-1, f"Failed to fetch access token: {e}") from e
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Unexpected gettoken response: {e}")
            raise AuthError(-1, f"Unexpected gettoken response: {e}") from e

        if data.errcode != 0:
            logger.error(f"WeCom rejected credentials: {data.errcode} - {data.errmsg}")
            raise AuthError(data.errcode, data.errmsg or "Unknown error")

        if not data.access_token or not data.expires_in:
            raise AuthError(-1, "gettoken response is missing access_token or expires_in")

        self._token.update(data.access_token, time.time(), data.expires_in)

        logger.info(f"Successfully fetched new access token (expires in {data.expires_in}s)")
        return data.access_token

    def get_token(self, timeout: Optional[float] = None) -> str:
        """
        获取有效的 access token
        如果缓存有效则返回缓存，否则获取新 token

        Raises:
            AuthError: 获取失败
        """
        with self._lock:
            now = time.time()
            if self._is_token_valid(now):
                logger.debug("Using cached access token")
                return self._token.value

            # 尚未真正过期但处于刷新间隔内，继续使用当前 token
            if self._token.value is not None and not self._token.expired(now) and self._in_backoff(now):
                logger.debug("Access token near expiry, refresh deferred by backoff")
                return self._token.value

            if self._token.value is not None:
                logger.warning("Access token expired or about to expire, refreshing...")
            return self._fetch_new_token(timeout)

    def refresh(self, stale_token: Optional[str] = None, timeout: Optional[float] = None) -> str:
        """
        强制刷新 access token

        Args:
            stale_token: 被服务端拒绝的 token。若其他调用方已经将其替换为有效 token，
                直接返回新 token 而不重复刷新
            timeout: 请求超时时间（秒）
        """
        with self._lock:
            if (
                stale_token is not None
                and self._token.value != stale_token
                and self._is_token_valid(time.time())
            ):
                logger.debug("Access token already refreshed by another caller")
                return self._token.value

            return self._fetch_new_token(timeout)

    def invalidate(self) -> None:
        """使当前 token 失效，强制下次刷新"""
        with self._lock:
            logger.info("Invalidating current access token")
            self._token.clear()
