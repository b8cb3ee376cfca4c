import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from redis.exceptions import RedisError

from app.exceptions.scan import StorageUnavailable
from app.schemas.auth import User
from app.services.redis_manager import RedisManager

logger = logging.getLogger(__name__)


class AuthService:
    """
    Phone + password accounts kept in `<namespace>:users`, apart from history keys.
    Access tokens are stateless HS256 JWTs carrying the phone as `uid`.
    """
    ALGORITHM: str = "HS256"
    SALT_SIZE = 16

    def __init__(self, manager: RedisManager, jwt_secret: str, expire_minutes: int = 60 * 24):
        self.manager = manager
        self.jwt_secret = jwt_secret
        self.expire_minutes = expire_minutes

    @property
    def _users_key(self) -> str:
        return self.manager.key("users")

    @classmethod
    def _hash_str(cls, value: str, *, salt: str = None) -> str:
        salt_bytes = bytes.fromhex(salt) if salt else secrets.token_bytes(cls.SALT_SIZE)
        hashed = hashlib.pbkdf2_hmac("sha256", value.encode(), salt_bytes, 100000)
        return f"{salt_bytes.hex()}:{hashed.hex()}"

    @classmethod
    def _verify_str(cls, value: str, stored: str) -> bool:
        salt, _ = stored.split(":", 1)
        return hmac.compare_digest(cls._hash_str(value, salt=salt), stored)

    async def signup(self, phone: str, password: str) -> bool:
        try:
            created = await self.manager.client().hsetnx(self._users_key, phone, self._hash_str(password))
        except RedisError as e:
            raise StorageUnavailable(f"Account store unavailable: {e}") from e
        if created:
            logger.info(f"New account registered: {phone}")
        return bool(created)

    async def login(self, phone: str, password: str) -> Optional[User]:
        try:
            stored = await self.manager.client().hget(self._users_key, phone)
        except RedisError as e:
            raise StorageUnavailable(f"Account store unavailable: {e}") from e
        if stored and self._verify_str(password, stored):
            return User(phone=phone)
        return None

    def create_access_token(self, user: User) -> str:
        expire = datetime.now(timezone.utc) + timedelta(minutes=self.expire_minutes)
        return jwt.encode({"uid": user.phone, "exp": expire}, self.jwt_secret, algorithm=self.ALGORITHM)

    def verify_token(self, token: str) -> Optional[User]:
        try:
            payload = jwt.decode(token, self.jwt_secret, algorithms=[self.ALGORITHM])
        except jwt.InvalidTokenError:
            return None
        uid = payload.get("uid")
        return User(phone=uid) if uid else None
