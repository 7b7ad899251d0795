# app/config/redis_config.py

import os
import logging
import redis
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("redis")


class RedisConfig:
    """Connection to the Redis instance that holds slot locks when LOCK_BACKEND=redis"""

    def __init__(self):
        self.url = os.getenv("REDIS_URL")
        self.host = os.getenv("REDIS_HOST", "localhost")
        self.port = int(os.getenv("REDIS_PORT", 6379))
        self.password = os.getenv("REDIS_PASSWORD") or None
        self.db = int(os.getenv("REDIS_LOCK_DB", 0))
        self.socket_timeout = int(os.getenv("REDIS_SOCKET_TIMEOUT", 5))

        self._client: Optional[redis.Redis] = None

    def describe(self) -> str:
        return self.url or f"{self.host}:{self.port}/{self.db}"

    def get_client(self) -> redis.Redis:
        if self._client is None:
            if self.url:
                self._client = redis.Redis.from_url(self.url, socket_timeout=self.socket_timeout)
            else:
                self._client = redis.Redis(
                    host=self.host,
                    port=self.port,
                    password=self.password,
                    db=self.db,
                    socket_timeout=self.socket_timeout,
                    socket_connect_timeout=self.socket_timeout,
                )
            logger.info(f"Using Redis lock store at {self.describe()}")
        return self._client

    def is_reachable(self) -> bool:
        try:
            return bool(self.get_client().ping())
        except redis.RedisError as e:
            logger.error(f"Redis lock store unreachable: {e}")
            return False

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None


redis_config = RedisConfig()


def get_redis_client() -> redis.Redis:
    return redis_config.get_client()
