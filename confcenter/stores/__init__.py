"""Configuration store clients.

This package contains the clients the sync service can talk to: a Nacos
server over its HTTP open API, and Redis used as a key-value store with
pub/sub change notification.
"""

__all__ = [
    "NacosConfigStore",
    "RedisConfigStore",
]
