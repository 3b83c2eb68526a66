import redis.asyncio as redis


def create_redis(url: str) -> redis.Redis:
    return redis.from_url(
        url,
        decode_responses=True,
        health_check_interval=30,
        socket_connect_timeout=5,
        socket_keepalive=True
    )
