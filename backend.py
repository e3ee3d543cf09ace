import json
from datetime import datetime
from functools import lru_cache
from typing import Optional

import redis

from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, REDIS_DB
from redis_keys import (
    REDIS_ROOM_SEQ_KEY,
    REDIS_ROOM_META_KEY,
    REDIS_ROOM_MEMBERS_KEY,
    REDIS_USER_ROOMS_KEY,
    REDIS_ALL_ROOMS_KEY,
    REDIS_TOPICS_KEY,
    REDIS_TOPIC_CHANNEL,
)
from logging_config import get_logger

logger = get_logger(__name__)


def create_redis_client() -> redis.Redis:
    try:
        client = redis.Redis(host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, db=REDIS_DB, decode_responses=True)
        # Test connection
        client.ping()
        logger.info(f"Redis client connected successfully to {REDIS_HOST}:{REDIS_PORT}")
    except redis.RedisError as e:
        logger.error(f"Failed to connect to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
        raise
    return client


class RedisBackend:
    """Room, membership and topic storage.

    Memberships live twice: in a per-room hash of user email -> joined_at and in
    a per-user hash of room idx -> joined_at. Both are written in one WATCH/MULTI
    transaction on the room hash, so joins and leaves of a room are serialized.
    """

    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    def create_room(self, room_data: dict, creator_email: str) -> dict:
        """Allocate a room idx and store the room with its creator as first member."""
        room_idx = self.redis_client.incr(REDIS_ROOM_SEQ_KEY)
        created_at = datetime.now().isoformat()
        room = dict(room_data, room_idx=room_idx, created_by=creator_email, created_at=created_at)
        logger.info(f"Creating room {room_idx} for {creator_email}")

        pipe = self.redis_client.pipeline(transaction=True)
        pipe.hset(REDIS_ROOM_META_KEY.format(room_idx=room_idx), mapping={k: str(v) for k, v in room.items()})
        pipe.hset(REDIS_ROOM_MEMBERS_KEY.format(room_idx=room_idx), creator_email, created_at)
        pipe.hset(REDIS_USER_ROOMS_KEY.format(user_email=creator_email), room_idx, created_at)
        pipe.zadd(REDIS_ALL_ROOMS_KEY, {room_idx: room_idx})
        pipe.execute()
        logger.debug(f"Room {room_idx} created with creator membership for {creator_email}")
        return room

    def get_room(self, room_idx) -> Optional[dict]:
        logger.debug(f"Fetching room {room_idx}")
        room_data = self.redis_client.hgetall(REDIS_ROOM_META_KEY.format(room_idx=room_idx))
        if not room_data:
            logger.debug(f"Room {room_idx} not found in Redis")
            return None
        room_data["room_idx"] = int(room_data["room_idx"])
        return room_data

    def room_exists(self, room_idx) -> bool:
        return bool(self.redis_client.exists(REDIS_ROOM_META_KEY.format(room_idx=room_idx)))

    def get_all_room_idxs(self) -> list[int]:
        return [int(idx) for idx in self.redis_client.zrange(REDIS_ALL_ROOMS_KEY, 0, -1)]

    def add_member(self, room_idx: int, user_email: str) -> Optional[str]:
        """Add a membership. Returns joined_at, or None when the user already is a member."""
        members_key = REDIS_ROOM_MEMBERS_KEY.format(room_idx=room_idx)
        user_rooms_key = REDIS_USER_ROOMS_KEY.format(user_email=user_email)
        joined_at = datetime.now().isoformat()

        def add(pipe):
            if pipe.hexists(members_key, user_email):
                return False
            pipe.multi()
            pipe.hset(members_key, user_email, joined_at)
            pipe.hset(user_rooms_key, room_idx, joined_at)
            return True

        # WATCH on the members hash serializes this with any leave of the same room
        added = self.redis_client.transaction(add, members_key, value_from_callable=True)
        if not added:
            logger.debug(f"User {user_email} already exists in room {room_idx}")
            return None
        logger.debug(f"User {user_email} added to room {room_idx}")
        return joined_at

    def remove_member(self, room_idx: int, user_email: str) -> Optional[str]:
        """Remove a membership. Returns the removed joined_at, or None when there was none."""
        members_key = REDIS_ROOM_MEMBERS_KEY.format(room_idx=room_idx)
        user_rooms_key = REDIS_USER_ROOMS_KEY.format(user_email=user_email)

        def remove(pipe):
            joined_at = pipe.hget(members_key, user_email)
            if joined_at is None:
                return None
            pipe.multi()
            pipe.hdel(members_key, user_email)
            pipe.hdel(user_rooms_key, room_idx)
            return joined_at

        joined_at = self.redis_client.transaction(remove, members_key, value_from_callable=True)
        if joined_at is None:
            logger.debug(f"User {user_email} is not a member of room {room_idx}")
            return None
        logger.debug(f"User {user_email} removed from room {room_idx}")
        return joined_at

    def get_members(self, room_idx: int) -> dict:
        """Get user email -> joined_at for every member of a room."""
        return self.redis_client.hgetall(REDIS_ROOM_MEMBERS_KEY.format(room_idx=room_idx))

    def get_user_memberships(self, user_email: str) -> list[tuple[int, str]]:
        """Get (room idx, joined_at) for every room of a user, ordered by room idx."""
        memberships = self.redis_client.hgetall(REDIS_USER_ROOMS_KEY.format(user_email=user_email))
        return sorted((int(room_idx), joined_at) for room_idx, joined_at in memberships.items())

    def get_topic_channel_name(self, room_idx: str) -> str:
        """Get the Redis pub/sub channel name for a room."""
        return REDIS_TOPIC_CHANNEL.format(room_idx=room_idx)

    def ensure_topic(self, room_idx: str) -> bool:
        """Register the room's topic. Returns True only for the call that created it."""
        created = bool(self.redis_client.sadd(REDIS_TOPICS_KEY, room_idx))
        if created:
            logger.info(f"Created topic {self.get_topic_channel_name(room_idx)}")
        return created

    def topic_exists(self, room_idx: str) -> bool:
        return bool(self.redis_client.sismember(REDIS_TOPICS_KEY, room_idx))

    def publish_message(self, room_idx: str, message: dict) -> int:
        """Publish a message to the room's topic channel."""
        channel = self.get_topic_channel_name(room_idx)
        subscribers = self.redis_client.publish(channel, json.dumps(message))
        logger.debug(f"Published message to room {room_idx} channel {channel}, {subscribers} subscribers")
        return subscribers


@lru_cache
def get_redis_backend() -> RedisBackend:
    return RedisBackend(create_redis_client())
