REDIS_ROOM_SEQ_KEY = "chat:room:seq" # counter - next roomIdx
REDIS_ROOM_META_KEY = "chat:room:meta:{room_idx}" # room idx - hash of room attributes
REDIS_ROOM_MEMBERS_KEY = "chat:room:members:{room_idx}" # room idx - hash of user email -> joined_at
REDIS_USER_ROOMS_KEY = "chat:user:rooms:{user_email}" # user email - hash of room idx -> joined_at
REDIS_ALL_ROOMS_KEY = "chat:rooms" # sorted set of every room idx
REDIS_TOPICS_KEY = "chat:topics" # set of room idx with a registered topic
REDIS_TOPIC_CHANNEL = "chat:topic:{room_idx}" # room idx - pub/sub channel name

# **Example `chat:room:meta:{room_idx}` hash fields**
# - `room_idx` = integer, score in `chat:rooms`, field in `chat:user:rooms:{email}`
# - `room_name` = string
# - `room_type` = GROUP | PERSONAL
# - `created_by` = creator email
# - `created_at` = ISO timestamp
