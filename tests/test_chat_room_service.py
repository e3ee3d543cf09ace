from concurrent.futures import ThreadPoolExecutor

import fakeredis
import pytest

from backend import RedisBackend
from exceptions import ChatRoomNotFound, DuplicatedChatRoomMember, ForbiddenChatRoomAccess
from schemas.rooms import CreateChatRoomRequest, JoinChatRoomRequest, RoomType


def create(service, user_email="a@x", room_name="R1"):
    return service.save(user_email, CreateChatRoomRequest(room_name=room_name, room_type=RoomType.GROUP))


def join(service, user_email, room_idx):
    return service.join_chat_room(JoinChatRoomRequest(user_email=user_email, room_idx=room_idx))


def my_room_idxs(service, user_email):
    return [relation.room_idx for relation in service.find_all_by_user_id(user_email)]


def test_room_idx_is_monotonic(service):
    idxs = [create(service, room_name=f"room-{i}").room_idx for i in range(5)]

    assert idxs == sorted(idxs)
    assert len(set(idxs)) == 5
    assert idxs[0] >= 1


def test_created_room_listed_once_for_creator(service):
    room = create(service)

    assert my_room_idxs(service, "a@x") == [room.room_idx]


def test_join_then_list(service):
    room = create(service)

    joined = join(service, "b@x", room.room_idx)

    assert joined.room_name == "R1"
    assert my_room_idxs(service, "b@x") == [room.room_idx]
    with pytest.raises(DuplicatedChatRoomMember):
        join(service, "b@x", room.room_idx)
    assert my_room_idxs(service, "b@x") == [room.room_idx]


def test_concurrent_duplicate_joins(service, backend):
    room = create(service)

    def attempt(_):
        try:
            join(service, "b@x", room.room_idx)
            return True
        except DuplicatedChatRoomMember:
            return False

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(16)))

    assert results.count(True) == 1
    assert list(backend.get_members(room.room_idx)).count("b@x") == 1
    assert my_room_idxs(service, "b@x") == [room.room_idx]


def test_leave_removes_membership(service):
    room = create(service)
    join(service, "b@x", room.room_idx)

    relation = service.leave_chat_room("b@x", room.room_idx)

    assert relation.user_email == "b@x"
    assert relation.room_idx == room.room_idx
    assert my_room_idxs(service, "b@x") == []
    with pytest.raises(ForbiddenChatRoomAccess):
        service.leave_chat_room("b@x", room.room_idx)


def test_leave_keeps_room(service):
    room = create(service)

    service.leave_chat_room("a@x", room.room_idx)

    found = service.find_room_by_room_idx("a@x", room.room_idx)
    assert found.member_count == 0
    assert found.is_member is False
    assert [r.room_idx for r in service.find_all()] == [room.room_idx]


def test_rejoin_after_leave(service):
    room = create(service)
    join(service, "b@x", room.room_idx)
    service.leave_chat_room("b@x", room.room_idx)

    join(service, "b@x", room.room_idx)

    assert my_room_idxs(service, "b@x") == [room.room_idx]


def test_enter_does_not_change_membership(service, backend):
    room = create(service)
    before = my_room_idxs(service, "b@x")

    service.enter_chat_room(str(room.room_idx))
    service.enter_chat_room(str(room.room_idx))

    assert my_room_idxs(service, "b@x") == before
    assert backend.topic_exists(str(room.room_idx))


def test_concurrent_enter_creates_topic_once(service, backend):
    room = create(service)
    key = str(room.room_idx)

    with ThreadPoolExecutor(max_workers=8) as pool:
        created = list(pool.map(lambda _: backend.ensure_topic(key), range(16)))

    assert created.count(True) == 1


def test_enter_unknown_room(service):
    with pytest.raises(ChatRoomNotFound):
        service.enter_chat_room("404")


def test_find_all_is_superset_of_every_users_rooms(service):
    first = create(service, "a@x", "one")
    second = create(service, "b@x", "two")
    join(service, "c@x", first.room_idx)
    join(service, "c@x", second.room_idx)
    service.leave_chat_room("a@x", first.room_idx)

    all_idxs = {room.room_idx for room in service.find_all()}

    for user_email in ["a@x", "b@x", "c@x"]:
        assert set(my_room_idxs(service, user_email)) <= all_idxs
    assert my_room_idxs(service, "c@x") == [first.room_idx, second.room_idx]


def test_find_room_unknown(service):
    with pytest.raises(ChatRoomNotFound):
        service.find_room_by_room_idx("a@x", 12)


def interfere_once(monkeypatch, backend, command, action):
    """Run action from another connection right after the first watched `command` read."""
    original_pipeline = backend.redis_client.pipeline
    done = []

    def pipeline(*args, **kwargs):
        pipe = original_pipeline(*args, **kwargs)
        original_command = getattr(pipe, command)

        def wrapped(*command_args, **command_kwargs):
            result = original_command(*command_args, **command_kwargs)
            if not done:
                done.append(True)
                action()
            return result

        setattr(pipe, command, wrapped)
        return pipe

    monkeypatch.setattr(backend.redis_client, "pipeline", pipeline)
    return done


def test_leave_retries_when_member_rejoins_underneath(service, backend, redis_server, monkeypatch):
    room = create(service)
    join(service, "b@x", room.room_idx)
    other = RedisBackend(fakeredis.FakeRedis(server=redis_server, decode_responses=True))

    def leave_and_rejoin():
        other.remove_member(room.room_idx, "b@x")
        other.add_member(room.room_idx, "b@x")

    done = interfere_once(monkeypatch, backend, "hget", leave_and_rejoin)

    relation = service.leave_chat_room("b@x", room.room_idx)

    assert done
    assert relation.user_email == "b@x"
    assert "b@x" not in backend.get_members(room.room_idx)
    assert my_room_idxs(service, "b@x") == []
    join(service, "b@x", room.room_idx)
    assert my_room_idxs(service, "b@x") == [room.room_idx]


def test_join_retries_when_member_joins_underneath(service, backend, redis_server, monkeypatch):
    room = create(service)
    other = RedisBackend(fakeredis.FakeRedis(server=redis_server, decode_responses=True))
    done = interfere_once(monkeypatch, backend, "hexists", lambda: other.add_member(room.room_idx, "b@x"))

    with pytest.raises(DuplicatedChatRoomMember):
        join(service, "b@x", room.room_idx)

    assert done
    assert list(backend.get_members(room.room_idx)).count("b@x") == 1
    assert my_room_idxs(service, "b@x") == [room.room_idx]


def test_concurrent_join_and_leave_keep_indexes_in_sync(service, backend):
    room = create(service)

    def toggle(i):
        try:
            if i % 2:
                join(service, "b@x", room.room_idx)
            else:
                service.leave_chat_room("b@x", room.room_idx)
        except (DuplicatedChatRoomMember, ForbiddenChatRoomAccess):
            pass

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(toggle, range(64)))

    is_member = "b@x" in backend.get_members(room.room_idx)
    assert (room.room_idx in my_room_idxs(service, "b@x")) == is_member
    if is_member:
        with pytest.raises(DuplicatedChatRoomMember):
            join(service, "b@x", room.room_idx)
    else:
        join(service, "b@x", room.room_idx)
        assert my_room_idxs(service, "b@x") == [room.room_idx]
