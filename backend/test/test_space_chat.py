"""SpaceChat 테스트 (접속 현황 + 스페이스 텍스트 채팅)."""
import pytest

from bookclub_rtc import SpaceChat, SpaceNotJoinedError
from bookclub_rtc.signaling import events


@pytest.fixture()
def chat(channel) -> SpaceChat:
    return SpaceChat(channel, history_limit=3, max_message_length=20)


@pytest.mark.asyncio
async def test_announce_registers_presence(chat, channel) -> None:
    await chat.announce("user-1")

    assert chat.user_id == "user-1"
    assert channel.sent(events.USER_CONNECTED) == ["user-1"]

    with pytest.raises(ValueError):
        await chat.announce("")


@pytest.mark.asyncio
async def test_active_users_are_tracked(chat, channel) -> None:
    await channel.deliver(events.ACTIVE_USERS, ["user-1", "user-2", None])
    assert chat.active_users == ["user-1", "user-2"]

    await channel.deliver(events.ACTIVE_USERS, "garbage")
    assert chat.active_users == []


@pytest.mark.asyncio
async def test_send_requires_joined_space(chat, channel) -> None:
    with pytest.raises(SpaceNotJoinedError):
        await chat.send("space-7", "안녕하세요")
    assert channel.sent(events.SPACE_MESSAGE) == []


@pytest.mark.asyncio
async def test_send_validates_and_strips_text(chat, channel) -> None:
    await chat.join("space-7")

    await chat.send("space-7", "  3장까지 읽었어요  ")
    with pytest.raises(ValueError):
        await chat.send("space-7", "   ")
    with pytest.raises(ValueError):
        await chat.send("space-7", "가" * 21)

    assert channel.sent(events.SPACE_JOIN) == ["space-7"]
    assert channel.sent(events.SPACE_MESSAGE) == [{"room_id": "space-7", "message": "3장까지 읽었어요"}]
    # 서버 브로드캐스트가 오기 전까지는 기록에 없음
    assert chat.history("space-7") == []


@pytest.mark.asyncio
async def test_received_message_goes_to_current_room(chat, channel) -> None:
    await chat.join("space-7")
    await chat.join("space-8")

    await channel.deliver(events.SPACE_MESSAGE_RECEIVED, {
        "userId": "user-2", "message": "다음 책은?", "timestamp": "2024-03-01T10:00:00Z",
    })
    await channel.deliver(events.SPACE_MESSAGE_RECEIVED, {
        "userId": "user-3", "message": "7번 방", "roomId": "space-7",
    })

    [message] = chat.history("space-8")
    assert message.user_id == "user-2"
    assert message.message == "다음 책은?"
    assert [m.message for m in chat.history("space-7")] == ["7번 방"]
    assert chat.joined_rooms == ["space-7", "space-8"]


@pytest.mark.asyncio
async def test_history_is_bounded(chat, channel) -> None:
    await chat.join("space-7")
    for i in range(5):
        await channel.deliver(events.SPACE_MESSAGE_RECEIVED, {"userId": "u", "message": f"m{i}"})

    assert [m.message for m in chat.history("space-7")] == ["m2", "m3", "m4"]


@pytest.mark.asyncio
async def test_invalid_or_unrouted_messages_are_dropped(chat, channel) -> None:
    # 입장 전 메시지
    await channel.deliver(events.SPACE_MESSAGE_RECEIVED, {"userId": "u", "message": "early"})
    await chat.join("space-7")
    await channel.deliver(events.SPACE_MESSAGE_RECEIVED, {"userId": "u"})
    await channel.deliver(events.SPACE_MESSAGE_RECEIVED, "not-a-message")
    await channel.deliver(events.SPACE_MESSAGE_RECEIVED, {"message": "other", "roomId": "space-9"})

    assert chat.history("space-7") == []


@pytest.mark.asyncio
async def test_rejoin_keeps_history(chat, channel) -> None:
    await chat.join("space-7")
    await channel.deliver(events.SPACE_MESSAGE_RECEIVED, {"userId": "u", "message": "hi"})
    await chat.join("space-7")

    assert len(chat.history("space-7")) == 1
    with pytest.raises(SpaceNotJoinedError):
        chat.history("space-1")
