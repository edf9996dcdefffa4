"""시그널링 채널 논리 이벤트 이름.

코디네이터와 채팅 모듈은 이 이름만 사용하며, 실제 와이어 이벤트 이름은
채널 구현(``socketio_channel``)이 변환합니다.

Payloads:
    JOIN (out): room_id (str)
    ROSTER (in): 기존 참가자 ID 리스트
    OFFER (out): {"to": 참가자 ID, "description": {"type", "sdp"}}
    OFFER (in): {"from": 참가자 ID, "description": {"type", "sdp"}}
    ANSWER (out/in): OFFER와 동일한 형태
    PARTICIPANT_LEFT (in): 참가자 ID (str)
    RECONNECTED (in): None (채널이 재연결됨)
    USER_CONNECTED (out): 로그인 사용자 ID
    ACTIVE_USERS (in): 접속 중인 사용자 ID 리스트
    SPACE_JOIN (out): room_id
    SPACE_MESSAGE (out): {"room_id", "message"}
    SPACE_MESSAGE_RECEIVED (in): {"userId", "message", "timestamp"[, "roomId"]}
    SPACE_MEMBER_JOINED (in): 사용자 ID
"""

# 비디오 룸 (피어 메시)
JOIN = "join"
ROSTER = "roster"
OFFER = "offer"
ANSWER = "answer"
PARTICIPANT_LEFT = "participant-left"
RECONNECTED = "reconnected"

# 접속 현황 (presence)
USER_CONNECTED = "user-connected"
ACTIVE_USERS = "active-users"

# 스페이스 텍스트 채팅
SPACE_JOIN = "join-space"
SPACE_MESSAGE = "space-message"
SPACE_MESSAGE_RECEIVED = "space-message-received"
SPACE_MEMBER_JOINED = "space-member-joined"
