from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, Field

# the browser client sends "username"; "displayName" is accepted as well
DISPLAY_NAME = AliasChoices("username", "displayName")


# ---------------- INBOUND EVENTS ----------------

class RoomRequest(BaseModel):
    roomId: str


class CreateRoomRequest(BaseModel):
    roomId: str = Field(min_length=1)
    username: str = Field(validation_alias=DISPLAY_NAME)
    password: Optional[str] = None


class JoinRoomRequest(BaseModel):
    roomId: str
    username: str = Field(validation_alias=DISPLAY_NAME)
    password: Optional[str] = None


class CodeChangeRequest(BaseModel):
    roomId: str
    code: str


class LanguageChangeRequest(BaseModel):
    roomId: str
    language: str


class TypingRequest(BaseModel):
    roomId: str
    username: str = Field(validation_alias=DISPLAY_NAME)


class ChatMessageRequest(BaseModel):
    roomId: str
    message: str
    username: str = Field(validation_alias=DISPLAY_NAME)


class CursorMoveRequest(BaseModel):
    roomId: str
    username: str = Field(validation_alias=DISPLAY_NAME)
    position: Any = None


class RunCodeRequest(BaseModel):
    roomId: str
    language: str
    code: str
    stdin: Optional[str] = None


class SubmitCodeRequest(BaseModel):
    roomId: str
    language: str
    code: str
    # the browser client sends the batched input as "stdin"
    stdin: Optional[str] = Field(default=None, validation_alias=AliasChoices("stdin", "batchedStdin"))


# ---------------- OUTBOUND PAYLOADS ----------------

class MemberOut(BaseModel):
    id: str
    username: str


class RoomSummary(BaseModel):
    roomId: str
    users: int
    language: str
    host: str


class RoomDetails(RoomSummary):
    members: List[MemberOut]


class JoinSuccess(BaseModel):
    roomId: str
    isHost: bool


class ChatMessage(BaseModel):
    message: str
    username: str


class CursorUpdate(BaseModel):
    socketId: str
    username: str
    position: Any = None


class SubmitResult(BaseModel):
    success: bool
    output: str
    memory: Optional[str] = None
    cpuTime: Optional[str] = None
