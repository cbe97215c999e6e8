"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输
"""
from pydantic import BaseModel, ConfigDict, Field


class DTOBase(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class RoomCreateDTO(DTOBase):
    """创建房间请求体"""
    theme: str = Field(..., min_length=1, max_length=255, description="房间主题")


class MessageCreateDTO(DTOBase):
    """发布消息请求体"""
    message: str = Field(..., min_length=1, max_length=2000, description="消息（提问）内容")


class IdentifierDTO(DTOBase):
    """创建类接口的响应：新资源ID"""
    id: str


class RoomDTO(DTOBase):
    id: str
    theme: str


class RoomListDTO(DTOBase):
    rooms: list[RoomDTO] = Field(default_factory=list)


class MessageDTO(DTOBase):
    id: str
    room_id: str
    message: str
    reaction_count: int
    answered: bool


class MessageListDTO(DTOBase):
    messages: list[MessageDTO] = Field(default_factory=list)


class ReactionCountDTO(DTOBase):
    count: int
