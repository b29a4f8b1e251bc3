"""Define huddle message formats."""

from dataclasses import dataclass
from enum import Enum, unique
from json import JSONDecoder, JSONEncoder
from typing import Any, List, Optional

HuddleSerial = str

IMAGE_EXTENSIONS = (".gif", ".jpg", ".png")


@unique
class MsgType(Enum):
    """Huddle message type, as spelled on the wire."""

    USERS = "users"
    REGISTER = "register"
    MESSAGE = "message"


class HuddleMessage:
    """An abstract prototype for a huddle envelope."""

    def __init__(self) -> None:
        """Create a huddle envelope."""
        self.message_type: MsgType = MsgType.MESSAGE
        self.data_array: Optional[List[str]] = None
        self.data: Optional[str] = None


class Users(HuddleMessage):
    """Roster snapshot."""

    def __init__(self, names: List[str]) -> None:
        """Create a roster snapshot of all connected participants."""
        super().__init__()
        self.message_type = MsgType.USERS
        self.data_array = list(names)


class Register(HuddleMessage):
    """Registration request."""

    def __init__(self, username: str) -> None:
        """Create a registration request for a username."""
        super().__init__()
        self.message_type = MsgType.REGISTER
        self.data = username


class UserMessage(HuddleMessage):
    """User message."""

    def __init__(self, text: str) -> None:
        """Create a user message."""
        super().__init__()
        self.message_type = MsgType.MESSAGE
        self.data = text


@dataclass(frozen=True)
class ChatMessage:
    """A chat line as broadcast by the server."""

    sender: str
    message: str

    @property
    def initial(self) -> str:
        """Get the avatar initial of the sender."""
        return self.sender[:1].upper() or "?"

    @property
    def is_image_link(self) -> bool:
        """Check if the message is a link to an image."""
        return self.message.endswith(IMAGE_EXTENSIONS)


class HuddleMessageException(Exception):
    """Abstract exception type."""

    pass


class HuddleDeserializationError(HuddleMessageException):
    """Error thrown on deserialization failure."""

    pass


class HuddleProtocolError(HuddleMessageException):
    """Error thrown on a well-formed message of unexpected type."""

    pass


def serialize(msg: HuddleMessage) -> HuddleSerial:
    """Serialize a huddle envelope."""
    return JSONEncoder().encode(
        {
            "messageType": msg.message_type.value,
            "dataArray": msg.data_array,
            "data": msg.data,
        }
    )


def deserialize(serial: HuddleSerial) -> HuddleMessage:
    """Deserialize a huddle envelope."""
    pretender = _decode_object(serial)

    try:
        kind = pretender.get("messageType")
        data_array = pretender.get("dataArray")
        data = pretender.get("data")

        if not isinstance(kind, str):
            raise HuddleDeserializationError("No valid message type")
        if data_array is not None and not (
            isinstance(data_array, list)
            and all(isinstance(name, str) for name in data_array)
        ):
            raise HuddleDeserializationError(
                "Field 'dataArray' is not a list of strings"
            )
        if data is not None and not isinstance(data, str):
            raise HuddleDeserializationError("Field 'data' is not a string")

    except HuddleDeserializationError as e:
        raise e

    except Exception as e:
        # Translate any exception to a deserialization error
        raise HuddleDeserializationError(f"Unknown error: {e.args}")

    try:
        message_type = MsgType(kind)
    except ValueError:
        raise HuddleProtocolError(f"Unexpected message type: {kind}")

    message = HuddleMessage()
    message.message_type = message_type
    message.data_array = data_array
    message.data = data

    return message


def serialize_chat_message(chat_message: ChatMessage) -> HuddleSerial:
    """Serialize the nested chat line of a broadcast message."""
    return JSONEncoder().encode(
        {"from": chat_message.sender, "message": chat_message.message}
    )


def deserialize_chat_message(serial: Optional[HuddleSerial]) -> ChatMessage:
    """Deserialize the nested chat line of a broadcast message."""
    if serial is None:
        raise HuddleDeserializationError("Message carries no data")

    pretender = _decode_object(serial)
    sender = pretender.get("from")
    text = pretender.get("message")

    for field, value in (("from", sender), ("message", text)):
        if not isinstance(value, str):
            raise HuddleDeserializationError(
                f"Chat message field missing or not a string: {field}"
            )

    return ChatMessage(sender=sender, message=text)


def _decode_object(serial: HuddleSerial) -> Any:
    """Decode a JSON object, rejecting anything else."""
    try:
        pretender = JSONDecoder().decode(serial)
    except (ValueError, TypeError, RecursionError):
        raise HuddleDeserializationError("JSON deserialization failed")

    if not isinstance(pretender, dict):
        raise HuddleDeserializationError("JSON value is not an object")

    return pretender
