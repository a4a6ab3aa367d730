from shadowtalk.models.message import Message
from shadowtalk.models.private_message import PrivateMessage
from shadowtalk.models.reaction import Reaction
from shadowtalk.models.room import Room, room_members
from shadowtalk.models.user import User

__all__ = ["Message", "PrivateMessage", "Reaction", "Room", "User", "room_members"]
