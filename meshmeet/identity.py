import random
import string
import uuid

PSEUDONYM_ALPHABET = string.ascii_lowercase + string.digits


def default_display_name() -> str:
    """Pseudonym used when a participant does not pick a name."""
    return "User_" + "".join(random.choices(PSEUDONYM_ALPHABET, k=9))


def new_connection_id() -> str:
    return uuid.uuid4().hex


def new_room_id() -> str:
    return str(uuid.uuid4())
