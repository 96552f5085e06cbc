"""
The User record and its JSON shape.

    {"id": 1, "name": "Ada Lovelace", "email": "ada@example.com"}
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict

from .errors import ValidationError


@dataclass
class User:
    """
    A user. `id` is 0 until the store assigns one on create.

    A persisted user always has a non-zero id and non-empty name and email.
    Email format and uniqueness are not checked here.
    """

    id: int = 0
    name: str = ""
    email: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self) -> None:
        """
        Raises:
            ValidationError: If name or email is empty.
        """
        if not self.name or not self.email:
            raise ValidationError("name and email are required")

    @classmethod
    def from_payload(cls, payload: Any) -> "User":
        """
        Build a User from a decoded JSON body.

        Unknown keys are ignored and missing keys are left empty, so
        `{}` and `null` decode to an empty user that validate() rejects.
        Values of the wrong JSON type are decode errors.

        Raises:
            ValidationError: If the payload is not a user-shaped object.
        """
        if payload is None:
            return cls()
        if not isinstance(payload, dict):
            raise ValidationError(
                f"invalid JSON: expected an object, got {type(payload).__name__}"
            )

        user = cls()

        user_id = payload.get("id")
        if user_id is not None:
            if isinstance(user_id, bool) or not isinstance(user_id, int):
                raise ValidationError('invalid JSON: field "id" must be an integer')
            user.id = user_id

        for key in ("name", "email"):
            value = payload.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValidationError(f'invalid JSON: field "{key}" must be a string')
            setattr(user, key, value)

        return user
