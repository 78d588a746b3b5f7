from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class UserIdentity(BaseModel):
    """
    Snapshot of a user as supplied by the identity source.

    Only `id` is required; any other fields the source provides are kept.
    """

    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    email: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def coerce(cls, data: Any) -> Optional["UserIdentity"]:
        if data is None:
            return None
        if isinstance(data, UserIdentity):
            return data
        if isinstance(data, Mapping):
            return cls.model_validate(dict(data))
        raise TypeError(f"Cannot build a user identity from {type(data).__name__}")


class SessionRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    magic: str = ""
    user: Optional[UserIdentity] = None
    identified: bool = False
    outbox: List[Any] = Field(default_factory=list)
    form_tokens: Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _identified_requires_user(self) -> "SessionRecord":
        if self.identified and self.user is None:
            raise ValueError("an identified session must carry a user")
        return self

    @classmethod
    def anonymous(cls, magic: str) -> "SessionRecord":
        return cls(magic=magic, user=None, identified=False, outbox=[])

    @property
    def user_id(self) -> Optional[Union[int, str]]:
        return self.user.id if self.user is not None else None

    def to_store(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
