"""
Pydantic models for wire messages and the persisted profile store.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from passxc.common.config import Verbosity


class Action(str, Enum):
    CHANGE_PUBLIC_KEYS = "change-public-keys"
    ASSOCIATE = "associate"
    TEST_ASSOCIATE = "test-associate"
    GET_DATABASE_HASH = "get-databasehash"
    LOCK_DATABASE = "lock-database"
    GET_LOGINS = "get-logins"
    GENERATE_PASSWORD = "generate-password"


class ErrorCode(IntEnum):
    """Error codes reported by the daemon in the `errorCode` field."""

    DATABASE_NOT_OPENED = 1
    DATABASE_HASH_NOT_RECEIVED = 2
    CLIENT_PUBLIC_KEY_NOT_RECEIVED = 3
    CANNOT_DECRYPT_MESSAGE = 4
    TIMEOUT_OR_NOT_CONNECTED = 5
    ACTION_CANCELLED_OR_DENIED = 6
    CANNOT_ENCRYPT_MESSAGE = 7
    ASSOCIATION_FAILED = 8
    KEY_CHANGE_FAILED = 9
    ENCRYPTION_KEY_UNRECOGNIZED = 10
    NO_SAVED_DATABASES_FOUND = 11
    INCORRECT_ACTION = 12
    EMPTY_MESSAGE_RECEIVED = 13
    NO_URL_PROVIDED = 14
    NO_LOGINS_FOUND = 15
    NO_GROUPS_FOUND = 16
    CANNOT_CREATE_NEW_GROUP = 17
    NO_VALID_UUID_PROVIDED = 18
    ACCESS_TO_ALL_ENTRIES_DENIED = 19


class MessageKeys(BaseModel):
    id: str
    key: str


class Message(BaseModel):
    """Outbound message; also the plaintext shape of sealed payloads."""

    model_config = ConfigDict(populate_by_name=True)

    action: Action
    client_id: str | None = Field(default=None, alias="clientID")
    public_key: str | None = Field(default=None, alias="publicKey")
    nonce: str | None = None
    id: str | None = None
    id_key: str | None = Field(default=None, alias="idKey")
    key: str | None = None
    message: str | None = None
    keys: list[MessageKeys] | None = None
    url: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ServerResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: str = ""
    message: str | None = None
    nonce: str | None = None
    public_key: str | None = Field(default=None, alias="publicKey")
    error: str | None = None
    error_code: int | None = Field(default=None, alias="errorCode")
    success: str | bool | None = None
    version: str | None = None

    @field_validator("error_code", mode="before")
    @classmethod
    def _coerce_error_code(cls, value: Any) -> int | None:
        # The daemon sends the code as a JSON string
        if value is None or value == "":
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @property
    def failed(self) -> bool:
        return bool(self.error)


class AssociateResponse(BaseModel):
    id: str
    hash: str = ""
    nonce: str = ""
    success: str | bool = ""
    version: str = ""


class Entry(BaseModel):
    group: str = Field(default="", validation_alias=AliasChoices("group", "Group"))
    login: str = Field(
        default="", validation_alias=AliasChoices("login", "Login", "username")
    )
    name: str = Field(default="", validation_alias=AliasChoices("name", "Name"))
    password: str = Field(
        default="", validation_alias=AliasChoices("password", "Password")
    )
    uuid: str = Field(default="", validation_alias=AliasChoices("uuid", "UUID"))
    totp: str | None = Field(default=None, validation_alias=AliasChoices("totp", "TOTP"))


class EntriesResponse(BaseModel):
    count: int = 0
    entries: list[Entry] = Field(default_factory=list)


class Profile(BaseModel):
    name: str
    key: str


class StoreData(BaseModel):
    """Persisted form of the profile store."""

    default_profile: str = Field(
        default="", validation_alias=AliasChoices("default_profile", "default")
    )
    profiles: list[Profile] = Field(default_factory=list)


class ClientConfig(BaseModel):
    socket_path: Path | None = None
    storage_path: Path | None = None
    profile: str | None = None
    read_timeout: float | None = None
    recv_buffer_size: int | None = None
    max_message_size: int | None = None
    client_id_prefix: str | None = None
    verbosity: Verbosity | None = None
    recover_stale: bool | None = None
