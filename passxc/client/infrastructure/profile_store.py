"""Infrastructure layer: File-backed association profile store.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from passxc.client.domain.entities import AssociationIdentity
from passxc.common.exceptions import (
    CorruptStore,
    NoDefaultProfile,
    ProfileNotFound,
    StoreIOFailure,
    StoreNotFound,
)
from passxc.common.models import Profile, StoreData

logger = logging.getLogger(__name__)

FILE_MODE = 0o600
DIR_MODE = 0o700


class ProfileStore:
    """Ordered profiles keyed by name plus the default profile name.

    The file holds long-term identity keys, so it is always written owner-only
    and replaced atomically.
    """

    def __init__(self, storage_path: Path | str, data: StoreData | None = None):
        self.storage_path = Path(storage_path)
        self.data = data or StoreData()

    @classmethod
    def load(cls, storage_path: Path | str) -> ProfileStore:
        """Read the store; StoreNotFound when the file is absent."""
        path = Path(storage_path)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as err:
            msg = f"Profile store not found: {path}"
            raise StoreNotFound(msg) from err
        except UnicodeDecodeError as err:
            msg = f"Profile store {path} is not valid UTF-8: {err}"
            raise CorruptStore(msg) from err
        except OSError as err:
            msg = f"Cannot read profile store {path}: {err}"
            raise StoreIOFailure(msg) from err
        try:
            data = StoreData.model_validate_json(content)
        except ValidationError as err:
            msg = f"Invalid profile store format in {path}: {err}"
            raise CorruptStore(msg) from err
        return cls(path, data)

    @classmethod
    def load_or_create(cls, storage_path: Path | str) -> ProfileStore:
        """Load the store, or start an empty one if the file is absent."""
        try:
            return cls.load(storage_path)
        except StoreNotFound:
            logger.info("No profile store at %s, starting empty", storage_path)
            return cls(storage_path)

    @property
    def profiles(self) -> list[Profile]:
        return self.data.profiles

    @property
    def default_profile(self) -> str:
        return self.data.default_profile

    @default_profile.setter
    def default_profile(self, name: str) -> None:
        if name and not self.has_profile(name):
            msg = f"Not found profile with name {name}"
            raise ProfileNotFound(msg)
        self.data.default_profile = name

    def has_profile(self, name: str) -> bool:
        return any(p.name == name for p in self.data.profiles)

    def extract_profile(self, name: str) -> AssociationIdentity:
        for profile in self.data.profiles:
            if profile.name == name:
                return AssociationIdentity.from_profile(profile)
        msg = f"Not found profile with name {name}"
        raise ProfileNotFound(msg)

    def extract_default_profile(self) -> AssociationIdentity:
        name = self.data.default_profile
        if not name:
            msg = "No default profile set"
            raise NoDefaultProfile(msg)
        try:
            return self.extract_profile(name)
        except ProfileNotFound as err:
            msg = f"Default profile {name} is not in the store"
            raise NoDefaultProfile(msg) from err

    def add_profile(self, profile: Profile) -> None:
        """Append a profile. Names are not deduplicated."""
        if self.has_profile(profile.name):
            logger.warning("Profile %s already exists, adding duplicate", profile.name)
        self.data.profiles.append(profile)

    def remove_profile(self, name: str) -> int:
        """Remove every profile with this name; clears a matching default."""
        before = len(self.data.profiles)
        self.data.profiles = [p for p in self.data.profiles if p.name != name]
        removed = before - len(self.data.profiles)
        if not removed:
            msg = f"Not found profile with name {name}"
            raise ProfileNotFound(msg)
        if self.data.default_profile == name:
            self.data.default_profile = ""
        return removed

    def to_json(self) -> str:
        return self.data.model_dump_json(indent=2)

    def commit(self) -> None:
        """Write the whole store via temp file and rename."""
        directory = self.storage_path.parent
        try:
            directory.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                prefix=f".{self.storage_path.name}.", dir=directory
            )
        except OSError as err:
            msg = f"Cannot write profile store {self.storage_path}: {err}"
            raise StoreIOFailure(msg) from err
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(self.to_json())
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp, FILE_MODE)
            os.replace(tmp, self.storage_path)
        except OSError as err:
            msg = f"Cannot write profile store {self.storage_path}: {err}"
            raise StoreIOFailure(msg) from err
        finally:
            if os.path.exists(tmp):
                os.unlink(tmp)
        logger.debug("Profile store written to %s", self.storage_path)
