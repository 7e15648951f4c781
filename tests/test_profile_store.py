import json
import stat
from pathlib import Path

import pytest

from passxc.client.domain.entities import AssociationIdentity
from passxc.client.infrastructure.profile_store import ProfileStore
from passxc.common.crypto import encode_b64, generate_identity_key
from passxc.common.exceptions import (
    CorruptStore,
    InvalidKeyEncoding,
    NoDefaultProfile,
    ProfileNotFound,
    StoreNotFound,
)
from passxc.common.models import Profile, StoreData


def make_profile(name: str) -> Profile:
    return Profile(name=name, key=encode_b64(generate_identity_key()))


def test_load_missing_file(store_path: Path) -> None:
    with pytest.raises(StoreNotFound):
        ProfileStore.load(store_path)


def test_load_or_create_missing_file(store_path: Path) -> None:
    store = ProfileStore.load_or_create(store_path)
    assert store.profiles == []
    assert store.default_profile == ""


@pytest.mark.parametrize(
    "content",
    [
        b"{not json",
        b'{"profiles": "nope"}',
        b"[]",
        b'{"default_profile": "\xff\xfe", "profiles": []}',
    ],
)
def test_load_corrupt_file(store_path: Path, content: bytes) -> None:
    store_path.parent.mkdir(parents=True)
    store_path.write_bytes(content)
    with pytest.raises(CorruptStore):
        ProfileStore.load(store_path)


def test_add_profile_commit_load(store: ProfileStore, store_path: Path) -> None:
    profile = make_profile("client1")
    store.add_profile(profile)
    store.commit()

    loaded = ProfileStore.load(store_path)
    assert loaded.profiles == [profile]


def test_commit_roundtrip_is_stable(store_path: Path) -> None:
    data = StoreData(
        default_profile="b",
        profiles=[make_profile("a"), make_profile("b")],
    )
    ProfileStore(store_path, data).commit()
    first = store_path.read_text()

    ProfileStore.load(store_path).commit()
    assert store_path.read_text() == first
    assert ProfileStore.load(store_path).data == data


def test_persisted_format(store: ProfileStore, store_path: Path) -> None:
    profile = make_profile("client1")
    store.add_profile(profile)
    store.default_profile = "client1"
    store.commit()

    assert json.loads(store_path.read_text()) == {
        "default_profile": "client1",
        "profiles": [{"name": "client1", "key": profile.key}],
    }


def test_commit_is_owner_only(store: ProfileStore, store_path: Path) -> None:
    store.add_profile(make_profile("client1"))
    store.commit()
    mode = stat.S_IMODE(store_path.stat().st_mode)
    assert mode & (stat.S_IRWXG | stat.S_IRWXO) == 0
    assert not [p for p in store_path.parent.iterdir() if p != store_path]


def test_commit_replaces_existing(store: ProfileStore, store_path: Path) -> None:
    store.add_profile(make_profile("a"))
    store.commit()
    store.add_profile(make_profile("b"))
    store.commit()
    assert [p.name for p in ProfileStore.load(store_path).profiles] == ["a", "b"]


def test_extract_default_profile(store: ProfileStore) -> None:
    profile = make_profile("client1")
    store.add_profile(profile)
    store.default_profile = "client1"

    identity = store.extract_default_profile()
    assert isinstance(identity, AssociationIdentity)
    assert identity.name == "client1"
    assert identity.key_b64 == profile.key


def test_extract_default_profile_unset(store: ProfileStore) -> None:
    store.add_profile(make_profile("client1"))
    with pytest.raises(NoDefaultProfile):
        store.extract_default_profile()


def test_extract_default_profile_dangling(store_path: Path) -> None:
    store_path.parent.mkdir(parents=True)
    store_path.write_text(
        json.dumps({"default_profile": "x", "profiles": [{"name": "y", "key": "k"}]})
    )
    store = ProfileStore.load(store_path)
    with pytest.raises(NoDefaultProfile):
        store.extract_default_profile()


def test_extract_profile_by_name(store: ProfileStore) -> None:
    store.add_profile(make_profile("default"))
    store.add_profile(make_profile("test"))
    assert store.extract_profile("test").name == "test"
    with pytest.raises(ProfileNotFound):
        store.extract_profile("missing")


def test_extract_profile_bad_key(store: ProfileStore) -> None:
    store.add_profile(Profile(name="broken", key="key"))
    with pytest.raises(InvalidKeyEncoding):
        store.extract_profile("broken")


def test_set_default_to_missing_profile(store: ProfileStore) -> None:
    with pytest.raises(ProfileNotFound):
        store.default_profile = "ghost"


def test_add_profile_keeps_duplicates(store: ProfileStore) -> None:
    store.add_profile(make_profile("dup"))
    store.add_profile(make_profile("dup"))
    assert [p.name for p in store.profiles] == ["dup", "dup"]


def test_remove_profile_clears_default(store: ProfileStore) -> None:
    store.add_profile(make_profile("a"))
    store.add_profile(make_profile("b"))
    store.default_profile = "a"

    assert store.remove_profile("a") == 1
    assert [p.name for p in store.profiles] == ["b"]
    assert store.default_profile == ""


def test_remove_profile_keeps_other_default(store: ProfileStore) -> None:
    store.add_profile(make_profile("a"))
    store.add_profile(make_profile("b"))
    store.default_profile = "b"
    store.remove_profile("a")
    assert store.default_profile == "b"


def test_remove_missing_profile(store: ProfileStore) -> None:
    with pytest.raises(ProfileNotFound):
        store.remove_profile("ghost")


def test_load_legacy_default_key(store_path: Path) -> None:
    profile = make_profile("old")
    store_path.parent.mkdir(parents=True)
    store_path.write_text(
        json.dumps({"default": "old", "profiles": [profile.model_dump()]})
    )
    store = ProfileStore.load(store_path)
    assert store.extract_default_profile().name == "old"

    store.commit()
    assert "default_profile" in json.loads(store_path.read_text())
