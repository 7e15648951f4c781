from pathlib import Path

import pytest

from passxc.client.application.runner import Runner
from passxc.client.domain.entities import SessionState
from passxc.client.infrastructure.config_loader import ConfigLoader
from passxc.client.infrastructure.profile_store import ProfileStore
from passxc.common.crypto import encode_b64, generate_identity_key
from passxc.common.exceptions import AssociationStale
from passxc.common.models import ClientConfig, Profile


def make_loader(store_path: Path, **overrides) -> ConfigLoader:
    return ConfigLoader(ClientConfig(storage_path=store_path, **overrides))


def add_stale_default(store: ProfileStore) -> None:
    store.add_profile(Profile(name="old", key=encode_b64(generate_identity_key())))
    store.default_profile = "old"
    store.commit()


def test_run_fresh(daemon, transport, store_path: Path) -> None:
    daemon.logins["https://example.com"] = []
    runner = Runner(make_loader(store_path), transport=transport)
    assert runner.run(lambda client: client.get_logins("https://example.com")) == []
    assert transport.closed
    assert ProfileStore.load(store_path).default_profile == "client1"


def test_run_recovers_stale_profile(daemon, transport, store, store_path: Path) -> None:
    add_stale_default(store)
    runner = Runner(make_loader(store_path), transport=transport)

    state = runner.run(lambda client: client.state)

    assert state is SessionState.READY
    persisted = ProfileStore.load(store_path)
    assert [p.name for p in persisted.profiles] == ["client1"]
    assert persisted.default_profile == "client1"
    assert daemon.actions() == [
        "change-public-keys",
        "test-associate",
        "associate",
        "test-associate",
    ]


def test_run_without_recovery(daemon, transport, store, store_path: Path) -> None:
    add_stale_default(store)
    runner = Runner(make_loader(store_path, recover_stale=False), transport=transport)
    with pytest.raises(AssociationStale):
        runner.run(lambda client: client.get_logins(""))
    assert transport.closed
    assert [p.name for p in ProfileStore.load(store_path).profiles] == ["old"]


def test_run_closes_on_operation_error(daemon, transport, store_path: Path) -> None:
    runner = Runner(make_loader(store_path), transport=transport)

    def boom(client):
        raise RuntimeError("caller failure")

    with pytest.raises(RuntimeError):
        runner.run(boom)
    assert transport.closed
