"""Tests for the collaborator trust store."""

import pytest

from pushgate.errors import ConfigError
from pushgate.trust import Collaborator, TrustStore, normalize_hex

from .conftest import ALICE_FPR, ALICE_KEY, BOB_FPR, BOB_KEY, MALLORY_FPR, fingerprint


class TestCollaborator:
    """Fingerprint validation and key id derivation."""

    def test_fingerprint_normalized(self):
        c = Collaborator(name="alice", fingerprint=ALICE_FPR.lower())
        assert c.fingerprint == fingerprint(ALICE_FPR)

    def test_key_id_derived_from_fingerprint(self):
        assert Collaborator(name="alice", fingerprint=ALICE_FPR).key_id == ALICE_KEY
        assert Collaborator(name="bob", fingerprint=BOB_FPR).key_id == BOB_KEY

    @pytest.mark.parametrize("bad", ["", "ABCD", "G" * 40, "A" * 41])
    def test_invalid_fingerprint_rejected(self, bad):
        with pytest.raises(ValueError):
            Collaborator(name="x", fingerprint=bad)


class TestLookup:
    """Trust is granted on key id AND fingerprint."""

    def test_matching_pair(self, trust):
        c = trust.lookup(ALICE_KEY, fingerprint(ALICE_FPR))
        assert c is not None
        assert c.name == "alice"

    def test_whitespace_and_case_insensitive(self, trust):
        assert trust.lookup(ALICE_KEY.lower(), ALICE_FPR.lower()).name == "alice"

    def test_key_id_with_wrong_fingerprint(self, trust):
        assert trust.lookup(ALICE_KEY, fingerprint(MALLORY_FPR)) is None

    def test_fingerprint_with_wrong_key_id(self, trust):
        assert trust.lookup(BOB_KEY, fingerprint(ALICE_FPR)) is None

    def test_missing_fingerprint(self, trust):
        assert trust.lookup(ALICE_KEY, None) is None

    def test_short_key_id_refused(self, trust):
        assert trust.lookup(ALICE_KEY[-8:], fingerprint(ALICE_FPR)) is None

    def test_full_fingerprint_as_key_id_refused(self, trust):
        assert trust.lookup(fingerprint(ALICE_FPR), fingerprint(ALICE_FPR)) is None

    def test_shared_key_id_resolved_by_fingerprint(self):
        store = TrustStore.from_mapping({"alice": ALICE_FPR, "mallory": MALLORY_FPR})
        assert store.lookup(ALICE_KEY, fingerprint(MALLORY_FPR)).name == "mallory"
        assert store.lookup(ALICE_KEY, fingerprint(ALICE_FPR)).name == "alice"

    def test_empty_store_trusts_nobody(self):
        assert TrustStore().lookup(ALICE_KEY, fingerprint(ALICE_FPR)) is None


class TestLoading:
    """Building the store from configuration."""

    def test_duplicate_fingerprint_rejected(self):
        with pytest.raises(ConfigError, match="share fingerprint"):
            TrustStore.from_mapping({"alice": ALICE_FPR, "alias": ALICE_FPR.lower()})

    def test_invalid_entry(self):
        with pytest.raises(ConfigError, match="invalid collaborator"):
            TrustStore.from_mapping({"alice": "not a fingerprint"})

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "collaborators.yaml"
        path.write_text(
            "# release signers\n"
            f"alice: \"{ALICE_FPR}\"\n"
            f"bob: {fingerprint(BOB_FPR)}\n"
        )

        store = TrustStore.load(path)

        assert len(store) == 2
        assert {c.name for c in store} == {"alice", "bob"}

    def test_load_empty_file(self, tmp_path):
        path = tmp_path / "collaborators.yaml"
        path.write_text("")
        assert len(TrustStore.load(path)) == 0

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="cannot read"):
            TrustStore.load(tmp_path / "missing.yaml")

    def test_load_not_a_mapping(self, tmp_path):
        path = tmp_path / "collaborators.yaml"
        path.write_text("- alice\n- bob\n")
        with pytest.raises(ConfigError, match="must map"):
            TrustStore.load(path)

    def test_load_invalid_yaml(self, tmp_path):
        path = tmp_path / "collaborators.yaml"
        path.write_text("alice: [unclosed\n")
        with pytest.raises(ConfigError, match="invalid YAML"):
            TrustStore.load(path)


def test_normalize_hex():
    assert normalize_hex(" ab cd\t12 ") == "ABCD12"
