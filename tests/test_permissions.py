"""
Tests for capability stores and the revoker.
"""

import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from common.exceptions import CapabilityError
from miniapps.permissions import CapabilityRevoker, CapabilityStore
from miniapps.storage import JsonStorage, MemoryStorage


class TestCapabilityStore:
    """Tests for CapabilityStore."""

    def test_grant_and_query(self):
        """Test grants accumulate per origin."""
        store = CapabilityStore("wallet")
        store.grant("https://b.io", "requestAddressBook")
        store.grant("https://b.io/", "signMessage")

        assert store.query("https://b.io") == {"requestAddressBook", "signMessage"}
        assert store.query("https://other.io") == set()

    def test_query_returns_copy(self):
        """Test callers cannot mutate grants through query results."""
        store = CapabilityStore("browser")
        store.grant("https://b.io", "camera")
        store.query("https://b.io").add("microphone")

        assert store.query("https://b.io") == {"camera"}

    def test_revoke_idempotent(self):
        """Test revoking twice equals revoking once."""
        store = CapabilityStore("browser")
        store.grant("https://b.io", "camera")

        store.revoke("https://b.io")
        once = store.query("https://b.io")
        store.revoke("https://b.io")

        assert once == store.query("https://b.io") == set()
        assert store.origins() == []

    def test_case_variants_share_grants(self):
        """Test origins differing only in case or trailing slash are one origin."""
        store = CapabilityStore("wallet")
        store.grant("https://b.io/", "camera")

        assert store.query("HTTPS://B.io") == {"camera"}
        store.revoke("https://B.io")
        assert store.query("https://b.io") == set()

    def test_loads_mixed_case_keys(self):
        """Test stored grants under case variants merge into one origin."""
        storage = MemoryStorage()
        storage.write("_global", "wallet_permissions", {
            "https://B.io": ["camera"],
            "https://b.io/": ["signMessage"],
        })

        store = CapabilityStore("wallet", storage)
        assert store.query("https://b.io") == {"camera", "signMessage"}
        assert store.origins() == ["https://b.io"]

    def test_revoke_absent_origin(self):
        """Test revoking an unknown origin is a no-op."""
        CapabilityStore("wallet").revoke("https://never.io")

    def test_persisted(self, tmp_path):
        """Test grants survive a new store over the same storage."""
        CapabilityStore("wallet", JsonStorage(tmp_path)).grant("https://b.io", "camera")

        reloaded = CapabilityStore("wallet", JsonStorage(tmp_path))
        assert reloaded.query("https://b.io") == {"camera"}
        assert (tmp_path / "_global" / "wallet_permissions.json").exists()

    def test_stores_do_not_share_grants(self):
        """Test two stores on one backend stay independent."""
        storage = MemoryStorage()
        wallet = CapabilityStore("wallet", storage)
        browser = CapabilityStore("browser", storage)
        wallet.grant("https://b.io", "camera")

        assert browser.query("https://b.io") == set()

    def test_persist_failure_raises_capability_error(self, tmp_path):
        """Test persistence failures surface as CapabilityError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = CapabilityStore("wallet", JsonStorage(blocker))

        with pytest.raises(CapabilityError):
            store.grant("https://b.io", "camera")


class TestCapabilityRevoker:
    """Tests for CapabilityRevoker."""

    def test_revoke_all_fans_out(self, revoker):
        """Test both stores are revoked in one call."""
        revoker.wallet_store.grant("https://b.io", "signMessage")
        revoker.browser_store.grant("https://b.io", "camera")

        assert revoker.revoke_all("https://b.io") == []
        assert revoker.query_all("https://b.io") == {"wallet": set(), "browser": set()}

    def test_revoke_all_reports_failures(self):
        """Test a failing store is reported and the other still revoked."""

        class BrokenStore(CapabilityStore):
            def revoke(self, origin):
                raise CapabilityError(self.name, origin)

        browser = CapabilityStore("browser")
        browser.grant("https://b.io", "camera")
        revoker = CapabilityRevoker(BrokenStore("wallet"), browser)

        assert revoker.revoke_all("https://b.io") == ["wallet"]
        assert browser.query("https://b.io") == set()

    def test_get_store(self, revoker):
        """Test stores are looked up by name."""
        assert revoker.get_store("browser") is revoker.browser_store
        with pytest.raises(KeyError):
            revoker.get_store("camera")
