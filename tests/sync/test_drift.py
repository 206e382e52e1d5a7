"""
Drift Handling Tests

The registry can change behind the ledger's back. These tests pin down how
each kind of divergence is healed (or deliberately left alone).
"""

import pytest

from emotesync import (
    InternalCustomEmote,
    RemoteResource,
    SyncConfig,
    SyncEventType,
    UnicodeEmote,
)

from .fixtures import PNG_OKAY, PNG_OKAY_V2, PNG_OTHER, make_engine, sha256, tracked


class TestPrune:
    """Entries whose remote resource vanished are dropped without a delete."""

    def test_entry_missing_from_snapshot_is_pruned_without_delete(self):
        engine, _, registry = make_engine(resources=[])
        ledger = [tracked("okay", 123, PNG_OKAY)]

        report = engine.run_sync([("emote", UnicodeEmote("🤔"))], ledger)

        assert ledger == []
        assert registry.calls_of("delete") == []
        assert report.plan.prune == ("okay",)

    def test_pruned_desired_key_is_readded(self):
        engine, _, registry = make_engine(content={"okay": PNG_OKAY}, first_id=500)
        ledger = [tracked("okay", 123, PNG_OKAY)]

        report = engine.run_sync([("emote", InternalCustomEmote("okay"))], ledger)

        assert registry.calls == [("list", None), ("create", "okay")]
        assert ledger[0].remote_id == 500
        assert report.handles["emote"].remote_id == 500

    def test_out_of_band_delete_heals_on_next_run(self):
        engine, _, registry = make_engine(content={"okay": PNG_OKAY})
        ledger = []
        slots = [("emote", InternalCustomEmote("okay"))]

        engine.run_sync(slots, ledger)
        registry.remove_out_of_band(ledger[0].remote_id)
        report = engine.run_sync(slots, ledger)

        pruned = [e.key for e in report.events if e.event_type == SyncEventType.PRUNED]
        assert pruned == ["okay"]
        assert registry.find("okay").id == ledger[0].remote_id
        assert report.complete


class TestOrphans:
    """A remote resource named like an untracked desired key is replaced."""

    def test_orphan_is_deleted_before_create(self):
        engine, _, registry = make_engine(
            content={"okay": PNG_OKAY},
            resources=[RemoteResource(77, "okay")]
        )
        ledger = []

        report = engine.run_sync([("emote", InternalCustomEmote("okay"))], ledger)

        assert registry.calls == [("list", None), ("delete", 77), ("create", "okay")]
        assert ledger[0].remote_id != 77
        assert report.plan.orphans == ("okay",)

    def test_orphan_delete_failure_skips_create(self):
        engine, _, registry = make_engine(
            content={"okay": PNG_OKAY},
            resources=[RemoteResource(77, "okay")],
            fail_on=[("delete", "okay")]
        )
        ledger = []

        report = engine.run_sync([("emote", InternalCustomEmote("okay"))], ledger)

        assert registry.calls_of("create") == []
        assert ledger == []
        assert report.failures[0].op == "delete"
        assert report.plan.orphans == ()
        assert report.plan.mutation_count == 0

    def test_orphan_deleted_before_failed_create_is_still_reported(self):
        engine, _, registry = make_engine(
            content={"okay": PNG_OKAY},
            resources=[RemoteResource(77, "okay")],
            fail_on=[("create", "okay")]
        )

        report = engine.run_sync([("emote", InternalCustomEmote("okay"))], [])

        assert registry.calls_of("delete") == [77]
        assert report.plan.orphans == ("okay",)
        assert report.plan.add == ()


class TestUntracked:
    """Unknown remote resources are reported, never touched."""

    def test_untracked_resources_are_left_alone(self):
        engine, _, registry = make_engine(
            content={"okay": PNG_OKAY},
            resources=[RemoteResource(9, "handmade")]
        )

        report = engine.run_sync([("emote", InternalCustomEmote("okay"))], [])

        assert registry.calls_of("delete") == []
        assert report.untracked_resources == (RemoteResource(9, "handmade"),)


class TestDryRun:

    def test_dry_run_plans_without_mutating(self):
        engine, _, registry = make_engine(
            content={"new": PNG_OTHER, "changed": PNG_OKAY_V2, "same": PNG_OKAY},
            resources=[
                RemoteResource(1, "changed"),
                RemoteResource(2, "same"),
                RemoteResource(3, "obsolete"),
                RemoteResource(4, "new"),
            ],
            config=SyncConfig(dry_run=True)
        )
        ledger = [
            tracked("changed", 1, PNG_OKAY),
            tracked("same", 2, PNG_OKAY),
            tracked("obsolete", 3, PNG_OKAY),
            tracked("vanished", 99, PNG_OKAY),
        ]
        before = [tracked(e.key, e.remote_id, PNG_OKAY) for e in ledger]

        report = engine.run_sync([
            ("new", InternalCustomEmote("new")),
            ("changed", InternalCustomEmote("changed")),
            ("same", InternalCustomEmote("same")),
        ], ledger)

        assert registry.calls == [("list", None)]
        assert ledger == before
        assert report.dry_run
        assert not report.complete
        assert report.plan.prune == ("vanished",)
        assert report.plan.remove == ("obsolete",)
        assert report.plan.add == ("new",)
        assert report.plan.orphans == ("new",)
        assert report.plan.update == ("changed",)
        assert report.plan.mutation_count == 5
