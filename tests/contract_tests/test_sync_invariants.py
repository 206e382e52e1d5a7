"""
Property Tests for Emote Sync
Verifies discovery dedup, fan-out consistency and run idempotence.
"""

import hashlib

from hypothesis import given, settings, strategies as st
from hypothesis.strategies import composite

from emotesync import (
    EmoteSyncEngine,
    ExternalCustomEmote,
    InMemoryContentSource,
    InMemoryRegistry,
    InternalCustomEmote,
    UnicodeEmote,
    discover,
)

# =============================================================================
# STRATEGIES (Generators)
# =============================================================================

keys = st.text(alphabet="abcdefghij_", min_size=2, max_size=8)


@composite
def specifications(draw, key_pool):
    kind = draw(st.sampled_from(["unicode", "external", "internal"]))
    if kind == "unicode":
        return UnicodeEmote(draw(st.sampled_from(["🤔", "❓", "✅"])))
    if kind == "external":
        return ExternalCustomEmote(
            name=draw(keys),
            remote_id=draw(st.integers(min_value=1, max_value=2**63)),
            animated=draw(st.booleans())
        )
    return InternalCustomEmote(draw(st.sampled_from(key_pool)))


@composite
def slot_lists(draw):
    """Generates slots whose internal keys come from a small shared pool."""
    key_pool = draw(st.lists(keys, min_size=1, max_size=4, unique=True))
    specs = draw(st.lists(specifications(key_pool), min_size=0, max_size=12))
    return [(f"slot_{i}", spec) for i, spec in enumerate(specs)]


@composite
def content_maps(draw):
    return draw(st.dictionaries(keys, st.binary(min_size=1, max_size=32), min_size=1, max_size=5))


# =============================================================================
# DISCOVERY PROPERTIES
# =============================================================================

class TestDiscoveryProperties:

    @given(slot_lists())
    def test_internal_keys_are_unique_and_in_first_seen_order(self, slots):
        discovery = discover(slots)

        expected = []
        for _, spec in slots:
            if isinstance(spec, InternalCustomEmote) and spec.key not in expected:
                expected.append(spec.key)

        assert discovery.internal_keys == expected

    @given(slot_lists())
    def test_every_slot_is_accounted_for_exactly_once(self, slots):
        discovery = discover(slots)

        resolved_ids = [b.slot_id for b in discovery.resolved]
        internal_ids = [sid for m in discovery.internal for sid in m.slot_ids]

        assert sorted(resolved_ids + internal_ids) == sorted(sid for sid, _ in slots)

    @given(slot_lists())
    def test_mapping_targets_keep_registration_order(self, slots):
        discovery = discover(slots)

        for mapping in discovery.internal:
            expected = [
                sid for sid, spec in slots
                if isinstance(spec, InternalCustomEmote) and spec.key == mapping.key
            ]
            assert mapping.slot_ids == expected


# =============================================================================
# RUN PROPERTIES
# =============================================================================

class TestRunProperties:

    @settings(max_examples=50)
    @given(content_maps(), st.data())
    def test_second_run_is_idempotent(self, content, data):
        chosen = data.draw(st.lists(st.sampled_from(sorted(content)), max_size=6))
        slots = [(f"slot_{i}", InternalCustomEmote(k)) for i, k in enumerate(chosen)]

        registry = InMemoryRegistry()
        engine = EmoteSyncEngine(InMemoryContentSource(content), registry)
        ledger = []

        first = engine.run_sync(slots, ledger)
        mutations = registry.mutation_count
        second = engine.run_sync(slots, ledger)

        assert registry.mutation_count == mutations
        assert second.handles == first.handles
        assert sorted(e.key for e in ledger) == sorted(set(chosen))

    @settings(max_examples=50)
    @given(content_maps(), st.data())
    def test_ledger_matches_registry_and_content_after_run(self, content, data):
        chosen = data.draw(st.lists(st.sampled_from(sorted(content)), max_size=6))
        slots = [(f"slot_{i}", InternalCustomEmote(k)) for i, k in enumerate(chosen)]

        registry = InMemoryRegistry()
        engine = EmoteSyncEngine(InMemoryContentSource(content), registry)
        ledger = []

        engine.run_sync(slots, ledger)

        live = {r.id: r.name for r in registry.resources}
        for entry in ledger:
            assert live[entry.remote_id] == entry.key
            assert entry.content_identifier == hashlib.sha256(content[entry.key]).digest()

    @given(slot_lists())
    def test_fan_out_slots_receive_identical_handles(self, slots):
        content = {
            spec.key: spec.key.encode()
            for _, spec in slots if isinstance(spec, InternalCustomEmote)
        }
        engine = EmoteSyncEngine(InMemoryContentSource(content), InMemoryRegistry())

        report = engine.run_sync(slots, [])

        by_key = {}
        for slot_id, spec in slots:
            if isinstance(spec, InternalCustomEmote):
                by_key.setdefault(spec.key, set()).add(report.handles[slot_id])
        assert all(len(handles) == 1 for handles in by_key.values())
