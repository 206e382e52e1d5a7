"""
Specification Discovery

Normalizes desired-state slots into immediately resolvable bindings plus a
deduplicated list of internal-key mappings.

PRINCIPLES:
===========
1. Unicode and external emotes never need the registry: resolve them here
2. Internal emotes sharing a key collapse into ONE mapping (fan-out)
3. Registration order is preserved for mappings and for their targets
4. Malformed input raises before anything is mutated
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set, Tuple, Union

from .contracts import (
    EmoteSlot, SlotTarget, ResolvedBinding, InternalMapping,
    UnicodeEmote, ExternalCustomEmote, InternalCustomEmote,
    UnicodeHandle, CustomHandle,
)
from .errors import MissingSpecification, DuplicateSlot, UnsupportedSpecification


SlotInput = Union[EmoteSlot, Tuple]


@dataclass
class Discovery:
    """Output of discovery: simple bindings and internal mappings."""
    resolved: List[ResolvedBinding] = field(default_factory=list)
    internal: List[InternalMapping] = field(default_factory=list)

    @property
    def internal_keys(self) -> List[str]:
        return [m.key for m in self.internal]


def as_slot(item: SlotInput) -> EmoteSlot:
    """Accept EmoteSlot, (slot_id, spec) or (slot_id, spec, target)."""
    if isinstance(item, EmoteSlot):
        return item
    if isinstance(item, tuple) and len(item) in (2, 3):
        return EmoteSlot(*item)
    raise TypeError(
        f"Expected EmoteSlot or (slot_id, specification[, target]) tuple, got {item!r}"
    )


def discover(slots: Iterable[SlotInput]) -> Discovery:
    """
    Split slots into resolved bindings and deduplicated internal mappings.

    Raises MissingSpecification, DuplicateSlot or UnsupportedSpecification.
    """
    result = Discovery()
    by_key: Dict[str, InternalMapping] = {}
    seen: Set[str] = set()

    for item in slots:
        slot = as_slot(item)

        if slot.slot_id in seen:
            raise DuplicateSlot(slot.slot_id)
        seen.add(slot.slot_id)

        spec = slot.specification

        if spec is None:
            raise MissingSpecification(slot.slot_id)

        if isinstance(spec, UnicodeEmote):
            result.resolved.append(ResolvedBinding(
                slot_id=slot.slot_id,
                handle=UnicodeHandle(spec.character),
                target=slot.target
            ))

        elif isinstance(spec, ExternalCustomEmote):
            result.resolved.append(ResolvedBinding(
                slot_id=slot.slot_id,
                handle=CustomHandle(
                    remote_id=spec.remote_id,
                    name=spec.name,
                    animated=spec.animated
                ),
                target=slot.target
            ))

        elif isinstance(spec, InternalCustomEmote):
            if not isinstance(spec.key, str) or not spec.key:
                raise UnsupportedSpecification(
                    slot.slot_id, spec, "internal emote key must be a non-empty string"
                )

            mapping = by_key.get(spec.key)
            if mapping is None:
                mapping = InternalMapping(key=spec.key)
                by_key[spec.key] = mapping
                result.internal.append(mapping)
            mapping.targets.append(SlotTarget(slot_id=slot.slot_id, target=slot.target))

        else:
            raise UnsupportedSpecification(slot.slot_id, spec)

    return result
