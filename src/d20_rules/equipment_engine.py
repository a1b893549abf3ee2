"""
Equipment resolution: slot assignment, displacement and encumbrance.

Every entry point is all-or-nothing. On failure the character comes back
untouched; on success a new Character is returned with exactly one fresh
DerivedStats computed for it.
"""

from pydantic import BaseModel, Field

from .effects import EffectAggregator
from .models import Character, DerivedStats, Encumbrance, Failure, FailureCode, ItemInstance
from .rulebooks.catalog import RuleCatalog
from .rulebooks.models import SLOT_CAPACITY, ItemDefinition


# Category → slot used when the caller does not name one
CATEGORY_SLOTS = {
    "weapon": "main_hand",
    "armor": "armor",
    "shield": "off_hand",
}


class EquipResult(BaseModel):
    """Outcome of an equipment operation."""
    legal: bool
    failure: Failure | None = None
    displaced: list[str] = Field(default_factory=list, description="Instance ids unequipped to make room")
    character: Character
    derived: DerivedStats | None = None
    instance_id: str | None = None


def _failure(code: FailureCode, reason: str, **details) -> Failure:
    return Failure(code=code, reason=reason, details=details)


class EquipmentEngine:
    """Equips, unequips, adds and removes items."""

    def __init__(self, catalog: RuleCatalog, aggregator: EffectAggregator | None = None):
        self.catalog = catalog
        self.aggregator = aggregator or EffectAggregator(catalog)

    def resolve_slot(self, item: ItemDefinition, target_slot: str | None = None) -> str | Failure:
        """Slot an item goes into, or the reason it cannot go there."""
        if not item.slots:
            return _failure(FailureCode.ILLEGAL_SLOT_ASSIGNMENT, "item_not_equippable", item_id=item.index)
        if target_slot is None:
            target_slot = CATEGORY_SLOTS.get(item.category)
            if target_slot is None:
                if len(item.slots) != 1:
                    return _failure(
                        FailureCode.ILLEGAL_SLOT_ASSIGNMENT, "no_default_slot",
                        item_id=item.index, slots=list(item.slots),
                    )
                target_slot = item.slots[0]
        if target_slot not in item.slots:
            return _failure(
                FailureCode.ILLEGAL_SLOT_ASSIGNMENT, "slot_not_allowed",
                item_id=item.index, slot=target_slot, slots=list(item.slots),
            )
        return target_slot

    def equip(self, character: Character, item_instance_id: str, target_slot: str | None = None) -> EquipResult:
        """
        Equip an inventory item.

        Args:
            character: The character (not modified)
            item_instance_id: Inventory instance id
            target_slot: Slot to use; derived from the item category if omitted

        Returns:
            EquipResult; ``displaced`` lists items moved out of the way
        """
        instance = character.get_item(item_instance_id)
        if instance is None:
            return self._fail(
                character, _failure(
                    FailureCode.UNKNOWN_CATALOG_ENTRY, "unknown_item_instance", instance_id=item_instance_id,
                ),
            )
        item = self.catalog.get_item(instance.item_id)
        if item is None:
            return self._fail(
                character, _failure(FailureCode.UNKNOWN_CATALOG_ENTRY, "unknown_item", item_id=instance.item_id),
            )

        slot = self.resolve_slot(item, target_slot)
        if isinstance(slot, Failure):
            return self._fail(character, slot)

        updated = character.model_copy(deep=True)
        if instance.equipped and instance.slot == slot:
            return self._ok(updated, instance_id=instance.id)

        occupants = [
            i for i in updated.inventory
            if i.equipped and i.slot == slot and i.id != instance.id
        ]
        displaced: list[ItemInstance] = []

        capacity = SLOT_CAPACITY.get(slot, 1)
        if capacity > 1:
            if len(occupants) >= capacity:
                return self._fail(
                    character, _failure(
                        FailureCode.ILLEGAL_SLOT_ASSIGNMENT, "slot_full",
                        slot=slot, occupants=[i.id for i in occupants],
                    ),
                )
        else:
            displaced.extend(occupants)

        if slot == "main_hand" and item.two_handed:
            displaced.extend(self._occupants(updated, "off_hand", exclude=instance.id))
        elif slot == "off_hand":
            for held in self._occupants(updated, "main_hand", exclude=instance.id):
                held_def = self.catalog.get_item(held.item_id)
                if held_def is not None and held_def.two_handed:
                    displaced.append(held)

        for other in displaced:
            other.equipped = False
            other.slot = None
        target = updated.get_item(instance.id)
        target.equipped = True
        target.slot = slot

        return self._ok(updated, displaced=[i.id for i in displaced], instance_id=instance.id)

    def unequip(self, character: Character, item_instance_id: str) -> EquipResult:
        """Unequip an item. Unequipping an item that is not equipped changes nothing."""
        instance = character.get_item(item_instance_id)
        if instance is None:
            return self._fail(
                character, _failure(
                    FailureCode.UNKNOWN_CATALOG_ENTRY, "unknown_item_instance", instance_id=item_instance_id,
                ),
            )
        updated = character.model_copy(deep=True)
        target = updated.get_item(item_instance_id)
        target.equipped = False
        target.slot = None
        return self._ok(updated, instance_id=item_instance_id)

    def add_item(self, character: Character, item_id: str, quantity: int = 1) -> EquipResult:
        """Add an item to the inventory. Gear stacks onto an existing unequipped pile."""
        if quantity < 1:
            raise ValueError(f"quantity must be at least 1, got {quantity}")
        item = self.catalog.get_item(item_id)
        if item is None:
            return self._fail(character, _failure(FailureCode.UNKNOWN_CATALOG_ENTRY, "unknown_item", item_id=item_id))

        updated = character.model_copy(deep=True)
        if item.category == "gear":
            for existing in updated.inventory:
                if existing.item_id == item.index and not existing.equipped:
                    existing.quantity += quantity
                    return self._ok(updated, instance_id=existing.id)

        instance = ItemInstance(item_id=item.index, quantity=quantity)
        updated.inventory.append(instance)
        return self._ok(updated, instance_id=instance.id)

    def remove_item(self, character: Character, item_instance_id: str, quantity: int | None = None) -> EquipResult:
        """Remove some or all of an inventory instance (unequipping it first)."""
        if quantity is not None and quantity < 1:
            raise ValueError(f"quantity must be at least 1, got {quantity}")
        instance = character.get_item(item_instance_id)
        if instance is None:
            return self._fail(
                character, _failure(
                    FailureCode.UNKNOWN_CATALOG_ENTRY, "unknown_item_instance", instance_id=item_instance_id,
                ),
            )
        updated = character.model_copy(deep=True)
        if quantity is None or quantity >= instance.quantity:
            updated.inventory = [i for i in updated.inventory if i.id != item_instance_id]
        else:
            updated.get_item(item_instance_id).quantity -= quantity
        return self._ok(updated, instance_id=item_instance_id)

    def encumbrance(self, character: Character) -> Encumbrance:
        return self.aggregator.aggregate(character).encumbrance

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    @staticmethod
    def _occupants(character: Character, slot: str, exclude: str) -> list[ItemInstance]:
        return [i for i in character.inventory if i.equipped and i.slot == slot and i.id != exclude]

    def _ok(self, character: Character, displaced: list[str] | None = None, instance_id: str | None = None) -> EquipResult:
        return EquipResult(
            legal=True,
            displaced=displaced or [],
            character=character,
            derived=self.aggregator.aggregate(character),
            instance_id=instance_id,
        )

    @staticmethod
    def _fail(character: Character, failure: Failure) -> EquipResult:
        return EquipResult(legal=False, failure=failure, character=character)


__all__ = [
    "CATEGORY_SLOTS",
    "EquipResult",
    "EquipmentEngine",
]
