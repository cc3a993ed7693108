"""Tool and replacement-pick bookkeeping for lock-pick attempts.

A critical failure costs one pick. Replacement picks are spent first; only
when none are left does the selected toolkit break. Breaking a stacked
toolkit splits one unit off as a separate broken item so the rest of the
stack stays usable.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from .collaborators import DEFAULT_ITEM_KIND, Inventory, InventoryItem

logger = logging.getLogger(__name__)

BROKEN_SUFFIX = " (broken)"

DEFAULT_TOOL_SLUGS = (
    "thieves-toolkit",
    "thieves-tools",
    "thieves-tools-infiltrator",
)

DEFAULT_REPLACEMENT_SLUGS = (
    "thieves-toolkit-replacement-picks",
    "replacement-picks",
)


class ConsumptionResult(str, Enum):
    """What a consumption or restore call did to the inventory."""

    NOTHING = "nothing"
    REPLACEMENT_CONSUMED = "replacement_consumed"
    TOOL_SPLIT = "tool_split"
    TOOL_BROKEN = "tool_broken"
    TOOL_RESTORED = "tool_restored"
    REPLACEMENT_RESTORED = "replacement_restored"


@dataclass
class ToolsData:
    """An actor's tools and replacement picks, classified."""

    all_tools: list[InventoryItem] = field(default_factory=list)
    tools_broken: list[InventoryItem] = field(default_factory=list)
    tools_non_broken: list[InventoryItem] = field(default_factory=list)
    replacements: list[InventoryItem] = field(default_factory=list)

    @property
    def total_non_broken_tools(self) -> int:
        return sum(item.stack_count for item in self.tools_non_broken)

    @property
    def total_replacements(self) -> int:
        return sum(item.stack_count for item in self.replacements)

    @property
    def total_picks(self) -> int:
        return self.total_non_broken_tools + self.total_replacements

    def find_tool(self, tool_id: str | None) -> InventoryItem | None:
        if not tool_id:
            return None
        return next((item for item in self.all_tools if item.id == tool_id), None)


class ResourceConsumptionPolicy:
    """Spends and restores picks on an actor's inventory.

    Every inventory call is its own unit of work. If a later call fails, the
    earlier ones stay applied and the exception propagates to the caller.
    """

    def __init__(
        self,
        tool_slugs: Sequence[str] = DEFAULT_TOOL_SLUGS,
        replacement_slugs: Sequence[str] = DEFAULT_REPLACEMENT_SLUGS,
        broken_suffix: str = BROKEN_SUFFIX,
        item_kind: str = DEFAULT_ITEM_KIND,
    ):
        self.tool_slugs = frozenset(tool_slugs)
        self.replacement_slugs = frozenset(replacement_slugs)
        self.broken_suffix = broken_suffix
        self.item_kind = item_kind

    def is_broken(self, item: InventoryItem) -> bool:
        return self.broken_suffix in (item.name or "")

    def broken_name(self, name: str) -> str:
        return name if self.broken_suffix in name else f"{name}{self.broken_suffix}"

    def restored_name(self, name: str) -> str:
        return name.replace(self.broken_suffix, "")

    def classify(self, inventory: Inventory) -> ToolsData:
        """Split an inventory into tools (broken/non-broken) and replacement picks."""
        data = ToolsData()
        for item in inventory.list_items(self.item_kind):
            if item.slug in self.tool_slugs:
                data.all_tools.append(item)
                if self.is_broken(item):
                    data.tools_broken.append(item)
                else:
                    data.tools_non_broken.append(item)
            elif item.slug in self.replacement_slugs:
                data.replacements.append(item)
        return data

    async def consume_on_critical_failure(
        self, inventory: Inventory, selected_tool_id: str | None
    ) -> ConsumptionResult:
        """Spend one pick after a critical failure.

        Args:
            inventory: The attempting actor's inventory.
            selected_tool_id: Toolkit to break if no replacement picks remain.

        Returns:
            Which resource was spent, or NOTHING if the toolkit could not be found.
        """
        data = self.classify(inventory)

        replacement = next((i for i in data.replacements if i.stack_count > 0), None)
        if replacement is not None:
            remaining = replacement.stack_count - 1
            if remaining > 0:
                await inventory.update_quantity(replacement, remaining)
            else:
                await inventory.delete(replacement)
            logger.info(f"Consumed one replacement pick from {replacement.id} ({remaining} left)")
            return ConsumptionResult.REPLACEMENT_CONSUMED

        if not selected_tool_id:
            logger.info("No replacement picks and no toolkit selected, nothing to break")
            return ConsumptionResult.NOTHING

        toolkit = data.find_tool(selected_tool_id)
        if toolkit is None:
            logger.info(f"Selected toolkit {selected_tool_id} not found, nothing to break")
            return ConsumptionResult.NOTHING

        broken_name = self.broken_name(toolkit.name)
        if toolkit.stack_count > 1:
            await inventory.update_quantity(toolkit, toolkit.stack_count - 1)
            broken = await inventory.create_from_template(
                toolkit, {"name": broken_name, "quantity": 1}
            )
            logger.info(f"Split broken toolkit {broken.id} off stack {toolkit.id}")
            return ConsumptionResult.TOOL_SPLIT

        await inventory.rename(toolkit, broken_name)
        logger.info(f"Marked toolkit {toolkit.id} as broken")
        return ConsumptionResult.TOOL_BROKEN

    async def restore_one(self, inventory: Inventory) -> ConsumptionResult:
        """Undo one unit of breakage: repair a toolkit, else add a replacement pick."""
        data = self.classify(inventory)

        if data.tools_broken:
            toolkit = data.tools_broken[0]
            await inventory.rename(toolkit, self.restored_name(toolkit.name))
            logger.info(f"Restored broken toolkit {toolkit.id}")
            return ConsumptionResult.TOOL_RESTORED

        if data.replacements:
            stack = data.replacements[0]
            await inventory.update_quantity(stack, stack.stack_count + 1)
            logger.info(f"Restored one replacement pick to {stack.id}")
            return ConsumptionResult.REPLACEMENT_RESTORED

        logger.info("Nothing to restore")
        return ConsumptionResult.NOTHING
