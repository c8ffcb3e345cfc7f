# turnbot/bot/commands.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional

# ----------------------------
# Reply texts
# ----------------------------
GREETING = "Hello, I'm Bot, if you need help, write [Help]"

HELP_MENU = "Menu\nOrder"

CATALOG = (
    "1. --------> All T-shirts\n"
    "2. --------> All Fresh"
)

T_SHIRTS = (
    "1. Sharkasm\n"
    "2. Sobaka\n"
    "3. Slozhna\n"
    "4. ╰☆╮"
)

FRESH = (
    "1. Mellon\n"
    "2. WaterMellon"
)

CART_UNAVAILABLE = "Корзина not work :("

ADDED = "Добавлено ✔"


class Command(str, Enum):
    HELP = "help"
    MENU = "menu"
    T_SHIRTS = "t_shirts"
    FRESH = "fresh"
    ORDER = "order"


@dataclass(frozen=True)
class Rule:
    """One row of the dispatch table.

    Rules with no ``group`` fire independently. Rules sharing a group behave
    like an if/else-if chain: only the first match in table order fires.
    ``labels`` are the selection ids that count as picking an item.
    """

    command: Command
    words: FrozenSet[str]
    reply: str
    group: Optional[str] = None
    labels: FrozenSet[str] = field(default_factory=frozenset)

    def matches(self, text: str) -> bool:
        return text in self.words


RULES: List[Rule] = [
    Rule(Command.HELP, frozenset({"Help", "help"}), HELP_MENU),
    Rule(Command.MENU, frozenset({"Menu", "menu", "Меню", "меню"}), CATALOG),
    Rule(Command.T_SHIRTS, frozenset({"1"}), T_SHIRTS, group="category", labels=frozenset({"1", "2", "3", "4"})),
    Rule(Command.FRESH, frozenset({"2"}), FRESH, group="category", labels=frozenset({"1", "2"})),
    Rule(Command.ORDER, frozenset({"Order", "order", "Заказ", "заказ"}), CART_UNAVAILABLE),
]


def normalize(text: str | None) -> str:
    # Case is significant; only surrounding whitespace is dropped.
    return (text or "").strip()


def match(text: str | None, rules: List[Rule] | None = None) -> List[Rule]:
    """Return the rules that fire for ``text``, in table order."""
    msg = normalize(text)
    if not msg:
        return []

    fired: List[Rule] = []
    taken_groups = set()
    for rule in (RULES if rules is None else rules):
        if rule.group and rule.group in taken_groups:
            continue
        if not rule.matches(msg):
            continue
        fired.append(rule)
        if rule.group:
            taken_groups.add(rule.group)
    return fired


def confirm_selection(rule: Rule, label: str | None) -> Optional[str]:
    """Confirmation for adding the labelled item to an order, if any."""
    if not rule.labels:
        return None
    if (label or "") in rule.labels:
        return ADDED
    return None
