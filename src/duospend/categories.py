"""Category registry and default budgets."""

from decimal import Decimal

from .models import BudgetMap, CategoryDefinition

# Reserved category for synthesized settle-up transactions. Not part of the
# registry, so budget reports never include it.
ADJUSTMENT_CATEGORY = "Settlement Adjustment"

# Category assigned to remote rows whose splits could not be read
FALLBACK_CATEGORY = "Other"

DEFAULT_CATEGORIES: list[CategoryDefinition] = [
    CategoryDefinition(id="1", name="Food & Dining", color="#f97316", icon="🍔"),
    CategoryDefinition(id="2", name="Rent & Utilities", color="#0ea5e9", icon="🏠"),
    CategoryDefinition(id="3", name="Entertainment", color="#8b5cf6", icon="🎉"),
    CategoryDefinition(id="4", name="Shopping", color="#ec4899", icon="🛍️"),
    CategoryDefinition(id="5", name="Transport", color="#22c55e", icon="🚗"),
]


def default_budgets() -> BudgetMap:
    """Return a fresh copy of the default monthly limits."""
    return {
        "Food & Dining": Decimal("600.00"),
        "Rent & Utilities": Decimal("1500.00"),
        "Entertainment": Decimal("200.00"),
        "Shopping": Decimal("300.00"),
        "Transport": Decimal("150.00"),
    }


def find_category(
    categories: list[CategoryDefinition], name: str
) -> CategoryDefinition | None:
    """
    Look up a category by display name.

    Splits reference categories by display name, so this is the join used
    everywhere a split is matched to the registry.

    Args:
        categories: The category registry
        name: Display name to look for (exact match)

    Returns:
        The category if registered, None otherwise
    """
    for category in categories:
        if category.name == name:
            return category
    return None


def category_names(categories: list[CategoryDefinition]) -> list[str]:
    """Display names of all registered categories, in registry order."""
    return [category.name for category in categories]
