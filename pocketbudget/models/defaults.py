"""Default categories written for a user whose category list is empty."""

from pocketbudget.models.ledger import CategoryIcon, CategoryInput, CategoryKind


DEFAULT_CATEGORIES: list[CategoryInput] = [
    CategoryInput(name="Groceries", icon=CategoryIcon.SHOPPING_CART, color="hsl(231, 48%, 48%)"),
    CategoryInput(
        name="Salary",
        icon=CategoryIcon.LANDMARK,
        color="hsl(174, 100%, 29.4%)",
        kind=CategoryKind.INCOME,
    ),
    CategoryInput(name="Dining Out", icon=CategoryIcon.UTENSILS, color="hsl(25, 80%, 55%)"),
    CategoryInput(name="Transport", icon=CategoryIcon.CAR, color="hsl(280, 65%, 60%)"),
    CategoryInput(name="Entertainment", icon=CategoryIcon.TICKET, color="hsl(50, 75%, 55%)"),
    CategoryInput(name="Utilities", icon=CategoryIcon.LIGHTBULB, color="hsl(197, 71%, 73%)"),
    CategoryInput(name="Rent/Mortgage", icon=CategoryIcon.HOME, color="hsl(217, 91%, 60%)"),
    CategoryInput(name="Shopping", icon=CategoryIcon.SHOPPING_BAG, color="hsl(347, 77%, 66%)"),
    CategoryInput(name="Healthcare", icon=CategoryIcon.HEART_PULSE, color="hsl(0, 72%, 61%)"),
    CategoryInput(name="Education", icon=CategoryIcon.BOOK_OPEN, color="hsl(173, 80%, 40%)"),
    CategoryInput(name="Personal Care", icon=CategoryIcon.PALETTE, color="hsl(300, 60%, 70%)"),
    CategoryInput(name="Fitness", icon=CategoryIcon.DUMBBELL, color="hsl(120, 50%, 60%)"),
    CategoryInput(name="Gifts", icon=CategoryIcon.GIFT, color="hsl(330, 70%, 75%)"),
    CategoryInput(name="Travel", icon=CategoryIcon.PLANE, color="hsl(200, 80%, 65%)"),
    CategoryInput(name="Subscriptions", icon=CategoryIcon.REPEAT, color="hsl(260, 55%, 65%)"),
    CategoryInput(name="Insurance", icon=CategoryIcon.SHIELD_CHECK, color="hsl(220, 40%, 55%)"),
    CategoryInput(
        name="Investments",
        icon=CategoryIcon.TRENDING_UP,
        color="hsl(150, 65%, 45%)",
        kind=CategoryKind.NEUTRAL,
    ),
    CategoryInput(name="Pets", icon=CategoryIcon.DOG, color="hsl(40, 70%, 60%)"),
    CategoryInput(name="Kids", icon=CategoryIcon.BABY, color="hsl(180, 60%, 75%)"),
    CategoryInput(name="Charity", icon=CategoryIcon.HELPING_HAND, color="hsl(270, 50%, 70%)"),
    CategoryInput(name="Home Improvement", icon=CategoryIcon.WRENCH, color="hsl(30, 60%, 50%)"),
    CategoryInput(name="Electronics", icon=CategoryIcon.SMARTPHONE, color="hsl(240, 30%, 65%)"),
]
