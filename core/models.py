"""
core/models.py -- Domain constants shared by every layer.

Records themselves (apartments, houses, tenants, payments ...) are owned by
the rental API and travel through RentAdmin as plain dicts keyed by the
server's camelCase field names. Only the vocabularies used to build forms,
filters and labels live here.
"""

# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------

PAYMENT_METHOD_LABELS: dict[str, str] = {
    "cash": "Cash",
    "check": "Check",
    "bank_transfer": "Bank Transfer",
    "equity_bank": "Equity Bank",
    "mobile_money": "Mobile Money",
    "mpesa_stk": "M-Pesa STK",
    "paybill": "Paybill",
    "online": "Online",
    "other": "Other",
}
PAYMENT_METHODS = list(PAYMENT_METHOD_LABELS)

PAYMENT_STATUSES = ["pending", "paid", "partial", "overdue"]

STATUS_COLORS: dict[str, str] = {
    "paid": "#27ae60",
    "pending": "#f39c12",
    "overdue": "#e74c3c",
    "partial": "#3498db",
}
DEFAULT_STATUS_COLOR = "#95a5a6"

# Defaults applied by the generate-monthly-rent and check-overdue actions.
DEFAULT_LATE_FEE_PERCENTAGE = 5
DEFAULT_GRACE_PERIOD_DAYS = 5

MOBILE_MONEY_PROVIDERS: dict[str, str] = {
    "mpesa": "M-Pesa",
    "mtn": "MTN Mobile Money",
    "airtel": "Airtel Money",
    "orange": "Orange Money",
    "other": "Other",
}

# ---------------------------------------------------------------------------
# Properties and tenants
# ---------------------------------------------------------------------------

HOUSE_STATUSES = ["available", "occupied", "maintenance"]
TENANT_STATUSES = ["active", "inactive", "past"]
DOCUMENT_TYPES = ["id", "lease", "contract", "other"]
COMMUNICATION_TYPES = ["email", "phone", "in_person", "other"]
DEFAULT_BANK_NAME = "Equity"

# ---------------------------------------------------------------------------
# Maintenance and expenses
# ---------------------------------------------------------------------------

MAINTENANCE_CATEGORIES = [
    "plumbing",
    "electrical",
    "hvac",
    "appliance",
    "structural",
    "pest_control",
    "cleaning",
    "other",
]
MAINTENANCE_PRIORITIES = ["low", "medium", "high", "urgent"]
MAINTENANCE_STATUSES = ["pending", "in_progress", "completed", "cancelled"]

EXPENSE_CATEGORIES = [
    "maintenance",
    "repair",
    "utilities",
    "insurance",
    "taxes",
    "legal",
    "marketing",
    "supplies",
    "other",
]
EXPENSE_PAYMENT_METHODS = ["cash", "check", "bank_transfer", "credit_card", "other"]

# ---------------------------------------------------------------------------
# Users and activity
# ---------------------------------------------------------------------------

SUPERADMIN = "superadmin"
ADMIN = "admin"
CARETAKER = "caretaker"
USER_ROLES = [SUPERADMIN, ADMIN, CARETAKER]

ACTIVITY_ACTIONS = [
    "login",
    "logout",
    "create",
    "update",
    "delete",
    "view",
    "export",
    "generate",
    "assign",
    "remove",
    "register",
    "password_reset",
    "status_change",
    "unauthorized_access",
    "failed_operation",
]
ACTIVITY_ENTITY_TYPES = [
    "user",
    "apartment",
    "house",
    "tenant",
    "payment",
    "maintenance",
    "expense",
    "config",
    "system",
]
ACTIVITY_LOG_PAGE_SIZE = 50
ACTIVITY_LOG_PAGE_SIZES = (25, 50, 100, 200)
DEFAULT_CLEANUP_DAYS = 90

# Bootstrap Icons name and accent colour per activity action.
ACTIVITY_ACTION_STYLES: dict[str, tuple[str, str]] = {
    "login": ("box-arrow-in-right", "#22c55e"),
    "logout": ("box-arrow-right", "#ef4444"),
    "create": ("plus-circle", "#3b82f6"),
    "update": ("pencil", "#f59e0b"),
    "delete": ("trash", "#ef4444"),
    "view": ("eye", "#8b5cf6"),
    "export": ("box-arrow-up", "#06b6d4"),
    "generate": ("file-earmark-text", "#10b981"),
    "assign": ("link-45deg", "#6366f1"),
    "remove": ("dash-circle", "#f97316"),
    "register": ("person-plus", "#14b8a6"),
    "password_reset": ("key", "#a855f7"),
    "status_change": ("arrow-repeat", "#ec4899"),
    "unauthorized_access": ("exclamation-triangle", "#f59e0b"),
    "failed_operation": ("x-octagon", "#ef4444"),
}
DEFAULT_ACTIVITY_STYLE = ("journal-text", "#6b7280")

# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

PAGE_SIZES = (10, 25, 50, 100)
