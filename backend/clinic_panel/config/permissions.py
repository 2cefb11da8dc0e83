"""
Permission registry — single source of truth for all permission keys, labels
and categories. Grants themselves live on the backend and arrive in the token.
"""

ALL_PERMISSIONS = {
    # Pages
    "page:analytics":     {"label": "Analytics Page",   "category": "pages"},

    # Resources
    "resource:clients":   {"label": "Clients",          "category": "resources"},
    "resource:personnel": {"label": "Personnel",        "category": "resources"},
    "resource:services":  {"label": "Services",         "category": "resources"},
    "resource:items":     {"label": "Items & Inventory", "category": "resources"},
    "resource:payments":  {"label": "Payments",         "category": "resources"},
    "resource:visits":    {"label": "Visits",           "category": "resources"},
}

CLIENTS = "resource:clients"
PERSONNEL = "resource:personnel"
SERVICES = "resource:services"
ITEMS = "resource:items"
PAYMENTS = "resource:payments"
VISITS = "resource:visits"
ANALYTICS = "page:analytics"
