# FILE: bukedlist/constants/categories.py
from typing import List, Dict

# Seeded on first run and after a full clear; ids are fixed so exports stay comparable
DEFAULT_CATEGORIES: List[Dict[str, str]] = [
    {"id": "electronics", "name": "Electronics",   "emoji": "📱"},
    {"id": "fashion",     "name": "Fashion",       "emoji": "👗"},
    {"id": "home",        "name": "Home & Garden", "emoji": "🏠"},
    {"id": "books",       "name": "Books",         "emoji": "📚"},
]

DEFAULT_CATEGORY_IDS = [c["id"] for c in DEFAULT_CATEGORIES]
