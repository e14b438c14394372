# codetrack/categories.py

from typing import Optional

CATEGORY_ALIASES = {
    "array": "arrays",
    "arrays": "arrays",
    "linked list": "linked-lists",
    "linked-list": "linked-lists",
    "linked lists": "linked-lists",
    "tree": "trees",
    "trees": "trees",
    "binary tree": "trees",
    "string": "strings",
    "strings": "strings",
    "graph": "graphs",
    "graphs": "graphs",
    "dp": "dynamic-programming",
    "dynamic programming": "dynamic-programming",
    "stack": "stacks",
    "stacks": "stacks",
    "queue": "queues",
    "queues": "queues",
    "heap": "heaps",
    "heaps": "heaps",
    "hash table": "hash-tables",
    "hash map": "hash-tables",
    "sorting": "sorting",
    "searching": "searching",
    "recursion": "recursion",
    "backtracking": "backtracking",
    "greedy": "greedy",
    "bit manipulation": "bit-manipulation",
    "math": "math",
    "geometry": "geometry",
    "design": "design",
    "trie": "tries",
    "union find": "union-find",
    "sliding window": "sliding-window",
    "two pointers": "two-pointers",
}


def normalize_category(category: Optional[str]) -> Optional[str]:
    """
    Collapse category synonyms to a canonical form.

    Blank input means "uncategorized" and returns None. Categories missing
    from the alias table pass through lowercased and trimmed.
    """
    if category is None:
        return None
    key = str(category).strip().lower()
    if not key:
        return None
    return CATEGORY_ALIASES.get(key, key)
