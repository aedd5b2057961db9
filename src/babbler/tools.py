"""MCP tool definitions wrapping the babbler engine."""

from __future__ import annotations

from typing import Any

from .engine import BabblerEngine
from .errors import BabblerError, QueryError, StoreError, ValidationError

_CATEGORY_FILTER = {
    "type": "string",
    "description": "Exact category to search in ('*' for all)",
    "default": "*",
}


def make_tools(engine: BabblerEngine) -> dict[str, dict]:
    """Create MCP tool definitions for the babbler engine.

    Returns:
        Dict mapping tool names to their definitions.
    """

    tools = {}

    # ========== entry_create ==========
    tools["entry_create"] = {
        "name": "entry_create",
        "description": "Create a new entry. Dynamic content and fronted title are derived automatically.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "category": {"type": "string", "description": "Top-level category"},
                "sub_category": {"type": "string", "description": "Sub-category within the category"},
                "title": {"type": "string", "description": "Entry title"},
                "content": {"type": "string", "description": "Raw entry content"},
                "author": {"type": "string", "description": "Who is creating the entry"},
                "created": {
                    "type": "string",
                    "description": "Creation date, free-form (default: now)",
                },
                "published": {
                    "type": "string",
                    "description": "Publish date, free-form (default: unpublished)",
                },
                "is_draft": {"type": "boolean", "default": False},
                "is_hidden": {"type": "boolean", "default": False},
            },
            "required": ["category", "sub_category", "title", "content", "author"],
        },
    }

    # ========== entry_edit ==========
    tools["entry_edit"] = {
        "name": "entry_edit",
        "description": "Edit an existing entry. Only non-empty fields are changed; the previous state is kept in history.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "entry_id": {"type": "integer", "description": "Entry to edit"},
                "editor": {"type": "string", "description": "Who is editing the entry"},
                "category": {"type": "string"},
                "sub_category": {"type": "string"},
                "title": {"type": "string"},
                "content": {"type": "string"},
                "published": {
                    "type": "string",
                    "description": "Publish date as YYYY-MM-DD HH:MM:SS; other shapes are ignored",
                },
                "is_draft": {"type": "boolean", "description": "Omit to leave unchanged"},
                "is_hidden": {"type": "boolean", "description": "Omit to leave unchanged"},
            },
            "required": ["entry_id", "editor"],
        },
    }

    # ========== entry_delete ==========
    tools["entry_delete"] = {
        "name": "entry_delete",
        "description": "Delete an entry. Its last state is kept in history.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "entry_id": {"type": "integer", "description": "Entry to delete"},
            },
            "required": ["entry_id"],
        },
    }

    # ========== entry_read ==========
    tools["entry_read"] = {
        "name": "entry_read",
        "description": "Read a single entry, optionally with its edit history.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "entry_id": {"type": "integer", "description": "Entry to read"},
                "include_history": {
                    "type": "boolean",
                    "description": "Include prior states, oldest first",
                    "default": False,
                },
            },
            "required": ["entry_id"],
        },
    }

    # ========== entry_list ==========
    tools["entry_list"] = {
        "name": "entry_list",
        "description": "List entries, optionally within a category and sub-category.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "category": {"type": "string", "description": "Category to list (omit for all entries)"},
                "sub_category": {"type": "string"},
                "order_by": {"type": "string", "default": "created"},
                "sort": {"type": "string", "enum": ["ASC", "DESC"], "default": "ASC"},
                "start": {"type": "integer", "default": 0},
                "limit": {"type": "integer", "description": "Maximum entries, 0 for all"},
                "published_only": {"type": "boolean", "default": False},
            },
        },
    }

    # ========== entry_search ==========
    tools["entry_search"] = {
        "name": "entry_search",
        "description": (
            "Search entries. Modes: exact (substring), fuzzy (words in order), "
            "threshold (ranked by matching words), regex (content pattern), title."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search text or pattern"},
                "mode": {
                    "type": "string",
                    "enum": ["exact", "fuzzy", "threshold", "regex", "title"],
                    "default": "exact",
                },
                "category": _CATEGORY_FILTER,
            },
            "required": ["query"],
        },
    }

    # ========== categories ==========
    tools["categories"] = {
        "name": "categories",
        "description": "Entry counts per category, or per sub-category within a category.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "category": {
                    "type": "string",
                    "description": "List sub-categories of this category instead",
                },
            },
        },
    }

    # ========== rule_add ==========
    tools["rule_add"] = {
        "name": "rule_add",
        "description": "Add a content rule (regex -> replacement) to the rewriting pipeline.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Regular expression (unique)"},
                "replacement": {"type": "string", "default": ""},
                "order": {"type": "integer", "description": "Position key (default: after last rule)"},
            },
            "required": ["pattern"],
        },
    }

    # ========== rule_list ==========
    tools["rule_list"] = {
        "name": "rule_list",
        "description": "List content rules in application order.",
        "inputSchema": {"type": "object", "properties": {}},
    }

    # ========== rule_remove ==========
    tools["rule_remove"] = {
        "name": "rule_remove",
        "description": "Remove the content rule with the given order key.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "order": {"type": "integer"},
            },
            "required": ["order"],
        },
    }

    # ========== rule_reorder ==========
    tools["rule_reorder"] = {
        "name": "rule_reorder",
        "description": "Reorder content rules. List every current order key once, in the new sequence.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "order": {
                    "type": "array",
                    "items": {"type": "integer"},
                    "description": "Existing order keys in the desired sequence",
                },
            },
            "required": ["order"],
        },
    }

    # ========== rules_rebuild ==========
    tools["rules_rebuild"] = {
        "name": "rules_rebuild",
        "description": "Recompute dynamic content for all entries with the current rules.",
        "inputSchema": {"type": "object", "properties": {}},
    }

    return tools


def _search(engine: BabblerEngine, arguments: dict[str, Any]) -> list[dict[str, Any]]:
    query = arguments["query"]
    mode = arguments.get("mode", "exact")
    category = arguments.get("category", "*")
    search = engine.search

    if mode == "exact":
        return [e.to_dict() for e in search.search_exact(query, category)]
    elif mode == "fuzzy":
        return [e.to_dict() for e in search.search_fuzzy(query, category)]
    elif mode == "threshold":
        return [m.to_dict() for m in search.search_threshold(query, category)]
    elif mode == "regex":
        return [e.to_dict() for e in search.search_regex(query, category)]
    elif mode == "title":
        return [e.to_dict() for e in search.search_title(query)]
    raise ValidationError(f"Unknown search mode: {mode}")


async def execute_tool(engine: BabblerEngine, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Execute a babbler tool and return the result.

    Args:
        engine: BabblerEngine instance
        name: Tool name
        arguments: Tool arguments

    Returns:
        Result dict with success status and data or error
    """
    try:
        if name == "entry_create":
            entry_id = engine.store.create(
                category=arguments["category"],
                sub_category=arguments["sub_category"],
                title=arguments["title"],
                content=arguments["content"],
                author=arguments["author"],
                created=arguments.get("created"),
                published=arguments.get("published"),
                is_draft=arguments.get("is_draft", False),
                is_hidden=arguments.get("is_hidden", False),
            )
            return {
                "success": True,
                "entry_id": entry_id,
                "message": f"Entry {entry_id} created",
            }

        elif name == "entry_edit":
            rows = engine.store.edit(
                entry_id=arguments["entry_id"],
                editor=arguments["editor"],
                category=arguments.get("category", ""),
                sub_category=arguments.get("sub_category", ""),
                title=arguments.get("title", ""),
                content=arguments.get("content", ""),
                published=arguments.get("published", ""),
                is_draft=arguments.get("is_draft"),
                is_hidden=arguments.get("is_hidden"),
            )
            return {
                "success": True,
                "entry_id": arguments["entry_id"],
                "rows_affected": rows,
                "message": f"Entry {arguments['entry_id']} edited",
            }

        elif name == "entry_delete":
            deleted = engine.store.delete(arguments["entry_id"])
            if not deleted:
                return {
                    "success": False,
                    "error": f"Entry not found: {arguments['entry_id']}",
                    "error_type": "not_found",
                }
            return {
                "success": True,
                "entry_id": arguments["entry_id"],
                "message": f"Entry {arguments['entry_id']} deleted",
            }

        elif name == "entry_read":
            entry = engine.store.fetch_entry(arguments["entry_id"])
            if entry is None:
                return {
                    "success": False,
                    "error": f"Entry not found: {arguments['entry_id']}",
                    "error_type": "not_found",
                }
            result: dict[str, Any] = {"success": True, "entry": entry.to_dict()}
            if arguments.get("include_history", False):
                result["history"] = [h.to_dict() for h in engine.history.for_entry(entry.entry_id)]
            return result

        elif name == "entry_list":
            if arguments.get("category"):
                entries = engine.store.fetch_entries_by_category(
                    category=arguments["category"],
                    sub_category=arguments.get("sub_category", ""),
                    order_by=arguments.get("order_by", "created"),
                    sort=arguments.get("sort", "ASC"),
                    start=arguments.get("start", 0),
                    limit=arguments.get("limit", 10),
                    published_only=arguments.get("published_only", False),
                )
            else:
                entries = engine.store.fetch_entry_table(
                    order_by=arguments.get("order_by", "created"),
                    sort=arguments.get("sort", "ASC"),
                    limit=arguments.get("limit", 50),
                    start=arguments.get("start", 0),
                )
            return {
                "success": True,
                "count": len(entries),
                "entries": [e.to_dict() for e in entries],
            }

        elif name == "entry_search":
            results = _search(engine, arguments)
            return {
                "success": True,
                "count": len(results),
                "results": results,
            }

        elif name == "categories":
            if arguments.get("category"):
                counts = engine.search.fetch_sub_categories(arguments["category"])
            else:
                counts = engine.search.fetch_categories()
            return {
                "success": True,
                "counts": counts,
            }

        elif name == "rule_add":
            rule = engine.rules.add_rule(
                pattern=arguments["pattern"],
                replacement=arguments.get("replacement", ""),
                order=arguments.get("order"),
            )
            return {
                "success": True,
                "rule": rule.to_dict(),
                "message": f"Rule {rule.order} added",
            }

        elif name == "rule_list":
            rules = engine.rules.list_rules()
            return {
                "success": True,
                "count": len(rules),
                "rules": [r.to_dict() for r in rules],
            }

        elif name == "rule_remove":
            removed = engine.rules.remove_rule(arguments["order"])
            if not removed:
                return {
                    "success": False,
                    "error": f"Rule not found: {arguments['order']}",
                    "error_type": "not_found",
                }
            return {
                "success": True,
                "message": f"Rule {arguments['order']} removed",
            }

        elif name == "rule_reorder":
            rules = engine.rules.reorder(arguments["order"])
            return {
                "success": True,
                "rules": [r.to_dict() for r in rules],
            }

        elif name == "rules_rebuild":
            updated = engine.store.rebuild_dynamic_content()
            return {
                "success": True,
                "updated": updated,
                "message": f"Dynamic content rebuilt for {updated} entries",
            }

        else:
            return {
                "success": False,
                "error": f"Unknown tool: {name}",
            }

    except ValidationError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "validation_error",
        }

    except QueryError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "query_error",
            "suggestion": "Check the pattern syntax (Python regular expressions)",
        }

    except StoreError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "store_error",
        }

    except BabblerError as e:
        return {
            "success": False,
            "error": str(e),
            "error_type": "babbler_error",
        }

    except KeyError as e:
        return {
            "success": False,
            "error": f"Missing required argument: {e}",
            "error_type": "missing_argument",
        }
