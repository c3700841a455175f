from __future__ import annotations

from typing import Dict, List, Optional

from .registry import get_api_functions, register_api


@register_api(
    "list_available_tools",
    description="List every planner tool with its description, category and parameter schema.",
    category="meta",
    tags=("tools", "metadata"),
)
def list_available_tools(category: Optional[str] = None) -> Dict[str, List[dict]]:
    return {"tools": [func.describe() for func in get_api_functions(category)]}
